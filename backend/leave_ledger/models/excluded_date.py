# ruff: noqa: TC003
from __future__ import annotations

import datetime
import uuid

import sqlalchemy as sa
from sqlmodel import Field

from leave_ledger.models.base import UUIDBase


class LeaveRequestExcludedDate(UUIDBase, table=True):
    """A per-date override attached to one leave request."""

    __tablename__ = "leave_request_excluded_dates"
    __table_args__ = (sa.UniqueConstraint("leave_request_id", "date", name="uq_excluded_date_request_date"),)

    leave_request_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("leave_requests.id", ondelete="CASCADE"), nullable=False, index=True
        ),
    )
    date: datetime.date
    reason: str = Field(max_length=50)
