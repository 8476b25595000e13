# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

import sqlalchemy as sa
from sqlmodel import Field

from leave_ledger.models.base import TimestampMixin, UpdatedAtMixin, UUIDBase
from leave_ledger.models.enums import LeaveType, RequestStatus


class LeaveRequest(UUIDBase, TimestampMixin, UpdatedAtMixin, table=True):
    """An absence request with its approval state.

    days_requested is a snapshot taken when the request is created or edited.
    """

    __tablename__ = "leave_requests"
    __table_args__ = (
        sa.Index("ix_leave_request_status_range", "status", "start_date", "end_date"),
        sa.CheckConstraint("start_date <= end_date", name="ck_leave_request_range"),
    )

    employee_id: uuid.UUID = Field(index=True)
    start_date: date
    end_date: date
    days_requested: int
    leave_type: str = Field(default=LeaveType.ANNUAL, max_length=50)
    reason: str | None = None
    status: str = Field(
        default=RequestStatus.PENDING, max_length=50, index=True, sa_column_kwargs={"server_default": "PENDING"}
    )
    approved_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    approved_by: uuid.UUID | None = None
    decided_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
