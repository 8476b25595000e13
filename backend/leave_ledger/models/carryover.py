# ruff: noqa: TC003
from __future__ import annotations

import uuid

import sqlalchemy as sa
from sqlmodel import Field

from leave_ledger.models.base import TimestampMixin, UUIDBase


class LeaveCarryover(UUIDBase, TimestampMixin, table=True):
    """Marker row proving a year's remaining balance was already carried forward.

    Unique on (employee_id, from_year): a year can be carried out of only once.
    """

    __tablename__ = "leave_carryovers"
    __table_args__ = (sa.UniqueConstraint("employee_id", "from_year", name="uq_carryover_employee_from_year"),)

    employee_id: uuid.UUID = Field(index=True)
    from_year: int
    to_year: int
    days: int
    performed_by: uuid.UUID
