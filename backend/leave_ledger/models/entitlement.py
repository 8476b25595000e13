# ruff: noqa: TC003
from __future__ import annotations

import uuid

import sqlalchemy as sa
from sqlmodel import Field

from leave_ledger.models.base import TimestampMixin, UpdatedAtMixin, UUIDBase


class LeaveEntitlement(UUIDBase, TimestampMixin, UpdatedAtMixin, table=True):
    """Per-employee, per-year leave fund and consumption.

    The balance is derived, never stored:
    total_days + carried_over_days + manual_adjustment_days - used_days.
    """

    __tablename__ = "leave_entitlements"
    __table_args__ = (sa.UniqueConstraint("employee_id", "year", name="uq_entitlement_employee_year"),)

    employee_id: uuid.UUID = Field(index=True)
    year: int
    total_days: int = Field(default=20, sa_column_kwargs={"server_default": "20"})
    carried_over_days: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    manual_adjustment_days: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    used_days: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    version: int = Field(default=1, sa_column_kwargs={"server_default": "1"})

    @property
    def balance(self) -> int:
        return self.total_days + self.carried_over_days + self.manual_adjustment_days - self.used_days
