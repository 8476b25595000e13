# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Self

from pydantic import BaseModel, Field, model_validator

from leave_ledger.models.enums import ExclusionReason, LeaveType, RequestStatus
from leave_ledger.schemas.working_days import ExclusionPayload

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class _RequestBody(BaseModel):
    start_date: date
    end_date: date
    leave_type: LeaveType = LeaveType.ANNUAL
    reason: str | None = Field(default=None, max_length=2000)
    exclusions: list[ExclusionPayload] = Field(default_factory=list)
    admin_override: bool = Field(
        default=False,
        description="Record the request even if it exceeds the remaining balance (admins only)",
    )

    @model_validator(mode="after")
    def _validate_dates(self) -> Self:
        if self.start_date > self.end_date:
            msg = "start_date must not be after end_date"
            raise ValueError(msg)
        return self


class CreateLeaveRequestPayload(_RequestBody):
    """Request body for creating a new absence request."""

    employee_id: uuid.UUID


class UpdateLeaveRequestPayload(_RequestBody):
    """Request body for editing a pending request. Exclusions are replaced wholesale."""


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ExcludedDateResponse(BaseModel):
    date: date
    reason: ExclusionReason


class LeaveRequestResponse(BaseModel):
    """Response schema for a single absence request."""

    id: uuid.UUID
    employee_id: uuid.UUID
    start_date: date
    end_date: date
    days_requested: int
    leave_type: LeaveType
    reason: str | None
    status: RequestStatus
    approved_at: datetime | None
    approved_by: uuid.UUID | None
    decided_at: datetime | None
    exclusions: list[ExcludedDateResponse]
    created_at: datetime
    updated_at: datetime


class LeaveRequestListResponse(BaseModel):
    """Paginated list of absence requests."""

    items: list[LeaveRequestResponse]
    total: int
