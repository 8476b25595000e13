# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Self

from pydantic import BaseModel, Field, model_validator

# ---------------------------------------------------------------------------
# Entitlement payloads
# ---------------------------------------------------------------------------


class UpsertEntitlementPayload(BaseModel):
    """Request body for setting an employee's annual fund for a year."""

    total_days: int = Field(ge=0, le=366)


class ManualAdjustmentPayload(BaseModel):
    """Request body for an admin correction; both fields overwrite the stored values."""

    carried_over_days: int
    manual_adjustment_days: int


class CarryoverPayload(BaseModel):
    """Request body for carrying one year's remaining balance into a later year."""

    from_year: int = Field(ge=1900, le=9999)
    to_year: int = Field(ge=1900, le=9999)

    @model_validator(mode="after")
    def _validate_years(self) -> Self:
        if self.to_year <= self.from_year:
            msg = "to_year must be after from_year"
            raise ValueError(msg)
        return self


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class EntitlementResponse(BaseModel):
    """One ledger row with its derived balance."""

    id: uuid.UUID
    employee_id: uuid.UUID
    year: int
    total_days: int
    carried_over_days: int
    manual_adjustment_days: int
    used_days: int
    balance: int
    updated_at: datetime


class EntitlementListResponse(BaseModel):
    items: list[EntitlementResponse]
    total: int


class CarryoverResponse(BaseModel):
    """Outcome of a single carry-over call."""

    employee_id: uuid.UUID
    from_year: int
    to_year: int
    days: int
    already_applied: bool
    destination: EntitlementResponse


class CarryoverBatchResponse(BaseModel):
    from_year: int
    to_year: int
    carried: int
    already_applied: int
    skipped: int
    failed: int
    details: list[CarryoverResponse]
