# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date
from typing import Self

from pydantic import BaseModel, Field, model_validator

from leave_ledger.models.enums import DayKind, ExclusionReason


class ExclusionPayload(BaseModel):
    """A single per-date override submitted with a request."""

    date: date
    reason: ExclusionReason


class WorkingDaysPreviewPayload(BaseModel):
    """Request body for previewing how many days a range consumes."""

    employee_id: uuid.UUID
    start_date: date
    end_date: date
    exclusions: list[ExclusionPayload] = Field(default_factory=list)

    @model_validator(mode="after")
    def _validate_dates(self) -> Self:
        if self.start_date > self.end_date:
            msg = "start_date must not be after end_date"
            raise ValueError(msg)
        return self


class DayClassificationResponse(BaseModel):
    date: date
    kind: DayKind
    counted: bool
    applied_exclusion: ExclusionReason | None


class WorkingDaysPreviewResponse(BaseModel):
    """Day count plus the candidate dates a caller can toggle exclusions on."""

    employee_id: uuid.UUID
    works_saturday: bool
    start_date: date
    end_date: date
    days: int
    saturdays: list[date]
    weekdays: list[date]
    classification: list[DayClassificationResponse]
