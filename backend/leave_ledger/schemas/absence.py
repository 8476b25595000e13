# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date

from pydantic import BaseModel

from leave_ledger.models.enums import LeaveType


class AbsenceSummaryResponse(BaseModel):
    """Dashboard counters for a reference date."""

    reference_date: date
    absent_today: int
    absent_this_week: int
    planned_this_month: int


class CalendarEntry(BaseModel):
    request_id: uuid.UUID
    employee_id: uuid.UUID
    leave_type: LeaveType
    start_date: date
    end_date: date


class CalendarDay(BaseModel):
    date: date
    absences: list[CalendarEntry]


class MonthCalendarResponse(BaseModel):
    """Approved absences laid out per day of one month."""

    year: int
    month: int
    days: list[CalendarDay]
