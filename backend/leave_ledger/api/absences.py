# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Query

from leave_ledger.api.deps import AuthDep
from leave_ledger.db import SessionDep
from leave_ledger.schemas.absence import AbsenceSummaryResponse, MonthCalendarResponse
from leave_ledger.services import absence as absence_service

absences_router = APIRouter(prefix="/absences", tags=["absences"])


@absences_router.get("/summary", response_model=AbsenceSummaryResponse)
async def get_absence_summary(
    session: SessionDep,
    auth: AuthDep,
    on: date | None = Query(default=None, description="Reference date, defaults to today"),
) -> AbsenceSummaryResponse:
    """Absent today, absent this ISO week and planned this month."""
    return await absence_service.absence_summary(session, on or date.today())


@absences_router.get("/calendar", response_model=MonthCalendarResponse)
async def get_month_calendar(
    session: SessionDep,
    auth: AuthDep,
    year: int = Query(ge=1900, le=9999),
    month: int = Query(ge=1, le=12),
) -> MonthCalendarResponse:
    """Approved absences per day of one month."""
    return await absence_service.month_calendar(session, year, month)
