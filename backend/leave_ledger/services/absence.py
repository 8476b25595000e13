"""Read-only absence aggregations over approved requests.

Nothing here is cached: each call recomputes from the current rows.
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlmodel import col

from leave_ledger.exceptions import InvalidRangeError
from leave_ledger.models.enums import LeaveType, RequestStatus
from leave_ledger.models.request import LeaveRequest
from leave_ledger.schemas.absence import (
    AbsenceSummaryResponse,
    CalendarDay,
    CalendarEntry,
    MonthCalendarResponse,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


def iso_week_bounds(day: date) -> tuple[date, date]:
    """Monday and Sunday of the ISO week containing ``day``."""
    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=6)


def month_bounds(day: date) -> tuple[date, date]:
    """First and last day of the calendar month containing ``day``."""
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


async def count_approved_overlapping(session: AsyncSession, start: date, end: date) -> int:
    """Approved requests whose inclusive range intersects ``[start, end]``."""
    if start > end:
        msg = f"Invalid date range: start {start.isoformat()} is after end {end.isoformat()}"
        raise InvalidRangeError(msg)
    result = await session.execute(
        select(func.count())
        .select_from(LeaveRequest)
        .where(
            col(LeaveRequest.status) == RequestStatus.APPROVED.value,
            col(LeaveRequest.start_date) <= end,
            col(LeaveRequest.end_date) >= start,
        )
    )
    return int(result.scalar_one())


async def absent_on(session: AsyncSession, day: date) -> int:
    return await count_approved_overlapping(session, day, day)


async def absent_during_week(session: AsyncSession, day: date) -> int:
    monday, sunday = iso_week_bounds(day)
    return await count_approved_overlapping(session, monday, sunday)


async def planned_this_month(session: AsyncSession, day: date) -> int:
    first, last = month_bounds(day)
    return await count_approved_overlapping(session, first, last)


async def absence_summary(session: AsyncSession, day: date) -> AbsenceSummaryResponse:
    """The three dashboard counters for ``day``."""
    return AbsenceSummaryResponse(
        reference_date=day,
        absent_today=await absent_on(session, day),
        absent_this_week=await absent_during_week(session, day),
        planned_this_month=await planned_this_month(session, day),
    )


async def month_calendar(session: AsyncSession, year: int, month: int) -> MonthCalendarResponse:
    """Approved absences covering each day of ``year``-``month``."""
    first, last = month_bounds(date(year, month, 1))
    result = await session.execute(
        select(LeaveRequest)
        .where(
            col(LeaveRequest.status) == RequestStatus.APPROVED.value,
            col(LeaveRequest.start_date) <= last,
            col(LeaveRequest.end_date) >= first,
        )
        .order_by(col(LeaveRequest.start_date), col(LeaveRequest.employee_id))
    )
    requests = list(result.scalars().all())

    days: list[CalendarDay] = []
    current = first
    while current <= last:
        entries = [
            CalendarEntry(
                request_id=r.id,
                employee_id=r.employee_id,
                leave_type=LeaveType(r.leave_type),
                start_date=r.start_date,
                end_date=r.end_date,
            )
            for r in requests
            if r.start_date <= current <= r.end_date
        ]
        days.append(CalendarDay(date=current, absences=entries))
        current += timedelta(days=1)

    return MonthCalendarResponse(year=year, month=month, days=days)
