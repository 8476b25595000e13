"""Per-request date overrides.

Exclusions are written together with their request and replaced wholesale on
edit. Validation happens here, before the request itself is touched.
"""

# ruff: noqa: TC003
from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import delete, select
from sqlmodel import col

from leave_ledger.config import get_settings
from leave_ledger.exceptions import InvalidExclusionError, JustificationRequiredError
from leave_ledger.models.enums import DayKind, ExclusionReason
from leave_ledger.models.excluded_date import LeaveRequestExcludedDate
from leave_ledger.services.working_days import day_kind

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_ledger.schemas.working_days import ExclusionPayload

_SATURDAY_REASONS = frozenset({ExclusionReason.NON_WORKING_SATURDAY, ExclusionReason.WORKING_SATURDAY})


def validate_exclusions(
    start: date,
    end: date,
    exclusions: Sequence[ExclusionPayload],
    reason: str | None,
    *,
    require_justification: bool = True,
) -> dict[date, ExclusionReason]:
    """Check an exclusion set against its request and return it keyed by date.

    Raises:
        InvalidExclusionError: a date is outside the range, repeated, a Sunday,
            or carries a reason that does not fit its weekday.
        JustificationRequiredError: a weekday is excluded and the request reason
            is shorter than the configured minimum. Skipped for previews via
            ``require_justification=False``.
    """
    by_date: dict[date, ExclusionReason] = {}

    for exclusion in exclusions:
        day = exclusion.date
        if not start <= day <= end:
            msg = f"Excluded date {day.isoformat()} is outside the request range"
            raise InvalidExclusionError(msg)
        if day in by_date:
            msg = f"Excluded date {day.isoformat()} appears more than once"
            raise InvalidExclusionError(msg)

        kind = day_kind(day)
        if kind is DayKind.SUNDAY:
            msg = f"{day.isoformat()} is a Sunday and is never counted; it cannot be excluded"
            raise InvalidExclusionError(msg)
        if kind is DayKind.SATURDAY and exclusion.reason not in _SATURDAY_REASONS:
            msg = f"{day.isoformat()} is a Saturday; use a Saturday override, not {exclusion.reason.value}"
            raise InvalidExclusionError(msg)
        if kind is DayKind.WEEKDAY and exclusion.reason is not ExclusionReason.NON_WORKING_WEEKDAY:
            msg = f"{day.isoformat()} is a weekday; only NON_WORKING_WEEKDAY applies"
            raise InvalidExclusionError(msg)

        by_date[day] = exclusion.reason

    if require_justification and ExclusionReason.NON_WORKING_WEEKDAY in by_date.values():
        min_length = get_settings().min_justification_length
        if len((reason or "").strip()) < min_length:
            msg = f"Excluding a working weekday requires a reason of at least {min_length} characters"
            raise JustificationRequiredError(msg)

    return by_date


async def list_exclusions(session: AsyncSession, request_id: uuid.UUID) -> list[LeaveRequestExcludedDate]:
    """Exclusions of one request, ordered by date."""
    result = await session.execute(
        select(LeaveRequestExcludedDate)
        .where(col(LeaveRequestExcludedDate.leave_request_id) == request_id)
        .order_by(col(LeaveRequestExcludedDate.date))
    )
    return list(result.scalars().all())


async def replace_exclusions(
    session: AsyncSession,
    request_id: uuid.UUID,
    exclusions: dict[date, ExclusionReason],
) -> list[LeaveRequestExcludedDate]:
    """Drop every stored exclusion of the request and write the new set.

    Runs inside the caller's transaction; does not commit.
    """
    await session.execute(
        delete(LeaveRequestExcludedDate).where(col(LeaveRequestExcludedDate.leave_request_id) == request_id)
    )
    rows = [
        LeaveRequestExcludedDate(leave_request_id=request_id, date=day, reason=reason.value)
        for day, reason in sorted(exclusions.items())
    ]
    session.add_all(rows)
    await session.flush()
    return rows


async def delete_exclusions(session: AsyncSession, request_id: uuid.UUID) -> None:
    """Remove all exclusions of a request. Does not commit."""
    await session.execute(
        delete(LeaveRequestExcludedDate).where(col(LeaveRequestExcludedDate.leave_request_id) == request_id)
    )
