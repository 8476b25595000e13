"""Working-day calculator.

Pure functions, no I/O. Both the interactive preview and the persisted
``days_requested`` of a leave request go through ``count_working_days`` so
the two can never drift apart.

Classification of each date in ``[start, end]``:

* Sunday never counts; no exclusion can change that.
* Saturday counts when the employee works Saturdays. ``NON_WORKING_SATURDAY``
  forces it out and ``WORKING_SATURDAY`` forces it in, whatever the default.
* Monday to Friday count unless ``NON_WORKING_WEEKDAY`` names the date.

An exclusion whose reason does not fit the weekday it names is ignored.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from datetime import date, timedelta

from leave_ledger.exceptions import InvalidRangeError
from leave_ledger.models.enums import DayKind, ExclusionReason

_SATURDAY = 5
_SUNDAY = 6
_ONE_DAY = timedelta(days=1)

_SATURDAY_OVERRIDES = {
    ExclusionReason.NON_WORKING_SATURDAY: False,
    ExclusionReason.WORKING_SATURDAY: True,
}

ExclusionsInput = Mapping[date, ExclusionReason] | Iterable[tuple[date, ExclusionReason]]


@dataclass(frozen=True)
class DayClassification:
    """How a single calendar date was treated."""

    date: date
    kind: DayKind
    counted: bool
    applied_exclusion: ExclusionReason | None = None


def _ensure_range(start: date, end: date) -> None:
    if start > end:
        msg = f"Invalid date range: start {start.isoformat()} is after end {end.isoformat()}"
        raise InvalidRangeError(msg)


def _iter_dates(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += _ONE_DAY


def _as_mapping(exclusions: ExclusionsInput | None) -> dict[date, ExclusionReason]:
    if exclusions is None:
        return {}
    if isinstance(exclusions, Mapping):
        return {d: ExclusionReason(r) for d, r in exclusions.items()}
    return {d: ExclusionReason(r) for d, r in exclusions}


def day_kind(day: date) -> DayKind:
    """Return the calendar kind of ``day``."""
    weekday = day.weekday()
    if weekday == _SUNDAY:
        return DayKind.SUNDAY
    if weekday == _SATURDAY:
        return DayKind.SATURDAY
    return DayKind.WEEKDAY


def classify_day(day: date, works_saturday: bool, exclusion: ExclusionReason | None = None) -> DayClassification:
    """Classify one date under the employee's Saturday policy and an optional override."""
    kind = day_kind(day)

    if kind is DayKind.SUNDAY:
        return DayClassification(day, kind, counted=False)

    if kind is DayKind.SATURDAY:
        if exclusion in _SATURDAY_OVERRIDES:
            return DayClassification(day, kind, counted=_SATURDAY_OVERRIDES[exclusion], applied_exclusion=exclusion)
        return DayClassification(day, kind, counted=works_saturday)

    if exclusion is ExclusionReason.NON_WORKING_WEEKDAY:
        return DayClassification(day, kind, counted=False, applied_exclusion=exclusion)
    return DayClassification(day, kind, counted=True)


def classify_days(
    start: date,
    end: date,
    works_saturday: bool,
    exclusions: ExclusionsInput | None = None,
) -> list[DayClassification]:
    """Classify every date from ``start`` to ``end`` inclusive.

    Raises:
        InvalidRangeError: ``start`` is after ``end``.
    """
    _ensure_range(start, end)
    by_date = _as_mapping(exclusions)
    return [classify_day(day, works_saturday, by_date.get(day)) for day in _iter_dates(start, end)]


def count_working_days(
    start: date,
    end: date,
    works_saturday: bool,
    exclusions: ExclusionsInput | None = None,
) -> int:
    """Return how many days of ``[start, end]`` an absence consumes."""
    return sum(1 for day in classify_days(start, end, works_saturday, exclusions) if day.counted)


def saturdays_in_range(start: date, end: date) -> list[date]:
    """All Saturdays in ``[start, end]``, for building Saturday overrides."""
    _ensure_range(start, end)
    return [day for day in _iter_dates(start, end) if day.weekday() == _SATURDAY]


def weekdays_in_range(start: date, end: date) -> list[date]:
    """All Monday-Friday dates in ``[start, end]``, for building weekday exclusions."""
    _ensure_range(start, end)
    return [day for day in _iter_dates(start, end) if day.weekday() < _SATURDAY]
