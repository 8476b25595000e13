"""Carry-over of unused days from one year's entitlement into a later year.

Each employee's year can be carried out of at most once. A ``LeaveCarryover``
marker row, unique on (employee_id, from_year), is written in the same
transaction as the destination update; a repeated call finds the marker and
returns without touching the ledger.
"""

# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from leave_ledger.exceptions import (
    ConflictError,
    EntitlementNotFoundError,
    InvalidRangeError,
    NothingToCarryOverError,
)
from leave_ledger.models.carryover import LeaveCarryover
from leave_ledger.models.entitlement import LeaveEntitlement
from leave_ledger.models.enums import AuditAction, AuditEntityType
from leave_ledger.schemas.entitlement import CarryoverBatchResponse, CarryoverResponse
from leave_ledger.services.audit import model_to_audit_dict, write_audit_log
from leave_ledger.services.employee import require_employee
from leave_ledger.services.entitlement import (
    build_entitlement_response,
    find_entitlement,
    get_or_init_entitlement,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_ledger.schemas.auth import AuthContext

logger = logging.getLogger(__name__)


@dataclass
class CarryoverRunResult:
    """Result of a batch carry-over run."""

    from_year: int
    to_year: int
    carried: int = 0
    already_applied: int = 0
    skipped: int = 0
    failed: int = 0
    details: list[CarryoverResponse] = field(default_factory=list)

    def to_response(self) -> CarryoverBatchResponse:
        return CarryoverBatchResponse(
            from_year=self.from_year,
            to_year=self.to_year,
            carried=self.carried,
            already_applied=self.already_applied,
            skipped=self.skipped,
            failed=self.failed,
            details=self.details,
        )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


async def _find_marker(
    session: AsyncSession,
    employee_id: uuid.UUID,
    from_year: int,
    *,
    for_update: bool = False,
) -> LeaveCarryover | None:
    stmt = select(LeaveCarryover).where(
        col(LeaveCarryover.employee_id) == employee_id,
        col(LeaveCarryover.from_year) == from_year,
    )
    if for_update:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def _already_applied(
    session: AsyncSession,
    employee_id: uuid.UUID,
    marker: LeaveCarryover,
) -> CarryoverResponse:
    destination = await find_entitlement(session, employee_id, marker.to_year)
    if destination is None:
        msg = f"Carry-over into {marker.to_year} is recorded but the entitlement row is missing"
        raise EntitlementNotFoundError(msg)
    logger.info(
        "Carry-over %d->%d for employee=%s already applied (%d day(s)); skipping",
        marker.from_year,
        marker.to_year,
        employee_id,
        marker.days,
    )
    return CarryoverResponse(
        employee_id=employee_id,
        from_year=marker.from_year,
        to_year=marker.to_year,
        days=marker.days,
        already_applied=True,
        destination=build_entitlement_response(destination),
    )


async def _carry_over(
    session: AsyncSession,
    actor_id: uuid.UUID,
    employee_id: uuid.UUID,
    from_year: int,
    to_year: int,
) -> CarryoverResponse:
    """Carry the remaining balance forward inside the caller's transaction.

    1. Return early if the marker for (employee, from_year) exists.
    2. Lock the source row; it must exist and have a positive balance.
    3. Lock or create the destination row.
    4. Add the remaining days to the destination's carried_over_days.
    5. Write the marker and the audit row.
    """
    if to_year <= from_year:
        msg = f"Carry-over target year {to_year} must be after source year {from_year}"
        raise InvalidRangeError(msg)

    marker = await _find_marker(session, employee_id, from_year)
    if marker is not None:
        return await _already_applied(session, employee_id, marker)

    source = await find_entitlement(session, employee_id, from_year, for_update=True)
    if source is None:
        msg = f"No entitlement configured for {from_year}"
        raise EntitlementNotFoundError(msg)

    remaining = source.balance
    if remaining <= 0:
        msg = f"No remaining balance for {from_year} to carry over"
        raise NothingToCarryOverError(msg)

    destination = await get_or_init_entitlement(session, employee_id, to_year)
    before = model_to_audit_dict(destination)

    destination.carried_over_days += remaining
    destination.version += 1

    marker = LeaveCarryover(
        employee_id=employee_id,
        from_year=from_year,
        to_year=to_year,
        days=remaining,
        performed_by=actor_id,
    )
    session.add(marker)
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        msg = f"Carry-over out of {from_year} was applied concurrently"
        raise ConflictError(msg) from None

    await write_audit_log(
        session,
        actor_id=actor_id,
        entity_type=AuditEntityType.CARRYOVER,
        entity_id=marker.id,
        action=AuditAction.CREATE,
        before_json=before,
        after_json=model_to_audit_dict(destination, carried_from_year=from_year, carried_days=remaining),
    )

    logger.info(
        "Carried %d day(s) %d->%d for employee=%s (carried_over now %d)",
        remaining,
        from_year,
        to_year,
        employee_id,
        destination.carried_over_days,
    )
    return CarryoverResponse(
        employee_id=employee_id,
        from_year=from_year,
        to_year=to_year,
        days=remaining,
        already_applied=False,
        destination=build_entitlement_response(destination),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def carry_over(
    session: AsyncSession,
    auth: AuthContext,
    employee_id: uuid.UUID,
    from_year: int,
    to_year: int,
) -> CarryoverResponse:
    """Move an employee's unused balance of ``from_year`` into ``to_year``.

    Repeating the call is a no-op reported with ``already_applied=True``.
    """
    await require_employee(employee_id)
    response = await _carry_over(session, auth.user_id, employee_id, from_year, to_year)
    await session.commit()
    return response


async def run_carryover_batch(
    session: AsyncSession,
    auth: AuthContext,
    from_year: int,
    to_year: int,
) -> CarryoverRunResult:
    """Carry over every employee that has an entitlement for ``from_year``.

    Each employee commits separately; employees with nothing left are skipped.
    An unexpected error for one employee is logged, rolled back and counted as
    failed without stopping the run.
    """
    if to_year <= from_year:
        msg = f"Carry-over target year {to_year} must be after source year {from_year}"
        raise InvalidRangeError(msg)

    result = CarryoverRunResult(from_year=from_year, to_year=to_year)

    employee_ids = (
        await session.execute(
            select(col(LeaveEntitlement.employee_id))
            .where(col(LeaveEntitlement.year) == from_year)
            .order_by(col(LeaveEntitlement.employee_id))
        )
    ).scalars().all()

    for employee_id in employee_ids:
        try:
            outcome = await _carry_over(session, auth.user_id, employee_id, from_year, to_year)
        except NothingToCarryOverError:
            result.skipped += 1
            continue
        except Exception:
            logger.exception("Carry-over %d->%d failed for employee=%s", from_year, to_year, employee_id)
            await session.rollback()
            result.failed += 1
            continue

        await session.commit()
        if outcome.already_applied:
            result.already_applied += 1
        else:
            result.carried += 1
        result.details.append(outcome)

    logger.info(
        "Carry-over batch %d->%d: carried=%d already_applied=%d skipped=%d failed=%d",
        from_year,
        to_year,
        result.carried,
        result.already_applied,
        result.skipped,
        result.failed,
    )
    return result


async def forward_credit(
    session: AsyncSession,
    actor_id: uuid.UUID,
    employee_id: uuid.UUID,
    from_year: int,
    days: int,
) -> LeaveCarryover | None:
    """Pass days credited back to an already carried-out year on to its target.

    A year with a carry-over marker cannot be carried again, so credited days
    left there would never reach the following year. Runs inside the caller's
    transaction; returns ``None`` when ``from_year`` was never carried out of.
    """
    if days <= 0:
        return None

    marker = await _find_marker(session, employee_id, from_year, for_update=True)
    if marker is None:
        return None

    destination = await get_or_init_entitlement(session, employee_id, marker.to_year)
    before = model_to_audit_dict(destination)

    destination.carried_over_days += days
    destination.version += 1
    marker.days += days
    await session.flush()

    await write_audit_log(
        session,
        actor_id=actor_id,
        entity_type=AuditEntityType.CARRYOVER,
        entity_id=marker.id,
        action=AuditAction.UPDATE,
        before_json=before,
        after_json=model_to_audit_dict(destination, carried_from_year=from_year, carried_days=days),
    )

    logger.info(
        "Forwarded %d credited day(s) %d->%d for employee=%s (carried_over now %d)",
        days,
        from_year,
        marker.to_year,
        employee_id,
        destination.carried_over_days,
    )
    return marker
