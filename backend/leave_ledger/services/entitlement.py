"""Entitlement ledger: one row per (employee, year).

Materialization policy: read paths never create rows and report a missing
entitlement as ``EntitlementNotFoundError``. Every write path goes through
``get_or_init_entitlement``, which locks the row and creates it with the
configured default fund when absent.
"""

# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from leave_ledger.config import get_settings
from leave_ledger.exceptions import ConflictError, EntitlementNotFoundError, ValidationFailedError
from leave_ledger.models.entitlement import LeaveEntitlement
from leave_ledger.models.enums import AuditAction, AuditEntityType
from leave_ledger.schemas.entitlement import EntitlementListResponse, EntitlementResponse
from leave_ledger.services.audit import model_to_audit_dict, write_audit_log
from leave_ledger.services.employee import require_employee

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_ledger.schemas.auth import AuthContext
    from leave_ledger.schemas.entitlement import ManualAdjustmentPayload, UpsertEntitlementPayload

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def build_entitlement_response(entitlement: LeaveEntitlement) -> EntitlementResponse:
    """Map an entitlement row to its response schema."""
    return EntitlementResponse(
        id=entitlement.id,
        employee_id=entitlement.employee_id,
        year=entitlement.year,
        total_days=entitlement.total_days,
        carried_over_days=entitlement.carried_over_days,
        manual_adjustment_days=entitlement.manual_adjustment_days,
        used_days=entitlement.used_days,
        balance=entitlement.balance,
        updated_at=entitlement.updated_at,
    )


async def find_entitlement(
    session: AsyncSession,
    employee_id: uuid.UUID,
    year: int,
    *,
    for_update: bool = False,
) -> LeaveEntitlement | None:
    """Fetch the row for (employee, year), optionally with a FOR UPDATE lock."""
    query = select(LeaveEntitlement).where(
        col(LeaveEntitlement.employee_id) == employee_id,
        col(LeaveEntitlement.year) == year,
    )
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def get_or_init_entitlement(
    session: AsyncSession,
    employee_id: uuid.UUID,
    year: int,
) -> LeaveEntitlement:
    """Lock the (employee, year) row, creating it with the default fund if absent.

    Runs inside the caller's transaction; does not commit.
    """
    entitlement = await find_entitlement(session, employee_id, year, for_update=True)
    if entitlement is not None:
        return entitlement

    entitlement = LeaveEntitlement(
        employee_id=employee_id,
        year=year,
        total_days=get_settings().default_annual_days,
    )
    session.add(entitlement)
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        msg = f"Entitlement for {year} was created concurrently; retry the operation"
        raise ConflictError(msg) from None

    logger.info("Initialized entitlement employee=%s year=%d fund=%d", employee_id, year, entitlement.total_days)
    return entitlement


def _touch(entitlement: LeaveEntitlement) -> None:
    entitlement.version += 1


# ---------------------------------------------------------------------------
# Ledger mutations (caller owns the transaction)
# ---------------------------------------------------------------------------


async def debit(
    session: AsyncSession,
    actor_id: uuid.UUID,
    employee_id: uuid.UUID,
    year: int,
    days: int,
) -> LeaveEntitlement:
    """Increase used_days. No cap: the balance may go negative.

    Called exactly once per approval, inside the approval transaction.
    """
    if days < 0:
        msg = "Debit amount must not be negative"
        raise ValidationFailedError(msg)

    entitlement = await get_or_init_entitlement(session, employee_id, year)
    before = model_to_audit_dict(entitlement)
    entitlement.used_days += days
    _touch(entitlement)
    await session.flush()

    await write_audit_log(
        session,
        actor_id=actor_id,
        entity_type=AuditEntityType.ENTITLEMENT,
        entity_id=entitlement.id,
        action=AuditAction.DEBIT,
        before_json=before,
        after_json=model_to_audit_dict(entitlement),
    )
    logger.info("Debited %d day(s) employee=%s year=%d used=%d", days, employee_id, year, entitlement.used_days)
    return entitlement


async def credit(
    session: AsyncSession,
    actor_id: uuid.UUID,
    employee_id: uuid.UUID,
    year: int,
    days: int,
) -> LeaveEntitlement:
    """Decrease used_days when a prior approval is reversed."""
    if days < 0:
        msg = "Credit amount must not be negative"
        raise ValidationFailedError(msg)

    entitlement = await find_entitlement(session, employee_id, year, for_update=True)
    if entitlement is None:
        msg = f"No entitlement configured for {year}; nothing to credit back"
        raise EntitlementNotFoundError(msg)
    if entitlement.used_days < days:
        msg = f"Cannot credit {days} day(s) for {year}: only {entitlement.used_days} used"
        raise ConflictError(msg)

    before = model_to_audit_dict(entitlement)
    entitlement.used_days -= days
    _touch(entitlement)
    await session.flush()

    await write_audit_log(
        session,
        actor_id=actor_id,
        entity_type=AuditEntityType.ENTITLEMENT,
        entity_id=entitlement.id,
        action=AuditAction.CREDIT,
        before_json=before,
        after_json=model_to_audit_dict(entitlement),
    )
    logger.info("Credited %d day(s) employee=%s year=%d used=%d", days, employee_id, year, entitlement.used_days)
    return entitlement


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------


async def get_entitlement(
    session: AsyncSession,
    employee_id: uuid.UUID,
    year: int,
) -> EntitlementResponse:
    """Read one row. Never materializes a default."""
    entitlement = await find_entitlement(session, employee_id, year)
    if entitlement is None:
        msg = f"No entitlement configured for {year}"
        raise EntitlementNotFoundError(msg)
    return build_entitlement_response(entitlement)


async def list_entitlements(session: AsyncSession, employee_id: uuid.UUID) -> EntitlementListResponse:
    """All ledger rows of an employee, newest year first."""
    result = await session.execute(
        select(LeaveEntitlement)
        .where(col(LeaveEntitlement.employee_id) == employee_id)
        .order_by(col(LeaveEntitlement.year).desc())
    )
    rows = list(result.scalars().all())
    return EntitlementListResponse(items=[build_entitlement_response(r) for r in rows], total=len(rows))


async def available_balance(session: AsyncSession, employee_id: uuid.UUID, year: int) -> int:
    """Remaining days for a year; a missing row counts as an untouched default fund."""
    entitlement = await find_entitlement(session, employee_id, year)
    if entitlement is None:
        return get_settings().default_annual_days
    return entitlement.balance


# ---------------------------------------------------------------------------
# Write path: admin edits
# ---------------------------------------------------------------------------


async def upsert_entitlement(
    session: AsyncSession,
    auth: AuthContext,
    employee_id: uuid.UUID,
    year: int,
    payload: UpsertEntitlementPayload,
) -> EntitlementResponse:
    """Set the annual fund for a year, creating the row if needed."""
    await require_employee(employee_id)

    existing = await find_entitlement(session, employee_id, year, for_update=True)
    entitlement = existing if existing is not None else await get_or_init_entitlement(session, employee_id, year)
    before = model_to_audit_dict(entitlement) if existing is not None else None

    entitlement.total_days = payload.total_days
    _touch(entitlement)
    await session.flush()

    await write_audit_log(
        session,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.ENTITLEMENT,
        entity_id=entitlement.id,
        action=AuditAction.UPDATE if existing is not None else AuditAction.CREATE,
        before_json=before,
        after_json=model_to_audit_dict(entitlement),
    )

    await session.commit()
    await session.refresh(entitlement)
    return build_entitlement_response(entitlement)


async def apply_manual_adjustment(
    session: AsyncSession,
    auth: AuthContext,
    employee_id: uuid.UUID,
    year: int,
    payload: ManualAdjustmentPayload,
) -> EntitlementResponse:
    """Overwrite carried_over_days and manual_adjustment_days. used_days is untouched."""
    await require_employee(employee_id)

    entitlement = await get_or_init_entitlement(session, employee_id, year)
    before = model_to_audit_dict(entitlement)

    entitlement.carried_over_days = payload.carried_over_days
    entitlement.manual_adjustment_days = payload.manual_adjustment_days
    _touch(entitlement)
    await session.flush()

    await write_audit_log(
        session,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.ENTITLEMENT,
        entity_id=entitlement.id,
        action=AuditAction.ADJUST,
        before_json=before,
        after_json=model_to_audit_dict(entitlement),
    )

    await session.commit()
    await session.refresh(entitlement)
    logger.info(
        "Manual adjustment employee=%s year=%d carried_over=%d adjustment=%d",
        employee_id,
        year,
        entitlement.carried_over_days,
        entitlement.manual_adjustment_days,
    )
    return build_entitlement_response(entitlement)
