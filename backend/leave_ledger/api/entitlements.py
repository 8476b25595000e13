# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Path

from leave_ledger.api.deps import AdminDep, SelfOrAdminDep
from leave_ledger.db import SessionDep
from leave_ledger.schemas.entitlement import (
    CarryoverBatchResponse,
    CarryoverPayload,
    CarryoverResponse,
    EntitlementListResponse,
    EntitlementResponse,
    ManualAdjustmentPayload,
    UpsertEntitlementPayload,
)
from leave_ledger.services import carryover as carryover_service
from leave_ledger.services import entitlement as entitlement_service

employee_entitlements_router = APIRouter(
    prefix="/employees/{employee_id}/entitlements",
    tags=["entitlements"],
)

carryover_router = APIRouter(prefix="/carryovers", tags=["entitlements"])

YearParam = Annotated[int, Path(ge=1900, le=9999)]


@employee_entitlements_router.get("", response_model=EntitlementListResponse)
async def list_entitlements(
    employee_id: uuid.UUID,
    session: SessionDep,
    auth: SelfOrAdminDep,
) -> EntitlementListResponse:
    """All yearly ledger rows of an employee."""
    return await entitlement_service.list_entitlements(session, employee_id)


@employee_entitlements_router.get("/{year}", response_model=EntitlementResponse)
async def get_entitlement(
    employee_id: uuid.UUID,
    session: SessionDep,
    auth: SelfOrAdminDep,
    year: YearParam,
) -> EntitlementResponse:
    """One year's ledger row with its derived balance."""
    return await entitlement_service.get_entitlement(session, employee_id, year)


@employee_entitlements_router.put("/{year}", response_model=EntitlementResponse)
async def upsert_entitlement(
    employee_id: uuid.UUID,
    payload: UpsertEntitlementPayload,
    session: SessionDep,
    auth: AdminDep,
    year: YearParam,
) -> EntitlementResponse:
    """Set the annual fund for a year (admin only)."""
    return await entitlement_service.upsert_entitlement(session, auth, employee_id, year, payload)


@employee_entitlements_router.put("/{year}/adjustment", response_model=EntitlementResponse)
async def apply_manual_adjustment(
    employee_id: uuid.UUID,
    payload: ManualAdjustmentPayload,
    session: SessionDep,
    auth: AdminDep,
    year: YearParam,
) -> EntitlementResponse:
    """Overwrite carried-over and manual adjustment days (admin only)."""
    return await entitlement_service.apply_manual_adjustment(session, auth, employee_id, year, payload)


@employee_entitlements_router.post("/carryover", response_model=CarryoverResponse)
async def carry_over(
    employee_id: uuid.UUID,
    payload: CarryoverPayload,
    session: SessionDep,
    auth: AdminDep,
) -> CarryoverResponse:
    """Carry one employee's unused days into a later year (admin only). Safe to repeat."""
    return await carryover_service.carry_over(session, auth, employee_id, payload.from_year, payload.to_year)


@carryover_router.post("", response_model=CarryoverBatchResponse)
async def run_carryover_batch(
    payload: CarryoverPayload,
    session: SessionDep,
    auth: AdminDep,
) -> CarryoverBatchResponse:
    """Carry over every employee with an entitlement in from_year (admin only)."""
    result = await carryover_service.run_carryover_batch(session, auth, payload.from_year, payload.to_year)
    return result.to_response()
