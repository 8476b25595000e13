"""Entitlement ledger: materialization, admin edits, debit/credit and the HTTP surface."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import select
from sqlmodel import col

from leave_ledger.exceptions import ConflictError, EntitlementNotFoundError
from leave_ledger.models.audit import AuditLog
from leave_ledger.models.entitlement import LeaveEntitlement
from leave_ledger.schemas.auth import AuthContext
from leave_ledger.schemas.entitlement import ManualAdjustmentPayload, UpsertEntitlementPayload
from leave_ledger.services import entitlement as ledger
from leave_ledger.services.employee import EmployeeInfo

if TYPE_CHECKING:
    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_ledger.services.employee import InMemoryEmployeeService

ADMIN_ID = uuid.uuid4()
EMPLOYEE_ID = uuid.uuid4()
OTHER_ID = uuid.uuid4()
ADMIN = AuthContext(user_id=ADMIN_ID, role="admin")

ADMIN_HEADERS = {"X-User-Id": str(ADMIN_ID), "X-Role": "admin"}
EMPLOYEE_HEADERS = {"X-User-Id": str(EMPLOYEE_ID), "X-Role": "employee"}
URL = f"/employees/{EMPLOYEE_ID}/entitlements"


@pytest.fixture(autouse=True)
def _seed(employee_service: InMemoryEmployeeService) -> None:
    employee_service.seed(EmployeeInfo(id=EMPLOYEE_ID, first_name="Ana", last_name="Nowak"))
    employee_service.seed(EmployeeInfo(id=OTHER_ID, first_name="Jan", last_name="Kowal"))


async def _audit_actions(session: AsyncSession, entity_id: uuid.UUID) -> list[str]:
    result = await session.execute(
        select(AuditLog).where(col(AuditLog.entity_id) == entity_id).order_by(col(AuditLog.created_at))
    )
    return [row.action for row in result.scalars().all()]


# ---------------------------------------------------------------------------
# Materialization
# ---------------------------------------------------------------------------


async def test_read_does_not_materialize(db_session: AsyncSession) -> None:
    with pytest.raises(EntitlementNotFoundError, match="2024"):
        await ledger.get_entitlement(db_session, EMPLOYEE_ID, 2024)
    assert await ledger.find_entitlement(db_session, EMPLOYEE_ID, 2024) is None


async def test_available_balance_defaults_without_row(db_session: AsyncSession) -> None:
    assert await ledger.available_balance(db_session, EMPLOYEE_ID, 2024) == 20
    assert await ledger.find_entitlement(db_session, EMPLOYEE_ID, 2024) is None


async def test_get_or_init_creates_default_then_reuses(db_session: AsyncSession) -> None:
    first = await ledger.get_or_init_entitlement(db_session, EMPLOYEE_ID, 2024)
    assert first.total_days == 20
    assert first.balance == 20
    second = await ledger.get_or_init_entitlement(db_session, EMPLOYEE_ID, 2024)
    assert second.id == first.id


# ---------------------------------------------------------------------------
# Debit / credit
# ---------------------------------------------------------------------------


async def test_debit_is_not_capped(db_session: AsyncSession) -> None:
    entitlement = await ledger.get_or_init_entitlement(db_session, EMPLOYEE_ID, 2024)
    entitlement.total_days = 15
    await db_session.commit()

    row = await ledger.debit(db_session, ADMIN_ID, EMPLOYEE_ID, 2024, 20)
    await db_session.commit()

    assert row.used_days == 20
    assert row.balance == -5


async def test_debit_materializes_missing_row(db_session: AsyncSession) -> None:
    row = await ledger.debit(db_session, ADMIN_ID, EMPLOYEE_ID, 2025, 3)
    await db_session.commit()
    assert row.total_days == 20
    assert row.used_days == 3
    assert await _audit_actions(db_session, row.id) == ["DEBIT"]


async def test_debit_bumps_version(db_session: AsyncSession) -> None:
    row = await ledger.get_or_init_entitlement(db_session, EMPLOYEE_ID, 2024)
    version = row.version
    await ledger.debit(db_session, ADMIN_ID, EMPLOYEE_ID, 2024, 1)
    assert row.version == version + 1


async def test_credit_reverses_debit(db_session: AsyncSession) -> None:
    await ledger.debit(db_session, ADMIN_ID, EMPLOYEE_ID, 2024, 5)
    row = await ledger.credit(db_session, ADMIN_ID, EMPLOYEE_ID, 2024, 5)
    await db_session.commit()
    assert row.used_days == 0
    assert row.balance == 20


async def test_credit_more_than_used_conflicts(db_session: AsyncSession) -> None:
    await ledger.debit(db_session, ADMIN_ID, EMPLOYEE_ID, 2024, 2)
    with pytest.raises(ConflictError):
        await ledger.credit(db_session, ADMIN_ID, EMPLOYEE_ID, 2024, 3)


async def test_credit_without_row_is_not_found(db_session: AsyncSession) -> None:
    with pytest.raises(EntitlementNotFoundError):
        await ledger.credit(db_session, ADMIN_ID, EMPLOYEE_ID, 2030, 1)


# ---------------------------------------------------------------------------
# Admin edits
# ---------------------------------------------------------------------------


async def test_manual_adjustment_overwrites_and_keeps_used(db_session: AsyncSession) -> None:
    await ledger.debit(db_session, ADMIN_ID, EMPLOYEE_ID, 2024, 4)
    await db_session.commit()

    response = await ledger.apply_manual_adjustment(
        db_session,
        ADMIN,
        EMPLOYEE_ID,
        2024,
        ManualAdjustmentPayload(carried_over_days=3, manual_adjustment_days=-1),
    )

    assert response.carried_over_days == 3
    assert response.manual_adjustment_days == -1
    assert response.used_days == 4
    assert response.balance == 20 + 3 - 1 - 4
    assert await _audit_actions(db_session, response.id) == ["DEBIT", "ADJUST"]


async def test_upsert_creates_then_updates(db_session: AsyncSession) -> None:
    created = await ledger.upsert_entitlement(
        db_session, ADMIN, EMPLOYEE_ID, 2024, UpsertEntitlementPayload(total_days=26)
    )
    updated = await ledger.upsert_entitlement(
        db_session, ADMIN, EMPLOYEE_ID, 2024, UpsertEntitlementPayload(total_days=24)
    )

    assert created.id == updated.id
    assert updated.total_days == 24
    assert await _audit_actions(db_session, created.id) == ["CREATE", "UPDATE"]


async def test_one_row_per_employee_year(db_session: AsyncSession) -> None:
    for _ in range(3):
        await ledger.get_or_init_entitlement(db_session, EMPLOYEE_ID, 2024)
    await db_session.commit()
    result = await db_session.execute(select(LeaveEntitlement).where(col(LeaveEntitlement.employee_id) == EMPLOYEE_ID))
    assert len(result.scalars().all()) == 1


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


async def test_http_upsert_and_read(async_client: AsyncClient) -> None:
    response = await async_client.put(f"{URL}/2024", json={"total_days": 26}, headers=ADMIN_HEADERS)
    assert response.status_code == 200
    assert response.json()["balance"] == 26

    response = await async_client.get(f"{URL}/2024", headers=EMPLOYEE_HEADERS)
    assert response.status_code == 200
    assert response.json()["total_days"] == 26


async def test_http_missing_year_is_404(async_client: AsyncClient) -> None:
    response = await async_client.get(f"{URL}/2024", headers=ADMIN_HEADERS)
    assert response.status_code == 404
    body = response.json()
    assert body["error"] == "EntitlementNotFoundError"
    assert "2024" in body["detail"]


async def test_http_list_newest_first(async_client: AsyncClient) -> None:
    for year in (2023, 2025, 2024):
        await async_client.put(f"{URL}/{year}", json={"total_days": 20}, headers=ADMIN_HEADERS)
    response = await async_client.get(URL, headers=EMPLOYEE_HEADERS)
    data = response.json()
    assert data["total"] == 3
    assert [item["year"] for item in data["items"]] == [2025, 2024, 2023]


async def test_http_adjustment(async_client: AsyncClient) -> None:
    response = await async_client.put(
        f"{URL}/2024/adjustment",
        json={"carried_over_days": 2, "manual_adjustment_days": 1},
        headers=ADMIN_HEADERS,
    )
    assert response.status_code == 200
    assert response.json()["balance"] == 23


async def test_http_employee_cannot_edit(async_client: AsyncClient) -> None:
    response = await async_client.put(f"{URL}/2024", json={"total_days": 99}, headers=EMPLOYEE_HEADERS)
    assert response.status_code == 403


async def test_http_employee_cannot_read_other_ledger(async_client: AsyncClient) -> None:
    response = await async_client.get(f"/employees/{OTHER_ID}/entitlements", headers=EMPLOYEE_HEADERS)
    assert response.status_code == 403


async def test_http_unknown_employee_is_404(async_client: AsyncClient) -> None:
    response = await async_client.put(
        f"/employees/{uuid.uuid4()}/entitlements/2024", json={"total_days": 20}, headers=ADMIN_HEADERS
    )
    assert response.status_code == 404
    assert response.json()["error"] == "EmployeeNotFoundError"
