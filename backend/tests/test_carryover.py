"""Carry-over of unused days into a later year.

The key property is idempotency: repeating a carry-over must not add the
remaining balance to the destination a second time.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import func, select

from leave_ledger.exceptions import EntitlementNotFoundError, InvalidRangeError, NothingToCarryOverError
from leave_ledger.models.carryover import LeaveCarryover
from leave_ledger.schemas.auth import AuthContext
from leave_ledger.services import carryover as carryover_service
from leave_ledger.services import entitlement as ledger
from leave_ledger.services.employee import EmployeeInfo

if TYPE_CHECKING:
    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_ledger.services.employee import InMemoryEmployeeService

ADMIN_ID = uuid.uuid4()
EMPLOYEE_ID = uuid.uuid4()
SECOND_ID = uuid.uuid4()
ADMIN = AuthContext(user_id=ADMIN_ID, role="admin")

ADMIN_HEADERS = {"X-User-Id": str(ADMIN_ID), "X-Role": "admin"}
EMPLOYEE_HEADERS = {"X-User-Id": str(EMPLOYEE_ID), "X-Role": "employee"}


@pytest.fixture(autouse=True)
def _seed(employee_service: InMemoryEmployeeService) -> None:
    employee_service.seed(EmployeeInfo(id=EMPLOYEE_ID, first_name="Ana", last_name="Nowak"))
    employee_service.seed(EmployeeInfo(id=SECOND_ID, first_name="Jan", last_name="Kowal"))


async def _setup_year(session: AsyncSession, employee_id: uuid.UUID, year: int, used: int) -> None:
    await ledger.get_or_init_entitlement(session, employee_id, year)
    if used:
        await ledger.debit(session, ADMIN_ID, employee_id, year, used)
    await session.commit()


async def _marker_count(session: AsyncSession) -> int:
    result = await session.execute(select(func.count()).select_from(LeaveCarryover))
    return result.scalar_one()


# ---------------------------------------------------------------------------
# Single employee
# ---------------------------------------------------------------------------


async def test_carry_over_moves_remaining_balance(db_session: AsyncSession) -> None:
    await _setup_year(db_session, EMPLOYEE_ID, 2023, used=15)

    response = await carryover_service.carry_over(db_session, ADMIN, EMPLOYEE_ID, 2023, 2024)

    assert response.days == 5
    assert response.already_applied is False
    assert response.destination.year == 2024
    assert response.destination.carried_over_days == 5
    assert response.destination.balance == 25


async def test_repeated_carry_over_is_idempotent(db_session: AsyncSession) -> None:
    await _setup_year(db_session, EMPLOYEE_ID, 2023, used=15)

    first = await carryover_service.carry_over(db_session, ADMIN, EMPLOYEE_ID, 2023, 2024)
    second = await carryover_service.carry_over(db_session, ADMIN, EMPLOYEE_ID, 2023, 2024)

    assert first.destination.carried_over_days == 5
    assert second.already_applied is True
    assert second.days == 5
    assert second.destination.carried_over_days == 5

    row = await ledger.find_entitlement(db_session, EMPLOYEE_ID, 2024)
    assert row is not None
    assert row.carried_over_days == 5
    assert await _marker_count(db_session) == 1


async def test_carry_over_adds_to_existing_destination(db_session: AsyncSession) -> None:
    await _setup_year(db_session, EMPLOYEE_ID, 2023, used=18)
    await _setup_year(db_session, EMPLOYEE_ID, 2024, used=4)

    response = await carryover_service.carry_over(db_session, ADMIN, EMPLOYEE_ID, 2023, 2024)

    assert response.destination.carried_over_days == 2
    assert response.destination.used_days == 4
    assert response.destination.balance == 18


async def test_nothing_to_carry(db_session: AsyncSession) -> None:
    await _setup_year(db_session, EMPLOYEE_ID, 2023, used=20)

    with pytest.raises(NothingToCarryOverError, match="No remaining balance for 2023"):
        await carryover_service.carry_over(db_session, ADMIN, EMPLOYEE_ID, 2023, 2024)
    assert await ledger.find_entitlement(db_session, EMPLOYEE_ID, 2024) is None


async def test_negative_balance_is_not_carried(db_session: AsyncSession) -> None:
    await _setup_year(db_session, EMPLOYEE_ID, 2023, used=25)

    with pytest.raises(NothingToCarryOverError):
        await carryover_service.carry_over(db_session, ADMIN, EMPLOYEE_ID, 2023, 2024)


async def test_missing_source_year(db_session: AsyncSession) -> None:
    with pytest.raises(EntitlementNotFoundError):
        await carryover_service.carry_over(db_session, ADMIN, EMPLOYEE_ID, 2023, 2024)


async def test_target_must_be_later(db_session: AsyncSession) -> None:
    await _setup_year(db_session, EMPLOYEE_ID, 2023, used=0)
    with pytest.raises(InvalidRangeError):
        await carryover_service.carry_over(db_session, ADMIN, EMPLOYEE_ID, 2023, 2023)


# ---------------------------------------------------------------------------
# Batch
# ---------------------------------------------------------------------------


async def test_batch_carries_skips_and_is_rerunnable(db_session: AsyncSession) -> None:
    await _setup_year(db_session, EMPLOYEE_ID, 2023, used=10)
    await _setup_year(db_session, SECOND_ID, 2023, used=20)

    first = await carryover_service.run_carryover_batch(db_session, ADMIN, 2023, 2024)
    assert (first.carried, first.already_applied, first.skipped, first.failed) == (1, 0, 1, 0)
    assert first.details[0].employee_id == EMPLOYEE_ID
    assert first.details[0].days == 10

    second = await carryover_service.run_carryover_batch(db_session, ADMIN, 2023, 2024)
    assert (second.carried, second.already_applied, second.skipped) == (0, 1, 1)

    row = await ledger.find_entitlement(db_session, EMPLOYEE_ID, 2024)
    assert row is not None
    assert row.carried_over_days == 10


async def test_batch_isolates_failing_employee(db_session: AsyncSession) -> None:
    await _setup_year(db_session, EMPLOYEE_ID, 2023, used=10)
    await _setup_year(db_session, SECOND_ID, 2023, used=5)
    # Marker without its destination row makes the second employee fail.
    db_session.add(LeaveCarryover(employee_id=SECOND_ID, from_year=2023, to_year=2024, days=3, performed_by=ADMIN_ID))
    await db_session.commit()

    result = await carryover_service.run_carryover_batch(db_session, ADMIN, 2023, 2024)
    assert (result.carried, result.already_applied, result.skipped, result.failed) == (1, 0, 0, 1)
    assert [d.employee_id for d in result.details] == [EMPLOYEE_ID]
    assert result.to_response().failed == 1

    row = await ledger.find_entitlement(db_session, EMPLOYEE_ID, 2024)
    assert row is not None
    assert row.carried_over_days == 10
    assert await ledger.find_entitlement(db_session, SECOND_ID, 2024) is None


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


async def test_http_single_carry_over(async_client: AsyncClient, db_session: AsyncSession) -> None:
    await _setup_year(db_session, EMPLOYEE_ID, 2023, used=12)

    url = f"/employees/{EMPLOYEE_ID}/entitlements/carryover"
    body = {"from_year": 2023, "to_year": 2024}
    first = await async_client.post(url, json=body, headers=ADMIN_HEADERS)
    second = await async_client.post(url, json=body, headers=ADMIN_HEADERS)

    assert first.status_code == 200
    assert first.json()["days"] == 8
    assert second.status_code == 200
    assert second.json()["already_applied"] is True
    assert second.json()["destination"]["carried_over_days"] == 8


async def test_http_nothing_to_carry_is_409(async_client: AsyncClient, db_session: AsyncSession) -> None:
    await _setup_year(db_session, EMPLOYEE_ID, 2023, used=20)
    response = await async_client.post(
        f"/employees/{EMPLOYEE_ID}/entitlements/carryover",
        json={"from_year": 2023, "to_year": 2024},
        headers=ADMIN_HEADERS,
    )
    assert response.status_code == 409
    assert response.json()["error"] == "NothingToCarryOverError"


async def test_http_invalid_years_rejected(async_client: AsyncClient) -> None:
    response = await async_client.post("/carryovers", json={"from_year": 2024, "to_year": 2023}, headers=ADMIN_HEADERS)
    assert response.status_code == 422


async def test_http_batch_admin_only(async_client: AsyncClient) -> None:
    response = await async_client.post(
        "/carryovers", json={"from_year": 2023, "to_year": 2024}, headers=EMPLOYEE_HEADERS
    )
    assert response.status_code == 403


async def test_http_batch(async_client: AsyncClient, db_session: AsyncSession) -> None:
    await _setup_year(db_session, EMPLOYEE_ID, 2023, used=19)
    response = await async_client.post("/carryovers", json={"from_year": 2023, "to_year": 2024}, headers=ADMIN_HEADERS)
    assert response.status_code == 200
    data = response.json()
    assert data["carried"] == 1
    assert data["failed"] == 0
    assert data["details"][0]["days"] == 1
