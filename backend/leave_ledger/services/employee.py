# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import Protocol, runtime_checkable

from pydantic import BaseModel

from leave_ledger.exceptions import EmployeeNotFoundError


class EmployeeInfo(BaseModel):
    """Employee metadata owned by the HR subsystem. Read-only here."""

    id: uuid.UUID
    first_name: str
    last_name: str
    email: str | None = None
    works_saturday: bool = False  # default Saturday classification


@runtime_checkable
class EmployeeService(Protocol):
    """Interface for the Employee Service."""

    async def get_employee(self, employee_id: uuid.UUID) -> EmployeeInfo | None:
        """Fetch employee metadata. Returns None if not found."""
        ...

    async def list_employees(self) -> list[EmployeeInfo]:
        """List all known employees."""
        ...


class InMemoryEmployeeService:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._employees: dict[uuid.UUID, EmployeeInfo] = {}

    def seed(self, employee: EmployeeInfo) -> None:
        """Seed an employee for testing."""
        self._employees[employee.id] = employee

    async def get_employee(self, employee_id: uuid.UUID) -> EmployeeInfo | None:
        """Fetch employee metadata. Returns None if not found."""
        return self._employees.get(employee_id)

    async def list_employees(self) -> list[EmployeeInfo]:
        """List all known employees."""
        return list(self._employees.values())


_employee_service: EmployeeService = InMemoryEmployeeService()


def get_employee_service() -> EmployeeService:
    """FastAPI dependency for the Employee Service."""
    return _employee_service


def set_employee_service(service: EmployeeService) -> None:
    """Override the service (for testing or production wiring)."""
    global _employee_service
    _employee_service = service


async def require_employee(employee_id: uuid.UUID) -> EmployeeInfo:
    """Resolve an employee or raise EmployeeNotFoundError."""
    employee = await get_employee_service().get_employee(employee_id)
    if employee is None:
        msg = f"Employee {employee_id} not found"
        raise EmployeeNotFoundError(msg)
    return employee
