# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, Response, status

from leave_ledger.api.deps import AdminDep, AuthDep
from leave_ledger.db import SessionDep
from leave_ledger.models.enums import LeaveType, RequestStatus
from leave_ledger.schemas.request import (
    CreateLeaveRequestPayload,
    ExcludedDateResponse,
    LeaveRequestListResponse,
    LeaveRequestResponse,
    UpdateLeaveRequestPayload,
)
from leave_ledger.services import request as request_service

requests_router = APIRouter(prefix="/leave-requests", tags=["leave-requests"])


@requests_router.post("", response_model=LeaveRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_request(
    payload: CreateLeaveRequestPayload,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Create a pending absence request."""
    return await request_service.create_request(session, auth, payload)


@requests_router.get("", response_model=LeaveRequestListResponse)
async def list_requests(
    session: SessionDep,
    auth: AuthDep,
    employee_id: uuid.UUID | None = Query(default=None),
    year: int | None = Query(default=None, ge=1900, le=9999),
    status_filter: RequestStatus | None = Query(default=None, alias="status"),
    leave_type: LeaveType | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> LeaveRequestListResponse:
    """List absence requests with optional filters."""
    return await request_service.list_requests(
        session,
        auth,
        employee_id=employee_id,
        year=year,
        status_filter=status_filter,
        leave_type=leave_type,
        offset=offset,
        limit=limit,
    )


@requests_router.get("/{request_id}", response_model=LeaveRequestResponse)
async def get_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Get a single absence request with its excluded dates."""
    return await request_service.get_request(session, auth, request_id)


@requests_router.get("/{request_id}/exclusions", response_model=list[ExcludedDateResponse])
async def get_request_exclusions(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> list[ExcludedDateResponse]:
    return await request_service.get_request_exclusions(session, auth, request_id)


@requests_router.put("/{request_id}", response_model=LeaveRequestResponse)
async def update_request(
    request_id: uuid.UUID,
    payload: UpdateLeaveRequestPayload,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Edit a pending request; days are recomputed and exclusions replaced."""
    return await request_service.update_request(session, auth, request_id, payload)


@requests_router.post("/{request_id}/approve", response_model=LeaveRequestResponse)
async def approve_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AdminDep,
) -> LeaveRequestResponse:
    """Approve a pending request and debit the ledger (admin only)."""
    return await request_service.approve_request(session, auth, request_id)


@requests_router.post("/{request_id}/reject", response_model=LeaveRequestResponse)
async def reject_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AdminDep,
) -> LeaveRequestResponse:
    """Reject a pending request (admin only)."""
    return await request_service.reject_request(session, auth, request_id)


@requests_router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> Response:
    """Delete a request; approved annual leave is credited back to the ledger."""
    await request_service.delete_request(session, auth, request_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
