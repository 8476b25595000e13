# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlmodel import col

from leave_ledger.exceptions import (
    ForbiddenError,
    InsufficientBalanceError,
    InvalidTransitionError,
    RequestNotFoundError,
    ValidationFailedError,
)
from leave_ledger.models.base import now_utc
from leave_ledger.models.enums import AuditAction, AuditEntityType, ExclusionReason, LeaveType, RequestStatus
from leave_ledger.models.request import LeaveRequest
from leave_ledger.schemas.request import ExcludedDateResponse, LeaveRequestListResponse, LeaveRequestResponse
from leave_ledger.schemas.working_days import DayClassificationResponse, WorkingDaysPreviewResponse
from leave_ledger.services import carryover
from leave_ledger.services import entitlement as ledger
from leave_ledger.services.audit import model_to_audit_dict, write_audit_log
from leave_ledger.services.employee import require_employee
from leave_ledger.services.exclusion import (
    delete_exclusions,
    list_exclusions,
    replace_exclusions,
    validate_exclusions,
)
from leave_ledger.services.working_days import (
    classify_days,
    count_working_days,
    saturdays_in_range,
    weekdays_in_range,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_ledger.models.excluded_date import LeaveRequestExcludedDate
    from leave_ledger.schemas.auth import AuthContext
    from leave_ledger.schemas.request import CreateLeaveRequestPayload, UpdateLeaveRequestPayload
    from leave_ledger.schemas.working_days import WorkingDaysPreviewPayload

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_request_response(
    request: LeaveRequest,
    exclusions: list[LeaveRequestExcludedDate],
) -> LeaveRequestResponse:
    """Map a request model and its exclusions to the response schema."""
    return LeaveRequestResponse(
        id=request.id,
        employee_id=request.employee_id,
        start_date=request.start_date,
        end_date=request.end_date,
        days_requested=request.days_requested,
        leave_type=LeaveType(request.leave_type),
        reason=request.reason,
        status=RequestStatus(request.status),
        approved_at=request.approved_at,
        approved_by=request.approved_by,
        decided_at=request.decided_at,
        exclusions=[ExcludedDateResponse(date=e.date, reason=ExclusionReason(e.reason)) for e in exclusions],
        created_at=request.created_at,
        updated_at=request.updated_at,
    )


def _audit_snapshot(request: LeaveRequest, exclusions: dict[date, ExclusionReason]) -> dict[str, object]:
    return model_to_audit_dict(
        request,
        exclusions=[{"date": d, "reason": r} for d, r in sorted(exclusions.items())],
    )


async def _get_request_or_404(
    session: AsyncSession,
    request_id: uuid.UUID,
    *,
    for_update: bool = False,
) -> LeaveRequest:
    """Fetch a request by ID. Raises 404 if not found."""
    query = select(LeaveRequest).where(col(LeaveRequest.id) == request_id)
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    request = result.scalar_one_or_none()
    if request is None:
        msg = f"Leave request {request_id} not found"
        raise RequestNotFoundError(msg)
    return request


def _ensure_can_act_for(auth: AuthContext, employee_id: uuid.UUID) -> None:
    """Employees act on their own requests only; admins act on anyone's."""
    if not auth.is_admin and auth.user_id != employee_id:
        msg = "Employees may only manage their own leave requests"
        raise ForbiddenError(msg)


def _ensure_pending(request: LeaveRequest, action: str) -> None:
    if request.status != RequestStatus.PENDING.value:
        msg = f"Request is {request.status.lower()}; only pending requests can be {action}"
        raise InvalidTransitionError(msg)


async def _calculate_days(
    employee_id: uuid.UUID,
    start_date: date,
    end_date: date,
    exclusions: dict[date, ExclusionReason],
) -> int:
    """Count consumed days with the employee's current Saturday policy."""
    employee = await require_employee(employee_id)
    days = count_working_days(start_date, end_date, employee.works_saturday, exclusions)
    if days <= 0:
        msg = "Request covers no working days after applying the Saturday policy and exclusions"
        raise ValidationFailedError(msg)
    return days


async def _enforce_balance(
    session: AsyncSession,
    auth: AuthContext,
    employee_id: uuid.UUID,
    leave_type: LeaveType,
    start_date: date,
    days: int,
    admin_override: bool,
) -> None:
    """Reject requests that exceed the remaining balance of the start year.

    Only leave types that consume the annual fund are checked. Admins may
    pass ``admin_override`` to record a request beyond the balance.
    """
    if not leave_type.consumes_entitlement:
        return

    year = start_date.year
    if admin_override:
        if not auth.is_admin:
            msg = "Only administrators may override the balance check"
            raise ForbiddenError(msg)
        logger.warning("Balance check overridden by admin=%s for employee=%s year=%d", auth.user_id, employee_id, year)
        return

    remaining = await ledger.available_balance(session, employee_id, year)
    if remaining <= 0:
        msg = f"No remaining balance for {year}"
        raise InsufficientBalanceError(msg)
    if days > remaining:
        msg = f"Request needs {days} day(s) but only {remaining} remain for {year}"
        raise InsufficientBalanceError(msg)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def preview_working_days(
    auth: AuthContext,
    payload: WorkingDaysPreviewPayload,
) -> WorkingDaysPreviewResponse:
    """Classify a range the way create_request would, without writing anything.

    The justification rule is not applied here since no reason is known yet.
    """
    _ensure_can_act_for(auth, payload.employee_id)
    employee = await require_employee(payload.employee_id)
    exclusions = validate_exclusions(
        payload.start_date, payload.end_date, payload.exclusions, None, require_justification=False
    )
    classification = classify_days(payload.start_date, payload.end_date, employee.works_saturday, exclusions)

    return WorkingDaysPreviewResponse(
        employee_id=employee.id,
        works_saturday=employee.works_saturday,
        start_date=payload.start_date,
        end_date=payload.end_date,
        days=count_working_days(payload.start_date, payload.end_date, employee.works_saturday, exclusions),
        saturdays=saturdays_in_range(payload.start_date, payload.end_date),
        weekdays=weekdays_in_range(payload.start_date, payload.end_date),
        classification=[
            DayClassificationResponse(
                date=day.date,
                kind=day.kind,
                counted=day.counted,
                applied_exclusion=day.applied_exclusion,
            )
            for day in classification
        ],
    )


async def create_request(
    session: AsyncSession,
    auth: AuthContext,
    payload: CreateLeaveRequestPayload,
) -> LeaveRequestResponse:
    """Create a pending absence request.

    Flow:
    1. Authorize (employees file for themselves only)
    2. Validate exclusions and the weekday justification rule
    3. Calculate days_requested (employee policy + exclusions)
    4. Enforce the remaining balance (annual leave only)
    5. Persist request + exclusions
    6. Audit log
    7. Commit
    """
    _ensure_can_act_for(auth, payload.employee_id)

    exclusions = validate_exclusions(payload.start_date, payload.end_date, payload.exclusions, payload.reason)
    days = await _calculate_days(payload.employee_id, payload.start_date, payload.end_date, exclusions)
    await _enforce_balance(
        session,
        auth,
        payload.employee_id,
        payload.leave_type,
        payload.start_date,
        days,
        payload.admin_override,
    )

    leave_request = LeaveRequest(
        employee_id=payload.employee_id,
        start_date=payload.start_date,
        end_date=payload.end_date,
        days_requested=days,
        leave_type=payload.leave_type.value,
        reason=payload.reason,
        status=RequestStatus.PENDING.value,
    )
    session.add(leave_request)
    await session.flush()

    rows = await replace_exclusions(session, leave_request.id, exclusions)

    await write_audit_log(
        session,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.LEAVE_REQUEST,
        entity_id=leave_request.id,
        action=AuditAction.CREATE,
        after_json=_audit_snapshot(leave_request, exclusions),
    )

    await session.commit()
    await session.refresh(leave_request)
    logger.info(
        "Created leave request %s employee=%s %s..%s days=%d",
        leave_request.id,
        leave_request.employee_id,
        leave_request.start_date,
        leave_request.end_date,
        days,
    )
    return _build_request_response(leave_request, rows)


async def update_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    payload: UpdateLeaveRequestPayload,
) -> LeaveRequestResponse:
    """Edit a pending request. Dates, type, reason and exclusions are replaced wholesale."""
    leave_request = await _get_request_or_404(session, request_id, for_update=True)
    _ensure_can_act_for(auth, leave_request.employee_id)
    _ensure_pending(leave_request, "edited")

    exclusions = validate_exclusions(payload.start_date, payload.end_date, payload.exclusions, payload.reason)
    days = await _calculate_days(leave_request.employee_id, payload.start_date, payload.end_date, exclusions)
    await _enforce_balance(
        session,
        auth,
        leave_request.employee_id,
        payload.leave_type,
        payload.start_date,
        days,
        payload.admin_override,
    )

    previous = {e.date: ExclusionReason(e.reason) for e in await list_exclusions(session, request_id)}
    before_dict = _audit_snapshot(leave_request, previous)

    leave_request.start_date = payload.start_date
    leave_request.end_date = payload.end_date
    leave_request.days_requested = days
    leave_request.leave_type = payload.leave_type.value
    leave_request.reason = payload.reason
    await session.flush()

    rows = await replace_exclusions(session, leave_request.id, exclusions)

    await write_audit_log(
        session,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.LEAVE_REQUEST,
        entity_id=leave_request.id,
        action=AuditAction.UPDATE,
        before_json=before_dict,
        after_json=_audit_snapshot(leave_request, exclusions),
    )

    await session.commit()
    await session.refresh(leave_request)
    return _build_request_response(leave_request, rows)


async def approve_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
) -> LeaveRequestResponse:
    """Approve a pending request and debit the ledger in one transaction.

    1. Lock the request (must be PENDING).
    2. Debit year(start_date) by days_requested; this locks the entitlement
       row so approvals for the same employee/year serialize.
    3. Flip status, stamp approved_at/approved_by.
    4. Audit log.
    5. Commit. Any failure rolls back both writes.
    """
    try:
        leave_request = await _get_request_or_404(session, request_id, for_update=True)
        _ensure_pending(leave_request, "approved")

        before_dict = model_to_audit_dict(leave_request)
        leave_type = LeaveType(leave_request.leave_type)
        year = leave_request.start_date.year

        if leave_type.consumes_entitlement:
            await ledger.debit(session, auth.user_id, leave_request.employee_id, year, leave_request.days_requested)

        now = now_utc()
        leave_request.status = RequestStatus.APPROVED.value
        leave_request.approved_at = now
        leave_request.approved_by = auth.user_id
        leave_request.decided_at = now
        await session.flush()

        await write_audit_log(
            session,
            actor_id=auth.user_id,
            entity_type=AuditEntityType.LEAVE_REQUEST,
            entity_id=leave_request.id,
            action=AuditAction.APPROVE,
            before_json=before_dict,
            after_json=model_to_audit_dict(leave_request),
        )

        await session.commit()
    except Exception:
        await session.rollback()
        raise

    await session.refresh(leave_request)
    logger.info("Approved leave request %s (%d day(s), year %d)", leave_request.id, leave_request.days_requested, year)
    return _build_request_response(leave_request, await list_exclusions(session, leave_request.id))


async def reject_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
) -> LeaveRequestResponse:
    """Reject a pending request. No ledger effect."""
    leave_request = await _get_request_or_404(session, request_id, for_update=True)
    _ensure_pending(leave_request, "rejected")

    before_dict = model_to_audit_dict(leave_request)
    leave_request.status = RequestStatus.REJECTED.value
    leave_request.decided_at = now_utc()
    await session.flush()

    await write_audit_log(
        session,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.LEAVE_REQUEST,
        entity_id=leave_request.id,
        action=AuditAction.REJECT,
        before_json=before_dict,
        after_json=model_to_audit_dict(leave_request),
    )

    await session.commit()
    await session.refresh(leave_request)
    logger.info("Rejected leave request %s", leave_request.id)
    return _build_request_response(leave_request, await list_exclusions(session, leave_request.id))


async def delete_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
) -> None:
    """Delete a request and its exclusions.

    Deleting an approved request credits its days back to the ledger in the
    same transaction. If that year was already carried out of, the credited
    days are forwarded to the carry-over target as well. Employees may delete
    only their own pending requests.
    """
    try:
        leave_request = await _get_request_or_404(session, request_id, for_update=True)
        _ensure_can_act_for(auth, leave_request.employee_id)
        if not auth.is_admin:
            _ensure_pending(leave_request, "withdrawn by the employee")

        exclusions = {e.date: ExclusionReason(e.reason) for e in await list_exclusions(session, request_id)}
        before_dict = _audit_snapshot(leave_request, exclusions)

        if (
            leave_request.status == RequestStatus.APPROVED.value
            and LeaveType(leave_request.leave_type).consumes_entitlement
        ):
            await ledger.credit(
                session,
                auth.user_id,
                leave_request.employee_id,
                leave_request.start_date.year,
                leave_request.days_requested,
            )
            await carryover.forward_credit(
                session,
                auth.user_id,
                leave_request.employee_id,
                leave_request.start_date.year,
                leave_request.days_requested,
            )

        await delete_exclusions(session, request_id)
        await session.delete(leave_request)
        await session.flush()

        await write_audit_log(
            session,
            actor_id=auth.user_id,
            entity_type=AuditEntityType.LEAVE_REQUEST,
            entity_id=request_id,
            action=AuditAction.DELETE,
            before_json=before_dict,
        )

        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info("Deleted leave request %s", request_id)


async def get_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
) -> LeaveRequestResponse:
    """Get a single request by ID."""
    leave_request = await _get_request_or_404(session, request_id)
    _ensure_can_act_for(auth, leave_request.employee_id)
    return _build_request_response(leave_request, await list_exclusions(session, request_id))


async def list_requests(
    session: AsyncSession,
    auth: AuthContext,
    *,
    employee_id: uuid.UUID | None = None,
    year: int | None = None,
    status_filter: RequestStatus | None = None,
    leave_type: LeaveType | None = None,
    offset: int = 0,
    limit: int = 50,
) -> LeaveRequestListResponse:
    """List requests with optional filters, newest start date first.

    ``year`` matches on the start date. Employees only see their own requests.
    """
    if not auth.is_admin:
        if employee_id is not None and employee_id != auth.user_id:
            msg = "Employees may only list their own leave requests"
            raise ForbiddenError(msg)
        employee_id = auth.user_id

    filters = []
    if employee_id is not None:
        filters.append(col(LeaveRequest.employee_id) == employee_id)
    if year is not None:
        filters.append(col(LeaveRequest.start_date) >= date(year, 1, 1))
        filters.append(col(LeaveRequest.start_date) <= date(year, 12, 31))
    if status_filter is not None:
        filters.append(col(LeaveRequest.status) == status_filter.value)
    if leave_type is not None:
        filters.append(col(LeaveRequest.leave_type) == leave_type.value)

    count_result = await session.execute(select(func.count()).select_from(LeaveRequest).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(LeaveRequest)
        .where(*filters)
        .order_by(col(LeaveRequest.start_date).desc(), col(LeaveRequest.created_at).desc())
        .offset(offset)
        .limit(limit)
    )
    requests = list(result.scalars().all())

    items = [_build_request_response(r, await list_exclusions(session, r.id)) for r in requests]
    return LeaveRequestListResponse(items=items, total=total)


async def get_request_exclusions(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
) -> list[ExcludedDateResponse]:
    """The per-date overrides of one request, ordered by date."""
    leave_request = await _get_request_or_404(session, request_id)
    _ensure_can_act_for(auth, leave_request.employee_id)
    return [
        ExcludedDateResponse(date=e.date, reason=ExclusionReason(e.reason))
        for e in await list_exclusions(session, request_id)
    ]
