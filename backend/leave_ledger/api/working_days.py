# ruff: noqa: TC001
from __future__ import annotations

from fastapi import APIRouter

from leave_ledger.api.deps import AuthDep
from leave_ledger.schemas.working_days import WorkingDaysPreviewPayload, WorkingDaysPreviewResponse
from leave_ledger.services import request as request_service

working_days_router = APIRouter(prefix="/working-days", tags=["working-days"])


@working_days_router.post("/preview", response_model=WorkingDaysPreviewResponse)
async def preview_working_days(
    payload: WorkingDaysPreviewPayload,
    auth: AuthDep,
) -> WorkingDaysPreviewResponse:
    """Count the days a range would consume, with per-date classification."""
    return await request_service.preview_working_days(auth, payload)
