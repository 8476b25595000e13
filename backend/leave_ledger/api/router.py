from fastapi import APIRouter

from leave_ledger.api.absences import absences_router
from leave_ledger.api.entitlements import carryover_router, employee_entitlements_router
from leave_ledger.api.requests import requests_router
from leave_ledger.api.working_days import working_days_router

api_router = APIRouter()
api_router.include_router(working_days_router)
api_router.include_router(requests_router)
api_router.include_router(employee_entitlements_router)
api_router.include_router(carryover_router)
api_router.include_router(absences_router)
