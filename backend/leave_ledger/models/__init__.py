from sqlmodel import SQLModel

from leave_ledger.models.audit import AuditLog
from leave_ledger.models.base import TimestampMixin, UpdatedAtMixin, UUIDBase
from leave_ledger.models.carryover import LeaveCarryover
from leave_ledger.models.entitlement import LeaveEntitlement
from leave_ledger.models.enums import (
    AuditAction,
    AuditEntityType,
    DayKind,
    ExclusionReason,
    LeaveType,
    RequestStatus,
)
from leave_ledger.models.excluded_date import LeaveRequestExcludedDate
from leave_ledger.models.request import LeaveRequest

__all__ = [
    "AuditAction",
    "AuditEntityType",
    "AuditLog",
    "DayKind",
    "ExclusionReason",
    "LeaveCarryover",
    "LeaveEntitlement",
    "LeaveRequest",
    "LeaveRequestExcludedDate",
    "LeaveType",
    "RequestStatus",
    "SQLModel",
    "TimestampMixin",
    "UUIDBase",
    "UpdatedAtMixin",
]
