from __future__ import annotations

import enum


class LeaveType(enum.StrEnum):
    """Kind of absence an employee requests."""

    ANNUAL = "ANNUAL"
    SICK = "SICK"
    UNPAID = "UNPAID"
    OTHER = "OTHER"

    @property
    def consumes_entitlement(self) -> bool:
        """Whether approved requests of this type are debited from the annual fund."""
        return self is LeaveType.ANNUAL


class RequestStatus(enum.StrEnum):
    """State machine for absence requests.

    PENDING moves exactly once, to APPROVED or REJECTED.
    """

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ExclusionReason(enum.StrEnum):
    """Why a single date inside a request overrides the default classification."""

    # Employee normally works Saturdays, but not this one.
    NON_WORKING_SATURDAY = "NON_WORKING_SATURDAY"
    # Employee normally does not work Saturdays, but this one counts.
    WORKING_SATURDAY = "WORKING_SATURDAY"
    # A normally-working weekday that is not consumed. Requires a justification.
    NON_WORKING_WEEKDAY = "NON_WORKING_WEEKDAY"


class DayKind(enum.StrEnum):
    """Calendar classification of a single date."""

    WEEKDAY = "WEEKDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"


class AuditEntityType(enum.StrEnum):
    """Entity type recorded in the audit log."""

    LEAVE_REQUEST = "LEAVE_REQUEST"
    ENTITLEMENT = "ENTITLEMENT"
    CARRYOVER = "CARRYOVER"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    ADJUST = "ADJUST"
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"
