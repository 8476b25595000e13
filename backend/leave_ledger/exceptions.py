import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    detail: str | None = None
    status_code: int


class AppError(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# Validation failures: rejected before any write.
# ---------------------------------------------------------------------------


class ValidationFailedError(AppError):
    """Input violates a rule of the leave engine."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)


class InvalidRangeError(ValidationFailedError):
    """Start date is after end date, or a year pair is out of order."""


class InvalidExclusionError(ValidationFailedError):
    """An excluded date does not fit the request it belongs to."""


class JustificationRequiredError(ValidationFailedError):
    """A weekday exclusion was submitted without a sufficient reason."""


class InsufficientBalanceError(ValidationFailedError):
    """The request consumes more days than the entitlement has left."""


class ForbiddenError(AppError):
    """The caller may not perform this action."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_403_FORBIDDEN)


# ---------------------------------------------------------------------------
# Missing records.
# ---------------------------------------------------------------------------


class NotFoundError(AppError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND)


class RequestNotFoundError(NotFoundError):
    pass


class EmployeeNotFoundError(NotFoundError):
    pass


class EntitlementNotFoundError(NotFoundError):
    pass


# ---------------------------------------------------------------------------
# Conflicts: the operation is well-formed but the current state refuses it.
# ---------------------------------------------------------------------------


class ConflictError(AppError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_409_CONFLICT)


class InvalidTransitionError(ConflictError):
    """The request is not in a state that allows the transition."""


class NothingToCarryOverError(ConflictError):
    """The source year has no remaining balance."""


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    else:
        logger.warning("Rejected %s %s: %s: %s", request.method, request.url.path, type(exc).__name__, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=type(exc).__name__,
            detail=exc.message,
            status_code=exc.status_code,
        ).model_dump(),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="ValidationError",
            detail=str(exc.errors()),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        ).model_dump(),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
