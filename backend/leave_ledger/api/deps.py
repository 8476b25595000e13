# ruff: noqa: B008, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, Header

from leave_ledger.exceptions import ForbiddenError
from leave_ledger.schemas.auth import AuthContext


async def get_auth_context(
    x_user_id: uuid.UUID = Header(),
    x_role: str = Header(default="employee"),
) -> AuthContext:
    """Extract dev auth context from request headers."""
    return AuthContext(user_id=x_user_id, role=x_role)


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]


async def require_admin(
    auth: AuthDep,
) -> AuthContext:
    """Require admin role for the request."""
    if not auth.is_admin:
        msg = "Admin access required"
        raise ForbiddenError(msg)
    return auth


AdminDep = Annotated[AuthContext, Depends(require_admin)]


async def require_self_or_admin(
    employee_id: uuid.UUID,
    auth: AuthDep,
) -> AuthContext:
    """Allow an employee to read their own ledger; admins read anyone's."""
    if not auth.is_admin and auth.user_id != employee_id:
        msg = "Employees may only view their own entitlements"
        raise ForbiddenError(msg)
    return auth


SelfOrAdminDep = Annotated[AuthContext, Depends(require_self_or_admin)]
