from __future__ import annotations

import enum
import logging
import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from leave_ledger.models.audit import AuditLog

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlmodel import SQLModel

    from leave_ledger.models.enums import AuditAction, AuditEntityType

logger = logging.getLogger(__name__)


def _json_safe(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, list):
        return [_json_safe(v) for v in value]
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    return value


def model_to_audit_dict(model: SQLModel, **extra: Any) -> dict[str, Any]:
    """Serialize a SQLModel instance to a JSON-safe dict for audit logging.

    Keyword arguments are merged in, e.g. the exclusion set of a request.
    """
    data = {key: _json_safe(value) for key, value in model.model_dump().items()}
    data.update({key: _json_safe(value) for key, value in extra.items()})
    return data


async def write_audit_log(
    session: AsyncSession,
    *,
    actor_id: uuid.UUID,
    entity_type: AuditEntityType,
    entity_id: uuid.UUID,
    action: AuditAction,
    before_json: dict[str, Any] | None = None,
    after_json: dict[str, Any] | None = None,
) -> AuditLog:
    """Write an immutable audit log entry within the caller's transaction."""
    entry = AuditLog(
        actor_id=actor_id,
        entity_type=entity_type.value,
        entity_id=entity_id,
        action=action.value,
        before_json=before_json,
        after_json=after_json,
    )
    session.add(entry)
    logger.debug("audit %s %s %s by %s", entity_type.value, action.value, entity_id, actor_id)
    return entry
