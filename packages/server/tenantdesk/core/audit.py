"""Append-only audit trail written in the same session as the change it records."""

from __future__ import annotations

import uuid
from typing import Any, Iterable, Optional

import structlog
from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession

from tenantdesk.models.audit_log import AuditLog

log = structlog.get_logger()


def snapshot(entity: Any, fields: Iterable[str]) -> dict[str, Any]:
    return {name: getattr(entity, name) for name in fields}


def diff(before: dict[str, Any], after: dict[str, Any]) -> dict[str, Any]:
    """Fields whose value changed, as ``{field: {"from": old, "to": new}}``."""
    changes = {}
    for key, new in after.items():
        old = before.get(key)
        if old != new:
            changes[key] = {"from": old, "to": new}
    return jsonable_encoder(changes)


def record(
    session: AsyncSession,
    *,
    org_id: uuid.UUID,
    entity_type: str,
    entity_id: uuid.UUID,
    action: str,
    actor_user_id: Optional[uuid.UUID],
    project_id: Optional[uuid.UUID] = None,
    changes: Optional[dict[str, Any]] = None,
) -> AuditLog:
    entry = AuditLog(
        org_id=org_id,
        project_id=project_id,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        actor_user_id=actor_user_id,
        changes=jsonable_encoder(changes or {}),
    )
    session.add(entry)
    log.debug("audit.recorded", action=action, entity_id=str(entity_id), org_id=str(org_id))
    return entry
