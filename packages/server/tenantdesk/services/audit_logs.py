"""Audit log listing for a project."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from tenantdesk.models.audit_log import AuditLog
from tenantdesk.models.project import Project
from tenantdesk.models.user import User
from tenantdesk.services.listing import (
    ListParams,
    date_range,
    narrow,
    order_by,
    paginate,
    search_filter,
)
from tenantdesk_shared.schemas.audit import AuditLogListResponse, AuditLogRead
from tenantdesk_shared.schemas.common import UserSummary

AUDIT_SORT_COLUMNS = {
    "timestamp": AuditLog.timestamp,
    "actor": User.name,
    "action": AuditLog.action,
}


async def list_audit_logs(
    session: AsyncSession,
    project: Project,
    params: ListParams,
    *,
    action: Optional[str] = None,
    actor_id: Optional[uuid.UUID] = None,
    entity_type: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> AuditLogListResponse:
    # Outer join: system entries have no actor.
    stmt = (
        select(AuditLog, User)
        .outerjoin(User, User.id == AuditLog.actor_user_id)
        .where(AuditLog.org_id == project.org_id, AuditLog.project_id == project.id)
    )
    stmt = narrow(
        stmt,
        AuditLog.action == action if action else None,
        AuditLog.actor_user_id == actor_id if actor_id is not None else None,
        AuditLog.entity_type == entity_type if entity_type else None,
        search_filter(params.search, User.name, User.email),
        *date_range(AuditLog.timestamp, start_date, end_date),
    )
    stmt = stmt.order_by(
        *order_by(AUDIT_SORT_COLUMNS, params.sort_by, params.sort_order, "timestamp", AuditLog.id)
    )
    rows, pagination = await paginate(session, stmt, params.page, params.limit)
    return AuditLogListResponse(
        audit_logs=[
            AuditLogRead(
                id=entry.id,
                org_id=entry.org_id,
                project_id=entry.project_id,
                entity_type=entry.entity_type,
                entity_id=entry.entity_id,
                action=entry.action,
                actor_user_id=entry.actor_user_id,
                changes=entry.changes or {},
                timestamp=entry.timestamp,
                actor=UserSummary.model_validate(user) if user else None,
            )
            for entry, user in rows
        ],
        pagination=pagination,
    )
