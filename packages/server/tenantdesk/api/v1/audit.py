"""
Audit trail endpoint for a project.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tenantdesk.core.database import get_session
from tenantdesk.core.guard import RequestContext, get_store, require_member
from tenantdesk.core.scoping import load_project
from tenantdesk.core.store import SqlScopeStore
from tenantdesk.services import audit_logs as audit_log_service
from tenantdesk.services.listing import ListParams, list_params
from tenantdesk_shared.schemas.audit import AuditLogListResponse

router = APIRouter()


@router.get("", response_model=AuditLogListResponse)
async def list_audit_logs(
    project_id: uuid.UUID,
    action: Optional[str] = None,
    actor_id: Optional[uuid.UUID] = None,
    entity_type: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    params: ListParams = Depends(list_params),
    ctx: RequestContext = Depends(require_member),
    store: SqlScopeStore = Depends(get_store),
    session: AsyncSession = Depends(get_session),
):
    """Paginated audit entries. ``sort_by``: timestamp | actor | action."""
    project = await load_project(store, project_id, ctx.org_id)
    return await audit_log_service.list_audit_logs(
        session,
        project,
        params,
        action=action,
        actor_id=actor_id,
        entity_type=entity_type,
        start_date=start_date,
        end_date=end_date,
    )
