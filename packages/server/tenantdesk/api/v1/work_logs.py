"""
Work log endpoints for a project.
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
from tenantdesk.services import work_logs as work_log_service
from tenantdesk.services.listing import ListParams, list_params
from tenantdesk_shared.schemas.audit import WorkLogListResponse
from tenantdesk_shared.schemas.tasks import WorkLogCreate, WorkLogRead

router = APIRouter()


@router.get("", response_model=WorkLogListResponse)
async def list_work_logs(
    project_id: uuid.UUID,
    user_id: Optional[uuid.UUID] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    params: ListParams = Depends(list_params),
    ctx: RequestContext = Depends(require_member),
    store: SqlScopeStore = Depends(get_store),
    session: AsyncSession = Depends(get_session),
):
    """Paginated work logs. ``sort_by``: date | duration | user."""
    project = await load_project(store, project_id, ctx.org_id)
    return await work_log_service.list_work_logs(
        session, project, params, user_id=user_id, start_date=start_date, end_date=end_date
    )


@router.post("", response_model=WorkLogRead, status_code=201)
async def create_work_log(
    project_id: uuid.UUID,
    body: WorkLogCreate,
    ctx: RequestContext = Depends(require_member),
    store: SqlScopeStore = Depends(get_store),
    session: AsyncSession = Depends(get_session),
):
    project = await load_project(store, project_id, ctx.org_id)
    return await work_log_service.create_work_log(session, store, ctx, project, body)
