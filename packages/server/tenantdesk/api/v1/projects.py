"""
Project endpoints: hierarchical CRUD, team links, transactions.

- Listing returns direct children of ``?parent=``, or top-level projects
- Project codes are unique per org
- Detail carries children, teams, latest transactions and cost roll-ups
- Deleting a project removes its sub-projects and everything they own
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tenantdesk.core.database import get_session
from tenantdesk.core.guard import (
    RequestContext,
    get_store,
    require_admin,
    require_elevated,
    require_member,
)
from tenantdesk.core.scoping import load_project
from tenantdesk.core.store import SqlScopeStore
from tenantdesk.services import projects as project_service
from tenantdesk.services import transactions as transaction_service
from tenantdesk_shared.schemas.projects import (
    ProjectCreate,
    ProjectDetail,
    ProjectListResponse,
    ProjectRead,
    ProjectUpdate,
    TeamAssign,
    TeamBrief,
    TransactionCreate,
    TransactionListResponse,
    TransactionRead,
)

router = APIRouter()


# ---------------------------------------------------------------------------
# Project CRUD
# ---------------------------------------------------------------------------


@router.get("", response_model=ProjectListResponse)
async def list_projects(
    parent: Optional[uuid.UUID] = Query(None, description="List children of this project"),
    ctx: RequestContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    projects = await project_service.list_projects(session, ctx.org_id, parent)
    return ProjectListResponse(projects=projects)


@router.post("", response_model=ProjectRead, status_code=201)
async def create_project(
    body: ProjectCreate,
    ctx: RequestContext = Depends(require_member),
    store: SqlScopeStore = Depends(get_store),
    session: AsyncSession = Depends(get_session),
):
    """Create a project. A parent, when given, must belong to the same org."""
    project = await project_service.create_project(session, store, ctx, body)
    return await project_service.project_read(session, project)


@router.get("/{project_id}", response_model=ProjectDetail)
async def get_project(
    project_id: uuid.UUID,
    ctx: RequestContext = Depends(require_member),
    store: SqlScopeStore = Depends(get_store),
    session: AsyncSession = Depends(get_session),
):
    project = await load_project(store, project_id, ctx.org_id)
    return await project_service.project_detail(session, project)


@router.patch("/{project_id}", response_model=ProjectRead)
async def update_project(
    project_id: uuid.UUID,
    body: ProjectUpdate,
    ctx: RequestContext = Depends(require_member),
    store: SqlScopeStore = Depends(get_store),
    session: AsyncSession = Depends(get_session),
):
    project = await load_project(store, project_id, ctx.org_id)
    project = await project_service.update_project(session, ctx, project, body)
    return await project_service.project_read(session, project)


@router.delete("/{project_id}", status_code=204)
async def delete_project(
    project_id: uuid.UUID,
    ctx: RequestContext = Depends(require_admin),
    store: SqlScopeStore = Depends(get_store),
    session: AsyncSession = Depends(get_session),
):
    project = await load_project(store, project_id, ctx.org_id)
    await project_service.delete_project(session, ctx, project)


# ---------------------------------------------------------------------------
# Team links
# ---------------------------------------------------------------------------


@router.get("/{project_id}/teams", response_model=list[TeamBrief])
async def list_project_teams(
    project_id: uuid.UUID,
    ctx: RequestContext = Depends(require_member),
    store: SqlScopeStore = Depends(get_store),
    session: AsyncSession = Depends(get_session),
):
    project = await load_project(store, project_id, ctx.org_id)
    return await project_service.list_project_teams(session, project)


@router.post("/{project_id}/teams", response_model=TeamBrief, status_code=201)
async def link_team(
    project_id: uuid.UUID,
    body: TeamAssign,
    ctx: RequestContext = Depends(require_elevated),
    store: SqlScopeStore = Depends(get_store),
    session: AsyncSession = Depends(get_session),
):
    project = await load_project(store, project_id, ctx.org_id)
    return await project_service.link_team(session, store, ctx, project, body.team_id)


@router.delete("/{project_id}/teams/{team_id}", status_code=204)
async def unlink_team(
    project_id: uuid.UUID,
    team_id: uuid.UUID,
    ctx: RequestContext = Depends(require_elevated),
    store: SqlScopeStore = Depends(get_store),
    session: AsyncSession = Depends(get_session),
):
    project = await load_project(store, project_id, ctx.org_id)
    await project_service.unlink_team(session, ctx, project, team_id)


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


@router.get("/{project_id}/transactions", response_model=TransactionListResponse)
async def list_transactions(
    project_id: uuid.UUID,
    ctx: RequestContext = Depends(require_member),
    store: SqlScopeStore = Depends(get_store),
    session: AsyncSession = Depends(get_session),
):
    project = await load_project(store, project_id, ctx.org_id)
    transactions = await transaction_service.list_transactions(session, project)
    return TransactionListResponse(transactions=transactions)


@router.post("/{project_id}/transactions", response_model=TransactionRead, status_code=201)
async def create_transaction(
    project_id: uuid.UUID,
    body: TransactionCreate,
    ctx: RequestContext = Depends(require_elevated),
    store: SqlScopeStore = Depends(get_store),
    session: AsyncSession = Depends(get_session),
):
    project = await load_project(store, project_id, ctx.org_id)
    tx = await transaction_service.create_transaction(session, store, ctx, project, body)
    return TransactionRead.model_validate(tx)
