"""
Team endpoints. Reads are open to any member; changes need ADMIN or MAINTAINER.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tenantdesk.core.database import get_session
from tenantdesk.core.guard import RequestContext, get_store, require_elevated, require_member
from tenantdesk.core.scoping import load_team
from tenantdesk.core.store import SqlScopeStore
from tenantdesk.services import teams as team_service
from tenantdesk.services.listing import ListParams, list_params
from tenantdesk_shared.schemas.teams import (
    TeamCreate,
    TeamListResponse,
    TeamMemberAdd,
    TeamMemberListResponse,
    TeamMemberRead,
    TeamRead,
    TeamUpdate,
)

router = APIRouter()


# ---------------------------------------------------------------------------
# Teams
# ---------------------------------------------------------------------------


@router.get("", response_model=TeamListResponse)
async def list_teams(
    ctx: RequestContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    return TeamListResponse(teams=await team_service.list_teams(session, ctx.org_id))


@router.post("", response_model=TeamRead, status_code=201)
async def create_team(
    body: TeamCreate,
    ctx: RequestContext = Depends(require_elevated),
    session: AsyncSession = Depends(get_session),
):
    team = await team_service.create_team(session, ctx.org_id, body, ctx.user_id)
    return await team_service.team_read(session, team)


@router.get("/{team_id}", response_model=TeamRead)
async def get_team(
    team_id: uuid.UUID,
    ctx: RequestContext = Depends(require_member),
    store: SqlScopeStore = Depends(get_store),
    session: AsyncSession = Depends(get_session),
):
    team = await load_team(store, team_id, ctx.org_id)
    return await team_service.team_read(session, team)


@router.patch("/{team_id}", response_model=TeamRead)
async def update_team(
    team_id: uuid.UUID,
    body: TeamUpdate,
    ctx: RequestContext = Depends(require_elevated),
    store: SqlScopeStore = Depends(get_store),
    session: AsyncSession = Depends(get_session),
):
    team = await load_team(store, team_id, ctx.org_id)
    team = await team_service.update_team(session, team, body)
    return await team_service.team_read(session, team)


@router.delete("/{team_id}", status_code=204)
async def delete_team(
    team_id: uuid.UUID,
    ctx: RequestContext = Depends(require_elevated),
    store: SqlScopeStore = Depends(get_store),
    session: AsyncSession = Depends(get_session),
):
    team = await load_team(store, team_id, ctx.org_id)
    await team_service.delete_team(session, team)


# ---------------------------------------------------------------------------
# Team members
# ---------------------------------------------------------------------------


@router.get("/{team_id}/members", response_model=TeamMemberListResponse)
async def list_team_members(
    team_id: uuid.UUID,
    params: ListParams = Depends(list_params),
    ctx: RequestContext = Depends(require_member),
    store: SqlScopeStore = Depends(get_store),
    session: AsyncSession = Depends(get_session),
):
    team = await load_team(store, team_id, ctx.org_id)
    return await team_service.list_team_members(session, team, params)


@router.post("/{team_id}/members", response_model=TeamMemberRead, status_code=201)
async def add_team_member(
    team_id: uuid.UUID,
    body: TeamMemberAdd,
    ctx: RequestContext = Depends(require_elevated),
    store: SqlScopeStore = Depends(get_store),
    session: AsyncSession = Depends(get_session),
):
    team = await load_team(store, team_id, ctx.org_id)
    return await team_service.add_team_member(session, team, body)


@router.delete("/{team_id}/members/{user_id}", status_code=204)
async def remove_team_member(
    team_id: uuid.UUID,
    user_id: uuid.UUID,
    ctx: RequestContext = Depends(require_elevated),
    store: SqlScopeStore = Depends(get_store),
    session: AsyncSession = Depends(get_session),
):
    team = await load_team(store, team_id, ctx.org_id)
    await team_service.remove_team_member(session, team, user_id)
