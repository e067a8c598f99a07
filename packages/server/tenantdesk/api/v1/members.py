"""
Org member endpoints: listing, lookup, invites, role changes, removal.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tenantdesk.core.database import get_session
from tenantdesk.core.guard import RequestContext, require_admin, require_elevated, require_member
from tenantdesk.services import members as member_service
from tenantdesk.services.listing import ListParams, list_params
from tenantdesk_shared.schemas.users import (
    MemberInviteRequest,
    MemberInviteResponse,
    MemberListResponse,
    MemberResponse,
    MemberSearchRequest,
    MemberSearchResponse,
    MemberUpdateRequest,
)

router = APIRouter()


@router.get("", response_model=MemberListResponse)
async def list_members(
    params: ListParams = Depends(list_params),
    ctx: RequestContext = Depends(require_elevated),
    session: AsyncSession = Depends(get_session),
):
    """Paginated members. ``sort_by``: joined_at | name | role."""
    return await member_service.list_members(session, ctx.org_id, params)


@router.post("/search", response_model=MemberSearchResponse)
async def search_member(
    body: MemberSearchRequest,
    ctx: RequestContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    return await member_service.search_member(session, ctx.org_id, str(body.email))


@router.post("/invite", response_model=MemberInviteResponse, status_code=201)
async def invite_member(
    body: MemberInviteRequest,
    ctx: RequestContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    return await member_service.invite_member(session, ctx.org_id, body, ctx.user_id)


@router.patch("/{user_id}", response_model=MemberResponse)
async def update_member(
    user_id: uuid.UUID,
    body: MemberUpdateRequest,
    ctx: RequestContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    return await member_service.update_member_role(session, ctx.org_id, user_id, body.role)


@router.delete("/{user_id}", status_code=204)
async def remove_member(
    user_id: uuid.UUID,
    ctx: RequestContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    await member_service.remove_member(session, ctx.org_id, user_id)
