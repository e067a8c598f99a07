"""
Organization API endpoints.

GET    /api/v1/orgs                          List orgs for the caller
POST   /api/v1/orgs                          Create an org (caller becomes ADMIN)
POST   /api/v1/invites/{token}/accept        Accept an invite addressed to the caller
GET    /api/v1/orgs/{org_id}                 Org details, counts, top-level projects
PATCH  /api/v1/orgs/{org_id}                 Update org (ADMIN)
DELETE /api/v1/orgs/{org_id}                 Delete org and everything it owns (ADMIN)
GET    /api/v1/orgs/{org_id}/role            Caller's role in the org
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tenantdesk.core.auth import get_identity
from tenantdesk.core.database import get_session
from tenantdesk.core.guard import RequestContext, require_admin, require_member
from tenantdesk.models.user import User
from tenantdesk.services import members as member_service
from tenantdesk.services import organizations as org_service
from tenantdesk_shared.schemas.common import Role
from tenantdesk_shared.schemas.organizations import (
    OrgCreateRequest,
    OrgDetailResponse,
    OrgListItem,
    OrgListResponse,
    OrgResponse,
    OrgUpdateRequest,
    RoleResponse,
)
from tenantdesk_shared.schemas.users import MemberResponse

log = structlog.get_logger()

# ---------------------------------------------------------------------------
# Non-org-scoped routes (no org_id in path)
# ---------------------------------------------------------------------------
router_global = APIRouter()


@router_global.get("/orgs", response_model=OrgListResponse, tags=["Organizations"])
async def list_orgs(
    user_id: uuid.UUID = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    """List orgs the authenticated user belongs to."""
    return OrgListResponse(data=await org_service.list_user_orgs(session, user_id))


@router_global.post("/orgs", response_model=OrgListItem, status_code=201, tags=["Organizations"])
async def create_org(
    body: OrgCreateRequest,
    user_id: uuid.UUID = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    """Create a new organization. The creator becomes its ADMIN."""
    org, _membership = await org_service.create_org(session, body, user_id)
    return OrgListItem(
        **OrgResponse.model_validate(org).model_dump(),
        role=Role.ADMIN,
        counts=await org_service.org_counts(session, org.id),
    )


@router_global.post(
    "/invites/{token}/accept", response_model=MemberResponse, tags=["Organizations"]
)
async def accept_invite(
    token: str,
    user_id: uuid.UUID = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    membership = await org_service.accept_invite(session, token, user_id)
    return member_service.member_response(membership, await session.get(User, user_id))


# ---------------------------------------------------------------------------
# Org-scoped routes (org_id in path)
# ---------------------------------------------------------------------------
router_scoped = APIRouter()


@router_scoped.get("", response_model=OrgDetailResponse, tags=["Organizations"])
async def get_org(
    ctx: RequestContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    return await org_service.get_org_detail(session, ctx.org_id)


@router_scoped.patch("", response_model=OrgResponse, tags=["Organizations"])
async def update_org(
    body: OrgUpdateRequest,
    ctx: RequestContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Update org details (ADMIN only)."""
    org = await org_service.update_org(session, ctx.org_id, body)
    return OrgResponse.model_validate(org)


@router_scoped.delete("", status_code=204, tags=["Organizations"])
async def delete_org(
    ctx: RequestContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Delete the org and everything it owns (ADMIN only)."""
    await org_service.delete_org(session, ctx.org_id)
    log.info("org.delete_requested", org_id=str(ctx.org_id), by=str(ctx.user_id))


@router_scoped.get("/role", response_model=RoleResponse, tags=["Organizations"])
async def get_role(ctx: RequestContext = Depends(require_member)):
    return RoleResponse(role=ctx.role)
