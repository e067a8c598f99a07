"""
Org membership service: listing, lookup by email, invites, role changes.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import structlog
from sqlalchemy import delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from tenantdesk.core.auth import generate_invite_token
from tenantdesk.core.config import get_settings
from tenantdesk.core.database import flush_unique
from tenantdesk.core.errors import Conflict, NotFound, ValidationError
from tenantdesk.models.organization import OrgInvite, OrgMember
from tenantdesk.models.team import Team, TeamMember
from tenantdesk.models.user import User
from tenantdesk.services.listing import ListParams, narrow, order_by, paginate, search_filter
from tenantdesk_shared.schemas.common import Role, UserSummary
from tenantdesk_shared.schemas.users import (
    InviteResponse,
    InviteStatus,
    MemberInviteRequest,
    MemberInviteResponse,
    MemberListResponse,
    MemberResponse,
    MemberSearchResponse,
)

log = structlog.get_logger()
settings = get_settings()

MEMBER_SORT_COLUMNS = {
    "joined_at": OrgMember.joined_at,
    "name": User.name,
    "role": OrgMember.role,
}


def member_response(membership: OrgMember, user: User | None) -> MemberResponse:
    return MemberResponse(
        org_id=membership.org_id,
        user_id=membership.user_id,
        role=Role(membership.role),
        joined_at=membership.joined_at,
        user=UserSummary.model_validate(user) if user else None,
    )


async def get_member_or_404(
    session: AsyncSession, org_id: uuid.UUID, user_id: uuid.UUID
) -> OrgMember:
    result = await session.execute(
        select(OrgMember).where(OrgMember.org_id == org_id, OrgMember.user_id == user_id)
    )
    membership = result.scalar_one_or_none()
    if not membership:
        raise NotFound("Member not found")
    return membership


async def _ensure_admin_remains(
    session: AsyncSession, membership: OrgMember, new_role: Role | None
) -> None:
    """Refuse to remove or demote the org's last ADMIN."""
    if Role(membership.role) != Role.ADMIN or new_role == Role.ADMIN:
        return
    result = await session.execute(
        select(func.count())
        .select_from(OrgMember)
        .where(OrgMember.org_id == membership.org_id, OrgMember.role == Role.ADMIN.value)
    )
    if result.scalar_one() <= 1:
        raise ValidationError("Organization must keep at least one admin")


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

async def list_members(
    session: AsyncSession, org_id: uuid.UUID, params: ListParams
) -> MemberListResponse:
    stmt = (
        select(OrgMember, User)
        .join(User, User.id == OrgMember.user_id)
        .where(OrgMember.org_id == org_id)
    )
    stmt = narrow(stmt, search_filter(params.search, User.name, User.email))
    stmt = stmt.order_by(
        *order_by(
            MEMBER_SORT_COLUMNS, params.sort_by, params.sort_order, "joined_at", OrgMember.user_id
        )
    )
    rows, pagination = await paginate(session, stmt, params.page, params.limit)
    return MemberListResponse(
        members=[member_response(m, u) for m, u in rows],
        pagination=pagination,
    )


async def search_member(
    session: AsyncSession, org_id: uuid.UUID, email: str
) -> MemberSearchResponse:
    result = await session.execute(select(User).where(func.lower(User.email) == email.lower()))
    user = result.scalar_one_or_none()
    if not user:
        return MemberSearchResponse(exists=False)

    result = await session.execute(
        select(OrgMember).where(OrgMember.org_id == org_id, OrgMember.user_id == user.id)
    )
    membership = result.scalar_one_or_none()
    return MemberSearchResponse(
        user=UserSummary.model_validate(user),
        exists=True,
        is_member=membership is not None,
        member_role=Role(membership.role) if membership else None,
    )


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

async def invite_member(
    session: AsyncSession,
    org_id: uuid.UUID,
    req: MemberInviteRequest,
    inviter_id: uuid.UUID,
) -> MemberInviteResponse:
    """Add a registered user directly; otherwise issue an invite token."""
    email = str(req.email).lower()
    result = await session.execute(select(User).where(func.lower(User.email) == email))
    user = result.scalar_one_or_none()

    if user:
        existing = await session.execute(
            select(OrgMember).where(OrgMember.org_id == org_id, OrgMember.user_id == user.id)
        )
        if existing.scalar_one_or_none():
            raise Conflict("User is already a member of this organization")
        membership = OrgMember(org_id=org_id, user_id=user.id, role=req.role.value)
        session.add(membership)
        await flush_unique(session, Conflict("User is already a member of this organization"))
        log.info("member.added", org_id=str(org_id), user_id=str(user.id), role=req.role.value)
        return MemberInviteResponse(added=True, member=member_response(membership, user))

    now = datetime.now(timezone.utc)
    pending = await session.execute(
        select(OrgInvite).where(
            OrgInvite.org_id == org_id,
            OrgInvite.email == email,
            OrgInvite.status == InviteStatus.PENDING.value,
            OrgInvite.expires_at > now,
        )
    )
    if pending.scalars().first():
        raise Conflict("An invitation has already been sent to this email")

    invite = OrgInvite(
        org_id=org_id,
        email=email,
        role=req.role.value,
        token=generate_invite_token(),
        status=InviteStatus.PENDING.value,
        expires_at=now + timedelta(days=settings.invite_expiry_days),
        invited_by=inviter_id,
    )
    session.add(invite)
    await session.flush()
    log.info("invite.created", org_id=str(org_id), invite_id=str(invite.id), role=req.role.value)
    return MemberInviteResponse(
        added=False,
        invite=InviteResponse(
            id=invite.id,
            org_id=invite.org_id,
            email=invite.email,
            role=Role(invite.role),
            status=InviteStatus(invite.status),
            expires_at=invite.expires_at,
            invited_by=invite.invited_by,
            token=invite.token,
        ),
    )


async def update_member_role(
    session: AsyncSession, org_id: uuid.UUID, user_id: uuid.UUID, role: Role
) -> MemberResponse:
    membership = await get_member_or_404(session, org_id, user_id)
    await _ensure_admin_remains(session, membership, role)

    old_role = membership.role
    membership.role = role.value
    session.add(membership)
    await session.flush()

    log.info("member.role_changed", org_id=str(org_id), user_id=str(user_id), old=old_role, new=role.value)
    return member_response(membership, await session.get(User, user_id))


async def remove_member(
    session: AsyncSession, org_id: uuid.UUID, user_id: uuid.UUID
) -> None:
    """Remove the membership and the user's team seats in this org."""
    membership = await get_member_or_404(session, org_id, user_id)
    await _ensure_admin_remains(session, membership, None)

    await session.execute(
        delete(TeamMember).where(
            TeamMember.user_id == user_id,
            TeamMember.team_id.in_(select(Team.id).where(Team.org_id == org_id)),
        )
    )
    await session.delete(membership)
    await session.flush()
    log.info("member.removed", org_id=str(org_id), user_id=str(user_id))
