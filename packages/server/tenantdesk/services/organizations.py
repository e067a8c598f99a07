"""
Organization service: org CRUD, invite acceptance, per-org counts.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import structlog
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from tenantdesk.core.database import flush_unique
from tenantdesk.core.errors import Conflict, NotFound, ValidationError
from tenantdesk.models.base import as_utc
from tenantdesk.models.organization import Organization, OrgInvite, OrgMember
from tenantdesk.models.project import Project
from tenantdesk.models.team import Team
from tenantdesk.models.user import User
from tenantdesk.services import cascade
from tenantdesk_shared.schemas.common import Role
from tenantdesk_shared.schemas.organizations import (
    OrgCounts,
    OrgCreateRequest,
    OrgDetailResponse,
    OrgListItem,
    OrgResponse,
    OrgStatus,
    OrgUpdateRequest,
    ProjectBrief,
)
from tenantdesk_shared.schemas.users import InviteStatus

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _count(model, org_column, org_id):
    return select(func.count()).select_from(model).where(org_column == org_id).scalar_subquery()


async def org_counts(session: AsyncSession, org_id: uuid.UUID) -> OrgCounts:
    result = await session.execute(
        select(
            _count(OrgMember, OrgMember.org_id, org_id),
            _count(Team, Team.org_id, org_id),
            _count(Project, Project.org_id, org_id),
        )
    )
    members, teams, projects = result.one()
    return OrgCounts(members=members, teams=teams, projects=projects)


async def get_org_or_404(session: AsyncSession, org_id: uuid.UUID) -> Organization:
    org = await session.get(Organization, org_id)
    if not org:
        raise NotFound("Organization not found")
    return org


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

async def list_user_orgs(session: AsyncSession, user_id: uuid.UUID) -> list[OrgListItem]:
    """Orgs the user belongs to, with their role and counts."""
    result = await session.execute(
        select(Organization, OrgMember.role)
        .join(OrgMember, OrgMember.org_id == Organization.id)
        .where(OrgMember.user_id == user_id)
        .order_by(Organization.created_at.desc())
    )
    items = []
    for org, role in result.all():
        items.append(
            OrgListItem(
                **OrgResponse.model_validate(org).model_dump(),
                role=Role(role),
                counts=await org_counts(session, org.id),
            )
        )
    return items


async def create_org(
    session: AsyncSession, req: OrgCreateRequest, creator_id: uuid.UUID
) -> tuple[Organization, OrgMember]:
    """Create an org and make the creator its first ADMIN.

    Both rows go into the caller's session and are committed together.
    """
    org = Organization(
        name=req.name,
        legal_name=req.legal_name,
        country=req.country,
        address=req.address,
        contact_email=req.contact_email,
        contact_phone=req.contact_phone,
        status=OrgStatus.ACTIVE.value,
        created_by=creator_id,
    )
    session.add(org)
    await session.flush()

    membership = OrgMember(org_id=org.id, user_id=creator_id, role=Role.ADMIN.value)
    session.add(membership)
    await session.flush()

    log.info("org.created", org_id=str(org.id), creator=str(creator_id))
    return org, membership


async def get_org_detail(session: AsyncSession, org_id: uuid.UUID) -> OrgDetailResponse:
    org = await get_org_or_404(session, org_id)
    result = await session.execute(
        select(Project)
        .where(Project.org_id == org_id, Project.parent_id.is_(None))
        .order_by(Project.created_at.desc())
    )
    return OrgDetailResponse(
        **OrgResponse.model_validate(org).model_dump(),
        counts=await org_counts(session, org_id),
        projects=[ProjectBrief.model_validate(p) for p in result.scalars().all()],
    )


async def update_org(
    session: AsyncSession, org_id: uuid.UUID, req: OrgUpdateRequest
) -> Organization:
    org = await get_org_or_404(session, org_id)
    data = req.model_dump(exclude_unset=True)
    if "name" in data:
        data["name"] = (data["name"] or "").strip()
        if not data["name"]:
            raise ValidationError("Organization name is required")
    if "status" in data:
        if data["status"] is None:
            raise ValidationError("Organization status cannot be empty")
        data["status"] = OrgStatus(data["status"]).value

    for key, value in data.items():
        setattr(org, key, value)

    org.updated_at = datetime.now(timezone.utc)
    session.add(org)
    await session.flush()

    log.info("org.updated", org_id=str(org.id), fields=sorted(data))
    return org


async def delete_org(session: AsyncSession, org_id: uuid.UUID) -> None:
    await get_org_or_404(session, org_id)
    await cascade.delete_organization(session, org_id)


# ---------------------------------------------------------------------------
# Invites
# ---------------------------------------------------------------------------

async def accept_invite(
    session: AsyncSession, token: str, user_id: uuid.UUID
) -> OrgMember:
    """Turn a pending invite addressed to the caller into a membership."""
    result = await session.execute(select(OrgInvite).where(OrgInvite.token == token))
    invite = result.scalar_one_or_none()
    user = await session.get(User, user_id)
    # Someone else's invite looks the same as no invite.
    if not invite or not user or invite.email.lower() != user.email.lower():
        raise NotFound("Invite not found")

    if invite.status != InviteStatus.PENDING.value:
        raise ValidationError("Invite is no longer valid")

    if as_utc(invite.expires_at) <= datetime.now(timezone.utc):
        invite.status = InviteStatus.EXPIRED.value
        session.add(invite)
        await session.flush()
        raise ValidationError("Invite has expired")

    existing = await session.execute(
        select(OrgMember).where(
            OrgMember.org_id == invite.org_id, OrgMember.user_id == user_id
        )
    )
    if existing.scalar_one_or_none():
        raise Conflict("User is already a member of this organization")

    membership = OrgMember(org_id=invite.org_id, user_id=user_id, role=invite.role)
    invite.status = InviteStatus.ACCEPTED.value
    session.add(membership)
    session.add(invite)
    await flush_unique(session, Conflict("User is already a member of this organization"))

    log.info("invite.accepted", org_id=str(invite.org_id), user_id=str(user_id))
    return membership
