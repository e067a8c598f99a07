"""
Team service. Teams belong to one org; their members must be org members.
"""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from tenantdesk.core.database import flush_unique
from tenantdesk.core.errors import Conflict, NotFound, ValidationError
from tenantdesk.models.organization import OrgMember
from tenantdesk.models.project import ProjectTeamLink
from tenantdesk.models.team import Team, TeamMember
from tenantdesk.models.user import User
from tenantdesk.services import cascade
from tenantdesk.services.listing import ListParams, narrow, order_by, paginate, search_filter
from tenantdesk_shared.schemas.common import UserSummary
from tenantdesk_shared.schemas.teams import (
    TeamCreate,
    TeamMemberAdd,
    TeamMemberListResponse,
    TeamMemberRead,
    TeamRead,
    TeamUpdate,
)

log = structlog.get_logger()

NAME_TAKEN = "A team with this name already exists"

TEAM_MEMBER_SORT_COLUMNS = {
    "joined_at": TeamMember.joined_at,
    "name": User.name,
    "role": TeamMember.role,
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _member_count():
    return (
        select(func.count())
        .select_from(TeamMember)
        .where(TeamMember.team_id == Team.id)
        .correlate(Team)
        .scalar_subquery()
    )


def _project_count():
    return (
        select(func.count())
        .select_from(ProjectTeamLink)
        .where(ProjectTeamLink.team_id == Team.id)
        .correlate(Team)
        .scalar_subquery()
    )


def _team_read(team: Team, member_count: int, project_count: int) -> TeamRead:
    return TeamRead(
        id=team.id,
        org_id=team.org_id,
        name=team.name,
        description=team.description,
        created_by=team.created_by,
        member_count=member_count,
        project_count=project_count,
        created_at=team.created_at,
        updated_at=team.updated_at,
    )


async def team_read(session: AsyncSession, team: Team) -> TeamRead:
    result = await session.execute(
        select(_member_count(), _project_count()).where(Team.id == team.id)
    )
    members, projects = result.one()
    return _team_read(team, members, projects)


async def _ensure_name_free(
    session: AsyncSession, org_id: uuid.UUID, name: str, exclude: uuid.UUID | None = None
) -> None:
    stmt = select(Team.id).where(Team.org_id == org_id, Team.name == name)
    if exclude is not None:
        stmt = stmt.where(Team.id != exclude)
    if (await session.execute(stmt)).first():
        raise Conflict(NAME_TAKEN)


# ---------------------------------------------------------------------------
# Team CRUD
# ---------------------------------------------------------------------------

async def list_teams(session: AsyncSession, org_id: uuid.UUID) -> list[TeamRead]:
    result = await session.execute(
        select(Team, _member_count(), _project_count())
        .where(Team.org_id == org_id)
        .order_by(Team.name.asc())
    )
    return [_team_read(team, members, projects) for team, members, projects in result.all()]


async def create_team(
    session: AsyncSession, org_id: uuid.UUID, body: TeamCreate, creator_id: uuid.UUID
) -> Team:
    name = body.name.strip()
    await _ensure_name_free(session, org_id, name)
    team = Team(org_id=org_id, name=name, description=body.description, created_by=creator_id)
    session.add(team)
    await flush_unique(session, Conflict(NAME_TAKEN))
    log.info("team.created", team_id=str(team.id), org_id=str(org_id))
    return team


async def update_team(session: AsyncSession, team: Team, body: TeamUpdate) -> Team:
    data = body.model_dump(exclude_unset=True)
    if data.get("name"):
        data["name"] = data["name"].strip()
        if data["name"] != team.name:
            await _ensure_name_free(session, team.org_id, data["name"], exclude=team.id)
    elif "name" in data:
        raise ValidationError("Team name is required")

    for key, value in data.items():
        setattr(team, key, value)
    session.add(team)
    await flush_unique(session, Conflict(NAME_TAKEN))
    log.info("team.updated", team_id=str(team.id), fields=sorted(data))
    return team


async def delete_team(session: AsyncSession, team: Team) -> None:
    await cascade.delete_team(session, team)


# ---------------------------------------------------------------------------
# Team members
# ---------------------------------------------------------------------------

async def list_team_members(
    session: AsyncSession, team: Team, params: ListParams
) -> TeamMemberListResponse:
    stmt = (
        select(TeamMember, User)
        .join(User, User.id == TeamMember.user_id)
        .where(TeamMember.team_id == team.id)
    )
    stmt = narrow(stmt, search_filter(params.search, User.name, User.email))
    stmt = stmt.order_by(
        *order_by(
            TEAM_MEMBER_SORT_COLUMNS, params.sort_by, params.sort_order, "joined_at", TeamMember.user_id
        )
    )
    rows, pagination = await paginate(session, stmt, params.page, params.limit)
    return TeamMemberListResponse(
        members=[
            TeamMemberRead(
                team_id=tm.team_id,
                user_id=tm.user_id,
                role=tm.role,
                joined_at=tm.joined_at,
                user=UserSummary.model_validate(user),
            )
            for tm, user in rows
        ],
        pagination=pagination,
    )


async def add_team_member(
    session: AsyncSession, team: Team, body: TeamMemberAdd
) -> TeamMemberRead:
    """The user must already belong to the team's org."""
    result = await session.execute(
        select(OrgMember).where(OrgMember.org_id == team.org_id, OrgMember.user_id == body.user_id)
    )
    if not result.scalar_one_or_none():
        raise ValidationError("User is not a member of this organization")

    existing = await session.get(TeamMember, (team.id, body.user_id))
    if existing:
        raise Conflict("User is already a member of this team")

    member = TeamMember(team_id=team.id, user_id=body.user_id, role=body.role)
    session.add(member)
    await flush_unique(session, Conflict("User is already a member of this team"))
    log.info("team.member_added", team_id=str(team.id), user_id=str(body.user_id))

    user = await session.get(User, body.user_id)
    return TeamMemberRead(
        team_id=member.team_id,
        user_id=member.user_id,
        role=member.role,
        joined_at=member.joined_at,
        user=UserSummary.model_validate(user) if user else None,
    )


async def remove_team_member(session: AsyncSession, team: Team, user_id: uuid.UUID) -> None:
    member = await session.get(TeamMember, (team.id, user_id))
    if not member:
        raise NotFound("Team member not found")
    await session.delete(member)
    await session.flush()
    log.info("team.member_removed", team_id=str(team.id), user_id=str(user_id))
