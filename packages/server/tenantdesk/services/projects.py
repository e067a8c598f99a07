"""
Project service: hierarchical projects, team links, cost roll-ups.

Callers pass in projects already loaded through ``scoping.load_project``.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from tenantdesk.core import audit
from tenantdesk.core.database import flush_unique
from tenantdesk.core.errors import Conflict, NotFound, ValidationError
from tenantdesk.core.guard import RequestContext
from tenantdesk.core.scoping import load_team, validate_parent_project
from tenantdesk.core.store import ScopeStore
from tenantdesk.models.project import Project, ProjectTeamLink
from tenantdesk.models.task import Task
from tenantdesk.models.team import Team, TeamMember
from tenantdesk.models.transaction import Transaction
from tenantdesk.models.work_log import WorkLog
from tenantdesk.services import cascade
from tenantdesk_shared.schemas.projects import (
    ProjectChild,
    ProjectCreate,
    ProjectDetail,
    ProjectRead,
    ProjectRef,
    ProjectUpdate,
    TeamBrief,
    TransactionRead,
    compute_rollup,
)

log = structlog.get_logger()

CODE_TAKEN = "Project code already exists in this organization"

AUDITED_FIELDS = (
    "name", "code", "description", "status", "start_date", "deadline",
    "budget_total", "currency",
)
DETAIL_TRANSACTION_LIMIT = 50


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _count_where(model, column):
    return (
        select(func.count())
        .select_from(model)
        .where(column == Project.id)
        .correlate(Project)
        .scalar_subquery()
    )


def _counted():
    child = Project.__table__.alias("child")
    child_count = (
        select(func.count())
        .select_from(child)
        .where(child.c.parent_id == Project.id)
        .correlate(Project)
        .scalar_subquery()
    )
    return select(
        Project,
        child_count,
        _count_where(Task, Task.project_id),
        _count_where(ProjectTeamLink, ProjectTeamLink.project_id),
    )


async def _ensure_code_free(
    session: AsyncSession, org_id: uuid.UUID, code: str, exclude: Optional[uuid.UUID] = None
) -> None:
    stmt = select(Project.id).where(Project.org_id == org_id, Project.code == code)
    if exclude is not None:
        stmt = stmt.where(Project.id != exclude)
    if (await session.execute(stmt)).first():
        raise ValidationError(CODE_TAKEN)


def _project_read(
    project: Project, child_count: int, task_count: int, team_count: int,
    parent: Optional[Project] = None,
) -> dict:
    data = {name: getattr(project, name) for name in AUDITED_FIELDS}
    data.update(
        id=project.id,
        org_id=project.org_id,
        parent_id=project.parent_id,
        parent=ProjectRef.model_validate(parent) if parent else None,
        created_by=project.created_by,
        child_count=child_count,
        task_count=task_count,
        team_count=team_count,
        created_at=project.created_at,
        updated_at=project.updated_at,
    )
    return data


async def project_read(session: AsyncSession, project: Project) -> ProjectRead:
    result = await session.execute(_counted().where(Project.id == project.id))
    _, children, tasks, teams = result.one()
    parent = await session.get(Project, project.parent_id) if project.parent_id else None
    return ProjectRead(**_project_read(project, children, tasks, teams, parent))


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

async def list_projects(
    session: AsyncSession, org_id: uuid.UUID, parent_id: Optional[uuid.UUID]
) -> list[ProjectRead]:
    """Direct children of ``parent_id``, or top-level projects when it is None."""
    stmt = _counted().where(Project.org_id == org_id)
    if parent_id is None:
        stmt = stmt.where(Project.parent_id.is_(None))
    else:
        stmt = stmt.where(Project.parent_id == parent_id)
    result = await session.execute(stmt.order_by(Project.created_at.desc()))
    return [
        ProjectRead(**_project_read(p, children, tasks, teams))
        for p, children, tasks, teams in result.all()
    ]


async def list_project_teams(session: AsyncSession, project: Project) -> list[TeamBrief]:
    member_count = (
        select(func.count())
        .select_from(TeamMember)
        .where(TeamMember.team_id == Team.id)
        .correlate(Team)
        .scalar_subquery()
    )
    result = await session.execute(
        select(Team, member_count)
        .join(ProjectTeamLink, ProjectTeamLink.team_id == Team.id)
        .where(ProjectTeamLink.project_id == project.id)
        .order_by(Team.name.asc())
    )
    return [
        TeamBrief(id=t.id, name=t.name, description=t.description, member_count=count)
        for t, count in result.all()
    ]


async def rollup(session: AsyncSession, project: Project):
    """(total_cost, total_budget) summed in the database per transaction type."""
    result = await session.execute(
        select(Transaction.type, func.sum(Transaction.amount))
        .where(Transaction.project_id == project.id)
        .group_by(Transaction.type)
    )
    return compute_rollup(project.budget_total, [(t, amount or 0) for t, amount in result.all()])


async def project_detail(session: AsyncSession, project: Project) -> ProjectDetail:
    base = await project_read(session, project)

    children = await session.execute(
        select(Project).where(Project.parent_id == project.id).order_by(Project.created_at.desc())
    )
    transactions = await session.execute(
        select(Transaction)
        .where(Transaction.project_id == project.id)
        .order_by(Transaction.occurred_at.desc())
        .limit(DETAIL_TRANSACTION_LIMIT)
    )
    work_logs = await session.execute(
        select(func.count()).select_from(WorkLog).where(WorkLog.project_id == project.id)
    )
    total_cost, total_budget = await rollup(session, project)

    return ProjectDetail(
        **base.model_dump(),
        children=[ProjectChild.model_validate(c) for c in children.scalars().all()],
        teams=await list_project_teams(session, project),
        transactions=[TransactionRead.model_validate(t) for t in transactions.scalars().all()],
        work_log_count=work_logs.scalar_one(),
        total_cost=total_cost,
        total_budget=total_budget,
    )


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

async def create_project(
    session: AsyncSession, store: ScopeStore, ctx: RequestContext, body: ProjectCreate
) -> Project:
    await validate_parent_project(store, body.parent_id, ctx.org_id)
    code = body.code.strip()
    await _ensure_code_free(session, ctx.org_id, code)

    project = Project(
        org_id=ctx.org_id,
        parent_id=body.parent_id,
        name=body.name.strip(),
        code=code,
        description=body.description,
        status=body.status.value,
        start_date=body.start_date,
        deadline=body.deadline,
        budget_total=body.budget_total,
        currency=body.currency,
        created_by=ctx.user_id,
    )
    session.add(project)
    await flush_unique(session, ValidationError(CODE_TAKEN))

    audit.record(
        session,
        org_id=ctx.org_id,
        project_id=project.id,
        entity_type="Project",
        entity_id=project.id,
        action="project.created",
        actor_user_id=ctx.user_id,
        changes={"name": project.name, "code": project.code, "parent_id": project.parent_id},
    )
    log.info("project.created", project_id=str(project.id), org_id=str(ctx.org_id))
    return project


async def update_project(
    session: AsyncSession, ctx: RequestContext, project: Project, body: ProjectUpdate
) -> Project:
    data = body.model_dump(exclude_unset=True)
    for required in ("name", "code"):
        if required in data:
            data[required] = (data[required] or "").strip()
            if not data[required]:
                raise ValidationError(f"Project {required} is required")
    for key in ("status", "currency"):
        if key in data and data[key] is None:
            raise ValidationError(f"Project {key} cannot be empty")
    if "code" in data and data["code"] != project.code:
        await _ensure_code_free(session, project.org_id, data["code"], exclude=project.id)
    if "status" in data:
        data["status"] = data["status"].value

    before = audit.snapshot(project, data.keys())
    for key, value in data.items():
        setattr(project, key, value)
    project.updated_at = datetime.now(timezone.utc)
    session.add(project)
    await flush_unique(session, ValidationError(CODE_TAKEN))

    changes = audit.diff(before, audit.snapshot(project, data.keys()))
    if changes:
        audit.record(
            session,
            org_id=project.org_id,
            project_id=project.id,
            entity_type="Project",
            entity_id=project.id,
            action="project.updated",
            actor_user_id=ctx.user_id,
            changes=changes,
        )
    return project


async def delete_project(session: AsyncSession, ctx: RequestContext, project: Project) -> None:
    audit.record(
        session,
        org_id=project.org_id,
        project_id=project.id,
        entity_type="Project",
        entity_id=project.id,
        action="project.deleted",
        actor_user_id=ctx.user_id,
        changes={"name": project.name, "code": project.code},
    )
    await cascade.delete_project(session, project)


async def link_team(
    session: AsyncSession, store: ScopeStore, ctx: RequestContext, project: Project, team_id: uuid.UUID
) -> TeamBrief:
    team = await load_team(store, team_id, ctx.org_id)
    if await session.get(ProjectTeamLink, (project.id, team.id)):
        raise Conflict("Team is already assigned to this project")

    session.add(ProjectTeamLink(project_id=project.id, team_id=team.id))
    audit.record(
        session,
        org_id=ctx.org_id,
        project_id=project.id,
        entity_type="Project",
        entity_id=project.id,
        action="project.team_linked",
        actor_user_id=ctx.user_id,
        changes={"team_id": team.id, "team_name": team.name},
    )
    await flush_unique(session, Conflict("Team is already assigned to this project"))

    members = await session.execute(
        select(func.count()).select_from(TeamMember).where(TeamMember.team_id == team.id)
    )
    return TeamBrief(id=team.id, name=team.name, description=team.description, member_count=members.scalar_one())


async def unlink_team(
    session: AsyncSession, ctx: RequestContext, project: Project, team_id: uuid.UUID
) -> None:
    link = await session.get(ProjectTeamLink, (project.id, team_id))
    if not link:
        raise NotFound("Team is not assigned to this project")
    await session.delete(link)
    audit.record(
        session,
        org_id=ctx.org_id,
        project_id=project.id,
        entity_type="Project",
        entity_id=project.id,
        action="project.team_unlinked",
        actor_user_id=ctx.user_id,
        changes={"team_id": team_id},
    )
    await session.flush()
