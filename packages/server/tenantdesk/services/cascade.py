"""
Delete cascades.

Deletion is never blocked: removing a parent removes everything it owns.
``CASCADE_RULES`` lists what each delete touches; the functions below issue
the deletes leaf-first so foreign keys hold at every statement.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable

import structlog
from sqlalchemy import delete, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from tenantdesk.models.audit_log import AuditLog
from tenantdesk.models.dependency import TaskDependency
from tenantdesk.models.organization import Organization, OrgInvite, OrgMember
from tenantdesk.models.project import Project, ProjectTeamLink
from tenantdesk.models.task import Task, TaskTransfer
from tenantdesk.models.team import Team, TeamMember
from tenantdesk.models.transaction import Transaction
from tenantdesk.models.work_log import WorkLog, WorkLogSegment

log = structlog.get_logger()

# owner -> (removed with it, detached from it)
CASCADE_RULES: dict[str, tuple[tuple[str, ...], tuple[str, ...]]] = {
    "Organization": (("OrgMember", "OrgInvite", "Team", "Project", "AuditLog"), ()),
    "Team": (("TeamMember", "ProjectTeamLink"), ()),
    "Project": (("Project", "Task", "WorkLog", "Transaction", "ProjectTeamLink"), ()),
    "Task": (("Task", "TaskDependency", "TaskTransfer"), ("WorkLog", "Transaction")),
    "WorkLog": (("WorkLogSegment",), ()),
}


async def _descendants(
    session: AsyncSession, model, root_id: uuid.UUID
) -> list[uuid.UUID]:
    """Root id plus every id below it through ``parent_id`` (BFS)."""
    found = [root_id]
    frontier = [root_id]
    while frontier:
        result = await session.execute(
            select(model.id).where(model.parent_id.in_(frontier))
        )
        frontier = [row[0] for row in result.all() if row[0] not in found]
        found.extend(frontier)
    return found


async def _delete_tasks(session: AsyncSession, task_ids: Iterable[uuid.UUID]) -> None:
    ids = list(task_ids)
    if not ids:
        return
    await session.execute(
        delete(TaskDependency).where(
            or_(TaskDependency.task_id.in_(ids), TaskDependency.blocked_by_id.in_(ids))
        )
    )
    await session.execute(delete(TaskTransfer).where(TaskTransfer.task_id.in_(ids)))
    await session.execute(
        update(WorkLog).where(WorkLog.task_id.in_(ids)).values(task_id=None)
    )
    await session.execute(
        update(Transaction).where(Transaction.task_id.in_(ids)).values(task_id=None)
    )
    # Single statement: parent/child rows go together.
    await session.execute(delete(Task).where(Task.id.in_(ids)))


async def _delete_work_logs(session: AsyncSession, *criteria) -> None:
    ids = [row[0] for row in (await session.execute(select(WorkLog.id).where(*criteria))).all()]
    if not ids:
        return
    await session.execute(delete(WorkLogSegment).where(WorkLogSegment.work_log_id.in_(ids)))
    await session.execute(delete(WorkLog).where(WorkLog.id.in_(ids)))


async def _delete_projects(session: AsyncSession, project_ids: list[uuid.UUID]) -> int:
    if not project_ids:
        return 0
    result = await session.execute(select(Task.id).where(Task.project_id.in_(project_ids)))
    task_ids = [row[0] for row in result.all()]

    await _delete_work_logs(session, WorkLog.project_id.in_(project_ids))
    await session.execute(delete(Transaction).where(Transaction.project_id.in_(project_ids)))
    await _delete_tasks(session, task_ids)
    await session.execute(
        delete(ProjectTeamLink).where(ProjectTeamLink.project_id.in_(project_ids))
    )
    await session.execute(delete(Project).where(Project.id.in_(project_ids)))
    return len(task_ids)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

async def delete_task(session: AsyncSession, task: Task) -> list[uuid.UUID]:
    """Delete a task and its subtasks. Returns the removed ids."""
    ids = await _descendants(session, Task, task.id)
    await _delete_tasks(session, ids)
    log.info("task.deleted", task_id=str(task.id), removed=len(ids))
    return ids


async def delete_project(session: AsyncSession, project: Project) -> list[uuid.UUID]:
    """Delete a project, its sub-projects, and everything they own."""
    ids = await _descendants(session, Project, project.id)
    tasks = await _delete_projects(session, ids)
    log.info("project.deleted", project_id=str(project.id), projects=len(ids), tasks=tasks)
    return ids


async def delete_team(session: AsyncSession, team: Team) -> None:
    await session.execute(delete(TeamMember).where(TeamMember.team_id == team.id))
    await session.execute(delete(ProjectTeamLink).where(ProjectTeamLink.team_id == team.id))
    await session.execute(delete(Team).where(Team.id == team.id))
    log.info("team.deleted", team_id=str(team.id), org_id=str(team.org_id))


async def delete_organization(session: AsyncSession, org_id: uuid.UUID) -> None:
    result = await session.execute(select(Project.id).where(Project.org_id == org_id))
    await _delete_projects(session, [row[0] for row in result.all()])

    # Work logs always sit under a project of the same org; this catches strays.
    await _delete_work_logs(session, WorkLog.org_id == org_id)

    team_ids = select(Team.id).where(Team.org_id == org_id)
    await session.execute(delete(TeamMember).where(TeamMember.team_id.in_(team_ids)))
    await session.execute(delete(ProjectTeamLink).where(ProjectTeamLink.team_id.in_(team_ids)))
    await session.execute(delete(Team).where(Team.org_id == org_id))

    await session.execute(delete(OrgInvite).where(OrgInvite.org_id == org_id))
    await session.execute(delete(OrgMember).where(OrgMember.org_id == org_id))
    await session.execute(delete(AuditLog).where(AuditLog.org_id == org_id))
    await session.execute(delete(Organization).where(Organization.id == org_id))
    log.info("org.deleted", org_id=str(org_id))
