"""
Task service layer: hierarchical tasks, dependencies, and hand-over history.

Handles:
- Task CRUD inside a project, with parent validation
- Assignee/reviewer changes recorded as TaskTransfer rows
- Dependency management with circular dependency detection
- Enrichment of task data for API responses
"""

from __future__ import annotations

import uuid
from collections import defaultdict, deque
from typing import Optional, Sequence

import structlog
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from tenantdesk.core import audit
from tenantdesk.core.errors import Conflict, NotFound, ValidationError
from tenantdesk.core.guard import RequestContext
from tenantdesk.core.scoping import load_task, validate_parent_task
from tenantdesk.core.store import ScopeStore
from tenantdesk.models.dependency import TaskDependency
from tenantdesk.models.project import Project
from tenantdesk.models.task import Task, TaskTransfer
from tenantdesk.models.work_log import WorkLog
from tenantdesk.services import cascade
from tenantdesk_shared.schemas.common import TaskStatus
from tenantdesk_shared.schemas.tasks import (
    TaskChild,
    TaskCreate,
    TaskDetail,
    TaskRead,
    TaskTransferRead,
    TaskUpdate,
)

log = structlog.get_logger()

TASK_FIELDS = (
    "title", "description", "type", "status", "priority",
    "assignee_user_id", "reviewer_user_id",
    "assignment_dt", "start_dt", "end_dt", "deadline_dt",
)
TRANSFER_KINDS = {"assignee_user_id": "assignee", "reviewer_user_id": "reviewer"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _ensure_org_member(
    store: ScopeStore, org_id: uuid.UUID, user_id: Optional[uuid.UUID], label: str
) -> None:
    if user_id is not None and await store.get_membership(org_id, user_id) is None:
        raise ValidationError(f"{label} must be a member of this organization")


async def _ids(session: AsyncSession, stmt) -> list[uuid.UUID]:
    return [row[0] for row in (await session.execute(stmt)).all()]


async def enrich_task(session: AsyncSession, task: Task) -> TaskRead:
    """Convert a Task ORM object to a TaskRead with counts and dependency ids."""
    child_count = (
        await session.execute(select(func.count()).select_from(Task).where(Task.parent_id == task.id))
    ).scalar_one()
    dependency_ids = await _ids(
        session, select(TaskDependency.blocked_by_id).where(TaskDependency.task_id == task.id)
    )
    blocking_ids = await _ids(
        session, select(TaskDependency.task_id).where(TaskDependency.blocked_by_id == task.id)
    )
    return TaskRead(
        id=task.id,
        project_id=task.project_id,
        parent_id=task.parent_id,
        budget_amount=task.budget_amount,
        currency=task.currency,
        created_by=task.created_by,
        child_count=child_count,
        dependency_ids=dependency_ids,
        blocking_ids=blocking_ids,
        created_at=task.created_at,
        updated_at=task.updated_at,
        **{name: getattr(task, name) for name in TASK_FIELDS},
    )


async def enrich_tasks(session: AsyncSession, tasks: Sequence[Task]) -> list[TaskRead]:
    return [await enrich_task(session, t) for t in tasks]


async def task_detail(session: AsyncSession, task: Task) -> TaskDetail:
    base = await enrich_task(session, task)
    children = await session.execute(
        select(Task).where(Task.parent_id == task.id).order_by(Task.priority.asc(), Task.created_at.desc())
    )
    transfers = await session.execute(
        select(TaskTransfer).where(TaskTransfer.task_id == task.id).order_by(TaskTransfer.timestamp.desc())
    )
    work_logs = await session.execute(
        select(func.count()).select_from(WorkLog).where(WorkLog.task_id == task.id)
    )
    return TaskDetail(
        **base.model_dump(),
        children=[TaskChild.model_validate(c) for c in children.scalars().all()],
        transfers=[TaskTransferRead.model_validate(t) for t in transfers.scalars().all()],
        work_log_count=work_logs.scalar_one(),
    )


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

def parse_parent_filter(parent_task_id: Optional[str]):
    """``None``: no filter. ``""``: top-level tasks only. Otherwise a task id."""
    if parent_task_id is None:
        return None
    if parent_task_id == "":
        return Task.parent_id.is_(None)
    try:
        return Task.parent_id == uuid.UUID(parent_task_id)
    except ValueError:
        raise ValidationError("Invalid parent_task_id")


async def list_tasks(
    session: AsyncSession,
    org_id: uuid.UUID,
    *,
    project_id: Optional[uuid.UUID] = None,
    parent_task_id: Optional[str] = None,
    status: Optional[TaskStatus] = None,
    assignee_id: Optional[uuid.UUID] = None,
) -> list[TaskRead]:
    """Tasks in the org, narrowed by the optional filters."""
    stmt = (
        select(Task)
        .join(Project, Project.id == Task.project_id)
        .where(Project.org_id == org_id)
    )
    if project_id is not None:
        stmt = stmt.where(Task.project_id == project_id)
    parent_clause = parse_parent_filter(parent_task_id)
    if parent_clause is not None:
        stmt = stmt.where(parent_clause)
    if status is not None:
        stmt = stmt.where(Task.status == status.value)
    if assignee_id is not None:
        stmt = stmt.where(Task.assignee_user_id == assignee_id)

    stmt = stmt.order_by(
        Task.priority.asc(),
        Task.deadline_dt.asc().nulls_last(),
        Task.created_at.desc(),
    )
    result = await session.execute(stmt)
    return await enrich_tasks(session, result.scalars().all())


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

async def create_task(
    session: AsyncSession,
    store: ScopeStore,
    ctx: RequestContext,
    project: Project,
    task_in: TaskCreate,
) -> Task:
    await validate_parent_task(store, task_in.parent_id, project.id)
    await _ensure_org_member(store, ctx.org_id, task_in.assignee_user_id, "Assignee")
    await _ensure_org_member(store, ctx.org_id, task_in.reviewer_user_id, "Reviewer")

    task = Task(
        project_id=project.id,
        parent_id=task_in.parent_id,
        title=task_in.title.strip(),
        description=task_in.description,
        type=task_in.type.value,
        status=task_in.status.value,
        priority=task_in.priority.value,
        assignee_user_id=task_in.assignee_user_id,
        reviewer_user_id=task_in.reviewer_user_id,
        assignment_dt=task_in.assignment_dt,
        start_dt=task_in.start_dt,
        end_dt=task_in.end_dt,
        deadline_dt=task_in.deadline_dt,
        budget_amount=task_in.budget_amount,
        currency=task_in.currency,
        created_by=ctx.user_id,
    )
    session.add(task)
    await session.flush()

    audit.record(
        session,
        org_id=ctx.org_id,
        project_id=project.id,
        entity_type="Task",
        entity_id=task.id,
        action="task.created",
        actor_user_id=ctx.user_id,
        changes={"title": task.title, "parent_id": task.parent_id},
    )
    log.info("task.created", task_id=str(task.id), project_id=str(project.id))
    return task


async def update_task(
    session: AsyncSession,
    store: ScopeStore,
    ctx: RequestContext,
    task: Task,
    task_in: TaskUpdate,
) -> Task:
    data = task_in.model_dump(exclude_unset=True)
    if "title" in data and not (data["title"] or "").strip():
        raise ValidationError("Task title is required")
    for key in ("type", "status", "priority"):
        if data.get(key) is not None:
            data[key] = data[key].value
        elif key in data:
            raise ValidationError(f"Task {key} cannot be empty")

    for field, kind in TRANSFER_KINDS.items():
        if field in data and data[field] != getattr(task, field):
            await _ensure_org_member(store, ctx.org_id, data[field], kind.capitalize())
            session.add(
                TaskTransfer(
                    task_id=task.id,
                    kind=kind,
                    from_user_id=getattr(task, field),
                    to_user_id=data[field],
                    changed_by=ctx.user_id,
                )
            )

    before = audit.snapshot(task, data.keys())
    for key, value in data.items():
        setattr(task, key, value)
    session.add(task)
    await session.flush()

    changes = audit.diff(before, audit.snapshot(task, data.keys()))
    if changes:
        audit.record(
            session,
            org_id=ctx.org_id,
            project_id=task.project_id,
            entity_type="Task",
            entity_id=task.id,
            action="task.updated",
            actor_user_id=ctx.user_id,
            changes=changes,
        )
    return task


async def delete_task(session: AsyncSession, ctx: RequestContext, task: Task) -> None:
    audit.record(
        session,
        org_id=ctx.org_id,
        project_id=task.project_id,
        entity_type="Task",
        entity_id=task.id,
        action="task.deleted",
        actor_user_id=ctx.user_id,
        changes={"title": task.title},
    )
    await cascade.delete_task(session, task)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


async def _has_path(
    session: AsyncSession,
    from_id: uuid.UUID,
    to_id: uuid.UUID,
    project_id: uuid.UUID,
) -> bool:
    """BFS to detect if there's a path from from_id to to_id in the dependency graph."""
    # Build adjacency: task_id -> [blocked_by_id], limited to this project
    result = await session.execute(
        select(TaskDependency)
        .join(Task, Task.id == TaskDependency.task_id)
        .where(Task.project_id == project_id)
    )
    adj: dict[uuid.UUID, list[uuid.UUID]] = defaultdict(list)
    for dep in result.scalars().all():
        adj[dep.task_id].append(dep.blocked_by_id)
    return has_path(adj, from_id, to_id)


def has_path(adj: dict, from_id, to_id) -> bool:
    """BFS from from_id following blocked_by edges."""
    visited = set()
    queue = deque([from_id])
    while queue:
        current = queue.popleft()
        if current == to_id:
            return True
        if current in visited:
            continue
        visited.add(current)
        queue.extend(adj.get(current, []))
    return False


async def add_dependency(
    session: AsyncSession,
    store: ScopeStore,
    ctx: RequestContext,
    task: Task,
    blocked_by_id: uuid.UUID,
) -> TaskDependency:
    if task.id == blocked_by_id:
        raise Conflict("A task cannot depend on itself")

    # Blocker must exist in the same project
    await load_task(store, blocked_by_id, ctx.org_id, task.project_id)

    if await session.get(TaskDependency, (task.id, blocked_by_id)):
        raise Conflict("Dependency already exists")

    # "task is blocked by blocked_by" closes a cycle when blocked_by is
    # already (transitively) blocked by task.
    if await _has_path(session, blocked_by_id, task.id, task.project_id):
        raise Conflict("Adding this dependency would create a circular dependency")

    dep = TaskDependency(task_id=task.id, blocked_by_id=blocked_by_id)
    session.add(dep)
    audit.record(
        session,
        org_id=ctx.org_id,
        project_id=task.project_id,
        entity_type="Task",
        entity_id=task.id,
        action="task.dependency_added",
        actor_user_id=ctx.user_id,
        changes={"blocked_by_id": blocked_by_id},
    )
    await session.flush()
    return dep


async def remove_dependency(
    session: AsyncSession,
    ctx: RequestContext,
    task: Task,
    blocked_by_id: uuid.UUID,
) -> None:
    dep = await session.get(TaskDependency, (task.id, blocked_by_id))
    if not dep:
        raise NotFound("Dependency not found")
    await session.delete(dep)
    audit.record(
        session,
        org_id=ctx.org_id,
        project_id=task.project_id,
        entity_type="Task",
        entity_id=task.id,
        action="task.dependency_removed",
        actor_user_id=ctx.user_id,
        changes={"blocked_by_id": blocked_by_id},
    )
    await session.flush()
