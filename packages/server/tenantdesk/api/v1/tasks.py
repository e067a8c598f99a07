"""
Task endpoints: CRUD, dependencies, org-wide listing.

- Project-scoped routes live under /projects/{project_id}/tasks; a task id
  that resolves to another project or org is reported as not found.
- Org-wide routes live under /tasks; a project id in the body is loaded
  through the same fetch-then-check path.
- Assignee/reviewer changes are kept as transfer history.
- Circular dependency detection on add.
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tenantdesk.core.database import get_session
from tenantdesk.core.guard import RequestContext, get_store, require_elevated, require_member
from tenantdesk.core.scoping import load_project, load_task
from tenantdesk.core.store import SqlScopeStore
from tenantdesk.services import tasks as task_service
from tenantdesk_shared.schemas.common import TaskStatus
from tenantdesk_shared.schemas.tasks import (
    DependencyAdd,
    DependencyRead,
    OrgTaskCreate,
    TaskCreate,
    TaskDetail,
    TaskListResponse,
    TaskRead,
    TaskUpdate,
)

router = APIRouter()
org_router = APIRouter()


# ---------------------------------------------------------------------------
# Task CRUD (project-scoped)
# ---------------------------------------------------------------------------


@router.get("", response_model=TaskListResponse)
async def list_tasks_endpoint(
    project_id: uuid.UUID,
    parent_task_id: Optional[str] = None,
    status: Optional[TaskStatus] = None,
    assignee_id: Optional[uuid.UUID] = None,
    ctx: RequestContext = Depends(require_member),
    store: SqlScopeStore = Depends(get_store),
    session: AsyncSession = Depends(get_session),
):
    """Tasks of one project. ``parent_task_id=`` (empty) lists top-level tasks."""
    project = await load_project(store, project_id, ctx.org_id)
    tasks = await task_service.list_tasks(
        session,
        ctx.org_id,
        project_id=project.id,
        parent_task_id=parent_task_id,
        status=status,
        assignee_id=assignee_id,
    )
    return TaskListResponse(tasks=tasks)


@router.post("", response_model=TaskRead, status_code=201)
async def create_task_endpoint(
    project_id: uuid.UUID,
    task_in: TaskCreate,
    ctx: RequestContext = Depends(require_member),
    store: SqlScopeStore = Depends(get_store),
    session: AsyncSession = Depends(get_session),
):
    project = await load_project(store, project_id, ctx.org_id)
    task = await task_service.create_task(session, store, ctx, project, task_in)
    return await task_service.enrich_task(session, task)


@router.get("/{task_id}", response_model=TaskDetail)
async def get_task_endpoint(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    ctx: RequestContext = Depends(require_member),
    store: SqlScopeStore = Depends(get_store),
    session: AsyncSession = Depends(get_session),
):
    task = await load_task(store, task_id, ctx.org_id, project_id)
    return await task_service.task_detail(session, task)


@router.patch("/{task_id}", response_model=TaskRead)
async def update_task_endpoint(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    task_in: TaskUpdate,
    ctx: RequestContext = Depends(require_member),
    store: SqlScopeStore = Depends(get_store),
    session: AsyncSession = Depends(get_session),
):
    task = await load_task(store, task_id, ctx.org_id, project_id)
    task = await task_service.update_task(session, store, ctx, task, task_in)
    return await task_service.enrich_task(session, task)


@router.delete("/{task_id}", status_code=204)
async def delete_task_endpoint(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    ctx: RequestContext = Depends(require_elevated),
    store: SqlScopeStore = Depends(get_store),
    session: AsyncSession = Depends(get_session),
):
    task = await load_task(store, task_id, ctx.org_id, project_id)
    await task_service.delete_task(session, ctx, task)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


@router.post("/{task_id}/dependencies", response_model=DependencyRead, status_code=201)
async def add_dependency_endpoint(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    body: DependencyAdd,
    ctx: RequestContext = Depends(require_member),
    store: SqlScopeStore = Depends(get_store),
    session: AsyncSession = Depends(get_session),
):
    """Mark this task as blocked by another task of the same project."""
    task = await load_task(store, task_id, ctx.org_id, project_id)
    dep = await task_service.add_dependency(session, store, ctx, task, body.blocked_by_id)
    return DependencyRead(task_id=dep.task_id, blocked_by_id=dep.blocked_by_id)


@router.delete("/{task_id}/dependencies/{blocked_by_id}", status_code=204)
async def remove_dependency_endpoint(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    blocked_by_id: uuid.UUID,
    ctx: RequestContext = Depends(require_member),
    store: SqlScopeStore = Depends(get_store),
    session: AsyncSession = Depends(get_session),
):
    task = await load_task(store, task_id, ctx.org_id, project_id)
    await task_service.remove_dependency(session, ctx, task, blocked_by_id)


# ---------------------------------------------------------------------------
# Org-wide
# ---------------------------------------------------------------------------


@org_router.get("", response_model=TaskListResponse)
async def list_org_tasks_endpoint(
    project_id: Optional[uuid.UUID] = None,
    parent_task_id: Optional[str] = None,
    status: Optional[TaskStatus] = None,
    assignee_id: Optional[uuid.UUID] = None,
    ctx: RequestContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Tasks across the org; ``project_id`` only narrows within it."""
    tasks = await task_service.list_tasks(
        session,
        ctx.org_id,
        project_id=project_id,
        parent_task_id=parent_task_id,
        status=status,
        assignee_id=assignee_id,
    )
    return TaskListResponse(tasks=tasks)


@org_router.post("", response_model=TaskRead, status_code=201)
async def create_org_task_endpoint(
    task_in: OrgTaskCreate,
    ctx: RequestContext = Depends(require_member),
    store: SqlScopeStore = Depends(get_store),
    session: AsyncSession = Depends(get_session),
):
    project = await load_project(store, task_in.project_id, ctx.org_id)
    task = await task_service.create_task(session, store, ctx, project, task_in)
    return await task_service.enrich_task(session, task)
