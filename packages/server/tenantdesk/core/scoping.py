"""
Entity scoping guards.

Every entity reached through an org-scoped route is fetched by id and then
checked against the org id taken from the path. A mismatch is reported as
NotFound, exactly as if the id did not exist. Parent references supplied on
create are a different failure: they are the caller's input, so they raise
ValidationError.
"""

from __future__ import annotations

import uuid
from typing import Any, Optional

import structlog

from tenantdesk.core.errors import NotFound, ValidationError
from tenantdesk.core.store import ScopeStore
from tenantdesk.models.project import Project
from tenantdesk.models.task import Task
from tenantdesk.models.team import Team

log = structlog.get_logger()


def verify_scope(entity: Any, claimed_org_id: uuid.UUID, label: str) -> Any:
    """Check an entity with a direct ``org_id``. Returns the entity."""
    if entity is None or entity.org_id != claimed_org_id:
        if entity is not None:
            log.info(
                "scope.not_found",
                entity=label,
                entity_id=str(entity.id),
                claimed_org_id=str(claimed_org_id),
            )
        raise NotFound(f"{label} not found")
    return entity


async def verify_task_scope(
    store: ScopeStore,
    task: Optional[Task],
    claimed_org_id: uuid.UUID,
    project_id: Optional[uuid.UUID] = None,
) -> Task:
    """Walk Task -> Project -> Organization and compare at the root.

    When ``project_id`` is given the task must also sit directly in that project.
    """
    if task is None:
        raise NotFound("Task not found")
    if project_id is not None and task.project_id != project_id:
        log.info("scope.not_found", entity="Task", entity_id=str(task.id), project_id=str(project_id))
        raise NotFound("Task not found")

    project = await store.get_project(task.project_id)
    if project is None or project.org_id != claimed_org_id:
        log.info("scope.not_found", entity="Task", entity_id=str(task.id), claimed_org_id=str(claimed_org_id))
        raise NotFound("Task not found")
    return task


async def validate_parent_project(
    store: ScopeStore, parent_id: Optional[uuid.UUID], org_id: uuid.UUID
) -> Optional[Project]:
    if parent_id is None:
        return None
    parent = await store.get_project(parent_id)
    if parent is None or parent.org_id != org_id:
        raise ValidationError("Invalid parent project")
    return parent


async def validate_parent_task(
    store: ScopeStore, parent_id: Optional[uuid.UUID], project_id: uuid.UUID
) -> Optional[Task]:
    if parent_id is None:
        return None
    parent = await store.get_task(parent_id)
    if parent is None or parent.project_id != project_id:
        raise ValidationError("Invalid parent task")
    return parent


# ---------------------------------------------------------------------------
# Fetch-then-check loaders
# ---------------------------------------------------------------------------

async def load_project(
    store: ScopeStore, project_id: uuid.UUID, org_id: uuid.UUID
) -> Project:
    return verify_scope(await store.get_project(project_id), org_id, "Project")


async def load_team(store: ScopeStore, team_id: uuid.UUID, org_id: uuid.UUID) -> Team:
    return verify_scope(await store.get_team(team_id), org_id, "Team")


async def load_task(
    store: ScopeStore,
    task_id: uuid.UUID,
    org_id: uuid.UUID,
    project_id: Optional[uuid.UUID] = None,
) -> Task:
    return await verify_task_scope(store, await store.get_task(task_id), org_id, project_id)
