"""Fetch-then-check scoping for projects, teams and tasks."""

from __future__ import annotations

import uuid

import pytest

from tenantdesk.core.errors import NotFound, ValidationError
from tenantdesk.core.scoping import (
    load_project,
    load_task,
    load_team,
    validate_parent_project,
    validate_parent_task,
    verify_scope,
)


class TestVerifyScope:
    def test_returns_entity_in_scope(self, store):
        org_id = uuid.uuid4()
        project = store.add_project(org_id)
        assert verify_scope(project, org_id, "Project") is project

    def test_foreign_entity_is_not_found(self, store):
        project = store.add_project(uuid.uuid4())
        with pytest.raises(NotFound) as exc:
            verify_scope(project, uuid.uuid4(), "Project")
        assert exc.value.message == "Project not found"

    def test_missing_entity_is_not_found(self):
        with pytest.raises(NotFound):
            verify_scope(None, uuid.uuid4(), "Team")

    async def test_missing_and_foreign_are_indistinguishable(self, store):
        org_a, org_b = uuid.uuid4(), uuid.uuid4()
        foreign = store.add_project(org_b)
        with pytest.raises(NotFound) as missing_exc:
            await load_project(store, uuid.uuid4(), org_a)
        with pytest.raises(NotFound) as foreign_exc:
            await load_project(store, foreign.id, org_a)
        assert missing_exc.value.to_dict() == foreign_exc.value.to_dict()


class TestLoaders:
    async def test_load_team(self, store):
        org_id = uuid.uuid4()
        team = store.add_team(org_id)
        assert await load_team(store, team.id, org_id) is team
        with pytest.raises(NotFound):
            await load_team(store, team.id, uuid.uuid4())

    async def test_task_scope_follows_project(self, store):
        org_a, org_b = uuid.uuid4(), uuid.uuid4()
        task = store.add_task(store.add_project(org_b))
        with pytest.raises(NotFound):
            await load_task(store, task.id, org_a)
        assert await load_task(store, task.id, org_b) is task

    async def test_task_must_sit_in_claimed_project(self, store):
        org_id = uuid.uuid4()
        p1, p2 = store.add_project(org_id), store.add_project(org_id)
        task = store.add_task(p1)
        assert await load_task(store, task.id, org_id, p1.id) is task
        with pytest.raises(NotFound):
            await load_task(store, task.id, org_id, p2.id)

    async def test_task_with_missing_project_is_not_found(self, store):
        org_id = uuid.uuid4()
        project = store.add_project(org_id)
        task = store.add_task(project)
        del store.projects[project.id]
        with pytest.raises(NotFound):
            await load_task(store, task.id, org_id)


class TestParentValidation:
    async def test_no_parent(self, store):
        assert await validate_parent_project(store, None, uuid.uuid4()) is None
        assert await validate_parent_task(store, None, uuid.uuid4()) is None

    async def test_parent_project_in_same_org(self, store):
        org_id = uuid.uuid4()
        parent = store.add_project(org_id)
        assert await validate_parent_project(store, parent.id, org_id) is parent

    async def test_parent_project_from_other_org(self, store):
        parent = store.add_project(uuid.uuid4())
        with pytest.raises(ValidationError) as exc:
            await validate_parent_project(store, parent.id, uuid.uuid4())
        assert exc.value.status_code == 400
        assert exc.value.message == "Invalid parent project"

    async def test_parent_project_missing(self, store):
        with pytest.raises(ValidationError):
            await validate_parent_project(store, uuid.uuid4(), uuid.uuid4())

    async def test_parent_task_must_share_project(self, store):
        org_id = uuid.uuid4()
        p1, p2 = store.add_project(org_id), store.add_project(org_id)
        parent = store.add_task(p1)
        assert await validate_parent_task(store, parent.id, p1.id) is parent
        with pytest.raises(ValidationError) as exc:
            await validate_parent_task(store, parent.id, p2.id)
        assert exc.value.message == "Invalid parent task"
