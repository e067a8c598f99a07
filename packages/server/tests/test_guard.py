"""
End-to-end isolation tests for the request guard.

Order of checks on every org-scoped route: identity (401), membership and
role in the path org (403), then entity scope (404, or 400 for parent
references in a request body).
"""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, patch

from sqlalchemy import func
from sqlmodel import select

from tenantdesk.core.auth import create_jwt
from tenantdesk.models.project import Project
from tenantdesk.models.task import Task

from conftest import auth_headers


class TestIdentity:
    async def test_missing_credentials(self, client, world):
        resp = await client.get(f"/api/v1/orgs/{world.org_a.id}/projects")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "UNAUTHORIZED"

    async def test_garbage_token(self, client, world):
        resp = await client.get(
            f"/api/v1/orgs/{world.org_a.id}/projects",
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert resp.status_code == 401

    async def test_revoked_token(self, client, world):
        with patch("tenantdesk.core.auth.is_jwt_revoked", AsyncMock(return_value=True)):
            resp = await client.get(
                f"/api/v1/orgs/{world.org_a.id}/projects", headers=auth_headers(world.admin_a)
            )
        assert resp.status_code == 401

    async def test_session_cookie(self, client, world):
        token, _ = create_jwt(world.member.id)
        client.cookies.set("td_session", token)
        resp = await client.get(f"/api/v1/orgs/{world.org_a.id}/role")
        assert resp.status_code == 200
        assert resp.json() == {"role": "MEMBER"}


class TestMembership:
    async def test_non_member_denied(self, client, world):
        resp = await client.get(f"/api/v1/orgs/{world.org_b.id}/projects", headers=auth_headers(world.admin_a))
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "ACCESS_DENIED"

    async def test_unknown_org_looks_like_foreign_org(self, client, world):
        headers = auth_headers(world.admin_a)
        real = await client.get(f"/api/v1/orgs/{world.org_b.id}", headers=headers)
        fake = await client.get(f"/api/v1/orgs/{uuid.uuid4()}", headers=headers)
        assert real.status_code == fake.status_code == 403
        assert real.json() == fake.json()

    async def test_role_checked_before_entity_lookup(self, client, world):
        # A MEMBER deleting a project that does not exist learns nothing about it.
        resp = await client.delete(
            f"/api/v1/orgs/{world.org_a.id}/projects/{uuid.uuid4()}", headers=auth_headers(world.member)
        )
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "INSUFFICIENT_PERMISSIONS"

    async def test_admin_only_route_rejects_maintainer(self, client, world):
        resp = await client.patch(
            f"/api/v1/orgs/{world.org_a.id}/members/{world.member.id}",
            json={"role": "MAINTAINER"},
            headers=auth_headers(world.maintainer),
        )
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "INSUFFICIENT_PERMISSIONS"


class TestEntityScope:
    async def test_admin_cannot_read_other_orgs_task(self, client, seed, world):
        project_a = await seed.project(world.org_a)
        project_b = await seed.project(world.org_b)
        task_b = await seed.task(project_b)
        headers = auth_headers(world.admin_a)

        via_own = await client.get(
            f"/api/v1/orgs/{world.org_a.id}/projects/{project_a.id}/tasks/{task_b.id}", headers=headers
        )
        via_foreign = await client.get(
            f"/api/v1/orgs/{world.org_a.id}/projects/{project_b.id}/tasks/{task_b.id}", headers=headers
        )
        missing = await client.get(
            f"/api/v1/orgs/{world.org_a.id}/projects/{project_a.id}/tasks/{uuid.uuid4()}", headers=headers
        )
        for resp in (via_own, via_foreign, missing):
            assert resp.status_code == 404
            assert resp.json()["error"]["code"] == "NOT_FOUND"
        assert via_own.json() == missing.json()

    async def test_cannot_update_other_orgs_task(self, client, seed, session_factory, world):
        project_a = await seed.project(world.org_a)
        project_b = await seed.project(world.org_b)
        task_b = await seed.task(project_b, title="Original")

        resp = await client.patch(
            f"/api/v1/orgs/{world.org_a.id}/projects/{project_a.id}/tasks/{task_b.id}",
            json={"title": "Hijacked"},
            headers=auth_headers(world.admin_a),
        )
        assert resp.status_code == 404
        async with session_factory() as s:
            assert (await s.get(Task, task_b.id)).title == "Original"

    async def test_cannot_read_other_orgs_project(self, client, seed, world):
        project_b = await seed.project(world.org_b)
        resp = await client.get(
            f"/api/v1/orgs/{world.org_a.id}/projects/{project_b.id}", headers=auth_headers(world.admin_a)
        )
        assert resp.status_code == 404

    async def test_foreign_parent_project_rejected(self, client, seed, session_factory, world):
        project_b = await seed.project(world.org_b)
        resp = await client.post(
            f"/api/v1/orgs/{world.org_a.id}/projects",
            json={"name": "Sneaky", "code": "SNK", "parent_id": str(project_b.id)},
            headers=auth_headers(world.member),
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Invalid parent project"
        async with session_factory() as s:
            count = await s.execute(
                select(func.count()).select_from(Project).where(Project.org_id == world.org_a.id)
            )
            assert count.scalar_one() == 0

    async def test_foreign_team_link_not_found(self, client, seed, world):
        project_a = await seed.project(world.org_a)
        team_b = await seed.team(world.org_b)
        resp = await client.post(
            f"/api/v1/orgs/{world.org_a.id}/projects/{project_a.id}/teams",
            json={"team_id": str(team_b.id)},
            headers=auth_headers(world.admin_a),
        )
        assert resp.status_code == 404
