"""
Integration tests for organization endpoints and invite acceptance.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from tenantdesk.core.database import flush_unique
from tenantdesk.core.errors import Conflict
from tenantdesk.models.organization import Organization, OrgInvite, OrgMember
from tenantdesk.models.project import Project
from tenantdesk.models.task import Task
from tenantdesk.models.team import Team
from tenantdesk.services import organizations as org_service
from tenantdesk_shared.schemas.common import Role
from tenantdesk_shared.schemas.organizations import OrgCreateRequest

from conftest import auth_headers

ORG_BODY = {
    "name": "Acme",
    "legal_name": "Acme Corp",
    "country": "ZA",
    "address": "1 Main Road",
    "contact_email": "ops@acme.com",
    "contact_phone": "+27 21 000 0000",
}


async def _count(session_factory, model, *where) -> int:
    async with session_factory() as s:
        stmt = select(func.count()).select_from(model)
        for clause in where:
            stmt = stmt.where(clause)
        return (await s.execute(stmt)).scalar_one()


class TestCreateOrg:
    async def test_creator_becomes_admin(self, client, seed, session_factory):
        user = await seed.user()
        resp = await client.post("/api/v1/orgs", json=ORG_BODY, headers=auth_headers(user))
        assert resp.status_code == 201
        body = resp.json()
        assert body["role"] == "ADMIN"
        assert body["counts"]["members"] == 1
        async with session_factory() as s:
            membership = await s.get(OrgMember, (uuid.UUID(body["id"]), user.id))
        assert membership.role == Role.ADMIN.value

    async def test_two_creates_are_independent(self, client, seed, session_factory):
        user = await seed.user()
        first = await client.post("/api/v1/orgs", json=ORG_BODY, headers=auth_headers(user))
        second = await client.post("/api/v1/orgs", json=ORG_BODY, headers=auth_headers(user))
        assert first.json()["id"] != second.json()["id"]
        assert await _count(session_factory, OrgMember, OrgMember.user_id == user.id) == 2

    async def test_org_and_membership_commit_together(self, seed, session_factory):
        user = await seed.user()
        async with session_factory() as s:
            await org_service.create_org(s, OrgCreateRequest(**ORG_BODY), user.id)
            await s.rollback()
        assert await _count(session_factory, Organization) == 0
        assert await _count(session_factory, OrgMember) == 0

    async def test_requires_authentication(self, client):
        resp = await client.post("/api/v1/orgs", json=ORG_BODY)
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "UNAUTHORIZED"

    async def test_invalid_body(self, client, seed):
        user = await seed.user()
        resp = await client.post("/api/v1/orgs", json={"name": ""}, headers=auth_headers(user))
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"
        assert resp.json()["error"]["details"]


class TestReadOrg:
    async def test_list_only_own_orgs(self, client, world):
        resp = await client.get("/api/v1/orgs", headers=auth_headers(world.member))
        assert resp.status_code == 200
        orgs = resp.json()["data"]
        assert [o["id"] for o in orgs] == [str(world.org_a.id)]
        assert orgs[0]["role"] == "MEMBER"

    async def test_detail_lists_top_level_projects(self, client, seed, world):
        parent = await seed.project(world.org_a, "ROOT")
        await seed.project(world.org_a, "CHILD", parent=parent)
        resp = await client.get(f"/api/v1/orgs/{world.org_a.id}", headers=auth_headers(world.member))
        assert resp.status_code == 200
        body = resp.json()
        assert [p["code"] for p in body["projects"]] == ["ROOT"]
        assert body["counts"] == {"members": 3, "teams": 0, "projects": 2}

    async def test_role_endpoint(self, client, world):
        resp = await client.get(f"/api/v1/orgs/{world.org_a.id}/role", headers=auth_headers(world.maintainer))
        assert resp.json() == {"role": "MAINTAINER"}


class TestUpdateDeleteOrg:
    async def test_admin_updates(self, client, world):
        resp = await client.patch(
            f"/api/v1/orgs/{world.org_a.id}",
            json={"name": "Renamed", "status": "SUSPENDED"},
            headers=auth_headers(world.admin_a),
        )
        assert resp.status_code == 200
        assert resp.json()["name"] == "Renamed"
        assert resp.json()["status"] == "SUSPENDED"

    async def test_maintainer_cannot_update(self, client, world):
        resp = await client.patch(
            f"/api/v1/orgs/{world.org_a.id}", json={"name": "X"}, headers=auth_headers(world.maintainer)
        )
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "INSUFFICIENT_PERMISSIONS"

    @pytest.mark.parametrize("field", ["status", "name"])
    async def test_null_for_required_field(self, client, session_factory, world, field):
        resp = await client.patch(
            f"/api/v1/orgs/{world.org_a.id}", json={field: None}, headers=auth_headers(world.admin_a)
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"
        async with session_factory() as s:
            org = await s.get(Organization, world.org_a.id)
        assert (org.name, org.status) == ("Org A", "ACTIVE")

    async def test_delete_cascades(self, client, seed, world, session_factory):
        project = await seed.project(world.org_a)
        child = await seed.project(world.org_a, parent=project)
        await seed.task(child)
        await seed.team(world.org_a)
        other = await seed.project(world.org_b)

        resp = await client.delete(f"/api/v1/orgs/{world.org_a.id}", headers=auth_headers(world.admin_a))
        assert resp.status_code == 204

        assert await _count(session_factory, Organization, Organization.id == world.org_a.id) == 0
        assert await _count(session_factory, OrgMember, OrgMember.org_id == world.org_a.id) == 0
        assert await _count(session_factory, Project, Project.org_id == world.org_a.id) == 0
        assert await _count(session_factory, Team, Team.org_id == world.org_a.id) == 0
        assert await _count(session_factory, Task) == 0
        assert await _count(session_factory, Project, Project.id == other.id) == 1


class TestAcceptInvite:
    async def _invite(self, seed, org, inviter, email, **kw) -> OrgInvite:
        return await seed.add(
            OrgInvite(
                org_id=org.id,
                email=email,
                role=kw.get("role", "MEMBER"),
                token=kw.get("token", uuid.uuid4().hex + uuid.uuid4().hex),
                status=kw.get("status", "PENDING"),
                expires_at=kw.get("expires_at", datetime.now(timezone.utc) + timedelta(days=2)),
                invited_by=inviter.id,
            )
        )

    async def test_accept_creates_membership(self, client, seed, world):
        invitee = await seed.user("ivy")
        invite = await self._invite(seed, world.org_a, world.admin_a, invitee.email, role="MAINTAINER")
        resp = await client.post(f"/api/v1/invites/{invite.token}/accept", headers=auth_headers(invitee))
        assert resp.status_code == 200
        assert resp.json()["role"] == "MAINTAINER"

        role = await client.get(f"/api/v1/orgs/{world.org_a.id}/role", headers=auth_headers(invitee))
        assert role.json() == {"role": "MAINTAINER"}

    async def test_invite_for_someone_else(self, client, seed, world):
        invitee = await seed.user("ivy")
        invite = await self._invite(seed, world.org_a, world.admin_a, "someone@example.com")
        resp = await client.post(f"/api/v1/invites/{invite.token}/accept", headers=auth_headers(invitee))
        assert resp.status_code == 404

    async def test_expired_invite(self, client, seed, world):
        invitee = await seed.user("ivy")
        invite = await self._invite(
            seed, world.org_a, world.admin_a, invitee.email,
            expires_at=datetime.now(timezone.utc) - timedelta(minutes=1),
        )
        resp = await client.post(f"/api/v1/invites/{invite.token}/accept", headers=auth_headers(invitee))
        assert resp.status_code == 400

    async def test_already_accepted(self, client, seed, world):
        invitee = await seed.user("ivy")
        invite = await self._invite(seed, world.org_a, world.admin_a, invitee.email, status="ACCEPTED")
        resp = await client.post(f"/api/v1/invites/{invite.token}/accept", headers=auth_headers(invitee))
        assert resp.status_code == 400

    async def test_already_member(self, client, seed, world):
        invite = await self._invite(seed, world.org_a, world.admin_a, world.member.email)
        resp = await client.post(f"/api/v1/invites/{invite.token}/accept", headers=auth_headers(world.member))
        assert resp.status_code == 409


class TestUniqueViolations:
    async def test_duplicate_membership_flush_is_conflict(self, session_factory, world):
        async with session_factory() as s:
            s.add(OrgMember(org_id=world.org_a.id, user_id=world.member.id, role="MEMBER"))
            with pytest.raises(Conflict) as exc:
                await flush_unique(s, Conflict("User is already a member of this organization"))
            await s.rollback()
        assert exc.value.status_code == 409
        assert isinstance(exc.value.__cause__, IntegrityError)
