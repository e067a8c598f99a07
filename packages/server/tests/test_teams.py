"""Integration tests for teams and team membership."""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, patch

from sqlmodel import select

from tenantdesk.models.project import ProjectTeamLink
from tenantdesk.models.team import Team, TeamMember

from conftest import auth_headers


def _url(world, suffix=""):
    return f"/api/v1/orgs/{world.org_a.id}/teams{suffix}"


class TestTeamCrud:
    async def test_create_and_list(self, client, world):
        headers = auth_headers(world.maintainer)
        resp = await client.post(_url(world), json={"name": "Platform"}, headers=headers)
        assert resp.status_code == 201
        assert resp.json()["org_id"] == str(world.org_a.id)
        assert resp.json()["member_count"] == 0

        listed = await client.get(_url(world), headers=auth_headers(world.member))
        assert [t["name"] for t in listed.json()["teams"]] == ["Platform"]

    async def test_member_cannot_create(self, client, world):
        resp = await client.post(_url(world), json={"name": "Platform"}, headers=auth_headers(world.member))
        assert resp.status_code == 403

    async def test_duplicate_name_conflicts(self, client, seed, world):
        await seed.team(world.org_a, "Platform")
        resp = await client.post(_url(world), json={"name": "Platform"}, headers=auth_headers(world.admin_a))
        assert resp.status_code == 409

    async def test_name_taken_between_check_and_insert(self, client, seed, world):
        await seed.team(world.org_a, "Platform")
        with patch("tenantdesk.services.teams._ensure_name_free", AsyncMock()):
            resp = await client.post(_url(world), json={"name": "Platform"}, headers=auth_headers(world.admin_a))
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "CONFLICT"

    async def test_same_name_in_other_org_is_fine(self, client, seed, world):
        await seed.team(world.org_b, "Platform")
        resp = await client.post(_url(world), json={"name": "Platform"}, headers=auth_headers(world.admin_a))
        assert resp.status_code == 201

    async def test_rename(self, client, seed, world):
        team = await seed.team(world.org_a, "Old")
        resp = await client.patch(
            _url(world, f"/{team.id}"), json={"name": "New"}, headers=auth_headers(world.admin_a)
        )
        assert resp.status_code == 200
        assert resp.json()["name"] == "New"

    async def test_foreign_team_not_found(self, client, seed, world):
        team_b = await seed.team(world.org_b)
        headers = auth_headers(world.admin_a)
        assert (await client.get(_url(world, f"/{team_b.id}"), headers=headers)).status_code == 404
        assert (await client.delete(_url(world, f"/{team_b.id}"), headers=headers)).status_code == 404

    async def test_delete_removes_seats_and_links(self, client, seed, session_factory, world):
        team = await seed.team(world.org_a)
        project = await seed.project(world.org_a)
        await seed.add(
            TeamMember(team_id=team.id, user_id=world.member.id),
            ProjectTeamLink(project_id=project.id, team_id=team.id),
        )

        resp = await client.delete(_url(world, f"/{team.id}"), headers=auth_headers(world.maintainer))
        assert resp.status_code == 204
        async with session_factory() as s:
            assert await s.get(Team, team.id) is None
            assert (await s.execute(select(TeamMember))).all() == []
            assert (await s.execute(select(ProjectTeamLink))).all() == []


class TestTeamMembers:
    async def test_add_and_list(self, client, seed, world):
        team = await seed.team(world.org_a)
        resp = await client.post(
            _url(world, f"/{team.id}/members"),
            json={"user_id": str(world.member.id), "role": "Lead"},
            headers=auth_headers(world.maintainer),
        )
        assert resp.status_code == 201
        assert resp.json()["role"] == "Lead"

        listed = await client.get(_url(world, f"/{team.id}/members"), headers=auth_headers(world.member))
        assert [m["user_id"] for m in listed.json()["members"]] == [str(world.member.id)]
        assert listed.json()["pagination"]["total"] == 1

    async def test_non_org_user_rejected(self, client, seed, world):
        team = await seed.team(world.org_a)
        resp = await client.post(
            _url(world, f"/{team.id}/members"),
            json={"user_id": str(world.admin_b.id)},
            headers=auth_headers(world.admin_a),
        )
        assert resp.status_code == 400

    async def test_duplicate_seat(self, client, seed, world):
        team = await seed.team(world.org_a)
        await seed.add(TeamMember(team_id=team.id, user_id=world.member.id))
        resp = await client.post(
            _url(world, f"/{team.id}/members"),
            json={"user_id": str(world.member.id)},
            headers=auth_headers(world.admin_a),
        )
        assert resp.status_code == 409

    async def test_remove(self, client, seed, world):
        team = await seed.team(world.org_a)
        await seed.add(TeamMember(team_id=team.id, user_id=world.member.id))
        headers = auth_headers(world.admin_a)
        resp = await client.delete(_url(world, f"/{team.id}/members/{world.member.id}"), headers=headers)
        assert resp.status_code == 204
        again = await client.delete(_url(world, f"/{team.id}/members/{world.member.id}"), headers=headers)
        assert again.status_code == 404

    async def test_remove_unknown_user(self, client, seed, world):
        team = await seed.team(world.org_a)
        resp = await client.delete(
            _url(world, f"/{team.id}/members/{uuid.uuid4()}"), headers=auth_headers(world.admin_a)
        )
        assert resp.status_code == 404
