"""Integration tests for project work logs."""

from __future__ import annotations

import uuid
from types import SimpleNamespace
from datetime import datetime, timedelta, timezone

from sqlmodel import select

from tenantdesk.models.work_log import WorkLog, WorkLogSegment

from conftest import auth_headers

START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def _url(world, project):
    return f"/api/v1/orgs/{world.org_a.id}/projects/{project.id}/work-logs"


def _segment(start_offset_min: int, minutes: int) -> dict:
    start = START + timedelta(minutes=start_offset_min)
    return {"start_dt": start.isoformat(), "end_dt": (start + timedelta(minutes=minutes)).isoformat()}


class TestCreateWorkLog:
    async def test_totals_segments(self, client, seed, session_factory, world):
        project = await seed.project(world.org_a)
        task = await seed.task(project)
        resp = await client.post(
            _url(world, project),
            json={"task_id": str(task.id), "note": "pairing", "segments": [_segment(0, 90), _segment(120, 30)]},
            headers=auth_headers(world.member),
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["total_duration_min"] == 120
        assert [s["duration_min"] for s in body["segments"]] == [90, 30]
        assert body["user_id"] == str(world.member.id)
        assert body["org_id"] == str(world.org_a.id)

        async with session_factory() as s:
            assert len((await s.execute(select(WorkLogSegment))).all()) == 2

    async def test_inverted_segment(self, client, seed, session_factory, world):
        project = await seed.project(world.org_a)
        bad = {"start_dt": START.isoformat(), "end_dt": (START - timedelta(minutes=5)).isoformat()}
        resp = await client.post(_url(world, project), json={"segments": [bad]}, headers=auth_headers(world.member))
        assert resp.status_code == 400
        async with session_factory() as s:
            assert (await s.execute(select(WorkLog))).all() == []

    async def test_needs_a_segment(self, client, seed, world):
        project = await seed.project(world.org_a)
        resp = await client.post(_url(world, project), json={"segments": []}, headers=auth_headers(world.member))
        assert resp.status_code == 400

    async def test_task_from_other_project(self, client, seed, world):
        project = await seed.project(world.org_a)
        other = await seed.project(world.org_a)
        task = await seed.task(other)
        resp = await client.post(
            _url(world, project),
            json={"task_id": str(task.id), "segments": [_segment(0, 10)]},
            headers=auth_headers(world.member),
        )
        assert resp.status_code == 404

    async def test_foreign_project(self, client, seed, world):
        project_b = await seed.project(world.org_b)
        resp = await client.post(
            _url(world, project_b), json={"segments": [_segment(0, 10)]}, headers=auth_headers(world.admin_a)
        )
        assert resp.status_code == 404


class TestListWorkLogs:
    async def _log(self, seed, world, project, user, minutes, created_at=None):
        entry = WorkLog(
            org_id=world.org_a.id,
            project_id=project.id,
            user_id=user.id,
            total_duration_min=minutes,
            created_at=created_at or datetime.now(timezone.utc),
        )
        return await seed.add(entry)

    async def test_paginates_and_sorts(self, client, seed, world):
        project = await seed.project(world.org_a)
        for minutes in (5, 50, 15, 25):
            await self._log(seed, world, project, world.member, minutes)
        headers = auth_headers(world.member)

        first = await client.get(
            _url(world, project), params={"sort_by": "duration", "sort_order": "asc", "limit": 3}, headers=headers
        )
        assert [w["total_duration_min"] for w in first.json()["work_logs"]] == [5, 15, 25]
        assert first.json()["pagination"] == {
            "page": 1, "limit": 3, "total": 4, "total_pages": 2, "has_next": True, "has_prev": False,
        }

        second = await client.get(
            _url(world, project),
            params={"sort_by": "duration", "sort_order": "asc", "limit": 3, "page": 2},
            headers=headers,
        )
        assert [w["total_duration_min"] for w in second.json()["work_logs"]] == [50]

    async def test_pages_through_ties(self, client, seed, world):
        project = await seed.project(world.org_a)
        created_at = datetime(2026, 3, 1, tzinfo=timezone.utc)
        logs = [
            await self._log(seed, world, project, world.member, 30, created_at=created_at)
            for _ in range(7)
        ]
        headers = auth_headers(world.member)

        seen = []
        for page in (1, 2, 3):
            resp = await client.get(
                _url(world, project),
                params={"sort_by": "duration", "limit": 3, "page": page},
                headers=headers,
            )
            seen.extend(w["id"] for w in resp.json()["work_logs"])
        assert len(seen) == 7
        assert set(seen) == {str(log.id) for log in logs}

    async def test_unknown_sort_key_is_newest_first(self, client, seed, world):
        project = await seed.project(world.org_a)
        old = await self._log(seed, world, project, world.member, 10, created_at=START - timedelta(days=30))
        new = await self._log(seed, world, project, world.member, 20, created_at=START)
        resp = await client.get(
            _url(world, project),
            params={"sort_by": "user_id", "sort_order": "asc"},
            headers=auth_headers(world.member),
        )
        assert [w["id"] for w in resp.json()["work_logs"]] == [str(new.id), str(old.id)]

    async def test_filters(self, client, seed, world):
        project = await seed.project(world.org_a)
        old = datetime(2026, 1, 1, tzinfo=timezone.utc)
        await self._log(seed, world, project, world.member, 10, created_at=old)
        await self._log(seed, world, project, world.maintainer, 20)
        headers = auth_headers(world.member)

        by_user = await client.get(_url(world, project), params={"user_id": str(world.maintainer.id)}, headers=headers)
        assert [w["total_duration_min"] for w in by_user.json()["work_logs"]] == [20]

        by_date = await client.get(
            _url(world, project), params={"end_date": "2026-02-01T00:00:00"}, headers=headers
        )
        assert [w["total_duration_min"] for w in by_date.json()["work_logs"]] == [10]

        by_name = await client.get(_url(world, project), params={"search": "mia"}, headers=headers)
        assert [w["user"]["name"] for w in by_name.json()["work_logs"]] == ["mia"]

    async def test_other_projects_excluded(self, client, seed, world):
        project = await seed.project(world.org_a)
        other = await seed.project(world.org_a)
        await self._log(seed, world, other, world.member, 10)
        resp = await client.get(_url(world, project), headers=auth_headers(world.member))
        assert resp.json()["work_logs"] == []
        assert resp.json()["pagination"]["total"] == 0

    async def test_unknown_project(self, client, world):
        missing = SimpleNamespace(id=uuid.uuid4())
        resp = await client.get(_url(world, missing), headers=auth_headers(world.member))
        assert resp.status_code == 404
