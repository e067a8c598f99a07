"""
Shared fixtures.

Integration tests run the real app against an in-memory SQLite database
(aiosqlite, one shared connection) with ``get_session`` overridden. Redis is
never contacted: JWT revocation checks are patched out.
"""

from __future__ import annotations

import uuid
from typing import Optional
from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import tenantdesk.models  # noqa: F401
from tenantdesk.core.auth import create_jwt
from tenantdesk.core.database import get_session
from tenantdesk.main import app
from tenantdesk.models.organization import Organization, OrgMember
from tenantdesk.models.project import Project
from tenantdesk.models.task import Task
from tenantdesk.models.team import Team
from tenantdesk.models.user import User
from tenantdesk_shared.schemas.common import Role


# ---------------------------------------------------------------------------
# In-memory store for pure policy/scoping tests
# ---------------------------------------------------------------------------

class FakeScopeStore:
    """Dict-backed ScopeStore."""

    def __init__(self):
        self.memberships: dict[tuple[uuid.UUID, uuid.UUID], OrgMember] = {}
        self.projects: dict[uuid.UUID, Project] = {}
        self.tasks: dict[uuid.UUID, Task] = {}
        self.teams: dict[uuid.UUID, Team] = {}

    def add_member(self, org_id, user_id, role: Role) -> OrgMember:
        m = OrgMember(org_id=org_id, user_id=user_id, role=role.value)
        self.memberships[(org_id, user_id)] = m
        return m

    def add_project(self, org_id, parent_id=None) -> Project:
        p = Project(org_id=org_id, parent_id=parent_id, name="P", code=uuid.uuid4().hex[:6])
        self.projects[p.id] = p
        return p

    def add_task(self, project: Project, parent_id=None) -> Task:
        t = Task(project_id=project.id, parent_id=parent_id, title="T")
        self.tasks[t.id] = t
        return t

    def add_team(self, org_id) -> Team:
        t = Team(org_id=org_id, name="Team")
        self.teams[t.id] = t
        return t

    async def get_membership(self, org_id, user_id):
        return self.memberships.get((org_id, user_id))

    async def get_project(self, project_id):
        return self.projects.get(project_id)

    async def get_task(self, task_id):
        return self.tasks.get(task_id)

    async def get_team(self, team_id):
        return self.teams.get(team_id)


@pytest.fixture
def store() -> FakeScopeStore:
    return FakeScopeStore()


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


class Seed:
    """Commits fixture rows through short-lived sessions."""

    def __init__(self, factory):
        self.factory = factory

    async def add(self, *rows):
        async with self.factory() as session:
            session.add_all(rows)
            await session.commit()
        return rows[0] if len(rows) == 1 else rows

    async def user(self, name: Optional[str] = None, password_hash: Optional[str] = None) -> User:
        name = name or f"user-{uuid.uuid4().hex[:8]}"
        return await self.add(User(email=f"{name}@example.com", name=name, password_hash=password_hash))

    async def org(self, admin: User, name: str = "Acme") -> Organization:
        org = Organization(name=name, legal_name=f"{name} Ltd", created_by=admin.id)
        await self.add(org)
        await self.add(OrgMember(org_id=org.id, user_id=admin.id, role=Role.ADMIN.value))
        return org

    async def member(self, org: Organization, user: User, role: Role = Role.MEMBER) -> OrgMember:
        return await self.add(OrgMember(org_id=org.id, user_id=user.id, role=role.value))

    async def project(self, org: Organization, code: Optional[str] = None, parent: Optional[Project] = None, **kw) -> Project:
        return await self.add(
            Project(
                org_id=org.id,
                parent_id=parent.id if parent else None,
                name=kw.pop("name", "Project"),
                code=code or uuid.uuid4().hex[:6].upper(),
                **kw,
            )
        )

    async def team(self, org: Organization, name: str = "Core") -> Team:
        return await self.add(Team(org_id=org.id, name=name))

    async def task(self, project: Project, title: str = "Task", parent: Optional[Task] = None, **kw) -> Task:
        return await self.add(
            Task(project_id=project.id, parent_id=parent.id if parent else None, title=title, **kw)
        )


@pytest.fixture
def seed(session_factory) -> Seed:
    return Seed(session_factory)


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

def auth_headers(user: User) -> dict[str, str]:
    token, _ = create_jwt(user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def client(session_factory):
    async def override_get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    with patch("tenantdesk.core.auth.is_jwt_revoked", AsyncMock(return_value=False)):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def world(seed):
    """Two orgs with one admin each, plus a maintainer and a member in org A."""
    admin_a = await seed.user("alice")
    admin_b = await seed.user("bob")
    maintainer = await seed.user("mia")
    member = await seed.user("max")
    org_a = await seed.org(admin_a, "Org A")
    org_b = await seed.org(admin_b, "Org B")
    await seed.member(org_a, maintainer, Role.MAINTAINER)
    await seed.member(org_a, member, Role.MEMBER)

    class World:
        pass

    w = World()
    w.admin_a, w.admin_b, w.maintainer, w.member = admin_a, admin_b, maintainer, member
    w.org_a, w.org_b = org_a, org_b
    return w
