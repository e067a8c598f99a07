"""
Membership and entity lookups used by the policy and scoping layers.

``ScopeStore`` is the narrow read interface the access-control code depends
on. ``SqlScopeStore`` backs it with an ``AsyncSession``; tests substitute an
in-memory implementation.
"""

from __future__ import annotations

import uuid
from typing import Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from tenantdesk.models.organization import OrgMember
from tenantdesk.models.project import Project
from tenantdesk.models.task import Task
from tenantdesk.models.team import Team


class ScopeStore(Protocol):
    async def get_membership(
        self, org_id: uuid.UUID, user_id: uuid.UUID
    ) -> Optional[OrgMember]: ...

    async def get_project(self, project_id: uuid.UUID) -> Optional[Project]: ...

    async def get_task(self, task_id: uuid.UUID) -> Optional[Task]: ...

    async def get_team(self, team_id: uuid.UUID) -> Optional[Team]: ...


class SqlScopeStore:
    """ScopeStore over a request-scoped session.

    Primary-key lookups go through ``session.get`` so an entity fetched by the
    guard is the same instance the route later mutates.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_membership(
        self, org_id: uuid.UUID, user_id: uuid.UUID
    ) -> Optional[OrgMember]:
        result = await self.session.execute(
            select(OrgMember).where(
                OrgMember.org_id == org_id, OrgMember.user_id == user_id
            )
        )
        return result.scalar_one_or_none()

    async def get_project(self, project_id: uuid.UUID) -> Optional[Project]:
        return await self.session.get(Project, project_id)

    async def get_task(self, task_id: uuid.UUID) -> Optional[Task]:
        return await self.session.get(Task, task_id)

    async def get_team(self, team_id: uuid.UUID) -> Optional[Team]:
        return await self.session.get(Team, team_id)
