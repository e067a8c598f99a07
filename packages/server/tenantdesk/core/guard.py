"""
Composite request guard.

Org-scoped routes depend on one of ``require_member``, ``require_elevated``
or ``require_admin``. Resolution order is fixed:

1. ``get_identity``: credential to user id, else 401.
2. ``require_role`` against the ``org_id`` path parameter, else 403.
   Nothing about the org or any target entity is read before this.
3. The route loads target entities with the fetch-then-check loaders in
   ``tenantdesk.core.scoping``.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import AbstractSet

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tenantdesk.core.auth import get_identity
from tenantdesk.core.database import get_session
from tenantdesk.core.policy import require_role
from tenantdesk.core.store import SqlScopeStore
from tenantdesk.models.organization import OrgMember
from tenantdesk_shared.schemas.common import ADMIN_ONLY, ANY_MEMBER, ELEVATED, Role


@dataclass(frozen=True)
class RequestContext:
    user_id: uuid.UUID
    org_id: uuid.UUID
    membership: OrgMember

    @property
    def role(self) -> Role:
        return Role(self.membership.role)


async def get_store(session: AsyncSession = Depends(get_session)) -> SqlScopeStore:
    return SqlScopeStore(session)


def requires(allowed_roles: AbstractSet[Role]):
    """Build a dependency admitting members whose role is in ``allowed_roles``."""
    allowed = frozenset(allowed_roles)

    async def dependency(
        org_id: uuid.UUID,
        identity: uuid.UUID = Depends(get_identity),
        store: SqlScopeStore = Depends(get_store),
    ) -> RequestContext:
        membership = await require_role(store, identity, org_id, allowed)
        return RequestContext(user_id=identity, org_id=org_id, membership=membership)

    return dependency


require_member = requires(ANY_MEMBER)
require_elevated = requires(ELEVATED)
require_admin = requires(ADMIN_ONLY)
