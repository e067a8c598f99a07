import math
import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class Role(str, Enum):
    ADMIN = "ADMIN"
    MAINTAINER = "MAINTAINER"
    MEMBER = "MEMBER"


# Explicit allow-lists. ADMIN is never implied; it is listed wherever it applies.
ANY_MEMBER: frozenset[Role] = frozenset({Role.ADMIN, Role.MAINTAINER, Role.MEMBER})
ELEVATED: frozenset[Role] = frozenset({Role.ADMIN, Role.MAINTAINER})
ADMIN_ONLY: frozenset[Role] = frozenset({Role.ADMIN})


class ProjectStatus(str, Enum):
    PLANNED = "PLANNED"
    IN_PROGRESS = "IN_PROGRESS"
    HOLD = "HOLD"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class TaskType(str, Enum):
    BUG = "BUG"
    FEATURE = "FEATURE"
    TASK = "TASK"
    CHANGE = "CHANGE"
    RESEARCH = "RESEARCH"
    OTHER = "OTHER"


class TaskStatus(str, Enum):
    BACKLOG = "BACKLOG"
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    BLOCKED = "BLOCKED"
    REVIEW = "REVIEW"
    DONE = "DONE"
    ARCHIVED = "ARCHIVED"


class TaskPriority(str, Enum):
    P0 = "P0"
    P1 = "P1"
    P2 = "P2"
    P3 = "P3"
    P4 = "P4"


class TransactionType(str, Enum):
    BUDGET_ADD = "BUDGET_ADD"
    EXPENSE = "EXPENSE"
    INCOME = "INCOME"
    ADJUSTMENT = "ADJUSTMENT"


class TransactionScope(str, Enum):
    PROJECT = "PROJECT"
    TASK = "TASK"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = math.ceil(total / limit) if limit > 0 else 0
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


class UserSummary(BaseModel):
    id: uuid.UUID
    email: Optional[str] = None
    name: Optional[str] = None
    avatar: Optional[str] = None

    model_config = {"from_attributes": True}
