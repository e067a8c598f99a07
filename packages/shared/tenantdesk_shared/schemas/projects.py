from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from pydantic import UUID4, BaseModel, Field

from .common import ProjectStatus, TransactionScope, TransactionType


class ProjectBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    code: str = Field(min_length=1, max_length=50)
    description: Optional[str] = None
    status: ProjectStatus = ProjectStatus.PLANNED
    start_date: Optional[datetime] = None
    deadline: Optional[datetime] = None
    budget_total: Optional[Decimal] = None
    currency: str = Field(default="USD", min_length=3, max_length=3)


class ProjectCreate(ProjectBase):
    parent_id: Optional[UUID4] = None


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    code: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = None
    status: Optional[ProjectStatus] = None
    start_date: Optional[datetime] = None
    deadline: Optional[datetime] = None
    budget_total: Optional[Decimal] = None
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)


class ProjectRef(BaseModel):
    id: UUID4
    name: str
    code: str

    model_config = {"from_attributes": True}


class ProjectRead(ProjectBase):
    id: UUID4
    org_id: UUID4
    parent_id: Optional[UUID4] = None
    parent: Optional[ProjectRef] = None
    created_by: Optional[UUID4] = None
    child_count: int = 0
    task_count: int = 0
    team_count: int = 0
    created_at: datetime
    updated_at: datetime


class ProjectListResponse(BaseModel):
    projects: List[ProjectRead]


class ProjectChild(BaseModel):
    id: UUID4
    name: str
    code: str
    status: ProjectStatus
    deadline: Optional[datetime] = None

    model_config = {"from_attributes": True}


class TeamBrief(BaseModel):
    id: UUID4
    name: str
    description: Optional[str] = None
    member_count: int = 0


class TeamAssign(BaseModel):
    team_id: UUID4


# ---------------------------------------------------------------------------
# Transactions & cost roll-up
# ---------------------------------------------------------------------------


class TransactionCreate(BaseModel):
    type: TransactionType
    amount: Decimal = Field(gt=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    task_id: Optional[UUID4] = None
    occurred_at: Optional[datetime] = None
    note: Optional[str] = None


class TransactionRead(BaseModel):
    id: UUID4
    org_id: UUID4
    project_id: UUID4
    task_id: Optional[UUID4] = None
    type: TransactionType
    scope: TransactionScope
    amount: Decimal
    currency: str
    occurred_at: datetime
    note: Optional[str] = None
    created_by: Optional[UUID4] = None

    model_config = {"from_attributes": True}


class TransactionListResponse(BaseModel):
    transactions: List[TransactionRead]


class ProjectDetail(ProjectRead):
    children: List[ProjectChild] = Field(default_factory=list)
    teams: List[TeamBrief] = Field(default_factory=list)
    transactions: List[TransactionRead] = Field(default_factory=list)
    work_log_count: int = 0
    total_cost: Decimal = Decimal("0")
    total_budget: Decimal = Decimal("0")


def compute_rollup(
    budget_total: Optional[Decimal], transactions: Iterable[tuple[str, Decimal]]
) -> tuple[Decimal, Decimal]:
    """Return (total_cost, total_budget) for a project.

    total_cost is the sum of EXPENSE amounts; total_budget starts at the
    project's own budget and adds every BUDGET_ADD amount.
    """
    total_cost = Decimal("0")
    total_budget = Decimal(budget_total or 0)
    for tx_type, amount in transactions:
        if tx_type == TransactionType.EXPENSE.value:
            total_cost += Decimal(amount)
        elif tx_type == TransactionType.BUDGET_ADD.value:
            total_budget += Decimal(amount)
    return total_cost, total_budget
