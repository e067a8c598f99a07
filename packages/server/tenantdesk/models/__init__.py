# SQLModel definitions, imported here so metadata is populated before create_all.
from .base import UUIDMixin, TimestampMixin  # noqa: F401
from .user import User  # noqa: F401
from .organization import Organization, OrgMember, OrgInvite  # noqa: F401
from .team import Team, TeamMember  # noqa: F401
from .project import Project, ProjectTeamLink  # noqa: F401
from .task import Task, TaskTransfer  # noqa: F401
from .dependency import TaskDependency  # noqa: F401
from .work_log import WorkLog, WorkLogSegment  # noqa: F401
from .transaction import Transaction  # noqa: F401
from .audit_log import AuditLog  # noqa: F401
