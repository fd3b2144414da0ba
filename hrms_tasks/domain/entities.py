from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from .enums import AcceptanceStatus, ActorStatus, TaskPartition, TaskStatus


@dataclass(frozen=True)
class TaskEntity:
    id: str
    task_number: str
    title: str
    priority: str
    note: Optional[str]
    deadline: Optional[datetime]
    reminder_times: tuple[datetime, ...]
    attachment: Optional[str]
    project_id: str
    assigned_to: Optional[str]
    target_team_id: Optional[str]
    target_group_id: Optional[str]
    created_by: str
    status: TaskStatus
    completed_at: Optional[datetime]
    reviewed_times: tuple[datetime, ...]
    remark: Optional[str]
    working_by: Optional[str]
    created_at: datetime
    updated_at: datetime
    partition: TaskPartition = TaskPartition.ACTIVE
    moved_at: Optional[datetime] = None


@dataclass(frozen=True)
class ActorEntity:
    """Read-only view of a directory entry with its four hierarchy levels."""

    id: str
    role: str
    group_id: Optional[str] = None
    company_id: Optional[str] = None
    location_id: Optional[str] = None
    sub_location_id: Optional[str] = None
    team_id: Optional[str] = None
    status: ActorStatus = ActorStatus.ACTIVE


@dataclass(frozen=True)
class TaskAcceptanceEntity:
    id: str
    task_id: str
    actor_id: str
    status: AcceptanceStatus
    remark: Optional[str]
    responded_at: Optional[datetime]
    created_at: datetime


@dataclass(frozen=True)
class NotificationPayload:
    title: str
    description: str
    type: str = "TASK"
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TaskPage:
    items: list[TaskEntity]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return -(-self.total // self.limit)


@dataclass
class BulkResult:
    success: int = 0
    failed: int = 0
    message: str = ""
    errors: list[dict[str, Any]] = field(default_factory=list)
