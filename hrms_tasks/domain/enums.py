from __future__ import annotations

from enum import StrEnum


class TaskStatus(StrEnum):
    PENDING = "Pending"
    REVIEW = "Review"
    COMPLETED = "Completed"
    REJECTED = "Rejected"


class TaskPartition(StrEnum):
    ACTIVE = "active"
    COMPLETED = "completed"


class TaskPriority(StrEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    URGENT = "Urgent"


class AcceptanceStatus(StrEnum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"


class TaskViewMode(StrEnum):
    MY_PENDING = "MY_PENDING"
    MY_COMPLETED = "MY_COMPLETED"
    TEAM_PENDING = "TEAM_PENDING"
    TEAM_COMPLETED = "TEAM_COMPLETED"
    REVIEW_PENDING_BY_ME = "REVIEW_PENDING_BY_ME"
    REVIEW_PENDING_BY_TEAM = "REVIEW_PENDING_BY_TEAM"


class ActorStatus(StrEnum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class TaskAction(StrEnum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    SUBMIT_REVIEW = "SUBMIT_REVIEW"
    FINALIZE = "FINALIZE"
    REJECT = "REJECT"
    REMIND = "REMIND"
    DELETE = "DELETE"
    ACCEPTANCE = "ACCEPTANCE"
    REASSIGN_TARGET = "REASSIGN_TARGET"


COMPLETED_VIEW_MODES: frozenset[TaskViewMode] = frozenset({
    TaskViewMode.MY_COMPLETED,
    TaskViewMode.TEAM_COMPLETED,
})

# Edges reachable from each status. Completed is terminal; Rejected can be reworked.
VALID_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.PENDING: {TaskStatus.REVIEW, TaskStatus.COMPLETED, TaskStatus.REJECTED},
    TaskStatus.REVIEW: {TaskStatus.COMPLETED, TaskStatus.REJECTED},
    TaskStatus.REJECTED: {
        TaskStatus.PENDING,
        TaskStatus.REVIEW,
        TaskStatus.COMPLETED,
        TaskStatus.REJECTED,
    },
    TaskStatus.COMPLETED: set(),
}


def validate_transition(current: TaskStatus, target: TaskStatus) -> bool:
    return target in VALID_TRANSITIONS.get(current, set())


def partition_for_status(status: TaskStatus) -> TaskPartition:
    if status == TaskStatus.COMPLETED:
        return TaskPartition.COMPLETED
    return TaskPartition.ACTIVE


def partition_for_view(view_mode: TaskViewMode) -> TaskPartition:
    if view_mode in COMPLETED_VIEW_MODES:
        return TaskPartition.COMPLETED
    return TaskPartition.ACTIVE
