from __future__ import annotations

from typing import Iterable

from hrms_tasks.config import SETTINGS
from hrms_tasks.domain.entities import ActorEntity, TaskEntity
from hrms_tasks.domain.enums import TaskAction


class RoleAccessPolicy:
    """Privileged roles may do anything; everyone else is limited to their own tasks
    for deletes and may not retarget a task to another team or group."""

    def __init__(self, privileged_roles: Iterable[str] | None = None) -> None:
        roles = privileged_roles if privileged_roles is not None else SETTINGS.privileged_roles
        self._privileged = frozenset(role.upper() for role in roles)

    def is_privileged(self, actor: ActorEntity) -> bool:
        return (actor.role or "").upper() in self._privileged

    def authorize(self, actor: ActorEntity, action: str, task: TaskEntity | None = None) -> bool:
        if self.is_privileged(actor):
            return True
        if action == TaskAction.DELETE:
            return task is not None and task.created_by == actor.id
        if action == TaskAction.REASSIGN_TARGET:
            return False
        return True
