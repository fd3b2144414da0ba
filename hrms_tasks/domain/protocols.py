"""Collaborators the lifecycle core talks to but does not own."""
from __future__ import annotations

from typing import Optional, Protocol

from .entities import ActorEntity, NotificationPayload, TaskEntity


class Notifier(Protocol):
    def notify(self, recipient_id: str, payload: NotificationPayload) -> None: ...

    def broadcast_to_group(self, group_id: str, payload: NotificationPayload) -> int: ...


class ActorDirectory(Protocol):
    def get_actor(self, actor_id: str) -> Optional[ActorEntity]: ...

    def peer_ids(self, reference: ActorEntity) -> set[str]: ...

    def group_ids_for(self, actor_id: str) -> list[str]: ...


class AccessPolicy(Protocol):
    def authorize(self, actor: ActorEntity, action: str, task: TaskEntity | None = None) -> bool: ...

    def is_privileged(self, actor: ActorEntity) -> bool: ...
