from __future__ import annotations

import logging

from hrms_tasks.domain.entities import ActorEntity
from hrms_tasks.domain.enums import TaskViewMode
from hrms_tasks.domain.filters import TaskScope
from hrms_tasks.domain.protocols import ActorDirectory

logger = logging.getLogger(__name__)

PEER_VIEW_MODES = frozenset({
    TaskViewMode.TEAM_PENDING,
    TaskViewMode.TEAM_COMPLETED,
    TaskViewMode.REVIEW_PENDING_BY_TEAM,
})


class VisibilityResolver:
    def __init__(self, directory: ActorDirectory) -> None:
        self._directory = directory

    def peer_ids(self, actor_id: str) -> set[str]:
        reference = self._directory.get_actor(actor_id)
        if reference is None:
            logger.info("Actor %s not found, team view resolves to nobody", actor_id)
            return set()
        return self._directory.peer_ids(reference)

    def scope_for(
        self,
        actor_id: str,
        actor: ActorEntity | None,
        view_mode: TaskViewMode | None,
        restricted: bool,
    ) -> TaskScope:
        peers: set[str] = set()
        if view_mode in PEER_VIEW_MODES and actor is not None:
            peers = self._directory.peer_ids(actor)
        groups: list[str] = []
        if view_mode is None and restricted:
            groups = self._directory.group_ids_for(actor_id)
        return TaskScope(
            actor_id=actor_id,
            team_id=actor.team_id if actor else None,
            peer_ids=frozenset(peers),
            group_ids=frozenset(groups),
            restricted=restricted,
        )
