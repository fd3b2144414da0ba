from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from .enums import TaskPartition, TaskViewMode

_MULTI_VALUE_SEPARATORS = re.compile(r"[,:;|]")


def split_multi_value(raw: str | None) -> list[str]:
    """Split ``"High, Low|Urgent"`` style input into trimmed, non-empty values."""
    if not raw:
        return []
    return [value.strip() for value in _MULTI_VALUE_SEPARATORS.split(raw) if value.strip()]


@dataclass(frozen=True)
class TaskFilters:
    view_mode: Optional[TaskViewMode] = None
    search: str | None = None
    status: str | None = None
    priority: str | None = None
    project_id: str | None = None
    assigned_to: str | None = None
    created_by: str | None = None
    working_by: str | None = None
    partition: TaskPartition = TaskPartition.ACTIVE
    page: int = 1
    limit: int | None = None

    @property
    def search_terms(self) -> list[str]:
        return split_multi_value(self.search)

    @property
    def statuses(self) -> list[str]:
        return split_multi_value(self.status)

    @property
    def priorities(self) -> list[str]:
        return split_multi_value(self.priority)


@dataclass(frozen=True)
class TaskScope:
    """Who is asking, resolved to the ids a view-mode predicate needs."""

    actor_id: str
    team_id: str | None = None
    peer_ids: frozenset[str] = frozenset()
    group_ids: frozenset[str] = frozenset()
    restricted: bool = False
