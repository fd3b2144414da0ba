from __future__ import annotations

from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

from sqlalchemy.orm import Session

from .models import AuditLogModel


def _json_safe(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_json_safe(item) for item in value]
    return value


def snapshot(entity: Any) -> dict[str, Any] | None:
    if entity is None:
        return None
    data = asdict(entity) if is_dataclass(entity) else dict(entity)
    return _json_safe(data)


def write_audit(
    session: Session,
    *,
    actor_id: str | None,
    action: str,
    entity: str,
    entity_id: str,
    old: Any = None,
    new: Any = None,
) -> None:
    session.add(
        AuditLogModel(
            actor_id=actor_id,
            action=str(action),
            entity=entity,
            entity_id=entity_id,
            old_value=snapshot(old),
            new_value=snapshot(new),
        )
    )
