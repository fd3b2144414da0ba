from __future__ import annotations

from datetime import datetime
from typing import Iterable, Union

from hrms_tasks.domain.entities import TaskAcceptanceEntity, TaskEntity
from hrms_tasks.domain.enums import AcceptanceStatus, TaskPartition, TaskStatus

from .models import ActiveTaskModel, CompletedTaskModel, TaskAcceptanceModel

TaskRow = Union[ActiveTaskModel, CompletedTaskModel]

_TIMESTAMP_LISTS = ("reminder_times", "reviewed_times")


def _parse_timestamps(values: Iterable[str] | None) -> tuple[datetime, ...]:
    return tuple(datetime.fromisoformat(value) for value in values or ())


def to_row_values(data: dict) -> dict:
    """Turn entity-shaped values into what the JSON/string columns store."""
    values = dict(data)
    for key in _TIMESTAMP_LISTS:
        if key in values:
            values[key] = [
                stamp.isoformat() if isinstance(stamp, datetime) else stamp
                for stamp in values[key] or ()
            ]
    if isinstance(values.get("status"), TaskStatus):
        values["status"] = values["status"].value
    return values


def task_to_entity(model: TaskRow) -> TaskEntity:
    completed = isinstance(model, CompletedTaskModel)
    return TaskEntity(
        id=model.id,
        task_number=model.task_number,
        title=model.title,
        priority=model.priority,
        note=model.note,
        deadline=model.deadline,
        reminder_times=_parse_timestamps(model.reminder_times),
        attachment=model.attachment,
        project_id=model.project_id,
        assigned_to=model.assigned_to,
        target_team_id=model.target_team_id,
        target_group_id=model.target_group_id,
        created_by=model.created_by,
        status=TaskStatus(model.status),
        completed_at=model.completed_at,
        reviewed_times=_parse_timestamps(model.reviewed_times),
        remark=model.remark,
        working_by=model.working_by,
        created_at=model.created_at,
        updated_at=model.updated_at,
        partition=TaskPartition.COMPLETED if completed else TaskPartition.ACTIVE,
        moved_at=model.moved_at if completed else None,
    )


def acceptance_to_entity(model: TaskAcceptanceModel) -> TaskAcceptanceEntity:
    return TaskAcceptanceEntity(
        id=model.id,
        task_id=model.task_id,
        actor_id=model.actor_id,
        status=AcceptanceStatus(model.status),
        remark=model.remark,
        responded_at=model.responded_at,
        created_at=model.created_at,
    )
