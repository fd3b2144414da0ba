from __future__ import annotations

import logging

from hrms_tasks.domain.entities import NotificationPayload, TaskEntity
from hrms_tasks.domain.protocols import Notifier

logger = logging.getLogger(__name__)


def task_payload(task: TaskEntity, title: str, description: str) -> NotificationPayload:
    return NotificationPayload(
        title=title,
        description=description,
        type="TASK",
        metadata={"taskId": task.id, "taskNo": task.task_number},
    )


def dispatch(notifier: Notifier, recipient_id: str | None, payload: NotificationPayload) -> None:
    if not recipient_id:
        return
    try:
        notifier.notify(recipient_id, payload)
    except Exception:  # noqa: BLE001
        logger.warning("Notification %r to %s failed", payload.title, recipient_id, exc_info=True)


def broadcast(notifier: Notifier, group_id: str | None, payload: NotificationPayload) -> None:
    if not group_id:
        return
    try:
        notifier.broadcast_to_group(group_id, payload)
    except Exception:  # noqa: BLE001
        logger.warning("Broadcast %r to group %s failed", payload.title, group_id, exc_info=True)
