from __future__ import annotations

import logging

from hrms_tasks.domain.entities import TaskAcceptanceEntity, TaskEntity
from hrms_tasks.domain.enums import AcceptanceStatus
from hrms_tasks.domain.errors import NotFoundError, UnauthorizedError, ValidationError
from hrms_tasks.domain.protocols import Notifier
from hrms_tasks.domain.text import title_case_or_none
from hrms_tasks.infra.acceptances import TaskAcceptanceRepository
from hrms_tasks.infra.repository import TaskRepository

from .faults import surface_errors
from .notifications import dispatch, task_payload

logger = logging.getLogger(__name__)


class AcceptanceService:
    """Assignee accept/reject answers, kept apart from the task's own status."""

    def __init__(
        self,
        acceptances: TaskAcceptanceRepository,
        tasks: TaskRepository,
        notifier: Notifier,
    ) -> None:
        self._acceptances = acceptances
        self._tasks = tasks
        self._notifier = notifier

    @surface_errors
    def respond(
        self,
        task_id: str,
        actor_id: str,
        decision: AcceptanceStatus | str,
        remark: str | None = None,
    ) -> TaskAcceptanceEntity:
        try:
            status = AcceptanceStatus(decision)
        except ValueError:
            raise ValidationError(f"Unknown acceptance decision: {decision}") from None
        if status == AcceptanceStatus.PENDING:
            raise ValidationError("A response must accept or reject the task")

        task = self._tasks.get_task(task_id)
        if task is None:
            raise NotFoundError(f"Task with ID {task_id} not found")
        if task.assigned_to != actor_id:
            raise UnauthorizedError(f"Actor {actor_id} is not the assignee of task {task.task_number}")

        acceptance = self._acceptances.respond(task_id, actor_id, status, title_case_or_none(remark))
        logger.info("Task %s %s by %s", task.task_number, status.value.lower(), actor_id)
        dispatch(
            self._notifier,
            task.created_by,
            task_payload(task, f"Task {status.value}", f'Task "{task.title}" was {status.value.lower()} by the assignee.'),
        )
        return acceptance

    @surface_errors
    def pending_for(self, actor_id: str) -> list[TaskEntity]:
        return self._acceptances.pending_tasks_for(actor_id)
