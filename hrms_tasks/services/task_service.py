from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError

from hrms_tasks.config import SETTINGS
from hrms_tasks.domain.entities import ActorEntity, BulkResult, TaskEntity, TaskPage
from hrms_tasks.domain.enums import TaskAction, TaskPriority, TaskStatus
from hrms_tasks.domain.errors import NotFoundError, UnauthorizedError, ValidationError
from hrms_tasks.domain.filters import TaskFilters
from hrms_tasks.domain.protocols import AccessPolicy, ActorDirectory, Notifier
from hrms_tasks.domain.text import title_case_or_none, to_title_case
from hrms_tasks.infra.models import utcnow
from hrms_tasks.infra.numbering import SequentialNumberAllocator
from hrms_tasks.infra.repository import TaskRepository

from .faults import surface_errors
from .notifications import broadcast, dispatch, task_payload
from .visibility import VisibilityResolver

logger = logging.getLogger(__name__)

CREATE_FIELDS = frozenset({
    "task_number",
    "title",
    "priority",
    "note",
    "deadline",
    "reminder_times",
    "attachment",
    "project_id",
    "assigned_to",
    "target_team_id",
    "target_group_id",
})
UPDATE_FIELDS = (CREATE_FIELDS - {"task_number"}) | frozenset({
    "status",
    "completed_at",
    "reviewed_times",
    "remark",
    "working_by",
})
TITLE_CASED_FIELDS = ("title", "note", "remark")
REQUIRED_FIELDS = ("title", "project_id")


def _chunks(items: list[dict], size: int) -> Iterator[list[dict]]:
    size = max(size, 1)
    for start in range(0, len(items), size):
        yield items[start:start + size]


class TaskService:
    def __init__(
        self,
        repo: TaskRepository,
        directory: ActorDirectory,
        notifier: Notifier,
        policy: AccessPolicy,
        allocator: SequentialNumberAllocator | None = None,
        resolver: VisibilityResolver | None = None,
        page_size: int | None = None,
        bulk_batch_size: int | None = None,
    ) -> None:
        self._repo = repo
        self._directory = directory
        self._notifier = notifier
        self._policy = policy
        self._allocator = allocator or SequentialNumberAllocator()
        self._resolver = resolver or VisibilityResolver(directory)
        self._page_size = page_size or SETTINGS.page_size
        self._bulk_batch_size = bulk_batch_size or SETTINGS.bulk_batch_size

    @surface_errors
    def create_task(self, data: dict, actor_id: str) -> TaskEntity:
        actor = self._actor(actor_id)
        self._require(actor, TaskAction.CREATE)
        normalized = self._normalize_create(data)
        if not any(normalized.get(key) for key in ("assigned_to", "target_team_id", "target_group_id")):
            logger.info("Task %r created without assignee, team or group", normalized["title"])

        task = self._repo.create_task(normalized, actor.id)
        logger.info("Task %s created by %s", task.task_number, actor.id)

        dispatch(
            self._notifier,
            task.assigned_to,
            task_payload(task, "New Task Assigned", f'A new task "{task.title}" has been assigned to you.'),
        )
        broadcast(
            self._notifier,
            task.target_group_id,
            task_payload(task, "New Group Task", f'A new group task "{task.title}" has been created.'),
        )
        dispatch(
            self._notifier,
            task.target_team_id,
            task_payload(task, "New Team Task", f'A new task "{task.title}" has been assigned to your team.'),
        )
        return task

    @surface_errors
    def bulk_create(self, rows: list[dict], actor_id: str) -> BulkResult:
        actor = self._actor(actor_id)
        self._require(actor, TaskAction.CREATE)

        result = BulkResult()
        batch = self._allocator.open_batch(self._repo.series)
        prepared: list[dict] = []
        for index, row in enumerate(rows):
            try:
                normalized = self._normalize_create(row)
            except ValidationError as exc:
                result.errors.append({"row": index, "error": str(exc)})
                continue
            normalized["task_number"] = batch.claim(normalized.get("task_number"))
            prepared.append(normalized)

        for chunk in _chunks(prepared, self._bulk_batch_size):
            try:
                result.success += self._repo.bulk_insert(chunk, actor.id)
            except SQLAlchemyError as exc:
                logger.error("Bulk task insert failed for %s rows: %s", len(chunk), exc)
                result.errors.append({"error": "Batch insert failed", "details": str(exc)})

        result.failed = len(rows) - result.success
        result.message = f"Successfully inserted {result.success} records."
        logger.info(
            "Bulk task create processed=%s inserted=%s errors=%s",
            len(rows),
            result.success,
            len(result.errors),
        )
        return result

    @surface_errors
    def get_task(self, task_id: str) -> TaskEntity:
        task = self._repo.get_task(task_id)
        if task is None:
            raise NotFoundError(f"Task with ID {task_id} not found")
        return task

    @surface_errors
    def list_tasks(self, filters: TaskFilters, actor_id: str) -> TaskPage:
        actor = self._directory.get_actor(actor_id)
        restricted = actor is None or not self._policy.is_privileged(actor)
        scope = self._resolver.scope_for(actor_id, actor, filters.view_mode, restricted)
        return self._repo.list_tasks(filters, scope, limit=filters.limit or self._page_size)

    @surface_errors
    def submit_for_review(self, task_id: str, remark: str | None, actor_id: str) -> TaskEntity:
        actor = self._actor(actor_id)
        self._require(actor, TaskAction.SUBMIT_REVIEW, self.get_task(task_id))
        now = utcnow()

        def changes(task: TaskEntity) -> dict:
            patch = {"status": TaskStatus.REVIEW, "reviewed_times": [*task.reviewed_times, now]}
            if remark:
                patch["remark"] = to_title_case(remark)
            return patch

        task = self._repo.update_task(
            task_id,
            changes,
            actor_id=actor.id,
            action=TaskAction.SUBMIT_REVIEW,
            allowed_from={TaskStatus.PENDING},
        )
        logger.info("Task %s submitted for review by %s", task.task_number, actor.id)
        dispatch(
            self._notifier,
            task.created_by,
            task_payload(task, "Task Submitted For Review", f'Task "{task.title}" is waiting for your review.'),
        )
        return task

    @surface_errors
    def finalize_completion(self, task_id: str, remark: str | None, actor_id: str) -> TaskEntity:
        actor = self._actor(actor_id)
        self._require(actor, TaskAction.FINALIZE, self.get_task(task_id))
        patch: dict = {"status": TaskStatus.COMPLETED}
        if remark:
            patch["remark"] = to_title_case(remark)

        task = self._repo.update_task(
            task_id,
            patch,
            actor_id=actor.id,
            action=TaskAction.FINALIZE,
            allowed_from={TaskStatus.PENDING, TaskStatus.REVIEW},
        )
        logger.info("Task %s completed by %s", task.task_number, actor.id)
        dispatch(
            self._notifier,
            task.assigned_to,
            task_payload(task, "Task Completed", f'Task "{task.title}" has been marked as completed.'),
        )
        return task

    @surface_errors
    def reject_task(self, task_id: str, remark: str | None, actor_id: str) -> TaskEntity:
        actor = self._actor(actor_id)
        self._require(actor, TaskAction.REJECT, self.get_task(task_id))
        task = self._repo.update_task(
            task_id,
            {"status": TaskStatus.REJECTED, "remark": title_case_or_none(remark)},
            actor_id=actor.id,
            action=TaskAction.REJECT,
            allowed_from={TaskStatus.PENDING, TaskStatus.REVIEW, TaskStatus.REJECTED},
        )
        logger.info("Task %s rejected by %s", task.task_number, actor.id)
        dispatch(
            self._notifier,
            task.assigned_to,
            task_payload(task, "Task Rejected", f'Task "{task.title}" was rejected: {task.remark or "no reason given"}.'),
        )
        return task

    @surface_errors
    def send_reminder(self, task_id: str, actor_id: str) -> TaskEntity:
        actor = self._actor(actor_id)
        self._require(actor, TaskAction.REMIND, self.get_task(task_id))
        now = utcnow()

        def changes(task: TaskEntity) -> dict:
            if not task.assigned_to:
                raise ValidationError(f"Task {task.task_number} has no assignee to remind")
            return {"reminder_times": [*task.reminder_times, now]}

        task = self._repo.update_task(
            task_id,
            changes,
            actor_id=actor.id,
            action=TaskAction.REMIND,
            allowed_from={TaskStatus.PENDING, TaskStatus.REVIEW, TaskStatus.REJECTED},
        )
        dispatch(
            self._notifier,
            task.assigned_to,
            task_payload(task, "Task Reminder", f'Reminder: task "{task.title}" is still open.'),
        )
        return task

    @surface_errors
    def update_task(self, task_id: str, data: dict, actor_id: str) -> TaskEntity:
        actor = self._actor(actor_id)
        current = self.get_task(task_id)
        normalized = self._normalize_data(data, UPDATE_FIELDS)
        for key in REQUIRED_FIELDS:
            if key in normalized and not normalized[key]:
                raise ValidationError(f"Task {key} cannot be empty")
        self._require(actor, TaskAction.UPDATE, current)
        retargets = any(
            key in normalized and normalized[key] != getattr(current, key)
            for key in ("target_team_id", "target_group_id")
        )
        if retargets:
            self._require(actor, TaskAction.REASSIGN_TARGET, current)

        completing = normalized.get("status") == TaskStatus.COMPLETED
        task = self._repo.update_task(
            task_id,
            normalized,
            actor_id=actor.id,
            action=TaskAction.FINALIZE if completing else TaskAction.UPDATE,
        )
        if task.assigned_to and task.assigned_to != current.assigned_to:
            dispatch(
                self._notifier,
                task.assigned_to,
                task_payload(task, "New Task Assigned", f'A new task "{task.title}" has been assigned to you.'),
            )
        return task

    @surface_errors
    def delete_task(self, task_id: str, actor_id: str) -> TaskEntity:
        actor = self._actor(actor_id)

        def authorize(task: TaskEntity) -> None:
            self._require(actor, TaskAction.DELETE, task)

        task = self._repo.delete_task(task_id, actor_id=actor.id, authorize=authorize)
        logger.info("Task %s deleted by %s from %s partition", task.task_number, actor.id, task.partition)
        return task

    def _actor(self, actor_id: str) -> ActorEntity:
        actor = self._directory.get_actor(actor_id)
        if actor is None:
            raise NotFoundError(f"Actor with ID {actor_id} not found")
        return actor

    def _require(self, actor: ActorEntity, action: TaskAction, task: TaskEntity | None = None) -> None:
        if not self._policy.authorize(actor, action, task):
            target = f" on task {task.task_number}" if task else ""
            raise UnauthorizedError(f"{actor.role} {actor.id} may not {action.value}{target}")

    def _normalize_create(self, data: dict) -> dict:
        normalized = self._normalize_data(data, CREATE_FIELDS)
        if not normalized.get("title"):
            raise ValidationError("Task title is required")
        if not normalized.get("project_id"):
            raise ValidationError("Project is required")
        normalized.setdefault("priority", TaskPriority.MEDIUM.value)
        return normalized

    def _normalize_data(self, data: dict, allowed: frozenset[str]) -> dict:
        unknown = set(data) - allowed
        if unknown:
            raise ValidationError(f"Unsupported task fields: {', '.join(sorted(unknown))}")
        normalized = dict(data)
        for key in TITLE_CASED_FIELDS:
            if key in normalized:
                normalized[key] = title_case_or_none(normalized[key].strip() if normalized[key] else None)
        if "priority" in normalized:
            normalized["priority"] = self._coerce_priority(normalized["priority"])
        if "status" in normalized:
            try:
                normalized["status"] = TaskStatus(normalized["status"])
            except ValueError:
                raise ValidationError(f"Unknown task status: {normalized['status']}") from None
        for key in ("deadline", "completed_at"):
            if isinstance(normalized.get(key), str):
                normalized[key] = self._parse_datetime(key, normalized[key])
        for key in ("reminder_times", "reviewed_times"):
            if key in normalized:
                normalized[key] = [
                    self._parse_datetime(key, value) if isinstance(value, str) else value
                    for value in normalized[key] or ()
                ]
        return normalized

    @staticmethod
    def _coerce_priority(value) -> str:
        for priority in TaskPriority:
            if str(value).strip().lower() == priority.value.lower():
                return priority.value
        raise ValidationError(f"Unknown priority: {value}")

    @staticmethod
    def _parse_datetime(field: str, value: str) -> datetime:
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            raise ValidationError(f"{field} must be an ISO-8601 timestamp") from None
