"""Task persistence split across two tables.

``tasks`` holds every task that is not Completed and ``completed_tasks``
holds the rest. A task lives in exactly one of them; reaching Completed moves
the row inside a single transaction, keeping its primary key.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Optional, Union

from sqlalchemy import delete, func, insert, or_, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from hrms_tasks.config import SETTINGS
from hrms_tasks.domain.entities import TaskEntity, TaskPage
from hrms_tasks.domain.enums import (
    TaskAction,
    TaskPartition,
    TaskStatus,
    TaskViewMode,
    partition_for_status,
    partition_for_view,
    validate_transition,
)
from hrms_tasks.domain.errors import ConflictError, InvalidTransitionError, NotFoundError
from hrms_tasks.domain.filters import TaskFilters, TaskScope

from .acceptances import open_acceptance
from .audit import write_audit
from .db import SessionLocal, transaction
from .mappers import TaskRow, task_to_entity, to_row_values
from .models import (
    TASK_COLUMNS,
    ActiveTaskModel,
    CompletedTaskModel,
    TaskAcceptanceModel,
    new_id,
    utcnow,
)
from .numbering import NumberSeries, SequentialNumberAllocator, escape_like, task_series

logger = logging.getLogger(__name__)

Changes = Union[dict, Callable[[TaskEntity], dict]]

# sqlite3 reports "UNIQUE constraint failed", PostgreSQL sqlstate 23505.
_UNIQUE_VIOLATION_CODE = "23505"


def _is_unique_violation(exc: IntegrityError) -> bool:
    if getattr(exc.orig, "pgcode", None) == _UNIQUE_VIOLATION_CODE:
        return True
    return "unique" in str(exc.orig).lower()


def _model_for(partition: TaskPartition):
    if partition == TaskPartition.COMPLETED:
        return CompletedTaskModel
    return ActiveTaskModel


def _apply_view_mode(stmt, model, view_mode: TaskViewMode, scope: TaskScope):
    peers = sorted(scope.peer_ids)
    team_match = model.assigned_to.in_(peers)
    if scope.team_id:
        team_match = or_(team_match, model.target_team_id == scope.team_id)

    if view_mode == TaskViewMode.MY_PENDING:
        return stmt.where(model.assigned_to == scope.actor_id, model.status == TaskStatus.PENDING.value)
    if view_mode == TaskViewMode.MY_COMPLETED:
        return stmt.where(model.assigned_to == scope.actor_id)
    if view_mode == TaskViewMode.TEAM_PENDING:
        return stmt.where(team_match, model.status == TaskStatus.PENDING.value)
    if view_mode == TaskViewMode.TEAM_COMPLETED:
        return stmt.where(team_match)
    if view_mode == TaskViewMode.REVIEW_PENDING_BY_ME:
        return stmt.where(model.created_by == scope.actor_id, model.status == TaskStatus.REVIEW.value)
    if view_mode == TaskViewMode.REVIEW_PENDING_BY_TEAM:
        return stmt.where(model.created_by.in_(peers), model.status == TaskStatus.REVIEW.value)
    raise ValueError(f"Unknown view mode: {view_mode}")


def _apply_filters(stmt, model, filters: TaskFilters, scope: TaskScope):
    if filters.view_mode is not None:
        stmt = _apply_view_mode(stmt, model, filters.view_mode, scope)
    elif scope.restricted:
        stmt = stmt.where(
            or_(
                model.assigned_to == scope.actor_id,
                model.created_by == scope.actor_id,
                model.working_by == scope.actor_id,
                model.target_group_id.in_(sorted(scope.group_ids)),
            )
        )

    patterns = [f"%{escape_like(term)}%" for term in filters.search_terms]
    if patterns:
        stmt = stmt.where(
            or_(*(
                or_(
                    model.title.ilike(pattern, escape="\\"),
                    model.task_number.ilike(pattern, escape="\\"),
                    model.note.ilike(pattern, escape="\\"),
                    model.remark.ilike(pattern, escape="\\"),
                )
                for pattern in patterns
            ))
        )

    if filters.statuses:
        stmt = stmt.where(model.status.in_(filters.statuses))
    if filters.priorities:
        stmt = stmt.where(model.priority.in_(filters.priorities))
    if filters.project_id:
        stmt = stmt.where(model.project_id == filters.project_id)
    if filters.assigned_to:
        stmt = stmt.where(model.assigned_to == filters.assigned_to)
    if filters.created_by:
        stmt = stmt.where(model.created_by == filters.created_by)
    if filters.working_by:
        stmt = stmt.where(model.working_by == filters.working_by)
    return stmt


class TaskRepository:
    def __init__(
        self,
        session_factory: sessionmaker = SessionLocal,
        allocator: SequentialNumberAllocator | None = None,
        series: NumberSeries | None = None,
        create_retries: int | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._allocator = allocator or SequentialNumberAllocator(session_factory)
        self._series = series or task_series()
        self._create_retries = create_retries if create_retries is not None else SETTINGS.task_create_retries

    @property
    def series(self) -> NumberSeries:
        return self._series

    def get_task(self, task_id: str) -> Optional[TaskEntity]:
        with self._session_factory() as session:
            row = self._locate(session, task_id)
            return task_to_entity(row) if row else None

    def exists_in(self, task_id: str, partition: TaskPartition) -> bool:
        model = _model_for(partition)
        with self._session_factory() as session:
            return session.get(model, task_id) is not None

    def create_task(self, data: dict, actor_id: str) -> TaskEntity:
        supplied = data.get("task_number")
        for attempt in range(1, self._create_retries + 1):
            try:
                with transaction(self._session_factory) as session:
                    if supplied and self._allocator.is_issued(self._series, supplied, session=session):
                        raise ConflictError(f"Task number {supplied} is already in use")
                    number = supplied or self._allocator.allocate(self._series, session=session)
                    now = utcnow()
                    values = to_row_values(data)
                    values.update(
                        task_number=number,
                        created_by=actor_id,
                        status=TaskStatus.PENDING.value,
                        created_at=now,
                        updated_at=now,
                    )
                    row = ActiveTaskModel(**values)
                    session.add(row)
                    session.flush()
                    entity = task_to_entity(row)
                    if entity.assigned_to:
                        open_acceptance(session, entity.id, entity.assigned_to)
                    write_audit(
                        session,
                        actor_id=actor_id,
                        action=TaskAction.CREATE,
                        entity="Task",
                        entity_id=entity.id,
                        new=entity,
                    )
                return entity
            except IntegrityError as exc:
                if not _is_unique_violation(exc):
                    raise
                if supplied:
                    raise ConflictError(f"Task number {supplied} is already in use") from None
                logger.warning("Task number collision on attempt %s, allocating again", attempt)
        logger.error("Task create gave up after %s number collisions", self._create_retries)
        raise ConflictError(f"Could not store a unique task number after {self._create_retries} attempts")

    def update_task(
        self,
        task_id: str,
        changes: Changes,
        *,
        actor_id: str,
        action: TaskAction = TaskAction.UPDATE,
        allowed_from: Optional[set[TaskStatus]] = None,
    ) -> TaskEntity:
        """Apply ``changes`` in one transaction.

        ``changes`` may be a callable receiving the current task, so appends to
        timestamp lists are computed against the locked row. A status change
        to Completed on an active task moves the row instead of updating it.
        """
        try:
            with transaction(self._session_factory) as session:
                row = self._locate(session, task_id, for_update=True)
                if row is None:
                    raise NotFoundError(f"Task with ID {task_id} not found")
                before = task_to_entity(row)
                patch = changes(before) if callable(changes) else dict(changes)
                target = TaskStatus(patch["status"]) if patch.get("status") is not None else None

                if allowed_from is not None and before.status not in allowed_from:
                    raise InvalidTransitionError(task_id, before.status, target or before.status)
                if target is not None and target != before.status:
                    if not validate_transition(before.status, target):
                        raise InvalidTransitionError(task_id, before.status, target)

                now = utcnow()
                moving = target is not None and partition_for_status(target) == TaskPartition.COMPLETED
                if moving and isinstance(row, ActiveTaskModel):
                    after = self._move_to_completed(session, row, patch, now)
                else:
                    for key, value in to_row_values(patch).items():
                        setattr(row, key, value)
                    row.updated_at = now
                    session.flush()
                    after = task_to_entity(row)

                if after.assigned_to and after.assigned_to != before.assigned_to:
                    open_acceptance(session, task_id, after.assigned_to)
                write_audit(
                    session,
                    actor_id=actor_id,
                    action=action,
                    entity="Task",
                    entity_id=task_id,
                    old=before,
                    new=after,
                )
            return after
        except IntegrityError as exc:
            if not _is_unique_violation(exc):
                raise
            logger.warning("Concurrent write rejected for task %s", task_id, exc_info=True)
            raise ConflictError(f"Task {task_id} was modified concurrently") from None

    def delete_task(
        self,
        task_id: str,
        *,
        actor_id: str,
        authorize: Callable[[TaskEntity], None] | None = None,
    ) -> TaskEntity:
        with transaction(self._session_factory) as session:
            row = self._locate(session, task_id, for_update=True)
            if row is None:
                raise NotFoundError(f"Task with ID {task_id} not found")
            entity = task_to_entity(row)
            if authorize is not None:
                authorize(entity)
            session.delete(row)
            session.execute(delete(TaskAcceptanceModel).where(TaskAcceptanceModel.task_id == task_id))
            write_audit(
                session,
                actor_id=actor_id,
                action=TaskAction.DELETE,
                entity="Task",
                entity_id=task_id,
                old=entity,
            )
        return entity

    def list_tasks(self, filters: TaskFilters, scope: TaskScope, limit: int) -> TaskPage:
        """Query exactly one partition: the view mode's, else ``filters.partition``."""
        partition = partition_for_view(filters.view_mode) if filters.view_mode else filters.partition
        model = _model_for(partition)
        page = max(filters.page, 1)

        with self._session_factory() as session:
            stmt = _apply_filters(select(model), model, filters, scope)
            total = session.scalar(select(func.count()).select_from(stmt.subquery())) or 0
            stmt = stmt.order_by(model.created_at.desc(), model.task_number.desc())
            stmt = stmt.offset((page - 1) * limit).limit(limit)
            items = [task_to_entity(row) for row in session.scalars(stmt)]
        return TaskPage(items=items, total=total, page=page, limit=limit)

    def bulk_insert(self, rows: list[dict], actor_id: str) -> int:
        """Insert ``rows`` in one transaction, skipping any that hit a unique key.

        Returns how many rows the store actually persisted.
        """
        inserted = 0
        with transaction(self._session_factory) as session:
            for data in rows:
                now = utcnow()
                values = to_row_values(data)
                values.setdefault("status", TaskStatus.PENDING.value)
                values.update(created_by=actor_id, created_at=now, updated_at=now)
                task_id = self._insert_skipping_duplicates(session, values)
                if task_id is None:
                    logger.info("Skipped duplicate task number %s", values.get("task_number"))
                    continue
                inserted += 1
                if values.get("assigned_to"):
                    open_acceptance(session, task_id, values["assigned_to"])
                write_audit(
                    session,
                    actor_id=actor_id,
                    action=TaskAction.CREATE,
                    entity="Task",
                    entity_id=task_id,
                    new={key: value for key, value in values.items() if key != "id"},
                )
        return inserted

    @staticmethod
    def _insert_skipping_duplicates(session: Session, values: dict[str, Any]) -> Optional[str]:
        table = ActiveTaskModel.__table__
        values = dict(values)
        values.setdefault("id", new_id())
        dialect = session.get_bind().dialect.name
        if dialect == "postgresql":
            stmt = postgresql.insert(table).values(**values).on_conflict_do_nothing()
        elif dialect == "sqlite":
            stmt = sqlite.insert(table).values(**values).on_conflict_do_nothing()
        else:
            try:
                with session.begin_nested():
                    session.execute(insert(table).values(**values))
            except IntegrityError:
                return None
            return values["id"]
        result = session.execute(stmt)
        return values["id"] if result.rowcount == 1 else None

    @staticmethod
    def _locate(session: Session, task_id: str, for_update: bool = False) -> Optional[TaskRow]:
        # Active first: a move only ever goes active -> completed, so missing the
        # active row means the completed row is already committed.
        for model in (ActiveTaskModel, CompletedTaskModel):
            stmt = select(model).where(model.id == task_id)
            if for_update:
                stmt = stmt.with_for_update()
            row = session.scalars(stmt).first()
            if row is not None:
                return row
        return None

    @staticmethod
    def _move_to_completed(
        session: Session,
        row: ActiveTaskModel,
        patch: dict,
        now: datetime,
    ) -> TaskEntity:
        values = {name: getattr(row, name) for name in TASK_COLUMNS}
        values.update(to_row_values(patch))
        values.update(
            status=TaskStatus.COMPLETED.value,
            completed_at=patch.get("completed_at") or now,
            updated_at=now,
            moved_at=now,
        )
        result = session.execute(
            delete(ActiveTaskModel)
            .where(ActiveTaskModel.id == row.id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError(f"Task {row.id} was already moved by another request")
        session.expunge(row)
        completed = CompletedTaskModel(**values)
        session.add(completed)
        session.flush()
        return task_to_entity(completed)
