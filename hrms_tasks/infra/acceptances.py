from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from hrms_tasks.domain.entities import TaskAcceptanceEntity, TaskEntity
from hrms_tasks.domain.enums import AcceptanceStatus, TaskAction
from hrms_tasks.domain.errors import NotFoundError

from .audit import write_audit
from .db import SessionLocal, transaction
from .mappers import acceptance_to_entity, task_to_entity
from .models import ActiveTaskModel, TaskAcceptanceModel, utcnow


def open_acceptance(session: Session, task_id: str, actor_id: str) -> TaskAcceptanceModel:
    """Ensure ``actor_id`` has an outstanding acceptance for ``task_id``.

    Reassigning a task back to someone who already answered re-opens their
    record instead of adding a second one.
    """
    existing = session.scalars(
        select(TaskAcceptanceModel).where(
            TaskAcceptanceModel.task_id == task_id,
            TaskAcceptanceModel.actor_id == actor_id,
        )
    ).first()
    if existing is not None:
        existing.status = AcceptanceStatus.PENDING.value
        existing.remark = None
        existing.responded_at = None
        return existing
    acceptance = TaskAcceptanceModel(
        task_id=task_id,
        actor_id=actor_id,
        status=AcceptanceStatus.PENDING.value,
        created_at=utcnow(),
    )
    session.add(acceptance)
    return acceptance


class TaskAcceptanceRepository:
    def __init__(self, session_factory: sessionmaker = SessionLocal) -> None:
        self._session_factory = session_factory

    def get_acceptance(self, task_id: str, actor_id: str) -> Optional[TaskAcceptanceEntity]:
        with self._session_factory() as session:
            row = self._find(session, task_id, actor_id)
            return acceptance_to_entity(row) if row else None

    def list_for_task(self, task_id: str) -> list[TaskAcceptanceEntity]:
        with self._session_factory() as session:
            stmt = (
                select(TaskAcceptanceModel)
                .where(TaskAcceptanceModel.task_id == task_id)
                .order_by(TaskAcceptanceModel.created_at.asc())
            )
            return [acceptance_to_entity(row) for row in session.scalars(stmt)]

    def respond(
        self,
        task_id: str,
        actor_id: str,
        status: AcceptanceStatus,
        remark: str | None,
    ) -> TaskAcceptanceEntity:
        with transaction(self._session_factory) as session:
            row = self._find(session, task_id, actor_id)
            if row is None:
                raise NotFoundError(f"No acceptance for task {task_id} and actor {actor_id}")
            before = acceptance_to_entity(row)
            row.status = status.value
            row.remark = remark
            row.responded_at = utcnow()
            session.flush()
            after = acceptance_to_entity(row)
            write_audit(
                session,
                actor_id=actor_id,
                action=TaskAction.ACCEPTANCE,
                entity="TaskAcceptance",
                entity_id=row.id,
                old=before,
                new=after,
            )
        return after

    def pending_tasks_for(self, actor_id: str) -> list[TaskEntity]:
        with self._session_factory() as session:
            stmt = (
                select(ActiveTaskModel)
                .join(TaskAcceptanceModel, TaskAcceptanceModel.task_id == ActiveTaskModel.id)
                .where(
                    ActiveTaskModel.assigned_to == actor_id,
                    TaskAcceptanceModel.actor_id == actor_id,
                    TaskAcceptanceModel.status == AcceptanceStatus.PENDING.value,
                )
                .order_by(ActiveTaskModel.created_at.desc())
            )
            return [task_to_entity(row) for row in session.scalars(stmt)]

    @staticmethod
    def _find(session: Session, task_id: str, actor_id: str) -> Optional[TaskAcceptanceModel]:
        stmt = select(TaskAcceptanceModel).where(
            TaskAcceptanceModel.task_id == task_id,
            TaskAcceptanceModel.actor_id == actor_id,
        )
        return session.scalars(stmt).first()
