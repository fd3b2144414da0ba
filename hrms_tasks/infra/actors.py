from __future__ import annotations

from typing import Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import sessionmaker

from hrms_tasks.domain.entities import ActorEntity
from hrms_tasks.domain.enums import ActorStatus
from hrms_tasks.domain.visibility import HIERARCHY_LEVELS

from .db import SessionLocal
from .models import ActorModel, GroupMemberModel


def _to_entity(model: ActorModel) -> ActorEntity:
    return ActorEntity(
        id=model.id,
        role=model.role,
        group_id=model.group_id,
        company_id=model.company_id,
        location_id=model.location_id,
        sub_location_id=model.sub_location_id,
        team_id=model.team_id,
        status=ActorStatus(model.status),
    )


def hierarchy_clause(reference: ActorEntity):
    """SQL form of ``domain.visibility.is_peer`` against ``reference``.

    Each level is ``column = reference value OR column IS NULL``; levels are
    ANDed together and only active actors qualify.
    """
    conditions = [ActorModel.status == ActorStatus.ACTIVE.value]
    for level in HIERARCHY_LEVELS:
        column = getattr(ActorModel, level)
        value = getattr(reference, level)
        if value is None:
            conditions.append(column.is_(None))
        else:
            conditions.append(or_(column == value, column.is_(None)))
    return and_(*conditions)


class ActorRepository:
    def __init__(self, session_factory: sessionmaker = SessionLocal) -> None:
        self._session_factory = session_factory

    def get_actor(self, actor_id: str) -> Optional[ActorEntity]:
        with self._session_factory() as session:
            actor = session.get(ActorModel, actor_id)
            return _to_entity(actor) if actor else None

    def list_actors(self, status: ActorStatus | None = ActorStatus.ACTIVE) -> list[ActorEntity]:
        with self._session_factory() as session:
            stmt = select(ActorModel)
            if status is not None:
                stmt = stmt.where(ActorModel.status == status.value)
            return [_to_entity(actor) for actor in session.scalars(stmt.order_by(ActorModel.id))]

    def peer_ids(self, reference: ActorEntity) -> set[str]:
        with self._session_factory() as session:
            stmt = select(ActorModel.id).where(hierarchy_clause(reference))
            return set(session.scalars(stmt))

    def group_ids_for(self, actor_id: str) -> list[str]:
        with self._session_factory() as session:
            stmt = select(GroupMemberModel.group_id).where(GroupMemberModel.actor_id == actor_id)
            return list(session.scalars(stmt))
