from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from hrms_tasks.domain.entities import NotificationPayload

from .db import SessionLocal, transaction
from .models import GroupMemberModel, NotificationModel, utcnow

logger = logging.getLogger(__name__)


class DatabaseNotifier:
    """Stores notifications for recipients to pick up; delivery is not tracked here."""

    def __init__(self, session_factory: sessionmaker = SessionLocal) -> None:
        self._session_factory = session_factory

    def notify(self, recipient_id: str, payload: NotificationPayload) -> None:
        with transaction(self._session_factory) as session:
            session.add(self._build(recipient_id, payload))
        logger.debug("Notification %r queued for %s", payload.title, recipient_id)

    def broadcast_to_group(self, group_id: str, payload: NotificationPayload) -> int:
        with transaction(self._session_factory) as session:
            member_ids = list(
                session.scalars(
                    select(GroupMemberModel.actor_id).where(GroupMemberModel.group_id == group_id)
                )
            )
            session.add_all(self._build(member_id, payload) for member_id in member_ids)
        logger.debug("Notification %r broadcast to %s members of %s", payload.title, len(member_ids), group_id)
        return len(member_ids)

    def list_for(self, recipient_id: str, limit: int = 50) -> list[NotificationModel]:
        with self._session_factory() as session:
            stmt = (
                select(NotificationModel)
                .where(NotificationModel.recipient_id == recipient_id)
                .order_by(NotificationModel.created_at.desc())
                .limit(limit)
            )
            rows = list(session.scalars(stmt))
            session.expunge_all()
            return rows

    @staticmethod
    def _build(recipient_id: str, payload: NotificationPayload) -> NotificationModel:
        return NotificationModel(
            recipient_id=recipient_id,
            title=payload.title,
            description=payload.description,
            type=payload.type or "SYSTEM",
            extra=dict(payload.metadata),
            created_at=utcnow(),
        )
