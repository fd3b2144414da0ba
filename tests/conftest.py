from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from hrms_tasks.domain.entities import NotificationPayload  # noqa: E402
from hrms_tasks.infra import models  # noqa: E402
from hrms_tasks.infra.db import Base  # noqa: E402
from hrms_tasks.main import build_services  # noqa: E402

# id, role, group, company, location, sub-location, team, status
ACTORS = [
    ("admin", "ADMIN", "g1", "c1", "l1", "s1", None, "Active"),
    ("alice", "EMPLOYEE", "g1", "c1", "l1", "s1", "team-alice", "Active"),
    ("bob", "EMPLOYEE", "g1", "c1", "l1", "s1", "team-bob", "Active"),
    ("carol", "EMPLOYEE", "g1", "c1", "l1", "s2", "team-carol", "Active"),
    ("hr", "HR", "g1", None, None, None, None, "Active"),
    ("dave", "MANAGER", "g2", "c2", "l2", "s3", None, "Active"),
    ("ghost", "EMPLOYEE", "g1", "c1", "l1", "s1", None, "Inactive"),
]


class RecordingNotifier:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[tuple[str, NotificationPayload]] = []
        self.broadcasts: list[tuple[str, NotificationPayload]] = []

    def notify(self, recipient_id: str, payload: NotificationPayload) -> None:
        if self.fail:
            raise ConnectionError("notification backend down")
        self.sent.append((recipient_id, payload))

    def broadcast_to_group(self, group_id: str, payload: NotificationPayload) -> int:
        if self.fail:
            raise ConnectionError("notification backend down")
        self.broadcasts.append((group_id, payload))
        return 1

    def titles_for(self, recipient_id: str) -> list[str]:
        return [payload.title for recipient, payload in self.sent if recipient == recipient_id]


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'hrms.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def seeded(session_factory):
    with session_factory() as session:
        for actor_id, role, group, company, location, sub_location, team, status in ACTORS:
            session.add(
                models.ActorModel(
                    id=actor_id,
                    email=f"{actor_id}@example.com",
                    role=role,
                    group_id=group,
                    company_id=company,
                    location_id=location,
                    sub_location_id=sub_location,
                    team_id=team,
                    status=status,
                )
            )
        session.add(models.GroupMemberModel(group_id="grp-ops", actor_id="alice"))
        session.add(models.GroupMemberModel(group_id="grp-ops", actor_id="carol"))
        session.commit()
    return session_factory


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def services(seeded, notifier):
    return build_services(seeded, notifier=notifier)


def task_row(number: str, **overrides) -> dict:
    now = datetime.utcnow()
    row = {
        "id": models.new_id(),
        "task_number": number,
        "title": "Seeded Task",
        "priority": "Medium",
        "project_id": "proj-1",
        "created_by": "admin",
        "status": "Pending",
        "reminder_times": [],
        "reviewed_times": [],
        "created_at": now,
        "updated_at": now,
    }
    row.update(overrides)
    return row


def insert_rows(session_factory, model, rows: list[dict]) -> None:
    with session_factory() as session:
        for row in rows:
            if model is models.CompletedTaskModel:
                row = {**row, "status": "Completed", "moved_at": row["created_at"]}
            session.add(model(**row))
        session.commit()
