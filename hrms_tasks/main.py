from __future__ import annotations

import logging
import sys
from dataclasses import dataclass

from sqlalchemy.orm import sessionmaker

from hrms_tasks.config import SETTINGS
from hrms_tasks.infra.acceptances import TaskAcceptanceRepository
from hrms_tasks.infra.actors import ActorRepository
from hrms_tasks.infra.db import SessionLocal, init_db
from hrms_tasks.infra.logging import setup_logging
from hrms_tasks.infra.notifier import DatabaseNotifier
from hrms_tasks.infra.numbering import SequentialNumberAllocator
from hrms_tasks.infra.repository import TaskRepository
from hrms_tasks.services.access import RoleAccessPolicy
from hrms_tasks.services.acceptance_service import AcceptanceService
from hrms_tasks.services.task_service import TaskService
from hrms_tasks.services.visibility import VisibilityResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Services:
    tasks: TaskService
    acceptances: AcceptanceService
    visibility: VisibilityResolver
    allocator: SequentialNumberAllocator
    notifier: DatabaseNotifier


def build_services(session_factory: sessionmaker = SessionLocal, notifier=None) -> Services:
    allocator = SequentialNumberAllocator(session_factory, max_attempts=SETTINGS.number_max_attempts)
    task_repo = TaskRepository(session_factory, allocator=allocator)
    actors = ActorRepository(session_factory)
    resolver = VisibilityResolver(actors)
    notifier = notifier or DatabaseNotifier(session_factory)
    tasks = TaskService(
        task_repo,
        directory=actors,
        notifier=notifier,
        policy=RoleAccessPolicy(),
        allocator=allocator,
        resolver=resolver,
    )
    acceptances = AcceptanceService(TaskAcceptanceRepository(session_factory), task_repo, notifier)
    return Services(
        tasks=tasks,
        acceptances=acceptances,
        visibility=resolver,
        allocator=allocator,
        notifier=notifier,
    )


def main() -> Services:
    setup_logging()
    try:
        init_db()
    except Exception:  # noqa: BLE001
        logger.exception("Database is not reachable")
        sys.exit(1)

    services = build_services()
    logger.info("Task lifecycle services ready")
    return services


if __name__ == "__main__":
    main()
