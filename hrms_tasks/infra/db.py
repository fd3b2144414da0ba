from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from hrms_tasks.config import SETTINGS

engine = create_engine(SETTINGS.database_url, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
Base = declarative_base()


def init_db() -> None:
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))


@contextmanager
def transaction(session_factory: sessionmaker) -> Iterator[Session]:
    """Open a session whose work commits as one unit or rolls back entirely."""
    with session_factory() as session:
        with session.begin():
            yield session
