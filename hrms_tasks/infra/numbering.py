"""Sequential ``PREFIX-N`` numbers shared by every numbered entity.

Numbers are derived from what is already stored rather than a counter row,
so concurrent writers are reconciled by an existence check before a number is
handed out and by the unique index on insert.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import InstrumentedAttribute, Session, sessionmaker

from hrms_tasks.config import SETTINGS
from hrms_tasks.domain.errors import AllocationExhaustedError

from .db import SessionLocal
from .models import ActiveTaskModel, CompletedTaskModel

logger = logging.getLogger(__name__)

_LEADING_DIGITS = re.compile(r"^\s*(\d+)")


@dataclass(frozen=True)
class NumberSeries:
    """A prefix, a start offset and every column whose values share the space."""

    name: str
    prefix: str
    start: int
    columns: tuple[InstrumentedAttribute, ...]

    def format(self, number: int) -> str:
        return f"{self.prefix}{number}"

    def parse(self, code: str | None) -> Optional[int]:
        if not code or not code.upper().startswith(self.prefix.upper()):
            return None
        match = _LEADING_DIGITS.match(code[len(self.prefix):])
        return int(match.group(1)) if match else None


def task_series() -> NumberSeries:
    config = SETTINGS.series("task")
    return NumberSeries(
        name="task",
        prefix=config.prefix,
        start=config.start,
        columns=(ActiveTaskModel.task_number, CompletedTaskModel.task_number),
    )


def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class NumberBatch:
    """In-memory allocation against a snapshot of the issued numbers.

    The snapshot can go stale while the batch is open, so inserts that use
    these numbers still need to skip duplicates.
    """

    def __init__(self, series: NumberSeries, taken: set[str], next_number: int) -> None:
        self.series = series
        self._taken = taken
        self._next = next_number

    def claim(self, supplied: str | None = None) -> str:
        if supplied and supplied.strip():
            code = supplied.strip()
            if code.lower() not in self._taken:
                self._taken.add(code.lower())
                return code
        code = self.series.format(self._next)
        while code.lower() in self._taken:
            self._next += 1
            code = self.series.format(self._next)
        self._taken.add(code.lower())
        self._next += 1
        return code


class SequentialNumberAllocator:
    def __init__(
        self,
        session_factory: sessionmaker = SessionLocal,
        max_attempts: int | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._max_attempts = max_attempts if max_attempts is not None else SETTINGS.number_max_attempts

    def allocate(self, series: NumberSeries, session: Session | None = None) -> str:
        if session is None:
            with self._session_factory() as own_session:
                return self._allocate(own_session, series)
        return self._allocate(session, series)

    def allocate_batch(self, series: NumberSeries, count: int) -> list[str]:
        batch = self.open_batch(series)
        return [batch.claim() for _ in range(count)]

    def open_batch(self, series: NumberSeries) -> NumberBatch:
        with self._session_factory() as session:
            existing = self._issued_codes(session, series)
        highest = self._highest(series, existing)
        return NumberBatch(series, {code.lower() for code in existing}, highest + 1)

    def is_issued(self, series: NumberSeries, code: str, session: Session | None = None) -> bool:
        if session is None:
            with self._session_factory() as own_session:
                return self._exists(own_session, series, code)
        return self._exists(session, series, code)

    def _allocate(self, session: Session, series: NumberSeries) -> str:
        number = self._highest(series, self._issued_codes(session, series)) + 1
        candidate = series.format(number)
        attempts = 0
        while self._exists(session, series, candidate):
            attempts += 1
            if attempts >= self._max_attempts:
                logger.error(
                    "Number allocation exhausted for %s after %s attempts (last %s)",
                    series.name,
                    attempts,
                    candidate,
                )
                raise AllocationExhaustedError(series.name, attempts)
            logger.debug("Number %s already issued, trying next", candidate)
            number += 1
            candidate = series.format(number)
        return candidate

    def _highest(self, series: NumberSeries, codes: Sequence[str]) -> int:
        highest = series.start - 1
        for code in codes:
            parsed = series.parse(code)
            if parsed is not None and parsed > highest:
                highest = parsed
        return highest

    @staticmethod
    def _issued_codes(session: Session, series: NumberSeries) -> list[str]:
        pattern = f"{escape_like(series.prefix)}%"
        codes: list[str] = []
        for column in series.columns:
            stmt = select(column).where(column.ilike(pattern, escape="\\"))
            codes.extend(session.scalars(stmt))
        return codes

    @staticmethod
    def _exists(session: Session, series: NumberSeries, candidate: str) -> bool:
        for column in series.columns:
            stmt = select(column).where(func.lower(column) == candidate.lower()).limit(1)
            if session.scalar(stmt) is not None:
                return True
        return False
