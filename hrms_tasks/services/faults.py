from __future__ import annotations

import functools
import logging
from typing import Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from hrms_tasks.domain.errors import ServiceFailure, TaskError

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable)


def surface_errors(func: F) -> F:
    """Pass client-facing errors through; log anything else and raise ``ServiceFailure``."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except TaskError as exc:
            if exc.client_facing:
                raise
            logger.exception("%s failed with a server fault", func.__qualname__)
            raise ServiceFailure() from exc
        except SQLAlchemyError as exc:
            logger.exception("%s failed in the database", func.__qualname__)
            raise ServiceFailure() from exc

    return wrapper  # type: ignore[return-value]
