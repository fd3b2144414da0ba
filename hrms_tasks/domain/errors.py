from __future__ import annotations


class TaskError(Exception):
    """Base class for lifecycle errors.

    ``client_facing`` errors carry enough detail for the caller to act on;
    the rest are server faults and should surface as a generic failure.
    """

    client_facing = True


class NotFoundError(TaskError):
    pass


class InvalidTransitionError(TaskError):
    def __init__(self, task_id: str, current: str, target: str) -> None:
        super().__init__(f"Task {task_id} cannot move from {current} to {target}")
        self.task_id = task_id
        self.current = current
        self.target = target


class ConflictError(TaskError):
    pass


class UnauthorizedError(TaskError):
    pass


class ValidationError(TaskError):
    pass


class AllocationExhaustedError(TaskError):
    client_facing = False

    def __init__(self, series: str, attempts: int) -> None:
        super().__init__(f"Could not allocate a free number for {series} after {attempts} attempts")
        self.series = series
        self.attempts = attempts


class ServiceFailure(TaskError):
    """Generic failure shown in place of a server fault; the cause stays chained."""

    def __init__(self, message: str = "The task operation could not be completed") -> None:
        super().__init__(message)
