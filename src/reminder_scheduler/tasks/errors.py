# src/reminder_scheduler/tasks/errors.py

"""Error types raised by the task subsystem.

None of these are fatal to the process: the event consumer and the scanner log
them at the unit-of-work boundary and move on.
"""

from __future__ import annotations


class SchedulerError(Exception):
    """Base class for task subsystem errors."""


class ParseError(SchedulerError):
    def __init__(self, expression: str, reason: str) -> None:
        self.expression = expression
        self.reason = reason
        super().__init__(f"invalid schedule {expression!r}: {reason}")


class NotFoundError(SchedulerError):
    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"task not found: {task_id}")


class InactiveError(SchedulerError):
    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"task is not active: {task_id}")


class ScheduleError(SchedulerError):
    """Stored schedule could not be evaluated at fire time (data corruption)."""

    def __init__(self, task_id: str, expression: str, reason: str) -> None:
        self.task_id = task_id
        self.expression = expression
        super().__init__(f"task {task_id} has unusable schedule {expression!r}: {reason}")


class EventError(SchedulerError):
    """Malformed lifecycle event envelope."""
