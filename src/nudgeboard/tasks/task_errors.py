# src/nudgeboard/tasks/task_errors.py

from __future__ import annotations


class TaskError(Exception):
    """Base class for task lifecycle errors raised by TaskBoard."""


class ValidationError(TaskError, ValueError):
    """Bad input to a mutation. Never reaches the persistence gateway."""


class NotFoundError(TaskError, LookupError):
    """The referenced task id is not (or no longer) present."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"task not found: {task_id}")
        self.task_id = task_id


class PersistenceError(TaskError):
    """
    Backend failure during a mutation.

    The original backend exception is chained as __cause__ and its message
    is kept in str(err).
    """


class LoadError(TaskError):
    """Loading the task list failed; the board stays not-loaded."""
