# src/nudgeboard/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage and AI providers swappable and makes testing easier.
"""

from typing import Any, Callable, Protocol

from ..tasks.task_models import ChangeEvent, Task

ChangeListener = Callable[[ChangeEvent], None]
Unsubscribe = Callable[[], None]


class TaskGateway(Protocol):
    """
    Persistence gateway for tasks: owner-scoped CRUD + a change feed.

    Methods are synchronous (blocking I/O); TaskBoard runs them off the event loop.
    update_task/delete_task report a missing row through their return value,
    never by raising.
    """

    def select_all(self) -> list[Task]: ...
    def get_task(self, task_id: str) -> Task | None: ...
    def insert_task(self, task: Task) -> Task: ...
    def update_task(self, task_id: str, fields: dict[str, Any]) -> Task | None: ...
    def delete_task(self, task_id: str) -> bool: ...

    # Change feed. Listeners may be invoked from any thread.
    def subscribe(self, listener: ChangeListener) -> Unsubscribe: ...


class VocabularyGenerator(Protocol):
    """AI content generator for the vocabulary feature."""

    def generate(self, word: str) -> Any: ...
