# src/nudgeboard/tasks/task_api.py

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .task_board import TaskBoard, TasksCallback
from .task_errors import ValidationError
from .task_models import Task, TaskFormData
from .task_scheduler import DEFAULT_TICK_SECONDS, ReminderCallback, ReminderScheduler

logger = logging.getLogger(__name__)


class BoardSession:
    """
    Mount/unmount lifecycle of a view that owns a TaskBoard.

        async with BoardSession(board, on_reminded=...) as session:
            ...

    On enter: initial load (LoadError propagates and nothing else starts),
    change-feed subscription, reminder scheduler start.
    On exit: scheduler stop, unsubscribe, wait for background writes.
    """

    def __init__(
        self,
        board: TaskBoard,
        *,
        tick_seconds: float = DEFAULT_TICK_SECONDS,
        on_reminded: ReminderCallback | None = None,
        on_change: TasksCallback | None = None,
    ) -> None:
        self.board = board
        self.scheduler = ReminderScheduler(
            board,
            interval_seconds=tick_seconds,
            on_reminded=on_reminded,
        )
        self._on_change = on_change
        self._unsubscribe: Callable[[], None] | None = None

    async def __aenter__(self) -> BoardSession:
        await self.board.load_all()
        self._unsubscribe = self.board.subscribe(self._handle_change)
        self.scheduler.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.scheduler.stop()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.board.aclose()

    def _handle_change(self, tasks: list[Task]) -> Any:
        if self._on_change is None:
            return None
        return self._on_change(tasks)


@dataclass(slots=True)
class ImportReport:
    imported: list[Task] = field(default_factory=list)
    skipped: int = 0


def _legacy_form(entry: Any) -> TaskFormData | None:
    if not isinstance(entry, dict):
        return None
    name = str(entry.get("name") or "").strip()
    if not name:
        return None
    interval = entry.get("reminderInterval", entry.get("reminder_interval"))
    return TaskFormData(
        name=name,
        description=str(entry.get("description") or ""),
        url=str(entry.get("url") or ""),
        reminder_interval=interval,
        color=entry.get("color") or None,
        jira_id=entry.get("jiraId") or entry.get("jira_id") or None,
    )


async def import_legacy_tasks(board: TaskBoard, path: str | Path) -> ImportReport:
    """
    Import a legacy JSON task export (a list of task objects) into the store.

    Only the user-entered fields are carried over; imported tasks start fresh
    (new id, initial status, new timestamps). Malformed entries are skipped.
    PersistenceError stops the import and propagates.
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text("utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ValidationError(f"cannot read legacy tasks from {path}: {exc}") from exc

    if not isinstance(data, list):
        raise ValidationError(f"legacy task file must contain a JSON list: {path}")

    report = ImportReport()
    for entry in data:
        form = _legacy_form(entry)
        if form is None:
            report.skipped += 1
            continue
        report.imported.append(await board.create(form))

    logger.info(
        "Imported %d legacy tasks from %s (skipped %d)",
        len(report.imported),
        path,
        report.skipped,
    )
    return report
