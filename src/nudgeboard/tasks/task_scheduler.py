# src/nudgeboard/tasks/task_scheduler.py

from __future__ import annotations

"""
Reminder scheduler.

A small polling loop that, on every tick:
- reads the board's current in-memory task list once,
- asks the reminder evaluator which WORKING tasks are overdue,
- issues one mark_reminded() per overdue task, all concurrently.

It keeps no state of its own: everything is re-derived from the task list,
so a tick that races with a not-yet-landed status change is harmless
(mark_reminded is last-write-wins).
"""

import asyncio
import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .task_board import TaskBoard
from .task_errors import LoadError
from .task_models import Task
from .task_reminder import needs_attention

logger = logging.getLogger(__name__)

ReminderCallback = Callable[[Task], Any]

DEFAULT_TICK_SECONDS = 60.0


@dataclass(slots=True)
class ReminderTickResult:
    """What one tick did: escalated tasks and per-task failures."""

    reminded: list[Task] = field(default_factory=list)
    failures: dict[str, BaseException] = field(default_factory=dict)
    skipped: bool = False


async def _notify(on_reminded: ReminderCallback | None, task: Task) -> None:
    if on_reminded is None:
        return
    try:
        result = on_reminded(task)
        if inspect.isawaitable(result):
            await result
    except Exception:
        logger.exception("on_reminded callback failed task_id=%s", task.id)


async def check_reminders(
        board: TaskBoard,
        *,
        now_ts: float | None = None,
        on_reminded: ReminderCallback | None = None,
) -> ReminderTickResult:
    """
    Run a single reminder tick.

    Does nothing (skipped=True) while the board is not loaded. A failure for
    one task is logged and recorded; it never prevents the others.
    """
    if not board.is_loaded:
        logger.debug("Reminder tick skipped: task list not loaded yet.")
        return ReminderTickResult(skipped=True)

    if now_ts is None:
        now_ts = board.now()

    due = [t for t in board.tasks if needs_attention(t, now_ts)]
    result = ReminderTickResult()
    if not due:
        return result

    logger.debug("Reminder tick: %d task(s) due", len(due))
    outcomes = await asyncio.gather(
        # Shielded: a write issued before cancellation is allowed to finish.
        *(asyncio.shield(board.run_in_background(board.mark_reminded(t.id))) for t in due),
        return_exceptions=True,
    )

    for task, outcome in zip(due, outcomes):
        if isinstance(outcome, asyncio.CancelledError):
            raise outcome
        if isinstance(outcome, BaseException):
            logger.error(
                "mark_reminded failed task_id=%s: %s",
                task.id,
                outcome,
                exc_info=outcome,
            )
            result.failures[task.id] = outcome
            continue
        result.reminded.append(outcome)
        await _notify(on_reminded, outcome)

    return result


async def run_reminder_scheduler(
        board: TaskBoard,
        *,
        interval_seconds: float = DEFAULT_TICK_SECONDS,
        on_reminded: ReminderCallback | None = None,
        on_tick: Callable[[ReminderTickResult], Any] | None = None,
) -> None:
    """
    Simple polling scheduler.

    Checks immediately, then every interval_seconds. Raises LoadError up front
    if the board has not completed its initial load.

    To stop the scheduler, cancel the coroutine/task.
    """
    if not board.is_loaded:
        raise LoadError("reminder scheduler needs a loaded task list")

    sleep_s = max(0.01, float(interval_seconds))

    while True:
        try:
            result = await check_reminders(board, on_reminded=on_reminded)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Reminder tick crashed; continuing.")
        else:
            if on_tick is not None:
                try:
                    on_tick(result)
                except Exception:
                    logger.exception("on_tick callback failed")

        await asyncio.sleep(sleep_s)


class ReminderScheduler:
    """
    Start/stop wrapper around run_reminder_scheduler().

    Tied to the lifetime of the view that owns the board: start() when the
    task list is loaded, stop() on teardown. Mark-as-reminded calls already in
    flight when stop() runs keep going as board background writes; the
    board's wait_idle()/aclose() waits for them.
    """

    def __init__(
        self,
        board: TaskBoard,
        *,
        interval_seconds: float = DEFAULT_TICK_SECONDS,
        on_reminded: ReminderCallback | None = None,
        on_tick: Callable[[ReminderTickResult], Any] | None = None,
    ) -> None:
        self._board = board
        self._interval = interval_seconds
        self._on_reminded = on_reminded
        self._on_tick = on_tick
        self._runner: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._runner is not None and not self._runner.done()

    def start(self) -> None:
        if self.running:
            return
        if not self._board.is_loaded:
            raise LoadError("reminder scheduler needs a loaded task list")
        self._runner = asyncio.get_running_loop().create_task(
            run_reminder_scheduler(
                self._board,
                interval_seconds=self._interval,
                on_reminded=self._on_reminded,
                on_tick=self._on_tick,
            ),
            name="reminder-scheduler",
        )
        logger.info("Reminder scheduler started (every %.0fs).", self._interval)

    async def stop(self) -> None:
        runner = self._runner
        self._runner = None
        if runner is None or runner.done():
            return
        runner.cancel()
        try:
            await runner
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
        logger.info("Reminder scheduler stopped.")
