# src/nudgeboard/tasks/task_board.py

"""
Task board: the single point of mutation and query for tasks.

Holds the in-memory task list shared by the UI layer and the reminder
scheduler, applies optimistic local updates, persists them through the
injected TaskGateway and reconciles with whatever the gateway returns.

Reconciliation rule: a row returned by the gateway (direct mutation response
or a refresh triggered by the change feed) always replaces the local copy.
Failed mutations are NOT rolled back locally; callers that need strict
consistency should call load_all() again after a PersistenceError.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
import time
import uuid
from collections.abc import Callable, Coroutine, Iterable
from dataclasses import replace
from typing import Any

from ..core.ports import TaskGateway
from .task_errors import LoadError, NotFoundError, PersistenceError, ValidationError
from .task_models import DEFAULT_REMINDER_INTERVAL, Task, TaskFormData, TaskStatus, resolve_color

logger = logging.getLogger(__name__)

TasksCallback = Callable[[list[Task]], Any]

# Fields a caller may change through update().
EDITABLE_FIELDS = frozenset(
    {"name", "description", "url", "jira_id", "reminder_interval", "color", "status"}
)


def normalize_reminder_interval(value: Any, default: int = DEFAULT_REMINDER_INTERVAL) -> int:
    """
    Coerce a reminder interval (hours) to a positive integer.

    Missing, non-numeric, or non-positive values become `default`.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        hours = int(value)
    except (TypeError, ValueError):
        return default
    return hours if hours >= 1 else default


def _validate_name(raw: Any) -> str:
    name = str(raw or "").strip()
    if not name:
        raise ValidationError("name is required")
    return name


class _Subscription:
    __slots__ = ("callback", "unsubscribe_gateway", "pending", "dirty", "closed")

    def __init__(self, callback: TasksCallback) -> None:
        self.callback = callback
        self.unsubscribe_gateway: Callable[[], None] | None = None
        self.pending: asyncio.Task | None = None
        self.dirty = False
        self.closed = False


class TaskBoard:
    def __init__(
        self,
        gateway: TaskGateway,
        *,
        initial_status: TaskStatus = TaskStatus.INIT,
        default_reminder_interval: int = DEFAULT_REMINDER_INTERVAL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if initial_status not in (TaskStatus.INIT, TaskStatus.WORKING):
            raise ValueError("initial_status must be INIT or WORKING")
        self._gateway = gateway
        self._initial_status = initial_status
        self._default_interval = normalize_reminder_interval(default_reminder_interval)
        self._clock = clock

        # Replaced wholesale on every change, never mutated in place.
        self._tasks: tuple[Task, ...] = ()
        self._loaded = False

        self._subscriptions: list[_Subscription] = []
        self._background: set[asyncio.Task] = set()

    # ---- queries ----

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def tasks(self) -> tuple[Task, ...]:
        return self._tasks

    def get(self, task_id: str) -> Task | None:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def now(self) -> float:
        return self._clock()

    # ---- local state helpers (no awaits inside: each call is atomic for readers) ----

    def _put_local(self, task: Task) -> None:
        items = list(self._tasks)
        for i, existing in enumerate(items):
            if existing.id == task.id:
                items[i] = task
                self._tasks = tuple(items)
                return
        self._tasks = (task, *items)

    def _drop_local(self, task_id: str) -> None:
        self._tasks = tuple(t for t in self._tasks if t.id != task_id)

    # ---- gateway helpers ----

    async def _persist(self, action: str, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, *args)
        except Exception as exc:
            logger.warning("Failed to %s: %s", action, exc)
            raise PersistenceError(f"Failed to {action}: {exc}") from exc

    async def _apply(self, task_id: str, fields: dict[str, Any], action: str) -> Task:
        """Optimistically apply `fields`, persist them in one update, reconcile."""
        now = self._clock()
        values = {**fields, "updated_at": now}

        local = self.get(task_id)
        if local is not None:
            self._put_local(replace(local, **values))

        stored = await self._persist(action, self._gateway.update_task, task_id, values)
        if stored is None:
            self._drop_local(task_id)
            raise NotFoundError(task_id)

        self._put_local(stored)
        return stored

    # ---- operations ----

    async def load_all(self) -> list[Task]:
        """
        Fetch the owner's full task list (newest first).

        On failure raises LoadError; a board that was never loaded stays
        not-loaded, so the reminder scheduler refuses to start.
        """
        try:
            tasks = await asyncio.to_thread(self._gateway.select_all)
        except Exception as exc:
            logger.error("Failed to load tasks: %s", exc)
            raise LoadError(f"Failed to fetch tasks: {exc}") from exc

        self._tasks = tuple(tasks)
        self._loaded = True
        logger.info("Loaded %d tasks.", len(tasks))
        return list(tasks)

    async def create(self, form: TaskFormData) -> Task:
        name = _validate_name(form.name)
        interval = normalize_reminder_interval(form.reminder_interval, self._default_interval)

        now = self._clock()
        task = Task(
            id=str(uuid.uuid4()),
            name=name,
            description=form.description or "",
            url=(form.url or "").strip(),
            status=self._initial_status,
            reminder_interval=interval,
            created_at=now,
            updated_at=now,
            color=resolve_color(form.color),
            jira_id=(form.jira_id or "").strip() or None,
        )

        stored = await self._persist("create task", self._gateway.insert_task, task)
        self._put_local(stored)
        logger.info("Task created id=%s name=%r status=%s", stored.id, stored.name, stored.status.name)
        return stored

    async def update(self, task_id: str, /, **changes: Any) -> Task:
        """
        Apply only the given fields; updated_at is always refreshed.

        Preset colour names ("red", "blue", ...) are stored as their hex value.
        """
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"fields cannot be updated: {', '.join(sorted(unknown))}")

        fields: dict[str, Any] = {}
        for key, value in changes.items():
            if key == "name":
                fields["name"] = _validate_name(value)
            elif key == "reminder_interval":
                fields["reminder_interval"] = normalize_reminder_interval(value, self._default_interval)
            elif key == "status":
                fields["status"] = self._parse_status(value)
            elif key == "color":
                fields["color"] = resolve_color(value)
            elif key == "jira_id":
                fields["jira_id"] = (str(value).strip() or None) if value is not None else None
            else:
                fields[key] = "" if value is None else str(value)

        return await self._apply(task_id, fields, f"update task {task_id}")

    async def set_status(self, task_id: str, status: TaskStatus | int | str) -> Task:
        """Manual transition to any status. Never touches last_reminded_at."""
        new_status = self._parse_status(status)
        task = await self._apply(task_id, {"status": new_status}, f"update task status {task_id}")
        logger.info("Task %s -> %s (manual)", task_id, new_status.name)
        return task

    async def mark_reminded(self, task_id: str) -> Task:
        """
        Escalate a task: status and last_reminded_at land in one update.

        Safe to call repeatedly; the last call's timestamp wins.
        """
        now = self._clock()
        task = await self._apply(
            task_id,
            {"status": TaskStatus.NEED_TAKING_CARE, "last_reminded_at": now},
            f"mark task as reminded {task_id}",
        )
        logger.info("Task %s -> NEED_TAKING_CARE (reminder)", task_id)
        return task

    async def toggle_pin(self, task_id: str, pinned: bool) -> Task:
        fields: dict[str, Any] = {"is_pinned": bool(pinned)}
        if pinned:
            local = self.get(task_id)
            already = local is not None and local.is_pinned and local.pinned_at is not None
            fields["pinned_at"] = local.pinned_at if already else self._clock()
        else:
            fields["pinned_at"] = None
        return await self._apply(task_id, fields, f"toggle pin {task_id}")

    async def delete(self, task_id: str) -> None:
        """Permanently remove a task. Deleting an unknown id is not an error."""
        self._drop_local(task_id)
        deleted = await self._persist(f"delete task {task_id}", self._gateway.delete_task, task_id)
        if not deleted:
            logger.debug("delete: task %s was already gone", task_id)

    def reorder(self, tasks: Iterable[Task]) -> asyncio.Task | None:
        """
        Replace the local list with `tasks` (new order and/or statuses) right away.

        Status changes are persisted in the background; the returned asyncio.Task
        can be awaited by callers that care, or ignored. Failures are logged and
        local state is kept as-is. Must be called with a running event loop when
        any status changed.
        """
        new_tasks = tuple(tasks)
        previous = {t.id: t for t in self._tasks}
        self._tasks = new_tasks

        changed = [
            t for t in new_tasks if t.id in previous and previous[t.id].status != t.status
        ]
        if not changed:
            return None

        return self.run_in_background(self._persist_statuses(changed))

    def run_in_background(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        """Schedule a write that wait_idle() and aclose() will wait for."""
        job = asyncio.get_running_loop().create_task(coro)
        self._background.add(job)
        job.add_done_callback(self._background_done)
        return job

    def _background_done(self, job: asyncio.Task) -> None:
        self._background.discard(job)
        if not job.cancelled() and job.exception() is not None:
            logger.debug("Background write failed: %s", job.exception())

    async def _persist_statuses(self, changed: list[Task]) -> None:
        results = await asyncio.gather(
            *(self.set_status(t.id, t.status) for t in changed),
            return_exceptions=True,
        )
        for task, result in zip(changed, results):
            if isinstance(result, BaseException):
                logger.error("reorder: failed to persist status for task %s: %s", task.id, result)

    # ---- change feed ----

    def subscribe(self, callback: TasksCallback) -> Callable[[], None]:
        """
        Call `callback(tasks)` with the refreshed full list after any remote change.

        Must be called from within the running event loop; gateway notifications
        may arrive on any thread. Bursts of notifications are coalesced into one
        re-read. Returns an idempotent unsubscribe callable.
        """
        loop = asyncio.get_running_loop()
        sub = _Subscription(callback)

        def on_change(_event: Any) -> None:
            if sub.closed or loop.is_closed():
                return
            with contextlib.suppress(RuntimeError):
                loop.call_soon_threadsafe(self._schedule_refresh, sub)

        sub.unsubscribe_gateway = self._gateway.subscribe(on_change)
        self._subscriptions.append(sub)

        def unsubscribe() -> None:
            if sub.closed:
                return
            sub.closed = True
            if sub.unsubscribe_gateway is not None:
                sub.unsubscribe_gateway()
            if sub.pending is not None and not sub.pending.done():
                sub.pending.cancel()
            with contextlib.suppress(ValueError):
                self._subscriptions.remove(sub)

        return unsubscribe

    def _schedule_refresh(self, sub: _Subscription) -> None:
        if sub.closed:
            return
        if sub.pending is not None and not sub.pending.done():
            sub.dirty = True
            return
        sub.pending = asyncio.get_running_loop().create_task(self._refresh(sub))

    async def _refresh(self, sub: _Subscription) -> None:
        while not sub.closed:
            sub.dirty = False
            try:
                tasks = await asyncio.to_thread(self._gateway.select_all)
            except Exception:
                logger.exception("Refresh after remote change failed.")
                return

            self._tasks = tuple(tasks)
            self._loaded = True

            try:
                result = sub.callback(list(tasks))
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Task subscription callback failed.")

            if not sub.dirty:
                return

    async def wait_idle(self) -> None:
        """Wait for background persistence and pending refreshes to finish."""
        pending = [*self._background]
        pending.extend(s.pending for s in self._subscriptions if s.pending is not None)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def aclose(self) -> None:
        """Drop all subscriptions and let in-flight background writes finish."""
        for sub in list(self._subscriptions):
            sub.closed = True
            if sub.unsubscribe_gateway is not None:
                sub.unsubscribe_gateway()
            if sub.pending is not None and not sub.pending.done():
                sub.pending.cancel()
        self._subscriptions.clear()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    # ---- misc ----

    @staticmethod
    def _parse_status(raw: Any) -> TaskStatus:
        try:
            return TaskStatus.parse(raw)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
