# src/nudgeboard/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import threading
import time
from pathlib import Path
from typing import Any

from .task_models import ChangeEvent, Task, TaskStatus

logger = logging.getLogger(__name__)

# Columns update_task() may touch. id, owner_id and created_at are immutable.
_UPDATABLE_COLUMNS = frozenset(
    {
        "name",
        "description",
        "url",
        "jira_id",
        "status",
        "reminder_interval",
        "updated_at",
        "last_reminded_at",
        "is_pinned",
        "pinned_at",
        "color",
    }
)


class TaskStore:
    """
    SQLite task store (persistence gateway).

    One row per task, scoped to a single owner: every query filters on
    owner_id, so two stores on the same file with different owners never
    see each other's rows.

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Change feed:
    - subscribe(listener) registers a callable receiving a ChangeEvent
    - listeners fire after every committed insert/update/delete, on the
      thread that performed the write

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3", *, owner_id: str = "local") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._owner_id = owner_id
        self._listeners: list = []
        self._listeners_lock = threading.Lock()
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except Exception:
            total = -1
        logger.info("TaskStore ready db=%s owner=%s total=%s", self._db_path, owner_id, total)

    @property
    def owner_id(self) -> str:
        return self._owner_id

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        with self._listeners_lock:
            self._listeners.clear()

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    owner_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    url TEXT NOT NULL DEFAULT '',
                    status INTEGER NOT NULL DEFAULT 0,
                    reminder_interval INTEGER NOT NULL DEFAULT 24
                        CHECK (reminder_interval >= 1),
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    last_reminded_at REAL
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            # Pinning, colour and jira link arrived after the first schema.
            add_col("is_pinned", "INTEGER NOT NULL DEFAULT 0")
            add_col("pinned_at", "REAL")
            add_col("color", "TEXT")
            add_col("jira_id", "TEXT")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_owner_created ON tasks(owner_id, created_at)")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=str(row["id"]),
            name=str(row["name"] or ""),
            description=str(row["description"] or ""),
            url=str(row["url"] or ""),
            status=TaskStatus.from_db(row["status"]),
            reminder_interval=int(row["reminder_interval"] or 24),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
            last_reminded_at=(
                float(row["last_reminded_at"]) if row["last_reminded_at"] is not None else None
            ),
            is_pinned=bool(row["is_pinned"]),
            pinned_at=float(row["pinned_at"]) if row["pinned_at"] is not None else None,
            color=row["color"],
            jira_id=row["jira_id"],
        )

    @staticmethod
    def _to_db_value(column: str, value: Any) -> Any:
        if value is None:
            return None
        if column == "status":
            return int(TaskStatus(value))
        if column == "is_pinned":
            return 1 if value else 0
        if column == "reminder_interval":
            return int(value)
        if column in ("updated_at", "last_reminded_at", "pinned_at"):
            return float(value)
        return value

    def _select_one(self, conn: sqlite3.Connection, task_id: str) -> Task | None:
        cur = conn.execute(
            "SELECT * FROM tasks WHERE id = ? AND owner_id = ?",
            (task_id, self._owner_id),
        )
        row = cur.fetchone()
        return self._row_to_task(row) if row else None

    # ---- change feed ----

    def subscribe(self, listener) -> Any:
        """Register a change listener. Returns an idempotent unsubscribe callable."""
        with self._listeners_lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._listeners_lock:
                with contextlib.suppress(ValueError):
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, kind: str, task_id: str) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        if not listeners:
            return
        event = ChangeEvent(kind=kind, task_id=task_id)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Change listener failed kind=%s task_id=%s", kind, task_id)

    # ---- public API ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT COUNT(*) FROM tasks WHERE owner_id = ?", (self._owner_id,))
            (n,) = cur.fetchone()
            return int(n)
        finally:
            conn.close()

    def select_all(self) -> list[Task]:
        """All tasks of the owner, newest first."""
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "SELECT * FROM tasks WHERE owner_id = ? ORDER BY created_at DESC, id ASC",
                (self._owner_id,),
            )
            return [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def get_task(self, task_id: str) -> Task | None:
        conn = self._get_conn()
        try:
            return self._select_one(conn, task_id)
        finally:
            conn.close()

    def insert_task(self, task: Task) -> Task:
        if not task.name or not task.name.strip():
            raise ValueError("name is required")

        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO tasks(
                    id, owner_id, name, description, url, jira_id,
                    status, reminder_interval,
                    created_at, updated_at, last_reminded_at,
                    is_pinned, pinned_at, color
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    task.id,
                    self._owner_id,
                    task.name,
                    task.description,
                    task.url,
                    task.jira_id,
                    int(task.status),
                    int(task.reminder_interval),
                    float(task.created_at),
                    float(max(task.updated_at, task.created_at)),
                    task.last_reminded_at,
                    1 if task.is_pinned else 0,
                    task.pinned_at,
                    task.color,
                ),
            )
            conn.commit()
            stored = self._select_one(conn, task.id)
        finally:
            conn.close()

        if stored is None:
            raise RuntimeError(f"SQLite did not return the inserted task id={task.id}")

        logger.debug(
            "Task added id=%s status=%s interval=%sh",
            stored.id,
            stored.status.name,
            stored.reminder_interval,
        )
        self._notify("insert", stored.id)
        return stored

    def update_task(self, task_id: str, fields: dict[str, Any]) -> Task | None:
        """
        Apply the given column values in a single UPDATE statement.

        updated_at is always refreshed (and never set below created_at).
        Returns the stored row, or None if the id is unknown for this owner.
        """
        unknown = set(fields) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"unknown task columns: {sorted(unknown)}")

        values = dict(fields)
        values.setdefault("updated_at", time.time())

        assignments: list[str] = []
        params: list[Any] = []
        for column, value in values.items():
            if column == "updated_at":
                assignments.append("updated_at = MAX(?, created_at)")
            else:
                assignments.append(f"{column} = ?")
            params.append(self._to_db_value(column, value))
        params.extend([task_id, self._owner_id])

        sql = f"UPDATE tasks SET {', '.join(assignments)} WHERE id = ? AND owner_id = ?"

        conn = self._get_conn()
        try:
            cur = conn.execute(sql, params)
            conn.commit()
            if cur.rowcount != 1:
                return None
            stored = self._select_one(conn, task_id)
        finally:
            conn.close()

        self._notify("update", task_id)
        return stored

    def delete_task(self, task_id: str) -> bool:
        """Delete a task. Returns False if there was nothing to delete."""
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "DELETE FROM tasks WHERE id = ? AND owner_id = ?",
                (task_id, self._owner_id),
            )
            conn.commit()
            deleted = cur.rowcount == 1
        finally:
            conn.close()

        if deleted:
            logger.debug("Task deleted id=%s", task_id)
            self._notify("delete", task_id)
        return deleted
