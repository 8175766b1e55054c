# src/nudgeboard/tasks/task_views.py

"""Read-side helpers: column ordering, list filtering and counts."""

from __future__ import annotations

from collections.abc import Iterable

from .task_models import Task, TaskStatus

# Kanban columns, left to right. INIT tasks are shown in the list view only.
BOARD_COLUMNS: tuple[TaskStatus, ...] = (
    TaskStatus.WORKING,
    TaskStatus.NEED_TAKING_CARE,
    TaskStatus.DONE,
)


def tasks_for_column(tasks: Iterable[Task], status: TaskStatus) -> list[Task]:
    """
    Tasks of one kanban column.

    Pinned first (most recently pinned on top), then most recently updated.
    """
    column = [t for t in tasks if t.status == status]
    column.sort(
        key=lambda t: (
            not t.is_pinned,
            -(t.pinned_at or 0.0) if t.is_pinned else 0.0,
            -t.updated_at,
        )
    )
    return column


def filter_tasks(
    tasks: Iterable[Task],
    *,
    status: TaskStatus | None = None,
    query: str = "",
) -> list[Task]:
    """
    List view: optional status filter + case-insensitive search over
    name/description/url. NEED_TAKING_CARE first, then most recently updated.
    """
    result = list(tasks)
    if status is not None:
        result = [t for t in result if t.status == status]

    q = (query or "").strip().lower()
    if q:
        result = [
            t
            for t in result
            if q in t.name.lower() or q in t.description.lower() or q in t.url.lower()
        ]

    result.sort(key=lambda t: (t.status != TaskStatus.NEED_TAKING_CARE, -t.updated_at))
    return result


def status_counts(tasks: Iterable[Task]) -> dict[str, int]:
    items = list(tasks)
    counts = {"all": len(items)}
    for status in TaskStatus:
        counts[status.name.lower()] = sum(1 for t in items if t.status == status)
    return counts
