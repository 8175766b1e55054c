# src/nudgeboard/tasks/task_reminder.py

"""
Reminder evaluator.

Pure functions, no I/O. A WORKING task needs attention once the number of
whole hours since its reference time reaches its reminder interval.
"""

from __future__ import annotations

import math

from .task_models import Task, TaskStatus

SECONDS_PER_HOUR = 3600.0


def reference_time(task: Task) -> float:
    """lastRemindedAt if the task was ever reminded, else createdAt."""
    if task.last_reminded_at is not None:
        return task.last_reminded_at
    return task.created_at


def hours_between(now_ts: float, then_ts: float) -> int:
    """Whole hours elapsed from then_ts to now_ts, truncated (23h59m -> 23)."""
    return math.floor((now_ts - then_ts) / SECONDS_PER_HOUR)


def needs_attention(task: Task, now_ts: float) -> bool:
    if task.status != TaskStatus.WORKING:
        return False
    return hours_between(now_ts, reference_time(task)) >= task.reminder_interval


def next_due_at(task: Task) -> float | None:
    """
    When the task becomes due for escalation (epoch seconds).

    None for tasks the evaluator never escalates (anything not WORKING).
    """
    if task.status != TaskStatus.WORKING:
        return None
    return reference_time(task) + task.reminder_interval * SECONDS_PER_HOUR
