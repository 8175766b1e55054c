# tests/test_task_reminder.py

from __future__ import annotations

import pytest

from nudgeboard.tasks.task_models import TaskStatus
from nudgeboard.tasks.task_reminder import hours_between, needs_attention, next_due_at, reference_time

from .fakes import T0, make_task

HOUR = 3600.0


def test_hours_between_truncates_partial_hours() -> None:
    assert hours_between(T0 + 23 * HOUR + 59 * 60, T0) == 23
    assert hours_between(T0 + 24 * HOUR, T0) == 24
    assert hours_between(T0, T0) == 0


def test_reference_time_prefers_last_reminded_at() -> None:
    assert reference_time(make_task()) == T0
    assert reference_time(make_task(last_reminded_at=T0 + 5 * HOUR)) == T0 + 5 * HOUR


def test_working_task_due_exactly_at_interval_boundary() -> None:
    task = make_task(interval=24)

    assert not needs_attention(task, T0 + 24 * HOUR - 1)
    assert needs_attention(task, T0 + 24 * HOUR)
    assert needs_attention(task, T0 + 100 * HOUR)


@pytest.mark.parametrize("status", [TaskStatus.INIT, TaskStatus.NEED_TAKING_CARE, TaskStatus.DONE])
def test_only_working_tasks_are_ever_escalated(status: TaskStatus) -> None:
    task = make_task(status=status, interval=1, created_at=T0 - 1000 * HOUR)
    assert not needs_attention(task, T0)
    assert next_due_at(task) is None


def test_interval_restarts_from_last_reminder() -> None:
    # Reminded 30h after creation, then moved back to WORKING by the user.
    task = make_task(interval=24, last_reminded_at=T0 + 30 * HOUR)

    assert not needs_attention(task, T0 + 53 * HOUR)
    assert needs_attention(task, T0 + 54 * HOUR)
    assert next_due_at(task) == T0 + 54 * HOUR


def test_one_hour_interval() -> None:
    task = make_task(interval=1)
    assert not needs_attention(task, T0 + 59 * 60)
    assert needs_attention(task, T0 + HOUR)
