# src/nudgeboard/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


DEFAULT_REMINDER_INTERVAL = 24


class TaskStatus(IntEnum):
    """
    Task lifecycle status.

    The integer values are the persisted encoding (small integer column).
    The older 3-state layout without INIT is not supported.
    """

    INIT = 0
    WORKING = 1
    NEED_TAKING_CARE = 2
    DONE = 3

    @property
    def label(self) -> str:
        return TASK_STATUS_LABELS[self]

    @classmethod
    def parse(cls, raw: object) -> TaskStatus:
        """
        Accept an enum member, its integer value, its name ("need_taking_care")
        or its label ("Need Taking Care"). Raises ValueError otherwise.
        """
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, bool):
            raise ValueError(f"invalid task status: {raw!r}")
        if isinstance(raw, int):
            return cls(raw)
        if isinstance(raw, str):
            s = raw.strip()
            if s.isdigit():
                return cls(int(s))
            key = s.upper().replace(" ", "_").replace("-", "_")
            if key in cls.__members__:
                return cls[key]
        raise ValueError(f"invalid task status: {raw!r}")

    @classmethod
    def from_db(cls, raw: int | None) -> TaskStatus:
        if raw is None:
            return cls.INIT
        try:
            return cls(int(raw))
        except (TypeError, ValueError):
            return cls.INIT


TASK_STATUS_LABELS: dict[TaskStatus, str] = {
    TaskStatus.INIT: "Init",
    TaskStatus.WORKING: "Working",
    TaskStatus.NEED_TAKING_CARE: "Need Taking Care",
    TaskStatus.DONE: "Done",
}

# Preset colours for task titles.
TASK_PRESET_COLORS: dict[str, str] = {
    "red": "#EF4444",
    "orange": "#F97316",
    "yellow": "#EAB308",
    "green": "#10B981",
    "blue": "#3B82F6",
}


def resolve_color(raw: str | None) -> str | None:
    """Map a preset name to its hex value; any other non-empty value is kept as-is."""
    if raw is None:
        return None
    value = str(raw).strip()
    if not value:
        return None
    return TASK_PRESET_COLORS.get(value.lower(), value)


@dataclass(slots=True, frozen=True)
class Task:
    """
    One unit of trackable work.

    Timestamps are unix epoch seconds (float). Instances are immutable:
    every mutation produces a new Task via dataclasses.replace().
    """

    id: str
    name: str
    description: str
    url: str
    status: TaskStatus
    reminder_interval: int
    created_at: float
    updated_at: float
    last_reminded_at: float | None = None
    is_pinned: bool = False
    pinned_at: float | None = None
    color: str | None = None
    jira_id: str | None = None


@dataclass(slots=True)
class TaskFormData:
    """User input for creating a task (before validation)."""

    name: str
    description: str = ""
    url: str = ""
    reminder_interval: int | None = DEFAULT_REMINDER_INTERVAL
    color: str | None = None
    jira_id: str | None = None


@dataclass(slots=True, frozen=True)
class ChangeEvent:
    """
    Generic "something changed" notification from the persistence gateway.

    Consumers are expected to re-read; task_id is informational only.
    """

    kind: str  # "insert" | "update" | "delete"
    task_id: str
