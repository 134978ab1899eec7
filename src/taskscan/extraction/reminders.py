"""Selection of pending tasks that are due for a reminder."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Mapping, Sequence

from taskscan.types import Task, utc_now

# Minutes after creation before a pending task is worth a reminder
DEFAULT_REMINDER_TIMING: dict[str, int] = {
    "high": 30,
    "medium": 120,
    "low": 360,
}


def due_reminders(
    tasks: Sequence[Task],
    timing: Mapping[str, int] = DEFAULT_REMINDER_TIMING,
    now: datetime | None = None,
) -> list[Task]:
    """Pending tasks whose per-priority reminder interval has elapsed."""
    now = now or utc_now()
    due = []
    for task in tasks:
        if task.status != "pending":
            continue
        minutes = timing.get(task.priority, DEFAULT_REMINDER_TIMING[task.priority])
        if task.created_at + timedelta(minutes=minutes) <= now:
            due.append(task)
    return due
