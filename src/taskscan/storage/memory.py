"""In-memory task store for tests and one-off runs."""

from __future__ import annotations

from typing import Sequence

from taskscan.types import STATUSES, Task, TaskStatus


class MemoryTaskStore:
    def __init__(self, tasks: Sequence[Task] = ()) -> None:
        self._tasks: list[Task] = list(tasks)

    def load(self) -> list[Task]:
        return list(self._tasks)

    def save(self, tasks: Sequence[Task]) -> None:
        self._tasks = list(tasks)

    def get(self, task_id: str) -> Task | None:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def update_status(self, task_id: str, status: TaskStatus) -> Task:
        if status not in STATUSES:
            raise ValueError(f"Unknown task status: {status!r}")
        for position, task in enumerate(self._tasks):
            if task.id == task_id:
                updated = task.with_status(status)
                self._tasks[position] = updated
                return updated
        raise KeyError(task_id)
