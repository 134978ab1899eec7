"""Persisted-task store interface."""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from taskscan.types import Task, TaskStatus


@runtime_checkable
class TaskStore(Protocol):
    """Single-writer collection of persisted tasks.

    ``save`` replaces the whole collection with the given tasks, in order.
    """

    def load(self) -> list[Task]:
        ...

    def save(self, tasks: Sequence[Task]) -> None:
        ...

    def get(self, task_id: str) -> Task | None:
        ...

    def update_status(self, task_id: str, status: TaskStatus) -> Task:
        """Set a task's status.

        Raises:
            KeyError: No task with ``task_id`` exists.
            ValueError: ``status`` is not a known status.
        """
        ...
