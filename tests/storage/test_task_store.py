"""Tests for task stores (SQLite and in-memory share one contract)."""
from datetime import datetime, timezone

import pytest

from taskscan.storage import MemoryTaskStore, SQLiteTaskStore, TaskStore
from taskscan.types import Task

CREATED = datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(params=["sqlite", "memory"])
def store(request, tmp_path):
    if request.param == "sqlite":
        return SQLiteTaskStore(str(tmp_path / "nested" / "tasks.db"))
    return MemoryTaskStore()


def _tasks():
    return [
        Task(
            title="Send the invoice",
            description="please send the invoice by 11/01/2025",
            priority="high",
            due_date=datetime(2025, 11, 1, tzinfo=timezone.utc),
            source="Slack",
            source_url="https://slack.test/c/1",
            screenshot="frames/1.png",
            created_at=CREATED,
        ),
        Task(title="Book flights", source="Mail", created_at=CREATED),
        Task(title="Call the bank", status="completed", created_at=CREATED),
    ]


class TestTaskStore:
    """Behaviour both stores must share."""

    def test_satisfies_protocol(self, store):
        assert isinstance(store, TaskStore)

    def test_empty(self, store):
        assert store.load() == []

    def test_save_load_preserves_order_and_fields(self, store):
        tasks = _tasks()
        store.save(tasks)
        assert store.load() == tasks

    def test_save_replaces_collection(self, store):
        tasks = _tasks()
        store.save(tasks)
        store.save(tasks[1:])
        assert [t.title for t in store.load()] == ["Book flights", "Call the bank"]

    def test_get(self, store):
        tasks = _tasks()
        store.save(tasks)
        assert store.get(tasks[1].id) == tasks[1]
        assert store.get("missing") is None

    def test_update_status(self, store):
        tasks = _tasks()
        store.save(tasks)

        updated = store.update_status(tasks[0].id, "completed")

        assert updated.status == "completed"
        assert updated.title == "Send the invoice"
        assert [t.status for t in store.load()] == ["completed", "pending", "completed"]

    def test_update_unknown_task(self, store):
        store.save(_tasks())
        with pytest.raises(KeyError):
            store.update_status("missing", "completed")

    def test_update_invalid_status(self, store):
        tasks = _tasks()
        store.save(tasks)
        with pytest.raises(ValueError):
            store.update_status(tasks[0].id, "archived")


def test_sqlite_persists_across_instances(tmp_path):
    path = str(tmp_path / "tasks.db")
    tasks = _tasks()
    SQLiteTaskStore(path).save(tasks)

    reopened = SQLiteTaskStore(path)
    assert reopened.load() == tasks
    assert reopened.count() == 3
    assert reopened.count(status="completed") == 1
