"""Tests for the HTTP service (FastAPI TestClient, no network)."""
import asyncio
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from taskscan.capture import CaptureSourceError
from taskscan.config import ScanSettings
from taskscan.extraction import PatternStrategy, TaskExtractor
from taskscan.notify import Notifier
from taskscan.service import create_app
from taskscan.service.app import _scheduled_scans
from taskscan.storage import MemoryTaskStore
from taskscan.types import CapturedItem, Task

CAPTURED = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeCapture:
    """Capture source answering from a fixed item list."""

    def __init__(self, items=(), error=None):
        self.items = list(items)
        self.error = error
        self.queries = []

    async def query(self, start=None, end=None, limit=500, **kwargs):
        self.queries.append((start, end, limit))
        if self.error is not None:
            raise self.error
        return list(self.items)


def _screen():
    return [
        CapturedItem(source_app="Slack", text="please call the bank asap about the card", captured_at=CAPTURED),
        CapturedItem(source_app="Mail", text="TODO: renew the domain before friday", captured_at=CAPTURED),
        CapturedItem(source_app="Code", text="def main(): pass  # TODO: refactor", captured_at=CAPTURED),
    ]


@pytest.fixture
def service(recording_queue):
    def _build(settings=None, store=None, capture=None):
        app = create_app(
            settings=settings or ScanSettings(),
            store=store if store is not None else MemoryTaskStore(),
            notifier=Notifier(recording_queue, source_service="taskscan-test"),
            extractor=TaskExtractor([PatternStrategy()]),
            capture=capture or FakeCapture(_screen()),
            schedule=False,
        )
        return TestClient(app)
    return _build


class TestExtractTodos:
    """POST /extract-todos."""

    def test_pattern_extraction(self, service):
        with service() as client:
            response = client.post(
                "/extract-todos",
                json={"text": "please remember to send the invoice by 11/01/2025", "source": "Slack"},
            )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["method"] == "fallback"
        [todo] = body["data"]
        assert todo["title"] == "Remember to send the invoice by 11/01/2025"
        assert todo["priority"] == "medium"
        assert todo["dueDate"] == "2025-11-01T00:00:00.000Z"
        assert todo["source"] == "Slack"

    def test_custom_keywords(self, service):
        with service() as client:
            response = client.post(
                "/extract-todos",
                json={
                    "text": "please send the invoice today",
                    "priorityKeywords": {"high": "invoice", "medium": "", "low": ""},
                },
            )
        [todo] = response.json()["data"]
        assert todo["priority"] == "high"
        assert todo["source"] == "Unknown"

    def test_nothing_found(self, service):
        with service() as client:
            body = client.post("/extract-todos", json={"text": "lunch was great today"}).json()
        assert body["data"] == []

    def test_malformed_keywords(self, service):
        with service() as client:
            response = client.post(
                "/extract-todos",
                json={"text": "please send it", "priorityKeywords": {"high": "urgent"}},
            )
        assert response.status_code == 422
        assert "missing" in response.json()["detail"]

    def test_empty_text_rejected(self, service):
        with service() as client:
            assert client.post("/extract-todos", json={"text": ""}).status_code == 422


class TestScanTodos:
    """GET /scan-todos."""

    def test_scan_and_rescan(self, service, recording_queue):
        store = MemoryTaskStore()
        with service(store=store) as client:
            first = client.get("/scan-todos").json()
            second = client.get("/scan-todos").json()

        assert first == {
            "success": True,
            "message": "Extracted 2 todos from screen data",
            "todosExtracted": 2,
            "newTasks": 2,
            "highPriority": 1,
        }
        assert second["newTasks"] == 0
        assert len(store.load()) == 2

        [(_, envelope)] = recording_queue.published
        assert envelope["payload"]["body"] == "Found 1 new high priority tasks"

    def test_disabled(self, service):
        capture = FakeCapture(_screen())
        with service(settings=ScanSettings(enable_auto_detection=False), capture=capture) as client:
            body = client.get("/scan-todos").json()
        assert body["message"] == "Auto-detection is disabled"
        assert capture.queries == []

    def test_capture_source_down(self, service):
        capture = FakeCapture(error=CaptureSourceError("Could not connect to Screenpipe"))
        with service(capture=capture) as client:
            response = client.get("/scan-todos")
        assert response.status_code == 502
        assert "Screenpipe" in response.json()["detail"]

    def test_lookback_window(self, service):
        capture = FakeCapture(_screen())
        with service(settings=ScanSettings(lookback_minutes=15, capture_limit=20), capture=capture) as client:
            client.get("/scan-todos")
        [(start, end, limit)] = capture.queries
        assert (end - start).total_seconds() == 15 * 60
        assert limit == 20


class TestTasks:
    """Task listing and status changes."""

    def _store(self):
        return MemoryTaskStore([
            Task(title="Send the invoice", priority="high", created_at=CAPTURED),
            Task(title="Call the bank", status="completed", created_at=CAPTURED),
        ])

    def test_list(self, service):
        with service(store=self._store()) as client:
            everything = client.get("/tasks").json()
            pending = client.get("/tasks", params={"status": "pending"}).json()
        assert [t["title"] for t in everything] == ["Send the invoice", "Call the bank"]
        assert [t["title"] for t in pending] == ["Send the invoice"]
        assert everything[0]["createdAt"] == "2025-01-01T12:00:00.000Z"

    def test_update_status(self, service):
        store = self._store()
        task_id = store.load()[0].id
        with service(store=store) as client:
            response = client.post(f"/tasks/{task_id}/status", json={"status": "cancelled"})
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert store.get(task_id).status == "cancelled"

    def test_update_unknown(self, service):
        with service(store=self._store()) as client:
            response = client.post("/tasks/missing/status", json={"status": "completed"})
        assert response.status_code == 404

    def test_update_invalid_status(self, service):
        store = self._store()
        task_id = store.load()[0].id
        with service(store=store) as client:
            response = client.post(f"/tasks/{task_id}/status", json={"status": "archived"})
        assert response.status_code == 422


def test_send_reminders(service, recording_queue):
    old = datetime(2020, 1, 1, tzinfo=timezone.utc)
    store = MemoryTaskStore([
        Task(title="Renew the passport", created_at=old),
        Task(title="Water the plants", status="completed", created_at=old),
    ])
    with service(store=store) as client:
        body = client.get("/send-reminders").json()

    assert body == {"success": True, "message": "Reminder sent", "reminded": 1}
    [(_, envelope)] = recording_queue.published
    assert envelope["payload"]["kind"] == "reminder"


def test_no_reminders_due(service, recording_queue):
    with service() as client:
        body = client.get("/send-reminders").json()
    assert body["reminded"] == 0
    assert recording_queue.published == []


def test_health(service):
    store = MemoryTaskStore([Task(title="Send the invoice", created_at=CAPTURED)])
    with service(store=store) as client:
        body = client.get("/health").json()
    assert body["status"] == "ok"
    assert body["taskCount"] == 1
    assert body["queueAvailable"] is True
    assert body["uptimeS"] >= 0


def test_scheduled_scans_survive_failures(monkeypatch):
    """A failing scan is logged and the loop keeps its schedule."""

    class FailingStore(MemoryTaskStore):
        def __init__(self):
            super().__init__()
            self.calls = 0

        def load(self):
            self.calls += 1
            raise OSError("disk full")

    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)
        if len(sleeps) > 3:
            raise asyncio.CancelledError

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    store = FailingStore()
    app = SimpleNamespace(state=SimpleNamespace(
        settings=ScanSettings(scan_interval=2),
        store=store,
        notifier=Notifier(),
        extractor=TaskExtractor([PatternStrategy()]),
        capture=FakeCapture(_screen()),
        scan_lock=None,
    ))

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(_scheduled_scans(app))

    assert store.calls == 3
    assert sleeps == [120, 120, 120, 120]
