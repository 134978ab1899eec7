"""Unit tests for queue module."""

import json

import pytest
import redis

from taskscan.shared.queue import (
    MessageEnvelope,
    MessageQueue,
    NotificationMessage,
    NullQueue,
    RedisStreamQueue,
    create_queue,
)


class TestTypes:
    """Tests for queue type definitions."""

    def test_notification_message_type(self):
        """NotificationMessage has correct fields."""
        msg: NotificationMessage = {
            "kind": "high_priority",
            "title": "High Priority Tasks",
            "body": "Found 2 new high priority tasks",
            "count": 2,
            "task_ids": ["a", "b"],
        }
        assert msg["kind"] == "high_priority"
        assert msg["count"] == 2

    def test_message_envelope_type(self):
        """MessageEnvelope wraps NotificationMessage correctly."""
        payload: NotificationMessage = {
            "kind": "reminder",
            "title": "Todo Reminder",
            "body": "Don't forget to check your pending tasks!",
            "count": 1,
            "task_ids": ["a"],
        }
        envelope: MessageEnvelope = {
            "message_id": "abc-123",
            "timestamp": "2026-01-01T00:00:00.000Z",
            "source_service": "taskscan-cli",
            "payload": payload,
        }
        assert envelope["source_service"] == "taskscan-cli"
        assert envelope["payload"]["kind"] == "reminder"


class TestNullQueue:
    """Tests for NullQueue implementation."""

    def test_publish_returns_none(self):
        """NullQueue.publish() discards and returns None."""
        assert NullQueue().publish("taskscan:notifications", {"kind": "reminder"}) is None

    def test_is_not_available(self):
        """NullQueue reports itself unavailable."""
        assert NullQueue().is_available() is False

    def test_satisfies_protocol(self):
        """NullQueue implements MessageQueue protocol."""
        assert isinstance(NullQueue(), MessageQueue)


class FakeRedis:
    """Just enough of redis.Redis for the stream queue."""

    def __init__(self, up=True):
        self.up = up
        self.entries = []

    def ping(self):
        if not self.up:
            raise redis.exceptions.ConnectionError("Connection refused")
        return True

    def xadd(self, stream, fields, maxlen=None, approximate=True):
        self.entries.append((stream, fields, maxlen, approximate))
        return f"1700000000000-{len(self.entries) - 1}"


class TestRedisStreamQueue:
    """Tests for RedisStreamQueue with an in-memory client."""

    def test_publish_serializes_payload(self):
        """Messages are stored as JSON under a single data field."""
        client = FakeRedis()
        queue = RedisStreamQueue(client=client, maxlen=50)

        msg_id = queue.publish("taskscan:notifications", {"kind": "reminder", "count": 1})

        assert msg_id == "1700000000000-0"
        [(stream, fields, maxlen, approximate)] = client.entries
        assert stream == "taskscan:notifications"
        assert json.loads(fields["data"]) == {"kind": "reminder", "count": 1}
        assert maxlen == 50
        assert approximate is True

    def test_unavailable_raises(self):
        """Publishing without Redis fails loudly."""
        queue = RedisStreamQueue(client=FakeRedis(up=False))
        with pytest.raises(redis.exceptions.ConnectionError):
            queue.publish("s", {"kind": "reminder"})

    def test_is_available(self):
        assert RedisStreamQueue(client=FakeRedis()).is_available() is True
        assert RedisStreamQueue(client=FakeRedis(up=False)).is_available() is False

    def test_satisfies_protocol(self):
        assert isinstance(RedisStreamQueue(client=FakeRedis()), MessageQueue)


class TestFactory:
    """Tests for create_queue factory."""

    def test_default_is_null_queue(self, monkeypatch):
        """Without QUEUE_ENABLED, factory returns NullQueue."""
        monkeypatch.delenv("QUEUE_ENABLED", raising=False)
        assert isinstance(create_queue(), NullQueue)

    def test_disabled_explicitly(self, monkeypatch):
        monkeypatch.setenv("QUEUE_ENABLED", "false")
        assert isinstance(create_queue(), NullQueue)

    def test_enabled_returns_redis_queue(self, monkeypatch):
        """QUEUE_ENABLED=true builds a RedisStreamQueue without connecting."""
        monkeypatch.setenv("QUEUE_ENABLED", "true")
        monkeypatch.setenv("QUEUE_URL", "redis://queue.test:6380")
        queue = create_queue()
        assert isinstance(queue, RedisStreamQueue)
        assert queue._url == "redis://queue.test:6380"

    def test_argument_overrides_environment(self, monkeypatch):
        monkeypatch.setenv("QUEUE_ENABLED", "true")
        assert isinstance(create_queue(enabled=False), NullQueue)
