"""Queue integration for task notifications.

Notifications are published to a Redis stream when QUEUE_ENABLED=true and
discarded otherwise, so scans never depend on Redis being up.

Usage:
    from taskscan.shared.queue import create_queue

    queue = create_queue()  # NullQueue or RedisStreamQueue based on env
    queue.publish("taskscan:notifications", {"title": ..., "body": ...})
"""

from taskscan.shared.queue.factory import create_queue
from taskscan.shared.queue.null_queue import NullQueue
from taskscan.shared.queue.protocol import MessageQueue
from taskscan.shared.queue.redis_queue import RedisStreamQueue
from taskscan.shared.queue.types import (
    MessageEnvelope,
    NotificationKind,
    NotificationMessage,
)

__all__ = [
    # Factory
    "create_queue",
    # Protocol & implementations
    "MessageQueue",
    "NullQueue",
    "RedisStreamQueue",
    # Types
    "NotificationKind",
    "NotificationMessage",
    "MessageEnvelope",
]
