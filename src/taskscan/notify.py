"""Fixed-template notifications published to a message queue.

Delivery (desktop toasts, e-mail, ...) belongs to whoever consumes the
stream. The notifier only decides when to publish and what the message says.
"""

from __future__ import annotations

import logging
import uuid
from typing import Sequence

import redis

from taskscan.shared.queue import MessageQueue, NotificationMessage, NullQueue
from taskscan.types import Task, to_iso, utc_now

logger = logging.getLogger(__name__)

DEFAULT_STREAM = "taskscan:notifications"

HIGH_PRIORITY_TITLE = "High Priority Tasks"
REMINDER_TITLE = "Todo Reminder"
REMINDER_BODY = "Don't forget to check your pending tasks!"


def high_priority_body(count: int) -> str:
    return f"Found {count} new high priority tasks"


class Notifier:
    """Publish notification envelopes to ``stream`` on ``queue``.

    A disabled notifier, or one whose queue is down, logs and carries on:
    notifications never fail a scan.
    """

    def __init__(
        self,
        queue: MessageQueue | None = None,
        stream: str = DEFAULT_STREAM,
        enabled: bool = True,
        source_service: str = "taskscan",
    ) -> None:
        self.queue = queue or NullQueue()
        self.stream = stream
        self.enabled = enabled
        self.source_service = source_service

    def _publish(self, payload: NotificationMessage) -> str | None:
        if not self.enabled:
            logger.debug("Notifications disabled; dropping %s", payload["kind"])
            return None
        envelope = {
            "message_id": str(uuid.uuid4()),
            "timestamp": to_iso(utc_now()),
            "source_service": self.source_service,
            "payload": payload,
        }
        try:
            return self.queue.publish(self.stream, envelope)
        except redis.exceptions.RedisError as e:
            logger.warning("Could not publish %s notification: %s", payload["kind"], e)
            return None

    def notify_high_priority(self, count: int, task_ids: Sequence[str] = ()) -> str | None:
        """Announce newly found high-priority tasks; a zero count is a no-op."""
        if count <= 0:
            return None
        logger.info("Notifying %d new high priority tasks", count)
        return self._publish(
            {
                "kind": "high_priority",
                "title": HIGH_PRIORITY_TITLE,
                "body": high_priority_body(count),
                "count": count,
                "task_ids": list(task_ids),
            }
        )

    def send_reminder(self, tasks: Sequence[Task]) -> str | None:
        """Remind about pending tasks; an empty list is a no-op."""
        if not tasks:
            return None
        logger.info("Sending reminder for %d pending tasks", len(tasks))
        return self._publish(
            {
                "kind": "reminder",
                "title": REMINDER_TITLE,
                "body": REMINDER_BODY,
                "count": len(tasks),
                "task_ids": [task.id for task in tasks],
            }
        )
