"""Message schema types for notifications.

- NotificationMessage: what the notifier publishes (title/body template)
- MessageEnvelope: wrapper with transport metadata
"""

from __future__ import annotations

from typing import Literal, TypedDict

NotificationKind = Literal["high_priority", "reminder"]


class NotificationMessage(TypedDict):
    """Fixed-template notification for a delivery collaborator."""
    kind: NotificationKind
    title: str
    body: str
    count: int
    task_ids: list[str]


class MessageEnvelope(TypedDict):
    """Wrapper for NotificationMessage with transport metadata."""
    message_id: str
    timestamp: str  # ISO 8601 format
    source_service: str  # e.g., "taskscan-cli", "taskscan-service"
    payload: NotificationMessage
