"""Publishing interface shared by the notification queues."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class MessageQueue(Protocol):
    def publish(self, stream: str, message: dict) -> str | None:
        """Append ``message`` to ``stream``; return its id, or None when discarded."""
        ...

    def is_available(self) -> bool:
        ...
