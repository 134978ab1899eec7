"""NullQueue implementation for standalone mode.

When QUEUE_ENABLED=false (default), notifications go to a NullQueue which
records nothing but a debug log line. Scans work without Redis.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class NullQueue:
    """No-op queue satisfying the MessageQueue protocol."""

    def publish(self, stream: str, message: dict) -> str | None:
        logger.debug(f"[NullQueue] Discarding {message.get('payload', message).get('kind', 'message')} to stream '{stream}'")
        return None

    def is_available(self) -> bool:
        return False
