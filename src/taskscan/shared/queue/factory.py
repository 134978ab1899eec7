"""Queue factory for creating queue instances from environment variables.

Environment Variables:
    QUEUE_ENABLED: "true" to enable Redis queue, "false" (default) for NullQueue
    QUEUE_URL: Redis URL (default: "redis://localhost:6379")
"""

from __future__ import annotations

import logging
import os

from taskscan.shared.queue.null_queue import NullQueue
from taskscan.shared.queue.protocol import MessageQueue

logger = logging.getLogger(__name__)


def create_queue(enabled: bool | None = None, url: str | None = None) -> MessageQueue:
    """Create a queue instance, defaulting to environment configuration.

    Args:
        enabled: Overrides QUEUE_ENABLED when given.
        url: Overrides QUEUE_URL when given.

    Returns:
        MessageQueue: NullQueue if disabled, RedisStreamQueue if enabled.
    """
    if enabled is None:
        enabled = os.environ.get("QUEUE_ENABLED", "false").lower() == "true"

    if not enabled:
        logger.debug("[Queue] QUEUE_ENABLED=false, using NullQueue")
        return NullQueue()

    url = url or os.environ.get("QUEUE_URL", "redis://localhost:6379")
    logger.info(f"[Queue] QUEUE_ENABLED=true, connecting to {url}")

    from taskscan.shared.queue.redis_queue import RedisStreamQueue
    return RedisStreamQueue(url)
