"""Notification queue backed by a bounded Redis stream."""

from __future__ import annotations

import json
import logging

import redis

logger = logging.getLogger(__name__)

# Only recent notifications matter to a consumer
DEFAULT_MAXLEN = 1000


class RedisStreamQueue:
    """XADD each envelope as JSON under a single ``data`` field.

    Connection errors propagate; the Notifier decides what to do with them.
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379",
        maxlen: int = DEFAULT_MAXLEN,
        client: redis.Redis | None = None,
    ) -> None:
        self._url = url
        self._maxlen = maxlen
        self._client = client
        self._probed = False

    def _get_client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(self._url, decode_responses=True)
        if not self._probed:
            self._client.ping()
            self._probed = True
            logger.info(f"[RedisQueue] Publishing notifications to {self._url}")
        return self._client

    def publish(self, stream: str, message: dict) -> str | None:
        msg_id = self._get_client().xadd(
            stream,
            {"data": json.dumps(message)},
            maxlen=self._maxlen,
            approximate=True,
        )
        logger.debug(f"[RedisQueue] {stream} <- {msg_id}")
        return str(msg_id)

    def is_available(self) -> bool:
        try:
            self._get_client().ping()
        except redis.exceptions.ConnectionError:
            return False
        return True
