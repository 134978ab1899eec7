"""Async client for the local Screenpipe capture API.

Endpoints used:
    GET /health  - liveness of the capture daemon
    GET /search  - OCR/audio captures in a time window
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

import httpx

from taskscan.types import CapturedItem, to_iso, utc_now

logger = logging.getLogger(__name__)

DEFAULT_URL = "http://localhost:3030"
DEFAULT_TIMEOUT = 10.0


class CaptureSourceError(RuntimeError):
    """The capture source was unreachable or answered with an error."""


class ScreenpipeClient:
    def __init__(
        self,
        base_url: str = DEFAULT_URL,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            if self._client is not None:
                response = await self._client.get(url, params=params, timeout=self.timeout)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise CaptureSourceError(
                f"Screenpipe {path} returned {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise CaptureSourceError(
                f"Could not connect to Screenpipe at {self.base_url}: {e}"
            ) from e
        except ValueError as e:
            raise CaptureSourceError(f"Screenpipe {path} returned invalid JSON: {e}") from e

    async def health(self) -> dict[str, Any]:
        """Return the daemon's health payload.

        Raises:
            CaptureSourceError: The daemon is down or unhealthy.
        """
        data = await self._get("/health")
        return data if isinstance(data, dict) else {"status": data}

    async def query(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        content_type: str = "ocr",
        limit: int = 500,
        include_frames: bool = False,
    ) -> list[CapturedItem]:
        """Fetch captures between ``start`` and ``end`` (default: last hour).

        Raises:
            CaptureSourceError: On connection failure, error status or a
                malformed response.
        """
        end = end or utc_now()
        start = start or end - timedelta(hours=1)
        params = {
            "content_type": content_type,
            "start_time": to_iso(start),
            "end_time": to_iso(end),
            "limit": limit,
        }
        if include_frames:
            params["include_frames"] = "true"

        payload = await self._get("/search", params=params)
        entries = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(entries, list):
            raise CaptureSourceError("Screenpipe /search response has no data list")

        items = [CapturedItem.from_screenpipe(entry) for entry in entries if isinstance(entry, dict)]
        logger.info("Fetched %d captures from %s to %s", len(items), params["start_time"], params["end_time"])
        return items
