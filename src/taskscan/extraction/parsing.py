"""Parsing of model responses into task candidates.

The payload must be a JSON array and nothing else. A single fenced code
block is unwrapped; prose around the JSON is a parse failure rather than
something to dig through.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime
from typing import Any

from taskscan.extraction.patterns import parse_numeric_date
from taskscan.types import PRIORITIES, TaskCandidate, parse_iso

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?```$", re.DOTALL | re.IGNORECASE)


class ResponseParseError(ValueError):
    """Model output is not a JSON array."""


def strip_fence(payload: str) -> str:
    text = payload.strip()
    match = _FENCE.match(text)
    if match:
        return match.group(1).strip()
    return text


def parse_json_array(payload: str) -> list[Any]:
    """Parse the whole payload as a JSON array.

    Raises:
        ResponseParseError: Payload is empty, not JSON, or not an array.
    """
    text = strip_fence(payload or "")
    if not text:
        raise ResponseParseError("empty response")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"invalid JSON: {e}") from e
    if not isinstance(data, list):
        raise ResponseParseError(f"expected a JSON array, got {type(data).__name__}")
    return data


def parse_due_date(value: Any) -> datetime | None:
    """Lenient due-date parsing: ISO-8601 or M/D/Y, anything else is None."""
    if not isinstance(value, str) or not value.strip():
        return None
    return parse_iso(value) or parse_numeric_date(value)


def candidate_from_object(
    obj: Any,
    source: str,
    source_url: str | None = None,
    screenshot: str | None = None,
) -> TaskCandidate | None:
    """Convert one model-produced object, or return None if it has no title."""
    if not isinstance(obj, dict):
        return None
    title = obj.get("title")
    if not isinstance(title, str) or not title.strip():
        return None

    description = obj.get("description")
    priority = obj.get("priority")
    if isinstance(priority, str):
        priority = priority.strip().lower()
    if priority not in PRIORITIES:
        priority = "medium"

    return TaskCandidate(
        title=title,
        description=description if isinstance(description, str) else "",
        priority=priority,
        due_date=parse_due_date(obj.get("dueDate")),
        source=source,
        source_url=source_url,
        screenshot=screenshot,
    )


def parse_candidates(
    payload: str,
    source: str,
    source_url: str | None = None,
    screenshot: str | None = None,
) -> list[TaskCandidate]:
    """Parse a model response into candidates, dropping untitled objects.

    Raises:
        ResponseParseError: See :func:`parse_json_array`.
    """
    candidates = []
    skipped = 0
    for obj in parse_json_array(payload):
        candidate = candidate_from_object(obj, source, source_url, screenshot)
        if candidate is None:
            skipped += 1
            continue
        candidates.append(candidate)
    if skipped:
        logger.debug("Dropped %d model objects without a usable title", skipped)
    return candidates
