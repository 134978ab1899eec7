"""Immutable record types for the task-extraction pipeline.

Transformation chain:
    CapturedItem -> TaskCandidate -> Task

CapturedItems come from the capture source, TaskCandidates are produced by
an extraction pass, Tasks are the persisted form with identity and status.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Literal, Mapping

Priority = Literal["high", "medium", "low"]
TaskStatus = Literal["pending", "completed", "cancelled"]
ContentType = Literal["OCR", "Audio"]

PRIORITIES: tuple[str, ...] = ("high", "medium", "low")
STATUSES: tuple[str, ...] = ("pending", "completed", "cancelled")

DEFAULT_PRIORITY_KEYWORDS: dict[str, str] = {
    "high": "urgent,asap,immediately,critical",
    "medium": "soon,important,needed",
    "low": "whenever,low priority,eventually",
}


class KeywordSetError(ValueError):
    """Raised when a priority keyword mapping is malformed."""


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime | None) -> str | None:
    """Serialize an instant as ISO-8601 UTC with a trailing ``Z``."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: Any) -> datetime | None:
    """Parse an ISO-8601 string into an aware UTC datetime, or None."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def sentence_case(text: str) -> str:
    text = text.strip()
    return text[:1].upper() + text[1:]


def normalize_title(title: str) -> str:
    """Normalize a title for duplicate detection (case-folded, trimmed)."""
    return title.lower().strip()


# ---------------------------------------------------------------------------
# Captures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Position:
    """Vertical placement of an OCR block on screen."""

    top: float
    height: float = 0.0
    screen_height: float | None = None


@dataclass(frozen=True)
class CapturedItem:
    """One OCR or audio observation from the capture source."""

    source_app: str
    text: str | None
    captured_at: datetime = field(default_factory=utc_now)
    content_type: ContentType = "OCR"
    position: Position | None = None
    browser_url: str | None = None
    frame_reference: str | None = None

    @property
    def is_ocr(self) -> bool:
        return self.content_type == "OCR"

    @classmethod
    def from_screenpipe(cls, entry: Mapping[str, Any]) -> "CapturedItem":
        """Build an item from one entry of Screenpipe's ``/search`` response.

        OCR entries carry ``text`` and ``app_name``; audio entries carry
        ``transcription`` and ``device_name``. Position data is optional and
        only present when the query asked for it.
        """
        content = entry.get("content") or {}
        kind = str(entry.get("type", "OCR"))
        is_audio = kind.lower() == "audio"

        if is_audio:
            text = content.get("transcription")
            source_app = content.get("device_name") or ""
        else:
            text = content.get("text")
            source_app = content.get("app_name") or ""

        position = None
        raw_position = content.get("position")
        if isinstance(raw_position, Mapping) and raw_position.get("top") is not None:
            screen_height = content.get("screenHeight", raw_position.get("screen_height"))
            position = Position(
                top=float(raw_position["top"]),
                height=float(raw_position.get("height") or 0.0),
                screen_height=float(screen_height) if screen_height else None,
            )

        return cls(
            source_app=source_app,
            text=text if isinstance(text, str) else None,
            captured_at=parse_iso(content.get("timestamp")) or utc_now(),
            content_type="Audio" if is_audio else "OCR",
            position=position,
            browser_url=content.get("browser_url") or content.get("browserUrl"),
            frame_reference=content.get("frame") or content.get("file_path"),
        )


# ---------------------------------------------------------------------------
# Priority keywords
# ---------------------------------------------------------------------------


def _split_keywords(name: str, value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        parts = value.split(",")
    elif isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        parts = list(value)
    else:
        raise KeywordSetError(
            f"Priority keyword list {name!r} must be a comma-separated string "
            f"or a list of strings, got {type(value).__name__}"
        )
    return tuple(k.strip().lower() for k in parts if k.strip())


@dataclass(frozen=True)
class PriorityKeywordSet:
    """Three keyword vocabularies used to classify task priority."""

    high: tuple[str, ...] = ()
    medium: tuple[str, ...] = ()
    low: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        for name in PRIORITIES:
            object.__setattr__(self, name, _split_keywords(name, getattr(self, name)))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PriorityKeywordSet":
        """Build a keyword set, failing fast on missing or mistyped lists.

        Raises:
            KeywordSetError: If ``data`` is not a mapping, misses one of
                ``high``/``medium``/``low``, or holds a value that is neither
                a string nor a list of strings.
        """
        if not isinstance(data, Mapping):
            raise KeywordSetError(
                f"Priority keywords must be a mapping, got {type(data).__name__}"
            )
        missing = [name for name in PRIORITIES if name not in data]
        if missing:
            raise KeywordSetError(f"Priority keywords missing required list(s): {missing}")
        return cls(**{name: _split_keywords(name, data[name]) for name in PRIORITIES})

    @classmethod
    def default(cls) -> "PriorityKeywordSet":
        return cls.from_mapping(DEFAULT_PRIORITY_KEYWORDS)

    def to_dict(self) -> dict[str, str]:
        return {name: ",".join(getattr(self, name)) for name in PRIORITIES}


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TaskCandidate:
    """An extracted, not yet persisted task."""

    title: str
    description: str = ""
    priority: Priority = "medium"
    due_date: datetime | None = None
    source: str = "Unknown"
    source_url: str | None = None
    screenshot: str | None = None

    def __post_init__(self) -> None:
        title = sentence_case(self.title or "")
        if not title:
            raise ValueError("TaskCandidate title must be non-empty")
        object.__setattr__(self, "title", title)
        if self.priority not in PRIORITIES:
            object.__setattr__(self, "priority", "medium")

    @property
    def normalized_title(self) -> str:
        return normalize_title(self.title)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "dueDate": to_iso(self.due_date),
            "source": self.source,
            "sourceUrl": self.source_url,
            "screenshot": self.screenshot,
        }


@dataclass(frozen=True)
class Task(TaskCandidate):
    """Persisted task: a candidate with a stable id and lifecycle status."""

    id: str = ""
    status: TaskStatus = "pending"
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        super().__post_init__()
        if not self.id:
            object.__setattr__(self, "id", str(uuid.uuid4()))
        if self.status not in STATUSES:
            raise ValueError(f"Unknown task status: {self.status!r}")

    @classmethod
    def from_candidate(cls, candidate: TaskCandidate) -> "Task":
        return cls(
            title=candidate.title,
            description=candidate.description,
            priority=candidate.priority,
            due_date=candidate.due_date,
            source=candidate.source,
            source_url=candidate.source_url,
            screenshot=candidate.screenshot,
        )

    def refreshed(self, candidate: TaskCandidate) -> "Task":
        """Copy of this task carrying the candidate's content fields."""
        return replace(
            self,
            title=candidate.title,
            description=candidate.description,
            priority=candidate.priority,
            due_date=candidate.due_date,
            source=candidate.source,
            source_url=candidate.source_url,
            screenshot=candidate.screenshot,
        )

    def with_status(self, status: TaskStatus) -> "Task":
        return replace(self, status=status)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(
            id=self.id,
            status=self.status,
            createdAt=to_iso(self.created_at),
        )
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Task":
        return cls(
            id=data.get("id") or "",
            title=data["title"],
            description=data.get("description") or "",
            priority=data.get("priority") or "medium",
            status=data.get("status") or "pending",
            due_date=parse_iso(data.get("dueDate")),
            source=data.get("source") or "Unknown",
            source_url=data.get("sourceUrl"),
            screenshot=data.get("screenshot"),
            created_at=parse_iso(data.get("createdAt")) or utc_now(),
        )
