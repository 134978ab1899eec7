"""Scan settings: defaults, JSON persistence and environment overrides.

Settings are passed by value into every entry point; nothing in the
extraction core reads configuration on its own.

Environment variables (see ``ScanSettings.from_env``):
    TASKSCAN_SETTINGS_PATH  JSON settings file to start from
    TASKSCAN_DB_PATH        SQLite task database
    SCREENPIPE_URL          Capture source base URL
    TASKSCAN_LLM_MODELS     Comma-separated model list, tried in order
    LLM_TIMEOUT             Per-request timeout in seconds
    NOTIFY_STREAM           Queue stream for notifications
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any

from taskscan.extraction.capture_filter import SOURCE_CATEGORIES
from taskscan.extraction.reminders import DEFAULT_REMINDER_TIMING
from taskscan.notify import DEFAULT_STREAM
from taskscan.types import DEFAULT_PRIORITY_KEYWORDS, PriorityKeywordSet

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "~/.taskscan/tasks.db"
DEFAULT_SCREENPIPE_URL = "http://localhost:3030"
DEFAULT_LLM_MODELS = ("llama3-70b-8192",)

# JSON key -> attribute, for settings files shared with other clients
_JSON_KEYS = {
    "scanInterval": "scan_interval",
    "enableNotifications": "enable_notifications",
    "enableAutoDetection": "enable_auto_detection",
    "priorityKeywords": "priority_keywords",
    "scanSources": "scan_sources",
    "reminderTiming": "reminder_timing",
    "lookbackMinutes": "lookback_minutes",
    "captureLimit": "capture_limit",
    "llmModels": "llm_models",
    "llmTimeout": "llm_timeout",
    "screenpipeUrl": "screenpipe_url",
    "dbPath": "db_path",
    "notifyStream": "notify_stream",
}


def parse_bool(value: str) -> bool:
    """Parse boolean from environment variable."""
    return value.lower() in ("true", "1", "yes", "on")


def parse_list(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def _parse_timing(timing: dict[str, Any]) -> dict[str, int]:
    """Reminder intervals as whole minutes; numeric strings are accepted."""
    parsed = {}
    for priority, minutes in timing.items():
        try:
            parsed[priority] = int(minutes)
        except (TypeError, ValueError):
            raise ValueError(
                f"Reminder timing for {priority!r} must be a whole number of minutes, got {minutes!r}"
            ) from None
    return parsed


@dataclass
class ScanSettings:
    scan_interval: int = 5  # minutes between automatic scans
    enable_notifications: bool = True
    enable_auto_detection: bool = True

    priority_keywords: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_PRIORITY_KEYWORDS))
    scan_sources: dict[str, bool] = field(default_factory=lambda: {name: True for name in SOURCE_CATEGORIES})
    reminder_timing: dict[str, int] = field(default_factory=lambda: dict(DEFAULT_REMINDER_TIMING))

    lookback_minutes: int = 60
    capture_limit: int = 500
    llm_models: list[str] = field(default_factory=lambda: list(DEFAULT_LLM_MODELS))
    llm_timeout: float = 30.0

    screenpipe_url: str = DEFAULT_SCREENPIPE_URL
    db_path: str = DEFAULT_DB_PATH
    notify_stream: str = DEFAULT_STREAM

    @property
    def keywords(self) -> PriorityKeywordSet:
        """Validated keyword set.

        Raises:
            KeywordSetError: The configured keyword mapping is malformed.
        """
        return PriorityKeywordSet.from_mapping(self.priority_keywords)

    @property
    def resolved_db_path(self) -> Path:
        return Path(self.db_path).expanduser()

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        return {key: data[attr] for key, attr in _JSON_KEYS.items()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScanSettings":
        """Build settings from camelCase JSON, ignoring unknown keys.

        Nested maps are merged over the defaults so a partial file keeps the
        remaining defaults.
        """
        settings = cls()
        updates: dict[str, Any] = {}
        for key, attr in _JSON_KEYS.items():
            if key not in data:
                continue
            value = data[key]
            current = getattr(settings, attr)
            if isinstance(current, dict) and isinstance(value, dict):
                value = {**current, **value}
            updates[attr] = value
        settings = replace(settings, **updates)
        # Fail fast on malformed keyword lists
        PriorityKeywordSet.from_mapping(settings.priority_keywords)
        settings.reminder_timing = _parse_timing(settings.reminder_timing)
        return settings

    @classmethod
    def from_json(cls, path: str | Path) -> "ScanSettings":
        path = Path(path).expanduser()
        if not path.exists():
            logger.info("Settings file %s not found, using defaults", path)
            return cls()
        return cls.from_dict(json.loads(path.read_text()))

    def to_json(self, path: str | Path) -> None:
        path = Path(path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2))

    @classmethod
    def from_env(cls) -> "ScanSettings":
        """Settings file from TASKSCAN_SETTINGS_PATH (if set), then env overrides."""
        settings_path = os.getenv("TASKSCAN_SETTINGS_PATH")
        settings = cls.from_json(settings_path) if settings_path else cls()

        overrides: dict[str, Any] = {}
        if os.getenv("TASKSCAN_DB_PATH"):
            overrides["db_path"] = os.environ["TASKSCAN_DB_PATH"]
        if os.getenv("SCREENPIPE_URL"):
            overrides["screenpipe_url"] = os.environ["SCREENPIPE_URL"]
        if os.getenv("TASKSCAN_LLM_MODELS") is not None:
            overrides["llm_models"] = parse_list(os.environ["TASKSCAN_LLM_MODELS"])
        if os.getenv("LLM_TIMEOUT"):
            overrides["llm_timeout"] = float(os.environ["LLM_TIMEOUT"])
        if os.getenv("NOTIFY_STREAM"):
            overrides["notify_stream"] = os.environ["NOTIFY_STREAM"]
        if os.getenv("TASKSCAN_NOTIFICATIONS"):
            overrides["enable_notifications"] = parse_bool(os.environ["TASKSCAN_NOTIFICATIONS"])

        return replace(settings, **overrides)
