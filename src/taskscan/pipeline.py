"""End-to-end scan: captures in, merged and persisted tasks out.

    captures -> source selection -> capture filter -> extractor
             -> merge with store -> save -> notify
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import nullcontext
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Sequence

from taskscan.capture.screenpipe import ScreenpipeClient
from taskscan.config import ScanSettings
from taskscan.extraction.capture_filter import filter_captures, select_sources
from taskscan.extraction.merge import merge_rescan
from taskscan.extraction.orchestrator import TaskExtractor
from taskscan.extraction.reminders import due_reminders
from taskscan.notify import Notifier
from taskscan.storage.base import TaskStore
from taskscan.types import CapturedItem, Task, utc_now

logger = logging.getLogger(__name__)


@dataclass
class ScanReport:
    """Counts from one scan, plus the ids of tasks it created."""

    captured: int = 0
    selected: int = 0
    filtered: int = 0
    extracted: int = 0
    added: int = 0
    high_priority_added: int = 0
    total_tasks: int = 0
    new_task_ids: list[str] = field(default_factory=list)
    notification_id: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


async def run_scan(
    items: Sequence[CapturedItem],
    settings: ScanSettings,
    store: TaskStore,
    notifier: Notifier | None = None,
    extractor: TaskExtractor | None = None,
    lock: asyncio.Lock | None = None,
) -> ScanReport:
    """Extract tasks from ``items`` and merge them into ``store``.

    Args:
        items: Raw captures for the scan window.
        settings: Scan settings, passed by value.
        store: Persisted task collection.
        notifier: Receives the new high-priority count; skipped when None.
        extractor: Defaults to the configured model list plus patterns.
        lock: Held around load/merge/save when scans may overlap.

    Raises:
        KeywordSetError: The configured priority keywords are malformed.
    """
    keywords = settings.keywords
    extractor = extractor or TaskExtractor.default(settings.llm_models, settings.llm_timeout)
    report = ScanReport(captured=len(items))

    selected = select_sources(items, settings.scan_sources)
    filtered = filter_captures(selected)
    report.selected = len(selected)
    report.filtered = len(filtered)

    candidates = await extractor.extract(filtered, keywords)
    report.extracted = len(candidates)

    async with lock or nullcontext():
        existing = store.load()
        known_ids = {task.id for task in existing}
        merged = merge_rescan(existing, candidates)
        store.save(merged)

    new_tasks = [task for task in merged if task.id not in known_ids]
    high = [task for task in new_tasks if task.priority == "high" and task.status == "pending"]
    report.added = len(new_tasks)
    report.high_priority_added = len(high)
    report.total_tasks = len(merged)
    report.new_task_ids = [task.id for task in new_tasks]

    if notifier is not None and settings.enable_notifications:
        report.notification_id = notifier.notify_high_priority(len(high), [task.id for task in high])

    logger.info(
        "Scan: %d captured, %d kept by filter, %d extracted, %d new (%d high priority)",
        report.captured, report.filtered, report.extracted, report.added, report.high_priority_added,
    )
    return report


async def scan_window(
    client: ScreenpipeClient,
    settings: ScanSettings,
    store: TaskStore,
    notifier: Notifier | None = None,
    extractor: TaskExtractor | None = None,
    lock: asyncio.Lock | None = None,
    now: datetime | None = None,
) -> ScanReport:
    """Query the capture source for the lookback window, then run_scan().

    Raises:
        CaptureSourceError: The capture source could not be queried.
    """
    end = now or utc_now()
    start = end - timedelta(minutes=settings.lookback_minutes)
    items = await client.query(start=start, end=end, limit=settings.capture_limit)
    return await run_scan(items, settings, store, notifier, extractor, lock)


def send_reminders(
    store: TaskStore,
    settings: ScanSettings,
    notifier: Notifier,
    now: datetime | None = None,
) -> list[Task]:
    """Publish one reminder covering every task whose interval has elapsed."""
    due = due_reminders(store.load(), settings.reminder_timing, now)
    if due and settings.enable_notifications:
        notifier.send_reminder(due)
    return due
