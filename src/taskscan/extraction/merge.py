"""Merge-on-rescan: reconcile a fresh extraction batch with persisted tasks."""

from __future__ import annotations

import logging
from typing import Sequence

from taskscan.types import Task, TaskCandidate, normalize_title

logger = logging.getLogger(__name__)


def merge_rescan(existing: Sequence[Task], fresh: Sequence[TaskCandidate]) -> list[Task]:
    """Fold fresh candidates into the persisted task list.

    Matching is by exact normalized title, deliberately narrower than the
    similarity used for deduplication:

    - unknown title: appended as a new pending task with a fresh id
    - known pending task: content refreshed; id, status and created_at kept
    - known completed/cancelled task: left untouched

    Persisted tasks are never dropped. They keep their order and new tasks
    follow in candidate order.

    Args:
        existing: Tasks loaded from the store.
        fresh: Deduplicated candidates from the latest scan.

    Returns:
        The merged task list.
    """
    merged: list[Task] = list(existing)
    index: dict[str, int] = {}
    for position, task in enumerate(merged):
        index.setdefault(task.normalized_title, position)

    added = refreshed = kept = 0
    for candidate in fresh:
        key = normalize_title(candidate.title)
        position = index.get(key)

        if position is None:
            index[key] = len(merged)
            merged.append(Task.from_candidate(candidate))
            added += 1
            continue

        current = merged[position]
        if current.status == "pending":
            merged[position] = current.refreshed(candidate)
            refreshed += 1
        else:
            kept += 1

    logger.debug("Merge: %d added, %d refreshed, %d closed kept", added, refreshed, kept)
    return merged
