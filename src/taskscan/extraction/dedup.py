"""Order-preserving deduplication of task candidates by title similarity."""

from __future__ import annotations

from typing import Sequence, TypeVar

from taskscan.extraction.similarity import DEDUP_THRESHOLD, is_similar
from taskscan.types import TaskCandidate, normalize_title

C = TypeVar("C", bound=TaskCandidate)


def dedupe(candidates: Sequence[C], threshold: float = DEDUP_THRESHOLD) -> list[C]:
    """Drop candidates whose title matches an earlier one.

    A candidate is a duplicate when its normalized title equals, or is
    similar to, any title already kept. The first occurrence wins and the
    relative order of kept candidates is preserved.

    Args:
        candidates: Candidates in extraction order.
        threshold: Similarity threshold passed to :func:`is_similar`.

    Returns:
        Deduplicated list.
    """
    seen: list[str] = []
    seen_exact: set[str] = set()
    result: list[C] = []

    for candidate in candidates:
        key = normalize_title(candidate.title)
        if key in seen_exact:
            continue
        if any(is_similar(key, existing, threshold) for existing in seen):
            continue
        seen.append(key)
        seen_exact.add(key)
        result.append(candidate)

    return result
