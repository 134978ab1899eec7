"""Extraction orchestrator: grouped, model-first extraction with fallbacks.

Flow per scan:
    group by source -> per group: strategies in order -> concatenate
    -> last-resort pattern pass if nothing was found -> dedupe
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from taskscan.extraction.dedup import dedupe
from taskscan.extraction.patterns import extract_patterns
from taskscan.extraction.strategies import (
    DEFAULT_LLM_MODEL,
    DEFAULT_LLM_TIMEOUT,
    ExtractionStrategy,
    Ok,
    ParseError,
    ServiceError,
    SourceGroup,
    build_strategies,
    group_by_source,
)
from taskscan.types import CapturedItem, KeywordSetError, PriorityKeywordSet, TaskCandidate

logger = logging.getLogger(__name__)


def _keyword_set(keywords: PriorityKeywordSet | Mapping[str, Any]) -> PriorityKeywordSet:
    if isinstance(keywords, PriorityKeywordSet):
        return keywords
    if isinstance(keywords, Mapping):
        return PriorityKeywordSet.from_mapping(keywords)
    raise KeywordSetError(
        f"Priority keywords must be a keyword set or mapping, got {type(keywords).__name__}"
    )


@dataclass
class GroupResult:
    """What one source group produced and which method produced it."""

    candidates: list[TaskCandidate]
    method: str
    errors: list[str] = field(default_factory=list)


class TaskExtractor:
    """Run an ordered strategy list over source groups.

    Apart from a malformed keyword set, no exception escapes :meth:`extract`:
    a failing strategy becomes a ServiceError outcome, and a failure of the
    orchestration itself falls back to the pattern extractor, then to [].
    """

    def __init__(
        self,
        strategies: Sequence[ExtractionStrategy],
        max_text_chars: int = 2000,
        min_group_chars: int = 20,
        max_concurrency: int = 1,
        extended_patterns: bool = True,
    ) -> None:
        self.strategies = list(strategies)
        self.max_text_chars = max_text_chars
        self.min_group_chars = min_group_chars
        self.max_concurrency = max(1, max_concurrency)
        self.extended_patterns = extended_patterns

    @classmethod
    def default(
        cls,
        models: Sequence[str] = (DEFAULT_LLM_MODEL,),
        timeout: float = DEFAULT_LLM_TIMEOUT,
        **kwargs,
    ) -> "TaskExtractor":
        return cls(build_strategies(models, timeout), **kwargs)

    async def extract_group(self, group: SourceGroup, keywords: PriorityKeywordSet) -> GroupResult:
        """Try each strategy on one group until one finds candidates."""
        errors: list[str] = []

        for strategy in self.strategies:
            try:
                outcome = await strategy.extract(group, keywords)
            except Exception as e:
                logger.warning("[%s] raised on %s: %s", strategy.name, group.label, e)
                outcome = ServiceError(f"{type(e).__name__}: {e}")

            if isinstance(outcome, Ok):
                if outcome.candidates:
                    return GroupResult(list(outcome.candidates), strategy.method, errors)
                logger.debug("[%s] found nothing in %s", strategy.name, group.label)
            elif isinstance(outcome, ParseError):
                errors.append(f"{strategy.name}: parse error: {outcome.reason}")
            elif isinstance(outcome, ServiceError):
                errors.append(f"{strategy.name}: service error: {outcome.reason}")

        method = self.strategies[-1].method if self.strategies else "none"
        return GroupResult([], method, errors)

    def groups(self, items: Sequence[CapturedItem]) -> list[SourceGroup]:
        """Source groups long enough to be worth a request."""
        eligible = []
        for group in group_by_source(items, self.max_text_chars):
            if len(group.text) < self.min_group_chars:
                logger.debug("Skipping %s: %d chars", group.label, len(group.text))
                continue
            eligible.append(group)
        return eligible

    async def _run_groups(
        self, groups: list[SourceGroup], keywords: PriorityKeywordSet
    ) -> list[GroupResult]:
        if self.max_concurrency == 1:
            return [await self.extract_group(group, keywords) for group in groups]

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded(group: SourceGroup) -> GroupResult:
            async with semaphore:
                return await self.extract_group(group, keywords)

        # gather keeps input order, so the dedup tie-break stays stable
        return list(await asyncio.gather(*(bounded(group) for group in groups)))

    async def _extract(
        self, items: Sequence[CapturedItem], keywords: PriorityKeywordSet
    ) -> list[TaskCandidate]:
        groups = self.groups(items)
        results = await self._run_groups(groups, keywords)

        candidates: list[TaskCandidate] = []
        for group, result in zip(groups, results):
            logger.debug(
                "Group %s: %d candidates via %s", group.label, len(result.candidates), result.method
            )
            candidates.extend(result.candidates)

        if not candidates:
            logger.info("No candidates from %d groups; running pattern pass over all items", len(groups))
            candidates = extract_patterns(items, keywords, extended=self.extended_patterns)

        return dedupe(candidates)

    async def extract(
        self, items: Sequence[CapturedItem], keywords: PriorityKeywordSet
    ) -> list[TaskCandidate]:
        """Extract deduplicated candidates from filtered captures.

        Args:
            items: Captures that passed the filter.
            keywords: Priority vocabularies.

        Returns:
            Candidates in group order, first occurrence kept on duplicates.

        Raises:
            KeywordSetError: ``keywords`` is neither a keyword set nor a
                valid high/medium/low mapping.
        """
        keywords = _keyword_set(keywords)

        try:
            return await self._extract(items, keywords)
        except Exception:
            logger.exception("Extraction failed; falling back to pattern extraction")

        try:
            return dedupe(extract_patterns(items, keywords, extended=self.extended_patterns))
        except Exception:
            logger.exception("Pattern fallback failed; returning no candidates")
            return []
