"""Extraction strategies and their outcome types.

A strategy turns one source group into candidates. It reports what
happened through an explicit outcome value instead of raising:

    Ok(candidates)          extraction ran (possibly finding nothing)
    ParseError(reason, raw) the model answered with something unusable
    ServiceError(reason)    the model could not be reached or kept failing

The orchestrator walks an ordered strategy list and stops at the first
non-empty ``Ok``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Sequence, Union

from taskscan.extraction.parsing import ResponseParseError, parse_candidates
from taskscan.extraction.patterns import extract_patterns
from taskscan.extraction.prompts import build_extraction_prompt
from taskscan.shared.llm import LLMProvider, LLMServiceError, get_provider
from taskscan.types import CapturedItem, PriorityKeywordSet, TaskCandidate

logger = logging.getLogger(__name__)

DEFAULT_LLM_MODEL = "llama3-70b-8192"
DEFAULT_LLM_TIMEOUT = 30.0


# ---------------------------------------------------------------------------
# Source groups
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SourceGroup:
    """Texts captured from one application, joined for a single request.

    Attributes:
        label: Application name, or "Unknown" when the capture had none.
        items: The captured items, in capture order.
        text: Newline-joined item texts, truncated to the request limit.
    """

    label: str
    items: tuple[CapturedItem, ...]
    text: str

    @property
    def source_url(self) -> str | None:
        return self.items[0].browser_url if self.items else None

    @property
    def screenshot(self) -> str | None:
        return self.items[0].frame_reference if self.items else None


def group_by_source(items: Sequence[CapturedItem], max_chars: int = 2000) -> list[SourceGroup]:
    """Group OCR items by application, in first-seen order."""
    buckets: dict[str, list[CapturedItem]] = {}
    for item in items:
        if not item.is_ocr or not item.text:
            continue
        buckets.setdefault(item.source_app or "Unknown", []).append(item)

    return [
        SourceGroup(
            label=label,
            items=tuple(group_items),
            text="\n".join(item.text or "" for item in group_items)[:max_chars],
        )
        for label, group_items in buckets.items()
    ]


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Ok:
    candidates: list[TaskCandidate] = field(default_factory=list)


@dataclass(frozen=True)
class ParseError:
    reason: str
    raw: str = ""


@dataclass(frozen=True)
class ServiceError:
    reason: str


Outcome = Union[Ok, ParseError, ServiceError]


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


class ExtractionStrategy(ABC):
    """Abstract base class for extraction strategies."""

    # Reported to HTTP clients as the extraction method
    method: str = "fallback"

    @property
    @abstractmethod
    def name(self) -> str:
        """Strategy name for identification and logs."""
        pass

    @abstractmethod
    async def extract(self, group: SourceGroup, keywords: PriorityKeywordSet) -> Outcome:
        """Extract candidates from one source group.

        Args:
            group: The joined texts of one application.
            keywords: Priority vocabularies.

        Returns:
            An Ok, ParseError or ServiceError outcome.
        """
        pass


class LLMStrategy(ExtractionStrategy):
    """Ask a language model for a JSON array of tasks."""

    method = "ai"

    def __init__(
        self,
        model: str = DEFAULT_LLM_MODEL,
        timeout: float = DEFAULT_LLM_TIMEOUT,
        provider: LLMProvider | None = None,
    ) -> None:
        self.model = model
        self.timeout = timeout
        self._provider = provider

    @property
    def name(self) -> str:
        return f"llm:{self.model}"

    @property
    def provider(self) -> LLMProvider:
        if self._provider is None:
            self._provider = get_provider(self.model)
        return self._provider

    async def extract(self, group: SourceGroup, keywords: PriorityKeywordSet) -> Outcome:
        prompt = build_extraction_prompt(group.text, group.label, keywords)
        try:
            raw = await self.provider.generate(prompt, model=self.model, timeout=self.timeout)
        except LLMServiceError as e:
            logger.warning("[%s] service unavailable for %s: %s", self.name, group.label, e)
            return ServiceError(str(e))

        try:
            candidates = parse_candidates(
                raw,
                source=group.label,
                source_url=group.source_url,
                screenshot=group.screenshot,
            )
        except ResponseParseError as e:
            logger.warning("[%s] unparseable response for %s: %s", self.name, group.label, e)
            return ParseError(str(e), raw)

        logger.debug("[%s] %d candidates from %s", self.name, len(candidates), group.label)
        return Ok(candidates)


class PatternStrategy(ExtractionStrategy):
    """Deterministic regex extraction over the group's items."""

    method = "fallback"

    def __init__(self, extended: bool = True) -> None:
        self.extended = extended

    @property
    def name(self) -> str:
        return "pattern"

    async def extract(self, group: SourceGroup, keywords: PriorityKeywordSet) -> Outcome:
        return Ok(extract_patterns(group.items, keywords, extended=self.extended))


def build_strategies(
    models: Sequence[str] = (DEFAULT_LLM_MODEL,),
    timeout: float = DEFAULT_LLM_TIMEOUT,
    extended: bool = True,
) -> list[ExtractionStrategy]:
    """One LLM strategy per model, in order, then the pattern strategy."""
    strategies: list[ExtractionStrategy] = [LLMStrategy(model, timeout) for model in models if model]
    strategies.append(PatternStrategy(extended=extended))
    return strategies
