"""Deterministic pattern-based task extraction - zero LLM cost.

Used whenever the language model is unavailable or returns something
unusable. Never raises: odd input just yields fewer candidates.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Iterator, Sequence

from taskscan.types import CapturedItem, Priority, PriorityKeywordSet, TaskCandidate

MIN_TITLE_LENGTH = 5
MIN_BULLET_LENGTH = 10

_FLAGS = re.IGNORECASE | re.MULTILINE

# (name, pattern) in priority order; group 1 is the task title
CORE_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("task_marker", re.compile(r"\b(?:todo|to-do|task|action item)\s*:\s*(.+?)(?:\.|$)", _FLAGS)),
    ("request", re.compile(r"\b(?:please|pls|kindly)\s+(.+?)(?:\.|$)", _FLAGS)),
    ("obligation", re.compile(r"\b(?:need to|should|must|have to)\s+(.+?)(?:\.|$)", _FLAGS)),
    ("reminder", re.compile(r"\b(?:don['’]t forget to|remember to)\s+(.+?)(?:\.|$)", _FLAGS)),
    ("assignment", re.compile(r"\b(?:assigned to you|your task)\s*:\s*(.+?)(?:\.|$)", _FLAGS)),
]

EXTENDED_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("permission", re.compile(r"\b(?:can you|could you)\s+(.+?)(?:[.?]|$)", _FLAGS)),
    ("collective", re.compile(r"\bwe (?:need|should)\s+(?:to\s+)?(.+?)(?:\.|$)", _FLAGS)),
    ("suggestion", re.compile(r"\blet['’]?s\s+(.+?)(?:\.|$)", _FLAGS)),
    ("reminder_note", re.compile(r"\b(?:reminder\s*:|remind me to)\s*(.+?)(?:\.|$)", _FLAGS)),
    ("follow_up", re.compile(r"\b(follow up on\s+.+?)(?:\.|$)", _FLAGS)),
    ("completion", re.compile(r"\b((?:work on|complete|finish)\s+.+?)(?:\.|$)", _FLAGS)),
    (
        "urgent_sentence",
        re.compile(
            r"(?:^|(?<=[.!?] ))(?=[A-Z])"
            r"([^.!?\n]*\b(?i:urgent|asap|immediately|critical|important)\b[^.!?\n]*)",
            re.MULTILINE,
        ),
    ),
]

BULLET = re.compile(r"^\s*[-*+•]\s+(.+?)\s*$", re.MULTILINE)

DUE_DATE = re.compile(
    r"\b(?:due|by|before|deadline):?\s*(\d{1,2}/\d{1,2}/\d{2,4}|\d{1,2}-\d{1,2}-\d{2,4})\b",
    re.IGNORECASE,
)


def _patterns(extended: bool) -> list[tuple[str, re.Pattern[str]]]:
    return CORE_PATTERNS + EXTENDED_PATTERNS if extended else list(CORE_PATTERNS)


def classify_priority(text: str, keywords: PriorityKeywordSet) -> Priority:
    """Classify by keyword presence anywhere in the text; high beats low."""
    lowered = text.lower()
    if any(keyword in lowered for keyword in keywords.high):
        return "high"
    if any(keyword in lowered for keyword in keywords.low):
        return "low"
    return "medium"


def parse_numeric_date(value: str) -> datetime | None:
    """Parse ``M/D/Y`` or ``M-D-Y`` into a UTC midnight instant.

    Two-digit years map to 2000-2049 and 1950-1999. Returns None for
    anything that is not a real calendar date.
    """
    parts = re.split(r"[/-]", value.strip())
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        return None
    month, day, year = (int(p) for p in parts)
    if len(parts[2]) <= 2:
        year += 2000 if year < 50 else 1900
    try:
        return datetime(year, month, day, tzinfo=timezone.utc)
    except ValueError:
        return None


def extract_due_date(text: str) -> datetime | None:
    match = DUE_DATE.search(text)
    if not match:
        return None
    return parse_numeric_date(match.group(1))


def _overlaps(span: tuple[int, int], taken: list[tuple[int, int]]) -> bool:
    start, end = span
    return any(start < t_end and t_start < end for t_start, t_end in taken)


def extract_titles(text: str, extended: bool = True) -> Iterator[str]:
    """Yield task titles found in ``text``.

    Phrase patterns run first, in order, then bulleted lines. A match whose
    title span overlaps one already taken is skipped, so nested markers
    such as "please remember to ..." produce a single title.
    """
    taken: list[tuple[int, int]] = []

    for _, pattern in _patterns(extended):
        for match in pattern.finditer(text):
            title = match.group(1).strip()
            if len(title) < MIN_TITLE_LENGTH:
                continue
            span = match.span(1)
            if _overlaps(span, taken):
                continue
            taken.append(span)
            yield title

    for match in BULLET.finditer(text):
        title = match.group(1).strip()
        if len(title) <= MIN_BULLET_LENGTH:
            continue
        span = match.span(1)
        if _overlaps(span, taken):
            continue
        taken.append(span)
        yield title


def extract_from_text(
    text: str,
    keywords: PriorityKeywordSet,
    source: str = "Unknown",
    source_url: str | None = None,
    screenshot: str | None = None,
    extended: bool = True,
) -> list[TaskCandidate]:
    """Extract candidates from one text fragment."""
    if not text or not text.strip():
        return []

    priority = classify_priority(text, keywords)
    due_date = extract_due_date(text)

    return [
        TaskCandidate(
            title=title,
            description=text,
            priority=priority,
            due_date=due_date,
            source=source,
            source_url=source_url,
            screenshot=screenshot,
        )
        for title in extract_titles(text, extended=extended)
    ]


def extract_patterns(
    items: Sequence[CapturedItem],
    keywords: PriorityKeywordSet,
    extended: bool = True,
) -> list[TaskCandidate]:
    """Extract candidates from every OCR item with text, item by item."""
    candidates: list[TaskCandidate] = []
    for item in items:
        if not item.is_ocr or not item.text:
            continue
        candidates.extend(
            extract_from_text(
                item.text,
                keywords,
                source=item.source_app or "Unknown",
                source_url=item.browser_url,
                screenshot=item.frame_reference,
                extended=extended,
            )
        )
    return candidates
