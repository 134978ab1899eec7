"""Prompt template for model-based task extraction."""

from __future__ import annotations

from taskscan.types import PriorityKeywordSet

EXTRACTION_PROMPT = """Extract potential tasks or todos from the following text. Return a JSON array of objects with title, description, priority, and dueDate fields.
For priority, use "high", "medium", or "low" based on urgency words.
High priority keywords: {high}
Medium priority keywords: {medium}
Low priority keywords: {low}
If no due date is mentioned, return null for dueDate.
If the text contains no tasks, return an empty array [].
Only return valid JSON, no other text.

Text from {source}:
{text}"""


def build_extraction_prompt(text: str, source: str, keywords: PriorityKeywordSet) -> str:
    return EXTRACTION_PROMPT.format(
        high=", ".join(keywords.high),
        medium=", ".join(keywords.medium),
        low=", ".join(keywords.low),
        source=source,
        text=text,
    )
