"""Capture filtering: decides which captured fragments may hold tasks.

Rejects UI chrome and noise before any extraction runs: developer tools,
empty or tiny fragments, the host application's own status strings, lone
labels and title/task bars at the screen edges. Falls back to a lenient
pass when the strict one rejects everything.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Sequence

from taskscan.types import CapturedItem

logger = logging.getLogger(__name__)


# Editors, developer tools and terminals: their text is code, not tasks
EXCLUDED_APPS: tuple[str, ...] = (
    "code",
    "visual studio code",
    "cursor",
    "terminal",
    "iterm",
    "chrome devtools",
    "devtools",
    "xcode",
    "intellij",
    "pycharm",
    "webstorm",
    "sublime text",
    "warp",
    "powershell",
)

# Our own UI chrome and local service references
EXCLUDED_PHRASES: tuple[str, ...] = (
    "screenpipe",
    "auto todo builder",
    "scanning for new tasks",
    "localhost",
    "127.0.0.1",
)

DEFAULT_SCREEN_HEIGHT = 1080.0

# App-name fragments per source category, used by select_sources()
SOURCE_CATEGORIES: dict[str, tuple[str, ...]] = {
    "email": ("mail", "outlook", "gmail", "thunderbird", "spark", "superhuman"),
    "chat": ("slack", "teams", "discord", "messages", "telegram", "whatsapp", "signal", "zoom"),
    "browser": ("chrome", "firefox", "safari", "edge", "arc", "brave", "opera"),
    "documents": ("word", "pages", "notion", "docs", "acrobat", "preview", "obsidian", "excel"),
    "code": EXCLUDED_APPS + ("github", "gitlab"),
}


@dataclass(frozen=True)
class FilterConfig:
    """Thresholds and vocabularies for the capture filter."""

    min_text_length: int = 10
    min_word_count: int = 2
    edge_fraction: float = 0.05
    excluded_apps: tuple[str, ...] = EXCLUDED_APPS
    excluded_phrases: tuple[str, ...] = EXCLUDED_PHRASES


def is_excluded_app(source_app: str, config: FilterConfig = FilterConfig()) -> bool:
    app = (source_app or "").lower()
    return any(excluded in app for excluded in config.excluded_apps)


def is_too_short(text: str | None, config: FilterConfig = FilterConfig()) -> bool:
    return not text or len(text.strip()) < config.min_text_length


def has_excluded_phrase(text: str, config: FilterConfig = FilterConfig()) -> bool:
    lowered = text.lower()
    return any(phrase in lowered for phrase in config.excluded_phrases)


def is_screen_edge(item: CapturedItem, config: FilterConfig = FilterConfig()) -> bool:
    """True when the item sits in the title-bar or taskbar band of the screen."""
    if item.position is None:
        return False
    screen_height = item.position.screen_height or DEFAULT_SCREEN_HEIGHT
    top = item.position.top
    return top < screen_height * config.edge_fraction or top > screen_height * (1 - config.edge_fraction)


def passes_strict(item: CapturedItem, config: FilterConfig = FilterConfig()) -> bool:
    """Apply every exclusion rule in order; any match rejects the item."""
    if is_excluded_app(item.source_app, config):
        return False
    if is_too_short(item.text, config):
        return False
    text = item.text or ""
    if has_excluded_phrase(text, config):
        return False
    if len(text.split()) < config.min_word_count:
        return False
    if is_screen_edge(item, config):
        return False
    return True


def filter_captures(
    items: Sequence[CapturedItem],
    config: FilterConfig = FilterConfig(),
) -> list[CapturedItem]:
    """Keep the captured items that are plausible task sources.

    Runs the strict rule set first. If that rejects every item, re-runs
    with only the text-length rule so noisy capture metadata does not
    silently yield zero input.

    Args:
        items: Raw captures from the capture source.
        config: Filter thresholds.

    Returns:
        The eligible items, in input order.
    """
    strict = [item for item in items if passes_strict(item, config)]
    if strict or not items:
        logger.debug("Capture filter kept %d/%d items (strict)", len(strict), len(items))
        return strict

    lenient = [item for item in items if not is_too_short(item.text, config)]
    logger.info(
        "Strict capture filter rejected all %d items; lenient mode kept %d",
        len(items),
        len(lenient),
    )
    return lenient


def source_category(source_app: str) -> str | None:
    """Map an application name to its source category, if known."""
    app = (source_app or "").lower()
    for category, fragments in SOURCE_CATEGORIES.items():
        if any(fragment in app for fragment in fragments):
            return category
    return None


def select_sources(
    items: Sequence[CapturedItem],
    scan_sources: Mapping[str, bool],
) -> list[CapturedItem]:
    """Drop items whose application belongs to a disabled source category.

    Applications of unknown category are always kept.
    """
    selected = []
    for item in items:
        category = source_category(item.source_app)
        if category is not None and not scan_sources.get(category, True):
            continue
        selected.append(item)
    if len(selected) != len(items):
        logger.debug("Source selection dropped %d items", len(items) - len(selected))
    return selected
