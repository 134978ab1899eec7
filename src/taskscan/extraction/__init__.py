"""Task extraction: capture filtering, model/pattern extraction, dedup and merge."""
from .capture_filter import FilterConfig, filter_captures, select_sources
from .dedup import dedupe
from .merge import merge_rescan
from .orchestrator import GroupResult, TaskExtractor
from .patterns import extract_patterns
from .reminders import due_reminders
from .similarity import is_similar
from .strategies import (
    ExtractionStrategy,
    LLMStrategy,
    Ok,
    ParseError,
    PatternStrategy,
    ServiceError,
    SourceGroup,
    build_strategies,
)

__all__ = [
    # Stages
    "filter_captures",
    "select_sources",
    "extract_patterns",
    "dedupe",
    "merge_rescan",
    "due_reminders",
    "is_similar",
    # Orchestration
    "TaskExtractor",
    "GroupResult",
    "FilterConfig",
    # Strategies
    "ExtractionStrategy",
    "LLMStrategy",
    "PatternStrategy",
    "build_strategies",
    "SourceGroup",
    "Ok",
    "ParseError",
    "ServiceError",
]
