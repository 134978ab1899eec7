"""Shared test fixtures."""
from datetime import datetime, timezone

import pytest

from taskscan.extraction.strategies import ExtractionStrategy, Ok, ServiceError
from taskscan.shared.llm import LLMProvider, LLMServiceError
from taskscan.types import CapturedItem, Position, PriorityKeywordSet, TaskCandidate


@pytest.fixture
def keywords():
    return PriorityKeywordSet.default()


@pytest.fixture
def make_item():
    def _make(text, app="Slack", **kwargs):
        kwargs.setdefault("captured_at", datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc))
        return CapturedItem(source_app=app, text=text, **kwargs)
    return _make


@pytest.fixture
def edge_position():
    """Position inside the top 5% band of a 1080px screen."""
    return Position(top=10.0, height=20.0, screen_height=1080.0)


class StaticProvider(LLMProvider):
    """Provider returning a canned reply, or raising when given an exception."""

    def __init__(self, reply):
        self.reply = reply
        self.prompts = []

    @property
    def name(self):
        return "static"

    async def generate(self, prompt, model, timeout=30.0, max_tokens=2000, temperature=0.0):
        self.prompts.append(prompt)
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


class RecordingStrategy(ExtractionStrategy):
    """Strategy with a fixed outcome that records the groups it saw."""

    method = "ai"

    def __init__(self, outcome):
        self.outcome = outcome
        self.seen = []

    @property
    def name(self):
        return "recording"

    async def extract(self, group, keywords):
        self.seen.append(group)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


@pytest.fixture
def static_provider():
    return StaticProvider


@pytest.fixture
def recording_strategy():
    return RecordingStrategy


@pytest.fixture
def unavailable_model():
    """Strategy that always reports the model service as down."""
    return RecordingStrategy(ServiceError("connection refused"))


@pytest.fixture
def candidate():
    def _make(title, **kwargs):
        return TaskCandidate(title=title, **kwargs)
    return _make


@pytest.fixture
def ok_outcome(candidate):
    def _make(*titles, source="Slack"):
        return Ok([candidate(title, source=source) for title in titles])
    return _make


@pytest.fixture
def service_down():
    return LLMServiceError("[static] EXHAUSTED 3 attempts")


class RecordingQueue:
    """MessageQueue keeping every published message in memory."""

    def __init__(self, error=None):
        self.error = error
        self.published = []

    def publish(self, stream, message):
        if self.error is not None:
            raise self.error
        self.published.append((stream, message))
        return f"{len(self.published)}-0"

    def is_available(self):
        return self.error is None


@pytest.fixture
def recording_queue():
    return RecordingQueue()


@pytest.fixture
def broken_queue():
    """Queue whose Redis connection is down."""
    import redis

    return RecordingQueue(redis.exceptions.ConnectionError("Connection refused"))
