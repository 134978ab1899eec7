"""Anthropic (Claude) LLM provider.

Authenticates with the ANTHROPIC_API_KEY environment variable (or an
explicit ``api_key``). Short model aliases such as ``claude-haiku`` are
resolved to concrete model ids before the request is sent.
"""

from __future__ import annotations

import logging
from typing import Any

from .base import HTTPProvider

logger = logging.getLogger("taskscan.shared.llm.anthropic")

# ---------------------------------------------------------------------------
# Model aliases
# ---------------------------------------------------------------------------

MODEL_MAP: dict[str, str] = {
    "claude-haiku": "claude-3-5-haiku-latest",
    "claude-3-5-haiku": "claude-3-5-haiku-latest",
    "claude-sonnet": "claude-sonnet-4-5-20250929",
    "claude-sonnet-4": "claude-sonnet-4-20250514",
    "claude-sonnet-4-5": "claude-sonnet-4-5-20250929",
    "haiku": "claude-3-5-haiku-latest",
    "sonnet": "claude-sonnet-4-5-20250929",
}


class AnthropicProvider(HTTPProvider):
    """Anthropic Messages API provider."""

    API_ENDPOINT = "https://api.anthropic.com/v1/messages"
    API_VERSION = "2023-06-01"
    api_key_env = "ANTHROPIC_API_KEY"

    @property
    def name(self) -> str:
        return "anthropic"

    @staticmethod
    def _resolve_model(model: str) -> str:
        resolved = MODEL_MAP.get(model, model)
        if resolved != model:
            logger.debug("Model alias: %s -> %s", model, resolved)
        return resolved

    def _build_request(
        self, prompt: str, model: str, max_tokens: int, temperature: float
    ) -> tuple[str, dict[str, str], dict[str, Any]]:
        body = {
            "model": self._resolve_model(model),
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        headers = {
            "x-api-key": self._api_key or "",
            "anthropic-version": self.API_VERSION,
            "Content-Type": "application/json",
        }
        return self.API_ENDPOINT, headers, body

    def _parse_response(self, data: dict[str, Any]) -> str | None:
        usage = data.get("usage", {})
        logger.debug(
            "[anthropic] usage in=%d out=%d",
            usage.get("input_tokens", 0),
            usage.get("output_tokens", 0),
        )
        content = data.get("content")
        if not isinstance(content, list):
            return None
        text_parts = [
            block.get("text", "")
            for block in content
            if isinstance(block, dict) and block.get("type") == "text"
        ]
        if not text_parts:
            return None
        return "\n".join(text_parts)
