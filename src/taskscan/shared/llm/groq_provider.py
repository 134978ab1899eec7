"""Groq LLM provider (OpenAI-compatible chat completions).

Authenticates with the GROQ_API_KEY environment variable (or an explicit
``api_key``).
"""

from __future__ import annotations

import logging
from typing import Any

from .base import HTTPProvider

logger = logging.getLogger("taskscan.shared.llm.groq")

DEFAULT_MODEL = "llama3-70b-8192"


class GroqProvider(HTTPProvider):
    """Groq chat-completions provider."""

    API_ENDPOINT = "https://api.groq.com/openai/v1/chat/completions"
    api_key_env = "GROQ_API_KEY"

    @property
    def name(self) -> str:
        return "groq"

    def _build_request(
        self, prompt: str, model: str, max_tokens: int, temperature: float
    ) -> tuple[str, dict[str, str], dict[str, Any]]:
        body = {
            "model": model or DEFAULT_MODEL,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        return self.API_ENDPOINT, headers, body

    def _parse_response(self, data: dict[str, Any]) -> str | None:
        choices = data.get("choices")
        if not isinstance(choices, list) or not choices:
            return None
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if not isinstance(message, dict):
            return None
        content = message.get("content")
        return content if isinstance(content, str) else None
