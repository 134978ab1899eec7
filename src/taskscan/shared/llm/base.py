"""Base LLM provider interface and convenience functions.

This module defines the abstract LLMProvider interface, a retrying HTTP
implementation shared by the concrete providers, and the call_llm()
convenience function that routes to the correct provider by model name.
"""

from __future__ import annotations

import asyncio
import logging
import os
import random
import re
import time
from abc import ABC, abstractmethod
from typing import Any

import httpx

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Retry configuration
# ---------------------------------------------------------------------------

DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_BACKOFF = 1.0
DEFAULT_MAX_BACKOFF = 30.0
DEFAULT_BACKOFF_MULTIPLIER = 2.0
JITTER_FACTOR = 0.1
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 529}


class LLMServiceError(RuntimeError):
    """The text-generation service could not produce a response.

    Covers missing credentials, unreachable hosts, timeouts and error
    statuses that survived the retry budget.
    """


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------


class LLMProvider(ABC):
    """Abstract base for LLM providers (Groq, Anthropic)."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier (e.g. 'groq', 'anthropic')."""
        ...

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        model: str,
        timeout: float = 30.0,
        max_tokens: int = 2000,
        temperature: float = 0.0,
    ) -> str:
        """Generate a text completion.

        Args:
            prompt: User prompt text.
            model: Model name or alias.
            timeout: Request timeout in seconds.
            max_tokens: Maximum output tokens.
            temperature: Sampling temperature (0.0-1.0).

        Returns:
            Generated text.

        Raises:
            LLMServiceError: The service was unreachable or kept failing.
        """
        ...


class HTTPProvider(LLMProvider):
    """Provider speaking JSON over HTTPS with retry and backoff.

    Subclasses describe the request and how to read the reply; the retry
    loop, timeout handling and error mapping live here.
    """

    api_key_env: str = ""

    def __init__(
        self,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
    ) -> None:
        self._api_key = api_key or os.environ.get(self.api_key_env) or None
        self._client = client
        self.max_retries = max(1, max_retries)
        self.initial_backoff = initial_backoff

    # -- subclass hooks -----------------------------------------------------

    @abstractmethod
    def _build_request(
        self, prompt: str, model: str, max_tokens: int, temperature: float
    ) -> tuple[str, dict[str, str], dict[str, Any]]:
        """Return (url, headers, json body) for one generation call."""
        ...

    @abstractmethod
    def _parse_response(self, data: dict[str, Any]) -> str | None:
        """Pull the generated text out of a successful response body."""
        ...

    # -- retry helpers ------------------------------------------------------

    def _calculate_backoff(self, attempt: int, retry_after: float | None) -> float:
        if retry_after is not None:
            return min(retry_after, DEFAULT_MAX_BACKOFF)
        backoff = self.initial_backoff * (DEFAULT_BACKOFF_MULTIPLIER ** attempt)
        backoff = min(backoff, DEFAULT_MAX_BACKOFF)
        jitter = backoff * JITTER_FACTOR * random.random()
        return backoff + jitter

    @staticmethod
    def _parse_retry_after(response: httpx.Response) -> float | None:
        retry_after = response.headers.get("retry-after")
        if retry_after:
            try:
                return float(retry_after)
            except ValueError:
                pass
        return None

    async def _post(
        self, url: str, headers: dict[str, str], body: dict[str, Any], timeout: float
    ) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(url, json=body, headers=headers, timeout=timeout)
        async with httpx.AsyncClient() as client:
            return await client.post(url, json=body, headers=headers, timeout=timeout)

    # -- main generate ------------------------------------------------------

    async def generate(
        self,
        prompt: str,
        model: str,
        timeout: float = 30.0,
        max_tokens: int = 2000,
        temperature: float = 0.0,
    ) -> str:
        if not self._api_key:
            raise LLMServiceError(f"[{self.name}] {self.api_key_env} is not set")

        url, headers, body = self._build_request(prompt, model, max_tokens, temperature)
        logger.debug("[%s] model=%s prompt_len=%d timeout=%.0fs", self.name, model, len(prompt), timeout)

        start_time = time.time()
        last_error = "no attempt made"

        for attempt in range(self.max_retries):
            is_last = attempt == self.max_retries - 1
            try:
                response = await self._post(url, headers, body, timeout)
            except httpx.TimeoutException:
                last_error = f"timeout after {timeout:.0f}s"
                if is_last:
                    break
                backoff = self._calculate_backoff(attempt, None)
                logger.info(
                    "[%s] RETRY timeout | attempt=%d/%d | wait=%.1fs",
                    self.name, attempt + 1, self.max_retries, backoff,
                )
                await asyncio.sleep(backoff)
                continue
            except (httpx.TransportError, OSError) as e:
                last_error = f"connection error {type(e).__name__}: {e}"
                if is_last:
                    break
                backoff = self._calculate_backoff(attempt, None)
                logger.info(
                    "[%s] RETRY %s | attempt=%d/%d | wait=%.1fs",
                    self.name, last_error, attempt + 1, self.max_retries, backoff,
                )
                await asyncio.sleep(backoff)
                continue

            elapsed = time.time() - start_time

            if response.status_code in RETRYABLE_STATUS_CODES:
                last_error = f"status {response.status_code}"
                if is_last:
                    break
                backoff = self._calculate_backoff(attempt, self._parse_retry_after(response))
                logger.info(
                    "[%s] RETRY %d | attempt=%d/%d | wait=%.1fs | elapsed=%.1fs",
                    self.name, response.status_code, attempt + 1, self.max_retries, backoff, elapsed,
                )
                await asyncio.sleep(backoff)
                continue

            if not response.is_success:
                raise LLMServiceError(
                    f"[{self.name}] FAILED {response.status_code} | model={model} | {response.text[:300]}"
                )

            try:
                data = response.json()
            except ValueError as e:
                raise LLMServiceError(f"[{self.name}] response body is not JSON: {e}") from e

            text = self._parse_response(data) if isinstance(data, dict) else None
            if text is None:
                raise LLMServiceError(f"[{self.name}] unexpected response shape: {str(data)[:300]}")

            logger.debug("[%s] OK | model=%s | %.1fs", self.name, model, elapsed)
            if attempt > 0:
                logger.info("[%s] RECOVERED after %d retries | model=%s", self.name, attempt, model)
            return text.strip()

        raise LLMServiceError(
            f"[{self.name}] EXHAUSTED {self.max_retries} attempts | model={model} | last={last_error}"
        )


# ---------------------------------------------------------------------------
# Provider registry
# ---------------------------------------------------------------------------

_provider_cache: dict[str, LLMProvider] = {}

# Patterns that identify an Anthropic model name
_ANTHROPIC_PATTERN = re.compile(r"^(claude|haiku|sonnet|opus)", re.IGNORECASE)


def _is_anthropic_model(model: str) -> bool:
    """Return True if *model* should be routed to the Anthropic provider."""
    return bool(_ANTHROPIC_PATTERN.match(model))


def get_provider(model: str) -> LLMProvider:
    """Return (cached) provider for *model*.

    Routing logic:
        - Model names starting with ``claude``, ``haiku``, ``sonnet`` or
          ``opus`` -> AnthropicProvider
        - Everything else -> GroqProvider
    """
    if _is_anthropic_model(model):
        key = "anthropic"
        if key not in _provider_cache:
            from .anthropic_provider import AnthropicProvider
            logger.debug("Creating AnthropicProvider for model=%s", model)
            _provider_cache[key] = AnthropicProvider()
        return _provider_cache[key]

    key = "groq"
    if key not in _provider_cache:
        from .groq_provider import GroqProvider
        logger.debug("Creating GroqProvider for model=%s", model)
        _provider_cache[key] = GroqProvider()
    return _provider_cache[key]


def clear_provider_cache() -> None:
    _provider_cache.clear()


# ---------------------------------------------------------------------------
# Convenience wrapper
# ---------------------------------------------------------------------------


async def call_llm(
    prompt: str,
    model: str = "llama3-70b-8192",
    timeout: float = 30.0,
    max_tokens: int = 2000,
    temperature: float = 0.0,
) -> str:
    """Call an LLM with automatic provider routing.

    Examples::

        # Groq (default)
        await call_llm("Hello")

        # Anthropic
        await call_llm("Hello", model="claude-haiku")
    """
    provider = get_provider(model)
    return await provider.generate(
        prompt,
        model=model,
        timeout=timeout,
        max_tokens=max_tokens,
        temperature=temperature,
    )
