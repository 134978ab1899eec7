"""LLM provider abstraction."""
from .base import (
    HTTPProvider,
    LLMProvider,
    LLMServiceError,
    call_llm,
    clear_provider_cache,
    get_provider,
)
from .anthropic_provider import AnthropicProvider
from .groq_provider import GroqProvider

__all__ = [
    "call_llm",
    "clear_provider_cache",
    "get_provider",
    "HTTPProvider",
    "LLMProvider",
    "LLMServiceError",
    "AnthropicProvider",
    "GroqProvider",
]
