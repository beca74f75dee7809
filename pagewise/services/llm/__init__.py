"""LLM Provider abstraction layer for page analysis."""

from pagewise.services.llm.base import (
    LLMAuthError,
    LLMConnectionError,
    LLMMessage,
    LLMModelNotFoundError,
    LLMProvider,
    LLMProviderError,
    LLMRateLimitError,
    LLMRequest,
    LLMResponse,
    LLMUsage,
)
from pagewise.services.llm.gemini import GeminiProvider, get_gemini_provider

__all__ = [
    # Providers
    "LLMProvider",
    "GeminiProvider",
    "get_gemini_provider",
    # Data models
    "LLMMessage",
    "LLMRequest",
    "LLMResponse",
    "LLMUsage",
    # Exceptions
    "LLMProviderError",
    "LLMRateLimitError",
    "LLMAuthError",
    "LLMConnectionError",
    "LLMModelNotFoundError",
]
