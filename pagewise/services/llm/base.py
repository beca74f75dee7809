"""LLM Provider base interface, models, and exceptions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Exceptions
# =============================================================================


class LLMProviderError(Exception):
    """Base exception for LLM provider errors."""

    def __init__(self, message: str, provider: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.provider = provider
        self.details = details or {}
        super().__init__(f"[{provider}] {message}")


class LLMRateLimitError(LLMProviderError):
    """Raised when provider rate limit is exceeded."""

    def __init__(
        self,
        provider: str,
        retry_after: float | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.retry_after = retry_after
        super().__init__(
            f"Rate limit exceeded (429). Retry after {retry_after}s"
            if retry_after
            else "Rate limit exceeded (429)",
            provider,
            details,
        )


class LLMAuthError(LLMProviderError):
    """Raised when provider authentication fails."""

    def __init__(self, provider: str, details: dict[str, Any] | None = None) -> None:
        super().__init__("Authentication failed - check API key", provider, details)


class LLMConnectionError(LLMProviderError):
    """Raised when connection to provider fails."""

    def __init__(self, provider: str, details: dict[str, Any] | None = None) -> None:
        super().__init__("Connection to provider failed", provider, details)


class LLMModelNotFoundError(LLMProviderError):
    """Raised when requested model is not available."""

    def __init__(self, provider: str, model: str, details: dict[str, Any] | None = None) -> None:
        self.model = model
        super().__init__(f"Model '{model}' not found or not available", provider, details)


# =============================================================================
# Data Models
# =============================================================================


@dataclass
class LLMMessage:
    """A single message in a conversation."""

    role: str  # "system", "user", "assistant"
    content: str

    def __post_init__(self) -> None:
        if self.role not in ("system", "user", "assistant"):
            raise ValueError(f"Invalid role: {self.role}. Must be 'system', 'user', or 'assistant'")


@dataclass
class LLMRequest:
    """Request to an LLM provider."""

    messages: list[LLMMessage]
    model: str | None = None  # If None, use provider default
    max_tokens: int | None = None
    temperature: float = 0.7
    json_output: bool = False  # ask the provider for an application/json body

    @classmethod
    def from_prompt(cls, prompt: str, system_prompt: str | None = None, **kwargs: Any) -> LLMRequest:
        """Create a request from a simple prompt string."""
        messages = []
        if system_prompt:
            messages.append(LLMMessage(role="system", content=system_prompt))
        messages.append(LLMMessage(role="user", content=prompt))
        return cls(messages=messages, **kwargs)


@dataclass
class LLMUsage:
    """Token usage and cost tracking."""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int = field(init=False)
    estimated_cost_usd: float | None = None

    def __post_init__(self) -> None:
        self.total_tokens = self.prompt_tokens + self.completion_tokens


@dataclass
class LLMResponse:
    """Response from an LLM provider."""

    content: str
    usage: LLMUsage
    model: str
    provider: str
    finish_reason: str | None = None
    raw_response: dict[str, Any] | None = None


# =============================================================================
# Provider Protocol
# =============================================================================


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    provider_name: str

    @abstractmethod
    async def complete(self, request: LLMRequest) -> LLMResponse:
        """
        Generate a completion for the given request.

        Args:
            request: The LLM request containing messages and parameters.

        Returns:
            LLMResponse with the generated content and usage stats.

        Raises:
            LLMProviderError: If the request fails.
            LLMRateLimitError: If rate limit is exceeded.
            LLMAuthError: If authentication fails.
        """
        ...

    @abstractmethod
    def estimate_cost(self, usage: LLMUsage, model: str) -> float:
        """
        Estimate the cost for the given usage.

        Args:
            usage: Token usage information.
            model: The model used.

        Returns:
            Estimated cost in USD.
        """
        ...

    async def simple_completion(
        self,
        prompt: str,
        system_prompt: str | None = None,
        **kwargs: Any,
    ) -> str:
        """Single-turn completion returning only the generated text."""
        request = LLMRequest.from_prompt(prompt=prompt, system_prompt=system_prompt, **kwargs)
        response = await self.complete(request)
        return response.content
