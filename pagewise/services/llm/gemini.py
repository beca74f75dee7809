"""Google Gemini LLM provider implementation."""

from __future__ import annotations

import logging
from typing import Any

import httpx

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

logger = logging.getLogger(__name__)


# Gemini pricing per 1M tokens
GEMINI_PRICING = {
    "gemini-1.5-pro": {"input": 1.25, "output": 5.00},
    "gemini-1.5-flash": {"input": 0.075, "output": 0.30},
    "gemini-2.0-flash": {"input": 0.10, "output": 0.40},
}

# Academic source material trips the default filters on history and politics.
SAFETY_SETTINGS = [
    {"category": category, "threshold": "BLOCK_NONE"}
    for category in (
        "HARM_CATEGORY_HARASSMENT",
        "HARM_CATEGORY_HATE_SPEECH",
        "HARM_CATEGORY_SEXUALLY_EXPLICIT",
        "HARM_CATEGORY_DANGEROUS_CONTENT",
    )
]


class GeminiProvider(LLMProvider):
    """Google Gemini LLM provider."""

    provider_name = "gemini"
    BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
    DEFAULT_MODEL = "gemini-1.5-flash-latest"

    def __init__(
        self,
        api_key: str,
        default_model: str | None = None,
        timeout: float = 60.0,
    ) -> None:
        """
        Initialize Gemini provider.

        Args:
            api_key: Google AI API key.
            default_model: Default model for text requests.
            timeout: Request timeout in seconds.
        """
        self.api_key = api_key
        self.default_model = default_model or self.DEFAULT_MODEL
        self.timeout = timeout

    def _convert_messages_to_contents(
        self, messages: list[LLMMessage]
    ) -> tuple[list[dict[str, Any]], str | None]:
        """
        Convert LLMMessage objects to Gemini contents format.

        Returns:
            Tuple of (contents list, system instruction).
        """
        contents = []
        system_instruction = None

        for msg in messages:
            if msg.role == "system":
                # Gemini handles system prompts separately
                system_instruction = msg.content
            else:
                role = "user" if msg.role == "user" else "model"
                contents.append({"role": role, "parts": [{"text": msg.content}]})

        return contents, system_instruction

    async def _make_request(
        self,
        model: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Make an API request to Gemini.

        Args:
            model: Model name to use.
            payload: Request payload.

        Returns:
            API response as dictionary.

        Raises:
            LLMProviderError: If request fails.
        """
        url = f"{self.BASE_URL}/models/{model}:generateContent?key={self.api_key}"

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(
                    url,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )

                if response.status_code == 401 or response.status_code == 403:
                    raise LLMAuthError(
                        provider=self.provider_name,
                        details={"status_code": response.status_code, "response": response.text},
                    )

                if response.status_code == 429:
                    retry_after = response.headers.get("Retry-After")
                    raise LLMRateLimitError(
                        provider=self.provider_name,
                        retry_after=float(retry_after) if retry_after else None,
                        details={"response": response.text},
                    )

                if response.status_code == 404:
                    raise LLMModelNotFoundError(
                        provider=self.provider_name,
                        model=model,
                        details={"response": response.text},
                    )

                if response.status_code >= 400:
                    raise LLMProviderError(
                        message=f"API error: {response.status_code}",
                        provider=self.provider_name,
                        details={"status_code": response.status_code, "response": response.text},
                    )

                return response.json()

            except httpx.ConnectError as e:
                raise LLMConnectionError(
                    provider=self.provider_name,
                    details={"error": str(e)},
                ) from e
            except httpx.TimeoutException as e:
                raise LLMConnectionError(
                    provider=self.provider_name,
                    details={"error": f"Request timeout: {e}"},
                ) from e

    async def complete(self, request: LLMRequest) -> LLMResponse:
        """
        Generate a completion for the given request.

        Args:
            request: The LLM request containing messages and parameters.

        Returns:
            LLMResponse with the generated content and usage stats.
        """
        model = request.model or self.default_model
        contents, system_instruction = self._convert_messages_to_contents(request.messages)

        payload: dict[str, Any] = {
            "contents": contents,
            "safetySettings": SAFETY_SETTINGS,
            "generationConfig": {
                "temperature": request.temperature,
            },
        }

        if request.max_tokens:
            payload["generationConfig"]["maxOutputTokens"] = request.max_tokens
        if request.json_output:
            payload["generationConfig"]["responseMimeType"] = "application/json"
        if system_instruction:
            payload["systemInstruction"] = {"parts": [{"text": system_instruction}]}

        logger.debug(f"[Gemini] Sending request to model {model}")

        response_data = await self._make_request(model, payload)

        candidates = response_data.get("candidates", [])
        if not candidates:
            raise LLMProviderError(
                message="No response candidates returned",
                provider=self.provider_name,
                details={"response": response_data},
            )

        candidate = candidates[0]
        content_parts = candidate.get("content", {}).get("parts", [])
        content = "".join(part.get("text", "") for part in content_parts)
        finish_reason = candidate.get("finishReason")

        usage_metadata = response_data.get("usageMetadata", {})
        usage = LLMUsage(
            prompt_tokens=usage_metadata.get("promptTokenCount", 0),
            completion_tokens=usage_metadata.get("candidatesTokenCount", 0),
        )
        usage.estimated_cost_usd = self.estimate_cost(usage, model)

        logger.info(
            f"[Gemini] Completed request: {usage.total_tokens} tokens, "
            f"${usage.estimated_cost_usd:.6f} estimated cost"
        )

        return LLMResponse(
            content=content,
            usage=usage,
            model=model,
            provider=self.provider_name,
            finish_reason=finish_reason,
            raw_response=response_data,
        )

    def estimate_cost(self, usage: LLMUsage, model: str) -> float:
        """
        Estimate the cost for the given usage.

        Versioned names such as ``gemini-1.5-flash-latest`` are matched to
        the closest pricing entry; unknown models use flash pricing.
        """
        pricing_key = model
        if model not in GEMINI_PRICING:
            for key in GEMINI_PRICING:
                if key in model or model in key:
                    pricing_key = key
                    break
            else:
                pricing_key = "gemini-1.5-flash"

        pricing = GEMINI_PRICING[pricing_key]
        input_cost = (usage.prompt_tokens / 1_000_000) * pricing["input"]
        output_cost = (usage.completion_tokens / 1_000_000) * pricing["output"]
        return input_cost + output_cost


# Singleton instance for convenience
_gemini_provider: GeminiProvider | None = None


def get_gemini_provider() -> GeminiProvider:
    """Get or create the global Gemini provider configured from settings."""
    global _gemini_provider
    if _gemini_provider is None:
        from pagewise.core.config import get_settings

        settings = get_settings()
        _gemini_provider = GeminiProvider(
            api_key=settings.gemini_api_key,
            default_model=settings.gemini_model,
            timeout=float(settings.llm_timeout_seconds),
        )
    return _gemini_provider
