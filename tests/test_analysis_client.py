"""Tests for the analysis client and its response schemas."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from pagewise.services.llm import LLMAuthError, LLMConnectionError, LLMRateLimitError
from pagewise.services.page_analysis import (
    AnalysisClient,
    Importance,
    OutputLanguage,
    PageAnalysisPayload,
    RateLimitedError,
    RequestFailedError,
)


@pytest.fixture
def provider():
    provider = MagicMock()
    provider.simple_completion = AsyncMock()
    return provider


@pytest.fixture
def client(settings, provider) -> AnalysisClient:
    return AnalysisClient(settings=settings, provider=provider)


@pytest.fixture
def page_response() -> dict:
    return {
        "keyPoints": ["Rajaraja I ruled from 985 CE", "Thanjavur was the capital"],
        "studyPoints": [
            {
                "title": "Chola navy",
                "description": "Expeditions to Sri Lanka",
                "importance": "HIGH",
                "tnpscRelevance": "Frequently asked",
            }
        ],
        "summary": "The rise of the Cholas.",
        "tnpscRelevance": "Group 2 history",
        "tnpscCategories": ["History", "Culture"],
    }


# =============================================================================
# Schema Tests
# =============================================================================


class TestPageAnalysisPayload:
    def test_maps_camel_case_fields(self, page_response):
        analysis = PageAnalysisPayload.model_validate(page_response).to_page_analysis(4)

        assert analysis.page_number == 4
        assert analysis.is_analyzed is True
        assert analysis.key_points == page_response["keyPoints"]
        assert analysis.relevance == "Group 2 history"
        assert analysis.categories == ["History", "Culture"]
        assert analysis.study_points[0].importance is Importance.HIGH
        assert analysis.study_points[0].relevance == "Frequently asked"

    def test_malformed_fields_fall_back_to_empty(self):
        payload = PageAnalysisPayload.model_validate(
            {
                "keyPoints": "not a list",
                "studyPoints": [{"title": "ok", "importance": "urgent"}, "junk"],
                "summary": None,
                "tnpscCategories": None,
            }
        )

        assert payload.key_points == []
        assert len(payload.study_points) == 1
        assert payload.study_points[0].importance is Importance.MEDIUM
        assert payload.summary == ""
        assert payload.categories == []


# =============================================================================
# Client Tests
# =============================================================================


class TestAnalyzePage:
    @pytest.mark.asyncio
    async def test_success(self, client, provider, page_response):
        provider.simple_completion.return_value = json.dumps(page_response)

        analysis = await client.analyze_page("Cholas...", 3, OutputLanguage.TAMIL)

        assert analysis.page_number == 3
        assert analysis.summary == "The rise of the Cholas."
        kwargs = provider.simple_completion.call_args.kwargs
        assert kwargs["json_output"] is True
        assert kwargs["max_tokens"] == 2500
        assert kwargs["temperature"] == 0.7
        assert "Tamil" in kwargs["prompt"]
        assert "page 3" in kwargs["prompt"]

    @pytest.mark.asyncio
    async def test_json_wrapped_in_markdown_fence(self, client, provider, page_response):
        provider.simple_completion.return_value = f"```json\n{json.dumps(page_response)}\n```"

        analysis = await client.analyze_page("text", 1)

        assert analysis.categories == ["History", "Culture"]

    @pytest.mark.asyncio
    async def test_rate_limit_maps_to_retryable_error(self, client, provider):
        provider.simple_completion.side_effect = LLMRateLimitError(provider="gemini", retry_after=12)

        with pytest.raises(RateLimitedError) as exc_info:
            await client.analyze_page("text", 2)
        assert exc_info.value.page_number == 2
        assert exc_info.value.retry_after == 12

    @pytest.mark.parametrize(
        "error",
        [
            LLMAuthError(provider="gemini"),
            LLMConnectionError(provider="gemini"),
        ],
    )
    @pytest.mark.asyncio
    async def test_other_provider_errors_are_terminal(self, client, provider, error):
        provider.simple_completion.side_effect = error

        with pytest.raises(RequestFailedError):
            await client.analyze_page("text", 2)

    @pytest.mark.asyncio
    async def test_no_json_is_terminal(self, client, provider):
        provider.simple_completion.return_value = "I cannot help with that."

        with pytest.raises(RequestFailedError, match="No JSON found"):
            await client.analyze_page("text", 1)

    @pytest.mark.asyncio
    async def test_array_instead_of_object_is_terminal(self, client, provider):
        provider.simple_completion.return_value = "[1, 2, 3]"

        with pytest.raises(RequestFailedError, match="Expected a JSON object"):
            await client.analyze_page("text", 1)

    @pytest.mark.asyncio
    async def test_long_page_is_truncated(self, client, provider, page_response, settings):
        provider.simple_completion.return_value = json.dumps(page_response)

        await client.analyze_page("x" * (settings.analysis_max_page_chars + 500), 1)

        prompt = provider.simple_completion.call_args.kwargs["prompt"]
        assert "x" * (settings.analysis_max_page_chars + 1) not in prompt


class TestGenerateQuestions:
    @pytest.mark.asyncio
    async def test_parses_array(self, client, provider):
        provider.simple_completion.return_value = json.dumps(
            [
                {"question": "Q1", "options": ["a", "b", "c", "d"], "answer": "B", "type": "mcq"},
                "not a question",
            ]
        )

        questions = await client.generate_questions("Key Points: x", "hard")

        assert len(questions) == 2
        assert questions[0].answer == "B"
        assert questions[1].question == ""
        assert provider.simple_completion.call_args.kwargs["max_tokens"] == 3000

    @pytest.mark.asyncio
    async def test_parses_wrapped_object(self, client, provider):
        provider.simple_completion.return_value = json.dumps({"questions": [{"question": "Q1"}]})

        questions = await client.generate_questions("content")

        assert [q.question for q in questions] == ["Q1"]

    @pytest.mark.asyncio
    async def test_rate_limit_is_terminal_for_quizzes(self, client, provider):
        provider.simple_completion.side_effect = LLMRateLimitError(provider="gemini")

        with pytest.raises(RequestFailedError):
            await client.generate_questions("content")
