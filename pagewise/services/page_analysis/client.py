"""Analysis client: structured page analysis and question generation over an LLM."""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from pagewise.core.config import get_settings
from pagewise.services.llm import LLMProviderError, LLMRateLimitError, get_gemini_provider
from pagewise.services.page_analysis.models import (
    Importance,
    OutputLanguage,
    PageAnalysis,
    RateLimitedError,
    RequestFailedError,
    StudyPoint,
)
from pagewise.services.page_analysis.prompts import (
    SYSTEM_PROMPT,
    build_page_analysis_prompt,
    build_question_generation_prompt,
)

if TYPE_CHECKING:
    from pagewise.core.config import Settings
    from pagewise.services.llm.base import LLMProvider

logger = logging.getLogger(__name__)


# =============================================================================
# Response schemas
# =============================================================================


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None and str(item).strip()]


def _text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value)


class StudyPointPayload(BaseModel):
    """One study point as returned by the model."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: str = ""
    description: str = ""
    importance: Importance = Importance.MEDIUM
    relevance: str = Field("", alias="tnpscRelevance")

    @field_validator("title", "description", "relevance", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return _text(value)

    @field_validator("importance", mode="before")
    @classmethod
    def _coerce_importance(cls, value: Any) -> Importance:
        try:
            return Importance(str(value).lower())
        except ValueError:
            return Importance.MEDIUM


class PageAnalysisPayload(BaseModel):
    """Page analysis JSON as returned by the model; malformed fields fall back to empty."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    key_points: list[str] = Field(default_factory=list, alias="keyPoints")
    study_points: list[StudyPointPayload] = Field(default_factory=list, alias="studyPoints")
    summary: str = ""
    relevance: str = Field("", alias="tnpscRelevance")
    categories: list[str] = Field(default_factory=list, alias="tnpscCategories")

    @field_validator("key_points", "categories", mode="before")
    @classmethod
    def _coerce_string_list(cls, value: Any) -> list[str]:
        return _string_list(value)

    @field_validator("study_points", mode="before")
    @classmethod
    def _coerce_study_points(cls, value: Any) -> list[Any]:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]

    @field_validator("summary", "relevance", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return _text(value)

    def to_page_analysis(self, page_number: int) -> PageAnalysis:
        return PageAnalysis(
            page_number=page_number,
            key_points=list(self.key_points),
            study_points=[
                StudyPoint(
                    title=p.title,
                    description=p.description,
                    importance=p.importance,
                    relevance=p.relevance,
                )
                for p in self.study_points
            ],
            summary=self.summary,
            relevance=self.relevance,
            categories=list(self.categories),
            is_analyzed=True,
        )


class QuestionPayload(BaseModel):
    """
    Question record as returned by the model.

    Only shapes are normalized here; option count and answer tag are
    checked by the quiz sanitizer.
    """

    model_config = ConfigDict(extra="ignore")

    question: str = ""
    options: list[str] | None = None
    answer: str = ""
    type: str = ""
    explanation: str = ""

    @field_validator("question", "answer", "type", "explanation", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return _text(value).strip()

    @field_validator("options", mode="before")
    @classmethod
    def _coerce_options(cls, value: Any) -> list[str] | None:
        if not isinstance(value, list):
            return None
        return [_text(option) for option in value]


# =============================================================================
# Client
# =============================================================================


class AnalysisClient:
    """
    Client for the generative-analysis service.

    Performs exactly one provider call per method invocation; retrying is
    left to the caller. Provider errors are translated into
    ``RateLimitedError`` (retryable) or ``RequestFailedError`` (terminal).
    """

    def __init__(
        self,
        settings: Settings | None = None,
        provider: LLMProvider | None = None,
    ) -> None:
        """
        Initialize analysis client.

        Args:
            settings: Application settings.
            provider: LLM provider used for completions.
        """
        self.settings = settings or get_settings()
        self._provider = provider

    @property
    def provider(self) -> LLMProvider:
        """Get or create the LLM provider instance."""
        if self._provider is None:
            self._provider = get_gemini_provider()
        return self._provider

    def _parse_json(self, response: str, page_number: int | None) -> Any:
        """
        Parse JSON from an LLM response.

        The model sometimes wraps JSON in markdown fences or prose, so a
        direct parse is tried first and then the outermost object or array.
        """
        try:
            return json.loads(response)
        except json.JSONDecodeError:
            pass

        json_match = re.search(r"(\{[\s\S]*\}|\[[\s\S]*\])", response)
        if not json_match:
            raise RequestFailedError(
                page_number,
                "No JSON found in response",
                {"response": response[:500]},
            )
        try:
            return json.loads(json_match.group(0))
        except json.JSONDecodeError as e:
            raise RequestFailedError(
                page_number,
                f"Invalid JSON in response: {e}",
                {"response": response[:500]},
            ) from e

    async def _complete(self, prompt: str, max_tokens: int, page_number: int | None) -> str:
        try:
            return await self.provider.simple_completion(
                prompt=prompt,
                system_prompt=SYSTEM_PROMPT,
                temperature=self.settings.llm_temperature,
                max_tokens=max_tokens,
                json_output=True,
            )
        except LLMRateLimitError as e:
            raise RateLimitedError(
                page_number,
                retry_after=e.retry_after,
                details={"provider": e.provider, **e.details},
            ) from e
        except LLMProviderError as e:
            raise RequestFailedError(
                page_number,
                e.message,
                {"provider": e.provider, **e.details},
            ) from e

    async def analyze_page(
        self,
        content: str,
        page_number: int,
        language: OutputLanguage | str = OutputLanguage.ENGLISH,
    ) -> PageAnalysis:
        """
        Request a structured analysis of one page.

        Args:
            content: Text of the page.
            page_number: 1-based page number.
            language: Output language.

        Returns:
            Completed PageAnalysis.

        Raises:
            RateLimitedError: The service asked us to back off.
            RequestFailedError: Any other failure, including unusable output.
        """
        prompt = build_page_analysis_prompt(
            content,
            page_number,
            language=language,
            max_length=self.settings.analysis_max_page_chars,
        )
        response = await self._complete(prompt, self.settings.llm_page_max_tokens, page_number)
        parsed = self._parse_json(response, page_number)

        if not isinstance(parsed, dict):
            raise RequestFailedError(
                page_number,
                f"Expected a JSON object, got {type(parsed).__name__}",
            )

        try:
            payload = PageAnalysisPayload.model_validate(parsed)
        except ValidationError as e:
            raise RequestFailedError(page_number, f"Schema validation failed: {e}") from e

        analysis = payload.to_page_analysis(page_number)
        logger.info(
            "Page %d analyzed: %d key points, %d study points",
            page_number,
            len(analysis.key_points),
            len(analysis.study_points),
        )
        return analysis

    async def generate_questions(
        self,
        merged_content: str,
        difficulty: str = "medium",
        language: OutputLanguage | str = OutputLanguage.ENGLISH,
        page_number: int | None = None,
    ) -> list[QuestionPayload]:
        """
        Request quiz questions over merged page content.

        Args:
            merged_content: Key points and summaries of the selected pages.
            difficulty: Requested difficulty level.
            language: Output language.
            page_number: First page of the range, for error context.

        Returns:
            Question payloads in the order the model produced them.

        Raises:
            RequestFailedError: On any failure, rate limiting included.
        """
        prompt = build_question_generation_prompt(merged_content, difficulty, language)
        try:
            response = await self._complete(prompt, self.settings.llm_quiz_max_tokens, page_number)
        except RateLimitedError as e:
            raise RequestFailedError(page_number, "Rate limit reached (429)", e.details) from e

        parsed = self._parse_json(response, page_number)
        if isinstance(parsed, dict):
            parsed = parsed.get("questions", [])
        if not isinstance(parsed, list):
            raise RequestFailedError(page_number, "Expected a JSON array of questions")

        questions: list[QuestionPayload] = []
        for item in parsed:
            if not isinstance(item, dict):
                item = {}
            questions.append(QuestionPayload.model_validate(item))
        return questions


# Singleton instance
_analysis_client: AnalysisClient | None = None


def get_analysis_client() -> AnalysisClient:
    """Get or create the global analysis client instance."""
    global _analysis_client
    if _analysis_client is None:
        _analysis_client = AnalysisClient()
    return _analysis_client
