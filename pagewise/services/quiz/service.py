"""Quiz generation over a range of analyzed pages."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pagewise.services.page_analysis import get_analysis_client
from pagewise.services.quiz.models import (
    ANSWER_TAGS,
    DEFAULT_EXPLANATION,
    PLACEHOLDER_OPTIONS,
    PLACEHOLDER_QUESTION,
    Difficulty,
    InvalidPageRangeError,
    NoAnalyzedPagesError,
    QuestionRecord,
    QuestionType,
    QuizResult,
)

if TYPE_CHECKING:
    from pagewise.services.page_analysis.client import AnalysisClient, QuestionPayload
    from pagewise.services.page_analysis.models import OutputLanguage, PageAnalysis
    from pagewise.services.session import DocumentSession

logger = logging.getLogger(__name__)


def build_merged_content(analyses: list[PageAnalysis]) -> str:
    """Key points and summary of each page, one block per page."""
    return "\n\n".join(
        f"Key Points: {'; '.join(a.key_points)}\nSummary: {a.summary}" for a in analyses
    )


def sanitize_question(payload: QuestionPayload, difficulty: str) -> tuple[QuestionRecord, bool]:
    """
    Normalize a model-produced question into a well-formed record.

    Returns the record and whether anything had to be replaced.
    """
    replaced = False

    options = payload.options
    if options is None or len(options) != 4:
        options = list(PLACEHOLDER_OPTIONS)
        replaced = True

    answer = payload.answer.upper()
    if answer not in ANSWER_TAGS:
        answer = ANSWER_TAGS[0]
        replaced = True

    try:
        question_type = QuestionType(payload.type)
    except ValueError:
        question_type = QuestionType.MULTIPLE_CHOICE
        replaced = True

    question = payload.question
    if not question:
        question = PLACEHOLDER_QUESTION
        replaced = True

    return (
        QuestionRecord(
            question=question,
            options=list(options),
            answer=answer,
            type=question_type,
            explanation=payload.explanation or DEFAULT_EXPLANATION,
            difficulty=difficulty,
        ),
        replaced,
    )


class QuizService:
    """Forwards a page range of analyses to question generation and sanitizes the output."""

    def __init__(self, client: AnalysisClient | None = None) -> None:
        self._client = client

    @property
    def client(self) -> AnalysisClient:
        if self._client is None:
            self._client = get_analysis_client()
        return self._client

    def select_pages(self, session: DocumentSession, start: int, end: int) -> list[PageAnalysis]:
        if not (1 <= start <= end <= session.total_pages):
            raise InvalidPageRangeError(start, end, session.total_pages)
        analyses = [
            session.analyses[n]
            for n in session.completed_pages()
            if start <= n <= end
        ]
        if not analyses:
            raise NoAnalyzedPagesError(start, end)
        return analyses

    async def generate_for_range(
        self,
        session: DocumentSession,
        start: int,
        end: int,
        difficulty: Difficulty | str = Difficulty.MEDIUM,
        language: OutputLanguage | str | None = None,
    ) -> QuizResult:
        """
        Generate quiz questions for the analyzed pages in ``start..end``.

        Raises:
            InvalidPageRangeError: Range outside the document or reversed.
            NoAnalyzedPagesError: Nothing in range has been analyzed.
            RequestFailedError: Question generation failed.
        """
        difficulty = Difficulty(difficulty).value
        language = language or session.language
        analyses = self.select_pages(session, start, end)

        logger.info(
            "Generating %s quiz for pages %d-%d (%d analyzed pages)",
            difficulty,
            start,
            end,
            len(analyses),
        )

        payloads = await self.client.generate_questions(
            build_merged_content(analyses),
            difficulty,
            language,
            page_number=start,
        )

        questions: list[QuestionRecord] = []
        sanitized = 0
        for payload in payloads:
            record, replaced = sanitize_question(payload, difficulty)
            questions.append(record)
            sanitized += int(replaced)

        if sanitized:
            logger.warning("Sanitized %d of %d generated questions", sanitized, len(questions))

        return QuizResult(
            questions=questions,
            summary=" ".join(a.summary for a in analyses),
            key_points=[point for a in analyses for point in a.key_points],
            difficulty=difficulty,
            start_page=start,
            end_page=end,
            sanitized_count=sanitized,
        )
