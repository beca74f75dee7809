"""Quiz generation for a range of analyzed pages."""

from pagewise.services.quiz.models import (
    Difficulty,
    InvalidPageRangeError,
    NoAnalyzedPagesError,
    QuestionRecord,
    QuestionType,
    QuizError,
    QuizResult,
)
from pagewise.services.quiz.service import QuizService, build_merged_content, sanitize_question

__all__ = [
    "QuizService",
    "build_merged_content",
    "sanitize_question",
    "QuestionRecord",
    "QuizResult",
    "QuestionType",
    "Difficulty",
    "QuizError",
    "InvalidPageRangeError",
    "NoAnalyzedPagesError",
]
