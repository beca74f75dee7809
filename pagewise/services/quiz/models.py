"""Quiz data models and exceptions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

ANSWER_TAGS = ("A", "B", "C", "D")
PLACEHOLDER_OPTIONS = ["Option A", "Option B", "Option C", "Option D"]
PLACEHOLDER_QUESTION = "Question unavailable for this item."
DEFAULT_EXPLANATION = "No explanation provided."


class QuestionType(str, Enum):
    """Supported question formats."""

    MULTIPLE_CHOICE = "mcq"
    ASSERTION_REASON = "assertion_reason"


class Difficulty(str, Enum):
    """Quiz difficulty levels."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    VERY_HARD = "very-hard"


# =============================================================================
# Exceptions
# =============================================================================


class QuizError(Exception):
    """Base exception for quiz generation errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class InvalidPageRangeError(QuizError):
    """Raised when a requested page range does not fit the document."""

    def __init__(self, start: int, end: int, total_pages: int) -> None:
        super().__init__(
            f"Invalid page range {start}-{end} for a document of {total_pages} pages",
            {"start": start, "end": end, "total_pages": total_pages},
        )
        self.start = start
        self.end = end


class NoAnalyzedPagesError(QuizError):
    """Raised when no page in the requested range has been analyzed yet."""

    def __init__(self, start: int, end: int) -> None:
        super().__init__(
            f"No analyzed pages between {start} and {end}",
            {"start": start, "end": end},
        )
        self.start = start
        self.end = end


# =============================================================================
# Data Models
# =============================================================================


@dataclass
class QuestionRecord:
    """A well-formed quiz question: four options and an answer tag A-D."""

    question: str
    options: list[str]
    answer: str
    type: QuestionType = QuestionType.MULTIPLE_CHOICE
    explanation: str = DEFAULT_EXPLANATION
    difficulty: str = Difficulty.MEDIUM.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "question": self.question,
            "options": list(self.options),
            "answer": self.answer,
            "type": self.type.value,
            "explanation": self.explanation,
            "difficulty": self.difficulty,
        }


@dataclass
class QuizResult:
    """Questions generated for a page range, with the content they were drawn from."""

    questions: list[QuestionRecord] = field(default_factory=list)
    summary: str = ""
    key_points: list[str] = field(default_factory=list)
    difficulty: str = Difficulty.MEDIUM.value
    start_page: int = 1
    end_page: int = 1
    sanitized_count: int = 0

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    def to_dict(self) -> dict[str, Any]:
        return {
            "questions": [q.to_dict() for q in self.questions],
            "summary": self.summary,
            "key_points": list(self.key_points),
            "difficulty": self.difficulty,
            "total_questions": self.total_questions,
            "page_range": {"start": self.start_page, "end": self.end_page},
            "sanitized_count": self.sanitized_count,
        }
