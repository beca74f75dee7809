"""Page analysis data models and exceptions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Importance(str, Enum):
    """Importance of a study point for exam preparation."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class OutputLanguage(str, Enum):
    """Languages the analysis can be written in."""

    ENGLISH = "english"
    TAMIL = "tamil"


class PageState(str, Enum):
    """Lifecycle of a single page within a document session."""

    UNANALYZED = "unanalyzed"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    FAILED = "failed"


BLANK_PAGE_SUMMARY = "No text content found on this page."
BLANK_PAGE_RELEVANCE = "Not applicable for this page."


# =============================================================================
# Exceptions
# =============================================================================


class PageAnalysisError(Exception):
    """Base exception for page analysis errors."""

    def __init__(
        self, message: str, page_number: int | None, details: dict[str, Any] | None = None
    ) -> None:
        self.message = message
        self.page_number = page_number
        self.details = details or {}
        super().__init__(f"[page {page_number}] {message}" if page_number is not None else message)


class RateLimitedError(PageAnalysisError):
    """Raised when the analysis service asks the caller to slow down."""

    def __init__(
        self,
        page_number: int | None,
        retry_after: float | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__("Rate limit reached (429)", page_number, details)
        self.retry_after = retry_after


class RequestFailedError(PageAnalysisError):
    """Raised when an analysis request fails for any non rate-limit reason."""

    def __init__(
        self, page_number: int | None, reason: str, details: dict[str, Any] | None = None
    ) -> None:
        super().__init__(f"Analysis request failed: {reason}", page_number, details)
        self.reason = reason


class PageAnalysisFailedError(PageAnalysisError):
    """Raised when a page could not be analyzed after all allowed attempts."""

    def __init__(self, page_number: int, attempts: int, reason: str) -> None:
        super().__init__(
            f"Failed to analyze page {page_number} after {attempts} attempts: {reason}",
            page_number,
            {"attempts": attempts, "reason": reason},
        )
        self.attempts = attempts
        self.reason = reason


class PageIndexError(ValueError):
    """Raised when a page number falls outside the document."""

    def __init__(self, page_number: int, total_pages: int) -> None:
        super().__init__(
            f"Page {page_number} is out of range (document has {total_pages} pages)"
        )
        self.page_number = page_number
        self.total_pages = total_pages


# =============================================================================
# Data Models
# =============================================================================


@dataclass
class StudyPoint:
    """A single titled study point extracted from a page."""

    title: str
    description: str = ""
    importance: Importance = Importance.MEDIUM
    relevance: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON storage."""
        return {
            "title": self.title,
            "description": self.description,
            "importance": self.importance.value,
            "relevance": self.relevance,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StudyPoint:
        """Create StudyPoint from dictionary."""
        try:
            importance = Importance(data.get("importance", "medium"))
        except ValueError:
            importance = Importance.MEDIUM
        return cls(
            title=data.get("title", ""),
            description=data.get("description", ""),
            importance=importance,
            relevance=data.get("relevance", ""),
        )


@dataclass
class PageAnalysis:
    """Structured analysis of one page of a document."""

    page_number: int
    key_points: list[str] = field(default_factory=list)
    study_points: list[StudyPoint] = field(default_factory=list)
    summary: str = ""
    relevance: str = ""
    categories: list[str] = field(default_factory=list)
    is_analyzed: bool = True

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON storage."""
        return {
            "page_number": self.page_number,
            "key_points": list(self.key_points),
            "study_points": [p.to_dict() for p in self.study_points],
            "summary": self.summary,
            "relevance": self.relevance,
            "categories": list(self.categories),
            "is_analyzed": self.is_analyzed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PageAnalysis:
        """Create PageAnalysis from dictionary."""
        return cls(
            page_number=int(data["page_number"]),
            key_points=list(data.get("key_points", [])),
            study_points=[StudyPoint.from_dict(p) for p in data.get("study_points", [])],
            summary=data.get("summary", ""),
            relevance=data.get("relevance", ""),
            categories=list(data.get("categories", [])),
            is_analyzed=bool(data.get("is_analyzed", True)),
        )

    @classmethod
    def blank(cls, page_number: int) -> PageAnalysis:
        """Completed analysis for a page without any text."""
        return cls(
            page_number=page_number,
            summary=BLANK_PAGE_SUMMARY,
            relevance=BLANK_PAGE_RELEVANCE,
        )


@dataclass
class BatchResult:
    """Outcome of a sequential multi-page run."""

    completed: list[int] = field(default_factory=list)
    failed_page: int | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.failed_page is None


@dataclass
class ComprehensiveResult:
    """Outcome of a bounded-parallel whole-document pass."""

    page_analyses: list[PageAnalysis] = field(default_factory=list)
    failed_pages: list[int] = field(default_factory=list)
    total_key_points: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)

    @property
    def overall_summary(self) -> str:
        return (
            f"Comprehensive analysis of {len(self.page_analyses)} pages completed, "
            f"identifying {len(self.total_key_points)} total key points."
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "page_analyses": [p.to_dict() for p in self.page_analyses],
            "failed_pages": list(self.failed_pages),
            "overall_summary": self.overall_summary,
            "total_key_points": list(self.total_key_points),
            "categories": list(self.categories),
        }
