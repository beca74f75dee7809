"""Study history data models and exceptions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pagewise.services.page_analysis.models import StudyPoint

if TYPE_CHECKING:
    from pagewise.services.session import DocumentSession

RECORD_KIND_ANALYSIS = "analysis"


# =============================================================================
# Exceptions
# =============================================================================


class StudyHistoryError(Exception):
    """Base exception for study history persistence errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class StoreUnavailableError(StudyHistoryError):
    """Raised when the record store cannot be reached or rejects a write."""

    def __init__(self, operation: str, reason: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(f"Study history store unavailable during {operation}: {reason}", details)
        self.operation = operation
        self.reason = reason


class RecordNotFoundError(StudyHistoryError):
    """Raised when updating or reading a record id the store does not know."""

    def __init__(self, record_id: str) -> None:
        super().__init__(f"Study history record not found: {record_id}", {"record_id": record_id})
        self.record_id = record_id


class StaleSessionError(StudyHistoryError):
    """Raised when a persistence result arrives for a session that is no longer active."""

    def __init__(self, session_key: str) -> None:
        super().__init__(f"Session {session_key} is no longer active", {"session_key": session_key})
        self.session_key = session_key


# =============================================================================
# Data Models
# =============================================================================


@dataclass
class CumulativeRecord:
    """Merged view over every completed page of a session, in page order."""

    key_points: list[str] = field(default_factory=list)
    study_points: list[StudyPoint] = field(default_factory=list)
    summary: str = ""
    relevance: str = ""
    categories: list[str] = field(default_factory=list)
    main_topic: str = ""
    page_numbers: list[int] = field(default_factory=list)
    record_id: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.page_numbers

    def to_payload(self) -> dict[str, Any]:
        """Content stored for the record; independent of the owning id."""
        return {
            "keyPoints": list(self.key_points),
            "studyPoints": [p.to_dict() for p in self.study_points],
            "summary": self.summary,
            "relevance": self.relevance,
            "categories": list(self.categories),
            "mainTopic": self.main_topic,
            "pageNumbers": list(self.page_numbers),
        }

    def to_dict(self) -> dict[str, Any]:
        return {"record_id": self.record_id, **self.to_payload()}


def build_cumulative_record(session: DocumentSession) -> CumulativeRecord:
    """
    Merge all completed pages of ``session`` in ascending page order.

    The result depends only on the set of completed pages, never on the
    order in which they finished.
    """
    pages = [session.analyses[n] for n in session.completed_pages()]

    categories: list[str] = []
    seen: set[str] = set()
    for page in pages:
        for category in page.categories:
            if category not in seen:
                seen.add(category)
                categories.append(category)

    page_numbers = [page.page_number for page in pages]
    main_topic = ""
    if page_numbers:
        main_topic = f"{session.key.file_name} - Pages {', '.join(str(n) for n in page_numbers)}"

    return CumulativeRecord(
        key_points=[point for page in pages for point in page.key_points],
        study_points=[point for page in pages for point in page.study_points],
        summary="\n\n".join(f"Page {page.page_number}: {page.summary}" for page in pages),
        relevance="\n\n".join(f"Page {page.page_number}: {page.relevance}" for page in pages),
        categories=categories,
        main_topic=main_topic,
        page_numbers=page_numbers,
        record_id=session.record_id,
    )


def build_page_analyses_map(session: DocumentSession) -> dict[str, dict[str, Any]]:
    """Per-page mapping keyed by page number string, ascending."""
    return {
        str(n): session.analyses[n].to_dict()
        for n in session.completed_pages()
    }


def build_record_metadata(session: DocumentSession) -> dict[str, Any]:
    return {
        "fileName": session.key.file_name,
        "fileSize": session.key.file_size,
        "difficulty": "medium",
        "language": session.language.value,
        "totalPages": session.total_pages,
        "pageAnalysesMap": build_page_analyses_map(session),
    }
