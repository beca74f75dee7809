"""Document session state and the registry of active sessions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from pagewise.services.notifications import NotificationChannel
from pagewise.services.page_analysis.models import (
    OutputLanguage,
    PageAnalysis,
    PageIndexError,
    PageState,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionKey:
    """Stable identity of an opened document: file name plus size."""

    file_name: str
    file_size: int

    @property
    def cache_key(self) -> str:
        return f"studyHistoryId_{self.file_name}_{self.file_size}"

    def __str__(self) -> str:
        return self.cache_key


@dataclass
class Progress:
    """Completed page count against document size."""

    completed: int
    total: int

    @property
    def percentage(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.completed / self.total * 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "completed": self.completed,
            "total": self.total,
            "percentage": round(self.percentage, 2),
        }


@dataclass(eq=False)
class DocumentSession:
    """
    State of one open document.

    The page maps are mutated only by the page orchestrator and
    ``record_id`` only by the history consolidator. ``generation`` is
    bumped by ``reset`` so in-flight work started before a reset can tell
    it is stale.
    """

    key: SessionKey
    owner: str
    total_pages: int
    full_text: str = ""
    language: OutputLanguage = OutputLanguage.ENGLISH
    analyses: dict[int, PageAnalysis] = field(default_factory=dict)
    states: dict[int, PageState] = field(default_factory=dict)
    failures: dict[int, str] = field(default_factory=dict)
    record_id: str | None = None
    cursor: int = 1
    generation: int = 0
    notifications: NotificationChannel = field(default_factory=NotificationChannel)

    def __post_init__(self) -> None:
        if self.total_pages < 1:
            raise ValueError("A document session needs at least one page")
        for page_number, analysis in self.analyses.items():
            self.check_page(page_number)
            if analysis.is_analyzed:
                self.states[page_number] = PageState.COMPLETED
        self.cursor = self._resume_cursor()

    def _resume_cursor(self) -> int:
        completed = self.completed_pages()
        if not completed:
            return 1
        return min(completed[-1] + 1, self.total_pages)

    def check_page(self, page_number: int) -> None:
        if not 1 <= page_number <= self.total_pages:
            raise PageIndexError(page_number, self.total_pages)

    def state_of(self, page_number: int) -> PageState:
        self.check_page(page_number)
        return self.states.get(page_number, PageState.UNANALYZED)

    def is_completed(self, page_number: int) -> bool:
        analysis = self.analyses.get(page_number)
        return analysis is not None and analysis.is_analyzed

    def completed_analysis(self, page_number: int) -> PageAnalysis | None:
        if self.is_completed(page_number):
            return self.analyses[page_number]
        return None

    def completed_pages(self) -> list[int]:
        return sorted(n for n in self.analyses if self.is_completed(n))

    def incomplete_pages(self, start: int = 1, end: int | None = None) -> list[int]:
        end = self.total_pages if end is None else end
        return [n for n in range(start, end + 1) if not self.is_completed(n)]

    def progress(self) -> Progress:
        return Progress(completed=len(self.completed_pages()), total=self.total_pages)

    def reset(self) -> None:
        """Forget all analysis progress and the record id, keeping document identity."""
        self.analyses.clear()
        self.states.clear()
        self.failures.clear()
        self.record_id = None
        self.cursor = 1
        self.generation += 1
        logger.info("Session %s reset (generation %d)", self.key, self.generation)


class SessionManager:
    """
    Registry of the active document session per owner.

    Opening a document replaces the owner's previous session; anything
    still running for the replaced session is treated as stale.
    """

    def __init__(self) -> None:
        self._active: dict[str, DocumentSession] = {}

    def activate(self, session: DocumentSession) -> DocumentSession | None:
        """Make ``session`` the owner's active session; returns the one it replaced."""
        previous = self._active.get(session.owner)
        self._active[session.owner] = session
        if previous is not None and previous is not session:
            logger.info(
                "Session %s for owner %s superseded by %s",
                previous.key,
                session.owner,
                session.key,
            )
            return previous
        return None

    def get(self, owner: str) -> DocumentSession | None:
        return self._active.get(owner)

    def close(self, owner: str) -> DocumentSession | None:
        session = self._active.pop(owner, None)
        if session is not None:
            logger.info("Session %s for owner %s closed", session.key, owner)
        return session

    def is_active(self, session: DocumentSession) -> bool:
        return self._active.get(session.owner) is session
