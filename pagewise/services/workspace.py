"""Per-owner study workspace: open documents and their orchestrators."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pagewise.core.config import get_settings
from pagewise.services.page_analysis import (
    OutputLanguage,
    PageAnalysis,
    PageExtractor,
    PageOrchestrator,
    get_analysis_client,
)
from pagewise.services.quiz import QuizService
from pagewise.services.session import DocumentSession, SessionKey, SessionManager
from pagewise.services.study_history import (
    HistoryConsolidator,
    SessionRecordCache,
    get_study_history_store,
)

if TYPE_CHECKING:
    from redis.asyncio import Redis

    from pagewise.core.config import Settings
    from pagewise.services.page_analysis import AnalysisClient
    from pagewise.services.study_history import StudyHistoryStore

logger = logging.getLogger(__name__)


class SessionNotFoundError(Exception):
    """Raised when an owner has no open document."""

    def __init__(self, owner: str) -> None:
        self.message = f"No open document for owner: {owner}"
        self.details = {"owner": owner}
        self.owner = owner
        super().__init__(self.message)


class StudyWorkspace:
    """
    Holds the active document session of every owner.

    Opening a document supersedes the owner's previous session. Results
    still arriving for a superseded session are dropped by the
    orchestrator and consolidator.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: AnalysisClient | None = None,
        store: StudyHistoryStore | None = None,
        session_cache: SessionRecordCache | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.client = client or get_analysis_client()
        self.sessions = SessionManager()
        self.consolidator = HistoryConsolidator(
            store or get_study_history_store(),
            session_cache=session_cache,
            is_active=self.sessions.is_active,
        )
        self.quiz = QuizService(self.client)
        self._orchestrators: dict[str, PageOrchestrator] = {}

    def attach_cache(self, client: Redis) -> None:
        """Start recovering record ids through Redis."""
        self.consolidator.session_cache = SessionRecordCache(client, self.settings)
        logger.info("Session record cache attached")

    def detach_cache(self) -> None:
        self.consolidator.session_cache = None

    async def open_document(
        self,
        owner: str,
        file_name: str,
        file_size: int,
        total_pages: int,
        full_text: str,
        language: OutputLanguage = OutputLanguage.ENGLISH,
        record_id: str | None = None,
        page_analyses: list[PageAnalysis] | None = None,
    ) -> PageOrchestrator:
        """
        Open a document for ``owner`` and return its orchestrator.

        Prior page analyses (from a reloaded study history) are restored
        as completed pages. The record id is taken from ``record_id`` or
        recovered from the session cache.
        """
        session = DocumentSession(
            key=SessionKey(file_name, file_size),
            owner=owner,
            total_pages=total_pages,
            full_text=full_text,
            language=language,
            analyses={a.page_number: a for a in page_analyses or []},
        )
        self.sessions.activate(session)
        await self.consolidator.recover_record_id(session, record_id)

        orchestrator = PageOrchestrator(
            session,
            self.client,
            PageExtractor(full_text),
            self.consolidator,
            settings=self.settings,
        )
        self._orchestrators[owner] = orchestrator
        logger.info(
            "Opened %s for owner %s (%d pages, %d already analyzed)",
            session.key,
            owner,
            total_pages,
            len(session.completed_pages()),
        )
        return orchestrator

    def orchestrator_for(self, owner: str) -> PageOrchestrator:
        orchestrator = self._orchestrators.get(owner)
        if orchestrator is None or not self.sessions.is_active(orchestrator.session):
            raise SessionNotFoundError(owner)
        return orchestrator

    def session_for(self, owner: str) -> DocumentSession:
        return self.orchestrator_for(owner).session

    def close(self, owner: str) -> DocumentSession:
        session = self.sessions.close(owner)
        self._orchestrators.pop(owner, None)
        if session is None:
            raise SessionNotFoundError(owner)
        return session


_workspace: StudyWorkspace | None = None


def get_study_workspace() -> StudyWorkspace:
    """Get the shared workspace instance."""
    global _workspace
    if _workspace is None:
        _workspace = StudyWorkspace()
    return _workspace
