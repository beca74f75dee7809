"""Shared fixtures: fake analysis client, recording store, in-memory Redis."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from pagewise.core.config import Settings
from pagewise.services.page_analysis import (
    PageAnalysis,
    PageExtractor,
    PageOrchestrator,
    StudyPoint,
)
from pagewise.services.quiz import QuizService
from pagewise.services.session import DocumentSession, SessionKey, SessionManager
from pagewise.services.study_history import (
    HistoryConsolidator,
    RecordNotFoundError,
    StoreUnavailableError,
    StudyHistoryStore,
)


def make_ocr_text(pages: dict[int, str]) -> str:
    return "\n".join(
        f"==Start of OCR for page {n}==\n{text}\n==End of OCR for page {n}=="
        for n, text in sorted(pages.items())
    )


def long_text(page_number: int) -> str:
    return f"Page {page_number} discusses the Chola dynasty and its maritime trade routes in detail."


def sample_analysis(page_number: int) -> PageAnalysis:
    return PageAnalysis(
        page_number=page_number,
        key_points=[f"point {page_number}a", f"point {page_number}b"],
        study_points=[StudyPoint(title=f"topic {page_number}")],
        summary=f"summary {page_number}",
        relevance=f"relevance {page_number}",
        categories=["History", f"Unit {page_number % 2}"],
    )


class FakeAnalysisClient:
    """Analysis client returning scripted outcomes per page."""

    def __init__(self) -> None:
        self.calls: list[int] = []
        self.outcomes: dict[int, list[Any]] = {}
        self.delays: dict[int, float] = {}
        self.gate: asyncio.Event | None = None
        self.questions: list[Any] | Exception = []
        self.question_calls: list[dict[str, Any]] = []

    def script(self, page_number: int, *outcomes: Any) -> None:
        self.outcomes.setdefault(page_number, []).extend(outcomes)

    async def analyze_page(self, content: str, page_number: int, language: Any = None) -> PageAnalysis:
        self.calls.append(page_number)
        if self.gate is not None:
            await self.gate.wait()
        if page_number in self.delays:
            await asyncio.sleep(self.delays[page_number])

        queue = self.outcomes.get(page_number)
        outcome = queue.pop(0) if queue else None
        if isinstance(outcome, Exception):
            raise outcome
        return outcome or sample_analysis(page_number)

    async def generate_questions(
        self,
        merged_content: str,
        difficulty: str = "medium",
        language: Any = None,
        page_number: int | None = None,
    ) -> list[Any]:
        self.question_calls.append(
            {
                "content": merged_content,
                "difficulty": difficulty,
                "language": language,
                "page_number": page_number,
            }
        )
        if isinstance(self.questions, Exception):
            raise self.questions
        return list(self.questions)


class FakeStore(StudyHistoryStore):
    """In-memory store recording every call."""

    def __init__(self) -> None:
        self.records: dict[str, dict[str, Any]] = {}
        self.creates: list[dict[str, Any]] = []
        self.updates: list[tuple[str, dict[str, Any]]] = []
        self.failures = 0
        self.gate: asyncio.Event | None = None

    def _maybe_fail(self, operation: str) -> None:
        if self.failures:
            self.failures -= 1
            raise StoreUnavailableError(operation, "connection refused")

    async def create_record(
        self, owner: str, kind: str, payload: dict[str, Any], metadata: dict[str, Any]
    ) -> str:
        self.creates.append(payload)
        if self.gate is not None:
            await self.gate.wait()
        self._maybe_fail("create")
        record_id = f"rec-{len(self.records) + 1}"
        self.records[record_id] = {"owner": owner, "kind": kind, "payload": payload, "metadata": metadata}
        return record_id

    async def update_record(
        self, record_id: str, payload: dict[str, Any], metadata: dict[str, Any]
    ) -> None:
        self.updates.append((record_id, payload))
        if self.gate is not None:
            await self.gate.wait()
        self._maybe_fail("update")
        if record_id not in self.records:
            raise RecordNotFoundError(record_id)
        self.records[record_id].update(payload=payload, metadata=metadata)

    async def get_record(self, record_id: str) -> dict[str, Any] | None:
        return self.records.get(record_id)

    @property
    def last_payload(self) -> dict[str, Any] | None:
        if self.updates:
            return self.updates[-1][1]
        if self.creates:
            return self.creates[-1]
        return None


class MockRedis:
    """Minimal async Redis supporting get and set."""

    def __init__(self) -> None:
        self.storage: dict[str, str] = {}
        self.expiry: dict[str, int] = {}

    async def get(self, key: str) -> str | None:
        return self.storage.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self.storage[key] = value
        if ex is not None:
            self.expiry[key] = ex
        return True


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    return Settings(
        gemini_api_key="test-key",
        analysis_initial_retry_delay_seconds=2.0,
        analysis_max_attempts=3,
        analysis_inter_page_delay_seconds=1.0,
        analysis_batch_concurrency=5,
        analysis_min_page_chars=50,
    )


@pytest.fixture
def fake_client() -> FakeAnalysisClient:
    return FakeAnalysisClient()


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def mock_redis() -> MockRedis:
    return MockRedis()


@pytest.fixture
def sleeps():
    """Recording replacement for asyncio.sleep."""
    delays: list[float] = []

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)
        await asyncio.sleep(0)

    fake_sleep.delays = delays
    return fake_sleep


@pytest.fixture
def manager() -> SessionManager:
    return SessionManager()


@pytest.fixture
def consolidator(store, manager) -> HistoryConsolidator:
    return HistoryConsolidator(store, is_active=manager.is_active)


@pytest.fixture
def make_session(manager):
    """Create and activate a session over the given page texts."""

    def factory(
        pages: dict[int, str],
        owner: str = "student-1",
        file_name: str = "history.pdf",
        analyses: dict[int, PageAnalysis] | None = None,
        total_pages: int | None = None,
    ) -> DocumentSession:
        session = DocumentSession(
            key=SessionKey(file_name, 2048),
            owner=owner,
            total_pages=total_pages or max(pages),
            full_text=make_ocr_text(pages),
            analyses=dict(analyses or {}),
        )
        manager.activate(session)
        return session

    return factory


@pytest.fixture
def make_orchestrator(make_session, fake_client, consolidator, settings, sleeps):
    """Build an orchestrator over a fresh active session."""

    def factory(pages: dict[int, str], **kwargs: Any) -> PageOrchestrator:
        session = make_session(pages, **kwargs)
        return PageOrchestrator(
            session,
            fake_client,
            PageExtractor(session.full_text),
            consolidator,
            settings=settings,
            sleep=sleeps,
        )

    return factory


@pytest.fixture
def quiz_service(fake_client) -> QuizService:
    return QuizService(fake_client)
