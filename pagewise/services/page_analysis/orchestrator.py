"""Drives page-by-page analysis of one document session."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable, Callable

from pagewise.core.config import get_settings
from pagewise.services.page_analysis.models import (
    BatchResult,
    ComprehensiveResult,
    PageAnalysis,
    PageAnalysisError,
    PageAnalysisFailedError,
    PageState,
    RateLimitedError,
)
from pagewise.services.page_analysis.retry import retry_with_backoff

if TYPE_CHECKING:
    from pagewise.core.config import Settings
    from pagewise.services.page_analysis.client import AnalysisClient
    from pagewise.services.page_analysis.extractor import PageExtractor
    from pagewise.services.session import DocumentSession, Progress
    from pagewise.services.study_history.consolidator import HistoryConsolidator

logger = logging.getLogger(__name__)


def _is_rate_limited(error: Exception) -> bool:
    return isinstance(error, RateLimitedError)


class PageOrchestrator:
    """
    Page analysis for a single document session.

    Features:
    - At most one request loop per page; concurrent callers share it
    - Bounded exponential backoff on rate limiting only
    - Blank pages complete without calling the analysis service
    - Sequential batch runs with a polite delay, halting on the first terminal failure
    - Incremental study history save after every completed page
    """

    def __init__(
        self,
        session: DocumentSession,
        client: AnalysisClient,
        extractor: PageExtractor,
        consolidator: HistoryConsolidator,
        settings: Settings | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            session: Session whose page maps this orchestrator owns.
            client: Analysis client.
            extractor: Page text source for the session's document.
            consolidator: History consolidator triggered after each page.
            settings: Application settings.
            sleep: Awaitable sleep, injectable for tests.
        """
        self.session = session
        self.client = client
        self.extractor = extractor
        self.consolidator = consolidator
        self.settings = settings or get_settings()
        self._sleep = sleep
        # Keyed by (session generation, page) so a reset never joins older work.
        self._inflight: dict[tuple[int, int], asyncio.Task[PageAnalysis]] = {}
        self._background: set[asyncio.Task[None]] = set()

    @property
    def notifications(self):
        return self.session.notifications

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_progress(self) -> Progress:
        return self.session.progress()

    def get_record_id(self) -> str | None:
        return self.session.record_id

    # ------------------------------------------------------------------
    # Single page
    # ------------------------------------------------------------------

    async def analyze_page(self, page_number: int) -> PageAnalysis:
        """
        Analyze one page unless it is already complete.

        A completed page is returned as-is without any external call. A
        failed page is retried from scratch, which is how a manual retry
        re-enters the state machine.

        Raises:
            PageIndexError: ``page_number`` is outside the document.
            PageAnalysisFailedError: Retries exhausted or a terminal error.
        """
        self.session.check_page(page_number)

        existing = self.session.completed_analysis(page_number)
        if existing is not None:
            logger.debug("Page %d already analyzed, skipping", page_number)
            return existing

        return await asyncio.shield(self._join_or_start(page_number))

    def _join_or_start(self, page_number: int, persist: bool = True) -> asyncio.Task[PageAnalysis]:
        """
        Return the running analysis task for ``page_number``, starting one if needed.

        ``persist`` only applies to a newly started task. A task started with
        ``persist=False`` stores its result on the session but leaves saving
        to its starter.
        """
        generation = self.session.generation
        key = (generation, page_number)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(
                self._analyze(page_number, generation, persist),
                name=f"analyze-page-{page_number}",
            )
            self._inflight[key] = task
            task.add_done_callback(lambda _t, k=key: self._inflight.pop(k, None))
        else:
            logger.debug("Page %d analysis already in flight, joining it", page_number)
        return task

    async def _analyze(self, page_number: int, generation: int, persist: bool = True) -> PageAnalysis:
        session = self.session
        logger.info("=== Starting analysis for page %d (%s) ===", page_number, session.key)
        session.states[page_number] = PageState.ANALYZING
        session.failures.pop(page_number, None)

        try:
            text = await self.extractor.extract_page(page_number)
        except Exception as e:
            self._mark_failed(page_number, generation, f"Page text unavailable: {e}")
            self.notifications.error(f"Failed to analyze page {page_number}.", page_number)
            raise PageAnalysisFailedError(page_number, 0, f"Page text unavailable: {e}") from e

        if not text.strip():
            self.notifications.warning(
                f"Skipping page {page_number} as it has no text content.", page_number
            )
            analysis = PageAnalysis.blank(page_number)
            requested = False
        else:
            analysis = await self._request_analysis(page_number, text, generation)
            requested = True

        if not self._store_result(page_number, analysis, generation):
            return analysis
        if requested:
            self.notifications.success(f"Page {page_number} analyzed successfully!", page_number)
        if persist:
            await self.consolidator.consolidate(session)
        return analysis

    async def _request_analysis(self, page_number: int, text: str, generation: int) -> PageAnalysis:
        """Call the analysis client with backoff; raises PageAnalysisFailedError when done trying."""
        attempts = 0

        async def attempt() -> PageAnalysis:
            nonlocal attempts
            attempts += 1
            return await self.client.analyze_page(text, page_number, self.session.language)

        def on_retry(attempt_number: int, delay: float, error: Exception) -> None:
            logger.warning(
                "Attempt %d: rate limited on page %d, retrying in %.1fs",
                attempt_number,
                page_number,
                delay,
            )
            self.notifications.info(
                f"Rate limit reached. Retrying page {page_number} in {delay:g}s...",
                page_number,
            )

        try:
            analysis = await retry_with_backoff(
                operation=attempt,
                should_retry=_is_rate_limited,
                max_attempts=self.settings.analysis_max_attempts,
                initial_delay_seconds=self.settings.analysis_initial_retry_delay_seconds,
                sleep=self._sleep,
                on_retry=on_retry,
            )
        except Exception as e:
            reason = e.message if isinstance(e, PageAnalysisError) else str(e)
            logger.error(
                "Attempt %d: error analyzing page %d: %s", attempts, page_number, reason
            )
            self._mark_failed(page_number, generation, reason)
            self.notifications.error(
                f"Failed to analyze page {page_number} after {attempts} attempts.",
                page_number,
            )
            raise PageAnalysisFailedError(page_number, attempts, reason) from e

        analysis.page_number = page_number
        analysis.is_analyzed = True
        return analysis

    def _store_result(self, page_number: int, analysis: PageAnalysis, generation: int) -> bool:
        if self.session.generation != generation:
            logger.warning("Discarding page %d result for reset session %s", page_number, self.session.key)
            return False
        self.session.analyses[page_number] = analysis
        self.session.states[page_number] = PageState.COMPLETED
        logger.info("Page %d analysis completed", page_number)
        return True

    def _mark_failed(self, page_number: int, generation: int, reason: str) -> None:
        if self.session.generation != generation:
            return
        self.session.states[page_number] = PageState.FAILED
        self.session.failures[page_number] = reason

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    async def analyze_range(self, start: int, end: int) -> BatchResult:
        """
        Analyze incomplete pages ``start..end`` one at a time, in ascending order.

        Stops at the first page that fails terminally. Pages completed
        before the failure stay completed and pages after it are left
        untouched.
        """
        self.session.check_page(start)
        self.session.check_page(end)
        if start > end:
            start, end = end, start

        pending = self.session.incomplete_pages(start, end)
        logger.info(
            "=== Starting batch analysis of pages %d-%d (%d pending) ===",
            start,
            end,
            len(pending),
        )

        result = BatchResult()
        for index, page_number in enumerate(pending):
            try:
                await self.analyze_page(page_number)
            except PageAnalysisFailedError as e:
                logger.error(
                    "Permanent failure for page %d. Stopping batch analysis: %s",
                    page_number,
                    e,
                )
                self.notifications.error(
                    f"Analysis stopped due to a persistent error on page {page_number}. "
                    "Please try again later.",
                    page_number,
                )
                result.failed_page = page_number
                result.error = e.reason
                break

            if self.session.is_completed(page_number):
                result.completed.append(page_number)
            if index < len(pending) - 1:
                await self._sleep(self.settings.analysis_inter_page_delay_seconds)

        if result.succeeded:
            progress = self.session.progress()
            if progress.completed == progress.total:
                self.notifications.success("All pages analyzed successfully!")
        return result

    async def analyze_all(self) -> BatchResult:
        return await self.analyze_range(1, self.session.total_pages)

    async def analyze_comprehensive(self) -> ComprehensiveResult:
        """
        Analyze every incomplete page with bounded parallelism.

        Persistence is deferred: results are merged in ascending page
        order once all requests have settled, followed by a single save.
        Pages shorter than ``analysis_min_page_chars`` are skipped and
        per-page failures do not stop the pass. A page already being
        analyzed elsewhere is joined rather than requested again.
        """
        session = self.session
        generation = session.generation
        semaphore = asyncio.Semaphore(self.settings.analysis_batch_concurrency)
        min_chars = self.settings.analysis_min_page_chars
        failed: list[int] = []
        requested: list[int] = []

        async def process_page(page_number: int) -> PageAnalysis | None:
            existing = session.completed_analysis(page_number)
            if existing is not None:
                return existing
            async with semaphore:
                if session.generation != generation:
                    return None
                try:
                    text = await self.extractor.extract_page(page_number)
                    if len(text.strip()) < min_chars:
                        logger.debug("Skipping page %d with too little text", page_number)
                        return None
                    requested.append(page_number)
                    return await asyncio.shield(self._join_or_start(page_number, persist=False))
                except Exception as e:
                    logger.error("Error analyzing page %d in batch: %s", page_number, e)
                    failed.append(page_number)
                    return None

        pages = list(range(1, session.total_pages + 1))
        logger.info("Found %d pages to analyze comprehensively", len(pages))
        results = await asyncio.gather(*(process_page(n) for n in pages))

        analyses = [
            analysis
            for page_number, analysis in zip(pages, results)
            if analysis is not None and session.is_completed(page_number)
        ]

        if any(session.is_completed(n) for n in requested):
            await self.consolidator.consolidate(session)

        categories: list[str] = []
        for analysis in analyses:
            for category in analysis.categories:
                if category not in categories:
                    categories.append(category)

        return ComprehensiveResult(
            page_analyses=analyses,
            failed_pages=sorted(failed),
            total_key_points=[point for a in analyses for point in a.key_points],
            categories=categories,
        )

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def navigate(self, page_number: int) -> asyncio.Task[None] | None:
        """
        Move the cursor and start analyzing the page in the background if needed.

        The returned task never raises; failures surface on the session's
        notification channel.
        """
        self.session.check_page(page_number)
        self.session.cursor = page_number
        if self.session.is_completed(page_number):
            return None

        task = asyncio.create_task(
            self._supervise(page_number),
            name=f"navigate-page-{page_number}",
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _supervise(self, page_number: int) -> None:
        try:
            await self.analyze_page(page_number)
        except PageAnalysisFailedError as e:
            logger.warning("Failed to analyze page %d on navigation: %s", page_number, e)
        except Exception as e:
            logger.exception("Unexpected error analyzing page %d on navigation", page_number)
            self.notifications.error(f"Failed to analyze page {page_number}: {e}", page_number)

    async def wait_for_background(self) -> None:
        """Wait for navigation-triggered analyses that are still running."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
