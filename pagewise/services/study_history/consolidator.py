"""Keeps one cumulative study history record per document session in sync with the store."""

from __future__ import annotations

import asyncio
import logging
import weakref
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

from pagewise.services.study_history.models import (
    RECORD_KIND_ANALYSIS,
    CumulativeRecord,
    StaleSessionError,
    StudyHistoryError,
    build_cumulative_record,
    build_record_metadata,
)

if TYPE_CHECKING:
    from pagewise.services.session import DocumentSession
    from pagewise.services.study_history.session_cache import SessionRecordCache
    from pagewise.services.study_history.storage import StudyHistoryStore

logger = logging.getLogger(__name__)


@dataclass
class _SyncState:
    """Per-session write serialization."""

    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    pending: bool = False
    writes: int = 0


class HistoryConsolidator:
    """
    Merges completed pages into the session's cumulative record and persists it.

    The first successful write creates the record; every later write
    updates it. Writes for one session never overlap: a trigger that
    arrives while a write is outstanding marks the session dirty and the
    running writer performs one more write with the latest state.

    Store failures never reach the caller. They are logged and published
    as warnings on the session's notification channel.
    """

    def __init__(
        self,
        store: StudyHistoryStore,
        session_cache: SessionRecordCache | None = None,
        is_active: Callable[[DocumentSession], bool] | None = None,
    ) -> None:
        """
        Initialize the consolidator.

        Args:
            store: Persistent record store.
            session_cache: Optional cache for recovering record ids after reload.
            is_active: Returns False once a session has been superseded.
        """
        self.store = store
        self.session_cache = session_cache
        self._is_active = is_active or (lambda session: True)
        self._sync: weakref.WeakKeyDictionary[DocumentSession, _SyncState] = (
            weakref.WeakKeyDictionary()
        )

    def _sync_for(self, session: DocumentSession) -> _SyncState:
        state = self._sync.get(session)
        if state is None:
            state = _SyncState()
            self._sync[session] = state
        return state

    def merged_record(self, session: DocumentSession) -> CumulativeRecord:
        return build_cumulative_record(session)

    async def recover_record_id(
        self,
        session: DocumentSession,
        initial_record_id: str | None = None,
    ) -> str | None:
        """
        Restore the session's record id before its first write.

        An explicitly supplied id wins over the cached one. A recovered id
        is written back to the cache so later reloads find it too.
        """
        if session.record_id:
            return session.record_id

        record_id = initial_record_id
        if record_id:
            logger.info("Using supplied study history id %s for %s", record_id, session.key)
        elif self.session_cache is not None:
            record_id = await self.session_cache.get_record_id(session.owner, session.key)
            if record_id:
                logger.info("Recovered study history id %s for %s from cache", record_id, session.key)

        if not record_id:
            logger.info("No existing study history id for %s, will create new one", session.key)
            return None

        if not self._is_active(session):
            logger.warning("Discarding recovered id for superseded session %s", session.key)
            return None

        session.record_id = record_id
        if initial_record_id and self.session_cache is not None:
            await self.session_cache.set_record_id(session.owner, session.key, record_id)
        return record_id

    async def consolidate(self, session: DocumentSession) -> None:
        """
        Bring the stored record up to date with the session's completed pages.

        Returns once the store reflects at least the state at call time,
        unless another writer is already running, in which case that
        writer picks up this trigger and the call returns immediately.
        """
        sync = self._sync_for(session)
        sync.pending = True
        if sync.lock.locked():
            logger.debug("Write in flight for %s, coalescing trigger", session.key)
            return

        async with sync.lock:
            while sync.pending:
                sync.pending = False
                await self._write(session, sync)

    async def flush(self, session: DocumentSession) -> None:
        """Wait until no write is outstanding for ``session``."""
        sync = self._sync_for(session)
        async with sync.lock:
            pass

    async def _write(self, session: DocumentSession, sync: _SyncState) -> None:
        if not self._is_active(session):
            logger.info("Skipping study history save for inactive session %s", session.key)
            return

        record = build_cumulative_record(session)
        if record.is_empty:
            logger.debug("No analyzed pages for %s, skipping save", session.key)
            return

        payload = record.to_payload()
        metadata = build_record_metadata(session)
        generation = session.generation

        try:
            if session.record_id is None:
                logger.info(
                    "Creating study history for %s (%d pages)",
                    session.key,
                    len(record.page_numbers),
                )
                record_id = await self.store.create_record(
                    session.owner,
                    RECORD_KIND_ANALYSIS,
                    payload,
                    metadata,
                )
                self._ensure_current(session, generation)
                session.record_id = record_id
                if self.session_cache is not None:
                    await self.session_cache.set_record_id(session.owner, session.key, record_id)
            else:
                logger.info(
                    "Updating study history %s for %s (%d pages)",
                    session.record_id,
                    session.key,
                    len(record.page_numbers),
                )
                await self.store.update_record(session.record_id, payload, metadata)
                self._ensure_current(session, generation)
            sync.writes += 1
        except StaleSessionError as e:
            logger.warning("Discarding study history response: %s", e)
        except StudyHistoryError as e:
            logger.error("Failed to save study history for %s: %s", session.key, e)
            session.notifications.warning("Failed to save study progress")
        except Exception as e:
            logger.exception("Unexpected error saving study history for %s: %s", session.key, e)
            session.notifications.warning("Failed to save study progress")

    def _ensure_current(self, session: DocumentSession, generation: int) -> None:
        if not self._is_active(session) or session.generation != generation:
            raise StaleSessionError(str(session.key))
