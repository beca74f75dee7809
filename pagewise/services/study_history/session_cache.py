"""Session-scoped cache of study history record ids, keyed by document identity."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from redis.exceptions import RedisError

from pagewise.core.config import get_settings

if TYPE_CHECKING:
    from redis.asyncio import Redis

    from pagewise.core.config import Settings
    from pagewise.services.session import SessionKey

logger = logging.getLogger(__name__)


class SessionRecordCache:
    """
    Remembers which record id belongs to an opened document.

    Entries expire after ``session_cache_ttl_seconds`` so the cache only
    spans a working session. The cache is best effort: Redis errors are
    logged and treated as a miss.
    """

    def __init__(self, client: Redis, settings: Settings | None = None) -> None:
        self._client = client
        self.settings = settings or get_settings()

    def _key(self, owner: str, key: SessionKey) -> str:
        return f"{self.settings.session_cache_prefix}:{owner}:{key.cache_key}"

    async def get_record_id(self, owner: str, key: SessionKey) -> str | None:
        try:
            value = await self._client.get(self._key(owner, key))
        except RedisError as e:
            logger.warning("Session cache lookup failed for %s: %s", key, e)
            return None
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value or None

    async def set_record_id(self, owner: str, key: SessionKey, record_id: str) -> bool:
        try:
            await self._client.set(
                self._key(owner, key),
                record_id,
                ex=self.settings.session_cache_ttl_seconds,
            )
        except RedisError as e:
            logger.warning("Session cache write failed for %s: %s", key, e)
            return False
        logger.debug("Cached record id %s for %s", record_id, key)
        return True

