"""Tests for the Redis record id cache."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from pagewise.services.session import SessionKey
from pagewise.services.study_history import SessionRecordCache


@pytest.fixture
def key() -> SessionKey:
    return SessionKey("history.pdf", 2048)


@pytest.mark.asyncio
async def test_round_trip_with_ttl(mock_redis, settings, key):
    cache = SessionRecordCache(mock_redis, settings)

    assert await cache.set_record_id("student-1", key, "rec-1") is True

    stored_key = "pagewise:session:student-1:studyHistoryId_history.pdf_2048"
    assert mock_redis.storage == {stored_key: "rec-1"}
    assert mock_redis.expiry[stored_key] == settings.session_cache_ttl_seconds
    assert await cache.get_record_id("student-1", key) == "rec-1"


@pytest.mark.asyncio
async def test_owners_are_isolated(mock_redis, settings, key):
    cache = SessionRecordCache(mock_redis, settings)
    await cache.set_record_id("student-1", key, "rec-1")

    assert await cache.get_record_id("student-2", key) is None


@pytest.mark.asyncio
async def test_bytes_values_are_decoded(settings, key):
    redis = MagicMock()
    redis.get = AsyncMock(return_value=b"rec-9")

    assert await SessionRecordCache(redis, settings).get_record_id("student-1", key) == "rec-9"


@pytest.mark.asyncio
async def test_redis_errors_are_treated_as_miss(settings, key):
    redis = MagicMock()
    redis.get = AsyncMock(side_effect=RedisConnectionError("down"))
    redis.set = AsyncMock(side_effect=RedisConnectionError("down"))
    cache = SessionRecordCache(redis, settings)

    assert await cache.get_record_id("student-1", key) is None
    assert await cache.set_record_id("student-1", key, "rec-1") is False
