"""Unit tests for MinIO service helpers."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from minio.error import S3Error

from pagewise.core.config import Settings
from pagewise.services.minio import ensure_buckets, get_minio_client, wait_for_buckets


def test_get_minio_client_uses_settings() -> None:
    settings = Settings(
        minio_endpoint="play.min.io",
        minio_access_key="access",
        minio_secret_key="secret",
        minio_secure=True,
    )

    with patch("pagewise.services.minio.Minio") as minio_cls:
        get_minio_client(settings)
        minio_cls.assert_called_once_with(
            "play.min.io",
            access_key="access",
            secret_key="secret",
            secure=True,
        )


def test_ensure_buckets_creates_missing_bucket() -> None:
    client = MagicMock()
    client.bucket_exists.side_effect = [False, True]

    ensure_buckets(client, ["study-history", "archive"])

    client.bucket_exists.assert_any_call("study-history")
    client.bucket_exists.assert_any_call("archive")
    client.make_bucket.assert_called_once_with("study-history")


def test_ensure_buckets_skips_existing_bucket() -> None:
    client = MagicMock()
    client.bucket_exists.return_value = True

    ensure_buckets(client, ["study-history"])

    client.make_bucket.assert_not_called()


def test_ensure_buckets_wraps_s3_errors() -> None:
    client = MagicMock()
    client.bucket_exists.side_effect = S3Error(
        "AccessDenied",
        "message",
        "resource",
        "request_id",
        "host_id",
        MagicMock(),
        "bucket",
    )

    with pytest.raises(RuntimeError, match="Unable to ensure bucket 'study-history'"):
        ensure_buckets(client, ["study-history"])


@pytest.mark.asyncio
async def test_wait_for_buckets_retries_until_ready(settings, sleeps) -> None:
    client = MagicMock()
    client.bucket_exists.side_effect = [ConnectionError("not ready"), True]

    with patch("pagewise.services.minio.Minio", return_value=client):
        await wait_for_buckets(settings, max_attempts=3, initial_delay_seconds=0.5, sleep=sleeps)

    assert sleeps.delays == [0.5]
    assert client.bucket_exists.call_count == 2


@pytest.mark.asyncio
async def test_wait_for_buckets_gives_up(settings, sleeps) -> None:
    client = MagicMock()
    client.bucket_exists.side_effect = ConnectionError("down")

    with patch("pagewise.services.minio.Minio", return_value=client):
        with pytest.raises(ConnectionError):
            await wait_for_buckets(settings, max_attempts=3, initial_delay_seconds=1.0, sleep=sleeps)

    assert sleeps.delays == [1.0, 2.0]
