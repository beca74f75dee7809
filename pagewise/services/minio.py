"""MinIO client helpers and startup bucket checks."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Iterable

from minio import Minio
from minio.error import S3Error

from pagewise.core.config import Settings, get_settings
from pagewise.services.page_analysis.retry import retry_with_backoff

logger = logging.getLogger(__name__)

MINIO_MAX_ATTEMPTS = 5
MINIO_INITIAL_DELAY_SECONDS = 1.0


def get_minio_client(settings: Settings | None = None) -> Minio:
    """Create a MinIO client from application settings."""

    config = settings or get_settings()
    return Minio(
        config.minio_endpoint,
        access_key=config.minio_access_key,
        secret_key=config.minio_secret_key,
        secure=config.minio_secure,
    )


def ensure_buckets(client: Minio, bucket_names: Iterable[str]) -> None:
    """Create every bucket in ``bucket_names`` that does not exist yet."""

    for bucket in bucket_names:
        try:
            if client.bucket_exists(bucket):
                logger.debug("MinIO bucket '%s' already exists", bucket)
                continue
            client.make_bucket(bucket)
            logger.info("Created MinIO bucket '%s'", bucket)
        except S3Error as exc:  # pragma: no cover - specific to MinIO SDK
            logger.error("Failed to ensure bucket '%s': %s", bucket, exc)
            raise RuntimeError(f"Unable to ensure bucket '{bucket}'") from exc


async def wait_for_buckets(
    settings: Settings | None = None,
    max_attempts: int = MINIO_MAX_ATTEMPTS,
    initial_delay_seconds: float = MINIO_INITIAL_DELAY_SECONDS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> None:
    """Ensure the study history bucket exists, retrying while MinIO starts up."""

    config = settings or get_settings()
    attempts = 0

    async def attempt() -> None:
        nonlocal attempts
        attempts += 1
        client = get_minio_client(config)
        await asyncio.to_thread(ensure_buckets, client, config.minio_buckets)

    def on_retry(attempt_number: int, delay: float, error: Exception) -> None:
        logger.warning(
            "MinIO not ready (attempt %d/%d): %s",
            attempt_number,
            max_attempts,
            error,
        )

    try:
        await retry_with_backoff(
            operation=attempt,
            should_retry=lambda error: True,
            max_attempts=max_attempts,
            initial_delay_seconds=initial_delay_seconds,
            sleep=sleep,
            on_retry=on_retry,
        )
    except Exception as exc:
        logger.error("Failed to connect to MinIO after %d attempts: %s", attempts, exc)
        raise

    if attempts > 1:
        logger.info("Connected to MinIO after %d attempts", attempts)
