"""Bounded exponential backoff for async operations."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")


async def retry_with_backoff(
    *,
    operation: Callable[[], Awaitable[T]],
    should_retry: Callable[[Exception], bool],
    max_attempts: int = 3,
    initial_delay_seconds: float = 2.0,
    multiplier: float = 2.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    on_retry: Callable[[int, float, Exception], Awaitable[None] | None] | None = None,
) -> T:
    """
    Await ``operation`` until it succeeds or retrying stops.

    The delay starts at ``initial_delay_seconds`` and is multiplied after
    every retry. Errors rejected by ``should_retry`` and the error of the
    last allowed attempt propagate unchanged.

    ``on_retry`` receives the number of the attempt that just failed, the
    delay about to be slept and the error.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    delay = initial_delay_seconds
    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as error:  # noqa: BLE001
            if attempt >= max_attempts or not should_retry(error):
                raise

            if on_retry is not None:
                maybe_awaitable = on_retry(attempt, delay, error)
                if maybe_awaitable is not None:
                    await maybe_awaitable
            await sleep(delay)
            delay *= multiplier
            attempt += 1
