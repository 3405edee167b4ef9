"""Bounded exponential-backoff retry around a single async operation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx

from .errors import UpstreamError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY_MS = 250


def is_retryable(exc: BaseException) -> bool:
    """Transient failures only: transport errors, 429 and 5xx."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, UpstreamError):
        return exc.status == 429 or exc.status >= 500
    return False


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
    *,
    retry_if: Callable[[BaseException], bool] | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation`` up to ``max_attempts`` times.

    Sleeps ``base_delay_ms * 2**attempt`` between attempts (250ms, 500ms, ...
    with the defaults) and re-raises the last error once attempts run out.
    Without ``retry_if`` every exception is retried.
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as exc:
            attempt += 1
            if attempt >= max_attempts or (retry_if is not None and not retry_if(exc)):
                raise
            delay = base_delay_ms * (2 ** (attempt - 1)) / 1000
            logger.warning(
                "Attempt %d/%d failed (%s), retrying in %.2fs",
                attempt,
                max_attempts,
                exc,
                delay,
            )
            await sleep(delay)
