"""HTTP helpers with retry/backoff for external system clients."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable

import httpx

from flowlink.core.config import settings

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})


def backoff_delay(attempt: int, *, base_delay: float, max_delay: float) -> float:
    """Exponential delay for a zero-based attempt, with up to 50% jitter."""
    delay = min(max_delay, base_delay * (2**attempt))
    if delay:
        delay += random.uniform(0, delay / 2)
    return delay


async def request_with_retries(
    request_fn: Callable[[], Awaitable[httpx.Response]],
    *,
    max_attempts: int | None = None,
    base_delay: float = 0.5,
    max_delay: float = 4.0,
    retry_statuses: frozenset[int] | set[int] | None = None,
) -> httpx.Response:
    """
    Execute an HTTP request, retrying transport errors and retryable statuses.

    The last response is returned as-is once attempts run out; the last
    transport error is re-raised.
    """
    attempts = max(1, max_attempts or settings.HTTP_MAX_ATTEMPTS)
    statuses = retry_statuses or RETRYABLE_STATUSES

    for attempt in range(attempts):
        last_attempt = attempt >= attempts - 1
        try:
            response = await request_fn()
        except httpx.RequestError as exc:
            if last_attempt:
                raise
            logger.warning(
                "HTTP request failed (attempt %s/%s), retrying",
                attempt + 1,
                attempts,
                exc_info=exc,
            )
        else:
            if response.status_code not in statuses or last_attempt:
                return response
            logger.warning(
                "HTTP request returned %s (attempt %s/%s), retrying",
                response.status_code,
                attempt + 1,
                attempts,
            )

        delay = backoff_delay(attempt, base_delay=base_delay, max_delay=max_delay)
        if delay:
            await asyncio.sleep(delay)

    raise RuntimeError("request_with_retries exhausted without a response")
