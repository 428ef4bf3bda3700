"""Retry policy for Shopify Admin API calls.

A webhook delivery has to be answered within a few seconds, so the budget is
small: a couple of quick retries for throttling (429), gateway and server
errors, and transport failures such as timeouts. Anything else is raised on
the first attempt. Shopify's Retry-After wins over the computed backoff.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import random
from typing import Any, Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def transient_reason(exc: BaseException) -> str | None:
    """Short description of exc if another attempt could succeed, else None."""
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return f"HTTP {status}" if status in RETRYABLE_STATUS_CODES else None
    if isinstance(exc, (httpx.TransportError, ConnectionError)):
        return type(exc).__name__
    return None


def retry_with_backoff(
    max_retries: int = 2,
    base_delay: float = 0.5,
    max_delay: float = 2.0,
    jitter: float = 0.3,
) -> Callable:
    """Wrap a coroutine function so transient failures are retried.

    The wrapped call runs at most max_retries + 1 times. The last failure is
    re-raised unchanged.
    """

    def decorator(fn: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            attempt = 0
            while True:
                try:
                    return await fn(*args, **kwargs)
                except Exception as e:
                    reason = transient_reason(e)
                    if reason is None or attempt >= max_retries:
                        raise
                    response = e.response if isinstance(e, httpx.HTTPStatusError) else None
                    delay = compute_delay(attempt, base_delay, max_delay, jitter, response)
                    logger.warning(
                        "%s failed (%s), attempt %d of %d in %.1fs",
                        fn.__name__,
                        reason,
                        attempt + 2,
                        max_retries + 1,
                        delay,
                    )
                    await asyncio.sleep(delay)
                    attempt += 1

        return wrapper

    return decorator


def compute_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    jitter: float,
    response: httpx.Response | None = None,
) -> float:
    """Seconds to wait before the next attempt (attempt counts from 0)."""
    retry_after = response.headers.get("Retry-After") if response is not None else None
    if retry_after:
        try:
            return min(float(retry_after), max_delay)
        except ValueError:
            logger.debug("Ignoring non-numeric Retry-After %r", retry_after)

    delay = min(base_delay * (2**attempt), max_delay)
    delay += random.uniform(-delay * jitter, delay * jitter)
    return max(0.1, delay)
