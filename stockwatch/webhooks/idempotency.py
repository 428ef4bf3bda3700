"""Redis-based webhook delivery dedup.

Shopify retries deliveries it thinks failed, and can deliver the same event
twice. Each delivery id is remembered for a few minutes so a repeat doesn't
send a second alert.

Contract:
- Key pattern: webhook:seen:shopify:{webhook_id}, TTL = WEBHOOK_DEDUP_TTL_SECONDS
- Duplicates are acknowledged with 200 (provider retries on errors)
- A delivery that fails with a server error is released so the retry runs
- If Redis is down or slow, falls back to allowing (fail-open for availability)
- Calls go through redis.asyncio with socket timeouts; a stalled Redis only
  holds up the delivery waiting on it
"""

from __future__ import annotations

import logging

import redis
import redis.asyncio as aioredis

from stockwatch.config import settings

logger = logging.getLogger(__name__)

_KEY_PREFIX = "webhook:seen"
_PROVIDER = "shopify"

_client: aioredis.Redis | None = None


def _get_redis() -> aioredis.Redis:
    global _client
    if _client is None:
        _client = aioredis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=settings.redis_socket_timeout,
            socket_timeout=settings.redis_socket_timeout,
        )
    return _client


async def close() -> None:
    """Drop the shared client and its connection pool."""
    global _client
    if _client is not None:
        client, _client = _client, None
        await client.aclose()


def _key(webhook_id: str) -> str:
    return f"{_KEY_PREFIX}:{_PROVIDER}:{webhook_id}"


async def is_duplicate(webhook_id: str) -> bool:
    """Check-and-mark a delivery id. True if it was already seen.

    Uses SET NX EX for an atomic check-and-mark.
    """
    if not webhook_id:
        return False  # No ID = can't dedup, allow through

    try:
        was_set = await _get_redis().set(
            _key(webhook_id), "1", nx=True, ex=settings.webhook_dedup_ttl_seconds
        )
    except redis.RedisError:
        logger.warning(
            "Redis unavailable for webhook dedup, allowing %s", webhook_id, exc_info=True
        )
        return False

    if not was_set:
        logger.info("Duplicate webhook ignored: %s", webhook_id)
        return True
    return False


async def release(webhook_id: str) -> None:
    """Forget a delivery id so a redelivery is processed."""
    if not webhook_id:
        return
    try:
        await _get_redis().delete(_key(webhook_id))
    except redis.RedisError:
        logger.warning("Failed to release webhook dedup key: %s", webhook_id)
