"""Redis connections: the JWT revocation client and the arq worker settings."""

from __future__ import annotations

import redis.asyncio as redis
from arq.connections import RedisSettings

from app.core.config import get_settings

settings = get_settings()

_client: redis.Redis | None = None


async def get_redis() -> redis.Redis:
    """Get or create the shared Redis client."""
    global _client
    if _client is None:
        _client = redis.from_url(settings.redis_url, decode_responses=True)
    return _client


async def close_redis() -> None:
    """Close the shared Redis client."""
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


def arq_redis_settings() -> RedisSettings:
    """arq connection settings derived from the same Redis URL."""
    return RedisSettings.from_dsn(settings.redis_url)
