"""Async Redis connection factory.

The verification store is required: unlike an optional cache, there is no
degraded mode without it, so a failed initial ping raises.
"""

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from config import RedisSettings
from errors import StoreUnavailableError
from shared.logging import get_logger

log = get_logger(__name__)


async def create_redis_client(settings: RedisSettings) -> aioredis.Redis:
    """Connect to Redis, ping it and return the client."""
    client: aioredis.Redis = aioredis.from_url(
        settings.redis_uri,
        decode_responses=True,
        socket_timeout=settings.redis_socket_timeout_seconds,
        socket_connect_timeout=settings.redis_socket_timeout_seconds,
    )
    try:
        await client.ping()
    except RedisError as e:
        log.error(
            "redis_connection_failed", error=str(e), error_type=type(e).__name__
        )
        await client.aclose()
        raise StoreUnavailableError("Verification store is unavailable.") from e

    log.info("redis_connected", uri=settings.redis_uri.split("@")[-1])  # mask credentials
    return client
