# vidtube/core/redis_client.py
import redis.asyncio as redis
import logging
from typing import AsyncGenerator, Optional

from vidtube.core.config import settings

logger = logging.getLogger(__name__)

# Глобальный пул соединений
redis_pool = None

def create_redis_pool():
    """Creates the Redis connection pool. Called at startup."""
    global redis_pool
    if redis_pool is None:
        if not settings.redis_url:
            logger.warning("REDIS_URL is not set. Upload rate limiting is disabled.")
            return None
        try:
            logger.info(f"Creating Redis connection pool for URL: {settings.redis_url}")
            redis_pool = redis.ConnectionPool.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
                health_check_interval=30,
                socket_timeout=settings.redis_timeout_seconds,
                socket_connect_timeout=settings.redis_timeout_seconds,
            )
        except (redis.RedisError, ValueError) as e:
            logger.error(f"Failed to create Redis connection pool: {e}", exc_info=True)
            redis_pool = None
    return redis_pool

async def close_redis_pool():
    """Closes the Redis connection pool. Called at shutdown."""
    global redis_pool
    if redis_pool:
        logger.info("Closing Redis connection pool.")
        try:
            await redis_pool.disconnect(inuse_connections=True)
        except redis.RedisError as e:
            logger.error(f"Error closing Redis connection pool: {e}", exc_info=True)
        finally:
            redis_pool = None

async def get_redis_client() -> AsyncGenerator[Optional[redis.Redis], None]:
    """
    FastAPI dependency yielding a Redis client from the pool, or None when Redis
    is not configured or unreachable. Consumers treat None as "fail open".
    """
    if redis_pool is None:
        create_redis_pool()
    if redis_pool is None:
        yield None
        return

    client = redis.Redis(connection_pool=redis_pool)
    try:
        await client.ping()
    except redis.RedisError as e:
        logger.error(f"Redis connection error: {e}")
        client = None
    # yield outside the try: errors raised by the route (429 included) must not be caught here
    yield client
