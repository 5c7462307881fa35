# vidtube/core/rate_limiter.py
import logging
from typing import Optional

from fastapi import Depends
import redis.asyncio as redis

from vidtube.core.config import settings
from vidtube.core.errors import TooManyRequests
from vidtube.core.redis_client import get_redis_client
from vidtube.core.security import Principal
from vidtube.api.auth import get_principal

logger = logging.getLogger(__name__)

RATE_LIMIT_KEY_PREFIX = "rate_limit:user"
RATE_LIMIT_ACTION = "upload"

async def rate_limit_uploads(
    principal: Principal = Depends(get_principal),
    redis_client: Optional[redis.Redis] = Depends(get_redis_client),
):
    """
    Limits media uploads per user within a fixed window.
    Uses an INCR counter with a TTL in Redis and fails open when Redis is
    unavailable or errors out.
    """
    if redis_client is None:
        logger.debug(f"Rate limit check skipped for user {principal.id}: Redis unavailable")
        return True

    limit = settings.upload_rate_limit_count
    window = settings.upload_rate_limit_window_seconds
    key = f"{RATE_LIMIT_KEY_PREFIX}:{principal.id}:{RATE_LIMIT_ACTION}"

    try:
        # 1. Атомарно увеличиваем счетчик
        current_count = await redis_client.incr(key)

        # 2. First request in the window sets the TTL
        if current_count == 1:
            await redis_client.expire(key, window)
            logger.info(f"First upload for user {principal.id} in window. Setting TTL {window}s for key {key}.")

        # 3. Проверяем лимит
        if current_count > limit:
            final_ttl = await redis_client.ttl(key)
            retry_after = final_ttl if final_ttl > 0 else window
            logger.warning(f"Upload rate limit exceeded for user {principal.id}. Count: {current_count}/{limit}. Retry after: {retry_after}s.")
            raise TooManyRequests(
                f"Upload limit exceeded ({limit} uploads per {max(window // 60, 1)} minutes). Please try again later.",
                headers={"Retry-After": str(retry_after)},
            )

        logger.debug(f"Rate limit check passed for user {principal.id}. Count: {current_count}")
        return True

    except redis.RedisError as e:
        logger.error(f"Redis error during rate limiting check for user {principal.id}: {e}. Allowing request (Fail open).")
        return True
