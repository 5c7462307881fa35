import uuid

import pytest
import redis.asyncio as redis

from vidtube.core.config import settings
from vidtube.core.errors import TooManyRequests
from vidtube.core.rate_limiter import rate_limit_uploads
from vidtube.core.security import Principal

USER = Principal(id=uuid.uuid4(), username="uploader")


class FakeRedis:
    def __init__(self):
        self.counts = {}
        self.ttls = {}

    async def incr(self, key):
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    async def expire(self, key, seconds):
        self.ttls[key] = seconds

    async def ttl(self, key):
        return self.ttls.get(key, -1)


class BrokenRedis:
    async def incr(self, key):
        raise redis.ConnectionError("connection refused")


@pytest.mark.anyio
async def test_uploads_within_limit_pass():
    client = FakeRedis()
    for _ in range(settings.upload_rate_limit_count):
        assert await rate_limit_uploads(USER, client) is True
    assert list(client.ttls.values()) == [settings.upload_rate_limit_window_seconds]


@pytest.mark.anyio
async def test_upload_over_limit_is_rejected_with_retry_after():
    client = FakeRedis()
    for _ in range(settings.upload_rate_limit_count):
        await rate_limit_uploads(USER, client)
    with pytest.raises(TooManyRequests) as excinfo:
        await rate_limit_uploads(USER, client)
    assert excinfo.value.status_code == 429
    assert excinfo.value.headers["Retry-After"] == str(settings.upload_rate_limit_window_seconds)


@pytest.mark.anyio
async def test_limiter_fails_open_without_redis():
    assert await rate_limit_uploads(USER, None) is True
    assert await rate_limit_uploads(USER, BrokenRedis()) is True
