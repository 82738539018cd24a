import os
import uuid
from datetime import date, datetime, timedelta, timezone

import pytest
import pytest_asyncio
import redis.asyncio as redis

from attendify.backend.db.redis_client import RedisClient
from attendify.backend.models.db_models import Session

TEST_REDIS_URL = os.environ.get("TEST_REDIS_URL")

pytestmark = pytest.mark.skipif(not TEST_REDIS_URL, reason="TEST_REDIS_URL is not set")


@pytest_asyncio.fixture(scope="function")
async def redis_client():
    pool = redis.ConnectionPool.from_url(TEST_REDIS_URL, decode_responses=True)
    client = RedisClient(pool=pool)
    await client._redis.flushdb()
    yield client
    await pool.disconnect()


@pytest.mark.asyncio
class TestRedisClient:

    async def test_qr_index_round_trip(self, redis_client):
        now = datetime.now(timezone.utc)
        session = Session(
            id=uuid.uuid4(), course_id=uuid.uuid4(), title="Lecture", scheduled_date=date.today(),
            start_time=now, end_time=now + timedelta(hours=1), qr_code="abcd1234.secret-token"
        )

        await redis_client.save_session_qr(session)

        assert await redis_client.get_session_id_by_qr(session.qr_code) == session.id
        # Token anahtar olarak düz metin saklanmaz.
        keys = await redis_client._redis.keys("session_qr:*")
        assert keys and all(session.qr_code not in key for key in keys)

        assert await redis_client.delete_session_qr(session.qr_code) == 1
        assert await redis_client.get_session_id_by_qr(session.qr_code) is None
