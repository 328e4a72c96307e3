"""
Unit tests for the Redis-backed distributed lock.

The redis module is mocked, so no Redis server is needed. Covered:

1. Construction and the lock factory
2. Acquire and release through SET NX and the release script
3. Retry and timeout behaviour when the lock is held elsewhere
4. Error handling and cleanup
"""

import time
from unittest.mock import AsyncMock, patch

import pytest

from kubearango.concurrent_control import RedisLock, create_lock, lock_context


@pytest.fixture
def mock_client():
    client = AsyncMock()
    client.ping.return_value = True
    client.script_load.return_value = "sha123"
    client.set.return_value = True
    client.evalsha.return_value = 1
    with patch("kubearango.concurrent_control.redis_lock.redis") as mock_redis_module:
        mock_redis_module.from_url.return_value = client
        yield client


class TestRedisLockInitialization:
    """Test suite for RedisLock construction."""

    def test_defaults(self):
        lock = RedisLock(key="tick")
        assert lock._key == "tick"
        assert lock._redis_url == "redis://localhost:6379"
        assert lock._expire_time == 30
        assert lock._retry_times == 3
        assert lock._redis_client is None
        assert lock._lock_value is None

    def test_empty_key(self):
        with pytest.raises(ValueError, match="Redis lock key is required"):
            RedisLock(key="")

    def test_factory(self):
        lock = create_lock("redis", key="factory", expire_time=90)
        assert isinstance(lock, RedisLock)
        assert lock._expire_time == 90

        with pytest.raises(ValueError, match="Unsupported lock type"):
            create_lock("zookeeper", key="factory")


class TestRedisLockOperations:
    """Test suite for acquire and release."""

    @pytest.mark.asyncio
    async def test_acquire_and_release(self, mock_client):
        lock = RedisLock(key="kubearango:reconcile:default/demo", expire_time=90)

        assert await lock.acquire() is True
        assert lock.is_locked()
        assert len(lock._lock_value) == 36

        args, kwargs = mock_client.set.call_args
        assert args == ("kubearango:reconcile:default/demo", lock._lock_value)
        assert kwargs == {"nx": True, "ex": 90}

        value = lock._lock_value
        await lock.release()
        assert not lock.is_locked()
        mock_client.evalsha.assert_called_once_with("sha123", 1, "kubearango:reconcile:default/demo", value)

    @pytest.mark.asyncio
    async def test_acquire_when_already_held(self, mock_client):
        lock = RedisLock(key="tick")
        await lock.acquire()
        assert await lock.acquire() is True
        assert mock_client.set.call_count == 1

    @pytest.mark.asyncio
    async def test_release_falls_back_to_eval(self, mock_client):
        mock_client.script_load.return_value = None
        mock_client.eval.return_value = 1
        lock = RedisLock(key="tick")

        await lock.acquire()
        await lock.release()

        mock_client.evalsha.assert_not_called()
        script = mock_client.eval.call_args.args[0]
        assert 'redis.call("get", KEYS[1]) == ARGV[1]' in script

    @pytest.mark.asyncio
    async def test_context_manager_releases_on_error(self, mock_client):
        lock = RedisLock(key="tick")

        with pytest.raises(RuntimeError):
            async with lock:
                assert lock.is_locked()
                raise RuntimeError("tick failed")

        assert not lock.is_locked()
        mock_client.evalsha.assert_called_once()


class TestRedisLockContention:
    """Test suite for a lock that is held by another owner."""

    @pytest.mark.asyncio
    async def test_no_retries(self, mock_client):
        mock_client.set.return_value = None
        lock = RedisLock(key="tick", retry_times=0)

        assert await lock.acquire() is False
        assert mock_client.set.call_count == 1
        assert not lock.is_locked()

    @pytest.mark.asyncio
    async def test_retries_until_free(self, mock_client):
        mock_client.set.side_effect = [None, None, True]
        lock = RedisLock(key="tick", retry_times=3, retry_delay=0.01)

        assert await lock.acquire() is True
        assert mock_client.set.call_count == 3

    @pytest.mark.asyncio
    async def test_timeout(self, mock_client):
        mock_client.set.return_value = None
        lock = RedisLock(key="tick", retry_delay=0.05)

        start = time.monotonic()
        assert await lock.acquire(timeout=0.2) is False
        assert time.monotonic() - start < 0.5

    @pytest.mark.asyncio
    async def test_lock_context_raises_when_held(self, mock_client):
        mock_client.set.return_value = None
        lock = RedisLock(key="tick", retry_delay=0.01)

        with pytest.raises(TimeoutError, match="tick"):
            async with lock_context(lock, timeout=0.05):
                pass

    @pytest.mark.asyncio
    async def test_expired_lock_is_not_released_by_force(self, mock_client):
        mock_client.evalsha.return_value = 0
        lock = RedisLock(key="tick")

        await lock.acquire()
        await lock.release()

        assert not lock.is_locked()
        mock_client.delete.assert_not_called()


class TestRedisLockErrorHandling:
    """Test suite for Redis failures."""

    @pytest.mark.asyncio
    async def test_connection_failure(self, mock_client):
        mock_client.ping.side_effect = Exception("Connection refused")

        with pytest.raises(ConnectionError, match="Cannot connect to Redis"):
            await RedisLock(key="tick").acquire()

    @pytest.mark.asyncio
    async def test_set_failure_counts_as_not_acquired(self, mock_client):
        mock_client.set.side_effect = Exception("READONLY")
        lock = RedisLock(key="tick", retry_times=1, retry_delay=0.01)

        assert await lock.acquire() is False
        assert mock_client.set.call_count == 2

    @pytest.mark.asyncio
    async def test_release_failure_clears_local_state(self, mock_client):
        mock_client.evalsha.side_effect = Exception("Connection reset")
        lock = RedisLock(key="tick")

        await lock.acquire()
        await lock.release()
        assert not lock.is_locked()

    @pytest.mark.asyncio
    async def test_close(self, mock_client):
        lock = RedisLock(key="tick")
        await lock.acquire()

        await lock.close()

        assert not lock.is_locked()
        mock_client.evalsha.assert_called_once()
        mock_client.aclose.assert_called_once()
        assert lock._redis_client is None

    @pytest.mark.asyncio
    async def test_release_without_acquire(self, mock_client):
        lock = RedisLock(key="tick")
        await lock.release()
        mock_client.evalsha.assert_not_called()
