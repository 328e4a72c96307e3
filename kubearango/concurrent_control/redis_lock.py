# Copyright 2025 ApeCloud, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Distributed lock backed by Redis.

The lock is a key set with NX and an expiry, holding a random value that
identifies the owner. Release runs a Lua script that deletes the key only if
it still holds that value, so an expired lock taken over by another owner is
never released by mistake.
"""

import asyncio
import logging
import time
import uuid
from typing import Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)

RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class RedisLock:
    def __init__(
        self,
        key: str,
        redis_url: str = "redis://localhost:6379",
        expire_time: int = 30,
        retry_times: int = 3,
        retry_delay: float = 0.1,
    ):
        if not key:
            raise ValueError("Redis lock key is required")
        self._key = key
        self._redis_url = redis_url
        self._expire_time = expire_time
        self._retry_times = retry_times
        self._retry_delay = retry_delay
        self._redis_client = None
        self._release_script_sha: Optional[str] = None
        self._lock_value: Optional[str] = None

    @property
    def key(self) -> str:
        return self._key

    def is_locked(self) -> bool:
        return self._lock_value is not None

    async def _get_client(self):
        if self._redis_client is None:
            client = redis.from_url(self._redis_url, decode_responses=True)
            try:
                await client.ping()
            except Exception as e:
                raise ConnectionError(f"Cannot connect to Redis at {self._redis_url}: {e}") from e
            self._release_script_sha = await client.script_load(RELEASE_SCRIPT)
            self._redis_client = client
        return self._redis_client

    async def acquire(self, timeout: Optional[float] = None) -> bool:
        """
        Try to take the lock.

        Without a timeout the SET is retried retry_times times; with one it is
        retried until the timeout has passed.

        Returns:
            True when this instance holds the lock afterwards
        """
        if self._lock_value is not None:
            return True

        client = await self._get_client()
        lock_value = str(uuid.uuid4())
        deadline = time.monotonic() + timeout if timeout is not None else None
        attempts = 0
        while True:
            try:
                if await client.set(self._key, lock_value, nx=True, ex=self._expire_time):
                    self._lock_value = lock_value
                    logger.debug(f"Acquired lock {self._key}")
                    return True
            except Exception as e:
                logger.warning(f"Failed to acquire lock {self._key}: {e}")

            attempts += 1
            if deadline is not None:
                if time.monotonic() + self._retry_delay > deadline:
                    break
            elif attempts > self._retry_times:
                break
            await asyncio.sleep(self._retry_delay)

        logger.debug(f"Lock {self._key} is held elsewhere, gave up after {attempts} attempts")
        return False

    async def release(self):
        if self._lock_value is None:
            return

        # Local state is cleared even if Redis is unreachable; the key expires on its own
        lock_value, self._lock_value = self._lock_value, None
        try:
            if self._release_script_sha:
                released = await self._redis_client.evalsha(self._release_script_sha, 1, self._key, lock_value)
            else:
                released = await self._redis_client.eval(RELEASE_SCRIPT, 1, self._key, lock_value)
            if not released:
                logger.warning(f"Lock {self._key} expired before it was released")
        except Exception as e:
            logger.warning(f"Failed to release lock {self._key}: {e}")

    async def close(self):
        """Release the lock if held and drop the Redis connection"""
        await self.release()
        if self._redis_client is not None:
            await self._redis_client.aclose()
            self._redis_client = None

    async def __aenter__(self) -> "RedisLock":
        if not await self.acquire():
            raise TimeoutError(f"Failed to acquire lock {self._key}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.release()
