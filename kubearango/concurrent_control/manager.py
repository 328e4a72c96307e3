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

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from kubearango.concurrent_control.redis_lock import RedisLock


def create_lock(lock_type: str = "redis", **kwargs) -> RedisLock:
    if lock_type == "redis":
        return RedisLock(**kwargs)
    raise ValueError(f"Unsupported lock type '{lock_type}'")


@asynccontextmanager
async def lock_context(lock: RedisLock, timeout: Optional[float] = None) -> AsyncIterator[RedisLock]:
    """Hold the lock for the body, raising TimeoutError when it cannot be taken"""
    if not await lock.acquire(timeout=timeout):
        raise TimeoutError(f"Failed to acquire lock {lock.key} within {timeout}s")
    try:
        yield lock
    finally:
        await lock.release()
