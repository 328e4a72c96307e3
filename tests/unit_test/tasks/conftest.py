from unittest.mock import patch

import pytest
from fakes import FakeRedis


@pytest.fixture(autouse=True)
def fake_redis():
    """Every tick lock talks to the same in-memory Redis"""
    redis = FakeRedis()
    with patch("kubearango.concurrent_control.redis_lock.redis.from_url", return_value=redis):
        yield redis
