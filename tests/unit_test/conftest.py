from unittest.mock import MagicMock

import httpx
import pytest
from fakes import FakeArangod, InMemoryStatusStore

from kubearango.arangod import ArangodConnectionFactory


@pytest.fixture
def fake_arangod() -> FakeArangod:
    return FakeArangod()


@pytest.fixture
def connections(fake_arangod) -> ArangodConnectionFactory:
    return ArangodConnectionFactory(core_api_factory=MagicMock(), transport=httpx.MockTransport(fake_arangod))


@pytest.fixture
def store() -> InMemoryStatusStore:
    return InMemoryStatusStore()
