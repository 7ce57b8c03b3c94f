import time
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from novadesk.core.config import Settings
from novadesk.core.rate_limit import SlidingWindowRateLimiter
from novadesk.main import create_app
from novadesk.services.db_service import MemoryRecordStore, SqliteRecordStore

ADMIN = ("admin", "N0va-Desk!")

@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    """Every store test runs against both implementations."""
    if request.param == "memory":
        s = MemoryRecordStore()
    else:
        s = SqliteRecordStore(str(tmp_path / "db" / "novadesk.sqlite"))
    yield s
    s.close()

@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        ADMIN_USER=ADMIN[0],
        ADMIN_PASS=ADMIN[1],
        STORAGE_BACKEND="memory",
        ENVIRONMENT="test",
    )

class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds

@pytest.fixture
def clock():
    """Drives time.time() for the limits memory storage and the limiter."""
    fake = FakeClock()
    fake_time = MagicMock(wraps=time)
    fake_time.time = fake
    with patch("limits.storage.memory.time", fake_time), \
         patch("novadesk.core.rate_limit.time", fake_time):
        yield fake

@pytest.fixture
def memory_store():
    return MemoryRecordStore()

@pytest.fixture
def app(test_settings, memory_store, clock):
    limiter = SlidingWindowRateLimiter(limit=100, window_seconds=15 * 60)
    return create_app(test_settings, store=memory_store, rate_limiter=limiter)

@pytest.fixture
def client(app):
    return TestClient(app)
