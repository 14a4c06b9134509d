import pytest

from config import load_config
from infrastructure.store.memory_blob_store import MemoryBlobStore
from server import create_app


class FakeClock:
    """Manually advanced replacement for time.time()."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now: float = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> MemoryBlobStore:
    return MemoryBlobStore(ttl=60, clock=clock)


@pytest.fixture
def app_config():
    return load_config(environ={}, ttl="60s")


@pytest.fixture
def app(app_config, store: MemoryBlobStore):
    app = create_app(app_config, store=store)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
