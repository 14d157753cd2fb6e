import pytest
import pytest_asyncio

from temporaries.core.config import Settings
from temporaries.core.database import Database
from temporaries.services import (
    LOCAL_SCOPE,
    NETWORK_SCOPE,
    DatabaseOptionBackend,
    MemoryOptionBackend,
    TemporaryStore,
)


class FakeClock:
    """Epoch-seconds clock that only moves when told to."""

    def __init__(self, now: int = 1_700_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


def make_settings(tmp_path, **overrides) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'temporaries.db'}",
        **overrides,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path)


@pytest_asyncio.fixture
async def database(settings):
    db = Database(settings)
    await db.startup()
    yield db
    await db.shutdown()


@pytest_asyncio.fixture(params=["memory", "database"])
async def backend(request, tmp_path):
    """Each store test runs against the in-memory and the SQLite backend."""
    if request.param == "memory":
        yield MemoryOptionBackend()
        return

    db = Database(make_settings(tmp_path))
    await db.startup()
    yield DatabaseOptionBackend(db)
    await db.shutdown()


@pytest.fixture
def store(backend, clock):
    return TemporaryStore(backend, LOCAL_SCOPE, clock=clock)


@pytest.fixture
def network_store(backend, clock):
    return TemporaryStore(backend, NETWORK_SCOPE, clock=clock)
