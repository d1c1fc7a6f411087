"""Shared test fixtures for the healthbridge test suite."""

import pytest
import pytest_asyncio

from healthbridge.core.database import create_engine, create_session_maker, init_db
from healthbridge.services.preferences import PreferencesStore
from healthbridge.services.state_store import SyncStateStore
from healthbridge.services.sync import SyncService
from tests.fakes import NOW, TZ_NAME, FakeHealthSource, FakeIngestServer, FixedClock


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    """
    Provide a session factory over a fresh SQLite file for each test.

    A file (rather than :memory:) keeps every pooled connection on the same database.
    """
    engine = create_engine(str(tmp_path / "test.db"))
    await init_db(engine)
    yield create_session_maker(engine)
    await engine.dispose()


@pytest.fixture
def state_store(session_maker):
    return SyncStateStore(session_maker)


@pytest.fixture
def preferences(session_maker):
    return PreferencesStore(session_maker)


@pytest.fixture
def source():
    return FakeHealthSource()


@pytest.fixture
def ingest_server():
    return FakeIngestServer()


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest_asyncio.fixture
async def sync_service(source, ingest_server, state_store, preferences, clock):
    client = ingest_server.client()
    yield SyncService(source, client, state_store, preferences, TZ_NAME, clock=clock)
    await client.close()
