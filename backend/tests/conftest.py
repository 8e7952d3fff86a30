"""
Shared pytest fixtures.

Every test gets its own data directory under tmp_path and its own app built
by create_app(), so no state leaks between tests.  HTTP tests go through
httpx's ASGITransport (no lifespan, the engine loads lazily); WebSocket tests
use FastAPI's TestClient as a context manager so that requests and sockets
share one event loop.
"""

from pathlib import Path

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from logrelay.archive import ArchiveStore
from logrelay.config import Settings
from logrelay.hub import BroadcastHub
from logrelay.ingest import IngestionEngine
from logrelay.main import create_app
from logrelay.store import DurableStore


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(data_dir=tmp_path, heartbeat_interval=3600, subscriber_queue_size=16)


@pytest.fixture
def store(settings: Settings) -> DurableStore:
    return DurableStore(settings.logs_file)


@pytest.fixture
def archive_store(settings: Settings) -> ArchiveStore:
    return ArchiveStore(settings.archive_dir)


@pytest.fixture
def hub() -> BroadcastHub:
    return BroadcastHub(queue_size=16)


@pytest.fixture
def engine(store: DurableStore, archive_store: ArchiveStore, hub: BroadcastHub) -> IngestionEngine:
    return IngestionEngine(store=store, archive=archive_store, hub=hub)


# ── Application ───────────────────────────────────────────────────────────────


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    return create_app(settings)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncClient:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
