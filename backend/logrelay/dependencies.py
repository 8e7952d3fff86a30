"""FastAPI dependencies exposing the per-app services stored on ``app.state``.

``HTTPConnection`` makes them usable from both HTTP and WebSocket routes.
"""

from starlette.requests import HTTPConnection

from logrelay.archive import ArchiveStore
from logrelay.hub import BroadcastHub
from logrelay.ingest import IngestionEngine


def get_engine(conn: HTTPConnection) -> IngestionEngine:
    return conn.app.state.engine


def get_archive_store(conn: HTTPConnection) -> ArchiveStore:
    return conn.app.state.archive_store


def get_hub(conn: HTTPConnection) -> BroadcastHub:
    return conn.app.state.hub
