import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from logrelay.api import api_router
from logrelay.api.logs_ws import router as logs_ws_router
from logrelay.archive import ArchiveStore
from logrelay.config import Settings, settings
from logrelay.hub import BroadcastHub
from logrelay.ingest import IngestionEngine
from logrelay.store import DurableStore

# ── Logging setup ────────────────────────────────────────────────────────────

_handler = logging.StreamHandler()
_handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
logging.root.addHandler(_handler)
logging.root.setLevel(settings.log_level.upper())
# Quiet down noisy third-party loggers
for _name in ("httpcore", "httpx", "watchfiles", "multipart"):
    logging.getLogger(_name).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # Load eagerly so a corrupt store under the "fail" policy stops startup.
    app.state.engine.load()
    heartbeat = asyncio.create_task(app.state.hub.run_heartbeat(app.state.settings.heartbeat_interval))
    logger.info("Serving logs from %s, archives in %s", app.state.settings.logs_file, app.state.settings.archive_dir)
    try:
        yield
    finally:
        heartbeat.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await heartbeat
        app.state.hub.close_all()


async def _http_error(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)


def create_app(config: Settings | None = None) -> FastAPI:
    config = config or settings

    hub = BroadcastHub(queue_size=config.subscriber_queue_size)
    engine = IngestionEngine(
        store=DurableStore(config.logs_file, corrupt_policy=config.corrupt_store_policy),
        archive=ArchiveStore(config.archive_dir),
        hub=hub,
        sentinel=config.sentinel,
    )

    app = FastAPI(title=config.app_name, version="0.1.0", lifespan=lifespan)
    app.state.settings = config
    app.state.hub = hub
    app.state.engine = engine
    app.state.archive_store = engine.archive_store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in config.cors_origins.split(",")],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StarletteHTTPException, _http_error)

    app.include_router(api_router)
    app.include_router(logs_ws_router)  # WebSocket: /ws, /ws/logs

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
