import uvicorn

from logrelay.config import settings


def main() -> None:
    # Dead viewers are detected by protocol-level ping/pong: a peer that does
    # not answer within heartbeat_interval is disconnected by the server.
    uvicorn.run(
        "logrelay.main:app",
        host=settings.host,
        port=settings.port,
        ws_ping_interval=settings.heartbeat_interval,
        ws_ping_timeout=settings.heartbeat_interval,
    )


if __name__ == "__main__":
    main()
