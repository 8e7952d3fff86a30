"""WebSocket endpoint for real-time log streaming.

Endpoints: /ws and /ws/logs

Server → Client (JSON):
    {"type": "init",    "data": [...]}                        once, on connect
    {"type": "new",     "data": ["<record>"]}
    {"type": "archive", "data": {"archived": "...", "cleared": true}}

Client → Server: nothing is required.  Inbound text or binary frames are
logged and otherwise ignored.  Keepalive is protocol-level ping/pong handled
by the server (see ``logrelay.__main__``).
"""

import asyncio
import json
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from logrelay.dependencies import get_engine, get_hub
from logrelay.hub import BroadcastHub, Subscription
from logrelay.ingest import IngestionEngine

logger = logging.getLogger(__name__)

router = APIRouter()

# Close code sent to viewers dropped by the heartbeat or at shutdown.
_GOING_AWAY = 1001


async def _pump(ws: WebSocket, sub: Subscription) -> None:
    """Forward queued envelopes to the socket until the subscription closes."""
    while True:
        envelope = await sub.next()
        if envelope is None:
            try:
                await ws.close(code=_GOING_AWAY)
            except RuntimeError:
                pass  # already closed by the peer
            return
        try:
            await ws.send_text(json.dumps(envelope))
        except (WebSocketDisconnect, RuntimeError):
            sub.mark_failed()
            return
        except Exception:
            sub.mark_failed()
            logger.exception("Error sending %s envelope to viewer %s", envelope["type"], sub.id)
            return
        sub.mark_sent()


async def _listen(ws: WebSocket, sub: Subscription) -> None:
    """Consume inbound frames until the peer disconnects."""
    while True:
        message = await ws.receive()
        if message["type"] == "websocket.disconnect":
            return
        payload = message.get("text")
        if payload is None:
            payload = message.get("bytes")
        logger.info("Received from viewer %s: %r", sub.id, payload)


@router.websocket("/ws")
@router.websocket("/ws/logs")
async def ws_logs(
    ws: WebSocket,
    engine: IngestionEngine = Depends(get_engine),
    hub: BroadcastHub = Depends(get_hub),
) -> None:
    await ws.accept()
    sub = engine.subscribe()
    logger.info("New WebSocket connection established (%s)", sub.id)

    tasks = {
        asyncio.create_task(_pump(ws, sub)),
        asyncio.create_task(_listen(ws, sub)),
    }
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        for task in done:
            if task.exception() is not None:
                logger.error("WebSocket error on connection %s: %r", sub.id, task.exception())
    finally:
        for task in tasks:
            task.cancel()
        hub.unsubscribe(sub)
        logger.info("WebSocket connection closed (%s)", sub.id)
