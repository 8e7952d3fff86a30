"""Broadcast hub — fans envelopes out to live WebSocket viewers.

Every viewer owns a :class:`Subscription` with a bounded queue.  Publishing
only enqueues (never awaits), so a slow or dead viewer cannot stall
ingestion; the WebSocket endpoint drains each queue in its own task.

Envelopes (JSON over WebSocket, server → client):
    {"type": "init",    "data": [<record>, ...]}          on connect
    {"type": "new",     "data": [<record>]}               on every ingestion
    {"type": "archive", "data": {"archived": <name|null>, "cleared": <bool>}}

Viewers never have to send anything.  The ping/pong round-trip is done by
the server at the protocol level (uvicorn ``ws_ping_interval`` /
``ws_ping_timeout``); a peer that misses it is disconnected there and its
subscription is dropped when the endpoint unwinds.  :meth:`BroadcastHub.heartbeat`
sweeps what the transport cannot see: sockets whose sends already failed and
viewers whose backlog did not move for a whole cycle.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Literal, TypedDict

from logrelay.live_buffer import LogRecord

logger = logging.getLogger(__name__)

EnvelopeType = Literal["init", "new", "archive"]


class Envelope(TypedDict):
    type: EnvelopeType
    data: Any


def init_envelope(records: list[LogRecord]) -> Envelope:
    return {"type": "init", "data": list(records)}


def new_envelope(record: LogRecord) -> Envelope:
    return {"type": "new", "data": [record]}


def archive_envelope(archived: str | None, cleared: bool) -> Envelope:
    return {"type": "archive", "data": {"archived": archived, "cleared": cleared}}


class Subscription:
    """One connected viewer: an outbound queue plus liveness state."""

    def __init__(self, maxsize: int) -> None:
        self.id = uuid.uuid4().hex[:8]
        # None is the close sentinel for the sender task.
        self.queue: asyncio.Queue[Envelope | None] = asyncio.Queue(maxsize=maxsize)
        self.failed = False
        self.closed = False
        self.sent = 0
        self._sent_at_last_tick = 0
        self.stalled = False

    def offer(self, envelope: Envelope) -> bool:
        """Enqueue without blocking; False when closed or the backlog is full."""
        if self.closed:
            return False
        try:
            self.queue.put_nowait(envelope)
        except asyncio.QueueFull:
            return False
        return True

    async def next(self) -> Envelope | None:
        return await self.queue.get()

    def mark_sent(self) -> None:
        self.sent += 1

    def mark_failed(self) -> None:
        self.failed = True

    def check_progress(self) -> bool:
        """Record one heartbeat cycle; False once the backlog stalled twice in a row.

        A viewer with nothing queued is idle, not stalled.  The first stalled
        cycle is tolerated.
        """
        stalled_now = not self.queue.empty() and self.sent == self._sent_at_last_tick
        self._sent_at_last_tick = self.sent
        if stalled_now and self.stalled:
            return False
        self.stalled = stalled_now
        return True

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        # Drop the backlog so the sender sees the sentinel immediately.
        while not self.queue.empty():
            self.queue.get_nowait()
        self.queue.put_nowait(None)


class BroadcastHub:
    def __init__(self, queue_size: int = 1000) -> None:
        self._queue_size = queue_size
        self._subscribers: set[Subscription] = set()

    @property
    def subscribers(self) -> frozenset[Subscription]:
        return frozenset(self._subscribers)

    def __len__(self) -> int:
        return len(self._subscribers)

    def subscribe(self, initial: list[LogRecord]) -> Subscription:
        """Register a viewer whose first envelope is ``init`` with ``initial``.

        The init envelope is queued before the subscription joins the live set
        and nothing here awaits, so no incremental envelope can precede it.
        """
        sub = Subscription(self._queue_size)
        sub.offer(init_envelope(initial))
        self._subscribers.add(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        self._subscribers.discard(sub)
        sub.close()

    def publish(self, envelope: Envelope) -> int:
        """Queue ``envelope`` for every live viewer; return how many accepted it."""
        delivered = 0
        for sub in list(self._subscribers):
            if sub.offer(envelope):
                delivered += 1
            else:
                logger.warning("Could not queue %s envelope for viewer %s", envelope["type"], sub.id)
        return delivered

    # ── Heartbeat ─────────────────────────────────────────────────────────────

    def heartbeat(self) -> list[Subscription]:
        """Run one sweep; return the viewers that were terminated.

        Viewers whose socket already failed are removed.  A viewer whose
        backlog made no progress is logged and kept for one more cycle, then
        removed if it is still stuck.  Idle viewers are never touched.
        """
        terminated: list[Subscription] = []
        for sub in list(self._subscribers):
            if sub.failed:
                logger.warning("Removing failed ws connection %s", sub.id)
            elif not sub.check_progress():
                logger.warning("Terminating stalled ws connection %s", sub.id)
            else:
                if sub.stalled:
                    logger.warning("Viewer %s made no progress this cycle", sub.id)
                continue
            self.unsubscribe(sub)
            terminated.append(sub)
        return terminated

    async def run_heartbeat(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                self.heartbeat()
            except Exception:
                logger.exception("Error during heartbeat")

    def close_all(self) -> None:
        for sub in list(self._subscribers):
            self.unsubscribe(sub)
