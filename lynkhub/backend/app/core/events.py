"""
LynkHub Event Streaming — relation events pushed over WebSocket + SSE.

Whenever a service creates a relation record (a like, a subscription, a
comment, a chat message, a published video) it hands a ``RelationEvent`` to
the hub. Events with ``recipients`` reach only those viewers; events without
go to every connection. Services defer their events until the transaction
commits. Delivery is fire-and-forget: a viewer who was offline catches up
from the replay buffer when they reconnect, and a slow SSE listener loses
what overflows its bounded queue.
"""
from __future__ import annotations

import asyncio
import json
import logging
import time
from collections import defaultdict, deque
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Set

from fastapi import WebSocket
from prometheus_client import Counter, Gauge
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

EVENTS_EMITTED = Counter(
    "lynkhub_relation_events_total",
    "Relation events emitted to the real-time channel",
    ["event_type"],
)
LIVE_CONNECTIONS = Gauge(
    "lynkhub_event_connections",
    "Open real-time connections",
    ["transport"],
)

SSE_HEARTBEAT_SECONDS = 15.0
PENDING_EVENTS_KEY = "lynkhub.pending_relation_events"


# ═══════════════════════════════════════════════════════════════════════════
# Event Model
# ═══════════════════════════════════════════════════════════════════════════

class RelationEventType(str, Enum):
    LIKE_ADDED = "LIKE_ADDED"
    SUBSCRIPTION_ADDED = "SUBSCRIPTION_ADDED"
    COMMENT_ADDED = "COMMENT_ADDED"
    MESSAGE_SENT = "MESSAGE_SENT"
    VIDEO_PUBLISHED = "VIDEO_PUBLISHED"
    HEARTBEAT = "HEARTBEAT"


@dataclass
class RelationEvent:
    event_type: str
    actor_id: Optional[str] = None
    target_kind: Optional[str] = None     # video | comment | post | channel | chat
    target_id: Optional[str] = None
    recipients: Optional[List[str]] = None  # None means broadcast
    data: Optional[Dict[str, Any]] = None
    timestamp: float = field(default_factory=time.time)

    def is_for(self, viewer_id: Optional[str]) -> bool:
        if self.recipients is None:
            return True
        return viewer_id is not None and viewer_id in self.recipients

    def to_json(self) -> str:
        return json.dumps(asdict(self), default=str)

    def as_sse(self) -> str:
        return f"data: {self.to_json()}\n\n"


# ═══════════════════════════════════════════════════════════════════════════
# Hub
# ═══════════════════════════════════════════════════════════════════════════

class RelationEventHub:
    """
    Routes relation events to the viewers they concern.

    WebSockets are grouped by viewer id (``None`` for anonymous sockets) so
    an addressed event only touches its recipients' sockets. SSE listeners
    get their own queue, bounded like the replay buffer and filled on emit.
    The last ``buffer_size`` events are kept for replay.
    """

    def __init__(self, buffer_size: int = 1000):
        self._sockets: Dict[Optional[str], Set[WebSocket]] = defaultdict(set)
        self._owner: Dict[WebSocket, Optional[str]] = {}
        self._listeners: Dict[asyncio.Queue, Optional[str]] = {}
        self._buffer: deque[RelationEvent] = deque(maxlen=buffer_size)
        self._emitted = 0
        self._sse_dropped = 0
        self._lock = asyncio.Lock()

    # ── Connections ──────────────────────────────────────────────────────

    async def connect(self, ws: WebSocket, viewer_id: Optional[str] = None):
        await ws.accept()
        async with self._lock:
            self._sockets[viewer_id].add(ws)
            self._owner[ws] = viewer_id
        LIVE_CONNECTIONS.labels(transport="ws").inc()
        logger.info(f"Event socket open viewer={viewer_id} sockets={len(self._owner)}")

    async def disconnect(self, ws: WebSocket):
        async with self._lock:
            self._forget(ws)
        logger.info(f"Event socket closed sockets={len(self._owner)}")

    def _forget(self, ws: WebSocket):
        if ws not in self._owner:
            return
        viewer_id = self._owner.pop(ws)
        sockets = self._sockets.get(viewer_id)
        if sockets is not None:
            sockets.discard(ws)
            if not sockets:
                del self._sockets[viewer_id]
        LIVE_CONNECTIONS.labels(transport="ws").dec()

    def _sockets_for(self, event: RelationEvent) -> List[WebSocket]:
        if event.recipients is None:
            return list(self._owner)
        targets: List[WebSocket] = []
        for viewer_id in event.recipients:
            targets.extend(self._sockets.get(viewer_id, ()))
        return targets

    # ── Emission ─────────────────────────────────────────────────────────

    async def emit(self, event: RelationEvent):
        """Buffer ``event`` and deliver it to the sockets and listeners it is for."""
        self._buffer.append(event)
        self._emitted += 1
        EVENTS_EMITTED.labels(event_type=event.event_type).inc()

        for queue, viewer_id in list(self._listeners.items()):
            if not event.is_for(viewer_id):
                continue
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                self._sse_dropped += 1

        targets = self._sockets_for(event)
        if targets:
            await self._send(event.to_json(), targets)

    async def _send(self, payload: str, targets: Iterable[WebSocket]):
        broken: List[WebSocket] = []
        for ws in targets:
            try:
                await ws.send_text(payload)
            except Exception as exc:
                logger.debug(f"Dropping event socket: {exc}")
                broken.append(ws)
        if broken:
            async with self._lock:
                for ws in broken:
                    self._forget(ws)

    @staticmethod
    def relation_event(
        event_type: RelationEventType,
        actor_id: Any,
        target_kind: str,
        target_id: Any,
        recipients: Optional[List[Any]] = None,
        data: Optional[Dict] = None,
    ) -> RelationEvent:
        """Build an event; ids are sent as strings."""
        return RelationEvent(
            event_type=event_type.value,
            actor_id=str(actor_id),
            target_kind=target_kind,
            target_id=str(target_id),
            recipients=None if recipients is None else [str(r) for r in recipients],
            data=data,
        )

    async def emit_relation(self, event_type: RelationEventType, *args: Any, **kwargs: Any):
        await self.emit(self.relation_event(event_type, *args, **kwargs))

    # ── Post-commit delivery ─────────────────────────────────────────────

    def defer_relation(self, db: AsyncSession, event_type: RelationEventType, *args: Any, **kwargs: Any):
        """
        Queue an event on ``db`` until its transaction commits.

        ``get_db`` calls ``flush_pending`` after a successful commit and
        ``discard_pending`` on rollback, so viewers never hear about a
        relation that was not persisted.
        """
        db.info.setdefault(PENDING_EVENTS_KEY, []).append(
            self.relation_event(event_type, *args, **kwargs)
        )

    async def flush_pending(self, db: AsyncSession):
        for event in db.info.pop(PENDING_EVENTS_KEY, []):
            await self.emit(event)

    def discard_pending(self, db: AsyncSession):
        dropped = db.info.pop(PENDING_EVENTS_KEY, [])
        if dropped:
            logger.info(f"Dropped {len(dropped)} relation events after rollback")

    # ── Replay ───────────────────────────────────────────────────────────

    def buffered(
        self,
        viewer_id: Optional[str] = None,
        since: Optional[float] = None,
        event_types: Optional[List[str]] = None,
    ) -> List[RelationEvent]:
        """Buffered events visible to ``viewer_id``, oldest first."""
        wanted = set(event_types) if event_types else None
        return [
            e for e in self._buffer
            if e.is_for(viewer_id)
            and (since is None or e.timestamp >= since)
            and (wanted is None or e.event_type in wanted)
        ]

    async def replay(
        self,
        ws: WebSocket,
        since: Optional[float] = None,
        event_types: Optional[List[str]] = None,
        limit: int = 500,
    ):
        backlog = self.buffered(self._owner.get(ws), since, event_types)[-limit:]
        if backlog:
            await self._send_backlog(ws, backlog)

    async def _send_backlog(self, ws: WebSocket, backlog: List[RelationEvent]):
        for event in backlog:
            try:
                await ws.send_text(event.to_json())
            except Exception as exc:
                logger.debug(f"Replay aborted: {exc}")
                return

    # ── SSE ──────────────────────────────────────────────────────────────

    async def sse_stream(
        self, viewer_id: Optional[str] = None, since: Optional[float] = None, backlog: int = 200
    ) -> AsyncIterator[str]:
        """Yield SSE frames: the buffered backlog, then live events with heartbeats."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._buffer.maxlen or 0)
        self._listeners[queue] = viewer_id
        LIVE_CONNECTIONS.labels(transport="sse").inc()
        try:
            for event in self.buffered(viewer_id, since)[-backlog:]:
                yield event.as_sse()
            while True:
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=SSE_HEARTBEAT_SECONDS)
                except asyncio.TimeoutError:
                    event = RelationEvent(event_type=RelationEventType.HEARTBEAT.value)
                yield event.as_sse()
        finally:
            self._listeners.pop(queue, None)
            LIVE_CONNECTIONS.labels(transport="sse").dec()

    # ── Stats ────────────────────────────────────────────────────────────

    def get_stats(self) -> Dict[str, Any]:
        return {
            "total_events_emitted": self._emitted,
            "active_connections": len(self._owner),
            "connected_viewers": len([v for v in self._sockets if v is not None]),
            "sse_listeners": len(self._listeners),
            "sse_dropped": self._sse_dropped,
            "buffer_size": len(self._buffer),
            "buffer_capacity": self._buffer.maxlen,
        }


event_hub = RelationEventHub(buffer_size=settings.event_buffer_size)
