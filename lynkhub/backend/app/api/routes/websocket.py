"""
LynkHub API — real-time relation events (WebSocket, SSE fallback).

Browsers cannot attach headers to a WebSocket handshake, so the viewer may
also be given as the ``viewer_id`` query parameter.
"""
from __future__ import annotations

import json
import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import StreamingResponse

from app.core.config import get_settings
from app.core.events import event_hub

logger = logging.getLogger(__name__)
settings = get_settings()
router = APIRouter(tags=["Events"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def _viewer(*candidates: Optional[str]) -> Optional[str]:
    """First candidate that parses as a UUID, normalised; anonymous otherwise."""
    for raw in candidates:
        if raw and raw.strip():
            try:
                return str(uuid.UUID(raw.strip()))
            except ValueError:
                return None
    return None


def _split(types) -> Optional[List[str]]:
    if not types:
        return None
    if isinstance(types, list):
        return [str(t) for t in types]
    return [t.strip() for t in str(types).split(",") if t.strip()]


@router.websocket("/ws/events")
async def events_websocket(
    ws: WebSocket,
    viewer_id: Optional[str] = Query(None),
    replay_since: Optional[float] = Query(None),
    event_types: Optional[str] = Query(None),
):
    """
    Live relation events for one viewer: broadcasts plus events addressed to them.

    On connect, buffered events newer than ``replay_since`` are sent first.
    Client frames are JSON: ``{"type": "ping"}`` gets a pong and
    ``{"type": "replay", "since": <ts>}`` re-sends the backlog.
    """
    viewer = _viewer(viewer_id, ws.headers.get(settings.viewer_header))
    await event_hub.connect(ws, viewer)
    try:
        await event_hub.replay(ws, since=replay_since, event_types=_split(event_types))
        async for frame in ws.iter_text():
            try:
                command = json.loads(frame)
            except json.JSONDecodeError:
                continue
            kind = command.get("type") if isinstance(command, dict) else None
            if kind == "ping":
                await ws.send_json({"type": "pong"})
            elif kind == "replay":
                await event_hub.replay(ws, since=command.get("since"), event_types=_split(command.get("event_types")))
    except WebSocketDisconnect:
        pass
    except Exception as exc:
        logger.error(f"Event socket for viewer={viewer} failed: {exc}")
    finally:
        await event_hub.disconnect(ws)


@router.get("/sse/events")
async def events_sse(
    request: Request,
    viewer_id: Optional[str] = Query(None),
    replay_since: Optional[float] = Query(None),
):
    """Server-Sent Events stream for clients that cannot hold a WebSocket."""
    viewer = _viewer(viewer_id, request.headers.get(settings.viewer_header))
    return StreamingResponse(
        event_hub.sse_stream(viewer_id=viewer, since=replay_since),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/ws/stats")
async def events_stats():
    return event_hub.get_stats()
