"""Request-scoped dependencies shared by the routers."""
from __future__ import annotations

import uuid
from typing import Optional

from fastapi import HTTPException, Request

from app.core.config import get_settings

settings = get_settings()


def _header_id(request: Request) -> Optional[uuid.UUID]:
    raw = request.headers.get(settings.viewer_header)
    if raw is None or not raw.strip():
        return None
    try:
        return uuid.UUID(raw.strip())
    except ValueError:
        raise HTTPException(status_code=401, detail="Malformed viewer identity")


def get_viewer_id(request: Request) -> uuid.UUID:
    """The authenticated viewer, as asserted by the upstream gateway."""
    viewer_id = _header_id(request)
    if viewer_id is None:
        raise HTTPException(status_code=401, detail="Unauthorized request")
    return viewer_id


def get_optional_viewer_id(request: Request) -> Optional[uuid.UUID]:
    return _header_id(request)
