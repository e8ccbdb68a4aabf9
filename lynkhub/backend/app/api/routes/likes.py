"""
LynkHub API — Like routes.

``kind`` is one of video, comment or post (``tweet``/``lynk`` are accepted
as aliases for post).
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_viewer_id
from app.core.database import get_db
from app.core.errors import parse_id
from app.schemas.schemas import ToggleResponse
from app.services.engagement.toggle_service import engagement_toggle_service

router = APIRouter(prefix="/likes", tags=["Likes"])


@router.post("/{kind}/{target_id}", response_model=ToggleResponse)
async def toggle_like(
    kind: str,
    target_id: str,
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    outcome = await engagement_toggle_service.toggle_like(
        db, viewer_id, kind, parse_id(target_id, f"{kind} id")
    )
    return outcome.to_dict()
