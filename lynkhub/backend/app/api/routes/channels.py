"""
LynkHub API — Channel routes (profiles, subscriptions).
"""
from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_optional_viewer_id, get_viewer_id
from app.core.database import get_db
from app.core.errors import parse_id
from app.schemas.schemas import ChannelProfile, ToggleResponse
from app.services.aggregation.relationship_aggregator import relationship_aggregator
from app.services.engagement.toggle_service import engagement_toggle_service

router = APIRouter(prefix="/channels", tags=["Channels"])


@router.get("/subscribed")
async def subscribed_channels(
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await relationship_aggregator.subscribed_channels(db, viewer_id)


@router.post("/{channel_id}/subscription", response_model=ToggleResponse)
async def toggle_subscription(
    channel_id: str,
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    """Subscribe to / unsubscribe from ``channel_id``; the caller is the subscriber."""
    outcome = await engagement_toggle_service.toggle_subscription(
        db, viewer_id, parse_id(channel_id, "channel id")
    )
    return outcome.to_dict()


@router.get("/{channel_id}/subscribers")
async def channel_subscribers(channel_id: str, db: AsyncSession = Depends(get_db)):
    return await relationship_aggregator.channel_subscribers(db, parse_id(channel_id, "channel id"))


@router.get("/{username}", response_model=ChannelProfile)
async def channel_profile(
    username: str,
    viewer_id: Optional[uuid.UUID] = Depends(get_optional_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await relationship_aggregator.channel_profile(db, username, viewer_id)


@router.get("/{username}/videos")
async def channel_videos(username: str, db: AsyncSession = Depends(get_db)):
    return await relationship_aggregator.channel_videos(db, username)
