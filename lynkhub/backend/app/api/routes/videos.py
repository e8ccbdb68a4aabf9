"""
LynkHub API — Video routes.
"""
from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_viewer_id
from app.core.database import get_db
from app.core.errors import parse_id
from app.core.storage import MediaStorage, get_media_storage
from app.schemas.schemas import DeleteResponse, Page, VideoPublish, VideoRecord, VideoUpdate
from app.services.aggregation.relationship_aggregator import relationship_aggregator
from app.services.videos.video_service import video_service, video_to_dict

router = APIRouter(prefix="/videos", tags=["Videos"])


@router.get("", response_model=Page)
async def list_videos(
    sort_field: Optional[str] = Query(None, alias="sortBy"),
    sort_direction: Optional[str] = Query(None, alias="sortType"),
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Published videos, paged. ``sortBy`` and ``sortType`` are required."""
    return await relationship_aggregator.list_videos(db, sort_field, sort_direction, page, limit)


@router.post("", response_model=VideoRecord, status_code=201)
async def publish_video(
    data: VideoPublish,
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    video = await video_service.publish_video(db, viewer_id, **data.model_dump())
    return video_to_dict(video)


@router.get("/liked")
async def liked_videos(
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await relationship_aggregator.liked_videos(db, viewer_id)


@router.get("/{video_id}")
async def video_detail(
    video_id: str,
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    """Video with counts relative to the viewer. Records a view on first watch."""
    return await relationship_aggregator.video_detail(db, parse_id(video_id, "video id"), viewer_id)


@router.patch("/{video_id}", response_model=VideoRecord)
async def update_video(
    video_id: str,
    data: VideoUpdate,
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    video = await video_service.update_video(
        db, parse_id(video_id, "video id"), viewer_id, **data.model_dump()
    )
    return video_to_dict(video)


@router.patch("/{video_id}/publish", response_model=VideoRecord)
async def toggle_publish(
    video_id: str,
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    video = await video_service.toggle_publish_status(db, parse_id(video_id, "video id"), viewer_id)
    return video_to_dict(video)


@router.delete("/{video_id}", response_model=DeleteResponse)
async def delete_video(
    video_id: str,
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
    storage: MediaStorage = Depends(get_media_storage),
):
    return await video_service.delete_video(db, parse_id(video_id, "video id"), viewer_id, storage)
