"""
LynkHub API — Playlist routes.
"""
from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_optional_viewer_id, get_viewer_id
from app.core.database import get_db
from app.core.errors import parse_id
from app.schemas.schemas import DeleteResponse, PlaylistCreate, PlaylistRecord, PlaylistUpdate
from app.services.aggregation.relationship_aggregator import relationship_aggregator
from app.services.playlists.playlist_service import playlist_service, playlist_to_dict

router = APIRouter(prefix="/playlists", tags=["Playlists"])


@router.post("", response_model=PlaylistRecord, status_code=201)
async def create_playlist(
    data: PlaylistCreate,
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    playlist = await playlist_service.create_playlist(db, viewer_id, **data.model_dump())
    return playlist_to_dict(playlist)


@router.get("/user/{user_id}")
async def user_playlists(
    user_id: str,
    viewer_id: Optional[uuid.UUID] = Depends(get_optional_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await playlist_service.list_user_playlists(db, parse_id(user_id, "user id"), viewer_id)


@router.get("/{playlist_id}")
async def playlist_detail(
    playlist_id: str,
    viewer_id: Optional[uuid.UUID] = Depends(get_optional_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await relationship_aggregator.playlist_detail(db, parse_id(playlist_id, "playlist id"), viewer_id)


@router.patch("/{playlist_id}", response_model=PlaylistRecord)
async def update_playlist(
    playlist_id: str,
    data: PlaylistUpdate,
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    playlist = await playlist_service.update_playlist(
        db, parse_id(playlist_id, "playlist id"), viewer_id, **data.model_dump()
    )
    return playlist_to_dict(playlist)


@router.delete("/{playlist_id}", response_model=DeleteResponse)
async def delete_playlist(
    playlist_id: str,
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await playlist_service.delete_playlist(db, parse_id(playlist_id, "playlist id"), viewer_id)


@router.post("/{playlist_id}/videos/{video_id}", response_model=PlaylistRecord)
async def add_video(
    playlist_id: str,
    video_id: str,
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    playlist = await playlist_service.add_video_to_playlist(
        db, parse_id(playlist_id, "playlist id"), parse_id(video_id, "video id"), viewer_id
    )
    return playlist_to_dict(playlist)


@router.delete("/{playlist_id}/videos/{video_id}", response_model=PlaylistRecord)
async def remove_video(
    playlist_id: str,
    video_id: str,
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    playlist = await playlist_service.remove_video_from_playlist(
        db, parse_id(playlist_id, "playlist id"), parse_id(video_id, "video id"), viewer_id
    )
    return playlist_to_dict(playlist)
