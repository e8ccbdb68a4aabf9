"""
Playlist management — owner-scoped writes over an ordered, deduplicated
list of videos. Reads with per-video projections live in the aggregator.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import Conflict, InvalidArgument, NotFound
from app.models.models import Playlist, PlaylistItem, PlaylistPrivacy, User, Video

logger = logging.getLogger(__name__)


def parse_privacy(value: Any) -> PlaylistPrivacy:
    if value is None or value == "":
        return PlaylistPrivacy.PUBLIC
    try:
        return PlaylistPrivacy(str(getattr(value, "value", value)).lower())
    except ValueError:
        raise InvalidArgument(f"Invalid playlist privacy: {value}")


def playlist_to_dict(playlist: Playlist) -> Dict[str, Any]:
    return {
        "id": playlist.id,
        "name": playlist.name,
        "description": playlist.description,
        "privacy": playlist.privacy.value,
        "owner_id": playlist.owner_id,
        "video_ids": [item.video_id for item in playlist.items],
        "created_at": playlist.created_at,
        "updated_at": playlist.updated_at,
    }


class PlaylistService:

    async def _owned_playlist(self, db: AsyncSession, playlist_id: uuid.UUID, owner_id: uuid.UUID) -> Playlist:
        playlist = await db.scalar(
            select(Playlist).where(Playlist.id == playlist_id, Playlist.owner_id == owner_id)
        )
        if playlist is None:
            raise NotFound("Playlist not found")
        return playlist

    async def create_playlist(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        name: Optional[str],
        description: Optional[str] = "",
        privacy: Any = None,
    ) -> Playlist:
        if not name or not name.strip():
            raise InvalidArgument("Playlist name field is required")

        playlist = Playlist(
            name=name.strip(),
            description=(description or "").strip(),
            privacy=parse_privacy(privacy),
            owner_id=owner_id,
        )
        db.add(playlist)
        await db.flush()
        await db.refresh(playlist, ["items"])
        return playlist

    async def list_user_playlists(
        self, db: AsyncSession, user_id: uuid.UUID, viewer_id: Optional[uuid.UUID] = None
    ) -> List[Dict[str, Any]]:
        """Playlists of ``user_id``; private ones only when the viewer owns them."""
        if await db.get(User, user_id) is None:
            raise NotFound("User not found")

        total_videos = (
            select(func.count(PlaylistItem.id))
            .where(PlaylistItem.playlist_id == Playlist.id)
            .correlate_except(PlaylistItem)
            .scalar_subquery()
        )
        stmt = (
            select(
                Playlist.id,
                Playlist.name,
                Playlist.description,
                Playlist.privacy,
                Playlist.created_at,
                Playlist.updated_at,
                total_videos.label("total_videos"),
            )
            .where(Playlist.owner_id == user_id)
            .order_by(Playlist.created_at.desc())
        )
        if viewer_id != user_id:
            stmt = stmt.where(Playlist.privacy == PlaylistPrivacy.PUBLIC)

        rows = []
        for row in (await db.execute(stmt)).mappings().all():
            row = dict(row)
            row["privacy"] = row["privacy"].value
            rows.append(row)
        return rows

    async def add_video_to_playlist(
        self, db: AsyncSession, playlist_id: uuid.UUID, video_id: uuid.UUID, owner_id: uuid.UUID
    ) -> Playlist:
        playlist = await self._owned_playlist(db, playlist_id, owner_id)
        if await db.get(Video, video_id) is None:
            raise NotFound("Video not found")
        if any(item.video_id == video_id for item in playlist.items):
            raise Conflict("This video already exists in the playlist")

        next_position = max((item.position for item in playlist.items), default=0) + 1
        playlist.items.append(PlaylistItem(video_id=video_id, position=next_position))
        await db.flush()
        logger.debug(f"Playlist {playlist_id} += video {video_id} at {next_position}")
        return playlist

    async def remove_video_from_playlist(
        self, db: AsyncSession, playlist_id: uuid.UUID, video_id: uuid.UUID, owner_id: uuid.UUID
    ) -> Playlist:
        playlist = await self._owned_playlist(db, playlist_id, owner_id)
        for item in list(playlist.items):
            if item.video_id == video_id:
                playlist.items.remove(item)
        await db.flush()
        return playlist

    async def update_playlist(
        self,
        db: AsyncSession,
        playlist_id: uuid.UUID,
        owner_id: uuid.UUID,
        name: Optional[str] = None,
        description: Optional[str] = None,
        privacy: Any = None,
    ) -> Playlist:
        playlist = await self._owned_playlist(db, playlist_id, owner_id)
        if name is not None:
            if not name.strip():
                raise InvalidArgument("Playlist name cannot be blank")
            playlist.name = name.strip()
        if description is not None:
            playlist.description = description.strip()
        if privacy is not None:
            playlist.privacy = parse_privacy(privacy)
        await db.flush()
        await db.refresh(playlist)
        return playlist

    async def delete_playlist(self, db: AsyncSession, playlist_id: uuid.UUID, owner_id: uuid.UUID) -> Dict[str, Any]:
        playlist = await self._owned_playlist(db, playlist_id, owner_id)
        await db.delete(playlist)
        await db.flush()
        return {"id": playlist_id, "deleted": True}


playlist_service = PlaylistService()
