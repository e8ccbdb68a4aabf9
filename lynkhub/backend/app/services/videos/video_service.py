"""
Video lifecycle — publish, edit, publish toggle and cascade delete.

Uploads happen before ``publish_video`` is called; this service only
records the resulting media/thumbnail URLs. Deletion removes the video and
every dependent row in one transaction, then asks the storage collaborator
to drop the media. Storage failures are logged, never rolled back.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import Internal, InvalidArgument, NotFound
from app.core.events import RelationEventType, event_hub
from app.core.storage import MediaStorage
from app.models.models import (
    Comment, Like, LikeTargetKind, PlaylistItem, Video, View, WatchHistoryEntry,
)

logger = logging.getLogger(__name__)
settings = get_settings()


def _checked_text(value: Optional[str], name: str, min_len: int, max_len: int) -> str:
    text = (value or "").strip()
    if not text:
        raise InvalidArgument(f"{name} is required")
    if not min_len <= len(text) <= max_len:
        raise InvalidArgument(f"{name} must be between {min_len} and {max_len} characters")
    return text


def video_to_dict(video: Video) -> Dict[str, Any]:
    return {
        "id": video.id,
        "owner_id": video.owner_id,
        "title": video.title,
        "description": video.description,
        "media_url": video.media_url,
        "thumbnail_url": video.thumbnail_url,
        "duration": video.duration,
        "is_published": video.is_published,
        "created_at": video.created_at,
        "updated_at": video.updated_at,
    }


class VideoService:

    async def _owned_video(self, db: AsyncSession, video_id: uuid.UUID, owner_id: uuid.UUID) -> Video:
        video = await db.scalar(
            select(Video).where(Video.id == video_id, Video.owner_id == owner_id)
        )
        if video is None:
            raise NotFound("Video not found or not owned by you")
        return video

    async def publish_video(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        title: Optional[str],
        description: Optional[str],
        media_url: Optional[str],
        thumbnail_url: Optional[str],
        duration: float = 0.0,
    ) -> Video:
        title = _checked_text(title, "Title", settings.video_title_min, settings.video_title_max)
        description = _checked_text(
            description, "Description",
            settings.video_description_min, settings.video_description_max,
        )
        if not media_url or not thumbnail_url:
            raise InvalidArgument("Video file and thumbnail are required")

        video = Video(
            owner_id=owner_id,
            title=title,
            description=description,
            media_url=media_url,
            thumbnail_url=thumbnail_url,
            duration=float(duration or 0.0),
            is_published=True,
        )
        db.add(video)
        await db.flush()
        logger.info(f"Video published id={video.id} owner={owner_id}")

        event_hub.defer_relation(
            db,
            RelationEventType.VIDEO_PUBLISHED,
            actor_id=owner_id,
            target_kind="video",
            target_id=video.id,
            data={"title": video.title},
        )
        return video

    async def update_video(
        self,
        db: AsyncSession,
        video_id: uuid.UUID,
        owner_id: uuid.UUID,
        title: Optional[str] = None,
        description: Optional[str] = None,
        thumbnail_url: Optional[str] = None,
    ) -> Video:
        if title is None and description is None and thumbnail_url is None:
            raise InvalidArgument("Nothing to update")

        video = await self._owned_video(db, video_id, owner_id)
        if title is not None:
            video.title = _checked_text(title, "Title", settings.video_title_min, settings.video_title_max)
        if description is not None:
            video.description = _checked_text(
                description, "Description",
                settings.video_description_min, settings.video_description_max,
            )
        if thumbnail_url:
            video.thumbnail_url = thumbnail_url
        await db.flush()
        await db.refresh(video)
        return video

    async def toggle_publish_status(self, db: AsyncSession, video_id: uuid.UUID, owner_id: uuid.UUID) -> Video:
        video = await self._owned_video(db, video_id, owner_id)
        video.is_published = not video.is_published
        await db.flush()
        await db.refresh(video)
        logger.info(f"Video {video_id} is_published={video.is_published}")
        return video

    # ── Cascade delete ───────────────────────────────────────────────────

    async def delete_video(
        self,
        db: AsyncSession,
        video_id: uuid.UUID,
        owner_id: uuid.UUID,
        storage: Optional[MediaStorage] = None,
    ) -> Dict[str, Any]:
        """
        Delete a video with its Likes, Views, Comments (and their Likes),
        playlist entries and watch-history entries as one unit.

        Any store failure rolls the whole session back and surfaces
        Internal. Media removal runs afterwards and is best-effort.
        """
        video = await self._owned_video(db, video_id, owner_id)
        media_urls: List[str] = [u for u in (video.thumbnail_url, video.media_url) if u]

        comment_ids = select(Comment.id).where(Comment.video_id == video_id)
        steps = [
            delete(Like).where(Like.target_kind == LikeTargetKind.VIDEO, Like.target_id == video_id),
            delete(Like).where(Like.target_kind == LikeTargetKind.COMMENT, Like.target_id.in_(comment_ids)),
            delete(View).where(View.video_id == video_id),
            delete(Comment).where(Comment.video_id == video_id),
            delete(PlaylistItem).where(PlaylistItem.video_id == video_id),
            delete(WatchHistoryEntry).where(WatchHistoryEntry.video_id == video_id),
            delete(Video).where(Video.id == video_id),
        ]

        try:
            for stmt in steps:
                await db.execute(stmt.execution_options(synchronize_session=False))
            await db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Cascade delete failed for video {video_id}: {e}", exc_info=True)
            await db.rollback()
            raise Internal("Failed to delete video")

        db.expunge(video)

        if storage is not None:
            for url in media_urls:
                try:
                    await storage.delete(url)
                except Exception as e:
                    logger.warning(f"Media delete failed url={url}: {e}")

        logger.info(f"Video deleted id={video_id} owner={owner_id}")
        return {"id": video_id, "deleted": True}


video_service = VideoService()
