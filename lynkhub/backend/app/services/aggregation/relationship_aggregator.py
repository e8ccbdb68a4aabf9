"""
LynkHub Relationship Aggregator

Viewer-relative, denormalised read projections over the Entity Store:
  - Channel profile (video/subscriber counts, is_subscribed)
  - Video detail (views, likes, is_liked, owner with subscription state)
  - Paged public video listing and per-video comment threads
  - Liked videos, subscribed channels, channel subscribers
  - Watch history and playlist detail

A missing root entity is NotFound; an empty dependent collection is a
valid, empty result.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import asc, desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import InvalidArgument, NotFound
from app.models.models import (
    Comment, Like, LikeTargetKind, Playlist, PlaylistItem, PlaylistPrivacy,
    Subscription, User, Video, View, WatchHistoryEntry,
)
from app.services.aggregation.pagination import coerce_page_args, paginate
from app.services.aggregation.query_builders import (
    Owner,
    as_flags,
    is_liked,
    is_subscribed,
    join_owner,
    like_count,
    nest_owner,
    owner_columns,
    subscribed_to_count,
    subscriber_count,
    video_count,
    video_summary_columns,
    view_count,
)
from app.services.history.watch_history import watch_history_service

logger = logging.getLogger(__name__)

SORT_DIRECTIONS = {"asc": asc, "desc": desc}

# Accept the camelCase names web clients send as well as column names.
VIDEO_SORT_FIELDS = {
    "created_at": Video.created_at, "createdAt": Video.created_at,
    "title": Video.title,
    "duration": Video.duration,
    "views": "views",
}

COMMENT_SORT_FIELDS = {
    "created_at": Comment.created_at, "createdAt": Comment.created_at,
    "likes": "likes",
}


def resolve_sort(
    fields: Dict[str, Any],
    sort_field: Optional[str],
    sort_direction: Optional[str],
    required: bool = False,
    default: Tuple[str, str] = ("created_at", "desc"),
):
    """Translate a (field, direction) pair into an ORDER BY clause."""
    if not sort_field or not sort_direction:
        if required:
            raise InvalidArgument("sort field and sort direction are required")
        sort_field = sort_field or default[0]
        sort_direction = sort_direction or default[1]

    column = fields.get(sort_field)
    if column is None:
        raise InvalidArgument(f"Unsupported sort field: {sort_field}")
    direction = SORT_DIRECTIONS.get(str(sort_direction).lower())
    if direction is None:
        raise InvalidArgument(f"Unsupported sort direction: {sort_direction}")
    return direction(column)


class RelationshipAggregator:
    """Joined, derived read views for a given viewer."""

    # ═══════════════════════════════════════════════════════════════════════
    # Channels
    # ═══════════════════════════════════════════════════════════════════════

    async def channel_profile(
        self, db: AsyncSession, username: str, viewer_id: Optional[uuid.UUID]
    ) -> Dict[str, Any]:
        if not username or not username.strip():
            raise InvalidArgument("Username is missing")

        stmt = select(
            User.id,
            User.username,
            User.display_name,
            User.email,
            User.avatar_url,
            User.cover_image_url,
            video_count(User.id).label("total_videos"),
            subscriber_count(User.id).label("subscribers_count"),
            subscribed_to_count(User.id).label("channel_subscribed_to"),
            is_subscribed(User.id, viewer_id).label("is_subscribed"),
        ).where(User.username == username.strip().lower())

        row = (await db.execute(stmt)).mappings().first()
        if row is None:
            raise NotFound("Channel does not exist")
        return as_flags(dict(row), "is_subscribed")

    async def channel_videos(self, db: AsyncSession, username: str) -> list:
        """All videos of a channel, each with its views count."""
        channel = await db.scalar(select(User).where(User.username == username.strip().lower()))
        if channel is None:
            raise NotFound("Channel does not exist")

        stmt = (
            select(
                *video_summary_columns(),
                view_count(Video.id).label("views"),
            )
            .where(Video.owner_id == channel.id)
            .order_by(Video.created_at.desc())
        )
        rows = (await db.execute(stmt)).mappings().all()
        owner = {
            "id": channel.id,
            "username": channel.username,
            "display_name": channel.display_name,
            "avatar_url": channel.avatar_url,
        }
        return [{**dict(row), "owner": owner} for row in rows]

    async def subscribed_channels(self, db: AsyncSession, viewer_id: uuid.UUID) -> Dict[str, Any]:
        stmt = (
            select(User.id, User.username, User.display_name, User.avatar_url)
            .join(Subscription, Subscription.channel_id == User.id)
            .where(Subscription.subscriber_id == viewer_id)
            .order_by(Subscription.created_at)
        )
        channels = [dict(r) for r in (await db.execute(stmt)).mappings().all()]
        return {
            "subscribed_channels": channels,
            "subscribed_channels_count": len(channels),
        }

    async def channel_subscribers(self, db: AsyncSession, channel_id: uuid.UUID) -> Dict[str, Any]:
        channel = await db.get(User, channel_id)
        if channel is None:
            raise NotFound("Channel does not exist")

        result = await db.execute(
            select(Subscription)
            .where(Subscription.channel_id == channel_id)
            .order_by(Subscription.created_at)
        )
        subscriptions = result.scalars().all()
        return {
            "id": channel.id,
            "username": channel.username,
            "display_name": channel.display_name,
            "email": channel.email,
            "avatar_url": channel.avatar_url,
            "cover_image_url": channel.cover_image_url,
            "subscribers_count": len(subscriptions),
            "subscribers": [
                {
                    "id": s.id,
                    "subscriber_id": s.subscriber_id,
                    "channel_id": s.channel_id,
                    "created_at": s.created_at,
                }
                for s in subscriptions
            ],
        }

    # ═══════════════════════════════════════════════════════════════════════
    # Videos
    # ═══════════════════════════════════════════════════════════════════════

    async def _record_view(self, db: AsyncSession, video_id: uuid.UUID, viewer_id: uuid.UUID) -> bool:
        existing = await db.scalar(
            select(View.id).where(View.video_id == video_id, View.viewer_id == viewer_id).limit(1)
        )
        if existing is not None:
            return False
        db.add(View(video_id=video_id, viewer_id=viewer_id))
        await db.flush()
        return True

    async def video_detail(
        self, db: AsyncSession, video_id: uuid.UUID, viewer_id: uuid.UUID
    ) -> Dict[str, Any]:
        """
        Full video projection relative to the viewer.

        Side effects: the first call per (video, viewer) creates a View row;
        every call ensures the video is in the viewer's watch history.
        """
        video = await db.get(Video, video_id)
        if video is None:
            raise NotFound("Video not found")

        await self._record_view(db, video_id, viewer_id)

        stmt = join_owner(
            select(
                Video.id,
                Video.title,
                Video.description,
                Video.media_url,
                Video.thumbnail_url,
                Video.duration,
                Video.is_published,
                Video.created_at,
                view_count(Video.id).label("views"),
                like_count(Video.id, LikeTargetKind.VIDEO).label("likes"),
                is_liked(Video.id, LikeTargetKind.VIDEO, viewer_id).label("is_liked"),
                *owner_columns(),
                subscriber_count(Owner.id).label("owner_subscribers_count"),
                is_subscribed(Owner.id, viewer_id).label("owner_is_subscribed"),
            ),
            Video.owner_id,
        ).where(Video.id == video_id)

        row = (await db.execute(stmt)).mappings().first()
        if row is None:
            raise NotFound("Video owner not found")

        await watch_history_service.record_watch(db, video_id, viewer_id)

        detail = as_flags(dict(row), "is_liked", "owner_is_subscribed")
        return nest_owner(detail, "subscribers_count", "is_subscribed")

    async def list_videos(
        self,
        db: AsyncSession,
        sort_field: Optional[str],
        sort_direction: Optional[str],
        page: Any = None,
        limit: Any = None,
    ) -> Dict[str, Any]:
        order = resolve_sort(VIDEO_SORT_FIELDS, sort_field, sort_direction, required=True)
        page, limit = coerce_page_args(page, limit)

        stmt = join_owner(
            select(
                *video_summary_columns(),
                view_count(Video.id).label("views"),
                *owner_columns(),
            ),
            Video.owner_id,
        ).where(Video.is_published.is_(True)).order_by(order)

        return await paginate(db, stmt, page, limit, transform=nest_owner)

    async def video_comments(
        self,
        db: AsyncSession,
        video_id: uuid.UUID,
        viewer_id: Optional[uuid.UUID],
        sort_field: Optional[str] = None,
        sort_direction: Optional[str] = None,
        page: Any = None,
        limit: Any = None,
    ) -> Dict[str, Any]:
        order = resolve_sort(COMMENT_SORT_FIELDS, sort_field, sort_direction)
        page, limit = coerce_page_args(page, limit)

        if await db.get(Video, video_id) is None:
            raise NotFound("Video not found")

        stmt = join_owner(
            select(
                Comment.id,
                Comment.content,
                Comment.video_id,
                Comment.created_at,
                Comment.updated_at,
                like_count(Comment.id, LikeTargetKind.COMMENT).label("likes"),
                is_liked(Comment.id, LikeTargetKind.COMMENT, viewer_id).label("is_liked"),
                *owner_columns(),
            ),
            Comment.owner_id,
        ).where(Comment.video_id == video_id).order_by(order)

        return await paginate(
            db, stmt, page, limit,
            transform=lambda row: nest_owner(as_flags(row, "is_liked")),
        )

    async def liked_videos(self, db: AsyncSession, viewer_id: uuid.UUID) -> Dict[str, Any]:
        stmt = join_owner(
            select(
                *video_summary_columns(),
                view_count(Video.id).label("views"),
                Like.created_at.label("liked_at"),
                *owner_columns(),
            )
            .select_from(Like)
            .join(Video, Video.id == Like.target_id),
            Video.owner_id,
        ).where(
            Like.user_id == viewer_id,
            Like.target_kind == LikeTargetKind.VIDEO,
        ).order_by(Like.created_at.desc())

        videos = [nest_owner(dict(r)) for r in (await db.execute(stmt)).mappings().all()]
        return {"liked_videos": videos, "total_liked_videos": len(videos)}

    async def watch_history(self, db: AsyncSession, viewer_id: uuid.UUID) -> list:
        if await db.get(User, viewer_id) is None:
            raise NotFound("User not found")

        stmt = join_owner(
            select(
                *video_summary_columns(),
                Video.description,
                view_count(Video.id).label("views"),
                WatchHistoryEntry.added_at,
                *owner_columns(),
            )
            .select_from(WatchHistoryEntry)
            .join(Video, Video.id == WatchHistoryEntry.video_id),
            Video.owner_id,
        ).where(WatchHistoryEntry.user_id == viewer_id).order_by(WatchHistoryEntry.position)

        return [nest_owner(dict(r)) for r in (await db.execute(stmt)).mappings().all()]

    # ═══════════════════════════════════════════════════════════════════════
    # Playlists
    # ═══════════════════════════════════════════════════════════════════════

    async def playlist_detail(
        self, db: AsyncSession, playlist_id: uuid.UUID, viewer_id: Optional[uuid.UUID] = None
    ) -> Dict[str, Any]:
        playlist = await db.get(Playlist, playlist_id)
        if playlist is None:
            raise NotFound("Playlist not found")
        if playlist.privacy == PlaylistPrivacy.PRIVATE and playlist.owner_id != viewer_id:
            raise NotFound("Playlist not found")

        owner = await db.get(User, playlist.owner_id)

        stmt = join_owner(
            select(
                *video_summary_columns(),
                view_count(Video.id).label("views"),
                PlaylistItem.position,
                *owner_columns(),
            )
            .select_from(PlaylistItem)
            .join(Video, Video.id == PlaylistItem.video_id),
            Video.owner_id,
        ).where(PlaylistItem.playlist_id == playlist_id).order_by(PlaylistItem.position)

        videos = [nest_owner(dict(r)) for r in (await db.execute(stmt)).mappings().all()]
        return {
            "id": playlist.id,
            "name": playlist.name,
            "description": playlist.description,
            "privacy": playlist.privacy.value,
            "created_at": playlist.created_at,
            "owner": {
                "id": owner.id,
                "username": owner.username,
                "display_name": owner.display_name,
                "avatar_url": owner.avatar_url,
            } if owner else None,
            "videos": videos,
            "total_videos": len(videos),
        }


relationship_aggregator = RelationshipAggregator()
