"""
Short-form posts ("Lynks").

Posts are up to 280 characters, may reply to another post and carry the
hashtags and @mentions found in their text. Likes on posts use the shared
Like table (kind=post) so they toggle through the engagement service like
every other like.
"""
from __future__ import annotations

import logging
import re
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import InvalidArgument, NotFound
from app.models.models import Like, LikeTargetKind, Post, User
from app.services.aggregation.pagination import coerce_page_args, paginate
from app.services.aggregation.query_builders import (
    as_flags,
    is_liked,
    join_owner,
    like_count,
    nest_owner,
    owner_columns,
)

logger = logging.getLogger(__name__)
settings = get_settings()

HASHTAG_RE = re.compile(r"(?<!\w)#(\w+)")
MENTION_RE = re.compile(r"(?<!\w)@([A-Za-z0-9_.]+)")
MEDIA_TYPES = {"image", "video", "gif"}


def extract_hashtags(content: str) -> List[str]:
    seen: List[str] = []
    for tag in HASHTAG_RE.findall(content):
        tag = tag.lower()
        if tag not in seen:
            seen.append(tag)
    return seen


def extract_mentions(content: str) -> List[str]:
    seen: List[str] = []
    for name in MENTION_RE.findall(content):
        name = name.rstrip(".").lower()
        if name and name not in seen:
            seen.append(name)
    return seen


def _clean_media(media: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    cleaned = []
    for item in media or []:
        if not item.get("url"):
            raise InvalidArgument("Media entries need a url")
        media_type = item.get("type") or "image"
        if media_type not in MEDIA_TYPES:
            raise InvalidArgument(f"Unsupported media type: {media_type}")
        cleaned.append({"url": item["url"], "type": media_type})
    return cleaned


class PostService:

    def _projection(self, viewer_id: Optional[uuid.UUID]):
        return join_owner(
            select(
                Post.id,
                Post.content,
                Post.media,
                Post.parent_id,
                Post.hashtags,
                Post.mentions,
                Post.created_at,
                like_count(Post.id, LikeTargetKind.POST).label("likes"),
                is_liked(Post.id, LikeTargetKind.POST, viewer_id).label("is_liked"),
                *owner_columns(),
            ),
            Post.author_id,
        )

    @staticmethod
    def _shape(row: Dict[str, Any]) -> Dict[str, Any]:
        row = nest_owner(as_flags(dict(row), "is_liked"))
        row["author"] = row.pop("owner")
        row["is_reply"] = row["parent_id"] is not None
        return row

    async def create_post(
        self,
        db: AsyncSession,
        author_id: uuid.UUID,
        content: Optional[str],
        media: Optional[List[Dict[str, Any]]] = None,
        parent_id: Optional[uuid.UUID] = None,
    ) -> Post:
        content = (content or "").strip()
        if not content:
            raise InvalidArgument("Post content is required")
        if len(content) > settings.post_max_length:
            raise InvalidArgument(f"Post content cannot exceed {settings.post_max_length} characters")

        if parent_id is not None and await db.get(Post, parent_id) is None:
            raise NotFound("Parent post not found")

        mentions: List[str] = []
        names = extract_mentions(content)
        if names:
            result = await db.execute(select(User.id).where(User.username.in_(names)))
            mentions = [str(user_id) for user_id in result.scalars().all()]

        post = Post(
            author_id=author_id,
            content=content,
            media=_clean_media(media),
            parent_id=parent_id,
            hashtags=extract_hashtags(content),
            mentions=mentions,
        )
        db.add(post)
        await db.flush()
        logger.debug(f"Post {post.id} created by {author_id} reply_to={parent_id}")
        return post

    async def get_post_thread(
        self, db: AsyncSession, post_id: uuid.UUID, viewer_id: Optional[uuid.UUID]
    ) -> Dict[str, Any]:
        """A post with its direct replies, oldest reply first."""
        row = (await db.execute(
            self._projection(viewer_id).where(Post.id == post_id)
        )).mappings().first()
        if row is None:
            raise NotFound("Post not found")

        replies = (await db.execute(
            self._projection(viewer_id)
            .where(Post.parent_id == post_id)
            .order_by(Post.created_at)
        )).mappings().all()

        thread = self._shape(row)
        thread["replies"] = [self._shape(r) for r in replies]
        thread["replies_count"] = len(replies)
        return thread

    async def list_user_posts(
        self, db: AsyncSession, username: str, viewer_id: Optional[uuid.UUID]
    ) -> List[Dict[str, Any]]:
        author = await db.scalar(select(User).where(User.username == (username or "").strip().lower()))
        if author is None:
            raise NotFound("User not found")

        rows = (await db.execute(
            self._projection(viewer_id)
            .where(Post.author_id == author.id)
            .order_by(Post.created_at.desc())
        )).mappings().all()
        return [self._shape(r) for r in rows]

    async def list_feed(
        self, db: AsyncSession, viewer_id: Optional[uuid.UUID], page: Any = None, limit: Any = None
    ) -> Dict[str, Any]:
        """Top-level posts, newest first."""
        page, limit = coerce_page_args(page, limit)
        stmt = (
            self._projection(viewer_id)
            .where(Post.parent_id.is_(None))
            .order_by(Post.created_at.desc())
        )
        return await paginate(db, stmt, page, limit, transform=self._shape)

    async def delete_post(self, db: AsyncSession, post_id: uuid.UUID, author_id: uuid.UUID) -> Dict[str, Any]:
        post = await db.scalar(select(Post).where(Post.id == post_id, Post.author_id == author_id))
        if post is None:
            raise NotFound("Post not found or not owned by you")

        # Replies outlive their parent as top-level posts.
        await db.execute(
            update(Post).where(Post.parent_id == post_id).values(parent_id=None)
            .execution_options(synchronize_session=False)
        )
        await db.execute(
            delete(Like)
            .where(Like.target_kind == LikeTargetKind.POST, Like.target_id == post_id)
            .execution_options(synchronize_session=False)
        )
        await db.delete(post)
        await db.flush()
        return {"id": post_id, "deleted": True}


post_service = PostService()
