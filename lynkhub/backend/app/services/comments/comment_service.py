"""Comment writes. Threads with like counts are read through the aggregator."""
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import InvalidArgument, NotFound
from app.core.events import RelationEventType, event_hub
from app.models.models import Comment, Like, LikeTargetKind, Video

logger = logging.getLogger(__name__)


def comment_to_dict(comment: Comment) -> Dict[str, Any]:
    return {
        "id": comment.id,
        "content": comment.content,
        "video_id": comment.video_id,
        "owner_id": comment.owner_id,
        "created_at": comment.created_at,
        "updated_at": comment.updated_at,
    }


def _content(value: Optional[str]) -> str:
    content = (value or "").strip()
    if not content:
        raise InvalidArgument("Comment content is required")
    return content


class CommentService:

    async def _owned_comment(self, db: AsyncSession, comment_id: uuid.UUID, owner_id: uuid.UUID) -> Comment:
        comment = await db.scalar(
            select(Comment).where(Comment.id == comment_id, Comment.owner_id == owner_id)
        )
        if comment is None:
            raise NotFound("Comment not found or not owned by you")
        return comment

    async def add_comment(
        self, db: AsyncSession, video_id: uuid.UUID, owner_id: uuid.UUID, content: Optional[str]
    ) -> Comment:
        content = _content(content)
        video = await db.get(Video, video_id)
        if video is None:
            raise NotFound("Video not found")

        comment = Comment(content=content, video_id=video_id, owner_id=owner_id)
        db.add(comment)
        await db.flush()

        event_hub.defer_relation(
            db,
            RelationEventType.COMMENT_ADDED,
            actor_id=owner_id,
            target_kind="video",
            target_id=video_id,
            recipients=[video.owner_id],
            data={"comment_id": str(comment.id)},
        )
        return comment

    async def update_comment(
        self, db: AsyncSession, comment_id: uuid.UUID, owner_id: uuid.UUID, content: Optional[str]
    ) -> Comment:
        content = _content(content)
        comment = await self._owned_comment(db, comment_id, owner_id)
        comment.content = content
        await db.flush()
        await db.refresh(comment)
        return comment

    async def delete_comment(self, db: AsyncSession, comment_id: uuid.UUID, owner_id: uuid.UUID) -> Dict[str, Any]:
        comment = await self._owned_comment(db, comment_id, owner_id)
        await db.execute(
            delete(Like)
            .where(Like.target_kind == LikeTargetKind.COMMENT, Like.target_id == comment_id)
            .execution_options(synchronize_session=False)
        )
        await db.delete(comment)
        await db.flush()
        logger.debug(f"Comment {comment_id} deleted by {owner_id}")
        return {"id": comment_id, "deleted": True}


comment_service = CommentService()
