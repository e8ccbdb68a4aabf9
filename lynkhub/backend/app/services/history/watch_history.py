"""
Watch History Tracker — the viewer's ordered, removable bookmark list.

Membership is a set: a re-watch never duplicates or reorders an entry.
View rows (used for counting) are owned by the aggregation layer and are
never touched here.
"""
from __future__ import annotations

import logging
import uuid
from typing import List

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.models import WatchHistoryEntry

logger = logging.getLogger(__name__)

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class WatchHistoryService:

    async def record_watch(self, db: AsyncSession, video_id: uuid.UUID, viewer_id: uuid.UUID) -> bool:
        """Append ``video_id`` to the viewer's history if absent. Returns True when added."""
        next_position = (
            select(func.coalesce(func.max(WatchHistoryEntry.position), 0) + 1)
            .where(WatchHistoryEntry.user_id == viewer_id)
            .scalar_subquery()
        )
        values = {
            "id": uuid.uuid4(),
            "user_id": viewer_id,
            "video_id": video_id,
            "position": next_position,
        }

        insert = _INSERTS.get(db.get_bind().dialect.name)
        if insert is not None:
            stmt = (
                insert(WatchHistoryEntry)
                .values(**values)
                .on_conflict_do_nothing(index_elements=["user_id", "video_id"])
            )
            result = await db.execute(stmt)
            return bool(result.rowcount)

        existing = await db.scalar(
            select(WatchHistoryEntry.id).where(
                WatchHistoryEntry.user_id == viewer_id,
                WatchHistoryEntry.video_id == video_id,
            )
        )
        if existing is not None:
            return False
        await db.execute(WatchHistoryEntry.__table__.insert().values(**values))
        return True

    async def remove_from_history(self, db: AsyncSession, video_id: uuid.UUID, viewer_id: uuid.UUID) -> bool:
        """Drop ``video_id`` from the viewer's history. Absent entries are a no-op."""
        result = await db.execute(
            delete(WatchHistoryEntry).where(
                WatchHistoryEntry.user_id == viewer_id,
                WatchHistoryEntry.video_id == video_id,
            )
        )
        removed = bool(result.rowcount)
        logger.debug(f"watch history remove video={video_id} viewer={viewer_id} removed={removed}")
        return removed

    async def history_ids(self, db: AsyncSession, viewer_id: uuid.UUID) -> List[uuid.UUID]:
        result = await db.execute(
            select(WatchHistoryEntry.video_id)
            .where(WatchHistoryEntry.user_id == viewer_id)
            .order_by(WatchHistoryEntry.position)
        )
        return list(result.scalars().all())


watch_history_service = WatchHistoryService()
