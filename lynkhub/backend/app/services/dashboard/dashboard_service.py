"""
LynkHub Channel Dashboard Builder

Composes the owner-facing analytics report out of independent queries:
  - Overview totals + engagement rate + average video length
  - Per-video performance (top by views, most recent)
  - Calendar-day trend series (views, likes, comments, subscribers, uploads)
  - Engagement leaderboards (most liked, most commented)
  - Searchable per-video listing and subscriber audience insights

Each metric is its own query and may observe a different point in time
than its siblings. The report is approximate by design; a caller that
needs one snapshot should ask for a single metric family instead.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import ColumnElement, Select, desc, func, literal_column, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import NotFound
from app.models.models import Comment, Like, LikeTargetKind, Subscription, User, Video, View
from app.services.aggregation.pagination import coerce_page_args, paginate
from app.services.aggregation.query_builders import (
    comment_count,
    engagement_rate,
    like_count,
    video_summary_columns,
    view_count,
)
from app.services.aggregation.relationship_aggregator import resolve_sort

logger = logging.getLogger(__name__)
settings = get_settings()

# strftime patterns per dialect for day / month buckets
_BUCKET_FORMATS = {
    "sqlite": {"day": "%Y-%m-%d", "month": "%Y-%m"},
    "postgresql": {"day": "YYYY-MM-DD", "month": "YYYY-MM"},
}

LISTING_SORT_FIELDS = {
    "created_at": Video.created_at, "createdAt": Video.created_at,
    "title": Video.title,
    "duration": Video.duration,
    "views": "views",
    "likes": "likes_count",
    "comments": "comments_count",
}


def time_bucket(db: AsyncSession, column: Any, unit: str = "day") -> ColumnElement:
    """Render ``column`` as a sortable calendar bucket string."""
    dialect = db.get_bind().dialect.name
    formats = _BUCKET_FORMATS.get(dialect, _BUCKET_FORMATS["postgresql"])
    # Inline literal so SELECT and GROUP BY render the identical expression.
    pattern = literal_column(f"'{formats[unit]}'")
    if dialect == "sqlite":
        return func.strftime(pattern, column)
    return func.to_char(column, pattern)


def _percentages(rows: List[Any], key: str, total: int) -> List[Dict[str, Any]]:
    out = []
    for value, count in rows:
        out.append({
            key: getattr(value, "value", value),
            "count": count,
            "percentage": round(count / total * 100, 2) if total else 0.0,
        })
    return sorted(out, key=lambda r: r["count"], reverse=True)


class ChannelDashboardService:

    async def _require_owner(self, db: AsyncSession, owner_id: uuid.UUID) -> User:
        owner = await db.get(User, owner_id)
        if owner is None:
            raise NotFound("Channel does not exist")
        return owner

    # ── Overview ─────────────────────────────────────────────────────────

    async def _overview(self, db: AsyncSession, owner_id: uuid.UUID) -> Dict[str, Any]:
        video_stats = (await db.execute(
            select(
                func.count(Video.id),
                func.coalesce(func.avg(Video.duration), 0.0),
            ).where(Video.owner_id == owner_id)
        )).one()

        total_views = await db.scalar(
            select(func.count(View.id))
            .join(Video, Video.id == View.video_id)
            .where(Video.owner_id == owner_id)
        ) or 0
        total_likes = await db.scalar(
            select(func.count(Like.id))
            .join(Video, Video.id == Like.target_id)
            .where(Like.target_kind == LikeTargetKind.VIDEO, Video.owner_id == owner_id)
        ) or 0
        total_comments = await db.scalar(
            select(func.count(Comment.id))
            .join(Video, Video.id == Comment.video_id)
            .where(Video.owner_id == owner_id)
        ) or 0
        total_subscribers = await db.scalar(
            select(func.count(Subscription.id)).where(Subscription.channel_id == owner_id)
        ) or 0

        return {
            "total_videos": video_stats[0] or 0,
            "total_views": total_views,
            "total_likes": total_likes,
            "total_comments": total_comments,
            "total_subscribers": total_subscribers,
            "engagement_rate": engagement_rate(total_likes, total_comments, total_views),
            "average_video_length": round(float(video_stats[1] or 0.0), 2),
        }

    # ── Per-video performance ────────────────────────────────────────────

    def _performance_stmt(self, owner_id: uuid.UUID) -> Select:
        return select(
            *video_summary_columns(),
            view_count(Video.id).label("views"),
            like_count(Video.id, LikeTargetKind.VIDEO).label("likes_count"),
            comment_count(Video.id).label("comments_count"),
        ).where(Video.owner_id == owner_id)

    async def _video_rows(self, db: AsyncSession, stmt: Select) -> List[Dict[str, Any]]:
        rows = []
        for row in (await db.execute(stmt)).mappings().all():
            row = dict(row)
            row["engagement_rate"] = engagement_rate(
                row["likes_count"], row["comments_count"], row["views"]
            )
            rows.append(row)
        return rows

    async def _top_videos(self, db: AsyncSession, owner_id: uuid.UUID, order_label: str, n: int):
        stmt = self._performance_stmt(owner_id).order_by(desc(order_label)).limit(n)
        return await self._video_rows(db, stmt)

    # ── Trends ───────────────────────────────────────────────────────────

    async def _series(
        self,
        db: AsyncSession,
        created_col: Any,
        count_col: Any,
        base: Select,
        buckets: int,
        unit: str = "day",
    ) -> List[Dict[str, Any]]:
        """Most recent ``buckets`` non-empty buckets, oldest first."""
        bucket = time_bucket(db, created_col, unit)
        stmt = (
            base.with_only_columns(bucket.label("date"), func.count(count_col).label("count"))
            .group_by(bucket)
            .order_by(bucket.desc())
            .limit(buckets)
        )
        rows = (await db.execute(stmt)).all()
        return [{"date": date, "count": count} for date, count in reversed(rows)]

    async def _trends(self, db: AsyncSession, owner_id: uuid.UUID) -> Dict[str, List[Dict[str, Any]]]:
        n = settings.dashboard_trend_buckets
        return {
            "views": await self._series(
                db, View.created_at, View.id,
                select(View.id).join(Video, Video.id == View.video_id)
                .where(Video.owner_id == owner_id),
                n,
            ),
            "likes": await self._series(
                db, Like.created_at, Like.id,
                select(Like.id).join(Video, Video.id == Like.target_id)
                .where(Like.target_kind == LikeTargetKind.VIDEO, Video.owner_id == owner_id),
                n,
            ),
            "comments": await self._series(
                db, Comment.created_at, Comment.id,
                select(Comment.id).join(Video, Video.id == Comment.video_id)
                .where(Video.owner_id == owner_id),
                n,
            ),
            "subscribers": await self._series(
                db, Subscription.created_at, Subscription.id,
                select(Subscription.id).where(Subscription.channel_id == owner_id),
                n,
            ),
            "uploads": await self._series(
                db, Video.created_at, Video.id,
                select(Video.id).where(Video.owner_id == owner_id),
                n,
            ),
        }

    # ═══════════════════════════════════════════════════════════════════════
    # Public API
    # ═══════════════════════════════════════════════════════════════════════

    async def build_dashboard(self, db: AsyncSession, owner_id: uuid.UUID) -> Dict[str, Any]:
        """Full analytics report for the channel owned by ``owner_id``."""
        await self._require_owner(db, owner_id)
        top_n = settings.dashboard_top_n

        overview = await self._overview(db, owner_id)
        top_videos = await self._top_videos(db, owner_id, "views", top_n)
        recent_videos = await self._video_rows(
            db,
            self._performance_stmt(owner_id).order_by(Video.created_at.desc()).limit(top_n),
        )
        trends = await self._trends(db, owner_id)
        most_liked = await self._top_videos(db, owner_id, "likes_count", top_n)
        most_commented = await self._top_videos(db, owner_id, "comments_count", top_n)

        logger.debug(
            f"Dashboard built owner={owner_id} videos={overview['total_videos']} "
            f"views={overview['total_views']}"
        )
        return {
            "overview": overview,
            "top_videos": top_videos,
            "recent_videos": recent_videos,
            "trends": trends,
            "leaderboards": {
                "most_liked": most_liked,
                "most_commented": most_commented,
            },
        }

    async def build_video_listing(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        page: Any = None,
        limit: Any = None,
        sort_field: Optional[str] = None,
        sort_direction: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        await self._require_owner(db, owner_id)
        order = resolve_sort(LISTING_SORT_FIELDS, sort_field, sort_direction)
        page, limit = coerce_page_args(page, limit)

        stmt = self._performance_stmt(owner_id).add_columns(Video.description)
        if search and search.strip():
            stmt = stmt.where(Video.title.icontains(search.strip(), autoescape=True))
        stmt = stmt.order_by(order)

        def annotate(row: Dict[str, Any]) -> Dict[str, Any]:
            row["engagement_rate"] = engagement_rate(
                row["likes_count"], row["comments_count"], row["views"]
            )
            return row

        return await paginate(db, stmt, page, limit, transform=annotate)

    async def build_audience_insights(self, db: AsyncSession, owner_id: uuid.UUID) -> Dict[str, Any]:
        """Subscriber demographics and month-bucketed subscriber growth."""
        await self._require_owner(db, owner_id)

        subscribers = (
            select(User.id)
            .join(Subscription, Subscription.subscriber_id == User.id)
            .where(Subscription.channel_id == owner_id)
        )
        total = await db.scalar(
            select(func.count()).select_from(subscribers.subquery())
        ) or 0

        async def breakdown(column: Any, key: str, *criteria: Any) -> List[Dict[str, Any]]:
            rows = (await db.execute(
                subscribers.with_only_columns(column, func.count(User.id))
                .where(*criteria)
                .group_by(column)
            )).all()
            return _percentages(rows, key, total)

        insights: Dict[str, Any] = {
            "total_subscribers": total,
            "age_brackets": await breakdown(User.age_bracket, "age_bracket"),
            "genders": await breakdown(User.gender, "gender"),
        }
        locations = await breakdown(User.country, "country", User.country.is_not(None))
        if locations:
            insights["locations"] = locations

        growth = await self._series(
            db, Subscription.created_at, Subscription.id,
            select(Subscription.id).where(Subscription.channel_id == owner_id),
            settings.audience_growth_months,
            unit="month",
        )
        insights["growth"] = [{"month": g["date"], "new_subscribers": g["count"]} for g in growth]
        return insights


dashboard_service = ChannelDashboardService()
