"""
Composable join steps for the aggregation services.

Each helper returns a labelled column expression or a joined select so
the read projections share one definition of "views", "likes",
"is_subscribed" and friends instead of repeating subqueries inline.

Every count/exists is a correlated subquery that excludes its own table
from correlation; the outer select may already range over the same table
(e.g. liked videos select FROM likes).
"""
from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import ColumnElement, Select, false, func, select
from sqlalchemy.orm import aliased

from app.models.models import Comment, Like, LikeTargetKind, Subscription, User, Video, View

Owner = aliased(User, name="owner")

OWNER_FIELDS = ("id", "username", "display_name", "avatar_url")


# ── Counts ───────────────────────────────────────────────────────────────

def view_count(video_col: Any) -> ColumnElement:
    return (
        select(func.count(View.id))
        .where(View.video_id == video_col)
        .correlate_except(View)
        .scalar_subquery()
    )


def like_count(target_col: Any, kind: LikeTargetKind) -> ColumnElement:
    return (
        select(func.count(Like.id))
        .where(Like.target_id == target_col, Like.target_kind == kind)
        .correlate_except(Like)
        .scalar_subquery()
    )


def comment_count(video_col: Any) -> ColumnElement:
    return (
        select(func.count(Comment.id))
        .where(Comment.video_id == video_col)
        .correlate_except(Comment)
        .scalar_subquery()
    )


def video_count(owner_col: Any) -> ColumnElement:
    return (
        select(func.count(Video.id))
        .where(Video.owner_id == owner_col)
        .correlate_except(Video)
        .scalar_subquery()
    )


def subscriber_count(channel_col: Any) -> ColumnElement:
    return (
        select(func.count(Subscription.id))
        .where(Subscription.channel_id == channel_col)
        .correlate_except(Subscription)
        .scalar_subquery()
    )


def subscribed_to_count(subscriber_col: Any) -> ColumnElement:
    return (
        select(func.count(Subscription.id))
        .where(Subscription.subscriber_id == subscriber_col)
        .correlate_except(Subscription)
        .scalar_subquery()
    )


# ── Viewer-relative flags ────────────────────────────────────────────────

def is_liked(target_col: Any, kind: LikeTargetKind, viewer_id: Optional[uuid.UUID]) -> ColumnElement:
    if viewer_id is None:
        return false()
    return (
        select(Like.id)
        .where(
            Like.target_id == target_col,
            Like.target_kind == kind,
            Like.user_id == viewer_id,
        )
        .correlate_except(Like)
        .exists()
    )


def is_subscribed(channel_col: Any, viewer_id: Optional[uuid.UUID]) -> ColumnElement:
    if viewer_id is None:
        return false()
    return (
        select(Subscription.id)
        .where(
            Subscription.channel_id == channel_col,
            Subscription.subscriber_id == viewer_id,
        )
        .correlate_except(Subscription)
        .exists()
    )


# ── Owner join ───────────────────────────────────────────────────────────

def owner_columns(owner: Any = Owner) -> List[ColumnElement]:
    return [getattr(owner, name).label(f"owner_{name}") for name in OWNER_FIELDS]


def join_owner(stmt: Select, owner_fk: Any, owner: Any = Owner) -> Select:
    return stmt.join(owner, owner.id == owner_fk)


def nest_owner(row: Dict[str, Any], *extra: str) -> Dict[str, Any]:
    """Move ``owner_*`` columns into a nested ``owner`` dict."""
    owner = {}
    for name in OWNER_FIELDS + extra:
        key = f"owner_{name}"
        if key in row:
            owner[name] = row.pop(key)
    row["owner"] = owner
    return row


def video_summary_columns() -> List[ColumnElement]:
    return [
        Video.id,
        Video.title,
        Video.thumbnail_url,
        Video.duration,
        Video.is_published,
        Video.created_at,
    ]


def as_flags(row: Dict[str, Any], *names: str) -> Dict[str, Any]:
    """Normalise EXISTS results (0/1 on SQLite, bool on PostgreSQL)."""
    for name in names:
        if name in row:
            row[name] = bool(row[name])
    return row


def engagement_rate(likes: int, comments: int, views: int) -> float:
    """(likes + comments) / views * 100, defined as 0 when there are no views."""
    if not views:
        return 0.0
    return round((likes + comments) / views * 100, 2)
