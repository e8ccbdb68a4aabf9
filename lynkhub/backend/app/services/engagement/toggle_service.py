"""
LynkHub Engagement Toggle — flips the existence of a symmetric relation.

Likes (on videos, comments and posts) and subscriptions share one decision
point: look up the relation row; if present delete it, otherwise create it.
No call path both creates and deletes.

Concurrent identical toggles from the same actor are not serialised; a
tight double-click can net out to no change. Accepted.
"""
from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple, Type

from prometheus_client import Counter
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import InvalidArgument, NotFound
from app.core.events import RelationEventType, event_hub
from app.models.models import Base, Comment, Like, LikeTargetKind, Post, Subscription, User, Video

logger = logging.getLogger(__name__)

TOGGLES = Counter(
    "lynkhub_engagement_toggles_total",
    "Engagement toggles by relation kind and outcome",
    ["kind", "result"],
)


class RelationKind(str, enum.Enum):
    VIDEO = "video"
    COMMENT = "comment"
    POST = "post"
    CHANNEL = "channel"


# kind → (model, owner column) used to validate the target and address events
LIKE_TARGETS: Dict[LikeTargetKind, Tuple[Type[Base], str]] = {
    LikeTargetKind.VIDEO: (Video, "owner_id"),
    LikeTargetKind.COMMENT: (Comment, "owner_id"),
    LikeTargetKind.POST: (Post, "author_id"),
}

_KIND_ALIASES = {
    "video": LikeTargetKind.VIDEO,
    "comment": LikeTargetKind.COMMENT,
    "post": LikeTargetKind.POST,
    "lynk": LikeTargetKind.POST,
    "tweet": LikeTargetKind.POST,
}


def parse_like_kind(value: Any) -> LikeTargetKind:
    if isinstance(value, LikeTargetKind):
        return value
    kind = _KIND_ALIASES.get(str(value or "").strip().lower())
    if kind is None:
        raise InvalidArgument(f"Unsupported like target kind: {value}")
    return kind


@dataclass
class ToggleOutcome:
    result: str  # "added" | "removed"
    record: Optional[Any] = None

    @property
    def added(self) -> bool:
        return self.result == "added"

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"result": self.result}
        if self.record is not None:
            out["record"] = {
                c.name: getattr(self.record, c.key)
                for c in self.record.__mapper__.columns
            }
        return out


class EngagementToggleService:

    async def _toggle(
        self,
        db: AsyncSession,
        existing_stmt: Select,
        factory: Callable[[], Any],
    ) -> ToggleOutcome:
        existing = await db.scalar(existing_stmt.limit(1))
        if existing is not None:
            await db.delete(existing)
            await db.flush()
            return ToggleOutcome(result="removed")

        record = factory()
        db.add(record)
        await db.flush()
        return ToggleOutcome(result="added", record=record)

    # ── Likes ────────────────────────────────────────────────────────────

    async def toggle_like(
        self, db: AsyncSession, user_id: uuid.UUID, kind: Any, target_id: uuid.UUID
    ) -> ToggleOutcome:
        kind = parse_like_kind(kind)
        model, owner_attr = LIKE_TARGETS[kind]

        target = await db.get(model, target_id)
        if target is None:
            raise NotFound(f"{kind.value.capitalize()} not found")

        outcome = await self._toggle(
            db,
            select(Like).where(
                Like.user_id == user_id,
                Like.target_id == target_id,
                Like.target_kind == kind,
            ),
            lambda: Like(user_id=user_id, target_id=target_id, target_kind=kind),
        )
        TOGGLES.labels(kind=kind.value, result=outcome.result).inc()
        logger.info(f"Like {outcome.result} user={user_id} {kind.value}={target_id}")

        if outcome.added:
            event_hub.defer_relation(
                db,
                RelationEventType.LIKE_ADDED,
                actor_id=user_id,
                target_kind=kind.value,
                target_id=target_id,
                recipients=[getattr(target, owner_attr)],
            )
        return outcome

    # ── Subscriptions ────────────────────────────────────────────────────

    async def toggle_subscription(
        self, db: AsyncSession, subscriber_id: uuid.UUID, channel_id: uuid.UUID
    ) -> ToggleOutcome:
        """Subscriber is always the caller; the channel is the target that must exist."""
        if subscriber_id == channel_id:
            raise InvalidArgument("Cannot subscribe to your own channel")

        if await db.get(User, channel_id) is None:
            raise NotFound("Channel not found")

        outcome = await self._toggle(
            db,
            select(Subscription).where(
                Subscription.subscriber_id == subscriber_id,
                Subscription.channel_id == channel_id,
            ),
            lambda: Subscription(subscriber_id=subscriber_id, channel_id=channel_id),
        )
        TOGGLES.labels(kind=RelationKind.CHANNEL.value, result=outcome.result).inc()
        logger.info(f"Subscription {outcome.result} subscriber={subscriber_id} channel={channel_id}")

        if outcome.added:
            event_hub.defer_relation(
                db,
                RelationEventType.SUBSCRIPTION_ADDED,
                actor_id=subscriber_id,
                target_kind=RelationKind.CHANNEL.value,
                target_id=channel_id,
                recipients=[channel_id],
            )
        return outcome

    # ── Dispatcher ───────────────────────────────────────────────────────

    async def toggle(
        self, db: AsyncSession, kind: Any, user_id: uuid.UUID, target_id: uuid.UUID
    ) -> ToggleOutcome:
        if str(getattr(kind, "value", kind)).lower() == RelationKind.CHANNEL.value:
            return await self.toggle_subscription(db, user_id, target_id)
        return await self.toggle_like(db, user_id, kind, target_id)

    async def relation_count(
        self, db: AsyncSession, kind: Any, user_id: uuid.UUID, target_id: uuid.UUID
    ) -> int:
        """Number of relation rows for (user, target, kind); 0 or 1 outside races."""
        if str(getattr(kind, "value", kind)).lower() == RelationKind.CHANNEL.value:
            stmt = select(func.count(Subscription.id)).where(
                Subscription.subscriber_id == user_id,
                Subscription.channel_id == target_id,
            )
        else:
            stmt = select(func.count(Like.id)).where(
                Like.user_id == user_id,
                Like.target_id == target_id,
                Like.target_kind == parse_like_kind(kind),
            )
        return await db.scalar(stmt) or 0


engagement_toggle_service = EngagementToggleService()
