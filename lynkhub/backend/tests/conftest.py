"""pytest configuration and fixtures."""

import os

# Point the app at an in-memory SQLite database before any app import.
os.environ.setdefault("LYNKHUB_DATABASE_URL_OVERRIDE", "sqlite+aiosqlite://")
os.environ.setdefault("LYNKHUB_LOG_LEVEL", "WARNING")

import itertools  # noqa: E402
import uuid  # noqa: E402
from datetime import datetime, timedelta, timezone  # noqa: E402
from typing import AsyncGenerator, Optional  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

# Register all models on Base.metadata.
import app.models.models  # noqa: F401, E402
from app.core.database import Base  # noqa: E402
from app.core.events import event_hub  # noqa: E402
from app.models.models import (  # noqa: E402
    AgeBracket, Comment, Gender, Like, LikeTargetKind, Subscription, User, Video, View,
)

TEST_DB_URL = "sqlite+aiosqlite://"

_seq = itertools.count(1)


def make_engine():
    return create_async_engine(
        TEST_DB_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


@pytest.fixture
async def engine():
    engine = make_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with factory() as session:
        yield session


# ── Seed helpers ─────────────────────────────────────────────────────────

async def add_user(
    db: AsyncSession,
    username: Optional[str] = None,
    age_bracket: AgeBracket = AgeBracket.ADULT,
    gender: Gender = Gender.OTHER,
    country: Optional[str] = None,
) -> User:
    n = next(_seq)
    username = username or f"user{n}"
    user = User(
        username=username,
        email=f"{username}@example.com",
        display_name=f"User {n}",
        avatar_url=f"https://cdn.example.com/avatars/{n}.png",
        age_bracket=age_bracket,
        gender=gender,
        country=country,
    )
    db.add(user)
    await db.flush()
    return user


async def add_video(
    db: AsyncSession,
    owner: User,
    title: Optional[str] = None,
    created_at: Optional[datetime] = None,
    duration: float = 60.0,
    is_published: bool = True,
) -> Video:
    n = next(_seq)
    video = Video(
        owner_id=owner.id,
        title=title or f"Video {n}",
        description="A video description",
        media_url=f"https://cdn.example.com/videos/{n}.mp4",
        thumbnail_url=f"https://cdn.example.com/thumbs/{n}.jpg",
        duration=duration,
        is_published=is_published,
    )
    if created_at is not None:
        video.created_at = created_at
    db.add(video)
    await db.flush()
    return video


async def add_view(db: AsyncSession, video: Video, viewer: User, created_at: Optional[datetime] = None) -> View:
    view = View(video_id=video.id, viewer_id=viewer.id)
    if created_at is not None:
        view.created_at = created_at
    db.add(view)
    await db.flush()
    return view


async def add_like(db: AsyncSession, user: User, target_id: uuid.UUID, kind: LikeTargetKind) -> Like:
    like = Like(user_id=user.id, target_id=target_id, target_kind=kind)
    db.add(like)
    await db.flush()
    return like


async def add_comment(db: AsyncSession, video: Video, owner: User, content: str = "Nice video") -> Comment:
    comment = Comment(video_id=video.id, owner_id=owner.id, content=content)
    db.add(comment)
    await db.flush()
    return comment


async def add_subscription(
    db: AsyncSession, subscriber: User, channel: User, created_at: Optional[datetime] = None
) -> Subscription:
    sub = Subscription(subscriber_id=subscriber.id, channel_id=channel.id)
    if created_at is not None:
        sub.created_at = created_at
    db.add(sub)
    await db.flush()
    return sub


def days_ago(n: int) -> datetime:
    return datetime.now(timezone.utc).replace(hour=12, minute=0, second=0, microsecond=0) - timedelta(days=n)


async def commit(db: AsyncSession) -> None:
    """Commit the way a request does, releasing any deferred relation events."""
    await db.commit()
    await event_hub.flush_pending(db)
