"""Async database engine, session factory and request-scoped sessions."""
from __future__ import annotations

from typing import AsyncGenerator, Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.core.config import get_settings
from app.core.events import event_hub

settings = get_settings()


class Base(DeclarativeBase):
    pass


engine = create_async_engine(settings.database_url, echo=settings.sql_echo, future=True)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


def session_dependency(
    factory: async_sessionmaker[AsyncSession],
) -> Callable[[], AsyncGenerator[AsyncSession, None]]:
    """
    Build a request-scoped session dependency over ``factory``.

    The session commits on success and rolls back on error. Relation events
    the request deferred are emitted only once the commit has gone through.
    """

    async def get_db() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                event_hub.discard_pending(session)
                await session.rollback()
                raise
            await event_hub.flush_pending(session)

    return get_db


get_db = session_dependency(async_session_factory)


async def init_db() -> None:
    """Create tables if they don't exist."""
    import app.models.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
