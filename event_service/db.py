from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from event_service.core.config import settings
from event_service.models import Base


def _normalize_url(database_url: str) -> str:
    url = database_url.strip()
    if not url:
        raise RuntimeError("DATABASE_URL is set but empty")
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+psycopg://", 1)
    elif url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def create_engine(database_url: str | None = None, **kwargs) -> AsyncEngine:
    url = _normalize_url(database_url or settings.database_url)
    if url.startswith("postgresql"):
        kwargs.setdefault("pool_size", 10)
        kwargs.setdefault("max_overflow", 20)
        kwargs.setdefault("pool_recycle", 1800)
    kwargs.setdefault("pool_pre_ping", True)
    return create_async_engine(url, future=True, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Records outlive their session; the gateway hands them back detached.
    return async_sessionmaker(bind=engine, expire_on_commit=False)


async def create_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
