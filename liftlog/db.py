from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from .settings import get_settings

_SYNC_SQLITE = "sqlite:///"
_ASYNC_SQLITE = "sqlite+aiosqlite:///"


def async_database_url(url: Optional[str] = None) -> str:
    """Configured database URL with plain sqlite switched to the aiosqlite driver."""
    url = url or get_settings().database_url
    if url.startswith(_SYNC_SQLITE):
        return _ASYNC_SQLITE + url[len(_SYNC_SQLITE):]
    return url


def build_engine(url: str) -> AsyncEngine:
    if url.startswith(_ASYNC_SQLITE):
        # aiosqlite connections belong to the loop that opened them, so don't pool them
        return create_async_engine(url, poolclass=NullPool)
    return create_async_engine(url, pool_pre_ping=True)


engine = build_engine(async_database_url())

WorkoutSession = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    async with WorkoutSession() as session:
        yield session


async def init_db(reset: bool = False) -> None:
    """Create the workout table; ``reset`` drops every stored workout first."""
    async with engine.begin() as conn:
        if reset:
            await conn.run_sync(SQLModel.metadata.drop_all)
        await conn.run_sync(SQLModel.metadata.create_all)
