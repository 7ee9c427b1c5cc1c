from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from issueboard.config import Settings


def build_engine(cfg: Settings) -> AsyncEngine:
  kwargs: dict[str, Any] = {"echo": cfg.database_echo, "future": True}
  if not cfg.database_url.startswith("sqlite"):
    kwargs.update(pool_size=10, max_overflow=5, pool_pre_ping=True, pool_recycle=3600)
  return create_async_engine(cfg.database_url, **kwargs)


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
  return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def transaction(db: AsyncSession) -> AsyncIterator[AsyncSession]:
  # Commit on success, roll back everything on any error (including domain errors).
  try:
    yield db
    await db.commit()
  except Exception:
    await db.rollback()
    raise
