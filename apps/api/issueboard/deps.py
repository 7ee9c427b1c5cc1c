from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import datetime, timezone

from fastapi import Cookie, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from issueboard.assembly import BoardAssembler
from issueboard.config import Settings
from issueboard.hierarchy import HierarchyGuard
from issueboard.models import Session as DbSession, UserProfile
from issueboard.ordering import OrderingEngine
from issueboard.security import SESSION_COOKIE_NAME, as_utc
from issueboard.status import StatusMigrator
from issueboard.storage import ObjectStorage


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
  async with request.app.state.sessionmaker() as session:
    yield session


def get_settings(request: Request) -> Settings:
  return request.app.state.settings


def get_storage(request: Request) -> ObjectStorage:
  return request.app.state.storage


async def get_current_user(
  db: AsyncSession = Depends(get_db),
  session_id: str | None = Cookie(default=None, alias=SESSION_COOKIE_NAME),
) -> UserProfile:
  if not session_id:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

  res = await db.execute(select(DbSession).where(DbSession.id == session_id))
  s = res.scalar_one_or_none()
  if not s:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session")
  if as_utc(s.expires_at) < datetime.now(timezone.utc):
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session expired")

  pres = await db.execute(select(UserProfile).where(UserProfile.credential_id == s.credential_id))
  u = pres.scalar_one_or_none()
  if not u:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
  return u


def get_ordering(user: UserProfile = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> OrderingEngine:
  return OrderingEngine(db, actor_id=user.id)


def get_assembler(user: UserProfile = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> BoardAssembler:
  return BoardAssembler(db, actor_id=user.id)


def get_status_migrator(user: UserProfile = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> StatusMigrator:
  return StatusMigrator(db, actor_id=user.id)


def get_hierarchy_guard(db: AsyncSession = Depends(get_db)) -> HierarchyGuard:
  return HierarchyGuard(db)
