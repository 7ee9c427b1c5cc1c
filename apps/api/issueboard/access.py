from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from issueboard.errors import Forbidden
from issueboard.models import project_members


async def has_project_access(db: AsyncSession, profile_id: int, project_id: int) -> bool:
  res = await db.execute(
    select(project_members.c.project_id).where(
      project_members.c.project_id == project_id,
      project_members.c.profile_id == profile_id,
    )
  )
  return res.first() is not None


async def require_project_access(db: AsyncSession, profile_id: int, project_id: int) -> None:
  if not await has_project_access(db, profile_id, project_id):
    raise Forbidden("Forbidden")
