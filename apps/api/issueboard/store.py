from __future__ import annotations

import uuid
from typing import TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from issueboard.errors import NotFound
from issueboard.models import Base

ModelT = TypeVar("ModelT", bound=Base)


def _label(model: type[Base], label: str | None) -> str:
  return label or model.__name__


def is_public_id(value: str | None) -> bool:
  if not value:
    return False
  try:
    uuid.UUID(str(value))
  except ValueError:
    return False
  return True


async def get_by_public_id(
  db: AsyncSession,
  model: type[ModelT],
  public_id: str,
  *,
  label: str | None = None,
  for_update: bool = False,
) -> ModelT:
  if not is_public_id(public_id):
    raise NotFound(f"{_label(model, label)} not found")
  q = select(model).where(model.public_id == public_id)
  if for_update:
    q = q.with_for_update()
  res = await db.execute(q)
  obj = res.scalar_one_or_none()
  if obj is None:
    raise NotFound(f"{_label(model, label)} not found")
  return obj


async def get_by_id(
  db: AsyncSession,
  model: type[ModelT],
  id_: int,
  *,
  label: str | None = None,
  for_update: bool = False,
) -> ModelT:
  q = select(model).where(model.id == id_)
  if for_update:
    q = q.with_for_update()
  res = await db.execute(q)
  obj = res.scalar_one_or_none()
  if obj is None:
    raise NotFound(f"{_label(model, label)} not found")
  return obj


async def public_ids_for(db: AsyncSession, model: type[Base], ids: list[int]) -> dict[int, str]:
  if not ids:
    return {}
  res = await db.execute(select(model.id, model.public_id).where(model.id.in_(set(ids))))
  return {row.id: row.public_id for row in res.all()}
