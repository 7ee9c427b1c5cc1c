from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from issueboard.access import require_project_access
from issueboard.db import transaction
from issueboard.deps import get_current_user, get_db, get_ordering
from issueboard.models import ProjectBoard, ProjectBoardColumn, UserProfile
from issueboard.ordering import OrderingEngine
from issueboard.schemas import ProjectBoardColumnCreateIn, ProjectBoardColumnOut, ProjectBoardColumnUpdateIn
from issueboard.store import get_by_id, get_by_public_id

router = APIRouter(prefix="/project-board-column", tags=["columns"])


async def _column_out(db: AsyncSession, c: ProjectBoardColumn) -> ProjectBoardColumnOut:
  board = await get_by_id(db, ProjectBoard, c.board_id, label="Project board")
  return ProjectBoardColumnOut(
    id=c.public_id,
    name=c.name,
    description=c.description,
    position=c.position,
    projectBoardId=board.public_id,
  )


@router.post("", response_model=ProjectBoardColumnOut, status_code=status.HTTP_201_CREATED)
async def create(
  payload: ProjectBoardColumnCreateIn,
  db: AsyncSession = Depends(get_db),
  ordering: OrderingEngine = Depends(get_ordering),
) -> ProjectBoardColumnOut:
  async with transaction(db):
    c = await ordering.add_column(payload.projectBoardId, name=payload.name, description=payload.description, position=payload.position)
  return await _column_out(db, c)


@router.get("/{column_id}", response_model=ProjectBoardColumnOut)
async def get_column(column_id: str, user: UserProfile = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> ProjectBoardColumnOut:
  c = await get_by_public_id(db, ProjectBoardColumn, column_id, label="Project board column")
  board = await get_by_id(db, ProjectBoard, c.board_id, label="Project board")
  await require_project_access(db, user.id, board.project_id)
  return await _column_out(db, c)


@router.patch("/{column_id}", response_model=ProjectBoardColumnOut)
async def update_column(
  column_id: str,
  payload: ProjectBoardColumnUpdateIn,
  db: AsyncSession = Depends(get_db),
  ordering: OrderingEngine = Depends(get_ordering),
) -> ProjectBoardColumnOut:
  async with transaction(db):
    c = await ordering.update_column(column_id, name=payload.name, description=payload.description, position=payload.position)
  return await _column_out(db, c)


@router.delete("/{column_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_column(column_id: str, db: AsyncSession = Depends(get_db), ordering: OrderingEngine = Depends(get_ordering)) -> Response:
  async with transaction(db):
    await ordering.delete_column(column_id)
  return Response(status_code=status.HTTP_204_NO_CONTENT)
