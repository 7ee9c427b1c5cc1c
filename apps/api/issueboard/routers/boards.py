from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from issueboard.access import require_project_access
from issueboard.assembly import BoardAssembler
from issueboard.db import transaction
from issueboard.deps import get_assembler, get_current_user, get_db, get_ordering
from issueboard.models import Project, UserProfile
from issueboard.ordering import ColumnLayout, ItemLayout, OrderingEngine
from issueboard.projects import create_board
from issueboard.schemas import ColumnLayoutIn, ProjectBoardCreateIn, ProjectBoardOut, ProjectBoardUpdateIn
from issueboard.store import get_by_public_id

router = APIRouter(prefix="/project-board", tags=["boards"])


def _layout(columns: list[ColumnLayoutIn]) -> list[ColumnLayout]:
  return [
    ColumnLayout(
      column_id=c.id,
      position=c.position,
      name=c.name,
      description=c.description,
      items=[ItemLayout(item_id=i.id, position=i.position) for i in c.items],
    )
    for c in columns
  ]


@router.post("", response_model=ProjectBoardOut, status_code=status.HTTP_201_CREATED)
async def create(
  payload: ProjectBoardCreateIn,
  user: UserProfile = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  assembler: BoardAssembler = Depends(get_assembler),
) -> ProjectBoardOut:
  async with transaction(db):
    project = await get_by_public_id(db, Project, payload.projectId, label="Project")
    await require_project_access(db, user.id, project.id)
    board = await create_board(db, project=project, name=payload.name, description=payload.description)
  return await assembler.read(board.public_id)


@router.get("/{board_id}", response_model=ProjectBoardOut)
async def get_board(board_id: str, assembler: BoardAssembler = Depends(get_assembler)) -> ProjectBoardOut:
  return await assembler.read(board_id)


@router.patch("/{board_id}", response_model=ProjectBoardOut)
async def update_board(
  board_id: str,
  payload: ProjectBoardUpdateIn,
  db: AsyncSession = Depends(get_db),
  assembler: BoardAssembler = Depends(get_assembler),
) -> ProjectBoardOut:
  async with transaction(db):
    out = await assembler.apply(
      board_id,
      name=payload.name,
      description=payload.description,
      columns=_layout(payload.columns) if payload.columns is not None else None,
    )
  return out


@router.delete("/{board_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_board(board_id: str, db: AsyncSession = Depends(get_db), ordering: OrderingEngine = Depends(get_ordering)) -> Response:
  async with transaction(db):
    await ordering.delete_board(board_id)
  return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{board_id}/renumber", response_model=ProjectBoardOut)
async def renumber_board(
  board_id: str,
  db: AsyncSession = Depends(get_db),
  ordering: OrderingEngine = Depends(get_ordering),
  assembler: BoardAssembler = Depends(get_assembler),
) -> ProjectBoardOut:
  async with transaction(db):
    await ordering.renumber_board(board_id)
  return await assembler.read(board_id)
