from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from issueboard.access import require_project_access
from issueboard.db import transaction
from issueboard.deps import get_current_user, get_db, get_ordering
from issueboard.errors import InvalidState
from issueboard.models import Issue, ProjectBoard, ProjectBoardColumn, ProjectBoardColumnItem, UserProfile
from issueboard.ordering import OrderingEngine
from issueboard.schemas import IdOut, ProjectBoardColumnItemCreateIn, ProjectBoardColumnItemRefOut, ProjectBoardColumnItemUpdateIn
from issueboard.store import get_by_id, get_by_public_id

router = APIRouter(prefix="/project-board-column-item", tags=["column-items"])


async def _item_out(db: AsyncSession, item: ProjectBoardColumnItem) -> ProjectBoardColumnItemRefOut:
  issue = await get_by_id(db, Issue, item.issue_id, label="Issue")
  column = await get_by_id(db, ProjectBoardColumn, item.column_id, label="Project board column")
  return ProjectBoardColumnItemRefOut(
    id=item.public_id,
    issueId=issue.public_id,
    projectBoardColumnId=column.public_id,
    position=item.position,
  )


@router.post("", response_model=IdOut, status_code=status.HTTP_201_CREATED)
async def create(
  payload: ProjectBoardColumnItemCreateIn,
  db: AsyncSession = Depends(get_db),
  ordering: OrderingEngine = Depends(get_ordering),
) -> IdOut:
  async with transaction(db):
    column_id = payload.projectBoardColumnId
    if column_id is None:
      if payload.projectBoardId is None:
        raise InvalidState("A board column or a board is required to place an issue")
      column_id = (await ordering.first_column(payload.projectBoardId)).public_id
    item = await ordering.place(payload.issueId, column_id, payload.position)
  return IdOut(id=item.public_id)


@router.get("/{item_id}", response_model=ProjectBoardColumnItemRefOut)
async def get_item(item_id: str, user: UserProfile = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> ProjectBoardColumnItemRefOut:
  item = await get_by_public_id(db, ProjectBoardColumnItem, item_id, label="Project board item")
  column = await get_by_id(db, ProjectBoardColumn, item.column_id, label="Project board column")
  board = await get_by_id(db, ProjectBoard, column.board_id, label="Project board")
  await require_project_access(db, user.id, board.project_id)
  return await _item_out(db, item)


@router.patch("/{item_id}", response_model=ProjectBoardColumnItemRefOut)
async def move_item(
  item_id: str,
  payload: ProjectBoardColumnItemUpdateIn,
  db: AsyncSession = Depends(get_db),
  ordering: OrderingEngine = Depends(get_ordering),
) -> ProjectBoardColumnItemRefOut:
  async with transaction(db):
    item = await ordering.move(item_id, payload.projectBoardColumnId, payload.position)
  return await _item_out(db, item)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_item(item_id: str, db: AsyncSession = Depends(get_db), ordering: OrderingEngine = Depends(get_ordering)) -> Response:
  async with transaction(db):
    await ordering.remove(item_id)
  return Response(status_code=status.HTTP_204_NO_CONTENT)
