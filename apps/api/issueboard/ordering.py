from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from issueboard.access import require_project_access
from issueboard.errors import Conflict, InvalidRelation, InvalidState, NotFound
from issueboard.models import Issue, ProjectBoard, ProjectBoardColumn, ProjectBoardColumnItem
from issueboard.store import get_by_id, get_by_public_id, is_public_id

logger = logging.getLogger(__name__)

Positioned = TypeVar("Positioned", ProjectBoardColumn, ProjectBoardColumnItem)


def order_key(row: ProjectBoardColumn | ProjectBoardColumnItem) -> tuple[int, int]:
  # Positions are sparse and may tie; insertion order (id) breaks ties.
  return (row.position, row.id)


def in_order(rows: Iterable[Positioned]) -> list[Positioned]:
  return sorted(rows, key=order_key)


@dataclass
class ItemLayout:
  item_id: str
  position: int


@dataclass
class ColumnLayout:
  column_id: str
  position: int
  items: list[ItemLayout] = field(default_factory=list)
  name: str | None = None
  description: str | None = None


class OrderingEngine:
  """Owns every write to column and column-item positions.

  Methods never commit; callers wrap them in ``transaction(db)`` so a failed
  step rolls back the whole request. Positions are ordering keys, not dense
  indexes: single moves touch one row and readers sort by ``order_key``.
  """

  def __init__(self, db: AsyncSession, *, actor_id: int) -> None:
    self.db = db
    self.actor_id = actor_id

  async def _board_for_column(self, column: ProjectBoardColumn, *, for_update: bool = False) -> ProjectBoard:
    return await get_by_id(self.db, ProjectBoard, column.board_id, label="Project board", for_update=for_update)

  async def _next_item_position(self, column_id: int) -> int:
    res = await self.db.execute(
      select(func.max(ProjectBoardColumnItem.position)).where(ProjectBoardColumnItem.column_id == column_id)
    )
    max_pos = res.scalar_one()
    return (max_pos + 1) if max_pos is not None else 0

  async def _next_column_position(self, board_id: int) -> int:
    res = await self.db.execute(select(func.max(ProjectBoardColumn.position)).where(ProjectBoardColumn.board_id == board_id))
    max_pos = res.scalar_one()
    return (max_pos + 1) if max_pos is not None else 0

  async def placement_for(self, issue_id: int, *, for_update: bool = False) -> ProjectBoardColumnItem | None:
    q = select(ProjectBoardColumnItem).where(ProjectBoardColumnItem.issue_id == issue_id)
    if for_update:
      q = q.with_for_update()
    res = await self.db.execute(q)
    return res.scalar_one_or_none()

  async def first_column(self, board_public_id: str) -> ProjectBoardColumn:
    board = await get_by_public_id(self.db, ProjectBoard, board_public_id, label="Project board")
    await require_project_access(self.db, self.actor_id, board.project_id)
    res = await self.db.execute(select(ProjectBoardColumn).where(ProjectBoardColumn.board_id == board.id))
    columns = in_order(res.scalars().all())
    if not columns:
      raise InvalidState("Project board has no columns")
    return columns[0]

  # Column items

  async def place(self, issue_public_id: str, column_public_id: str, position: int | None = None) -> ProjectBoardColumnItem:
    issue = await get_by_public_id(self.db, Issue, issue_public_id, label="Issue", for_update=True)
    column = await get_by_public_id(self.db, ProjectBoardColumn, column_public_id, label="Project board column")
    board = await self._board_for_column(column)
    await require_project_access(self.db, self.actor_id, issue.project_id)

    if await self.placement_for(issue.id) is not None:
      raise Conflict("Issue is already placed on a board")
    if issue.project_id != board.project_id:
      raise InvalidRelation("Issue and board column must belong to the same project")

    pos = position if position is not None else await self._next_item_position(column.id)
    item = ProjectBoardColumnItem(column_id=column.id, issue_id=issue.id, position=pos)
    self.db.add(item)
    try:
      await self.db.flush()
    except IntegrityError as exc:
      # Concurrent placement of the same issue won the unique constraint.
      raise Conflict("Issue is already placed on a board") from exc
    logger.info("placed issue=%s column=%s position=%s", issue.public_id, column.public_id, pos)
    return item

  async def move(
    self,
    item_public_id: str,
    target_column_public_id: str,
    target_position: int | None = None,
  ) -> ProjectBoardColumnItem:
    item = await get_by_public_id(self.db, ProjectBoardColumnItem, item_public_id, label="Project board item", for_update=True)
    source_column = await get_by_id(self.db, ProjectBoardColumn, item.column_id, label="Project board column")
    target_column = await get_by_public_id(self.db, ProjectBoardColumn, target_column_public_id, label="Project board column")
    board = await self._board_for_column(source_column)
    await require_project_access(self.db, self.actor_id, board.project_id)

    if target_column.board_id != source_column.board_id:
      raise InvalidRelation("Cannot move item to a column in a different board")

    if target_position is None:
      if target_column.id == source_column.id:
        target_position = item.position
      else:
        target_position = await self._next_item_position(target_column.id)
    item.column_id = target_column.id
    item.position = target_position
    await self.db.flush()
    logger.info(
      "moved item=%s from column=%s to column=%s position=%s",
      item.public_id,
      source_column.public_id,
      target_column.public_id,
      target_position,
    )
    return item

  async def remove(self, item_public_id: str) -> None:
    item = await get_by_public_id(self.db, ProjectBoardColumnItem, item_public_id, label="Project board item", for_update=True)
    column = await get_by_id(self.db, ProjectBoardColumn, item.column_id, label="Project board column")
    board = await self._board_for_column(column)
    await require_project_access(self.db, self.actor_id, board.project_id)
    await self.db.execute(delete(ProjectBoardColumnItem).where(ProjectBoardColumnItem.id == item.id))
    logger.info("removed item=%s from column=%s", item.public_id, column.public_id)

  async def unplace_issue(self, issue_id: int) -> bool:
    # Access is checked by the caller that owns the issue mutation.
    res = await self.db.execute(delete(ProjectBoardColumnItem).where(ProjectBoardColumnItem.issue_id == issue_id))
    return bool(res.rowcount)

  async def bulk_reorder(self, board_public_id: str, columns: Sequence[ColumnLayout]) -> ProjectBoard:
    """Apply a full board layout snapshot.

    Every column and every placed item of the board must appear exactly
    once. All references are validated before the first write, so a bad
    snapshot leaves the board untouched even before rollback.
    """
    board = await get_by_public_id(self.db, ProjectBoard, board_public_id, label="Project board", for_update=True)
    await require_project_access(self.db, self.actor_id, board.project_id)

    cres = await self.db.execute(select(ProjectBoardColumn).where(ProjectBoardColumn.board_id == board.id))
    board_columns = {c.public_id: c for c in cres.scalars().all()}
    ires = await self.db.execute(
      select(ProjectBoardColumnItem)
      .where(ProjectBoardColumnItem.column_id.in_([c.id for c in board_columns.values()]))
      .with_for_update()
    )
    board_items = {i.public_id: i for i in ires.scalars().all()}

    seen_columns: set[str] = set()
    seen_items: set[str] = set()
    for layout in columns:
      if layout.column_id in seen_columns:
        raise InvalidRelation("Column listed more than once in board layout")
      seen_columns.add(layout.column_id)
      if layout.column_id not in board_columns:
        await self._raise_foreign(ProjectBoardColumn, layout.column_id, "Project board column", "Column does not belong to this board")
      for item_layout in layout.items:
        if item_layout.item_id in seen_items:
          raise InvalidRelation("Item listed more than once in board layout")
        seen_items.add(item_layout.item_id)
        if item_layout.item_id not in board_items:
          await self._raise_foreign(ProjectBoardColumnItem, item_layout.item_id, "Project board item", "Item does not belong to this board")

    if seen_columns != set(board_columns) or seen_items != set(board_items):
      raise Conflict("Board layout is out of date; reload the board and retry")

    for layout in columns:
      column = board_columns[layout.column_id]
      column.position = layout.position
      if layout.name is not None:
        column.name = layout.name
      if layout.description is not None:
        column.description = layout.description
      for item_layout in layout.items:
        item = board_items[item_layout.item_id]
        item.column_id = column.id
        item.position = item_layout.position
    await self.db.flush()
    logger.info("reordered board=%s columns=%d items=%d", board.public_id, len(seen_columns), len(seen_items))
    return board

  async def _raise_foreign(self, model: type[ProjectBoardColumn] | type[ProjectBoardColumnItem], public_id: str, label: str, message: str) -> None:
    if not is_public_id(public_id):
      raise NotFound(f"{label} not found")
    res = await self.db.execute(select(model.id).where(model.public_id == public_id))
    if res.scalar_one_or_none() is None:
      raise NotFound(f"{label} not found")
    raise InvalidRelation(message)

  # Columns

  async def add_column(
    self,
    board_public_id: str,
    *,
    name: str,
    description: str = "",
    position: int | None = None,
  ) -> ProjectBoardColumn:
    board = await get_by_public_id(self.db, ProjectBoard, board_public_id, label="Project board")
    await require_project_access(self.db, self.actor_id, board.project_id)
    pos = position if position is not None else await self._next_column_position(board.id)
    column = ProjectBoardColumn(board_id=board.id, name=name, description=description, position=pos)
    self.db.add(column)
    await self.db.flush()
    return column

  async def update_column(
    self,
    column_public_id: str,
    *,
    name: str | None = None,
    description: str | None = None,
    position: int | None = None,
  ) -> ProjectBoardColumn:
    column = await get_by_public_id(self.db, ProjectBoardColumn, column_public_id, label="Project board column", for_update=True)
    board = await self._board_for_column(column)
    await require_project_access(self.db, self.actor_id, board.project_id)
    if name is not None:
      column.name = name
    if description is not None:
      column.description = description
    if position is not None:
      column.position = position
    await self.db.flush()
    return column

  async def delete_column(self, column_public_id: str) -> int:
    column = await get_by_public_id(self.db, ProjectBoardColumn, column_public_id, label="Project board column", for_update=True)
    board = await self._board_for_column(column)
    await require_project_access(self.db, self.actor_id, board.project_id)
    res = await self.db.execute(delete(ProjectBoardColumnItem).where(ProjectBoardColumnItem.column_id == column.id))
    await self.db.execute(delete(ProjectBoardColumn).where(ProjectBoardColumn.id == column.id))
    logger.info("deleted column=%s unplaced=%s", column.public_id, res.rowcount)
    return res.rowcount or 0

  async def delete_board(self, board_public_id: str) -> None:
    board = await get_by_public_id(self.db, ProjectBoard, board_public_id, label="Project board", for_update=True)
    await require_project_access(self.db, self.actor_id, board.project_id)
    column_ids = select(ProjectBoardColumn.id).where(ProjectBoardColumn.board_id == board.id)
    await self.db.execute(delete(ProjectBoardColumnItem).where(ProjectBoardColumnItem.column_id.in_(column_ids)))
    await self.db.execute(delete(ProjectBoardColumn).where(ProjectBoardColumn.board_id == board.id))
    await self.db.execute(delete(ProjectBoard).where(ProjectBoard.id == board.id))
    logger.info("deleted board=%s", board.public_id)

  async def renumber_board(self, board_public_id: str) -> ProjectBoard:
    """Rewrite positions as 0..n-1 in current display order.

    Display order is unchanged; this only reclaims spacing after many
    sparse moves.
    """
    board = await get_by_public_id(self.db, ProjectBoard, board_public_id, label="Project board", for_update=True)
    await require_project_access(self.db, self.actor_id, board.project_id)
    cres = await self.db.execute(select(ProjectBoardColumn).where(ProjectBoardColumn.board_id == board.id).with_for_update())
    columns = in_order(cres.scalars().all())
    for idx, column in enumerate(columns):
      column.position = idx
      ires = await self.db.execute(
        select(ProjectBoardColumnItem).where(ProjectBoardColumnItem.column_id == column.id).with_for_update()
      )
      for item_idx, item in enumerate(in_order(ires.scalars().all())):
        item.position = item_idx
    await self.db.flush()
    return board
