from __future__ import annotations

import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import make_issue, make_workspace
from issueboard.assembly import BoardAssembler
from issueboard.db import transaction
from issueboard.errors import Conflict, Forbidden, InvalidRelation, NotFound
from issueboard.models import Project, ProjectBoardColumn, ProjectBoardColumnItem
from issueboard.ordering import ColumnLayout, ItemLayout, OrderingEngine
from issueboard.projects import create_board
from issueboard.store import get_by_id


async def _column_item_ids(db: AsyncSession, board_id: str, actor_id: int) -> list[list[str]]:
  board = await BoardAssembler(db, actor_id=actor_id).read(board_id)
  return [[i.id for i in c.items] for c in board.columns]


@pytest.mark.anyio
async def test_place_without_position_appends_to_column(db: AsyncSession) -> None:
  ws = await make_workspace(db)
  a = await make_issue(db, ws, "A")
  b = await make_issue(db, ws, "B")
  engine = OrderingEngine(db, actor_id=ws.user_id)

  async with transaction(db):
    ia = await engine.place(a.public_id, ws.column_ids[0])
    ib = await engine.place(b.public_id, ws.column_ids[0])

  assert (ia.position, ib.position) == (0, 1)
  assert await _column_item_ids(db, ws.board_id, ws.user_id) == [[ia.public_id, ib.public_id], [], []]


@pytest.mark.anyio
async def test_place_twice_conflicts_and_creates_no_row(db: AsyncSession) -> None:
  ws = await make_workspace(db)
  a = await make_issue(db, ws, "A")
  engine = OrderingEngine(db, actor_id=ws.user_id)
  async with transaction(db):
    await engine.place(a.public_id, ws.column_ids[0])

  with pytest.raises(Conflict):
    async with transaction(db):
      await engine.place(a.public_id, ws.column_ids[1])

  res = await db.execute(select(func.count()).select_from(ProjectBoardColumnItem).where(ProjectBoardColumnItem.issue_id == a.id))
  assert res.scalar_one() == 1


@pytest.mark.anyio
async def test_place_into_other_project_is_invalid_relation(db: AsyncSession) -> None:
  ws = await make_workspace(db)
  other = await make_workspace(db, first_name="Bob")
  a = await make_issue(db, ws, "A")

  with pytest.raises(InvalidRelation):
    async with transaction(db):
      await OrderingEngine(db, actor_id=ws.user_id).place(a.public_id, other.column_ids[0])


@pytest.mark.anyio
async def test_place_by_non_member_is_forbidden(db: AsyncSession) -> None:
  ws = await make_workspace(db)
  outsider = await make_workspace(db, first_name="Eve")
  a = await make_issue(db, ws, "A")

  with pytest.raises(Forbidden):
    async with transaction(db):
      await OrderingEngine(db, actor_id=outsider.user_id).place(a.public_id, ws.column_ids[0])


@pytest.mark.anyio
async def test_move_within_column_to_front_reorders(db: AsyncSession) -> None:
  ws = await make_workspace(db)
  a = await make_issue(db, ws, "A")
  b = await make_issue(db, ws, "B")
  engine = OrderingEngine(db, actor_id=ws.user_id)
  async with transaction(db):
    item1 = await engine.place(a.public_id, ws.column_ids[0], 1)
    item2 = await engine.place(b.public_id, ws.column_ids[0], 2)

  async with transaction(db):
    await engine.move(item2.public_id, ws.column_ids[0], 0)

  assert (await _column_item_ids(db, ws.board_id, ws.user_id))[0] == [item2.public_id, item1.public_id]


@pytest.mark.anyio
async def test_move_to_other_column_without_position_appends(db: AsyncSession) -> None:
  ws = await make_workspace(db)
  a = await make_issue(db, ws, "A")
  b = await make_issue(db, ws, "B")
  engine = OrderingEngine(db, actor_id=ws.user_id)
  async with transaction(db):
    item_a = await engine.place(a.public_id, ws.column_ids[1], 7)
    item_b = await engine.place(b.public_id, ws.column_ids[0])

  async with transaction(db):
    moved = await engine.move(item_b.public_id, ws.column_ids[1])

  assert moved.position == 8
  assert (await _column_item_ids(db, ws.board_id, ws.user_id))[1] == [item_a.public_id, item_b.public_id]


@pytest.mark.anyio
async def test_move_to_column_of_another_board_is_rejected(db: AsyncSession) -> None:
  ws = await make_workspace(db)
  a = await make_issue(db, ws, "A")
  engine = OrderingEngine(db, actor_id=ws.user_id)
  project = await get_by_id(db, Project, ws.project_id)
  second = await create_board(db, project=project, name="Second", with_default_columns=True)
  res = await db.execute(select(ProjectBoardColumn.public_id).where(ProjectBoardColumn.board_id == second.id))
  foreign_column = res.scalars().first()
  await db.commit()
  async with transaction(db):
    item = await engine.place(a.public_id, ws.column_ids[0])

  with pytest.raises(InvalidRelation):
    async with transaction(db):
      await engine.move(item.public_id, foreign_column, 0)

  placement = await engine.placement_for(a.id)
  column = await get_by_id(db, ProjectBoardColumn, placement.column_id)
  assert column.public_id == ws.column_ids[0]


@pytest.mark.anyio
async def test_remove_leaves_issue_unplaced(db: AsyncSession) -> None:
  ws = await make_workspace(db)
  a = await make_issue(db, ws, "A")
  engine = OrderingEngine(db, actor_id=ws.user_id)
  async with transaction(db):
    item_id = (await engine.place(a.public_id, ws.column_ids[0])).public_id
  async with transaction(db):
    await engine.remove(item_id)

  assert await engine.placement_for(a.id) is None
  res = await db.execute(select(func.count()).select_from(ProjectBoardColumnItem))
  assert res.scalar_one() == 0

  with pytest.raises(NotFound):
    async with transaction(db):
      await engine.remove(item_id)


@pytest.mark.anyio
async def test_bulk_reorder_read_back_matches_submitted_layout(db: AsyncSession) -> None:
  ws = await make_workspace(db)
  engine = OrderingEngine(db, actor_id=ws.user_id)
  issues = [await make_issue(db, ws, t) for t in ("A", "B", "C")]
  async with transaction(db):
    items = [await engine.place(i.public_id, ws.column_ids[0]) for i in issues]
  a, b, c = (i.public_id for i in items)
  todo, doing, done = ws.column_ids

  layout = [
    ColumnLayout(column_id=done, position=0),
    ColumnLayout(column_id=doing, position=1, name="Doing", items=[ItemLayout(c, 0), ItemLayout(a, 1)]),
    ColumnLayout(column_id=todo, position=2, items=[ItemLayout(b, 0)]),
  ]
  async with transaction(db):
    await engine.bulk_reorder(ws.board_id, layout)

  board = await BoardAssembler(db, actor_id=ws.user_id).read(ws.board_id)
  assert [col.id for col in board.columns] == [done, doing, todo]
  assert [col.name for col in board.columns] == ["Done", "Doing", "To Do"]
  assert [[i.id for i in col.items] for col in board.columns] == [[], [c, a], [b]]


@pytest.mark.anyio
async def test_bulk_reorder_with_stale_snapshot_changes_nothing(db: AsyncSession) -> None:
  ws = await make_workspace(db)
  engine = OrderingEngine(db, actor_id=ws.user_id)
  a = await make_issue(db, ws, "A")
  async with transaction(db):
    item = await engine.place(a.public_id, ws.column_ids[0])
  before = await BoardAssembler(db, actor_id=ws.user_id).read(ws.board_id)

  # Done column missing from the snapshot.
  layout = [
    ColumnLayout(column_id=ws.column_ids[1], position=0, items=[ItemLayout(item.public_id, 0)]),
    ColumnLayout(column_id=ws.column_ids[0], position=1),
  ]
  with pytest.raises(Conflict):
    async with transaction(db):
      await engine.bulk_reorder(ws.board_id, layout)

  after = await BoardAssembler(db, actor_id=ws.user_id).read(ws.board_id)
  assert after == before


@pytest.mark.anyio
async def test_bulk_reorder_rejects_bad_references(db: AsyncSession) -> None:
  ws = await make_workspace(db)
  other = await make_workspace(db, first_name="Bob")
  engine = OrderingEngine(db, actor_id=ws.user_id)
  full = [ColumnLayout(column_id=cid, position=pos) for pos, cid in enumerate(ws.column_ids)]

  with pytest.raises(InvalidRelation):
    async with transaction(db):
      await engine.bulk_reorder(ws.board_id, full + [ColumnLayout(column_id=other.column_ids[0], position=9)])

  with pytest.raises(InvalidRelation):
    async with transaction(db):
      await engine.bulk_reorder(ws.board_id, full + [ColumnLayout(column_id=ws.column_ids[0], position=9)])

  with pytest.raises(NotFound):
    async with transaction(db):
      await engine.bulk_reorder(ws.board_id, full + [ColumnLayout(column_id=str(uuid.uuid4()), position=9)])


@pytest.mark.anyio
async def test_renumber_keeps_order_and_compacts_positions(db: AsyncSession) -> None:
  ws = await make_workspace(db)
  engine = OrderingEngine(db, actor_id=ws.user_id)
  a = await make_issue(db, ws, "A")
  b = await make_issue(db, ws, "B")
  c = await make_issue(db, ws, "C")
  async with transaction(db):
    ia = await engine.place(a.public_id, ws.column_ids[0], 10)
    ib = await engine.place(b.public_id, ws.column_ids[0], 10)
    ic = await engine.place(c.public_id, ws.column_ids[0], 5)

  async with transaction(db):
    await engine.renumber_board(ws.board_id)

  board = await BoardAssembler(db, actor_id=ws.user_id).read(ws.board_id)
  assert [col.position for col in board.columns] == [0, 1, 2]
  todo = board.columns[0]
  assert [i.id for i in todo.items] == [ic.public_id, ia.public_id, ib.public_id]
  assert [i.position for i in todo.items] == [0, 1, 2]


@pytest.mark.anyio
async def test_delete_column_unplaces_its_issues(db: AsyncSession) -> None:
  ws = await make_workspace(db)
  engine = OrderingEngine(db, actor_id=ws.user_id)
  a = await make_issue(db, ws, "A")
  async with transaction(db):
    await engine.place(a.public_id, ws.column_ids[0])

  async with transaction(db):
    removed = await engine.delete_column(ws.column_ids[0])

  assert removed == 1
  assert await engine.placement_for(a.id) is None
  first = await engine.first_column(ws.board_id)
  assert first.public_id == ws.column_ids[1]
