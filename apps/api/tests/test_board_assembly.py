from __future__ import annotations

import pytest
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import make_issue, make_workspace
from issueboard.assembly import BoardAssembler
from issueboard.db import transaction
from issueboard.errors import Forbidden, InternalError, NotFound
from issueboard.models import Issue, ProjectBoardColumn, ProjectBoardColumnItem, UserCredential, UserProfile
from issueboard.ordering import ColumnLayout, ItemLayout, OrderingEngine
from issueboard.store import get_by_public_id


@pytest.mark.anyio
async def test_read_nests_sorted_columns_and_item_summaries(db: AsyncSession) -> None:
  ws = await make_workspace(db)
  a = await make_issue(db, ws, "Assigned")
  b = await make_issue(db, ws, "Unassigned")
  await db.execute(update(Issue).where(Issue.id == a.id).values(assignee_id=ws.user_id, description="details"))
  await db.commit()
  engine = OrderingEngine(db, actor_id=ws.user_id)
  async with transaction(db):
    # Equal positions fall back to creation order.
    ia = await engine.place(a.public_id, ws.column_ids[1], 3)
    ib = await engine.place(b.public_id, ws.column_ids[1], 3)

  board = await BoardAssembler(db, actor_id=ws.user_id).read(ws.board_id)

  assert board.id == ws.board_id
  assert board.name == "Default Board"
  assert [c.name for c in board.columns] == ["To Do", "In Progress", "Done"]
  assert [c.position for c in board.columns] == [1, 2, 3]
  doing = board.columns[1]
  assert [i.id for i in doing.items] == [ia.public_id, ib.public_id]

  first, second = doing.items
  profile = (await db.execute(select(UserProfile).where(UserProfile.id == ws.user_id))).scalar_one()
  cred = (await db.execute(select(UserCredential).where(UserCredential.id == profile.credential_id))).scalar_one()
  assert first.issueId == a.public_id
  assert first.title == "Assigned"
  assert first.description == "details"
  assert first.assignee is not None
  assert first.assignee.id == profile.public_id
  assert first.assignee.name == "Ada Tester"
  assert first.assignee.email == cred.email
  assert second.assignee is None


@pytest.mark.anyio
async def test_read_board_without_placements_has_empty_columns(db: AsyncSession) -> None:
  ws = await make_workspace(db)
  board = await BoardAssembler(db, actor_id=ws.user_id).read(ws.board_id)
  assert [c.items for c in board.columns] == [[], [], []]


@pytest.mark.anyio
async def test_read_missing_or_foreign_board(db: AsyncSession) -> None:
  ws = await make_workspace(db)
  outsider = await make_workspace(db, first_name="Eve")

  with pytest.raises(NotFound):
    await BoardAssembler(db, actor_id=ws.user_id).read("not-a-uuid")
  with pytest.raises(Forbidden):
    await BoardAssembler(db, actor_id=outsider.user_id).read(ws.board_id)


@pytest.mark.anyio
async def test_read_fails_when_placed_issue_is_missing(db: AsyncSession) -> None:
  ws = await make_workspace(db)
  column = await get_by_public_id(db, ProjectBoardColumn, ws.column_ids[0])
  db.add(ProjectBoardColumnItem(column_id=column.id, issue_id=987654, position=0))
  await db.commit()

  with pytest.raises(NotFound, match="Issue not found"):
    await BoardAssembler(db, actor_id=ws.user_id).read(ws.board_id)


@pytest.mark.anyio
async def test_unrenderable_issue_surfaces_as_internal_error(db: AsyncSession) -> None:
  ws = await make_workspace(db)
  a = await make_issue(db, ws, "A")
  # SQLite does not enforce VARCHAR lengths; the view model does.
  await db.execute(update(Issue).where(Issue.id == a.id).values(title="x" * 150))
  await db.commit()
  async with transaction(db):
    await OrderingEngine(db, actor_id=ws.user_id).place(a.public_id, ws.column_ids[0])

  with pytest.raises(InternalError):
    await BoardAssembler(db, actor_id=ws.user_id).read(ws.board_id)


@pytest.mark.anyio
async def test_apply_updates_fields_and_layout_in_one_go(db: AsyncSession) -> None:
  ws = await make_workspace(db)
  a = await make_issue(db, ws, "A")
  async with transaction(db):
    item = await OrderingEngine(db, actor_id=ws.user_id).place(a.public_id, ws.column_ids[0])
  todo, doing, done = ws.column_ids

  layout = [
    ColumnLayout(column_id=todo, position=0),
    ColumnLayout(column_id=doing, position=1),
    ColumnLayout(column_id=done, position=2, items=[ItemLayout(item.public_id, 0)]),
  ]
  async with transaction(db):
    out = await BoardAssembler(db, actor_id=ws.user_id).apply(ws.board_id, name="Sprint", description="two weeks", columns=layout)

  assert out.name == "Sprint"
  assert out.description == "two weeks"
  assert [[i.id for i in c.items] for c in out.columns] == [[], [], [item.public_id]]
  reread = await BoardAssembler(db, actor_id=ws.user_id).read(ws.board_id)
  assert reread == out
