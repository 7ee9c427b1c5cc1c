from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from issueboard.access import require_project_access
from issueboard.errors import InvalidRelation, InvalidState
from issueboard.history import write_history
from issueboard.models import Issue, ProjectBoard, ProjectBoardColumn, ProjectBoardColumnItem
from issueboard.ordering import OrderingEngine, in_order
from issueboard.schemas import IssueStatusOut, StatusOptionOut
from issueboard.store import get_by_id, get_by_public_id

logger = logging.getLogger(__name__)


class StatusMigrator:
  """An issue's status is the column holding its board placement."""

  def __init__(self, db: AsyncSession, *, actor_id: int) -> None:
    self.db = db
    self.actor_id = actor_id
    self.ordering = OrderingEngine(db, actor_id=actor_id)

  async def _options(self, issue: Issue) -> IssueStatusOut:
    item = await self.ordering.placement_for(issue.id)
    if item is None:
      return IssueStatusOut(options=[], current=None)

    current_column = await get_by_id(self.db, ProjectBoardColumn, item.column_id, label="Project board column")
    board = await get_by_id(self.db, ProjectBoard, current_column.board_id, label="Project board")
    res = await self.db.execute(select(ProjectBoardColumn).where(ProjectBoardColumn.board_id == board.id))
    options = [
      StatusOptionOut(id=c.public_id, name=c.name, projectBoardId=board.public_id) for c in in_order(res.scalars().all())
    ]
    current = next((o for o in options if o.id == current_column.public_id), None)
    return IssueStatusOut(options=options, current=current)

  async def current_for(self, issue_ids: list[int]) -> dict[int, StatusOptionOut]:
    if not issue_ids:
      return {}
    res = await self.db.execute(
      select(ProjectBoardColumnItem.issue_id, ProjectBoardColumn, ProjectBoard.public_id)
      .join(ProjectBoardColumn, ProjectBoardColumn.id == ProjectBoardColumnItem.column_id)
      .join(ProjectBoard, ProjectBoard.id == ProjectBoardColumn.board_id)
      .where(ProjectBoardColumnItem.issue_id.in_(set(issue_ids)))
    )
    return {
      issue_id: StatusOptionOut(id=column.public_id, name=column.name, projectBoardId=board_public_id)
      for issue_id, column, board_public_id in res.all()
    }

  async def options_for(self, issue_public_id: str) -> IssueStatusOut:
    issue = await get_by_public_id(self.db, Issue, issue_public_id, label="Issue")
    await require_project_access(self.db, self.actor_id, issue.project_id)
    return await self._options(issue)

  async def change_status(self, issue_public_id: str, target_column_public_id: str) -> IssueStatusOut:
    issue = await get_by_public_id(self.db, Issue, issue_public_id, label="Issue", for_update=True)
    await require_project_access(self.db, self.actor_id, issue.project_id)

    item = await self.ordering.placement_for(issue.id, for_update=True)
    if item is None:
      raise InvalidState("Issue has no status to update")
    current_column = await get_by_id(self.db, ProjectBoardColumn, item.column_id, label="Project board column")
    target_column = await get_by_public_id(self.db, ProjectBoardColumn, target_column_public_id, label="Status option")
    if target_column.board_id != current_column.board_id:
      raise InvalidRelation("Invalid status option ID for this project board")

    if target_column.id != current_column.id:
      await self.ordering.move(item.public_id, target_column.public_id)
      await write_history(
        self.db,
        issue_id=issue.id,
        author_id=self.actor_id,
        topic="status",
        previous=current_column.name,
        current=target_column.name,
      )
      logger.info("status change issue=%s from=%s to=%s", issue.public_id, current_column.public_id, target_column.public_id)
    return await self._options(issue)
