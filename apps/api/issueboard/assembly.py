from __future__ import annotations

import logging
from collections.abc import Sequence

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from issueboard.access import require_project_access
from issueboard.errors import InternalError, NotFound
from issueboard.models import Issue, Project, ProjectBoard, ProjectBoardColumn, ProjectBoardColumnItem, UserCredential, UserProfile
from issueboard.ordering import ColumnLayout, OrderingEngine, in_order, order_key
from issueboard.schemas import AssigneeOut, ProjectBoardColumnItemOut, ProjectBoardColumnOut, ProjectBoardOut
from issueboard.store import get_by_id, get_by_public_id

logger = logging.getLogger(__name__)


def _assignee_out(profile: UserProfile | None, credential: UserCredential | None) -> AssigneeOut | None:
  if profile is None or credential is None:
    return None
  return AssigneeOut(id=profile.public_id, name=f"{profile.first_name} {profile.last_name}", email=credential.email)


class BoardAssembler:
  """Nested board view: Board -> ordered columns -> ordered items with issue summary."""

  def __init__(self, db: AsyncSession, *, actor_id: int) -> None:
    self.db = db
    self.actor_id = actor_id

  async def read(self, board_public_id: str) -> ProjectBoardOut:
    board = await get_by_public_id(self.db, ProjectBoard, board_public_id, label="Project board")
    await require_project_access(self.db, self.actor_id, board.project_id)
    project = await get_by_id(self.db, Project, board.project_id, label="Project")

    cres = await self.db.execute(select(ProjectBoardColumn).where(ProjectBoardColumn.board_id == board.id))
    columns = in_order(cres.scalars().all())

    rows = []
    if columns:
      ires = await self.db.execute(
        select(ProjectBoardColumnItem, Issue, UserProfile, UserCredential)
        .outerjoin(Issue, Issue.id == ProjectBoardColumnItem.issue_id)
        .outerjoin(UserProfile, UserProfile.id == Issue.assignee_id)
        .outerjoin(UserCredential, UserCredential.id == UserProfile.credential_id)
        .where(ProjectBoardColumnItem.column_id.in_([c.id for c in columns]))
      )
      rows = list(ires.all())

    by_column: dict[int, list] = {c.id: [] for c in columns}
    for item, issue, profile, credential in rows:
      if issue is None:
        raise NotFound("Issue not found")
      by_column[item.column_id].append((item, issue, profile, credential))

    try:
      column_outs = []
      for column in columns:
        placed = sorted(by_column[column.id], key=lambda r: order_key(r[0]))
        column_outs.append(
          ProjectBoardColumnOut(
            id=column.public_id,
            name=column.name,
            description=column.description,
            position=column.position,
            projectBoardId=board.public_id,
            items=[
              ProjectBoardColumnItemOut(
                id=item.public_id,
                issueId=issue.public_id,
                title=issue.title,
                description=issue.description,
                dueDate=issue.due_date,
                position=item.position,
                assignee=_assignee_out(profile, credential),
              )
              for item, issue, profile, credential in placed
            ],
          )
        )
      return ProjectBoardOut(
        id=board.public_id,
        name=board.name,
        description=board.description,
        projectId=project.public_id,
        columns=column_outs,
      )
    except ValidationError as exc:
      logger.error("failed to assemble board=%s", board.public_id, exc_info=exc)
      raise InternalError("Internal server error") from exc

  async def apply(
    self,
    board_public_id: str,
    *,
    name: str | None = None,
    description: str | None = None,
    columns: Sequence[ColumnLayout] | None = None,
  ) -> ProjectBoardOut:
    """Nested update: board fields plus an optional full layout snapshot.

    Runs inside the caller's transaction; the layout goes through
    ``OrderingEngine.bulk_reorder`` so columns and items move together.
    """
    board = await get_by_public_id(self.db, ProjectBoard, board_public_id, label="Project board", for_update=True)
    await require_project_access(self.db, self.actor_id, board.project_id)
    if name is not None:
      board.name = name
    if description is not None:
      board.description = description
    if columns is not None:
      await OrderingEngine(self.db, actor_id=self.actor_id).bulk_reorder(board.public_id, columns)
    await self.db.flush()
    return await self.read(board.public_id)
