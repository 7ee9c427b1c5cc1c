from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from issueboard.errors import InvalidRelation
from issueboard.models import Issue, IssueComment

logger = logging.getLogger(__name__)

TreeModel = type[Issue] | type[IssueComment]


class HierarchyGuard:
  """Cycle checks for the two self-referencing trees (issues and comments).

  The walk runs inside the caller's transaction. With ``lock=True`` every
  row on the ancestor chain is read ``FOR UPDATE``, so two requests that
  would together close a loop serialize on the shared rows instead of both
  passing the check. Cost is O(depth) round trips per check.
  """

  def __init__(self, db: AsyncSession) -> None:
    self.db = db

  async def would_create_cycle(
    self,
    model: TreeModel,
    candidate_parent_id: int,
    subject_id: int | None,
    *,
    lock: bool = False,
  ) -> bool:
    if subject_id is not None and candidate_parent_id == subject_id:
      return True

    seen: set[int] = set()
    current_id: int | None = candidate_parent_id
    while current_id is not None:
      if current_id == subject_id:
        return True
      if current_id in seen:
        # Existing chain already loops without passing through the subject.
        logger.warning("corrupt %s parent chain at id=%s", model.__tablename__, current_id)
        return True
      seen.add(current_id)
      q = select(model.parent_id).where(model.id == current_id)
      if lock:
        q = q.with_for_update()
      res = await self.db.execute(q)
      row = res.first()
      if row is None:
        # Truncated chain: nothing above can reach the subject.
        return False
      current_id = row[0]
    return False

  async def _lock(self, model: TreeModel, subject_id: int) -> None:
    await self.db.execute(select(model.id).where(model.id == subject_id).with_for_update())

  async def ensure_issue_parent(self, issue_id: int, parent_id: int) -> None:
    await self._lock(Issue, issue_id)
    if await self.would_create_cycle(Issue, parent_id, issue_id, lock=True):
      logger.info("rejected issue parent link issue=%s parent=%s", issue_id, parent_id)
      raise InvalidRelation("Circular parent relationship detected")

  async def ensure_comment_parent(self, comment_id: int | None, parent_id: int) -> None:
    if comment_id is not None:
      await self._lock(IssueComment, comment_id)
    if await self.would_create_cycle(IssueComment, parent_id, comment_id, lock=True):
      logger.info("rejected comment parent link comment=%s parent=%s", comment_id, parent_id)
      raise InvalidRelation("Cyclic parent comment reference detected")
