from __future__ import annotations

import logging

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from issueboard.models import (
  Address,
  File,
  Issue,
  IssueComment,
  IssueHistory,
  Session as DbSession,
  UserCredential,
  UserProfile,
  comment_likes,
  issue_label_links,
  project_members,
)
from issueboard.ordering import OrderingEngine

logger = logging.getLogger(__name__)


async def purge_issue(db: AsyncSession, ordering: OrderingEngine, issue: Issue) -> None:
  await ordering.unplace_issue(issue.id)
  await db.execute(update(Issue).where(Issue.parent_id == issue.id).values(parent_id=None))
  comment_ids = select(IssueComment.id).where(IssueComment.issue_id == issue.id)
  await db.execute(delete(comment_likes).where(comment_likes.c.comment_id.in_(comment_ids)))
  await db.execute(update(IssueComment).where(IssueComment.issue_id == issue.id).values(parent_id=None))
  await db.execute(delete(IssueComment).where(IssueComment.issue_id == issue.id))
  await db.execute(delete(issue_label_links).where(issue_label_links.c.issue_id == issue.id))
  await db.execute(delete(IssueHistory).where(IssueHistory.issue_id == issue.id))
  await db.execute(delete(Issue).where(Issue.id == issue.id))


async def purge_comment(db: AsyncSession, comment: IssueComment) -> None:
  # Replies move up to the deleted comment's parent.
  await db.execute(update(IssueComment).where(IssueComment.parent_id == comment.id).values(parent_id=comment.parent_id))
  await db.execute(delete(comment_likes).where(comment_likes.c.comment_id == comment.id))
  await db.execute(delete(IssueComment).where(IssueComment.id == comment.id))


async def purge_user(db: AsyncSession, user: UserProfile) -> None:
  """Remove an account and everything only it owns.

  Issues the user created go with it; issues assigned to it are unassigned.
  The address survives while another profile still points at it.
  """
  user.profile_picture_id = None
  user.cover_image_id = None
  await db.flush()

  ordering = OrderingEngine(db, actor_id=user.id)
  ires = await db.execute(select(Issue).where(Issue.creator_id == user.id).order_by(Issue.id.asc()))
  for issue in ires.scalars().all():
    await purge_issue(db, ordering, issue)

  cres = await db.execute(select(IssueComment).where(IssueComment.author_id == user.id).order_by(IssueComment.id.desc()))
  # Newest first, so a reply is gone before the comment it answers.
  for comment in cres.scalars().all():
    await purge_comment(db, comment)

  await db.execute(delete(comment_likes).where(comment_likes.c.profile_id == user.id))
  await db.execute(delete(IssueHistory).where(IssueHistory.author_id == user.id))
  await db.execute(update(Issue).where(Issue.assignee_id == user.id).values(assignee_id=None))
  await db.execute(delete(project_members).where(project_members.c.profile_id == user.id))
  await db.execute(delete(File).where(File.uploader_id == user.id))
  await db.execute(delete(DbSession).where(DbSession.credential_id == user.credential_id))

  public_id, address_id, credential_id = user.public_id, user.address_id, user.credential_id
  await db.execute(delete(UserProfile).where(UserProfile.id == user.id))
  if address_id is not None:
    shared = await db.execute(select(UserProfile.id).where(UserProfile.address_id == address_id).limit(1))
    if shared.first() is None:
      await db.execute(delete(Address).where(Address.id == address_id))
  await db.execute(delete(UserCredential).where(UserCredential.id == credential_id))
  logger.info("purged user=%s", public_id)
