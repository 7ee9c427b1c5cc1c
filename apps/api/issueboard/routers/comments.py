from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from issueboard.access import require_project_access
from issueboard.db import transaction
from issueboard.deps import get_current_user, get_db, get_hierarchy_guard
from issueboard.errors import Forbidden, InvalidRelation
from issueboard.hierarchy import HierarchyGuard
from issueboard.models import Issue, IssueComment, UserProfile, comment_likes, utcnow
from issueboard.purge import purge_comment
from issueboard.schemas import IssueCommentCreateIn, IssueCommentOut, IssueCommentUpdateIn
from issueboard.security import as_utc
from issueboard.store import get_by_id, get_by_public_id, public_ids_for

router = APIRouter(prefix="/issue-comment", tags=["comments"])


async def _comment_out(db: AsyncSession, c: IssueComment) -> IssueCommentOut:
  likes = await db.execute(
    select(UserProfile.public_id)
    .join(comment_likes, comment_likes.c.profile_id == UserProfile.id)
    .where(comment_likes.c.comment_id == c.id)
    .order_by(UserProfile.id.asc())
  )
  issue_ids = await public_ids_for(db, Issue, [c.issue_id])
  author_ids = await public_ids_for(db, UserProfile, [c.author_id])
  parent_ids = await public_ids_for(db, IssueComment, [c.parent_id] if c.parent_id else [])
  return IssueCommentOut(
    id=c.public_id,
    issueId=issue_ids[c.issue_id],
    authorId=author_ids[c.author_id],
    parentId=parent_ids.get(c.parent_id) if c.parent_id else None,
    text=c.text,
    likedByUserIds=list(likes.scalars().all()),
    edited=as_utc(c.updated_at) > as_utc(c.created_at),
    createdAt=c.created_at,
    updatedAt=c.updated_at,
  )


async def _parent_in_issue(db: AsyncSession, issue_id: int, parent_public_id: str) -> IssueComment:
  parent = await get_by_public_id(db, IssueComment, parent_public_id, label="Parent comment")
  if parent.issue_id != issue_id:
    raise InvalidRelation("Parent comment must belong to the same issue")
  return parent


async def _comment_for_user(db: AsyncSession, user: UserProfile, comment_id: str, *, for_update: bool = False) -> IssueComment:
  c = await get_by_public_id(db, IssueComment, comment_id, label="Comment", for_update=for_update)
  issue = await get_by_id(db, Issue, c.issue_id, label="Issue")
  await require_project_access(db, user.id, issue.project_id)
  return c


@router.get("", response_model=list[IssueCommentOut])
async def list_comments(
  issueId: str = Query(...),
  user: UserProfile = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> list[IssueCommentOut]:
  issue = await get_by_public_id(db, Issue, issueId, label="Issue")
  await require_project_access(db, user.id, issue.project_id)
  res = await db.execute(
    select(IssueComment).where(IssueComment.issue_id == issue.id).order_by(IssueComment.created_at.asc(), IssueComment.id.asc())
  )
  return [await _comment_out(db, c) for c in res.scalars().all()]


@router.post("", response_model=IssueCommentOut, status_code=status.HTTP_201_CREATED)
async def create(
  payload: IssueCommentCreateIn,
  user: UserProfile = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  guard: HierarchyGuard = Depends(get_hierarchy_guard),
) -> IssueCommentOut:
  async with transaction(db):
    issue = await get_by_public_id(db, Issue, payload.issueId, label="Issue")
    await require_project_access(db, user.id, issue.project_id)
    parent = await _parent_in_issue(db, issue.id, payload.parentId) if payload.parentId else None
    if parent is not None:
      await guard.ensure_comment_parent(None, parent.id)

    now = utcnow()
    c = IssueComment(
      issue_id=issue.id,
      author_id=user.id,
      parent_id=parent.id if parent else None,
      text=payload.text,
      created_at=now,
      updated_at=now,
    )
    db.add(c)
    await db.flush()
  return await _comment_out(db, c)


@router.get("/{comment_id}", response_model=IssueCommentOut)
async def get_comment(comment_id: str, user: UserProfile = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> IssueCommentOut:
  c = await _comment_for_user(db, user, comment_id)
  return await _comment_out(db, c)


@router.patch("/{comment_id}", response_model=IssueCommentOut)
async def update_comment(
  comment_id: str,
  payload: IssueCommentUpdateIn,
  user: UserProfile = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  guard: HierarchyGuard = Depends(get_hierarchy_guard),
) -> IssueCommentOut:
  fields_set = payload.model_fields_set
  async with transaction(db):
    c = await _comment_for_user(db, user, comment_id, for_update=True)
    edits_content = ("text" in fields_set and payload.text is not None) or "parentId" in fields_set
    if edits_content and c.author_id != user.id:
      raise Forbidden("Only the author can edit this comment")

    touched = False
    if "text" in fields_set and payload.text is not None and payload.text != c.text:
      c.text = payload.text
      touched = True

    if "parentId" in fields_set:
      parent = await _parent_in_issue(db, c.issue_id, payload.parentId) if payload.parentId else None
      if parent is not None:
        await guard.ensure_comment_parent(c.id, parent.id)
      new_parent_id = parent.id if parent else None
      if new_parent_id != c.parent_id:
        c.parent_id = new_parent_id
        touched = True

    if payload.liked is not None:
      lres = await db.execute(
        select(comment_likes.c.comment_id).where(comment_likes.c.comment_id == c.id, comment_likes.c.profile_id == user.id)
      )
      liked = lres.first() is not None
      if payload.liked and not liked:
        await db.execute(insert(comment_likes).values(comment_id=c.id, profile_id=user.id))
      elif not payload.liked and liked:
        await db.execute(delete(comment_likes).where(comment_likes.c.comment_id == c.id, comment_likes.c.profile_id == user.id))

    if touched:
      c.updated_at = utcnow()
    await db.flush()
  return await _comment_out(db, c)


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(comment_id: str, user: UserProfile = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> Response:
  async with transaction(db):
    c = await _comment_for_user(db, user, comment_id, for_update=True)
    if c.author_id != user.id:
      raise Forbidden("Only the author can delete this comment")
    await purge_comment(db, c)
  return Response(status_code=status.HTTP_204_NO_CONTENT)
