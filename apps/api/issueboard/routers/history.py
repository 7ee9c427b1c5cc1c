from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from issueboard.access import require_project_access
from issueboard.db import transaction
from issueboard.deps import get_current_user, get_db
from issueboard.history import write_history
from issueboard.models import Issue, IssueHistory, UserProfile
from issueboard.schemas import IssueHistoryChange, IssueHistoryCreateIn, IssueHistoryOut
from issueboard.store import get_by_id, get_by_public_id, public_ids_for

router = APIRouter(prefix="/issue-history", tags=["history"])


async def _history_out(db: AsyncSession, issue: Issue, entries: list[IssueHistory]) -> list[IssueHistoryOut]:
  authors = await public_ids_for(db, UserProfile, [h.author_id for h in entries])
  return [
    IssueHistoryOut(
      id=h.public_id,
      issueId=issue.public_id,
      authorId=authors[h.author_id],
      change=IssueHistoryChange(topic=h.topic, previous=h.previous, current=h.current),
      changedAt=h.changed_at,
    )
    for h in entries
  ]


@router.get("", response_model=list[IssueHistoryOut])
async def list_history(
  issueId: str = Query(...),
  user: UserProfile = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> list[IssueHistoryOut]:
  issue = await get_by_public_id(db, Issue, issueId, label="Issue")
  await require_project_access(db, user.id, issue.project_id)
  res = await db.execute(
    select(IssueHistory).where(IssueHistory.issue_id == issue.id).order_by(IssueHistory.changed_at.asc(), IssueHistory.id.asc())
  )
  return await _history_out(db, issue, list(res.scalars().all()))


@router.post("", response_model=IssueHistoryOut, status_code=status.HTTP_201_CREATED)
async def create(payload: IssueHistoryCreateIn, user: UserProfile = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> IssueHistoryOut:
  async with transaction(db):
    issue = await get_by_public_id(db, Issue, payload.issueId, label="Issue")
    await require_project_access(db, user.id, issue.project_id)
    entry = await write_history(
      db,
      issue_id=issue.id,
      author_id=user.id,
      topic=payload.change.topic,
      previous=payload.change.previous,
      current=payload.change.current,
    )
    await db.flush()
  return (await _history_out(db, issue, [entry]))[0]


@router.get("/{history_id}", response_model=IssueHistoryOut)
async def get_entry(history_id: str, user: UserProfile = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> IssueHistoryOut:
  entry = await get_by_public_id(db, IssueHistory, history_id, label="History entry")
  issue = await get_by_id(db, Issue, entry.issue_id, label="Issue")
  await require_project_access(db, user.id, issue.project_id)
  return (await _history_out(db, issue, [entry]))[0]
