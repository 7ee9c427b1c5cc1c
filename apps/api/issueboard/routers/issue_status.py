from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from issueboard.db import transaction
from issueboard.deps import get_db, get_status_migrator
from issueboard.schemas import IssueStatusOut, IssueStatusUpdateIn
from issueboard.status import StatusMigrator

router = APIRouter(prefix="/issue-status", tags=["issue-status"])


@router.get("/{issue_id}", response_model=IssueStatusOut)
async def get_status(issue_id: str, migrator: StatusMigrator = Depends(get_status_migrator)) -> IssueStatusOut:
  return await migrator.options_for(issue_id)


@router.patch("/{issue_id}", response_model=IssueStatusOut)
async def update_status(
  issue_id: str,
  payload: IssueStatusUpdateIn,
  db: AsyncSession = Depends(get_db),
  migrator: StatusMigrator = Depends(get_status_migrator),
) -> IssueStatusOut:
  async with transaction(db):
    out = await migrator.change_status(issue_id, payload.statusOptionId)
  return out
