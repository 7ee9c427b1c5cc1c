from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from issueboard.access import require_project_access
from issueboard.db import transaction
from issueboard.deps import get_current_user, get_db
from issueboard.models import IssueLabel, Project, UserProfile, issue_label_links, project_members
from issueboard.schemas import IssueLabelCreateIn, IssueLabelOut, IssueLabelUpdateIn
from issueboard.store import get_by_public_id, is_public_id, public_ids_for

router = APIRouter(prefix="/issue-label", tags=["labels"])


async def _label_out(db: AsyncSession, label: IssueLabel) -> IssueLabelOut:
  projects = await public_ids_for(db, Project, [label.project_id])
  return IssueLabelOut(id=label.public_id, name=label.name, color=label.color, projectId=projects[label.project_id])


async def _label_for_user(db: AsyncSession, user: UserProfile, label_id: str, *, for_update: bool = False) -> IssueLabel:
  label = await get_by_public_id(db, IssueLabel, label_id, label="Label", for_update=for_update)
  await require_project_access(db, user.id, label.project_id)
  return label


@router.get("", response_model=list[IssueLabelOut])
async def list_labels(
  projectId: str = Query(...),
  user: UserProfile = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> list[IssueLabelOut]:
  project = await get_by_public_id(db, Project, projectId, label="Project")
  await require_project_access(db, user.id, project.id)
  res = await db.execute(select(IssueLabel).where(IssueLabel.project_id == project.id).order_by(IssueLabel.name.asc(), IssueLabel.id.asc()))
  return [await _label_out(db, label) for label in res.scalars().all()]


@router.get("/ids/{label_ids}", response_model=list[IssueLabelOut])
async def labels_by_ids(label_ids: str, user: UserProfile = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> list[IssueLabelOut]:
  """Comma separated ids; unknown ids and labels outside the caller's projects are skipped."""
  ids = [x.strip() for x in label_ids.split(",") if is_public_id(x.strip())]
  if not ids:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No valid label ids")
  member_projects = select(project_members.c.project_id).where(project_members.c.profile_id == user.id)
  res = await db.execute(
    select(IssueLabel)
    .where(IssueLabel.public_id.in_(ids), IssueLabel.project_id.in_(member_projects))
    .order_by(IssueLabel.name.asc(), IssueLabel.id.asc())
  )
  return [await _label_out(db, label) for label in res.scalars().all()]


@router.post("", response_model=IssueLabelOut, status_code=status.HTTP_201_CREATED)
async def create(payload: IssueLabelCreateIn, user: UserProfile = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> IssueLabelOut:
  async with transaction(db):
    project = await get_by_public_id(db, Project, payload.projectId, label="Project")
    await require_project_access(db, user.id, project.id)
    label = IssueLabel(project_id=project.id, name=payload.name, color=payload.color)
    db.add(label)
    await db.flush()
  return await _label_out(db, label)


@router.get("/{label_id}", response_model=IssueLabelOut)
async def get_label(label_id: str, user: UserProfile = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> IssueLabelOut:
  return await _label_out(db, await _label_for_user(db, user, label_id))


@router.patch("/{label_id}", response_model=IssueLabelOut)
async def update_label(
  label_id: str,
  payload: IssueLabelUpdateIn,
  user: UserProfile = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> IssueLabelOut:
  async with transaction(db):
    label = await _label_for_user(db, user, label_id, for_update=True)
    if payload.name is not None:
      label.name = payload.name
    if payload.color is not None:
      label.color = payload.color
    await db.flush()
  return await _label_out(db, label)


@router.delete("/{label_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_label(label_id: str, user: UserProfile = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> Response:
  async with transaction(db):
    label = await _label_for_user(db, user, label_id, for_update=True)
    await db.execute(delete(issue_label_links).where(issue_label_links.c.label_id == label.id))
    await db.execute(delete(IssueLabel).where(IssueLabel.id == label.id))
  return Response(status_code=status.HTTP_204_NO_CONTENT)
