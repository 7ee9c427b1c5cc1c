from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from issueboard.access import has_project_access, require_project_access
from issueboard.db import transaction
from issueboard.deps import get_current_user, get_db
from issueboard.errors import Conflict, NotFound
from issueboard.models import Project, ProjectBoard, UserCredential, UserProfile, project_members
from issueboard.projects import add_member, create_project
from issueboard.schemas import ProjectBoardSummaryOut, ProjectCreateIn, ProjectMemberIn, ProjectOut, ProjectUpdateIn
from issueboard.store import get_by_public_id

router = APIRouter(prefix="/project", tags=["projects"])


async def _project_out(db: AsyncSession, p: Project) -> ProjectOut:
  bres = await db.execute(select(ProjectBoard).where(ProjectBoard.project_id == p.id).order_by(ProjectBoard.id.asc()))
  mres = await db.execute(
    select(UserProfile.public_id)
    .join(project_members, project_members.c.profile_id == UserProfile.id)
    .where(project_members.c.project_id == p.id)
    .order_by(UserProfile.id.asc())
  )
  return ProjectOut(
    id=p.public_id,
    name=p.name,
    description=p.description,
    boards=[ProjectBoardSummaryOut(id=b.public_id, name=b.name, description=b.description) for b in bres.scalars().all()],
    memberIds=list(mres.scalars().all()),
  )


@router.get("", response_model=list[ProjectOut])
async def list_projects(user: UserProfile = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> list[ProjectOut]:
  res = await db.execute(
    select(Project)
    .join(project_members, project_members.c.project_id == Project.id)
    .where(project_members.c.profile_id == user.id)
    .order_by(Project.id.asc())
  )
  return [await _project_out(db, p) for p in res.scalars().all()]


@router.post("", response_model=ProjectOut, status_code=status.HTTP_201_CREATED)
async def create(payload: ProjectCreateIn, user: UserProfile = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> ProjectOut:
  async with transaction(db):
    p = await create_project(db, owner=user, name=payload.name, description=payload.description)
  return await _project_out(db, p)


@router.get("/{project_id}", response_model=ProjectOut)
async def get_project(project_id: str, user: UserProfile = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> ProjectOut:
  p = await get_by_public_id(db, Project, project_id, label="Project")
  await require_project_access(db, user.id, p.id)
  return await _project_out(db, p)


@router.patch("/{project_id}", response_model=ProjectOut)
async def update_project(
  project_id: str,
  payload: ProjectUpdateIn,
  user: UserProfile = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> ProjectOut:
  async with transaction(db):
    p = await get_by_public_id(db, Project, project_id, label="Project", for_update=True)
    await require_project_access(db, user.id, p.id)
    if payload.name is not None:
      p.name = payload.name
    if payload.description is not None:
      p.description = payload.description
    await db.flush()
  return await _project_out(db, p)


@router.post("/{project_id}/members", response_model=ProjectOut)
async def add_project_member(
  project_id: str,
  payload: ProjectMemberIn,
  user: UserProfile = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> ProjectOut:
  async with transaction(db):
    p = await get_by_public_id(db, Project, project_id, label="Project")
    await require_project_access(db, user.id, p.id)
    res = await db.execute(
      select(UserProfile)
      .join(UserCredential, UserCredential.id == UserProfile.credential_id)
      .where(UserCredential.email == payload.email.strip().lower())
    )
    member = res.scalar_one_or_none()
    if not member:
      raise NotFound("User not found")
    if await has_project_access(db, member.id, p.id):
      raise Conflict("User is already a project member")
    await add_member(db, project_id=p.id, profile_id=member.id)
  return await _project_out(db, p)
