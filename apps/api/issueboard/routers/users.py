from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from issueboard.access import require_project_access
from issueboard.db import transaction
from issueboard.deps import get_current_user, get_db, get_status_migrator, get_storage
from issueboard.errors import Forbidden, InvalidState
from issueboard.models import (
  Address,
  File,
  Issue,
  IssueHistory,
  IssueLabel,
  Project,
  Team,
  UserCredential,
  UserProfile,
  issue_label_links,
  project_members,
)
from issueboard.purge import purge_user
from issueboard.schemas import IssueHistoryChange, IssueRefOut, UserHistoryOut, UserIssueOut, UserOut, UserUpdateIn
from issueboard.security import SESSION_COOKIE_NAME
from issueboard.status import StatusMigrator
from issueboard.storage import ObjectStorage
from issueboard.store import get_by_id, get_by_public_id, public_ids_for

router = APIRouter(prefix="/user", tags=["users"])


async def _file_url(db: AsyncSession, storage: ObjectStorage, file_id: int | None) -> str | None:
  if file_id is None:
    return None
  res = await db.execute(select(File).where(File.id == file_id))
  f = res.scalar_one_or_none()
  if not f or f.status != "UPLOADED":
    return None
  return storage.presigned_url(f.storage_key)


async def user_out(db: AsyncSession, storage: ObjectStorage, u: UserProfile) -> UserOut:
  cred = await get_by_id(db, UserCredential, u.credential_id, label="User")
  address = await get_by_id(db, Address, u.address_id, label="Address") if u.address_id else None
  team = await get_by_id(db, Team, u.team_id, label="Team") if u.team_id else None
  return UserOut(
    id=u.public_id,
    email=cred.email,
    firstName=u.first_name,
    lastName=u.last_name,
    department=u.department,
    organization=u.organization,
    position=u.position,
    homePhone=u.home_phone,
    workPhone=u.work_phone,
    addressId=address.public_id if address else None,
    teamId=team.public_id if team else None,
    profilePictureUrl=await _file_url(db, storage, u.profile_picture_id),
    coverImageUrl=await _file_url(db, storage, u.cover_image_id),
    lastActive=u.last_active,
  )


async def _own_uploaded_file(db: AsyncSession, user: UserProfile, public_id: str) -> File:
  f = await get_by_public_id(db, File, public_id, label="File")
  if f.uploader_id != user.id:
    raise Forbidden("Forbidden")
  if f.status != "UPLOADED":
    raise InvalidState("File upload is not complete")
  return f


def _member_projects(user: UserProfile):
  return select(project_members.c.project_id).where(project_members.c.profile_id == user.id)


@router.get("", response_model=UserOut)
async def get_me(
  user: UserProfile = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  storage: ObjectStorage = Depends(get_storage),
) -> UserOut:
  return await user_out(db, storage, user)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def delete_me(user: UserProfile = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> Response:
  async with transaction(db):
    await purge_user(db, user)
  response = Response(status_code=status.HTTP_204_NO_CONTENT)
  response.delete_cookie(key=SESSION_COOKIE_NAME, path="/")
  return response


@router.get("/project/{project_id}", response_model=list[UserOut])
async def list_project_members(
  project_id: str,
  user: UserProfile = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  storage: ObjectStorage = Depends(get_storage),
) -> list[UserOut]:
  project = await get_by_public_id(db, Project, project_id, label="Project")
  await require_project_access(db, user.id, project.id)
  res = await db.execute(
    select(UserProfile)
    .join(project_members, project_members.c.profile_id == UserProfile.id)
    .where(project_members.c.project_id == project.id)
    .order_by(UserProfile.id.asc())
  )
  return [await user_out(db, storage, u) for u in res.scalars().all()]


@router.get("/{user_id}/issues", response_model=list[UserIssueOut])
async def list_user_issues(
  user_id: str,
  user: UserProfile = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  migrator: StatusMigrator = Depends(get_status_migrator),
) -> list[UserIssueOut]:
  """Issues the user created or is assigned to, limited to the caller's projects."""
  target = await get_by_public_id(db, UserProfile, user_id, label="User")
  res = await db.execute(
    select(Issue)
    .where(
      or_(Issue.creator_id == target.id, Issue.assignee_id == target.id),
      Issue.project_id.in_(_member_projects(user)),
    )
    .order_by(Issue.created_at.desc(), Issue.id.desc())
  )
  issues = list(res.scalars().all())
  ids = [i.id for i in issues]

  children: dict[int, list[str]] = {i: [] for i in ids}
  labels: dict[int, list[str]] = {i: [] for i in ids}
  if ids:
    cres = await db.execute(select(Issue.parent_id, Issue.public_id).where(Issue.parent_id.in_(ids)).order_by(Issue.id.asc()))
    for parent_id, public_id in cres.all():
      children[parent_id].append(public_id)
    lres = await db.execute(
      select(issue_label_links.c.issue_id, IssueLabel.name)
      .join(IssueLabel, IssueLabel.id == issue_label_links.c.label_id)
      .where(issue_label_links.c.issue_id.in_(ids))
      .order_by(IssueLabel.id.asc())
    )
    for issue_id, name in lres.all():
      labels[issue_id].append(name)

  statuses = await migrator.current_for(ids)
  profiles = await public_ids_for(db, UserProfile, [x for i in issues for x in (i.creator_id, i.assignee_id) if x is not None])
  projects = await public_ids_for(db, Project, [i.project_id for i in issues])
  return [
    UserIssueOut(
      id=i.public_id,
      title=i.title,
      priority=i.priority,
      type=i.type,
      projectId=projects[i.project_id],
      createdById=profiles[i.creator_id],
      assigneeId=profiles.get(i.assignee_id) if i.assignee_id else None,
      childrenIds=children[i.id],
      labels=labels[i.id],
      status=statuses.get(i.id),
      dueDate=i.due_date,
      createdAt=i.created_at,
    )
    for i in issues
  ]


@router.get("/{user_id}/history", response_model=list[UserHistoryOut])
async def list_user_history(
  user_id: str,
  user: UserProfile = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> list[UserHistoryOut]:
  target = await get_by_public_id(db, UserProfile, user_id, label="User")
  res = await db.execute(
    select(IssueHistory, Issue)
    .join(Issue, Issue.id == IssueHistory.issue_id)
    .where(IssueHistory.author_id == target.id, Issue.project_id.in_(_member_projects(user)))
    .order_by(IssueHistory.changed_at.desc(), IssueHistory.id.desc())
  )
  return [
    UserHistoryOut(
      id=h.public_id,
      issueId=issue.public_id,
      authorId=target.public_id,
      change=IssueHistoryChange(topic=h.topic, previous=h.previous, current=h.current),
      changedAt=h.changed_at,
      issue=IssueRefOut(id=issue.public_id, title=issue.title),
    )
    for h, issue in res.all()
  ]


@router.get("/{user_id}", response_model=UserOut, dependencies=[Depends(get_current_user)])
async def get_user(
  user_id: str,
  db: AsyncSession = Depends(get_db),
  storage: ObjectStorage = Depends(get_storage),
) -> UserOut:
  u = await get_by_public_id(db, UserProfile, user_id, label="User")
  return await user_out(db, storage, u)


@router.patch("/{user_id}", response_model=UserOut)
async def update_user(
  user_id: str,
  payload: UserUpdateIn,
  user: UserProfile = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  storage: ObjectStorage = Depends(get_storage),
) -> UserOut:
  async with transaction(db):
    u = await get_by_public_id(db, UserProfile, user_id, label="User", for_update=True)
    if u.id != user.id:
      raise Forbidden("Users can only update their own profile")

    fields = payload.model_fields_set
    if "firstName" in fields and payload.firstName is not None:
      u.first_name = payload.firstName
    if "lastName" in fields and payload.lastName is not None:
      u.last_name = payload.lastName
    if "department" in fields:
      u.department = payload.department
    if "organization" in fields:
      u.organization = payload.organization
    if "position" in fields:
      u.position = payload.position
    if "homePhone" in fields:
      u.home_phone = payload.homePhone
    if "workPhone" in fields:
      u.work_phone = payload.workPhone
    if "addressId" in fields:
      u.address_id = (await get_by_public_id(db, Address, payload.addressId, label="Address")).id if payload.addressId else None
    if "teamId" in fields:
      u.team_id = (await get_by_public_id(db, Team, payload.teamId, label="Team")).id if payload.teamId else None
    if "profilePictureId" in fields:
      u.profile_picture_id = (await _own_uploaded_file(db, u, payload.profilePictureId)).id if payload.profilePictureId else None
    if "coverImageId" in fields:
      u.cover_image_id = (await _own_uploaded_file(db, u, payload.coverImageId)).id if payload.coverImageId else None
    await db.flush()
  return await user_out(db, storage, u)
