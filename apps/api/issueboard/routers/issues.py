from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from issueboard.access import has_project_access, require_project_access
from issueboard.db import transaction
from issueboard.deps import get_current_user, get_db, get_hierarchy_guard, get_ordering
from issueboard.errors import InvalidRelation
from issueboard.hierarchy import HierarchyGuard
from issueboard.history import write_history
from issueboard.models import (
  Issue,
  IssueComment,
  IssueLabel,
  Project,
  UserProfile,
  issue_label_links,
)
from issueboard.ordering import OrderingEngine
from issueboard.purge import purge_issue
from issueboard.schemas import IssueCreateIn, IssueOut, IssueUpdateIn
from issueboard.store import get_by_public_id, public_ids_for

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/issue", tags=["issues"])


async def _issue_out(db: AsyncSession, i: Issue, *, ordering: OrderingEngine) -> IssueOut:
  children = await db.execute(select(Issue.public_id).where(Issue.parent_id == i.id).order_by(Issue.id.asc()))
  labels = await db.execute(
    select(IssueLabel.public_id)
    .join(issue_label_links, issue_label_links.c.label_id == IssueLabel.id)
    .where(issue_label_links.c.issue_id == i.id)
    .order_by(IssueLabel.id.asc())
  )
  comments = await db.execute(select(IssueComment.public_id).where(IssueComment.issue_id == i.id).order_by(IssueComment.id.asc()))
  profiles = await public_ids_for(db, UserProfile, [x for x in (i.creator_id, i.assignee_id) if x is not None])
  project_ids = await public_ids_for(db, Project, [i.project_id])
  parent_ids = await public_ids_for(db, Issue, [i.parent_id] if i.parent_id else [])
  item = await ordering.placement_for(i.id)
  return IssueOut(
    id=i.public_id,
    title=i.title,
    description=i.description,
    priority=i.priority,
    type=i.type,
    projectId=project_ids[i.project_id],
    createdById=profiles[i.creator_id],
    assigneeId=profiles.get(i.assignee_id) if i.assignee_id else None,
    parentId=parent_ids.get(i.parent_id) if i.parent_id else None,
    childrenIds=list(children.scalars().all()),
    labelIds=list(labels.scalars().all()),
    commentIds=list(comments.scalars().all()),
    projectBoardColumnItemId=item.public_id if item else None,
    dueDate=i.due_date,
    startDate=i.start_date,
    createdAt=i.created_at,
    updatedAt=i.updated_at,
  )


async def _project_member(db: AsyncSession, project_id: int, profile_public_id: str) -> UserProfile:
  profile = await get_by_public_id(db, UserProfile, profile_public_id, label="Assignee")
  if not await has_project_access(db, profile.id, project_id):
    raise InvalidRelation("Assignee must be a project member")
  return profile


async def _same_project_issue(db: AsyncSession, project_id: int, issue_public_id: str, *, label: str) -> Issue:
  other = await get_by_public_id(db, Issue, issue_public_id, label=label)
  if other.project_id != project_id:
    raise InvalidRelation(f"{label} must belong to the same project")
  return other


@router.get("", response_model=list[IssueOut])
async def list_issues(
  projectId: str = Query(...),
  user: UserProfile = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  ordering: OrderingEngine = Depends(get_ordering),
) -> list[IssueOut]:
  project = await get_by_public_id(db, Project, projectId, label="Project")
  await require_project_access(db, user.id, project.id)
  res = await db.execute(select(Issue).where(Issue.project_id == project.id).order_by(Issue.id.asc()))
  return [await _issue_out(db, i, ordering=ordering) for i in res.scalars().all()]


@router.post("", response_model=IssueOut, status_code=status.HTTP_201_CREATED)
async def create(
  payload: IssueCreateIn,
  user: UserProfile = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  ordering: OrderingEngine = Depends(get_ordering),
) -> IssueOut:
  async with transaction(db):
    project = await get_by_public_id(db, Project, payload.projectId, label="Project")
    await require_project_access(db, user.id, project.id)
    assignee = await _project_member(db, project.id, payload.assigneeId) if payload.assigneeId else None
    parent = await _same_project_issue(db, project.id, payload.parentId, label="Parent issue") if payload.parentId else None

    i = Issue(
      project_id=project.id,
      title=payload.title,
      description=payload.description,
      priority=payload.priority,
      type=payload.type,
      due_date=payload.dueDate,
      start_date=payload.startDate,
      creator_id=user.id,
      assignee_id=assignee.id if assignee else None,
      parent_id=parent.id if parent else None,
    )
    db.add(i)
    await db.flush()
    await write_history(db, issue_id=i.id, author_id=user.id, topic="created", current=i.title)
  logger.info("created issue=%s project=%s", i.public_id, project.public_id)
  return await _issue_out(db, i, ordering=ordering)


@router.get("/{issue_id}", response_model=IssueOut)
async def get_issue(
  issue_id: str,
  user: UserProfile = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  ordering: OrderingEngine = Depends(get_ordering),
) -> IssueOut:
  i = await get_by_public_id(db, Issue, issue_id, label="Issue")
  await require_project_access(db, user.id, i.project_id)
  return await _issue_out(db, i, ordering=ordering)


@router.patch("/{issue_id}", response_model=IssueOut)
async def update_issue(
  issue_id: str,
  payload: IssueUpdateIn,
  user: UserProfile = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  ordering: OrderingEngine = Depends(get_ordering),
  guard: HierarchyGuard = Depends(get_hierarchy_guard),
) -> IssueOut:
  fields_set = payload.model_fields_set
  async with transaction(db):
    i = await get_by_public_id(db, Issue, issue_id, label="Issue", for_update=True)
    await require_project_access(db, user.id, i.project_id)

    async def record(topic: str, previous: object, current: object) -> None:
      await write_history(db, issue_id=i.id, author_id=user.id, topic=topic, previous=previous, current=current)

    if "projectId" in fields_set and payload.projectId:
      target = await get_by_public_id(db, Project, payload.projectId, label="Project")
      if target.id != i.project_id:
        await require_project_access(db, user.id, target.id)
        parent_after = payload.parentId if "parentId" in fields_set else i.parent_id
        if "childrenIds" in fields_set:
          children_after = bool(payload.childrenIds)
        else:
          cres = await db.execute(select(Issue.id).where(Issue.parent_id == i.id).limit(1))
          children_after = cres.first() is not None
        if parent_after is not None or children_after:
          raise InvalidRelation("Issue with parent or child links cannot move to another project")
        if i.assignee_id and "assigneeId" not in fields_set and not await has_project_access(db, i.assignee_id, target.id):
          raise InvalidRelation("Assignee must be a project member")

        old_project = (await public_ids_for(db, Project, [i.project_id]))[i.project_id]
        await ordering.unplace_issue(i.id)
        await db.execute(delete(issue_label_links).where(issue_label_links.c.issue_id == i.id))
        i.project_id = target.id
        await record("project", old_project, target.public_id)
        await db.flush()

    for model_attr, field_name in [
      ("title", "title"),
      ("description", "description"),
      ("priority", "priority"),
      ("due_date", "dueDate"),
      ("start_date", "startDate"),
    ]:
      if field_name not in fields_set:
        continue
      val = getattr(payload, field_name)
      if val is None and field_name in ("title", "description", "priority"):
        continue
      previous = getattr(i, model_attr)
      if previous != val:
        setattr(i, model_attr, val)
        await record(field_name, previous, val)

    if "assigneeId" in fields_set:
      assignee = await _project_member(db, i.project_id, payload.assigneeId) if payload.assigneeId else None
      new_id = assignee.id if assignee else None
      if new_id != i.assignee_id:
        previous = await public_ids_for(db, UserProfile, [i.assignee_id] if i.assignee_id else [])
        i.assignee_id = new_id
        await record("assignee", next(iter(previous.values()), None), payload.assigneeId)

    if "parentId" in fields_set:
      parent = await _same_project_issue(db, i.project_id, payload.parentId, label="Parent issue") if payload.parentId else None
      if parent is not None:
        await guard.ensure_issue_parent(i.id, parent.id)
      new_id = parent.id if parent else None
      if new_id != i.parent_id:
        previous = await public_ids_for(db, Issue, [i.parent_id] if i.parent_id else [])
        i.parent_id = new_id
        await record("parent", next(iter(previous.values()), None), payload.parentId)
        await db.flush()

    if "childrenIds" in fields_set and payload.childrenIds is not None:
      if issue_id in payload.childrenIds:
        raise InvalidRelation("Issue cannot be its own child")
      children = [await _same_project_issue(db, i.project_id, cid, label="Child issue") for cid in dict.fromkeys(payload.childrenIds)]
      for child in children:
        await guard.ensure_issue_parent(child.id, i.id)
      cres = await db.execute(select(Issue.public_id).where(Issue.parent_id == i.id).order_by(Issue.id.asc()))
      previous_children = list(cres.scalars().all())
      detach = update(Issue).where(Issue.parent_id == i.id)
      if children:
        detach = detach.where(Issue.id.not_in([c.id for c in children]))
      await db.execute(detach.values(parent_id=None))
      for child in children:
        child.parent_id = i.id
      if sorted(previous_children) != sorted(c.public_id for c in children):
        await record("children", previous_children, [c.public_id for c in children])

    if "labelIds" in fields_set and payload.labelIds is not None:
      labels = []
      for lid in dict.fromkeys(payload.labelIds):
        label = await get_by_public_id(db, IssueLabel, lid, label="Label")
        if label.project_id != i.project_id:
          raise InvalidRelation("Label must belong to the same project")
        labels.append(label)
      lres = await db.execute(
        select(IssueLabel.public_id)
        .join(issue_label_links, issue_label_links.c.label_id == IssueLabel.id)
        .where(issue_label_links.c.issue_id == i.id)
      )
      previous_labels = sorted(lres.scalars().all())
      await db.execute(delete(issue_label_links).where(issue_label_links.c.issue_id == i.id))
      for label in labels:
        await db.execute(insert(issue_label_links).values(issue_id=i.id, label_id=label.id))
      current_labels = sorted(label.public_id for label in labels)
      if previous_labels != current_labels:
        await record("labels", previous_labels, current_labels)

    await db.flush()
  return await _issue_out(db, i, ordering=ordering)


@router.delete("/{issue_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_issue(
  issue_id: str,
  user: UserProfile = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  ordering: OrderingEngine = Depends(get_ordering),
) -> Response:
  async with transaction(db):
    i = await get_by_public_id(db, Issue, issue_id, label="Issue", for_update=True)
    await require_project_access(db, user.id, i.project_id)

    await purge_issue(db, ordering, i)
  logger.info("deleted issue=%s", issue_id)
  return Response(status_code=status.HTTP_204_NO_CONTENT)
