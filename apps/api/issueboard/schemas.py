from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field
from pydantic import field_validator


_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

IssuePriority = Literal["low", "medium", "high", "urgent"]
IssueType = Literal["EPIC", "STORY", "TASK"]
FileStatus = Literal["PENDING", "UPLOADED"]


def _parse_dt_utc(value: object) -> object:
  if value is None:
    return None
  if isinstance(value, datetime):
    dt = value
  elif isinstance(value, str):
    s = value.strip()
    if not s:
      return None
    if _DATE_ONLY_RE.fullmatch(s):
      dt = datetime.fromisoformat(s)
    else:
      dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
  else:
    return value

  if dt.tzinfo is None:
    return dt.replace(tzinfo=timezone.utc)
  return dt.astimezone(timezone.utc)


# Auth / users


class IdOut(BaseModel):
  id: str


class RegisterIn(BaseModel):
  email: str = Field(min_length=3, max_length=100)
  password: str = Field(min_length=8, max_length=100)
  firstName: str = Field(min_length=1, max_length=50)
  lastName: str = Field(min_length=1, max_length=50)


class LoginIn(BaseModel):
  email: str
  password: str


class UserOut(BaseModel):
  id: str
  email: str
  firstName: str
  lastName: str
  department: str | None = None
  organization: str | None = None
  position: str | None = None
  homePhone: str | None = None
  workPhone: str | None = None
  addressId: str | None = None
  teamId: str | None = None
  profilePictureUrl: str | None = None
  coverImageUrl: str | None = None
  lastActive: datetime


class UserUpdateIn(BaseModel):
  firstName: str | None = Field(default=None, min_length=1, max_length=50)
  lastName: str | None = Field(default=None, min_length=1, max_length=50)
  department: str | None = Field(default=None, max_length=50)
  organization: str | None = Field(default=None, max_length=100)
  position: str | None = Field(default=None, max_length=100)
  homePhone: str | None = None
  workPhone: str | None = None
  addressId: str | None = None
  teamId: str | None = None
  profilePictureId: str | None = None
  coverImageId: str | None = None


# Projects


class ProjectCreateIn(BaseModel):
  name: str = Field(min_length=1, max_length=100)
  description: str = Field(default="", max_length=500)


class ProjectUpdateIn(BaseModel):
  name: str | None = Field(default=None, min_length=1, max_length=100)
  description: str | None = Field(default=None, max_length=500)


class ProjectMemberIn(BaseModel):
  email: str = Field(min_length=3, max_length=100)


class ProjectBoardSummaryOut(BaseModel):
  id: str
  name: str
  description: str


class ProjectOut(BaseModel):
  id: str
  name: str
  description: str
  boards: list[ProjectBoardSummaryOut] = []
  memberIds: list[str] = []


# Boards, columns, items


class ProjectBoardCreateIn(BaseModel):
  name: str = Field(min_length=1, max_length=50)
  description: str = Field(default="", max_length=500)
  projectId: str


class ColumnItemLayoutIn(BaseModel):
  id: str
  position: int


class ColumnLayoutIn(BaseModel):
  id: str
  position: int
  name: str | None = Field(default=None, min_length=1, max_length=50)
  description: str | None = Field(default=None, max_length=500)
  items: list[ColumnItemLayoutIn] = []


class ProjectBoardUpdateIn(BaseModel):
  name: str | None = Field(default=None, min_length=1, max_length=50)
  description: str | None = Field(default=None, max_length=500)
  columns: list[ColumnLayoutIn] | None = None


class AssigneeOut(BaseModel):
  id: str
  name: str = Field(min_length=1, max_length=101)
  email: str = Field(max_length=100)


class ProjectBoardColumnItemOut(BaseModel):
  id: str
  issueId: str
  title: str = Field(min_length=1, max_length=100)
  description: str
  dueDate: datetime | None = None
  position: int
  assignee: AssigneeOut | None = None


class ProjectBoardColumnOut(BaseModel):
  id: str
  name: str
  description: str
  position: int
  projectBoardId: str
  items: list[ProjectBoardColumnItemOut] = []


class ProjectBoardOut(BaseModel):
  id: str
  name: str
  description: str
  projectId: str
  columns: list[ProjectBoardColumnOut] = []


class ProjectBoardColumnCreateIn(BaseModel):
  name: str = Field(min_length=1, max_length=50)
  description: str = Field(default="", max_length=500)
  projectBoardId: str
  position: int | None = None


class ProjectBoardColumnUpdateIn(BaseModel):
  name: str | None = Field(default=None, min_length=1, max_length=50)
  description: str | None = Field(default=None, max_length=500)
  position: int | None = None


class ProjectBoardColumnItemCreateIn(BaseModel):
  issueId: str
  projectBoardColumnId: str | None = None
  projectBoardId: str | None = None
  position: int | None = None


class ProjectBoardColumnItemUpdateIn(BaseModel):
  projectBoardColumnId: str
  position: int


class ProjectBoardColumnItemRefOut(BaseModel):
  id: str
  issueId: str
  projectBoardColumnId: str
  position: int


# Issue status


class StatusOptionOut(BaseModel):
  id: str
  name: str
  projectBoardId: str


class IssueStatusOut(BaseModel):
  options: list[StatusOptionOut] = []
  current: StatusOptionOut | None = None


class IssueStatusUpdateIn(BaseModel):
  statusOptionId: str = Field(min_length=1)


# Issues


class IssueCreateIn(BaseModel):
  title: str = Field(min_length=1, max_length=100)
  description: str = Field(default="", max_length=5000)
  priority: IssuePriority = "medium"
  type: IssueType = "TASK"
  projectId: str
  assigneeId: str | None = None
  parentId: str | None = None
  dueDate: datetime | None = None
  startDate: datetime | None = None

  @field_validator("dueDate", "startDate", mode="before")
  @classmethod
  def _dates_utc(cls, value: object) -> object:
    return _parse_dt_utc(value)


class IssueUpdateIn(BaseModel):
  title: str | None = Field(default=None, min_length=1, max_length=100)
  description: str | None = Field(default=None, max_length=5000)
  priority: IssuePriority | None = None
  projectId: str | None = None
  assigneeId: str | None = None
  parentId: str | None = None
  childrenIds: list[str] | None = None
  labelIds: list[str] | None = None
  dueDate: datetime | None = None
  startDate: datetime | None = None

  @field_validator("dueDate", "startDate", mode="before")
  @classmethod
  def _dates_utc(cls, value: object) -> object:
    return _parse_dt_utc(value)


class IssueOut(BaseModel):
  id: str
  title: str
  description: str
  priority: IssuePriority
  type: IssueType
  projectId: str
  createdById: str
  assigneeId: str | None = None
  parentId: str | None = None
  childrenIds: list[str] = []
  labelIds: list[str] = []
  commentIds: list[str] = []
  projectBoardColumnItemId: str | None = None
  dueDate: datetime | None = None
  startDate: datetime | None = None
  createdAt: datetime
  updatedAt: datetime


# Comments


class IssueCommentCreateIn(BaseModel):
  issueId: str
  text: str = Field(min_length=1, max_length=5000)
  parentId: str | None = None


class IssueCommentUpdateIn(BaseModel):
  text: str | None = Field(default=None, min_length=1, max_length=5000)
  liked: bool | None = None
  parentId: str | None = None


class IssueCommentOut(BaseModel):
  id: str
  issueId: str
  authorId: str
  parentId: str | None = None
  text: str
  likedByUserIds: list[str] = []
  edited: bool = False
  createdAt: datetime
  updatedAt: datetime


# Labels


class IssueLabelCreateIn(BaseModel):
  name: str = Field(min_length=1, max_length=50)
  color: str = Field(min_length=1, max_length=32)
  projectId: str


class IssueLabelUpdateIn(BaseModel):
  name: str | None = Field(default=None, min_length=1, max_length=50)
  color: str | None = Field(default=None, min_length=1, max_length=32)


class IssueLabelOut(BaseModel):
  id: str
  name: str
  color: str
  projectId: str


# History


class IssueHistoryChange(BaseModel):
  topic: str = Field(min_length=1, max_length=100)
  previous: str | None = None
  current: str | None = None


class IssueHistoryCreateIn(BaseModel):
  issueId: str
  change: IssueHistoryChange


class IssueHistoryOut(BaseModel):
  id: str
  issueId: str
  authorId: str
  change: IssueHistoryChange
  changedAt: datetime


# Teams / addresses / files


class TeamCreateIn(BaseModel):
  name: str = Field(min_length=1, max_length=100)
  description: str = Field(default="", max_length=500)
  members: list[str] = []


class TeamMemberIn(BaseModel):
  userId: str


class TeamOut(BaseModel):
  id: str
  name: str
  description: str
  memberIds: list[str] = []
  createdAt: datetime
  updatedAt: datetime


class AddressCreateIn(BaseModel):
  street: str = Field(min_length=1, max_length=200)
  houseNumber: str = Field(min_length=1, max_length=20)
  apartmentNumber: str | None = Field(default=None, max_length=20)
  city: str = Field(min_length=1, max_length=100)
  state: str = Field(min_length=1, max_length=100)
  zipCode: str = Field(min_length=1, max_length=20)
  country: str = Field(min_length=1, max_length=100)


class AddressUpdateIn(BaseModel):
  street: str | None = Field(default=None, min_length=1, max_length=200)
  houseNumber: str | None = Field(default=None, min_length=1, max_length=20)
  apartmentNumber: str | None = Field(default=None, max_length=20)
  city: str | None = Field(default=None, min_length=1, max_length=100)
  state: str | None = Field(default=None, min_length=1, max_length=100)
  zipCode: str | None = Field(default=None, min_length=1, max_length=20)
  country: str | None = Field(default=None, min_length=1, max_length=100)


class AddressOut(BaseModel):
  id: str
  street: str
  houseNumber: str
  apartmentNumber: str | None = None
  city: str
  state: str
  zipCode: str
  country: str


class FileCreateIn(BaseModel):
  filename: str = Field(min_length=1, max_length=255)
  contentType: str | None = Field(default=None, max_length=255)


class FileOut(BaseModel):
  id: str
  filename: str
  contentType: str | None = None
  status: FileStatus
  createdAt: datetime


class FileUploadOut(BaseModel):
  file: FileOut
  uploadUrl: str
  uploadFields: dict[str, str] = {}


class FileUrlOut(BaseModel):
  id: str
  url: str
  expiresIn: int


# Per-user activity


class UserIssueOut(BaseModel):
  id: str
  title: str
  priority: IssuePriority
  type: IssueType
  projectId: str
  createdById: str
  assigneeId: str | None = None
  childrenIds: list[str] = []
  labels: list[str] = []
  status: StatusOptionOut | None = None
  dueDate: datetime | None = None
  createdAt: datetime


class IssueRefOut(BaseModel):
  id: str
  title: str


class UserHistoryOut(IssueHistoryOut):
  issue: IssueRefOut
