from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
  BigInteger,
  Column,
  DateTime,
  ForeignKey,
  Index,
  Integer,
  String,
  Table,
  Text,
  TypeDecorator,
  UniqueConstraint,
  Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
BigId = BigInteger().with_variant(Integer, "sqlite")


class UtcDateTime(TypeDecorator):
  """Timezone-aware datetime that always round-trips as UTC.

  SQLite drops the offset on read; values coming back naive are UTC.
  """

  impl = DateTime(timezone=True)
  cache_ok = True

  def process_bind_param(self, value, dialect):
    if value is not None and value.tzinfo is not None:
      return value.astimezone(timezone.utc)
    return value

  def process_result_value(self, value, dialect):
    if value is None:
      return None
    if value.tzinfo is None:
      return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
  return datetime.now(timezone.utc)


def new_public_id() -> str:
  return str(uuid.uuid4())


class Base(DeclarativeBase):
  pass


project_members = Table(
  "project_members",
  Base.metadata,
  Column("project_id", BigId, ForeignKey("projects.id"), primary_key=True),
  Column("profile_id", BigId, ForeignKey("user_profiles.id"), primary_key=True),
)

issue_label_links = Table(
  "issue_label_links",
  Base.metadata,
  Column("issue_id", BigId, ForeignKey("issues.id"), primary_key=True),
  Column("label_id", BigId, ForeignKey("issue_labels.id"), primary_key=True),
)

comment_likes = Table(
  "comment_likes",
  Base.metadata,
  Column("comment_id", BigId, ForeignKey("issue_comments.id"), primary_key=True),
  Column("profile_id", BigId, ForeignKey("user_profiles.id"), primary_key=True),
)


class UserCredential(Base):
  __tablename__ = "user_credentials"

  id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
  public_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), nullable=False, unique=True, index=True, default=new_public_id)
  email: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
  password_hash: Mapped[str] = mapped_column(String, nullable=False)
  created_at: Mapped[datetime] = mapped_column(UtcDateTime(), default=utcnow, nullable=False)


class Session(Base):
  __tablename__ = "sessions"

  id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=new_public_id)
  credential_id: Mapped[int] = mapped_column(BigId, ForeignKey("user_credentials.id"), nullable=False, index=True)
  created_at: Mapped[datetime] = mapped_column(UtcDateTime(), default=utcnow, nullable=False)
  expires_at: Mapped[datetime] = mapped_column(UtcDateTime(), nullable=False)


class Team(Base):
  __tablename__ = "teams"

  id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
  public_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), nullable=False, unique=True, index=True, default=new_public_id)
  name: Mapped[str] = mapped_column(String(100), nullable=False)
  description: Mapped[str] = mapped_column(Text, nullable=False, default="")
  created_at: Mapped[datetime] = mapped_column(UtcDateTime(), default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(UtcDateTime(), default=utcnow, onupdate=utcnow, nullable=False)


class Address(Base):
  __tablename__ = "addresses"

  id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
  public_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), nullable=False, unique=True, index=True, default=new_public_id)
  street: Mapped[str] = mapped_column(String, nullable=False)
  house_number: Mapped[str] = mapped_column(String, nullable=False)
  apartment_number: Mapped[str | None] = mapped_column(String, nullable=True)
  city: Mapped[str] = mapped_column(String, nullable=False)
  state: Mapped[str] = mapped_column(String, nullable=False)
  zip_code: Mapped[str] = mapped_column(String, nullable=False)
  country: Mapped[str] = mapped_column(String, nullable=False)
  created_at: Mapped[datetime] = mapped_column(UtcDateTime(), default=utcnow, nullable=False)


class UserProfile(Base):
  __tablename__ = "user_profiles"

  id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
  public_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), nullable=False, unique=True, index=True, default=new_public_id)
  credential_id: Mapped[int] = mapped_column(BigId, ForeignKey("user_credentials.id"), nullable=False, unique=True)
  first_name: Mapped[str] = mapped_column(String(50), nullable=False)
  last_name: Mapped[str] = mapped_column(String(50), nullable=False)
  department: Mapped[str | None] = mapped_column(String(50), nullable=True)
  organization: Mapped[str | None] = mapped_column(String(100), nullable=True)
  position: Mapped[str | None] = mapped_column(String(100), nullable=True)
  home_phone: Mapped[str | None] = mapped_column(String, nullable=True)
  work_phone: Mapped[str | None] = mapped_column(String, nullable=True)
  address_id: Mapped[int | None] = mapped_column(BigId, ForeignKey("addresses.id"), nullable=True)
  team_id: Mapped[int | None] = mapped_column(BigId, ForeignKey("teams.id"), nullable=True, index=True)
  profile_picture_id: Mapped[int | None] = mapped_column(
    BigId, ForeignKey("files.id", use_alter=True, name="fk_user_profiles_profile_picture"), nullable=True
  )
  cover_image_id: Mapped[int | None] = mapped_column(
    BigId, ForeignKey("files.id", use_alter=True, name="fk_user_profiles_cover_image"), nullable=True
  )
  last_active: Mapped[datetime] = mapped_column(UtcDateTime(), default=utcnow, nullable=False)
  created_at: Mapped[datetime] = mapped_column(UtcDateTime(), default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(UtcDateTime(), default=utcnow, onupdate=utcnow, nullable=False)


class File(Base):
  __tablename__ = "files"

  id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
  public_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), nullable=False, unique=True, index=True, default=new_public_id)
  filename: Mapped[str] = mapped_column(String, nullable=False)
  storage_key: Mapped[str] = mapped_column(String, nullable=False, unique=True)
  content_type: Mapped[str | None] = mapped_column(String, nullable=True)
  status: Mapped[str] = mapped_column(String, nullable=False, default="PENDING")  # PENDING | UPLOADED
  uploader_id: Mapped[int] = mapped_column(BigId, ForeignKey("user_profiles.id"), nullable=False, index=True)
  uploaded_at: Mapped[datetime | None] = mapped_column(UtcDateTime(), nullable=True)
  created_at: Mapped[datetime] = mapped_column(UtcDateTime(), default=utcnow, nullable=False)


class Project(Base):
  __tablename__ = "projects"

  id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
  public_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), nullable=False, unique=True, index=True, default=new_public_id)
  name: Mapped[str] = mapped_column(String(100), nullable=False)
  description: Mapped[str] = mapped_column(Text, nullable=False, default="")
  created_at: Mapped[datetime] = mapped_column(UtcDateTime(), default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(UtcDateTime(), default=utcnow, onupdate=utcnow, nullable=False)


class ProjectBoard(Base):
  __tablename__ = "project_boards"

  id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
  public_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), nullable=False, unique=True, index=True, default=new_public_id)
  project_id: Mapped[int] = mapped_column(BigId, ForeignKey("projects.id"), nullable=False, index=True)
  name: Mapped[str] = mapped_column(String(50), nullable=False)
  description: Mapped[str] = mapped_column(Text, nullable=False, default="")
  created_at: Mapped[datetime] = mapped_column(UtcDateTime(), default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(UtcDateTime(), default=utcnow, onupdate=utcnow, nullable=False)


class ProjectBoardColumn(Base):
  __tablename__ = "project_board_columns"
  __table_args__ = (Index("ix_project_board_columns_board_pos", "board_id", "position"),)

  id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
  public_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), nullable=False, unique=True, index=True, default=new_public_id)
  board_id: Mapped[int] = mapped_column(BigId, ForeignKey("project_boards.id"), nullable=False)
  name: Mapped[str] = mapped_column(String(50), nullable=False)
  description: Mapped[str] = mapped_column(Text, nullable=False, default="")
  position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  created_at: Mapped[datetime] = mapped_column(UtcDateTime(), default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(UtcDateTime(), default=utcnow, onupdate=utcnow, nullable=False)


class ProjectBoardColumnItem(Base):
  __tablename__ = "project_board_column_items"
  __table_args__ = (
    UniqueConstraint("issue_id", name="ux_project_board_column_items_issue"),
    Index("ix_project_board_column_items_column_pos", "column_id", "position"),
  )

  id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
  public_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), nullable=False, unique=True, index=True, default=new_public_id)
  column_id: Mapped[int] = mapped_column(BigId, ForeignKey("project_board_columns.id"), nullable=False)
  issue_id: Mapped[int] = mapped_column(BigId, ForeignKey("issues.id"), nullable=False)
  position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  created_at: Mapped[datetime] = mapped_column(UtcDateTime(), default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(UtcDateTime(), default=utcnow, onupdate=utcnow, nullable=False)


class Issue(Base):
  __tablename__ = "issues"

  id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
  public_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), nullable=False, unique=True, index=True, default=new_public_id)
  project_id: Mapped[int] = mapped_column(BigId, ForeignKey("projects.id"), nullable=False, index=True)
  title: Mapped[str] = mapped_column(String(100), nullable=False)
  description: Mapped[str] = mapped_column(Text, nullable=False, default="")
  priority: Mapped[str] = mapped_column(String, nullable=False, default="medium")  # low | medium | high | urgent
  type: Mapped[str] = mapped_column(String, nullable=False, default="TASK")  # EPIC | STORY | TASK
  due_date: Mapped[datetime | None] = mapped_column(UtcDateTime(), nullable=True)
  start_date: Mapped[datetime | None] = mapped_column(UtcDateTime(), nullable=True)
  creator_id: Mapped[int] = mapped_column(BigId, ForeignKey("user_profiles.id"), nullable=False)
  assignee_id: Mapped[int | None] = mapped_column(BigId, ForeignKey("user_profiles.id"), nullable=True, index=True)
  parent_id: Mapped[int | None] = mapped_column(BigId, ForeignKey("issues.id"), nullable=True, index=True)
  created_at: Mapped[datetime] = mapped_column(UtcDateTime(), default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(UtcDateTime(), default=utcnow, onupdate=utcnow, nullable=False)


class IssueLabel(Base):
  __tablename__ = "issue_labels"

  id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
  public_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), nullable=False, unique=True, index=True, default=new_public_id)
  project_id: Mapped[int] = mapped_column(BigId, ForeignKey("projects.id"), nullable=False, index=True)
  name: Mapped[str] = mapped_column(String(50), nullable=False)
  color: Mapped[str] = mapped_column(String, nullable=False)
  created_at: Mapped[datetime] = mapped_column(UtcDateTime(), default=utcnow, nullable=False)


class IssueComment(Base):
  __tablename__ = "issue_comments"

  id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
  public_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), nullable=False, unique=True, index=True, default=new_public_id)
  issue_id: Mapped[int] = mapped_column(BigId, ForeignKey("issues.id"), nullable=False, index=True)
  author_id: Mapped[int] = mapped_column(BigId, ForeignKey("user_profiles.id"), nullable=False)
  parent_id: Mapped[int | None] = mapped_column(BigId, ForeignKey("issue_comments.id"), nullable=True, index=True)
  text: Mapped[str] = mapped_column(Text, nullable=False)
  # updated_at is only bumped by content changes; edited == updated_at > created_at
  created_at: Mapped[datetime] = mapped_column(UtcDateTime(), nullable=False)
  updated_at: Mapped[datetime] = mapped_column(UtcDateTime(), nullable=False)


class IssueHistory(Base):
  __tablename__ = "issue_history"

  id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
  public_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), nullable=False, unique=True, index=True, default=new_public_id)
  issue_id: Mapped[int] = mapped_column(BigId, ForeignKey("issues.id"), nullable=False, index=True)
  author_id: Mapped[int] = mapped_column(BigId, ForeignKey("user_profiles.id"), nullable=False)
  topic: Mapped[str] = mapped_column(String, nullable=False)
  previous: Mapped[str | None] = mapped_column(Text, nullable=True)
  current: Mapped[str | None] = mapped_column(Text, nullable=True)
  changed_at: Mapped[datetime] = mapped_column(UtcDateTime(), default=utcnow, nullable=False)
