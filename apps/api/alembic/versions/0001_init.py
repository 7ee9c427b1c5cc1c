"""init

Revision ID: 0001_init
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _id() -> sa.Column:
  return sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True)


def _public_id() -> sa.Column:
  return sa.Column("public_id", postgresql.UUID(as_uuid=False), nullable=False)


def _stamps() -> list[sa.Column]:
  return [
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
  ]


def upgrade() -> None:
  op.create_table(
    "user_credentials",
    _id(),
    _public_id(),
    sa.Column("email", sa.String(length=100), nullable=False),
    sa.Column("password_hash", sa.String(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_user_credentials_public_id", "user_credentials", ["public_id"], unique=True)
  op.create_index("ix_user_credentials_email", "user_credentials", ["email"], unique=True)

  op.create_table(
    "sessions",
    sa.Column("id", postgresql.UUID(as_uuid=False), primary_key=True),
    sa.Column("credential_id", sa.BigInteger(), sa.ForeignKey("user_credentials.id"), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_sessions_credential_id", "sessions", ["credential_id"], unique=False)

  op.create_table(
    "teams",
    _id(),
    _public_id(),
    sa.Column("name", sa.String(length=100), nullable=False),
    sa.Column("description", sa.Text(), nullable=False),
    *_stamps(),
  )
  op.create_index("ix_teams_public_id", "teams", ["public_id"], unique=True)

  op.create_table(
    "addresses",
    _id(),
    _public_id(),
    sa.Column("street", sa.String(), nullable=False),
    sa.Column("house_number", sa.String(), nullable=False),
    sa.Column("apartment_number", sa.String(), nullable=True),
    sa.Column("city", sa.String(), nullable=False),
    sa.Column("state", sa.String(), nullable=False),
    sa.Column("zip_code", sa.String(), nullable=False),
    sa.Column("country", sa.String(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_addresses_public_id", "addresses", ["public_id"], unique=True)

  op.create_table(
    "user_profiles",
    _id(),
    _public_id(),
    sa.Column("credential_id", sa.BigInteger(), sa.ForeignKey("user_credentials.id"), nullable=False, unique=True),
    sa.Column("first_name", sa.String(length=50), nullable=False),
    sa.Column("last_name", sa.String(length=50), nullable=False),
    sa.Column("department", sa.String(length=50), nullable=True),
    sa.Column("organization", sa.String(length=100), nullable=True),
    sa.Column("position", sa.String(length=100), nullable=True),
    sa.Column("home_phone", sa.String(), nullable=True),
    sa.Column("work_phone", sa.String(), nullable=True),
    sa.Column("address_id", sa.BigInteger(), sa.ForeignKey("addresses.id"), nullable=True),
    sa.Column("team_id", sa.BigInteger(), sa.ForeignKey("teams.id"), nullable=True),
    sa.Column("profile_picture_id", sa.BigInteger(), nullable=True),
    sa.Column("cover_image_id", sa.BigInteger(), nullable=True),
    sa.Column("last_active", sa.DateTime(timezone=True), nullable=False),
    *_stamps(),
  )
  op.create_index("ix_user_profiles_public_id", "user_profiles", ["public_id"], unique=True)
  op.create_index("ix_user_profiles_team_id", "user_profiles", ["team_id"], unique=False)

  op.create_table(
    "files",
    _id(),
    _public_id(),
    sa.Column("filename", sa.String(), nullable=False),
    sa.Column("storage_key", sa.String(), nullable=False, unique=True),
    sa.Column("content_type", sa.String(), nullable=True),
    sa.Column("status", sa.String(), nullable=False),
    sa.Column("uploader_id", sa.BigInteger(), sa.ForeignKey("user_profiles.id"), nullable=False),
    sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_files_public_id", "files", ["public_id"], unique=True)
  op.create_index("ix_files_uploader_id", "files", ["uploader_id"], unique=False)
  op.create_foreign_key("fk_user_profiles_profile_picture", "user_profiles", "files", ["profile_picture_id"], ["id"])
  op.create_foreign_key("fk_user_profiles_cover_image", "user_profiles", "files", ["cover_image_id"], ["id"])

  op.create_table(
    "projects",
    _id(),
    _public_id(),
    sa.Column("name", sa.String(length=100), nullable=False),
    sa.Column("description", sa.Text(), nullable=False),
    *_stamps(),
  )
  op.create_index("ix_projects_public_id", "projects", ["public_id"], unique=True)

  op.create_table(
    "project_members",
    sa.Column("project_id", sa.BigInteger(), sa.ForeignKey("projects.id"), primary_key=True),
    sa.Column("profile_id", sa.BigInteger(), sa.ForeignKey("user_profiles.id"), primary_key=True),
  )

  op.create_table(
    "project_boards",
    _id(),
    _public_id(),
    sa.Column("project_id", sa.BigInteger(), sa.ForeignKey("projects.id"), nullable=False),
    sa.Column("name", sa.String(length=50), nullable=False),
    sa.Column("description", sa.Text(), nullable=False),
    *_stamps(),
  )
  op.create_index("ix_project_boards_public_id", "project_boards", ["public_id"], unique=True)
  op.create_index("ix_project_boards_project_id", "project_boards", ["project_id"], unique=False)

  op.create_table(
    "project_board_columns",
    _id(),
    _public_id(),
    sa.Column("board_id", sa.BigInteger(), sa.ForeignKey("project_boards.id"), nullable=False),
    sa.Column("name", sa.String(length=50), nullable=False),
    sa.Column("description", sa.Text(), nullable=False),
    sa.Column("position", sa.Integer(), nullable=False),
    *_stamps(),
  )
  op.create_index("ix_project_board_columns_public_id", "project_board_columns", ["public_id"], unique=True)
  op.create_index("ix_project_board_columns_board_pos", "project_board_columns", ["board_id", "position"], unique=False)

  op.create_table(
    "issues",
    _id(),
    _public_id(),
    sa.Column("project_id", sa.BigInteger(), sa.ForeignKey("projects.id"), nullable=False),
    sa.Column("title", sa.String(length=100), nullable=False),
    sa.Column("description", sa.Text(), nullable=False),
    sa.Column("priority", sa.String(), nullable=False),
    sa.Column("type", sa.String(), nullable=False),
    sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
    sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
    sa.Column("creator_id", sa.BigInteger(), sa.ForeignKey("user_profiles.id"), nullable=False),
    sa.Column("assignee_id", sa.BigInteger(), sa.ForeignKey("user_profiles.id"), nullable=True),
    sa.Column("parent_id", sa.BigInteger(), sa.ForeignKey("issues.id"), nullable=True),
    *_stamps(),
  )
  op.create_index("ix_issues_public_id", "issues", ["public_id"], unique=True)
  op.create_index("ix_issues_project_id", "issues", ["project_id"], unique=False)
  op.create_index("ix_issues_assignee_id", "issues", ["assignee_id"], unique=False)
  op.create_index("ix_issues_parent_id", "issues", ["parent_id"], unique=False)

  op.create_table(
    "project_board_column_items",
    _id(),
    _public_id(),
    sa.Column("column_id", sa.BigInteger(), sa.ForeignKey("project_board_columns.id"), nullable=False),
    sa.Column("issue_id", sa.BigInteger(), sa.ForeignKey("issues.id"), nullable=False),
    sa.Column("position", sa.Integer(), nullable=False),
    *_stamps(),
    sa.UniqueConstraint("issue_id", name="ux_project_board_column_items_issue"),
  )
  op.create_index("ix_project_board_column_items_public_id", "project_board_column_items", ["public_id"], unique=True)
  op.create_index("ix_project_board_column_items_column_pos", "project_board_column_items", ["column_id", "position"], unique=False)

  op.create_table(
    "issue_labels",
    _id(),
    _public_id(),
    sa.Column("project_id", sa.BigInteger(), sa.ForeignKey("projects.id"), nullable=False),
    sa.Column("name", sa.String(length=50), nullable=False),
    sa.Column("color", sa.String(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_issue_labels_public_id", "issue_labels", ["public_id"], unique=True)
  op.create_index("ix_issue_labels_project_id", "issue_labels", ["project_id"], unique=False)

  op.create_table(
    "issue_label_links",
    sa.Column("issue_id", sa.BigInteger(), sa.ForeignKey("issues.id"), primary_key=True),
    sa.Column("label_id", sa.BigInteger(), sa.ForeignKey("issue_labels.id"), primary_key=True),
  )

  op.create_table(
    "issue_comments",
    _id(),
    _public_id(),
    sa.Column("issue_id", sa.BigInteger(), sa.ForeignKey("issues.id"), nullable=False),
    sa.Column("author_id", sa.BigInteger(), sa.ForeignKey("user_profiles.id"), nullable=False),
    sa.Column("parent_id", sa.BigInteger(), sa.ForeignKey("issue_comments.id"), nullable=True),
    sa.Column("text", sa.Text(), nullable=False),
    *_stamps(),
  )
  op.create_index("ix_issue_comments_public_id", "issue_comments", ["public_id"], unique=True)
  op.create_index("ix_issue_comments_issue_id", "issue_comments", ["issue_id"], unique=False)
  op.create_index("ix_issue_comments_parent_id", "issue_comments", ["parent_id"], unique=False)

  op.create_table(
    "comment_likes",
    sa.Column("comment_id", sa.BigInteger(), sa.ForeignKey("issue_comments.id"), primary_key=True),
    sa.Column("profile_id", sa.BigInteger(), sa.ForeignKey("user_profiles.id"), primary_key=True),
  )

  op.create_table(
    "issue_history",
    _id(),
    _public_id(),
    sa.Column("issue_id", sa.BigInteger(), sa.ForeignKey("issues.id"), nullable=False),
    sa.Column("author_id", sa.BigInteger(), sa.ForeignKey("user_profiles.id"), nullable=False),
    sa.Column("topic", sa.String(), nullable=False),
    sa.Column("previous", sa.Text(), nullable=True),
    sa.Column("current", sa.Text(), nullable=True),
    sa.Column("changed_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_issue_history_public_id", "issue_history", ["public_id"], unique=True)
  op.create_index("ix_issue_history_issue_id", "issue_history", ["issue_id"], unique=False)


def downgrade() -> None:
  op.drop_table("issue_history")
  op.drop_table("comment_likes")
  op.drop_table("issue_comments")
  op.drop_table("issue_label_links")
  op.drop_table("issue_labels")
  op.drop_table("project_board_column_items")
  op.drop_table("issues")
  op.drop_table("project_board_columns")
  op.drop_table("project_boards")
  op.drop_table("project_members")
  op.drop_table("projects")
  op.drop_constraint("fk_user_profiles_cover_image", "user_profiles", type_="foreignkey")
  op.drop_constraint("fk_user_profiles_profile_picture", "user_profiles", type_="foreignkey")
  op.drop_table("files")
  op.drop_table("user_profiles")
  op.drop_table("addresses")
  op.drop_table("teams")
  op.drop_table("sessions")
  op.drop_table("user_credentials")
