from __future__ import annotations

import logging

from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession

from issueboard.models import Project, ProjectBoard, ProjectBoardColumn, UserProfile, project_members

logger = logging.getLogger(__name__)

DEFAULT_BOARD_NAME = "Default Board"
DEFAULT_COLUMNS: list[tuple[str, int]] = [("To Do", 1), ("In Progress", 2), ("Done", 3)]


async def add_member(db: AsyncSession, *, project_id: int, profile_id: int) -> None:
  await db.execute(insert(project_members).values(project_id=project_id, profile_id=profile_id))


async def create_project(db: AsyncSession, *, owner: UserProfile, name: str, description: str = "") -> Project:
  project = Project(name=name, description=description)
  db.add(project)
  await db.flush()
  await add_member(db, project_id=project.id, profile_id=owner.id)
  return project


async def create_board(db: AsyncSession, *, project: Project, name: str, description: str = "", with_default_columns: bool = False) -> ProjectBoard:
  board = ProjectBoard(project_id=project.id, name=name, description=description)
  db.add(board)
  await db.flush()
  if with_default_columns:
    for col_name, pos in DEFAULT_COLUMNS:
      db.add(ProjectBoardColumn(board_id=board.id, name=col_name, description="", position=pos))
    await db.flush()
  return board


async def create_project_with_default_board(db: AsyncSession, *, owner: UserProfile) -> Project:
  """Starter workspace for a newly registered user."""
  project = await create_project(db, owner=owner, name=f"{owner.first_name}'s Project", description="")
  board = await create_board(db, project=project, name=DEFAULT_BOARD_NAME, with_default_columns=True)
  logger.info("created default project=%s board=%s", project.public_id, board.public_id)
  return project
