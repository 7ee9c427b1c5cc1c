from __future__ import annotations

import os
import secrets
import sys
from dataclasses import dataclass
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
  sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./issueboard_test.db")

from issueboard.config import Settings
from issueboard.main import create_app
from issueboard.models import Base, Issue, ProjectBoard, ProjectBoardColumn, UserCredential, UserProfile
from issueboard.ordering import in_order
from issueboard.projects import create_project_with_default_board


@pytest.fixture(scope="session")
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture
async def app(tmp_path: Path):
  cfg = Settings(
    database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
    app_secret="test-secret",
    storage_endpoint_url="http://storage.test",
    storage_access_key_id="test-key",
    storage_secret_access_key="test-secret-key",
  )
  application = create_app(cfg)
  async with application.state.engine.begin() as conn:
    await conn.run_sync(Base.metadata.create_all)
  yield application
  await application.state.engine.dispose()


@pytest.fixture
async def client(app) -> AsyncClient:
  transport = ASGITransport(app=app)
  async with AsyncClient(transport=transport, base_url="http://test") as c:
    yield c


@pytest.fixture
async def other_client(app) -> AsyncClient:
  transport = ASGITransport(app=app)
  async with AsyncClient(transport=transport, base_url="http://test") as c:
    yield c


@pytest.fixture
async def db(app) -> AsyncSession:
  async with app.state.sessionmaker() as session:
    yield session


async def register(client: AsyncClient, email: str | None = None, *, first_name: str = "Ada", password: str = "password123") -> dict:
  payload = {
    "email": email or f"user-{secrets.token_hex(4)}@example.com",
    "password": password,
    "firstName": first_name,
    "lastName": "Lovelace",
  }
  res = await client.post("/auth/register", json=payload)
  assert res.status_code == 201, res.text
  cookie = res.headers.get("set-cookie")
  assert cookie and "ib_session=" in cookie
  return res.json()


async def default_board(client: AsyncClient) -> dict:
  projects = (await client.get("/project")).json()
  board_id = projects[0]["boards"][0]["id"]
  res = await client.get(f"/project-board/{board_id}")
  assert res.status_code == 200, res.text
  return res.json()


async def create_issue(client: AsyncClient, project_id: str, title: str = "Issue", **extra) -> dict:
  res = await client.post("/issue", json={"projectId": project_id, "title": title, **extra})
  assert res.status_code == 201, res.text
  return res.json()


# Component tests keep plain ids: a rolled-back session expires loaded rows.
@dataclass
class Workspace:
  user_id: int
  project_id: int
  board_id: str
  column_ids: list[str]


@dataclass
class IssueRef:
  id: int
  public_id: str


async def make_workspace(db: AsyncSession, *, first_name: str = "Ada") -> Workspace:
  cred = UserCredential(email=f"{first_name.lower()}-{secrets.token_hex(4)}@example.com", password_hash="x")
  db.add(cred)
  await db.flush()
  user = UserProfile(credential_id=cred.id, first_name=first_name, last_name="Tester")
  db.add(user)
  await db.flush()
  project = await create_project_with_default_board(db, owner=user)
  board = (await db.execute(select(ProjectBoard).where(ProjectBoard.project_id == project.id))).scalar_one()
  cres = await db.execute(select(ProjectBoardColumn).where(ProjectBoardColumn.board_id == board.id))
  ws = Workspace(
    user_id=user.id,
    project_id=project.id,
    board_id=board.public_id,
    column_ids=[c.public_id for c in in_order(cres.scalars().all())],
  )
  await db.commit()
  return ws


async def make_issue(db: AsyncSession, ws: Workspace, title: str = "Issue", *, parent_id: int | None = None) -> IssueRef:
  issue = Issue(project_id=ws.project_id, title=title, creator_id=ws.user_id, parent_id=parent_id)
  db.add(issue)
  await db.flush()
  ref = IssueRef(id=issue.id, public_id=issue.public_id)
  await db.commit()
  return ref
