from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from issueboard.db import transaction
from issueboard.deps import get_current_user, get_db
from issueboard.models import Team, UserProfile
from issueboard.schemas import TeamCreateIn, TeamMemberIn, TeamOut
from issueboard.store import get_by_public_id

router = APIRouter(prefix="/team", tags=["teams"])


async def _team_out(db: AsyncSession, t: Team) -> TeamOut:
  res = await db.execute(select(UserProfile.public_id).where(UserProfile.team_id == t.id).order_by(UserProfile.id.asc()))
  return TeamOut(
    id=t.public_id,
    name=t.name,
    description=t.description,
    memberIds=list(res.scalars().all()),
    createdAt=t.created_at,
    updatedAt=t.updated_at,
  )


@router.post("", response_model=TeamOut, status_code=status.HTTP_201_CREATED, dependencies=[Depends(get_current_user)])
async def create(payload: TeamCreateIn, db: AsyncSession = Depends(get_db)) -> TeamOut:
  async with transaction(db):
    members = [await get_by_public_id(db, UserProfile, mid, label="User") for mid in dict.fromkeys(payload.members)]
    t = Team(name=payload.name, description=payload.description)
    db.add(t)
    await db.flush()
    for m in members:
      m.team_id = t.id
    await db.flush()
  return await _team_out(db, t)


@router.get("/{team_id}", response_model=TeamOut, dependencies=[Depends(get_current_user)])
async def get_team(team_id: str, db: AsyncSession = Depends(get_db)) -> TeamOut:
  return await _team_out(db, await get_by_public_id(db, Team, team_id, label="Team"))


@router.post("/{team_id}/members", response_model=TeamOut, dependencies=[Depends(get_current_user)])
async def add_member(
  team_id: str,
  payload: TeamMemberIn,
  db: AsyncSession = Depends(get_db),
) -> TeamOut:
  async with transaction(db):
    t = await get_by_public_id(db, Team, team_id, label="Team")
    member = await get_by_public_id(db, UserProfile, payload.userId, label="User", for_update=True)
    member.team_id = t.id
    await db.flush()
  return await _team_out(db, t)
