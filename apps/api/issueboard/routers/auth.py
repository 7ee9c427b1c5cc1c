from __future__ import annotations

import logging

from fastapi import APIRouter, Cookie, Depends, HTTPException, Response, status
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from issueboard.config import Settings
from issueboard.db import transaction
from issueboard.deps import get_current_user, get_db, get_settings, get_storage
from issueboard.errors import Conflict
from issueboard.models import Session as DbSession, UserCredential, UserProfile, utcnow
from issueboard.projects import create_project_with_default_board
from issueboard.routers.users import user_out
from issueboard.schemas import LoginIn, RegisterIn, UserOut
from issueboard.security import SESSION_COOKIE_NAME, hash_password, new_session_expires_at, verify_password
from issueboard.storage import ObjectStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


async def _start_session(db: AsyncSession, response: Response, cfg: Settings, credential: UserCredential) -> None:
  s = DbSession(credential_id=credential.id, expires_at=new_session_expires_at(cfg.session_ttl_hours))
  db.add(s)
  await db.flush()
  response.set_cookie(
    key=SESSION_COOKIE_NAME,
    value=s.id,
    httponly=True,
    secure=cfg.cookie_secure,
    samesite="lax",
    domain=cfg.cookie_domain or None,
    max_age=int(cfg.session_ttl_hours * 3600),
    expires=s.expires_at,
    path="/",
  )


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def register(
  payload: RegisterIn,
  response: Response,
  db: AsyncSession = Depends(get_db),
  cfg: Settings = Depends(get_settings),
  storage: ObjectStorage = Depends(get_storage),
) -> UserOut:
  email = payload.email.strip().lower()
  async with transaction(db):
    exists = await db.execute(select(UserCredential.id).where(UserCredential.email == email))
    if exists.scalar_one_or_none() is not None:
      raise Conflict("Email already registered")

    cred = UserCredential(email=email, password_hash=hash_password(payload.password))
    db.add(cred)
    try:
      await db.flush()
    except IntegrityError as exc:
      raise Conflict("Email already registered") from exc
    profile = UserProfile(credential_id=cred.id, first_name=payload.firstName, last_name=payload.lastName)
    db.add(profile)
    await db.flush()
    await create_project_with_default_board(db, owner=profile)
    await _start_session(db, response, cfg, cred)
  logger.info("registered user=%s", profile.public_id)
  return await user_out(db, storage, profile)


@router.post("/login", response_model=UserOut)
async def login(
  payload: LoginIn,
  response: Response,
  db: AsyncSession = Depends(get_db),
  cfg: Settings = Depends(get_settings),
  storage: ObjectStorage = Depends(get_storage),
) -> UserOut:
  normalized_email = (payload.email or "").strip().lower()
  res = await db.execute(select(UserCredential).where(UserCredential.email == normalized_email))
  cred = res.scalar_one_or_none()
  if not cred or not verify_password(payload.password, cred.password_hash):
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
  pres = await db.execute(select(UserProfile).where(UserProfile.credential_id == cred.id))
  profile = pres.scalar_one_or_none()
  if not profile:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

  async with transaction(db):
    profile.last_active = utcnow()
    await _start_session(db, response, cfg, cred)
  return await user_out(db, storage, profile)


@router.post("/logout", dependencies=[Depends(get_current_user)])
async def logout(
  response: Response,
  db: AsyncSession = Depends(get_db),
  session_id: str | None = Cookie(default=None, alias=SESSION_COOKIE_NAME),
) -> dict:
  async with transaction(db):
    await db.execute(delete(DbSession).where(DbSession.id == session_id))
  response.delete_cookie(key=SESSION_COOKIE_NAME, path="/")
  return {"ok": True}


@router.get("/me", response_model=UserOut)
async def me(
  user: UserProfile = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  storage: ObjectStorage = Depends(get_storage),
) -> UserOut:
  return await user_out(db, storage, user)
