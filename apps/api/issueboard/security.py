from __future__ import annotations

from datetime import datetime, timedelta, timezone

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

SESSION_COOKIE_NAME = "ib_session"


def hash_password(password: str) -> str:
  return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
  return pwd_context.verify(password, password_hash)


def new_session_expires_at(ttl_hours: int) -> datetime:
  return datetime.now(timezone.utc) + timedelta(hours=ttl_hours)


def as_utc(dt: datetime) -> datetime:
  # SQLite hands back naive datetimes for timezone-aware columns.
  if dt.tzinfo is None:
    return dt.replace(tzinfo=timezone.utc)
  return dt.astimezone(timezone.utc)

