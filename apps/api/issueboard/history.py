from __future__ import annotations

import json
from typing import Any

from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession

from issueboard.models import IssueHistory


def _as_text(value: Any) -> str | None:
  encoded = jsonable_encoder(value)
  if encoded is None or isinstance(encoded, str):
    return encoded
  return json.dumps(encoded, sort_keys=True)


async def write_history(
  db: AsyncSession,
  *,
  issue_id: int,
  author_id: int,
  topic: str,
  previous: Any = None,
  current: Any = None,
) -> IssueHistory:
  entry = IssueHistory(
    issue_id=issue_id,
    author_id=author_id,
    topic=topic,
    previous=_as_text(previous),
    current=_as_text(current),
  )
  db.add(entry)
  return entry
