from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from issueboard.db import transaction
from issueboard.deps import get_current_user, get_db, get_storage
from issueboard.errors import Forbidden, InvalidState
from issueboard.models import File, UserProfile, utcnow
from issueboard.schemas import FileCreateIn, FileOut, FileUploadOut, FileUrlOut
from issueboard.storage import ObjectStorage
from issueboard.store import get_by_public_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/file", tags=["files"])


def _file_out(f: File) -> FileOut:
  return FileOut(id=f.public_id, filename=f.filename, contentType=f.content_type, status=f.status, createdAt=f.created_at)


@router.post("", response_model=FileUploadOut, status_code=status.HTTP_201_CREATED)
async def create_upload(
  payload: FileCreateIn,
  user: UserProfile = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  storage: ObjectStorage = Depends(get_storage),
) -> FileUploadOut:
  async with transaction(db):
    f = File(
      filename=payload.filename,
      storage_key=storage.new_key(payload.filename),
      content_type=payload.contentType,
      status="PENDING",
      uploader_id=user.id,
    )
    db.add(f)
    await db.flush()
  post = storage.presigned_post(f.storage_key, content_type=f.content_type)
  return FileUploadOut(file=_file_out(f), uploadUrl=post["url"], uploadFields=post["fields"])


@router.post("/{file_id}/complete", response_model=FileOut)
async def complete_upload(
  file_id: str,
  user: UserProfile = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  storage: ObjectStorage = Depends(get_storage),
) -> FileOut:
  async with transaction(db):
    f = await get_by_public_id(db, File, file_id, label="File", for_update=True)
    if f.uploader_id != user.id:
      raise Forbidden("Only the uploader can complete this upload")
    if f.status != "UPLOADED":
      if not await storage.exists(f.storage_key):
        raise InvalidState("File not found in storage")
      f.status = "UPLOADED"
      f.uploaded_at = utcnow()
      logger.info("upload complete file=%s", f.public_id)
    await db.flush()
  return _file_out(f)


@router.get("/{file_id}", response_model=FileOut, dependencies=[Depends(get_current_user)])
async def get_file(file_id: str, db: AsyncSession = Depends(get_db)) -> FileOut:
  return _file_out(await get_by_public_id(db, File, file_id, label="File"))


@router.get("/{file_id}/url", response_model=FileUrlOut, dependencies=[Depends(get_current_user)])
async def get_download_url(
  file_id: str,
  db: AsyncSession = Depends(get_db),
  storage: ObjectStorage = Depends(get_storage),
) -> FileUrlOut:
  f = await get_by_public_id(db, File, file_id, label="File")
  if f.status != "UPLOADED":
    raise InvalidState("File upload is not complete")
  return FileUrlOut(id=f.public_id, url=storage.presigned_url(f.storage_key), expiresIn=storage.ttl_seconds)
