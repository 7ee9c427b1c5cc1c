from __future__ import annotations

import asyncio
import logging
import re
import uuid
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from issueboard.config import Settings

logger = logging.getLogger(__name__)

_UNSAFE_RE = re.compile(r"[^A-Za-z0-9._-]+")
_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}


class ObjectStorage:
  """S3 bucket behind presigned URLs.

  Clients upload and download directly against the bucket; the API only
  signs requests and checks that an upload actually landed.
  """

  def __init__(
    self,
    client: Any,
    *,
    bucket: str,
    ttl_seconds: int = 3600,
    upload_ttl_seconds: int = 600,
    max_upload_bytes: int = 10 * 1024 * 1024,
  ) -> None:
    self.client = client
    self.bucket = bucket
    self.ttl_seconds = ttl_seconds
    self.upload_ttl_seconds = upload_ttl_seconds
    self.max_upload_bytes = max_upload_bytes

  @classmethod
  def from_settings(cls, cfg: Settings) -> ObjectStorage:
    client = boto3.client(
      "s3",
      endpoint_url=cfg.storage_endpoint_url,
      region_name=cfg.storage_region,
      aws_access_key_id=cfg.storage_access_key_id,
      aws_secret_access_key=cfg.storage_secret_access_key,
      config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
    )
    return cls(
      client,
      bucket=cfg.storage_bucket,
      ttl_seconds=cfg.storage_url_ttl_seconds,
      upload_ttl_seconds=cfg.storage_upload_ttl_seconds,
      max_upload_bytes=cfg.storage_max_upload_bytes,
    )

  def new_key(self, filename: str) -> str:
    safe = _UNSAFE_RE.sub("_", filename).strip("._") or "file"
    return f"{uuid.uuid4().hex}/{safe}"

  def presigned_post(self, key: str, *, content_type: str | None = None) -> dict[str, Any]:
    conditions: list[Any] = [["content-length-range", 0, self.max_upload_bytes]]
    fields: dict[str, str] = {}
    if content_type:
      fields["Content-Type"] = content_type
      conditions.append({"Content-Type": content_type})
    return self.client.generate_presigned_post(
      Bucket=self.bucket,
      Key=key,
      Fields=fields or None,
      Conditions=conditions,
      ExpiresIn=self.upload_ttl_seconds,
    )

  def presigned_url(self, key: str) -> str:
    return self.client.generate_presigned_url(
      "get_object",
      Params={"Bucket": self.bucket, "Key": key},
      ExpiresIn=self.ttl_seconds,
    )

  async def exists(self, key: str) -> bool:
    try:
      await asyncio.to_thread(self.client.head_object, Bucket=self.bucket, Key=key)
    except ClientError as exc:
      code = str(exc.response.get("Error", {}).get("Code", ""))
      if code in _MISSING_CODES:
        return False
      logger.error("head_object failed for key=%s", key, exc_info=exc)
      raise
    return True
