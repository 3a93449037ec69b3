from __future__ import annotations

import io
import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import BinaryIO, Callable, Iterator, Optional
from urllib.parse import urlparse

from botocore.exceptions import BotoCoreError, ClientError

from ..config import settings
from ..errors import NotFound, UpstreamFailure
from .aws import boto3_client

logger = logging.getLogger(__name__)

OBJECTS_PREFIX = "/objects/"
UPLOADS_DIR = "uploads"
VISIBILITY_PUBLIC = "public"
VISIBILITY_PRIVATE = "private"


@dataclass
class StoredFile:
    key: str
    storage_url: str
    presigned_url: Optional[str] = None


@dataclass
class AclPolicy:
    owner: Optional[str]
    visibility: str = VISIBILITY_PRIVATE


class ObjectStorageService:
    def __init__(self, bucket: Optional[str] = None) -> None:
        self.bucket = bucket or settings.aws.s3_bucket
        self._client = boto3_client("s3")

    def build_key(self, prefix: str | uuid.UUID, original_name: str) -> str:
        suffix = Path(original_name).suffix.lower() or ".bin"
        return f"{prefix}/{uuid.uuid4()}{suffix}"

    def upload_fileobj(
        self,
        prefix: str | uuid.UUID,
        file_obj: BinaryIO | bytes,
        filename: str,
        content_type: str,
        presign_ttl: timedelta | None = timedelta(hours=1),
        key: Optional[str] = None,
    ) -> StoredFile:
        buffer: BinaryIO
        if isinstance(file_obj, (bytes, bytearray)):
            buffer = io.BytesIO(file_obj)
        else:
            buffer = file_obj
            buffer.seek(0)

        key = key or self.build_key(prefix, filename)
        try:
            self._client.upload_fileobj(buffer, self.bucket, key, ExtraArgs={"ContentType": content_type})
        except (BotoCoreError, ClientError) as exc:
            raise UpstreamFailure(f"Failed to upload to S3: {exc}") from exc

        presigned_url = self.generate_presigned_url(key, presign_ttl) if presign_ttl else None
        return StoredFile(key=key, storage_url=f"s3://{self.bucket}/{key}", presigned_url=presigned_url)

    def generate_presigned_url(self, key: str, ttl: timedelta = timedelta(hours=1)) -> str:
        try:
            return self._client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=int(ttl.total_seconds()),
            )
        except (BotoCoreError, ClientError) as exc:
            raise UpstreamFailure(f"Failed to generate presigned URL: {exc}") from exc

    def generate_upload_url(self, ttl: timedelta = timedelta(minutes=15)) -> tuple[str, str]:
        """Presigned PUT target for a direct browser upload; returns (url, key)."""
        key = f"{UPLOADS_DIR}/{uuid.uuid4()}"
        try:
            url = self._client.generate_presigned_url(
                "put_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=int(ttl.total_seconds()),
            )
        except (BotoCoreError, ClientError) as exc:
            raise UpstreamFailure(f"Failed to generate upload URL: {exc}") from exc
        return url, key

    # --- object paths ----------------------------------------------------
    def key_from_url(self, raw_url: str) -> Optional[str]:
        """Storage key addressed by a bucket URL or an `/objects/...` path, if it is ours."""
        if raw_url.startswith(OBJECTS_PREFIX):
            return raw_url[len(OBJECTS_PREFIX):] or None
        parsed = urlparse(raw_url)
        if parsed.scheme == "s3":
            if parsed.netloc != self.bucket:
                return None
            return parsed.path.lstrip("/") or None
        if parsed.scheme not in ("http", "https"):
            return None
        path = parsed.path.lstrip("/")
        if parsed.netloc.startswith(f"{self.bucket}."):
            return path or None
        if path.startswith(f"{self.bucket}/"):
            return path[len(self.bucket) + 1:] or None
        return None

    def normalize_object_path(self, raw_url: str) -> str:
        key = self.key_from_url(raw_url)
        if key is None:
            return raw_url
        return f"{OBJECTS_PREFIX}{key}"

    # --- ACL policy ------------------------------------------------------
    def set_acl_policy(self, raw_url: str, owner: str, visibility: str = VISIBILITY_PRIVATE) -> str:
        key = self.key_from_url(raw_url)
        if key is None:
            return raw_url
        self._ensure_exists(key)
        try:
            self._client.put_object_tagging(
                Bucket=self.bucket,
                Key=key,
                Tagging={
                    "TagSet": [
                        {"Key": "owner", "Value": owner},
                        {"Key": "visibility", "Value": visibility},
                    ]
                },
            )
        except (BotoCoreError, ClientError) as exc:
            raise UpstreamFailure(f"Failed to set object ACL: {exc}") from exc
        logger.info("object_acl_set key=%s owner=%s visibility=%s", key, owner, visibility)
        return f"{OBJECTS_PREFIX}{key}"

    def get_acl_policy(self, key: str) -> Optional[AclPolicy]:
        self._ensure_exists(key)
        try:
            response = self._client.get_object_tagging(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise UpstreamFailure(f"Failed to read object ACL: {exc}") from exc
        tags = {tag["Key"]: tag["Value"] for tag in response.get("TagSet", [])}
        if "visibility" not in tags and "owner" not in tags:
            return None
        return AclPolicy(owner=tags.get("owner"), visibility=tags.get("visibility", VISIBILITY_PRIVATE))

    def can_access(self, key: str, user_id: str | uuid.UUID | None) -> bool:
        policy = self.get_acl_policy(key)
        if policy is None:
            return False
        if policy.visibility == VISIBILITY_PUBLIC:
            return True
        return user_id is not None and policy.owner == str(user_id)

    # --- reads and deletes -----------------------------------------------
    def _ensure_exists(self, key: str) -> None:
        try:
            self._client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code in ("404", "NoSuchKey", "NotFound"):
                raise NotFound("Object not found") from exc
            raise UpstreamFailure(f"Failed to read S3 object: {exc}") from exc
        except BotoCoreError as exc:
            raise UpstreamFailure(f"Failed to read S3 object: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise UpstreamFailure(f"Failed to delete S3 object: {exc}") from exc

    def open_stream(self, key: str) -> tuple[Callable[..., Iterator[bytes]], dict, Callable[[], None]]:
        try:
            obj = self._client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in ("404", "NoSuchKey"):
                raise NotFound("Object not found") from exc
            raise UpstreamFailure(f"Failed to download S3 object: {exc}") from exc
        except BotoCoreError as exc:
            raise UpstreamFailure(f"Failed to download S3 object: {exc}") from exc

        body = obj["Body"]
        metadata = {
            "content_type": obj.get("ContentType", "application/octet-stream"),
            "content_length": obj.get("ContentLength"),
        }

        def iterator(chunk_size: int = 1024 * 64) -> Iterator[bytes]:
            for chunk in body.iter_chunks(chunk_size):
                if chunk:
                    yield chunk

        def closer() -> None:
            body.close()

        return iterator, metadata, closer
