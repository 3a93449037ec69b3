from __future__ import annotations

import hashlib
import os
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from fastapi import BackgroundTasks, HTTPException, UploadFile
from fastapi.responses import StreamingResponse

from ..config import settings
from ..services.object_storage import ObjectStorageService


@dataclass
class UploadedBlob:
    filename: str
    content: bytes
    content_type: str
    size: int
    checksum: str


def parse_uuid(value: str, label: str = "id") -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=f"Invalid {label}") from exc


def parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid datetime format") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def sanitize_filename(filename: str) -> str:
    name = os.path.basename(filename or "document")
    name = re.sub(r"[^A-Za-z0-9._-]", "_", name)
    return name[:100] or "document"


def read_upload(file: UploadFile) -> UploadedBlob:
    """Drain an upload in chunks, enforcing the configured size cap."""
    if not file.filename:
        raise HTTPException(status_code=400, detail="Filename required")

    limit = settings.max_upload_bytes
    chunks: list[bytes] = []
    total = 0
    try:
        while True:
            chunk = file.file.read(1024 * 1024)
            if not chunk:
                break
            total += len(chunk)
            if total > limit:
                raise HTTPException(status_code=413, detail="File too large.")
            chunks.append(chunk)
    finally:
        file.file.close()

    content = b"".join(chunks)
    if not content:
        raise HTTPException(status_code=400, detail="Empty file")

    return UploadedBlob(
        filename=sanitize_filename(file.filename),
        content=content,
        content_type=file.content_type or "application/octet-stream",
        size=total,
        checksum=hashlib.sha256(content).hexdigest(),
    )


def stream_object(storage: ObjectStorageService, key: str, filename: str | None = None) -> StreamingResponse:
    iterator, metadata, closer = storage.open_stream(key)
    headers: dict[str, str] = {}
    if filename:
        headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    if metadata.get("content_length") is not None:
        headers["Content-Length"] = str(metadata["content_length"])

    background = BackgroundTasks()
    background.add_task(closer)
    return StreamingResponse(
        iterator(),
        media_type=metadata.get("content_type") or "application/octet-stream",
        headers=headers,
        background=background,
    )
