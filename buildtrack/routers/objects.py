from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..dependencies.auth import AuthContext, require_auth
from ..dependencies.services import get_object_storage
from ..errors import Forbidden
from ..services.object_storage import VISIBILITY_PRIVATE, VISIBILITY_PUBLIC, ObjectStorageService
from .common import stream_object

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/objects", tags=["objects"])


class ObjectAclRequest(BaseModel):
    document_url: str = Field(min_length=1, alias="documentURL")
    visibility: str = Field(default=VISIBILITY_PRIVATE, pattern=f"^({VISIBILITY_PUBLIC}|{VISIBILITY_PRIVATE})$")

    model_config = {"populate_by_name": True}


@router.post("/upload")
def request_upload_url(
    context: AuthContext = Depends(require_auth),
    storage: ObjectStorageService = Depends(get_object_storage),
):
    upload_url, key = storage.generate_upload_url()
    logger.info("object_upload_url_issued key=%s user_id=%s", key, context.user.id)
    return {"uploadURL": upload_url, "objectPath": f"/objects/{key}"}


@router.put("")
def apply_object_acl(
    payload: ObjectAclRequest,
    context: AuthContext = Depends(require_auth),
    storage: ObjectStorageService = Depends(get_object_storage),
):
    object_path = storage.set_acl_policy(payload.document_url, str(context.user.id), payload.visibility)
    return {"objectPath": object_path}


@router.get("/{object_path:path}")
def read_object(
    object_path: str,
    context: AuthContext = Depends(require_auth),
    storage: ObjectStorageService = Depends(get_object_storage),
):
    if not storage.can_access(object_path, context.user.id):
        raise Forbidden()
    return stream_object(storage, object_path)
