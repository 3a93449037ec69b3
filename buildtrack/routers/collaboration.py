from __future__ import annotations

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from ..dependencies.auth import AuthContext, require_auth
from ..dependencies.services import (
    get_audit,
    get_document_access,
    get_document_service,
    get_share_service,
    get_signature_service,
)
from ..errors import NotFound
from ..models import AuditAction
from ..serializers import serialize_row, serialize_rows
from ..services.access import DocumentAccess
from ..services.audit import AuditRecorder
from ..services.collaboration import ShareService, SignatureService
from ..services.documents import DocumentService
from .common import parse_uuid

router = APIRouter(tags=["collaboration"])


class SignatureCreate(BaseModel):
    signature_data: str = Field(min_length=1)


@router.get("/shares/{token}")
def access_share(token: str, shares: ShareService = Depends(get_share_service)):
    """Public share link; no session required."""
    result = shares.access(token)
    document = result.document
    return {
        "document": {
            "id": str(document.id),
            "name": document.name,
            "description": document.description,
            "type": document.type,
            "category": document.category,
            "file_name": document.file_name,
            "file_size": document.file_size,
            "mime_type": document.mime_type,
            "version": document.version,
        },
        "can_download": result.share.can_download,
        "can_comment": result.share.can_comment,
        "expires_at": result.share.expires_at.isoformat() if result.share.expires_at else None,
        "access_count": result.share.access_count,
        "download_url": result.download_url,
    }


@router.post("/shares/{share_id}/revoke")
def revoke_share(
    share_id: str,
    context: AuthContext = Depends(require_auth),
    shares: ShareService = Depends(get_share_service),
    documents: DocumentService = Depends(get_document_service),
    access: DocumentAccess = Depends(get_document_access),
    audit: AuditRecorder = Depends(get_audit),
):
    share = shares.get(parse_uuid(share_id, "share id"))
    if share.shared_by != context.user.id:
        access.ensure_can_manage(documents.get(share.document_id))
    before = serialize_row(share)
    share = shares.revoke(share.id)
    body = serialize_row(share)
    audit.audit(context.user.id, AuditAction.UPDATE, "document_share", share.id, old_values=before, new_values=body)
    return body


# --- signatures ----------------------------------------------------------


@router.get("/signatures")
def list_signatures(
    context: AuthContext = Depends(require_auth),
    signatures: SignatureService = Depends(get_signature_service),
):
    return serialize_rows(signatures.list(context.user.id))


@router.post("/signatures", status_code=status.HTTP_201_CREATED)
def save_signature(
    payload: SignatureCreate,
    context: AuthContext = Depends(require_auth),
    signatures: SignatureService = Depends(get_signature_service),
):
    return serialize_row(signatures.save(context.user.id, payload.signature_data))


@router.delete("/signatures/{signature_id}")
def delete_signature(
    signature_id: str,
    context: AuthContext = Depends(require_auth),
    signatures: SignatureService = Depends(get_signature_service),
):
    signature_uuid = parse_uuid(signature_id, "signature id")
    signatures.delete(context.user.id, signature_uuid)
    return {"status": "deleted", "id": str(signature_uuid)}


# --- mobile signing sessions ---------------------------------------------


@router.get("/signing-sessions/{session_id}")
def get_signing_session(
    session_id: str,
    context: AuthContext = Depends(require_auth),
    signatures: SignatureService = Depends(get_signature_service),
):
    session = signatures.get_signing_session(parse_uuid(session_id, "signing session id"))
    if session.user_id != context.user.id:
        raise NotFound("Signing session not found or expired")
    body = serialize_row(session)
    body["signing_url"] = signatures.signing_url(session)
    return body


@router.post("/signing-sessions/{session_id}/complete")
def complete_signing_session(
    session_id: str,
    context: AuthContext = Depends(require_auth),
    signatures: SignatureService = Depends(get_signature_service),
):
    session_uuid = parse_uuid(session_id, "signing session id")
    if signatures.get_signing_session(session_uuid).user_id != context.user.id:
        raise NotFound("Signing session not found or expired")
    return serialize_row(signatures.complete_signing_session(session_uuid))
