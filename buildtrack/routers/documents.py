from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from pydantic import BaseModel, Field

from ..dependencies.auth import AuthContext, require_auth
from ..dependencies.services import (
    get_annotation_service,
    get_audit,
    get_comment_service,
    get_document_access,
    get_document_service,
    get_object_storage,
    get_share_service,
    get_signature_service,
)
from ..models import AccessLevel, AnnotationType, AuditAction, Document, DocumentStatus
from ..serializers import serialize_row, serialize_rows
from ..services.access import DocumentAccess
from ..services.audit import AuditRecorder
from ..services.collaboration import AnnotationService, CommentService, ShareService, SignatureService
from ..services.documents import DocumentSearch, DocumentService
from ..services.object_storage import ObjectStorageService
from .common import UploadedBlob, parse_datetime, parse_uuid, read_upload, split_csv, stream_object

router = APIRouter(prefix="/documents", tags=["documents"])


class DocumentCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    type: str = Field(min_length=1)
    category: str = Field(min_length=1)
    property_id: Optional[uuid.UUID] = None
    milestone_id: Optional[uuid.UUID] = None
    tags: list[str] = Field(default_factory=list)
    file_path: str = Field(min_length=1)
    file_name: str = Field(min_length=1)
    file_size: Optional[int] = Field(default=None, ge=0)
    mime_type: Optional[str] = None
    checksum: Optional[str] = None
    access_level: AccessLevel = AccessLevel.PROJECT_TEAM
    allowed_users: list[str] = Field(default_factory=list)
    allowed_roles: list[str] = Field(default_factory=list)
    expiry_date: Optional[datetime] = None


class DocumentUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    type: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = Field(default=None, min_length=1)
    milestone_id: Optional[uuid.UUID] = None
    tags: Optional[list[str]] = None
    access_level: Optional[AccessLevel] = None
    allowed_users: Optional[list[str]] = None
    allowed_roles: Optional[list[str]] = None
    expiry_date: Optional[datetime] = None


class DecisionRequest(BaseModel):
    comments: Optional[str] = None


class ArchiveRequest(BaseModel):
    reason: str


class CommentCreate(BaseModel):
    comment: str = Field(min_length=1)
    parent_comment_id: Optional[uuid.UUID] = None


class CommentResolve(BaseModel):
    is_resolved: bool = True


class ShareCreate(BaseModel):
    shared_with: Optional[uuid.UUID] = None
    expires_at: Optional[datetime] = None
    can_download: bool = True
    can_comment: bool = False


class AnnotationCreate(BaseModel):
    type: AnnotationType
    content: str = Field(min_length=1)
    x: float
    y: float
    page_number: int = Field(default=1, ge=1)
    stamp_type: Optional[str] = None
    color: Optional[str] = None


def _serialize_document(document: Document) -> dict[str, Any]:
    body = serialize_row(document)
    body["download_path"] = f"/documents/{document.id}/download"
    return body


def _parse_access_level(value: Optional[str]) -> Optional[AccessLevel]:
    if not value:
        return None
    try:
        return AccessLevel(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid access level") from exc


def _load(document_id: str, documents: DocumentService) -> Document:
    return documents.get(parse_uuid(document_id, "document id"))


def _readable(
    document_id: str,
    documents: DocumentService,
    access: DocumentAccess,
) -> Document:
    return access.ensure_can_read(_load(document_id, documents))


def _store_upload(storage: ObjectStorageService, user_id: uuid.UUID, blob: UploadedBlob) -> dict[str, Any]:
    stored = storage.upload_fileobj(
        f"documents/{user_id}",
        blob.content,
        blob.filename,
        blob.content_type,
        presign_ttl=None,
    )
    return {
        "file_path": stored.key,
        "file_name": blob.filename,
        "file_size": blob.size,
        "mime_type": blob.content_type,
        "checksum": blob.checksum,
    }


def _record_write(
    audit: AuditRecorder,
    user_id: uuid.UUID,
    action: AuditAction,
    document: Document,
    before: Optional[dict] = None,
    after: Optional[dict] = None,
    activity: Optional[tuple[str, str]] = None,
) -> None:
    audit.audit(user_id, action, "document", document.id, old_values=before, new_values=after)
    if activity and document.property_id:
        verb, description = activity
        audit.activity(
            user_id,
            verb,
            description,
            property_id=document.property_id,
            entity_type="document",
            entity_id=document.id,
        )


# --- search and CRUD -----------------------------------------------------


@router.get("")
def list_documents(
    q: Optional[str] = None,
    property_id: Optional[str] = None,
    milestone_id: Optional[str] = None,
    category: Optional[str] = None,
    type: Optional[str] = None,
    uploaded_by: Optional[str] = None,
    status_filter: Optional[DocumentStatus] = Query(default=None, alias="status"),
    tags: Optional[str] = None,
    created_from: Optional[str] = None,
    created_to: Optional[str] = None,
    include_archived: bool = False,
    all_versions: bool = False,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    documents: DocumentService = Depends(get_document_service),
    access: DocumentAccess = Depends(get_document_access),
):
    filters = DocumentSearch(
        query=q,
        property_id=parse_uuid(property_id, "property id") if property_id else None,
        milestone_id=parse_uuid(milestone_id, "milestone id") if milestone_id else None,
        category=category,
        type=type,
        uploaded_by=parse_uuid(uploaded_by, "user id") if uploaded_by else None,
        status=status_filter,
        created_from=parse_datetime(created_from),
        created_to=parse_datetime(created_to),
        tags=split_csv(tags),
        include_archived=include_archived,
        all_versions=all_versions,
        page=page,
        limit=limit,
    )
    result = documents.search(filters, readable=access.can_read)
    return {
        "items": [_serialize_document(document) for document in result.items],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": result.total,
            "pages": (result.total + limit - 1) // limit if result.total else 0,
        },
    }


@router.post("", status_code=status.HTTP_201_CREATED)
def create_document(
    payload: DocumentCreate,
    context: AuthContext = Depends(require_auth),
    documents: DocumentService = Depends(get_document_service),
    audit: AuditRecorder = Depends(get_audit),
):
    document = documents.create_document(payload.model_dump(), uploaded_by=context.user.id)
    body = _serialize_document(document)
    _record_write(
        audit,
        context.user.id,
        AuditAction.CREATE,
        document,
        after=body,
        activity=("document_uploaded", f"Uploaded document: {document.name}"),
    )
    return body


@router.post("/upload", status_code=status.HTTP_201_CREATED)
def upload_document(
    file: UploadFile = File(...),
    name: Optional[str] = Form(default=None),
    description: Optional[str] = Form(default=None),
    type: str = Form(...),
    category: str = Form(...),
    property_id: Optional[str] = Form(default=None),
    milestone_id: Optional[str] = Form(default=None),
    tags: Optional[str] = Form(default=None),
    access_level: Optional[str] = Form(default=None),
    allowed_users: Optional[str] = Form(default=None),
    allowed_roles: Optional[str] = Form(default=None),
    context: AuthContext = Depends(require_auth),
    documents: DocumentService = Depends(get_document_service),
    storage: ObjectStorageService = Depends(get_object_storage),
    audit: AuditRecorder = Depends(get_audit),
):
    blob = read_upload(file)
    values: dict[str, Any] = {
        "name": name or blob.filename,
        "description": description,
        "type": type,
        "category": category,
        "property_id": parse_uuid(property_id, "property id") if property_id else None,
        "milestone_id": parse_uuid(milestone_id, "milestone id") if milestone_id else None,
        "tags": split_csv(tags),
        "allowed_users": split_csv(allowed_users),
        "allowed_roles": split_csv(allowed_roles),
    }
    level = _parse_access_level(access_level)
    if level is not None:
        values["access_level"] = level
    values.update(_store_upload(storage, context.user.id, blob))

    document = documents.create_document(values, uploaded_by=context.user.id, source="upload")
    body = _serialize_document(document)
    _record_write(
        audit,
        context.user.id,
        AuditAction.CREATE,
        document,
        after=body,
        activity=("document_uploaded", f"Uploaded document: {document.name}"),
    )
    return body


@router.get("/{document_id}")
def get_document(
    document_id: str,
    documents: DocumentService = Depends(get_document_service),
    access: DocumentAccess = Depends(get_document_access),
):
    return _serialize_document(_readable(document_id, documents, access))


@router.patch("/{document_id}")
def update_document(
    document_id: str,
    payload: DocumentUpdate,
    context: AuthContext = Depends(require_auth),
    documents: DocumentService = Depends(get_document_service),
    access: DocumentAccess = Depends(get_document_access),
    audit: AuditRecorder = Depends(get_audit),
):
    document = access.ensure_can_manage(_load(document_id, documents))
    before = _serialize_document(document)
    document = documents.update_metadata(
        document.id, payload.model_dump(exclude_unset=True), context.user.id
    )
    body = _serialize_document(document)
    _record_write(audit, context.user.id, AuditAction.UPDATE, document, before=before, after=body)
    return body


@router.delete("/{document_id}")
def delete_document(
    document_id: str,
    context: AuthContext = Depends(require_auth),
    documents: DocumentService = Depends(get_document_service),
    access: DocumentAccess = Depends(get_document_access),
    audit: AuditRecorder = Depends(get_audit),
):
    document = access.ensure_can_manage(_load(document_id, documents))
    before = _serialize_document(document)
    document_uuid = document.id
    documents.delete(document_uuid)
    audit.audit(context.user.id, AuditAction.DELETE, "document", document_uuid, old_values=before)
    return {"status": "deleted", "id": str(document_uuid)}


@router.get("/{document_id}/download")
def download_document(
    document_id: str,
    documents: DocumentService = Depends(get_document_service),
    access: DocumentAccess = Depends(get_document_access),
    storage: ObjectStorageService = Depends(get_object_storage),
):
    document = access.ensure_can_download(_load(document_id, documents))
    key = storage.key_from_url(document.file_path) or document.file_path
    return stream_object(storage, key, document.file_name)


# --- versions ------------------------------------------------------------


@router.get("/{document_id}/versions")
def list_versions(
    document_id: str,
    documents: DocumentService = Depends(get_document_service),
    access: DocumentAccess = Depends(get_document_access),
):
    document = _readable(document_id, documents, access)
    return [_serialize_document(row) for row in documents.get_version_history(document.id)]


@router.get("/{document_id}/latest")
def latest_version(
    document_id: str,
    documents: DocumentService = Depends(get_document_service),
    access: DocumentAccess = Depends(get_document_access),
):
    document = _readable(document_id, documents, access)
    latest = documents.get_latest_version(document.id)
    if latest is None:
        raise HTTPException(status_code=404, detail="No latest version")
    return _serialize_document(access.ensure_can_read(latest))


@router.post("/{document_id}/versions", status_code=status.HTTP_201_CREATED)
def upload_version(
    document_id: str,
    file: UploadFile = File(...),
    version_notes: Optional[str] = Form(default=None),
    name: Optional[str] = Form(default=None),
    description: Optional[str] = Form(default=None),
    context: AuthContext = Depends(require_auth),
    documents: DocumentService = Depends(get_document_service),
    access: DocumentAccess = Depends(get_document_access),
    storage: ObjectStorageService = Depends(get_object_storage),
    audit: AuditRecorder = Depends(get_audit),
):
    referenced = access.ensure_can_manage(_load(document_id, documents))
    blob = read_upload(file)
    attributes: dict[str, Any] = _store_upload(storage, context.user.id, blob)
    if version_notes:
        attributes["version_notes"] = version_notes
    if name:
        attributes["name"] = name
    if description is not None:
        attributes["description"] = description

    version = documents.create_version(referenced.id, attributes, context.user.id)
    body = _serialize_document(version)
    _record_write(
        audit,
        context.user.id,
        AuditAction.CREATE,
        version,
        after=body,
        activity=("document_version_created", f"Uploaded version {version.version} of {version.name}"),
    )
    return body


# --- workflow ------------------------------------------------------------


@router.post("/{document_id}/submit")
def submit_document(
    document_id: str,
    context: AuthContext = Depends(require_auth),
    documents: DocumentService = Depends(get_document_service),
    access: DocumentAccess = Depends(get_document_access),
    audit: AuditRecorder = Depends(get_audit),
):
    document = access.ensure_can_manage(_load(document_id, documents))
    before = _serialize_document(document)
    document = documents.submit_for_review(document.id, context.user.id)
    body = _serialize_document(document)
    _record_write(
        audit,
        context.user.id,
        AuditAction.UPDATE,
        document,
        before=before,
        after=body,
        activity=("document_submitted", f"Submitted {document.name} for review"),
    )
    return body


@router.post("/{document_id}/approve")
def approve_document(
    document_id: str,
    payload: Optional[DecisionRequest] = None,
    context: AuthContext = Depends(require_auth),
    documents: DocumentService = Depends(get_document_service),
    access: DocumentAccess = Depends(get_document_access),
    audit: AuditRecorder = Depends(get_audit),
):
    document = access.ensure_can_manage(_load(document_id, documents))
    before = _serialize_document(document)
    comments = payload.comments if payload else None
    document = documents.approve(document.id, context.user.id, comments)
    body = _serialize_document(document)
    _record_write(
        audit,
        context.user.id,
        AuditAction.APPROVE,
        document,
        before=before,
        after=body,
        activity=("document_approved", f"Approved {document.name}"),
    )
    return body


@router.post("/{document_id}/reject")
def reject_document(
    document_id: str,
    payload: DecisionRequest,
    context: AuthContext = Depends(require_auth),
    documents: DocumentService = Depends(get_document_service),
    access: DocumentAccess = Depends(get_document_access),
    audit: AuditRecorder = Depends(get_audit),
):
    document = access.ensure_can_manage(_load(document_id, documents))
    before = _serialize_document(document)
    document = documents.reject(document.id, context.user.id, payload.comments)
    body = _serialize_document(document)
    _record_write(
        audit,
        context.user.id,
        AuditAction.REJECT,
        document,
        before=before,
        after=body,
        activity=("document_rejected", f"Rejected {document.name}"),
    )
    return body


@router.post("/{document_id}/archive")
def archive_document(
    document_id: str,
    payload: ArchiveRequest,
    context: AuthContext = Depends(require_auth),
    documents: DocumentService = Depends(get_document_service),
    access: DocumentAccess = Depends(get_document_access),
    audit: AuditRecorder = Depends(get_audit),
):
    document = access.ensure_can_manage(_load(document_id, documents))
    before = _serialize_document(document)
    document = documents.archive(document.id, payload.reason, context.user.id)
    body = _serialize_document(document)
    _record_write(audit, context.user.id, AuditAction.UPDATE, document, before=before, after=body)
    return body


# --- comments ------------------------------------------------------------


@router.get("/{document_id}/comments")
def list_comments(
    document_id: str,
    threaded: bool = False,
    documents: DocumentService = Depends(get_document_service),
    access: DocumentAccess = Depends(get_document_access),
    comments: CommentService = Depends(get_comment_service),
):
    document = _readable(document_id, documents, access)
    if threaded:
        return comments.tree(document.id, serialize_row)
    return serialize_rows(comments.list(document.id))


@router.post("/{document_id}/comments", status_code=status.HTTP_201_CREATED)
def add_comment(
    document_id: str,
    payload: CommentCreate,
    context: AuthContext = Depends(require_auth),
    documents: DocumentService = Depends(get_document_service),
    access: DocumentAccess = Depends(get_document_access),
    comments: CommentService = Depends(get_comment_service),
):
    document = access.ensure_can_comment(_load(document_id, documents))
    return serialize_row(comments.add(document.id, context.user.id, payload.comment, payload.parent_comment_id))


@router.patch("/{document_id}/comments/{comment_id}")
def resolve_comment(
    document_id: str,
    comment_id: str,
    payload: CommentResolve,
    documents: DocumentService = Depends(get_document_service),
    access: DocumentAccess = Depends(get_document_access),
    comments: CommentService = Depends(get_comment_service),
):
    document = access.ensure_can_comment(_load(document_id, documents))
    row = comments.set_resolved(document.id, parse_uuid(comment_id, "comment id"), payload.is_resolved)
    return serialize_row(row)


# --- shares --------------------------------------------------------------


@router.get("/{document_id}/shares")
def list_shares(
    document_id: str,
    documents: DocumentService = Depends(get_document_service),
    access: DocumentAccess = Depends(get_document_access),
    shares: ShareService = Depends(get_share_service),
):
    document = access.ensure_can_manage(_load(document_id, documents))
    return serialize_rows(shares.list(document.id))


@router.post("/{document_id}/shares", status_code=status.HTTP_201_CREATED)
def create_share(
    document_id: str,
    payload: ShareCreate,
    context: AuthContext = Depends(require_auth),
    documents: DocumentService = Depends(get_document_service),
    access: DocumentAccess = Depends(get_document_access),
    shares: ShareService = Depends(get_share_service),
    audit: AuditRecorder = Depends(get_audit),
):
    document = access.ensure_can_manage(_load(document_id, documents))
    share = shares.create(
        document.id,
        context.user.id,
        shared_with=payload.shared_with,
        expires_at=payload.expires_at,
        can_download=payload.can_download,
        can_comment=payload.can_comment,
    )
    body = serialize_row(share)
    if share.share_token:
        body["share_path"] = f"/shares/{share.share_token}"
    audit.audit(context.user.id, AuditAction.CREATE, "document_share", share.id, new_values=body)
    return body


# --- annotations ---------------------------------------------------------


@router.get("/{document_id}/annotations")
def list_annotations(
    document_id: str,
    documents: DocumentService = Depends(get_document_service),
    access: DocumentAccess = Depends(get_document_access),
    annotations: AnnotationService = Depends(get_annotation_service),
):
    document = _readable(document_id, documents, access)
    return serialize_rows(annotations.list(document.id))


@router.post("/{document_id}/annotations", status_code=status.HTTP_201_CREATED)
def add_annotation(
    document_id: str,
    payload: AnnotationCreate,
    context: AuthContext = Depends(require_auth),
    documents: DocumentService = Depends(get_document_service),
    access: DocumentAccess = Depends(get_document_access),
    annotations: AnnotationService = Depends(get_annotation_service),
):
    document = access.ensure_can_comment(_load(document_id, documents))
    row = annotations.add(
        document.id,
        context.user.id,
        payload.type,
        payload.content,
        payload.x,
        payload.y,
        payload.page_number,
        stamp_type=payload.stamp_type,
        color=payload.color,
    )
    return serialize_row(row)


@router.delete("/{document_id}/annotations/{annotation_id}")
def delete_annotation(
    document_id: str,
    annotation_id: str,
    context: AuthContext = Depends(require_auth),
    documents: DocumentService = Depends(get_document_service),
    access: DocumentAccess = Depends(get_document_access),
    annotations: AnnotationService = Depends(get_annotation_service),
):
    document = access.ensure_can_comment(_load(document_id, documents))
    annotation_uuid = parse_uuid(annotation_id, "annotation id")
    annotations.delete(document.id, annotation_uuid, context.user.id)
    return {"status": "deleted", "id": str(annotation_uuid)}


# --- mobile signing ------------------------------------------------------


@router.post("/{document_id}/mobile-signing", status_code=status.HTTP_201_CREATED)
def start_mobile_signing(
    document_id: str,
    context: AuthContext = Depends(require_auth),
    documents: DocumentService = Depends(get_document_service),
    access: DocumentAccess = Depends(get_document_access),
    signatures: SignatureService = Depends(get_signature_service),
):
    document = access.ensure_can_manage(_load(document_id, documents))
    session = signatures.start_signing_session(document.id, context.user.id)
    body = serialize_row(session)
    body["signing_url"] = signatures.signing_url(session)
    return body
