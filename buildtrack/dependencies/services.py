from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ..services.access import DocumentAccess
from ..services.audit import AuditRecorder
from ..services.collaboration import AnnotationService, CommentService, ShareService, SignatureService
from ..services.documents import DocumentService
from ..services.object_storage import ObjectStorageService
from ..services.permit_lookup import PermitLookupService
from ..services.store import Store
from .auth import AuthContext, require_auth
from .db import get_db


def get_store(db: Session = Depends(get_db)) -> Store:
    return Store(db)


def get_audit(request: Request, store: Store = Depends(get_store)) -> AuditRecorder:
    return AuditRecorder(store, request)


def get_object_storage() -> ObjectStorageService:
    return ObjectStorageService()


def get_document_service(db: Session = Depends(get_db)) -> DocumentService:
    return DocumentService(db)


def get_document_access(
    context: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
) -> DocumentAccess:
    return DocumentAccess(db, context.user)


def get_comment_service(db: Session = Depends(get_db)) -> CommentService:
    return CommentService(db)


def get_share_service(db: Session = Depends(get_db)) -> ShareService:
    return ShareService(db)


def get_annotation_service(db: Session = Depends(get_db)) -> AnnotationService:
    return AnnotationService(db)


def get_signature_service(db: Session = Depends(get_db)) -> SignatureService:
    return SignatureService(db)


def get_permit_lookup() -> PermitLookupService:
    return PermitLookupService()
