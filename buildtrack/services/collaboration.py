from __future__ import annotations

import base64
import binascii
import logging
import re
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..errors import NotFound, ValidationError
from ..models import (
    AnnotationType,
    Document,
    DocumentAnnotation,
    DocumentComment,
    DocumentShare,
    Signature,
    SigningSession,
)
from ..models.base import as_utc, utcnow
from . import metrics
from .object_storage import ObjectStorageService

logger = logging.getLogger(__name__)

DATA_URL_PREFIX = re.compile(r"^data:image/\w+;base64,")


def _commit(db: Session, operation: str) -> None:
    try:
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("collaboration_commit_failed operation=%s", operation)
        raise


class CommentService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def list(self, document_id: uuid.UUID) -> list[DocumentComment]:
        return (
            self.db.query(DocumentComment)
            .filter(DocumentComment.document_id == document_id)
            .order_by(DocumentComment.created_at.asc(), DocumentComment.id.asc())
            .all()
        )

    def tree(self, document_id: uuid.UUID, serialize) -> list[dict[str, Any]]:
        """Nest replies under their parents; orphans surface at the top level."""
        comments = self.list(document_id)
        nodes = {comment.id: {**serialize(comment), "replies": []} for comment in comments}
        roots: list[dict[str, Any]] = []
        for comment in comments:
            parent = nodes.get(comment.parent_comment_id) if comment.parent_comment_id else None
            if parent is None:
                roots.append(nodes[comment.id])
            else:
                parent["replies"].append(nodes[comment.id])
        return roots

    def add(
        self,
        document_id: uuid.UUID,
        user_id: uuid.UUID,
        comment: str,
        parent_comment_id: Optional[uuid.UUID] = None,
    ) -> DocumentComment:
        if not comment or not comment.strip():
            raise ValidationError("Comment text is required")
        if parent_comment_id is not None:
            parent = self.db.get(DocumentComment, parent_comment_id)
            if parent is None or parent.document_id != document_id:
                raise ValidationError("Parent comment must belong to the same document")

        row = DocumentComment(
            document_id=document_id,
            user_id=user_id,
            comment=comment.strip(),
            parent_comment_id=parent_comment_id,
        )
        self.db.add(row)
        _commit(self.db, "add_comment")
        self.db.refresh(row)
        return row

    def set_resolved(self, document_id: uuid.UUID, comment_id: uuid.UUID, resolved: bool) -> DocumentComment:
        row = self.db.get(DocumentComment, comment_id)
        if row is None or row.document_id != document_id:
            raise NotFound("Comment not found")
        row.is_resolved = resolved
        _commit(self.db, "resolve_comment")
        self.db.refresh(row)
        return row


@dataclass
class ShareAccess:
    share: DocumentShare
    document: Document
    download_url: Optional[str] = None


class ShareService:
    def __init__(self, db: Session, storage: Optional[ObjectStorageService] = None) -> None:
        self.db = db
        self._storage = storage

    @property
    def storage(self) -> ObjectStorageService:
        if self._storage is None:
            self._storage = ObjectStorageService()
        return self._storage

    def list(self, document_id: uuid.UUID) -> list[DocumentShare]:
        return (
            self.db.query(DocumentShare)
            .filter(DocumentShare.document_id == document_id)
            .order_by(DocumentShare.created_at.desc())
            .all()
        )

    def create(
        self,
        document_id: uuid.UUID,
        shared_by: uuid.UUID,
        shared_with: Optional[uuid.UUID] = None,
        expires_at: Optional[datetime] = None,
        can_download: bool = True,
        can_comment: bool = False,
    ) -> DocumentShare:
        if expires_at is not None and as_utc(expires_at) <= datetime.now(timezone.utc):
            raise ValidationError("Share expiry must be in the future")

        share = DocumentShare(
            document_id=document_id,
            shared_by=shared_by,
            shared_with=shared_with,
            # user shares are resolved by identity; only public links carry a token
            share_token=None if shared_with else secrets.token_urlsafe(24),
            expires_at=expires_at,
            can_download=can_download,
            can_comment=can_comment,
        )
        self.db.add(share)
        _commit(self.db, "create_share")
        self.db.refresh(share)
        logger.info(
            "document_shared document_id=%s share_id=%s shared_with=%s public=%s",
            document_id,
            share.id,
            shared_with,
            share.share_token is not None,
        )
        return share

    def access(self, token: str) -> ShareAccess:
        share = (
            self.db.query(DocumentShare)
            .filter(DocumentShare.share_token == token)
            .one_or_none()
        )
        if share is None or not share.is_active:
            raise NotFound("Share link not found")
        if share.expires_at is not None and as_utc(share.expires_at) <= datetime.now(timezone.utc):
            raise NotFound("Share link expired")

        document = self.db.get(Document, share.document_id)
        if document is None:
            raise NotFound("Share link not found")

        share.access_count = (share.access_count or 0) + 1
        _commit(self.db, "access_share")
        self.db.refresh(share)
        metrics.record_share_access()

        download_url = None
        if share.can_download:
            download_url = self.storage.generate_presigned_url(document.file_path)
        return ShareAccess(share=share, document=document, download_url=download_url)

    def get(self, share_id: uuid.UUID) -> DocumentShare:
        share = self.db.get(DocumentShare, share_id)
        if share is None:
            raise NotFound("Share not found")
        return share

    def revoke(self, share_id: uuid.UUID) -> DocumentShare:
        share = self.get(share_id)
        share.is_active = False
        _commit(self.db, "revoke_share")
        self.db.refresh(share)
        logger.info("share_revoked share_id=%s document_id=%s", share.id, share.document_id)
        return share


class AnnotationService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def list(self, document_id: uuid.UUID) -> list[DocumentAnnotation]:
        return (
            self.db.query(DocumentAnnotation)
            .filter(DocumentAnnotation.document_id == document_id)
            .order_by(DocumentAnnotation.created_at.asc(), DocumentAnnotation.id.asc())
            .all()
        )

    def add(
        self,
        document_id: uuid.UUID,
        user_id: uuid.UUID,
        type: AnnotationType,
        content: str,
        x: float,
        y: float,
        page_number: int,
        stamp_type: Optional[str] = None,
        color: Optional[str] = None,
    ) -> DocumentAnnotation:
        row = DocumentAnnotation(
            document_id=document_id,
            user_id=user_id,
            type=type,
            content=content,
            position_x=x,
            position_y=y,
            page_number=page_number,
            stamp_type=stamp_type,
            color=color,
        )
        self.db.add(row)
        _commit(self.db, "add_annotation")
        self.db.refresh(row)
        return row

    def delete(self, document_id: uuid.UUID, annotation_id: uuid.UUID, user_id: uuid.UUID) -> None:
        row = self.db.get(DocumentAnnotation, annotation_id)
        # only the author may remove an annotation
        if row is None or row.document_id != document_id or row.user_id != user_id:
            raise NotFound("Annotation not found")
        self.db.delete(row)
        _commit(self.db, "delete_annotation")


class SignatureService:
    def __init__(
        self,
        db: Session,
        storage: Optional[ObjectStorageService] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.db = db
        self._storage = storage
        self.settings = settings or get_settings()

    @property
    def storage(self) -> ObjectStorageService:
        if self._storage is None:
            self._storage = ObjectStorageService()
        return self._storage

    # --- saved signatures ------------------------------------------------
    def list(self, user_id: uuid.UUID) -> list[Signature]:
        return (
            self.db.query(Signature)
            .filter(Signature.user_id == user_id)
            .order_by(Signature.created_at.desc())
            .all()
        )

    def save(self, user_id: uuid.UUID, data_url: str) -> Signature:
        try:
            image = base64.b64decode(DATA_URL_PREFIX.sub("", data_url or ""), validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValidationError("Signature must be a base64 encoded image") from exc
        if not image:
            raise ValidationError("Signature image is empty")

        key = f"signatures/{user_id}/{uuid.uuid4()}.png"
        stored = self.storage.upload_fileobj(user_id, image, "signature.png", "image/png", key=key)
        row = Signature(user_id=user_id, storage_key=stored.key, preview_url=stored.presigned_url)
        self.db.add(row)
        _commit(self.db, "save_signature")
        self.db.refresh(row)
        logger.info("signature_saved user_id=%s signature_id=%s", user_id, row.id)
        return row

    def delete(self, user_id: uuid.UUID, signature_id: uuid.UUID) -> None:
        row = self.db.get(Signature, signature_id)
        if row is None or row.user_id != user_id:
            raise NotFound("Signature not found")
        self.storage.delete(row.storage_key)
        self.db.delete(row)
        _commit(self.db, "delete_signature")

    # --- mobile signing --------------------------------------------------
    def signing_url(self, session: SigningSession) -> str:
        return f"{self.settings.app_url}/mobile-sign/{session.id}"

    def start_signing_session(self, document_id: uuid.UUID, user_id: uuid.UUID) -> SigningSession:
        session = SigningSession(
            document_id=document_id,
            user_id=user_id,
            expires_at=utcnow() + timedelta(minutes=self.settings.signing_session_minutes),
        )
        self.db.add(session)
        _commit(self.db, "start_signing_session")
        self.db.refresh(session)
        logger.info("signing_session_started session_id=%s document_id=%s", session.id, document_id)
        return session

    def get_signing_session(self, session_id: uuid.UUID) -> SigningSession:
        session = self.db.get(SigningSession, session_id)
        if session is None or as_utc(session.expires_at) <= datetime.now(timezone.utc):
            raise NotFound("Signing session not found or expired")
        return session

    def complete_signing_session(self, session_id: uuid.UUID) -> SigningSession:
        session = self.get_signing_session(session_id)
        if session.completed_at is None:
            session.completed_at = utcnow()
            _commit(self.db, "complete_signing_session")
            self.db.refresh(session)
        return session
