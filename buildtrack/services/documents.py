from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..errors import Conflict, NotFound, ValidationError
from ..models import Document, DocumentStatus
from ..models.base import utcnow
from . import metrics

logger = logging.getLogger(__name__)

# Carried from the referenced version onto a new one unless overridden.
INHERITED_FIELDS = (
    "name",
    "description",
    "type",
    "category",
    "property_id",
    "milestone_id",
    "tags",
    "access_level",
    "allowed_users",
    "allowed_roles",
    "uploaded_by",
    "expiry_date",
)

VERSION_FIELDS = INHERITED_FIELDS + (
    "file_path",
    "file_name",
    "file_size",
    "mime_type",
    "checksum",
    "version_notes",
)

EDITABLE_FIELDS = (
    "name",
    "description",
    "type",
    "category",
    "tags",
    "milestone_id",
    "access_level",
    "allowed_users",
    "allowed_roles",
    "expiry_date",
)

CREATE_FIELDS = tuple(name for name in VERSION_FIELDS if name != "uploaded_by")

MAX_PAGE_SIZE = 100


@dataclass
class DocumentSearch:
    query: Optional[str] = None
    property_id: Optional[uuid.UUID] = None
    milestone_id: Optional[uuid.UUID] = None
    category: Optional[str] = None
    type: Optional[str] = None
    uploaded_by: Optional[uuid.UUID] = None
    status: Optional[DocumentStatus] = None
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None
    tags: list[str] = field(default_factory=list)
    include_archived: bool = False
    all_versions: bool = False
    page: int = 1
    limit: int = 20


@dataclass
class SearchPage:
    items: list[Document]
    total: int


def _pick(values: dict[str, Any], allowed: Iterable[str]) -> dict[str, Any]:
    return {key: values[key] for key in allowed if key in values}


class DocumentService:
    """Document lifecycle: version chains, review workflow and search."""

    def __init__(self, db: Session, settings: Optional[Settings] = None) -> None:
        self.db = db
        self.settings = settings or get_settings()

    # --- lookups ---------------------------------------------------------
    def find(self, document_id: uuid.UUID) -> Optional[Document]:
        return self.db.get(Document, document_id)

    def get(self, document_id: uuid.UUID) -> Document:
        document = self.find(document_id)
        if document is None:
            raise NotFound("Document not found")
        return document

    def _chain_query(self, root_id: uuid.UUID):
        return self.db.query(Document).filter(
            or_(Document.id == root_id, Document.parent_document_id == root_id)
        )

    def get_latest_version(self, document_id: uuid.UUID) -> Optional[Document]:
        document = self.find(document_id)
        if document is None:
            return None
        return (
            self._chain_query(document.chain_root_id)
            .filter(Document.is_latest_version.is_(True))
            .one_or_none()
        )

    def get_version_history(self, document_id: uuid.UUID) -> list[Document]:
        """Every version in the chain, root included, newest first."""
        document = self.get(document_id)
        return self._chain_query(document.chain_root_id).order_by(Document.version.desc()).all()

    # --- writes ----------------------------------------------------------
    def create_document(self, values: dict[str, Any], uploaded_by: uuid.UUID, source: str = "json") -> Document:
        payload = _pick(values, CREATE_FIELDS)
        for required in ("name", "type", "category", "file_path", "file_name"):
            if not payload.get(required):
                raise ValidationError(f"{required} is required")

        payload.setdefault("tags", [])
        payload.setdefault("allowed_users", [])
        payload.setdefault("allowed_roles", [])
        document = Document(
            **payload,
            uploaded_by=uploaded_by,
            last_modified_by=uploaded_by,
            version=1,
            parent_document_id=None,
            is_latest_version=True,
            status=DocumentStatus.DRAFT,
        )
        self.db.add(document)
        self._commit("create_document")
        self.db.refresh(document)

        metrics.record_document_uploaded(source)
        logger.info(
            "document_created document_id=%s property_id=%s uploaded_by=%s",
            document.id,
            document.property_id,
            uploaded_by,
        )
        return document

    def create_version(
        self,
        document_id: uuid.UUID,
        new_attributes: dict[str, Any],
        acting_user: uuid.UUID,
    ) -> Document:
        referenced = self.get(document_id)
        overrides = _pick(new_attributes, VERSION_FIELDS)
        if not overrides.get("file_path"):
            raise ValidationError("file_path is required for a new version")

        root_id = referenced.chain_root_id
        try:
            chain = self._chain_query(root_id).with_for_update().all()
            current_max = max((row.version or 1) for row in chain)
            for row in chain:
                row.is_latest_version = False

            inherited = {name: getattr(referenced, name) for name in INHERITED_FIELDS}
            inherited["file_name"] = referenced.file_name
            inherited.update(overrides)

            new_version = Document(
                **inherited,
                version=current_max + 1,
                parent_document_id=root_id,
                is_latest_version=True,
                status=DocumentStatus.DRAFT,
                last_modified_by=acting_user,
            )
            self.db.add(new_version)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("document_version_failed document_id=%s root_id=%s", document_id, root_id)
            raise

        self.db.refresh(new_version)
        metrics.record_version_created()
        logger.info(
            "document_version_created document_id=%s root_id=%s version=%s acting_user=%s",
            new_version.id,
            root_id,
            new_version.version,
            acting_user,
        )
        return new_version

    def update_metadata(self, document_id: uuid.UUID, values: dict[str, Any], acting_user: uuid.UUID) -> Document:
        document = self.get(document_id)
        for key, value in _pick(values, EDITABLE_FIELDS).items():
            setattr(document, key, value)
        document.last_modified_by = acting_user
        document.updated_at = utcnow()
        self._commit("update_metadata")
        self.db.refresh(document)
        return document

    def delete(self, document_id: uuid.UUID) -> None:
        """Remove one version; the highest remaining version becomes latest."""
        document = self.get(document_id)
        promoted: Optional[Document] = None
        if document.is_latest_version:
            remaining = [
                row
                for row in self._chain_query(document.chain_root_id).with_for_update().all()
                if row.id != document.id
            ]
            if remaining:
                promoted = max(remaining, key=lambda row: row.version or 1)
                promoted.is_latest_version = True
        self.db.delete(document)
        self._commit("delete")
        logger.info(
            "document_deleted document_id=%s promoted=%s",
            document_id,
            promoted.id if promoted is not None else None,
        )

    # --- workflow --------------------------------------------------------
    def _decision_guard(self, document: Document) -> None:
        if self.settings.document_require_review_before_decision and document.status != DocumentStatus.REVIEW:
            raise Conflict("Document must be in review before a decision")

    def _transition(self, document: Document, status: DocumentStatus, acting_user: uuid.UUID) -> Document:
        document.status = status
        document.last_modified_by = acting_user
        document.updated_at = utcnow()
        self._commit(f"transition_{status.value}")
        self.db.refresh(document)
        metrics.record_transition(status.value)
        logger.info(
            "document_transition document_id=%s status=%s acting_user=%s",
            document.id,
            status.value,
            acting_user,
        )
        return document

    def submit_for_review(self, document_id: uuid.UUID, acting_user: uuid.UUID) -> Document:
        document = self.get(document_id)
        if document.is_archived:
            raise Conflict("Document is archived")
        return self._transition(document, DocumentStatus.REVIEW, acting_user)

    def approve(self, document_id: uuid.UUID, approved_by: uuid.UUID, comments: Optional[str] = None) -> Document:
        document = self.get(document_id)
        self._decision_guard(document)
        document.approved_by = approved_by
        document.approved_at = utcnow()
        if comments is not None:
            document.review_comments = comments
        return self._transition(document, DocumentStatus.APPROVED, approved_by)

    def reject(self, document_id: uuid.UUID, reviewed_by: uuid.UUID, comments: Optional[str]) -> Document:
        document = self.get(document_id)
        if not comments or not comments.strip():
            raise ValidationError("Rejection comments are required")
        self._decision_guard(document)
        document.reviewed_by = reviewed_by
        document.reviewed_at = utcnow()
        document.review_comments = comments.strip()
        return self._transition(document, DocumentStatus.REJECTED, reviewed_by)

    def archive(self, document_id: uuid.UUID, reason: Optional[str], acting_user: uuid.UUID) -> Document:
        document = self.get(document_id)
        if not reason or not reason.strip():
            raise ValidationError("Archive reason is required")
        if document.is_archived:
            raise Conflict("Document already archived")
        document.is_archived = True
        document.archive_reason = reason.strip()
        document.last_modified_by = acting_user
        document.updated_at = utcnow()
        self._commit("archive")
        self.db.refresh(document)
        metrics.record_transition("archived")
        logger.info("document_archived document_id=%s acting_user=%s", document.id, acting_user)
        return document

    # --- search ----------------------------------------------------------
    def search(
        self,
        filters: DocumentSearch,
        readable: Optional[Callable[[Document], bool]] = None,
    ) -> SearchPage:
        query = self.db.query(Document)

        if filters.query and filters.query.strip():
            term = filters.query.strip()
            query = query.filter(
                or_(
                    Document.name.icontains(term, autoescape=True),
                    Document.description.icontains(term, autoescape=True),
                )
            )
        if filters.property_id:
            query = query.filter(Document.property_id == filters.property_id)
        if filters.milestone_id:
            query = query.filter(Document.milestone_id == filters.milestone_id)
        if filters.category:
            query = query.filter(func.lower(Document.category) == filters.category.lower())
        if filters.type:
            query = query.filter(func.lower(Document.type) == filters.type.lower())
        if filters.uploaded_by:
            query = query.filter(Document.uploaded_by == filters.uploaded_by)
        if filters.status:
            query = query.filter(Document.status == filters.status)
        if filters.created_from:
            query = query.filter(Document.created_at >= filters.created_from)
        if filters.created_to:
            query = query.filter(Document.created_at <= filters.created_to)
        if not filters.include_archived:
            query = query.filter(Document.is_archived.is_(False))
        if not filters.all_versions:
            query = query.filter(Document.is_latest_version.is_(True))

        query = query.order_by(Document.created_at.desc(), Document.id.asc())

        page = max(filters.page, 1)
        limit = min(max(filters.limit, 1), MAX_PAGE_SIZE)
        offset = (page - 1) * limit

        wanted_tags = {tag.strip().lower() for tag in filters.tags if tag and tag.strip()}
        if not wanted_tags and readable is None:
            total = query.order_by(None).count()
            return SearchPage(items=query.offset(offset).limit(limit).all(), total=total)

        matches = []
        for document in query.all():
            if wanted_tags and not wanted_tags.issubset({str(tag).lower() for tag in (document.tags or [])}):
                continue
            if readable is not None and not readable(document):
                continue
            matches.append(document)
        return SearchPage(items=matches[offset:offset + limit], total=len(matches))

    def _commit(self, operation: str) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("document_commit_failed operation=%s", operation)
            raise
