from __future__ import annotations

import enum
import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.sql import func

from .base import Base, JSONType, utcnow, value_enum


class DocumentStatus(str, enum.Enum):
    DRAFT = "draft"
    REVIEW = "review"
    APPROVED = "approved"
    REJECTED = "rejected"
    ARCHIVED = "archived"


class AccessLevel(str, enum.Enum):
    PUBLIC = "public"
    PROJECT_TEAM = "project_team"
    PROJECT_MANAGERS = "project_managers"
    OWNERS_ONLY = "owners_only"
    RESTRICTED = "restricted"


class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_chain_latest", "parent_document_id", "is_latest_version"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    property_id = Column(Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=True, index=True)
    milestone_id = Column(Uuid, ForeignKey("milestones.id", ondelete="CASCADE"), nullable=True, index=True)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    # contract, permit, photo, plan, drawing, invoice, report, ...
    type = Column(Text, nullable=False)
    category = Column(Text, nullable=False)
    tags = Column(JSONType, nullable=False, default=list)
    file_path = Column(Text, nullable=False)
    file_name = Column(Text, nullable=False)
    file_size = Column(Integer, nullable=True)
    mime_type = Column(Text, nullable=True)
    checksum = Column(String, nullable=True)

    version = Column(Integer, nullable=False, default=1)
    # chain root; null on the root itself
    parent_document_id = Column(Uuid, nullable=True)
    is_latest_version = Column(Boolean, nullable=False, default=True)
    version_notes = Column(Text, nullable=True)

    access_level = Column(value_enum(AccessLevel, "access_level"), nullable=False, default=AccessLevel.PROJECT_TEAM)
    allowed_users = Column(JSONType, nullable=False, default=list)
    allowed_roles = Column(JSONType, nullable=False, default=list)

    status = Column(value_enum(DocumentStatus, "document_status"), nullable=False, default=DocumentStatus.DRAFT)
    reviewed_by = Column(Uuid, ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(Uuid, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    review_comments = Column(Text, nullable=True)

    uploaded_by = Column(Uuid, ForeignKey("users.id"), nullable=False)
    last_modified_by = Column(Uuid, ForeignKey("users.id"), nullable=True)
    expiry_date = Column(DateTime(timezone=True), nullable=True)
    is_archived = Column(Boolean, nullable=False, default=False)
    archive_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    @property
    def chain_root_id(self) -> uuid.UUID:
        return self.parent_document_id or self.id


class DocumentComment(Base):
    __tablename__ = "document_comments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id = Column(Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    comment = Column(Text, nullable=False)
    parent_comment_id = Column(Uuid, nullable=True)
    is_resolved = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)


class DocumentShare(Base):
    __tablename__ = "document_shares"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id = Column(Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    shared_by = Column(Uuid, ForeignKey("users.id"), nullable=False)
    # null for public links
    shared_with = Column(Uuid, ForeignKey("users.id"), nullable=True, index=True)
    share_token = Column(String, nullable=True, unique=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    can_download = Column(Boolean, nullable=False, default=True)
    can_comment = Column(Boolean, nullable=False, default=False)
    access_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
