from __future__ import annotations

import enum
import uuid

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, Text, Uuid
from sqlalchemy.sql import func

from .base import Base, utcnow, value_enum


class AnnotationType(str, enum.Enum):
    TEXT = "text"
    HIGHLIGHT = "highlight"
    COMMENT = "comment"
    STAMP = "stamp"
    SIGNATURE = "signature"


class DocumentAnnotation(Base):
    __tablename__ = "document_annotations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id = Column(Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    type = Column(value_enum(AnnotationType, "annotation_type"), nullable=False)
    content = Column(Text, nullable=False)
    position_x = Column(Float, nullable=False)
    position_y = Column(Float, nullable=False)
    page_number = Column(Integer, nullable=False, default=1)
    stamp_type = Column(Text, nullable=True)
    color = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)


class Signature(Base):
    __tablename__ = "signatures"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    storage_key = Column(Text, nullable=False)
    preview_url = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)


class SigningSession(Base):
    __tablename__ = "signing_sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id = Column(Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
