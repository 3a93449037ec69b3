from __future__ import annotations

import enum
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.sql import func

from .base import Base, JSONType, utcnow, value_enum


class AuditAction(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    VIEW = "view"
    APPROVE = "approve"
    REJECT = "reject"


class Activity(Base):
    __tablename__ = "activities"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    property_id = Column(Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=True, index=True)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    # "milestone_completed", "document_uploaded", ...
    action = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    entity_type = Column(Text, nullable=True)
    entity_id = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    action = Column(value_enum(AuditAction, "audit_action"), nullable=False)
    entity_type = Column(Text, nullable=False)
    entity_id = Column(String, nullable=False)
    old_values = Column(JSONType, nullable=True)
    new_values = Column(JSONType, nullable=True)
    ip_address = Column(String, nullable=True)
    user_agent = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
