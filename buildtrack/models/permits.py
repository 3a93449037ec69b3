from __future__ import annotations

import enum
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, Text, Uuid
from sqlalchemy.sql import func

from .base import Base, utcnow, value_enum


class PermitStatus(str, enum.Enum):
    NOT_STARTED = "not_started"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"


PENDING_PERMIT_STATUSES = (PermitStatus.SUBMITTED, PermitStatus.UNDER_REVIEW)


class RiskType(str, enum.Enum):
    RISK = "risk"
    ISSUE = "issue"


class RiskImpact(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RiskStatus(str, enum.Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class Permit(Base):
    __tablename__ = "permits"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    property_id = Column(Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    # building, demo, electrical, plumbing, ...
    type = Column(Text, nullable=False)
    permit_number = Column(Text, nullable=True)
    status = Column(value_enum(PermitStatus, "permit_status"), nullable=False, default=PermitStatus.NOT_STARTED)
    submitted_date = Column(DateTime(timezone=True), nullable=True)
    approved_date = Column(DateTime(timezone=True), nullable=True)
    expiry_date = Column(DateTime(timezone=True), nullable=True)
    cost = Column(Numeric(10, 2), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )


class Risk(Base):
    __tablename__ = "risks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    property_id = Column(Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(value_enum(RiskType, "risk_type"), nullable=False)
    description = Column(Text, nullable=False)
    impact = Column(value_enum(RiskImpact, "risk_impact"), nullable=False)
    owner_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    due_date = Column(DateTime(timezone=True), nullable=True)
    status = Column(value_enum(RiskStatus, "risk_status"), nullable=False, default=RiskStatus.OPEN)
    resolution = Column(Text, nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )
