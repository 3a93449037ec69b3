from __future__ import annotations

import enum
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, Text, Uuid
from sqlalchemy.sql import func

from .base import Base, JSONType, utcnow, value_enum


class PropertyStatus(str, enum.Enum):
    PLANNING = "planning"
    PERMITS = "permits"
    ASSESSMENT = "assessment"
    ACTIVE = "active"
    COMPLETED = "completed"
    ON_HOLD = "on_hold"


class MilestoneStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETE = "complete"
    BLOCKED = "blocked"
    CANCELLED = "cancelled"


class Property(Base):
    __tablename__ = "properties"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    address = Column(Text, nullable=False)
    city = Column(Text, nullable=True)
    state = Column(Text, nullable=True)
    zip_code = Column(Text, nullable=True)
    type = Column(Text, nullable=False)
    status = Column(value_enum(PropertyStatus, "property_status"), nullable=False, default=PropertyStatus.PLANNING)
    progress = Column(Integer, nullable=False, default=0)
    total_budget = Column(Numeric(12, 2), nullable=False)
    spent_budget = Column(Numeric(12, 2), nullable=False, default=0)
    committed_budget = Column(Numeric(12, 2), nullable=False, default=0)
    due_date = Column(DateTime(timezone=True), nullable=True)
    schedule_adherence = Column(Integer, nullable=False, default=100)
    budget_variance = Column(Numeric(5, 2), nullable=False, default=0)
    safety_incidents = Column(Integer, nullable=False, default=0)
    permit_sla = Column(Integer, nullable=False, default=0)
    owner_id = Column(Uuid, ForeignKey("users.id"), nullable=True, index=True)
    pm_id = Column(Uuid, ForeignKey("users.id"), nullable=True, index=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )


class Milestone(Base):
    __tablename__ = "milestones"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    property_id = Column(Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(value_enum(MilestoneStatus, "milestone_status"), nullable=False, default=MilestoneStatus.PENDING)
    target_date = Column(DateTime(timezone=True), nullable=False)
    actual_date = Column(DateTime(timezone=True), nullable=True)
    order = Column(Integer, nullable=False, default=0)
    blockers = Column(JSONType, nullable=False, default=list)
    # ids of milestones that must complete first
    dependencies = Column(JSONType, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )
