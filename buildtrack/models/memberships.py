from __future__ import annotations

import enum
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.sql import func

from .base import Base, utcnow, value_enum


class ProjectRole(str, enum.Enum):
    OWNER = "owner"
    PM = "pm"
    MEMBER = "member"
    VENDOR = "vendor"


class ProjectMember(Base):
    __tablename__ = "project_members"
    __table_args__ = (UniqueConstraint("property_id", "user_id", name="uq_project_members_property_user"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    property_id = Column(Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(value_enum(ProjectRole, "project_role"), nullable=False, default=ProjectRole.MEMBER)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
