from __future__ import annotations

import enum
import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Text, UniqueConstraint, Uuid
from sqlalchemy.sql import func

from .base import Base, utcnow, value_enum
from .documents import AccessLevel


class ReactionType(str, enum.Enum):
    LIKE = "like"
    LOVE = "love"
    INSIGHT = "insight"
    QUESTION = "question"
    CELEBRATE = "celebrate"


class Discussion(Base):
    __tablename__ = "discussions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    property_id = Column(Uuid, ForeignKey("properties.id", ondelete="SET NULL"), nullable=True, index=True)
    author_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    title = Column(Text, nullable=True)
    body = Column(Text, nullable=False)
    # shares the document access enum
    visibility = Column(value_enum(AccessLevel, "access_level"), nullable=False, default=AccessLevel.PROJECT_TEAM)
    is_pinned = Column(Boolean, nullable=False, default=False)
    is_locked = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )


class DiscussionComment(Base):
    __tablename__ = "discussion_comments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    discussion_id = Column(Uuid, ForeignKey("discussions.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    body = Column(Text, nullable=False)
    parent_comment_id = Column(Uuid, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)


class DiscussionReaction(Base):
    __tablename__ = "discussion_reactions"
    __table_args__ = (
        UniqueConstraint("discussion_id", "user_id", "type", name="uq_discussion_reactions_user_type"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    discussion_id = Column(Uuid, ForeignKey("discussions.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    type = Column(value_enum(ReactionType, "reaction_type"), nullable=False, default=ReactionType.LIKE)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
