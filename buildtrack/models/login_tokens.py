from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.sql import func

from .base import Base, utcnow


class LoginToken(Base):
    """One-time credential embedded in a magic link."""

    __tablename__ = "login_tokens"
    __table_args__ = (
        UniqueConstraint("token_hash", name="uq_login_tokens_token_hash"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String, nullable=False)
    email = Column(String, nullable=False)
    purpose = Column(String, nullable=False, default="login")
    requested_ip = Column(String, nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    consumed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
