from __future__ import annotations

import enum
import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.sql import func

from .base import Base, JSONType, utcnow, value_enum


class RFQStatus(str, enum.Enum):
    DRAFT = "draft"
    SENT = "sent"
    RESPONSES_RECEIVED = "responses_received"
    AWARDED = "awarded"
    CANCELLED = "cancelled"


class BidStatus(str, enum.Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    AWARDED = "awarded"
    REJECTED = "rejected"


class Vendor(Base):
    __tablename__ = "vendors"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    contact_email = Column(Text, nullable=True)
    contact_phone = Column(Text, nullable=True)
    address = Column(Text, nullable=True)
    trades = Column(JSONType, nullable=False, default=list)
    is_licensed = Column(Boolean, nullable=False, default=False)
    is_bonded = Column(Boolean, nullable=False, default=False)
    insurance_expiry = Column(DateTime(timezone=True), nullable=True)
    rating = Column(Numeric(3, 2), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )


class BudgetLine(Base):
    __tablename__ = "budget_lines"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    property_id = Column(Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    scope = Column(Text, nullable=False)
    vendor_id = Column(Uuid, ForeignKey("vendors.id"), nullable=True)
    contract_amount = Column(Numeric(12, 2), nullable=False)
    spent_amount = Column(Numeric(12, 2), nullable=False, default=0)
    percent_complete = Column(Integer, nullable=False, default=0)
    bid_count = Column(Integer, nullable=False, default=0)
    coi_valid = Column(Boolean, nullable=False, default=False)
    payment_blocked = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )


class RFQ(Base):
    __tablename__ = "rfqs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    property_id = Column(Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(Text, nullable=False)
    scope = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    bid_due_date = Column(DateTime(timezone=True), nullable=False)
    site_walkthrough_date = Column(DateTime(timezone=True), nullable=True)
    status = Column(value_enum(RFQStatus, "rfq_status"), nullable=False, default=RFQStatus.DRAFT)
    created_by = Column(Uuid, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )


class RFQVendor(Base):
    __tablename__ = "rfq_vendors"
    __table_args__ = (UniqueConstraint("rfq_id", "vendor_id", name="uq_rfq_vendors_rfq_vendor"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    rfq_id = Column(Uuid, ForeignKey("rfqs.id", ondelete="CASCADE"), nullable=False, index=True)
    vendor_id = Column(Uuid, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False)
    invited_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    responded_at = Column(DateTime(timezone=True), nullable=True)


class Bid(Base):
    __tablename__ = "bids"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    rfq_id = Column(Uuid, ForeignKey("rfqs.id", ondelete="CASCADE"), nullable=False, index=True)
    vendor_id = Column(Uuid, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False)
    base_bid = Column(Numeric(12, 2), nullable=False)
    timeline = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(value_enum(BidStatus, "bid_status"), nullable=False, default=BidStatus.PENDING)
    score = Column(Integer, nullable=True)
    submitted_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    awarded_at = Column(DateTime(timezone=True), nullable=True)
