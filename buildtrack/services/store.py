from __future__ import annotations

import logging
import uuid
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..errors import NotFound
from ..models import (
    RFQ,
    Activity,
    AuditAction,
    AuditLog,
    Bid,
    BidStatus,
    BudgetLine,
    Discussion,
    DiscussionComment,
    DiscussionReaction,
    Milestone,
    Permit,
    ProjectMember,
    Property,
    ReactionType,
    RFQVendor,
    Risk,
    User,
    Vendor,
)
from ..models.base import utcnow
from ..models.permits import PENDING_PERMIT_STATUSES

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")

DEFAULT_ACTIVITY_LIMIT = 50
DEFAULT_AUDIT_LIMIT = 100


class EntityStore(Generic[ModelT]):
    """CRUD over one table with a fixed listing order."""

    def __init__(self, db: Session, model: Type[ModelT], order_by: Any, label: str) -> None:
        self.db = db
        self.model = model
        self.order_by = order_by
        self.label = label

    def list(self, limit: Optional[int] = None, **filters: Any) -> list[ModelT]:
        query = self.db.query(self.model)
        for column, value in filters.items():
            if value is None:
                continue
            query = query.filter(getattr(self.model, column) == value)
        query = query.order_by(*self.order_by)
        if limit:
            query = query.limit(limit)
        return query.all()

    def find(self, entity_id: uuid.UUID) -> Optional[ModelT]:
        return self.db.get(self.model, entity_id)

    def get(self, entity_id: uuid.UUID) -> ModelT:
        row = self.find(entity_id)
        if row is None:
            raise NotFound(f"{self.label} not found")
        return row

    def create(self, **values: Any) -> ModelT:
        row = self.model(**values)
        self.db.add(row)
        self.commit()
        self.db.refresh(row)
        return row

    def update(self, entity_id: uuid.UUID, **values: Any) -> ModelT:
        row = self.get(entity_id)
        for key, value in values.items():
            setattr(row, key, value)
        if hasattr(row, "updated_at"):
            row.updated_at = utcnow()
        self.commit()
        self.db.refresh(row)
        return row

    def delete(self, entity_id: uuid.UUID) -> None:
        row = self.get(entity_id)
        self.db.delete(row)
        self.commit()

    def commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("store_commit_failed entity=%s", self.label)
            raise


class Store:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.users: EntityStore[User] = EntityStore(db, User, (User.created_at.asc(),), "User")
        self.properties: EntityStore[Property] = EntityStore(db, Property, (Property.created_at.asc(),), "Property")
        self.members: EntityStore[ProjectMember] = EntityStore(
            db, ProjectMember, (ProjectMember.created_at.asc(),), "Project member"
        )
        self.milestones: EntityStore[Milestone] = EntityStore(
            db, Milestone, (Milestone.order.asc(), Milestone.created_at.asc()), "Milestone"
        )
        self.vendors: EntityStore[Vendor] = EntityStore(db, Vendor, (Vendor.name.asc(),), "Vendor")
        self.budget_lines: EntityStore[BudgetLine] = EntityStore(
            db, BudgetLine, (BudgetLine.scope.asc(),), "Budget line"
        )
        self.rfqs: EntityStore[RFQ] = EntityStore(db, RFQ, (RFQ.created_at.desc(),), "RFQ")
        self.bids: EntityStore[Bid] = EntityStore(db, Bid, (Bid.submitted_at.desc(),), "Bid")
        self.permits: EntityStore[Permit] = EntityStore(db, Permit, (Permit.created_at.asc(),), "Permit")
        self.risks: EntityStore[Risk] = EntityStore(db, Risk, (Risk.created_at.desc(),), "Risk")
        self.discussions: EntityStore[Discussion] = EntityStore(
            db, Discussion, (Discussion.is_pinned.desc(), Discussion.created_at.desc()), "Discussion"
        )
        self.discussion_comments: EntityStore[DiscussionComment] = EntityStore(
            db, DiscussionComment, (DiscussionComment.created_at.asc(),), "Comment"
        )

    # --- properties ------------------------------------------------------
    def properties_for_pm(self, pm_id: uuid.UUID) -> list[Property]:
        return self.properties.list(pm_id=pm_id)

    # --- procurement -----------------------------------------------------
    def rfq_vendors(self, rfq_id: uuid.UUID) -> list[RFQVendor]:
        return (
            self.db.query(RFQVendor)
            .filter(RFQVendor.rfq_id == rfq_id)
            .order_by(RFQVendor.invited_at.asc())
            .all()
        )

    def add_vendor_to_rfq(self, rfq_id: uuid.UUID, vendor_id: uuid.UUID) -> bool:
        self.rfqs.get(rfq_id)
        self.vendors.get(vendor_id)
        existing = (
            self.db.query(RFQVendor)
            .filter(RFQVendor.rfq_id == rfq_id, RFQVendor.vendor_id == vendor_id)
            .one_or_none()
        )
        if existing:
            return False
        self.db.add(RFQVendor(rfq_id=rfq_id, vendor_id=vendor_id))
        self.rfqs.commit()
        return True

    def remove_vendor_from_rfq(self, rfq_id: uuid.UUID, vendor_id: uuid.UUID) -> bool:
        removed = (
            self.db.query(RFQVendor)
            .filter(RFQVendor.rfq_id == rfq_id, RFQVendor.vendor_id == vendor_id)
            .delete(synchronize_session=False)
        )
        self.rfqs.commit()
        return bool(removed)

    def award_bid(self, bid_id: uuid.UUID) -> Bid:
        return self.bids.update(bid_id, status=BidStatus.AWARDED, awarded_at=utcnow())

    # --- discussions -----------------------------------------------------
    def add_reaction(
        self, discussion_id: uuid.UUID, user_id: uuid.UUID, reaction: ReactionType
    ) -> DiscussionReaction:
        existing = (
            self.db.query(DiscussionReaction)
            .filter(
                DiscussionReaction.discussion_id == discussion_id,
                DiscussionReaction.user_id == user_id,
                DiscussionReaction.type == reaction,
            )
            .one_or_none()
        )
        if existing:
            return existing
        row = DiscussionReaction(discussion_id=discussion_id, user_id=user_id, type=reaction)
        self.db.add(row)
        self.discussions.commit()
        self.db.refresh(row)
        return row

    def remove_reaction(self, discussion_id: uuid.UUID, user_id: uuid.UUID, reaction: ReactionType) -> bool:
        removed = (
            self.db.query(DiscussionReaction)
            .filter(
                DiscussionReaction.discussion_id == discussion_id,
                DiscussionReaction.user_id == user_id,
                DiscussionReaction.type == reaction,
            )
            .delete(synchronize_session=False)
        )
        self.discussions.commit()
        return bool(removed)

    def reaction_counts(self, discussion_id: uuid.UUID) -> dict[str, int]:
        rows = (
            self.db.query(DiscussionReaction.type, func.count(DiscussionReaction.id))
            .filter(DiscussionReaction.discussion_id == discussion_id)
            .group_by(DiscussionReaction.type)
            .all()
        )
        return {reaction.value: count for reaction, count in rows}

    # --- feeds -----------------------------------------------------------
    def record_activity(
        self,
        user_id: uuid.UUID,
        action: str,
        description: str,
        property_id: Optional[uuid.UUID] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[uuid.UUID | str] = None,
    ) -> Activity:
        row = Activity(
            user_id=user_id,
            property_id=property_id,
            action=action,
            description=description,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id else None,
        )
        self.db.add(row)
        self.db.commit()
        return row

    def record_audit(
        self,
        user_id: uuid.UUID,
        action: AuditAction,
        entity_type: str,
        entity_id: uuid.UUID | str,
        old_values: Optional[dict] = None,
        new_values: Optional[dict] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuditLog:
        row = AuditLog(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            old_values=old_values,
            new_values=new_values,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.db.add(row)
        self.db.commit()
        return row

    def list_activities(
        self, property_id: Optional[uuid.UUID] = None, limit: int = DEFAULT_ACTIVITY_LIMIT
    ) -> list[Activity]:
        query = self.db.query(Activity)
        if property_id:
            query = query.filter(Activity.property_id == property_id)
        return query.order_by(Activity.created_at.desc()).limit(limit).all()

    def list_audit_logs(
        self,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        limit: int = DEFAULT_AUDIT_LIMIT,
    ) -> list[AuditLog]:
        query = self.db.query(AuditLog)
        if entity_type:
            query = query.filter(AuditLog.entity_type == entity_type)
        if entity_id:
            query = query.filter(AuditLog.entity_id == entity_id)
        return query.order_by(AuditLog.created_at.desc()).limit(limit).all()

    # --- dashboard -------------------------------------------------------
    def dashboard_stats(self) -> dict[str, Any]:
        properties = self.properties.list()
        total_budget = sum((Decimal(p.total_budget or 0) for p in properties), Decimal(0))
        spent_budget = sum((Decimal(p.spent_budget or 0) for p in properties), Decimal(0))
        if properties:
            adherence = Decimal(sum(p.schedule_adherence or 0 for p in properties)) / len(properties)
            avg_schedule_adherence = int(adherence.quantize(Decimal(1), rounding=ROUND_HALF_UP))
        else:
            avg_schedule_adherence = 100

        pending_permits = (
            self.db.query(func.count(Permit.id))
            .filter(Permit.status.in_(PENDING_PERMIT_STATUSES))
            .scalar()
        )

        return {
            "active_projects": len(properties),
            # millions, three decimals
            "total_budget": int((total_budget / 1000).quantize(Decimal(1), rounding=ROUND_HALF_UP)) / 1000,
            # thousands
            "spent_budget": int((spent_budget / 1000).quantize(Decimal(1), rounding=ROUND_HALF_UP)),
            "avg_schedule_adherence": avg_schedule_adherence,
            "pending_permits": int(pending_permits or 0),
        }
