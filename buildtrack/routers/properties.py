from __future__ import annotations

import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from ..dependencies.auth import AuthContext, require_auth
from ..dependencies.services import get_audit, get_store
from ..errors import NotFound
from ..models import (
    AuditAction,
    MilestoneStatus,
    PermitStatus,
    ProjectRole,
    PropertyStatus,
    RiskImpact,
    RiskStatus,
    RiskType,
)
from ..serializers import serialize_row, serialize_rows
from ..services.audit import AuditRecorder
from ..services.store import Store
from .common import parse_uuid

logger = logging.getLogger(__name__)

router = APIRouter(tags=["properties"])


class PropertyCreate(BaseModel):
    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    type: str = Field(min_length=1)
    status: PropertyStatus = PropertyStatus.PLANNING
    progress: int = Field(default=0, ge=0, le=100)
    total_budget: Decimal = Field(ge=0)
    spent_budget: Decimal = Field(default=Decimal(0), ge=0)
    committed_budget: Decimal = Field(default=Decimal(0), ge=0)
    due_date: Optional[datetime] = None
    schedule_adherence: int = Field(default=100, ge=0, le=100)
    budget_variance: Decimal = Decimal(0)
    safety_incidents: int = Field(default=0, ge=0)
    permit_sla: int = Field(default=0, ge=0)
    owner_id: Optional[uuid.UUID] = None
    pm_id: Optional[uuid.UUID] = None
    description: Optional[str] = None


class PropertyUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    address: Optional[str] = Field(default=None, min_length=1)
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    type: Optional[str] = None
    status: Optional[PropertyStatus] = None
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    total_budget: Optional[Decimal] = Field(default=None, ge=0)
    spent_budget: Optional[Decimal] = Field(default=None, ge=0)
    committed_budget: Optional[Decimal] = Field(default=None, ge=0)
    due_date: Optional[datetime] = None
    schedule_adherence: Optional[int] = Field(default=None, ge=0, le=100)
    budget_variance: Optional[Decimal] = None
    safety_incidents: Optional[int] = Field(default=None, ge=0)
    permit_sla: Optional[int] = Field(default=None, ge=0)
    owner_id: Optional[uuid.UUID] = None
    pm_id: Optional[uuid.UUID] = None
    description: Optional[str] = None


class MemberCreate(BaseModel):
    user_id: uuid.UUID
    role: ProjectRole = ProjectRole.MEMBER


class MilestoneCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    status: MilestoneStatus = MilestoneStatus.PENDING
    target_date: datetime
    actual_date: Optional[datetime] = None
    order: int = 0
    blockers: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)


class MilestoneUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    status: Optional[MilestoneStatus] = None
    target_date: Optional[datetime] = None
    actual_date: Optional[datetime] = None
    order: Optional[int] = None
    blockers: Optional[list[str]] = None
    dependencies: Optional[list[str]] = None


class BudgetLineCreate(BaseModel):
    scope: str = Field(min_length=1)
    vendor_id: Optional[uuid.UUID] = None
    contract_amount: Decimal = Field(ge=0)
    spent_amount: Decimal = Field(default=Decimal(0), ge=0)
    percent_complete: int = Field(default=0, ge=0, le=100)
    bid_count: int = Field(default=0, ge=0)
    coi_valid: bool = False
    payment_blocked: bool = False


class BudgetLineUpdate(BaseModel):
    scope: Optional[str] = Field(default=None, min_length=1)
    vendor_id: Optional[uuid.UUID] = None
    contract_amount: Optional[Decimal] = Field(default=None, ge=0)
    spent_amount: Optional[Decimal] = Field(default=None, ge=0)
    percent_complete: Optional[int] = Field(default=None, ge=0, le=100)
    bid_count: Optional[int] = Field(default=None, ge=0)
    coi_valid: Optional[bool] = None
    payment_blocked: Optional[bool] = None


class PermitCreate(BaseModel):
    type: str = Field(min_length=1)
    permit_number: Optional[str] = None
    status: PermitStatus = PermitStatus.NOT_STARTED
    submitted_date: Optional[datetime] = None
    approved_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    cost: Optional[Decimal] = Field(default=None, ge=0)
    notes: Optional[str] = None


class PermitUpdate(BaseModel):
    type: Optional[str] = Field(default=None, min_length=1)
    permit_number: Optional[str] = None
    status: Optional[PermitStatus] = None
    submitted_date: Optional[datetime] = None
    approved_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    cost: Optional[Decimal] = Field(default=None, ge=0)
    notes: Optional[str] = None


class RiskCreate(BaseModel):
    type: RiskType
    description: str = Field(min_length=1)
    impact: RiskImpact
    owner_id: Optional[uuid.UUID] = None
    due_date: Optional[datetime] = None
    status: RiskStatus = RiskStatus.OPEN
    resolution: Optional[str] = None


class RiskUpdate(BaseModel):
    type: Optional[RiskType] = None
    description: Optional[str] = Field(default=None, min_length=1)
    impact: Optional[RiskImpact] = None
    owner_id: Optional[uuid.UUID] = None
    due_date: Optional[datetime] = None
    status: Optional[RiskStatus] = None
    resolution: Optional[str] = None
    resolved_at: Optional[datetime] = None


# --- properties ----------------------------------------------------------


@router.get("/properties")
def list_properties(
    pm_id: Optional[str] = None,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
):
    if pm_id:
        return serialize_rows(store.properties_for_pm(parse_uuid(pm_id, "pm id")))
    return serialize_rows(store.properties.list())


@router.post("/properties", status_code=status.HTTP_201_CREATED)
def create_property(
    payload: PropertyCreate,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    audit: AuditRecorder = Depends(get_audit),
):
    prop = store.properties.create(**payload.model_dump())
    body = serialize_row(prop)
    audit.audit(context.user.id, AuditAction.CREATE, "property", prop.id, new_values=body)
    audit.activity(
        context.user.id,
        "property_created",
        f"Created project {prop.name}",
        property_id=prop.id,
        entity_type="property",
        entity_id=prop.id,
    )
    logger.info("property_created property_id=%s user_id=%s", prop.id, context.user.id)
    return body


@router.get("/properties/{property_id}")
def get_property(
    property_id: str,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
):
    return serialize_row(store.properties.get(parse_uuid(property_id, "property id")))


@router.patch("/properties/{property_id}")
def update_property(
    property_id: str,
    payload: PropertyUpdate,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    audit: AuditRecorder = Depends(get_audit),
):
    property_uuid = parse_uuid(property_id, "property id")
    before = serialize_row(store.properties.get(property_uuid))
    prop = store.properties.update(property_uuid, **payload.model_dump(exclude_unset=True))
    body = serialize_row(prop)
    audit.audit(context.user.id, AuditAction.UPDATE, "property", prop.id, old_values=before, new_values=body)
    return body


@router.delete("/properties/{property_id}")
def delete_property(
    property_id: str,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    audit: AuditRecorder = Depends(get_audit),
):
    property_uuid = parse_uuid(property_id, "property id")
    before = serialize_row(store.properties.get(property_uuid))
    store.properties.delete(property_uuid)
    audit.audit(context.user.id, AuditAction.DELETE, "property", property_uuid, old_values=before)
    return {"status": "deleted", "id": str(property_uuid)}


# --- members -------------------------------------------------------------


@router.get("/properties/{property_id}/members")
def list_members(
    property_id: str,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
):
    property_uuid = parse_uuid(property_id, "property id")
    store.properties.get(property_uuid)
    return serialize_rows(store.members.list(property_id=property_uuid))


@router.post("/properties/{property_id}/members", status_code=status.HTTP_201_CREATED)
def add_member(
    property_id: str,
    payload: MemberCreate,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    audit: AuditRecorder = Depends(get_audit),
):
    property_uuid = parse_uuid(property_id, "property id")
    store.properties.get(property_uuid)
    store.users.get(payload.user_id)
    existing = store.members.list(property_id=property_uuid, user_id=payload.user_id)
    if existing:
        member = store.members.update(existing[0].id, role=payload.role)
    else:
        member = store.members.create(property_id=property_uuid, user_id=payload.user_id, role=payload.role)
    body = serialize_row(member)
    audit.audit(context.user.id, AuditAction.CREATE, "project_member", member.id, new_values=body)
    return body


@router.delete("/properties/{property_id}/members/{user_id}")
def remove_member(
    property_id: str,
    user_id: str,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    audit: AuditRecorder = Depends(get_audit),
):
    property_uuid = parse_uuid(property_id, "property id")
    user_uuid = parse_uuid(user_id, "user id")
    existing = store.members.list(property_id=property_uuid, user_id=user_uuid)
    if not existing:
        raise NotFound("Project member not found")
    member_id = existing[0].id
    before = serialize_row(existing[0])
    store.members.delete(member_id)
    audit.audit(context.user.id, AuditAction.DELETE, "project_member", member_id, old_values=before)
    return {"status": "deleted"}


# --- milestones ----------------------------------------------------------


@router.get("/properties/{property_id}/milestones")
def list_milestones(
    property_id: str,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
):
    return serialize_rows(store.milestones.list(property_id=parse_uuid(property_id, "property id")))


@router.post("/properties/{property_id}/milestones", status_code=status.HTTP_201_CREATED)
def create_milestone(
    property_id: str,
    payload: MilestoneCreate,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    audit: AuditRecorder = Depends(get_audit),
):
    property_uuid = parse_uuid(property_id, "property id")
    store.properties.get(property_uuid)
    milestone = store.milestones.create(property_id=property_uuid, **payload.model_dump())
    body = serialize_row(milestone)
    audit.audit(context.user.id, AuditAction.CREATE, "milestone", milestone.id, new_values=body)
    return body


@router.patch("/milestones/{milestone_id}")
def update_milestone(
    milestone_id: str,
    payload: MilestoneUpdate,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    audit: AuditRecorder = Depends(get_audit),
):
    milestone_uuid = parse_uuid(milestone_id, "milestone id")
    current = store.milestones.get(milestone_uuid)
    before = serialize_row(current)
    was_complete = current.status == MilestoneStatus.COMPLETE

    milestone = store.milestones.update(milestone_uuid, **payload.model_dump(exclude_unset=True))
    body = serialize_row(milestone)
    audit.audit(context.user.id, AuditAction.UPDATE, "milestone", milestone.id, old_values=before, new_values=body)
    if milestone.status == MilestoneStatus.COMPLETE and not was_complete:
        audit.activity(
            context.user.id,
            "milestone_completed",
            f"Completed milestone: {milestone.name}",
            property_id=milestone.property_id,
            entity_type="milestone",
            entity_id=milestone.id,
        )
    return body


@router.delete("/milestones/{milestone_id}")
def delete_milestone(
    milestone_id: str,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    audit: AuditRecorder = Depends(get_audit),
):
    milestone_uuid = parse_uuid(milestone_id, "milestone id")
    before = serialize_row(store.milestones.get(milestone_uuid))
    store.milestones.delete(milestone_uuid)
    audit.audit(context.user.id, AuditAction.DELETE, "milestone", milestone_uuid, old_values=before)
    return {"status": "deleted", "id": str(milestone_uuid)}


# --- budget lines --------------------------------------------------------


@router.get("/properties/{property_id}/budget")
def list_budget_lines(
    property_id: str,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
):
    return serialize_rows(store.budget_lines.list(property_id=parse_uuid(property_id, "property id")))


@router.post("/properties/{property_id}/budget", status_code=status.HTTP_201_CREATED)
def create_budget_line(
    property_id: str,
    payload: BudgetLineCreate,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    audit: AuditRecorder = Depends(get_audit),
):
    property_uuid = parse_uuid(property_id, "property id")
    store.properties.get(property_uuid)
    line = store.budget_lines.create(property_id=property_uuid, **payload.model_dump())
    body = serialize_row(line)
    audit.audit(context.user.id, AuditAction.CREATE, "budget_line", line.id, new_values=body)
    return body


@router.patch("/budget-lines/{line_id}")
def update_budget_line(
    line_id: str,
    payload: BudgetLineUpdate,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    audit: AuditRecorder = Depends(get_audit),
):
    line_uuid = parse_uuid(line_id, "budget line id")
    before = serialize_row(store.budget_lines.get(line_uuid))
    line = store.budget_lines.update(line_uuid, **payload.model_dump(exclude_unset=True))
    body = serialize_row(line)
    audit.audit(context.user.id, AuditAction.UPDATE, "budget_line", line.id, old_values=before, new_values=body)
    return body


@router.delete("/budget-lines/{line_id}")
def delete_budget_line(
    line_id: str,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    audit: AuditRecorder = Depends(get_audit),
):
    line_uuid = parse_uuid(line_id, "budget line id")
    before = serialize_row(store.budget_lines.get(line_uuid))
    store.budget_lines.delete(line_uuid)
    audit.audit(context.user.id, AuditAction.DELETE, "budget_line", line_uuid, old_values=before)
    return {"status": "deleted", "id": str(line_uuid)}


# --- permits -------------------------------------------------------------


@router.get("/properties/{property_id}/permits")
def list_permits(
    property_id: str,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
):
    return serialize_rows(store.permits.list(property_id=parse_uuid(property_id, "property id")))


@router.post("/properties/{property_id}/permits", status_code=status.HTTP_201_CREATED)
def create_permit(
    property_id: str,
    payload: PermitCreate,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    audit: AuditRecorder = Depends(get_audit),
):
    property_uuid = parse_uuid(property_id, "property id")
    store.properties.get(property_uuid)
    permit = store.permits.create(property_id=property_uuid, **payload.model_dump())
    body = serialize_row(permit)
    audit.audit(context.user.id, AuditAction.CREATE, "permit", permit.id, new_values=body)
    audit.activity(
        context.user.id,
        "permit_created",
        f"Added {permit.type} permit",
        property_id=property_uuid,
        entity_type="permit",
        entity_id=permit.id,
    )
    return body


@router.patch("/permits/{permit_id}")
def update_permit(
    permit_id: str,
    payload: PermitUpdate,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    audit: AuditRecorder = Depends(get_audit),
):
    permit_uuid = parse_uuid(permit_id, "permit id")
    before = serialize_row(store.permits.get(permit_uuid))
    permit = store.permits.update(permit_uuid, **payload.model_dump(exclude_unset=True))
    body = serialize_row(permit)
    audit.audit(context.user.id, AuditAction.UPDATE, "permit", permit.id, old_values=before, new_values=body)
    return body


@router.delete("/permits/{permit_id}")
def delete_permit(
    permit_id: str,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    audit: AuditRecorder = Depends(get_audit),
):
    permit_uuid = parse_uuid(permit_id, "permit id")
    before = serialize_row(store.permits.get(permit_uuid))
    store.permits.delete(permit_uuid)
    audit.audit(context.user.id, AuditAction.DELETE, "permit", permit_uuid, old_values=before)
    return {"status": "deleted", "id": str(permit_uuid)}


# --- risks ---------------------------------------------------------------


@router.get("/properties/{property_id}/risks")
def list_risks(
    property_id: str,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
):
    return serialize_rows(store.risks.list(property_id=parse_uuid(property_id, "property id")))


@router.post("/properties/{property_id}/risks", status_code=status.HTTP_201_CREATED)
def create_risk(
    property_id: str,
    payload: RiskCreate,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    audit: AuditRecorder = Depends(get_audit),
):
    property_uuid = parse_uuid(property_id, "property id")
    store.properties.get(property_uuid)
    values = payload.model_dump()
    values["owner_id"] = values.get("owner_id") or context.user.id
    risk = store.risks.create(property_id=property_uuid, **values)
    body = serialize_row(risk)
    audit.audit(context.user.id, AuditAction.CREATE, "risk", risk.id, new_values=body)
    return body


@router.patch("/risks/{risk_id}")
def update_risk(
    risk_id: str,
    payload: RiskUpdate,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    audit: AuditRecorder = Depends(get_audit),
):
    risk_uuid = parse_uuid(risk_id, "risk id")
    before = serialize_row(store.risks.get(risk_uuid))
    risk = store.risks.update(risk_uuid, **payload.model_dump(exclude_unset=True))
    body = serialize_row(risk)
    audit.audit(context.user.id, AuditAction.UPDATE, "risk", risk.id, old_values=before, new_values=body)
    return body


@router.delete("/risks/{risk_id}")
def delete_risk(
    risk_id: str,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    audit: AuditRecorder = Depends(get_audit),
):
    risk_uuid = parse_uuid(risk_id, "risk id")
    before = serialize_row(store.risks.get(risk_uuid))
    store.risks.delete(risk_uuid)
    audit.audit(context.user.id, AuditAction.DELETE, "risk", risk_uuid, old_values=before)
    return {"status": "deleted", "id": str(risk_uuid)}
