from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field

from ..dependencies.auth import AuthContext, require_auth
from ..dependencies.services import get_audit, get_store
from ..errors import Conflict, NotFound
from ..models import RFQ, AuditAction, BidStatus, RFQStatus
from ..serializers import serialize_row, serialize_rows
from ..services.audit import AuditRecorder
from ..services.store import Store
from .common import parse_uuid

router = APIRouter(tags=["procurement"])


class VendorCreate(BaseModel):
    name: str = Field(min_length=1)
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    trades: list[str] = Field(default_factory=list)
    is_licensed: bool = False
    is_bonded: bool = False
    insurance_expiry: Optional[datetime] = None
    rating: Optional[Decimal] = Field(default=None, ge=0, le=5)
    notes: Optional[str] = None


class VendorUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    trades: Optional[list[str]] = None
    is_licensed: Optional[bool] = None
    is_bonded: Optional[bool] = None
    insurance_expiry: Optional[datetime] = None
    rating: Optional[Decimal] = Field(default=None, ge=0, le=5)
    notes: Optional[str] = None


class RFQCreate(BaseModel):
    property_id: uuid.UUID
    title: str = Field(min_length=1)
    scope: str = Field(min_length=1)
    description: str = Field(min_length=1)
    bid_due_date: datetime
    site_walkthrough_date: Optional[datetime] = None
    status: RFQStatus = RFQStatus.DRAFT


class RFQUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    scope: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=1)
    bid_due_date: Optional[datetime] = None
    site_walkthrough_date: Optional[datetime] = None
    status: Optional[RFQStatus] = None


class BidCreate(BaseModel):
    vendor_id: uuid.UUID
    base_bid: Decimal = Field(ge=0)
    timeline: Optional[str] = None
    notes: Optional[str] = None
    status: BidStatus = BidStatus.SUBMITTED
    score: Optional[int] = Field(default=None, ge=0, le=100)


def _serialize_rfq(store: Store, rfq: RFQ) -> dict:
    body = serialize_row(rfq)
    body["vendor_ids"] = [str(link.vendor_id) for link in store.rfq_vendors(rfq.id)]
    return body


# --- vendors -------------------------------------------------------------


@router.get("/vendors")
def list_vendors(context: AuthContext = Depends(require_auth), store: Store = Depends(get_store)):
    return serialize_rows(store.vendors.list())


@router.post("/vendors", status_code=status.HTTP_201_CREATED)
def create_vendor(
    payload: VendorCreate,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    audit: AuditRecorder = Depends(get_audit),
):
    vendor = store.vendors.create(**payload.model_dump())
    body = serialize_row(vendor)
    audit.audit(context.user.id, AuditAction.CREATE, "vendor", vendor.id, new_values=body)
    return body


@router.get("/vendors/{vendor_id}")
def get_vendor(vendor_id: str, context: AuthContext = Depends(require_auth), store: Store = Depends(get_store)):
    return serialize_row(store.vendors.get(parse_uuid(vendor_id, "vendor id")))


@router.patch("/vendors/{vendor_id}")
def update_vendor(
    vendor_id: str,
    payload: VendorUpdate,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    audit: AuditRecorder = Depends(get_audit),
):
    vendor_uuid = parse_uuid(vendor_id, "vendor id")
    before = serialize_row(store.vendors.get(vendor_uuid))
    vendor = store.vendors.update(vendor_uuid, **payload.model_dump(exclude_unset=True))
    body = serialize_row(vendor)
    audit.audit(context.user.id, AuditAction.UPDATE, "vendor", vendor.id, old_values=before, new_values=body)
    return body


@router.delete("/vendors/{vendor_id}")
def delete_vendor(
    vendor_id: str,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    audit: AuditRecorder = Depends(get_audit),
):
    vendor_uuid = parse_uuid(vendor_id, "vendor id")
    before = serialize_row(store.vendors.get(vendor_uuid))
    store.vendors.delete(vendor_uuid)
    audit.audit(context.user.id, AuditAction.DELETE, "vendor", vendor_uuid, old_values=before)
    return {"status": "deleted", "id": str(vendor_uuid)}


# --- RFQs ----------------------------------------------------------------


@router.get("/rfqs")
def list_rfqs(
    property_id: Optional[str] = None,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
):
    property_uuid = parse_uuid(property_id, "property id") if property_id else None
    return [_serialize_rfq(store, rfq) for rfq in store.rfqs.list(property_id=property_uuid)]


@router.post("/rfqs", status_code=status.HTTP_201_CREATED)
def create_rfq(
    payload: RFQCreate,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    audit: AuditRecorder = Depends(get_audit),
):
    store.properties.get(payload.property_id)
    rfq = store.rfqs.create(created_by=context.user.id, **payload.model_dump())
    body = _serialize_rfq(store, rfq)
    audit.audit(context.user.id, AuditAction.CREATE, "rfq", rfq.id, new_values=body)
    audit.activity(
        context.user.id,
        "rfq_created",
        f"Created RFQ: {payload.title}",
        property_id=payload.property_id,
        entity_type="rfq",
        entity_id=body["id"],
    )
    return body


@router.get("/rfqs/{rfq_id}")
def get_rfq(rfq_id: str, context: AuthContext = Depends(require_auth), store: Store = Depends(get_store)):
    return _serialize_rfq(store, store.rfqs.get(parse_uuid(rfq_id, "rfq id")))


@router.patch("/rfqs/{rfq_id}")
def update_rfq(
    rfq_id: str,
    payload: RFQUpdate,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    audit: AuditRecorder = Depends(get_audit),
):
    rfq_uuid = parse_uuid(rfq_id, "rfq id")
    before = serialize_row(store.rfqs.get(rfq_uuid))
    rfq = store.rfqs.update(rfq_uuid, **payload.model_dump(exclude_unset=True))
    body = _serialize_rfq(store, rfq)
    audit.audit(context.user.id, AuditAction.UPDATE, "rfq", rfq_uuid, old_values=before, new_values=body)
    return body


@router.delete("/rfqs/{rfq_id}")
def delete_rfq(
    rfq_id: str,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    audit: AuditRecorder = Depends(get_audit),
):
    rfq_uuid = parse_uuid(rfq_id, "rfq id")
    before = serialize_row(store.rfqs.get(rfq_uuid))
    store.rfqs.delete(rfq_uuid)
    audit.audit(context.user.id, AuditAction.DELETE, "rfq", rfq_uuid, old_values=before)
    return {"status": "deleted", "id": str(rfq_uuid)}


@router.put("/rfqs/{rfq_id}/vendors/{vendor_id}")
def invite_vendor(
    rfq_id: str,
    vendor_id: str,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
):
    rfq_uuid = parse_uuid(rfq_id, "rfq id")
    if not store.add_vendor_to_rfq(rfq_uuid, parse_uuid(vendor_id, "vendor id")):
        raise Conflict("Vendor already invited")
    return _serialize_rfq(store, store.rfqs.get(rfq_uuid))


@router.delete("/rfqs/{rfq_id}/vendors/{vendor_id}")
def uninvite_vendor(
    rfq_id: str,
    vendor_id: str,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
):
    rfq_uuid = parse_uuid(rfq_id, "rfq id")
    if not store.remove_vendor_from_rfq(rfq_uuid, parse_uuid(vendor_id, "vendor id")):
        raise NotFound("Vendor not invited to this RFQ")
    return _serialize_rfq(store, store.rfqs.get(rfq_uuid))


# --- bids ----------------------------------------------------------------


@router.get("/rfqs/{rfq_id}/bids")
def list_bids(rfq_id: str, context: AuthContext = Depends(require_auth), store: Store = Depends(get_store)):
    rfq_uuid = parse_uuid(rfq_id, "rfq id")
    store.rfqs.get(rfq_uuid)
    return serialize_rows(store.bids.list(rfq_id=rfq_uuid))


@router.post("/rfqs/{rfq_id}/bids", status_code=status.HTTP_201_CREATED)
def create_bid(
    rfq_id: str,
    payload: BidCreate,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    audit: AuditRecorder = Depends(get_audit),
):
    rfq_uuid = parse_uuid(rfq_id, "rfq id")
    store.rfqs.get(rfq_uuid)
    store.vendors.get(payload.vendor_id)
    bid = store.bids.create(rfq_id=rfq_uuid, **payload.model_dump())
    body = serialize_row(bid)
    audit.audit(context.user.id, AuditAction.CREATE, "bid", bid.id, new_values=body)
    return body


@router.post("/bids/{bid_id}/award")
def award_bid(
    bid_id: str,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    audit: AuditRecorder = Depends(get_audit),
):
    bid_uuid = parse_uuid(bid_id, "bid id")
    before = serialize_row(store.bids.get(bid_uuid))
    bid = store.award_bid(bid_uuid)
    body = serialize_row(bid)
    audit.audit(context.user.id, AuditAction.APPROVE, "bid", bid.id, old_values=before, new_values=body)
    return body
