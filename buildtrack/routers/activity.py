from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..dependencies.auth import AuthContext, require_auth
from ..dependencies.services import get_store
from ..serializers import serialize_rows
from ..services.store import Store
from .common import parse_uuid

router = APIRouter(tags=["activity"])


@router.get("/activities")
def list_activities(
    property_id: Optional[str] = None,
    limit: int = Query(default=50, ge=1, le=500),
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
):
    property_uuid = parse_uuid(property_id, "property id") if property_id else None
    return serialize_rows(store.list_activities(property_id=property_uuid, limit=limit))


@router.get("/audit-logs")
def list_audit_logs(
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    limit: int = Query(default=100, ge=1, le=1000),
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
):
    return serialize_rows(store.list_audit_logs(entity_type=entity_type, entity_id=entity_id, limit=limit))


@router.get("/dashboard/stats")
def dashboard_stats(context: AuthContext = Depends(require_auth), store: Store = Depends(get_store)):
    return store.dashboard_stats()
