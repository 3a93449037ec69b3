from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator

from ..dependencies.auth import AuthContext, require_auth
from ..dependencies.services import get_permit_lookup
from ..services.permit_lookup import PermitLookupService, PermitRecord

router = APIRouter(prefix="/permits", tags=["permits"])


class PermitLookupRequest(BaseModel):
    project_address: str = Field(min_length=1)
    scope_of_work: str = Field(min_length=1)

    @field_validator("project_address", "scope_of_work")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value.strip()


class PermitLookupResponse(BaseModel):
    permits: list[PermitRecord]


@router.post("/lookup")
def lookup_permits(
    payload: PermitLookupRequest,
    context: AuthContext = Depends(require_auth),
    lookup: PermitLookupService = Depends(get_permit_lookup),
) -> PermitLookupResponse:
    return PermitLookupResponse(permits=lookup.lookup(payload.project_address, payload.scope_of_work))
