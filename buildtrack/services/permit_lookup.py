from __future__ import annotations

import logging
from typing import Any, Optional

import openai
from instructor import from_openai
from instructor.exceptions import InstructorRetryException
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from ..config import get_settings
from . import metrics

logger = logging.getLogger(__name__)

FALLBACK_PERMIT_NAME = "Building Permit"
FALLBACK_AUTHORITY = "Local Building Department"
DEFAULT_NOTES = "Please verify requirements with local authority"


class PermitRecord(BaseModel):
    permit_name: Optional[str] = Field(default=None, description="Name of the specific permit required")
    issuing_authority: Optional[str] = Field(
        default=None, description="City or county department that issues the permit"
    )
    form_url: str = Field(default="", description="Direct URL to the application form or permit page")
    fee: Optional[str] = None
    processing_time: Optional[str] = None
    notes: str = Field(default="", description="Requirements, fees or process notes")


class PermitLookupParseError(Exception):
    pass


SYSTEM = (
    "You are an expert compliance assistant for construction projects. Given a property address "
    "and a scope of work, identify the official municipal permits required for that specific city "
    "or county. Answer only with permits you are confident apply."
)


USER_TMPL = """Project Address: {address}
Scope of Work: {scope}

Return a JSON list of permits, each with:
- permit_name
- issuing_authority (city/county department)
- form_url (direct link to the application or information page, or empty)
- fee (if known)
- processing_time (if known)
- notes (requirements, inspections, process)
"""


def fallback_record(project_address: str, scope_of_work: str, reason: str) -> PermitRecord:
    return PermitRecord(
        permit_name=FALLBACK_PERMIT_NAME,
        issuing_authority=FALLBACK_AUTHORITY,
        form_url="",
        notes=(
            f"{reason} Please contact the local building department for permit requirements. "
            f"Address: {project_address}, Work: {scope_of_work}"
        ),
    )


class PermitLookupService:
    def __init__(self, client: Any = None, model: Optional[str] = None) -> None:
        self._client = client
        self.model = model or get_settings().permit_lookup_model

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = from_openai(openai.OpenAI(api_key=get_settings().openai_api_key))
        return self._client

    def _ask(self, project_address: str, scope_of_work: str) -> list[PermitRecord]:
        return self.client.chat.completions.create(
            model=self.model,
            response_model=list[PermitRecord],
            messages=[
                {"role": "system", "content": SYSTEM},
                {"role": "user", "content": USER_TMPL.format(address=project_address, scope=scope_of_work)},
            ],
            temperature=0.2,
        )

    @staticmethod
    def _validate(records: Any) -> list[PermitRecord]:
        if not records:
            raise PermitLookupParseError("empty permit list")
        cleaned: list[PermitRecord] = []
        for record in records:
            if not record.permit_name or not record.issuing_authority:
                raise PermitLookupParseError("permit record missing name or authority")
            cleaned.append(
                record.model_copy(update={"form_url": record.form_url or "", "notes": record.notes or DEFAULT_NOTES})
            )
        return cleaned

    def lookup(self, project_address: str, scope_of_work: str) -> list[PermitRecord]:
        """Best-effort permit requirements; degrades to one advisory record instead of raising."""
        try:
            records = self._validate(self._ask(project_address, scope_of_work))
        except (PermitLookupParseError, PydanticValidationError, InstructorRetryException) as exc:
            logger.warning("permit_lookup_parse_failed address=%s error=%s", project_address, exc)
            metrics.record_permit_lookup(ok=False)
            return [fallback_record(project_address, scope_of_work, "AI lookup failed.")]
        except Exception as exc:
            logger.error("permit_lookup_unavailable address=%s error=%s", project_address, exc)
            metrics.record_permit_lookup(ok=False)
            return [fallback_record(project_address, scope_of_work, "AI service unavailable.")]

        metrics.record_permit_lookup(ok=True)
        logger.info("permit_lookup_ok address=%s permits=%s", project_address, len(records))
        return records
