from __future__ import annotations

import logging
import uuid
from typing import Optional

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError

from ..models import AuditAction
from .store import Store

logger = logging.getLogger(__name__)


class AuditRecorder:
    """Append-only audit and activity side effects of API writes.

    A failure here is logged and swallowed: the write it describes has
    already been committed.
    """

    def __init__(self, store: Store, request: Optional[Request] = None) -> None:
        self.store = store
        self.request = request

    def _client(self) -> tuple[Optional[str], Optional[str]]:
        if self.request is None:
            return None, None
        ip_address = self.request.client.host if self.request.client else None
        return ip_address, self.request.headers.get("user-agent")

    def audit(
        self,
        user_id: uuid.UUID,
        action: AuditAction,
        entity_type: str,
        entity_id: uuid.UUID | str,
        old_values: Optional[dict] = None,
        new_values: Optional[dict] = None,
    ) -> None:
        ip_address, user_agent = self._client()
        try:
            self.store.record_audit(
                user_id=user_id,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                old_values=old_values,
                new_values=new_values,
                ip_address=ip_address,
                user_agent=user_agent,
            )
        except SQLAlchemyError:
            self.store.db.rollback()
            logger.exception(
                "audit_log_failed action=%s entity_type=%s entity_id=%s", action.value, entity_type, entity_id
            )

    def activity(
        self,
        user_id: uuid.UUID,
        action: str,
        description: str,
        property_id: Optional[uuid.UUID] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[uuid.UUID | str] = None,
    ) -> None:
        try:
            self.store.record_activity(
                user_id=user_id,
                action=action,
                description=description,
                property_id=property_id,
                entity_type=entity_type,
                entity_id=entity_id,
            )
        except SQLAlchemyError:
            self.store.db.rollback()
            logger.exception("activity_log_failed action=%s entity_type=%s", action, entity_type)
