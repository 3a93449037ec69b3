from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from sqlalchemy.orm import Session

from ..errors import Forbidden
from ..models import AccessLevel, Discussion, Document, DocumentShare, ProjectMember, ProjectRole, Property, User
from ..models.base import as_utc

MANAGER_ROLES = frozenset({"pm", "owner"})
OWNER_ROLES = frozenset({"owner"})


@dataclass(frozen=True)
class AccessSubject:
    """Who is asking, as seen from one project."""

    user_id: uuid.UUID
    role: str
    project_role: Optional[str] = None
    is_project_member: bool = False

    @property
    def roles(self) -> frozenset[str]:
        return frozenset(role for role in (self.role, self.project_role) if role)


@dataclass(frozen=True)
class ShareGrant:
    can_download: bool = False
    can_comment: bool = False


Rule = Callable[[AccessSubject, frozenset, frozenset], bool]

ACCESS_RULES: dict[AccessLevel, Rule] = {
    AccessLevel.PUBLIC: lambda subject, users, roles: True,
    AccessLevel.PROJECT_TEAM: lambda subject, users, roles: subject.is_project_member,
    # manager and owner tiers only honour the role held on the document's project
    AccessLevel.PROJECT_MANAGERS: lambda subject, users, roles: subject.project_role in MANAGER_ROLES,
    AccessLevel.OWNERS_ONLY: lambda subject, users, roles: subject.project_role in OWNER_ROLES,
    AccessLevel.RESTRICTED: lambda subject, users, roles: (
        str(subject.user_id) in users or bool(subject.roles & roles)
    ),
}


def _value(item: object) -> str:
    return getattr(item, "value", None) or str(item)


def can_read(
    subject: AccessSubject,
    access_level: AccessLevel | str,
    allowed_users: Optional[Iterable[object]] = None,
    allowed_roles: Optional[Iterable[object]] = None,
) -> bool:
    try:
        level = AccessLevel(_value(access_level))
    except ValueError:
        return False
    users = frozenset(str(user) for user in (allowed_users or ()))
    roles = frozenset(_value(role) for role in (allowed_roles or ()))
    return ACCESS_RULES[level](subject, users, roles)


class DocumentAccess:
    """Per-request read checks for one user, caching project lookups."""

    def __init__(self, db: Session, user: User) -> None:
        self.db = db
        self.user = user
        self._subjects: dict[Optional[uuid.UUID], AccessSubject] = {}
        self._share_grants: Optional[dict[uuid.UUID, ShareGrant]] = None

    def subject_for(self, property_id: Optional[uuid.UUID]) -> AccessSubject:
        if property_id in self._subjects:
            return self._subjects[property_id]

        role = _value(self.user.role)
        project_role: Optional[str] = None
        is_member = False
        if property_id is not None:
            membership = (
                self.db.query(ProjectMember)
                .filter(ProjectMember.property_id == property_id, ProjectMember.user_id == self.user.id)
                .one_or_none()
            )
            if membership is not None:
                project_role = _value(membership.role)
                is_member = True
            prop = self.db.get(Property, property_id)
            if prop is not None:
                if prop.owner_id == self.user.id:
                    project_role, is_member = ProjectRole.OWNER.value, True
                elif prop.pm_id == self.user.id and project_role is None:
                    project_role, is_member = ProjectRole.PM.value, True

        subject = AccessSubject(
            user_id=self.user.id,
            role=role,
            project_role=project_role,
            is_project_member=is_member,
        )
        self._subjects[property_id] = subject
        return subject

    def share_grants(self) -> dict[uuid.UUID, ShareGrant]:
        """Active, unexpired shares addressed to this user, merged per document."""
        if self._share_grants is None:
            now = datetime.now(timezone.utc)
            shares = (
                self.db.query(DocumentShare)
                .filter(DocumentShare.shared_with == self.user.id, DocumentShare.is_active.is_(True))
                .all()
            )
            grants: dict[uuid.UUID, ShareGrant] = {}
            for share in shares:
                if share.expires_at is not None and as_utc(share.expires_at) <= now:
                    continue
                current = grants.get(share.document_id, ShareGrant())
                grants[share.document_id] = ShareGrant(
                    can_download=current.can_download or bool(share.can_download),
                    can_comment=current.can_comment or bool(share.can_comment),
                )
            self._share_grants = grants
        return self._share_grants

    def shared_document_ids(self) -> set[uuid.UUID]:
        return set(self.share_grants())

    def policy_allows(self, document: Document) -> bool:
        """Access through ownership or the document's own access level, ignoring shares."""
        if document.uploaded_by == self.user.id:
            return True
        subject = self.subject_for(document.property_id)
        return can_read(subject, document.access_level, document.allowed_users, document.allowed_roles)

    def can_read(self, document: Document) -> bool:
        return self.policy_allows(document) or document.id in self.share_grants()

    def ensure_can_read(self, document: Document) -> Document:
        if not self.can_read(document):
            raise Forbidden()
        return document

    def ensure_can_download(self, document: Document) -> Document:
        if self.policy_allows(document):
            return document
        grant = self.share_grants().get(document.id)
        if grant is None:
            raise Forbidden()
        if not grant.can_download:
            raise Forbidden("Share does not allow downloads")
        return document

    def ensure_can_comment(self, document: Document) -> Document:
        if self.policy_allows(document):
            return document
        grant = self.share_grants().get(document.id)
        if grant is None:
            raise Forbidden()
        if not grant.can_comment:
            raise Forbidden("Share does not allow comments")
        return document

    def ensure_can_manage(self, document: Document) -> Document:
        """Edits, workflow, versions, shares and deletion; a share alone never qualifies."""
        if not self.policy_allows(document):
            raise Forbidden()
        return document

    def can_read_discussion(self, discussion: Discussion) -> bool:
        if discussion.author_id == self.user.id:
            return True
        return can_read(self.subject_for(discussion.property_id), discussion.visibility)

    def ensure_can_read_discussion(self, discussion: Discussion) -> Discussion:
        if not self.can_read_discussion(discussion):
            raise Forbidden()
        return discussion

