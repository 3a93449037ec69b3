from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from ..dependencies.auth import AuthContext, require_auth
from ..dependencies.services import get_audit, get_document_access, get_store
from ..errors import Conflict, Forbidden, NotFound, ValidationError
from ..models import AccessLevel, AuditAction, Discussion, ReactionType
from ..serializers import serialize_row, serialize_rows
from ..services.access import DocumentAccess
from ..services.audit import AuditRecorder
from ..services.store import Store
from .common import parse_uuid

router = APIRouter(prefix="/discussions", tags=["discussions"])


class DiscussionCreate(BaseModel):
    property_id: Optional[uuid.UUID] = None
    title: Optional[str] = None
    body: str = Field(min_length=1)
    visibility: AccessLevel = AccessLevel.PROJECT_TEAM
    is_pinned: bool = False


class DiscussionUpdate(BaseModel):
    title: Optional[str] = None
    body: Optional[str] = Field(default=None, min_length=1)
    visibility: Optional[AccessLevel] = None
    is_pinned: Optional[bool] = None
    is_locked: Optional[bool] = None


class DiscussionCommentCreate(BaseModel):
    body: str = Field(min_length=1)
    parent_comment_id: Optional[uuid.UUID] = None


class ReactionRequest(BaseModel):
    type: ReactionType = ReactionType.LIKE


def _serialize_discussion(store: Store, discussion: Discussion) -> dict:
    body = serialize_row(discussion)
    body["reactions"] = store.reaction_counts(discussion.id)
    return body


def _visible(discussion_id: str, store: Store, access: DocumentAccess) -> Discussion:
    discussion = store.discussions.get(parse_uuid(discussion_id, "discussion id"))
    return access.ensure_can_read_discussion(discussion)


def _authored(discussion_id: str, store: Store, access: DocumentAccess, user_id: uuid.UUID) -> Discussion:
    discussion = _visible(discussion_id, store, access)
    if discussion.author_id != user_id:
        raise Forbidden()
    return discussion


@router.get("")
def list_discussions(
    property_id: Optional[str] = None,
    store: Store = Depends(get_store),
    access: DocumentAccess = Depends(get_document_access),
):
    property_uuid = parse_uuid(property_id, "property id") if property_id else None
    rows = store.discussions.list(property_id=property_uuid)
    return [_serialize_discussion(store, row) for row in rows if access.can_read_discussion(row)]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_discussion(
    payload: DiscussionCreate,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    audit: AuditRecorder = Depends(get_audit),
):
    if payload.property_id is not None:
        store.properties.get(payload.property_id)
    discussion = store.discussions.create(author_id=context.user.id, **payload.model_dump())
    body = _serialize_discussion(store, discussion)
    audit.audit(context.user.id, AuditAction.CREATE, "discussion", discussion.id, new_values=body)
    if payload.property_id is not None:
        audit.activity(
            context.user.id,
            "discussion_started",
            f"Started a discussion: {payload.title or payload.body[:60]}",
            property_id=payload.property_id,
            entity_type="discussion",
            entity_id=body["id"],
        )
    return body


@router.get("/{discussion_id}")
def get_discussion(
    discussion_id: str,
    store: Store = Depends(get_store),
    access: DocumentAccess = Depends(get_document_access),
):
    discussion = _visible(discussion_id, store, access)
    body = _serialize_discussion(store, discussion)
    body["comments"] = serialize_rows(store.discussion_comments.list(discussion_id=discussion.id))
    return body


@router.patch("/{discussion_id}")
def update_discussion(
    discussion_id: str,
    payload: DiscussionUpdate,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    access: DocumentAccess = Depends(get_document_access),
    audit: AuditRecorder = Depends(get_audit),
):
    discussion = _authored(discussion_id, store, access, context.user.id)
    before = serialize_row(discussion)
    discussion = store.discussions.update(discussion.id, **payload.model_dump(exclude_unset=True))
    body = _serialize_discussion(store, discussion)
    audit.audit(context.user.id, AuditAction.UPDATE, "discussion", discussion.id, old_values=before, new_values=body)
    return body


@router.delete("/{discussion_id}")
def delete_discussion(
    discussion_id: str,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    access: DocumentAccess = Depends(get_document_access),
    audit: AuditRecorder = Depends(get_audit),
):
    discussion = _authored(discussion_id, store, access, context.user.id)
    before = serialize_row(discussion)
    discussion_uuid = discussion.id
    store.discussions.delete(discussion_uuid)
    audit.audit(context.user.id, AuditAction.DELETE, "discussion", discussion_uuid, old_values=before)
    return {"status": "deleted", "id": str(discussion_uuid)}


# --- comments ------------------------------------------------------------


@router.get("/{discussion_id}/comments")
def list_comments(
    discussion_id: str,
    store: Store = Depends(get_store),
    access: DocumentAccess = Depends(get_document_access),
):
    discussion = _visible(discussion_id, store, access)
    return serialize_rows(store.discussion_comments.list(discussion_id=discussion.id))


@router.post("/{discussion_id}/comments", status_code=status.HTTP_201_CREATED)
def add_comment(
    discussion_id: str,
    payload: DiscussionCommentCreate,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    access: DocumentAccess = Depends(get_document_access),
):
    discussion = _visible(discussion_id, store, access)
    if discussion.is_locked:
        raise Conflict("Discussion is locked")
    if payload.parent_comment_id is not None:
        parent = store.discussion_comments.find(payload.parent_comment_id)
        if parent is None or parent.discussion_id != discussion.id:
            raise ValidationError("Parent comment must belong to the same discussion")
    comment = store.discussion_comments.create(
        discussion_id=discussion.id,
        user_id=context.user.id,
        body=payload.body.strip(),
        parent_comment_id=payload.parent_comment_id,
    )
    return serialize_row(comment)


# --- reactions -----------------------------------------------------------


@router.post("/{discussion_id}/reactions")
def add_reaction(
    discussion_id: str,
    payload: ReactionRequest,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    access: DocumentAccess = Depends(get_document_access),
):
    discussion = _visible(discussion_id, store, access)
    store.add_reaction(discussion.id, context.user.id, payload.type)
    return {"reactions": store.reaction_counts(discussion.id)}


@router.delete("/{discussion_id}/reactions/{reaction_type}")
def remove_reaction(
    discussion_id: str,
    reaction_type: ReactionType,
    context: AuthContext = Depends(require_auth),
    store: Store = Depends(get_store),
    access: DocumentAccess = Depends(get_document_access),
):
    discussion = _visible(discussion_id, store, access)
    if not store.remove_reaction(discussion.id, context.user.id, reaction_type):
        raise NotFound("Reaction not found")
    return {"reactions": store.reaction_counts(discussion.id)}
