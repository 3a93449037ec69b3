from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from ..config import settings
from ..dependencies.auth import (
    AuthContext,
    clear_session_cookies,
    finalize_login,
    issue_magic_link,
    require_auth,
    rotate_session,
)
from ..dependencies.db import get_db
from ..models import User
from ..services.auth import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


class MagicLinkRequest(BaseModel):
    email: EmailStr
    redirect_path: str | None = Field(default="/dashboard")


class RefreshRequest(BaseModel):
    refresh_token: Optional[str] = None


class SessionPayload(BaseModel):
    user: dict
    expires_at: str | None = None
    redirect_path: str | None = None


class UpdateProfileRequest(BaseModel):
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    profile_image_url: Optional[str] = None


def _serialize_user(user: User) -> dict:
    return {
        "id": str(user.id),
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "display_name": user.display_name,
        "profile_image_url": user.profile_image_url,
        "role": user.role.value if user.role else None,
        "last_login_at": user.last_login_at.isoformat() if user.last_login_at else None,
    }


def _session_payload(context: AuthContext, redirect_path: str | None = None) -> SessionPayload:
    expires_at = context.session.expires_at
    return SessionPayload(
        user=_serialize_user(context.user),
        expires_at=expires_at.isoformat() if expires_at else None,
        redirect_path=redirect_path,
    )


@router.post("/magic-link")
def send_magic_link(payload: MagicLinkRequest, request: Request, db: Session = Depends(get_db)) -> dict:
    issue_magic_link(request, db, payload.email, payload.redirect_path)
    return {"status": "sent"}


@router.get("/callback")
def magic_link_callback(
    token: str,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> SessionPayload:
    context, redirect_path = finalize_login(request, response, token, db)
    return _session_payload(context, redirect_path)


@router.post("/refresh")
def refresh_session(
    request: Request,
    response: Response,
    payload: RefreshRequest | None = None,
    db: Session = Depends(get_db),
) -> SessionPayload:
    raw_refresh = (payload.refresh_token if payload else None) or request.cookies.get(settings.refresh_cookie_name)
    return _session_payload(rotate_session(request, response, raw_refresh, db))


@router.get("/me")
def get_current_user(context: AuthContext = Depends(require_auth)) -> SessionPayload:
    return _session_payload(context)


@router.patch("/me")
def update_current_user(
    payload: UpdateProfileRequest,
    context: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
) -> SessionPayload:
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(context.user, key, value)
    db.add(context.user)
    db.commit()
    db.refresh(context.user)
    return _session_payload(context)


@router.post("/logout")
def logout_user(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> dict:
    raw_token = request.cookies.get(settings.cookie_name)
    if raw_token:
        AuthService(db).revoke_session(raw_token)
    clear_session_cookies(response)
    return {"status": "logged_out"}
