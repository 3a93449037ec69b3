from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from fastapi import Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from ..config import settings
from ..errors import Unauthorized
from ..models import User, UserSession
from ..services.auth import AuthError, AuthService, IssuedSession
from .db import get_db


@dataclass
class AuthContext:
    user: User
    session: UserSession


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return None


def _client_meta(request: Request) -> tuple[Optional[str], Optional[str]]:
    return request.headers.get("user-agent"), request.client.host if request.client else None


def require_auth(request: Request, response: Response, db: Session = Depends(get_db)) -> AuthContext:
    """Resolve the caller from a bearer token or the session cookie.

    An expired session cookie is rotated silently when a valid refresh cookie
    accompanies it; the new cookies ride on the response.
    """
    service = AuthService(db)
    raw_token = _bearer_token(request) or request.cookies.get(settings.cookie_name)
    row = service.session_from_token(raw_token or "")

    if row is None:
        raw_refresh = request.cookies.get(settings.refresh_cookie_name)
        if not raw_refresh:
            raise Unauthorized()
        user_agent, ip_address = _client_meta(request)
        try:
            user, issued = service.refresh_session(raw_refresh, user_agent=user_agent, ip_address=ip_address)
        except AuthError as exc:
            clear_session_cookies(response)
            raise Unauthorized() from exc
        attach_session_cookies(response, issued)
        row = (issued.session, user)

    session, user = row
    request.state.user_id = str(user.id)
    return AuthContext(user=user, session=session)


def issue_magic_link(request: Request, db: Session, email: str, redirect_path: str | None = None) -> str:
    user_agent, ip_address = _client_meta(request)
    try:
        return AuthService(db).request_magic_link(
            email=email,
            request_ip=ip_address,
            user_agent=user_agent,
            redirect_path=redirect_path,
        )
    except AuthError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


def finalize_login(request: Request, response: Response, signed_token: str, db: Session) -> tuple[AuthContext, str]:
    user_agent, ip_address = _client_meta(request)
    try:
        user, issued, redirect_path = AuthService(db).redeem_magic_link(
            signed_token, user_agent=user_agent, ip_address=ip_address
        )
    except AuthError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    attach_session_cookies(response, issued)
    return AuthContext(user=user, session=issued.session), redirect_path


def rotate_session(request: Request, response: Response, raw_refresh: Optional[str], db: Session) -> AuthContext:
    user_agent, ip_address = _client_meta(request)
    try:
        user, issued = AuthService(db).refresh_session(raw_refresh or "", user_agent=user_agent, ip_address=ip_address)
    except AuthError as exc:
        clear_session_cookies(response)
        raise Unauthorized(str(exc)) from exc
    attach_session_cookies(response, issued)
    return AuthContext(user=user, session=issued.session)


def _set_cookie(response: Response, key: str, value: str, max_age: timedelta) -> None:
    response.set_cookie(
        key=key,
        value=value,
        httponly=True,
        secure=settings.environment == "production",
        samesite="lax",
        domain=settings.cookie_domain,
        path="/",
        max_age=int(max_age.total_seconds()),
    )


def attach_session_cookies(response: Response, issued: IssuedSession) -> None:
    _set_cookie(response, settings.cookie_name, issued.session_token, timedelta(hours=settings.session_ttl_hours))
    _set_cookie(response, settings.refresh_cookie_name, issued.refresh_token, timedelta(days=settings.refresh_ttl_days))


def clear_session_cookies(response: Response) -> None:
    for key in (settings.cookie_name, settings.refresh_cookie_name):
        response.delete_cookie(key=key, domain=settings.cookie_domain, path="/")
