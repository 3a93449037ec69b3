from __future__ import annotations

import hashlib
import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..config import settings
from ..models import LoginToken, User, UserSession
from .email import EmailClient, EmailMessage, get_email_client

logger = logging.getLogger(__name__)


class AuthError(Exception):
    pass


@dataclass
class IssuedSession:
    session: UserSession
    session_token: str
    refresh_token: str


class AuthService:
    def __init__(self, db: Session, email_client: Optional[EmailClient] = None) -> None:
        self.db = db
        self.serializer = URLSafeTimedSerializer(settings.magic_link_secret, salt="magic-link")
        self._email_client = email_client

    @property
    def email_client(self) -> EmailClient:
        if self._email_client is None:
            self._email_client = get_email_client()
        return self._email_client

    # --- Magic link flow -------------------------------------------------
    def request_magic_link(
        self,
        email: str,
        request_ip: Optional[str] = None,
        user_agent: Optional[str] = None,
        redirect_path: Optional[str] = None,
    ) -> str:
        normalized_email = email.strip().lower()
        if not normalized_email:
            raise AuthError("Email required")

        user = self.get_or_create_user(normalized_email)
        if not user.is_active:
            raise AuthError("Account disabled")

        raw_token = secrets.token_urlsafe(32)
        login_token = LoginToken(
            user_id=user.id,
            token_hash=self.hash_token(raw_token),
            email=normalized_email,
            purpose="login",
            requested_ip=request_ip,
            expires_at=datetime.now(timezone.utc) + timedelta(minutes=settings.magic_link_expiry_minutes),
        )
        self.db.add(login_token)
        self.db.flush()

        signed_token = self.serializer.dumps(
            {
                "token": raw_token,
                "user_id": str(user.id),
                "login_token_id": str(login_token.id),
                "redirect": redirect_path or "/dashboard",
            }
        )

        magic_link = f"{settings.app_url}/auth/callback?token={signed_token}"
        text_body = (
            "Your BuildTrack login link is ready.\n\n"
            f"Click to sign in: {magic_link}\n\n"
            "This link expires in "
            f"{settings.magic_link_expiry_minutes} minutes. If you did not request it, you can ignore this message."
        )

        try:
            self.email_client.send(
                EmailMessage(to=normalized_email, subject="Your BuildTrack login link", text_body=text_body)
            )
        except Exception as exc:
            self.db.rollback()
            logger.error("magic_link_send_failed email=%s error=%s", normalized_email, exc)
            raise AuthError("Could not send magic link") from exc

        self.db.commit()
        logger.info(
            "magic_link_issued user_id=%s request_ip=%s user_agent=%s",
            user.id,
            request_ip,
            user_agent,
        )
        return magic_link

    def redeem_magic_link(
        self,
        signed_token: str,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> tuple[User, IssuedSession, str]:
        try:
            payload = self.serializer.loads(signed_token, max_age=settings.magic_link_expiry_minutes * 60)
        except SignatureExpired as exc:
            raise AuthError("Magic link expired") from exc
        except BadSignature as exc:
            raise AuthError("Invalid login token") from exc

        try:
            user_id = uuid.UUID(payload["user_id"])
            login_token_id = uuid.UUID(payload["login_token_id"])
            raw_token = payload["token"]
        except (KeyError, TypeError, ValueError) as exc:
            raise AuthError("Invalid login token") from exc
        redirect_path = payload.get("redirect", "/dashboard")

        now = datetime.now(timezone.utc)
        login_token = (
            self.db.query(LoginToken)
            .filter(
                LoginToken.id == login_token_id,
                LoginToken.user_id == user_id,
                LoginToken.token_hash == self.hash_token(raw_token),
                LoginToken.consumed_at.is_(None),
                LoginToken.expires_at > now,
            )
            .one_or_none()
        )
        if not login_token:
            raise AuthError("Login token not found or already used")

        user = self.db.query(User).filter(User.id == user_id).one()
        if not user.is_active:
            raise AuthError("Account disabled")

        login_token.consumed_at = now
        user.last_login_at = now
        issued = self.issue_session(user, user_agent=user_agent, ip_address=ip_address)

        logger.info("user_login user_id=%s login_token_id=%s", user.id, login_token.id)
        return user, issued, redirect_path

    # --- Session flow ----------------------------------------------------
    def issue_session(
        self,
        user: User,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> IssuedSession:
        now = datetime.now(timezone.utc)
        session_token = secrets.token_urlsafe(32)
        refresh_token = secrets.token_urlsafe(48)
        session = UserSession(
            user_id=user.id,
            session_token_hash=self.hash_token(session_token),
            refresh_token_hash=self.hash_token(refresh_token),
            user_agent=user_agent,
            ip_address=ip_address,
            expires_at=now + timedelta(hours=settings.session_ttl_hours),
            refresh_expires_at=now + timedelta(days=settings.refresh_ttl_days),
        )
        self.db.add(session)
        self.db.commit()
        self.db.refresh(session)
        return IssuedSession(session=session, session_token=session_token, refresh_token=refresh_token)

    def session_from_token(self, raw_token: str) -> Optional[tuple[UserSession, User]]:
        if not raw_token:
            return None
        now = datetime.now(timezone.utc)
        return (
            self.db.query(UserSession, User)
            .join(User, User.id == UserSession.user_id)
            .filter(
                UserSession.session_token_hash == self.hash_token(raw_token),
                UserSession.revoked_at.is_(None),
                UserSession.expires_at > now,
                User.is_active.is_(True),
            )
            .one_or_none()
        )

    def refresh_session(
        self,
        raw_refresh_token: str,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> tuple[User, IssuedSession]:
        """Rotate a session: the presented refresh credential is spent and a new pair is issued."""
        if not raw_refresh_token:
            raise AuthError("Refresh token required")
        now = datetime.now(timezone.utc)
        row = (
            self.db.query(UserSession, User)
            .join(User, User.id == UserSession.user_id)
            .filter(
                UserSession.refresh_token_hash == self.hash_token(raw_refresh_token),
                UserSession.revoked_at.is_(None),
                UserSession.refresh_expires_at > now,
                User.is_active.is_(True),
            )
            .one_or_none()
        )
        if not row:
            raise AuthError("Refresh token invalid or expired")

        old_session, user = row
        old_session.revoked_at = now
        issued = self.issue_session(
            user,
            user_agent=user_agent or old_session.user_agent,
            ip_address=ip_address or old_session.ip_address,
        )
        logger.info("session_refreshed user_id=%s old_session_id=%s new_session_id=%s", user.id, old_session.id, issued.session.id)
        return user, issued

    def revoke_session(self, raw_token: str) -> None:
        hashed = self.hash_token(raw_token)
        updated = (
            self.db.query(UserSession)
            .filter(UserSession.session_token_hash == hashed, UserSession.revoked_at.is_(None))
            .update({"revoked_at": datetime.now(timezone.utc)}, synchronize_session=False)
        )
        if updated:
            logger.info("session_revoked hash=%s", hashed[:8])
        self.db.commit()

    # --- Helpers ---------------------------------------------------------
    @staticmethod
    def hash_token(value: str) -> str:
        return hashlib.sha256(value.encode("utf-8")).hexdigest()

    def get_or_create_user(self, email: str) -> User:
        user = self.db.query(User).filter(func.lower(User.email) == email.lower()).one_or_none()
        if user:
            return user

        user = User(email=email)
        self.db.add(user)
        self.db.flush()
        logger.info("user_created user_id=%s", user.id)
        return user
