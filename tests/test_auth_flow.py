from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

import pytest

from buildtrack.config import settings
from buildtrack.db.session import SessionFactory
from buildtrack.models import LoginToken, UserSession
from buildtrack.services import auth as auth_service
from buildtrack.services.auth import AuthService
from buildtrack.services.email import ConsoleEmailClient


@pytest.fixture()
def outbox(monkeypatch) -> ConsoleEmailClient:
    email_client = ConsoleEmailClient()
    monkeypatch.setattr(auth_service, "get_email_client", lambda: email_client)
    return email_client


@pytest.fixture(autouse=True)
def clear_cookies(client):
    client.cookies.clear()
    yield
    client.cookies.clear()


def _signed_token(message) -> str:
    match = re.search(r"token=(\S+)", message.text_body)
    assert match is not None
    return match.group(1)


def test_magic_link_login_refresh_and_logout(client, outbox):
    response = client.post("/auth/magic-link", json={"email": "Owner@Example.com", "redirect_path": "/projects"})
    assert response.status_code == 200
    assert response.json() == {"status": "sent"}
    assert len(outbox.outbox) == 1
    message = outbox.outbox[0]
    assert message.to == "owner@example.com"
    assert message.subject == "Your BuildTrack login link"

    signed = _signed_token(message)
    callback = client.get(f"/auth/callback?token={signed}")
    assert callback.status_code == 200
    payload = callback.json()
    assert payload["user"]["email"] == "owner@example.com"
    assert payload["redirect_path"] == "/projects"
    assert settings.cookie_name in client.cookies
    assert settings.refresh_cookie_name in client.cookies

    me = client.get("/auth/me")
    assert me.status_code == 200
    assert me.json()["user"]["id"] == payload["user"]["id"]

    # the magic link is single use
    replay = client.get(f"/auth/callback?token={signed}")
    assert replay.status_code == 400

    old_session_token = callback.cookies.get(settings.cookie_name)
    refreshed = client.post("/auth/refresh")
    assert refreshed.status_code == 200
    assert refreshed.cookies.get(settings.cookie_name) not in (None, old_session_token)

    with SessionFactory() as session:
        rows = session.query(UserSession).all()
        assert len(rows) == 2
        assert sum(1 for row in rows if row.revoked_at is not None) == 1

    logout = client.post("/auth/logout")
    assert logout.status_code == 200
    assert client.get("/auth/me").status_code == 401


def test_callback_rejects_tampered_token(client):
    response = client.get("/auth/callback?token=not-a-signed-token")
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid login token"


def test_callback_rejects_expired_login_token(client):
    with SessionFactory() as session:
        service = AuthService(session)
        user = service.get_or_create_user("late@example.com")
        raw_token = "expired-token"
        login_token = LoginToken(
            user_id=user.id,
            token_hash=AuthService.hash_token(raw_token),
            email=user.email,
            purpose="login",
            expires_at=datetime.now(timezone.utc) - timedelta(minutes=1),
        )
        session.add(login_token)
        session.commit()
        signed = service.serializer.dumps(
            {"token": raw_token, "user_id": str(user.id), "login_token_id": str(login_token.id)}
        )

    response = client.get(f"/auth/callback?token={signed}")
    assert response.status_code == 400
    assert response.json()["detail"] == "Login token not found or already used"


def test_expired_session_is_rotated_with_refresh_cookie(client, make_user):
    context = make_user("rotate@example.com")
    with SessionFactory() as session:
        row = session.query(UserSession).one()
        row.expires_at = datetime.now(timezone.utc) - timedelta(minutes=5)
        session.commit()

    client.cookies.set(settings.cookie_name, context["token"])
    client.cookies.set(settings.refresh_cookie_name, context["refresh_token"])
    response = client.get("/auth/me")
    assert response.status_code == 200
    assert response.json()["user"]["email"] == "rotate@example.com"
    assert response.cookies.get(settings.cookie_name) not in (None, context["token"])


def test_expired_session_without_refresh_fails_closed(client, make_user):
    context = make_user("stale@example.com")
    with SessionFactory() as session:
        row = session.query(UserSession).one()
        row.expires_at = datetime.now(timezone.utc) - timedelta(minutes=5)
        session.commit()

    client.cookies.set(settings.cookie_name, context["token"])
    response = client.get("/auth/me")
    assert response.status_code == 401


def test_refresh_token_cannot_be_reused(client, make_user):
    context = make_user("reuse@example.com")
    first = client.post("/auth/refresh", json={"refresh_token": context["refresh_token"]})
    assert first.status_code == 200
    client.cookies.clear()
    second = client.post("/auth/refresh", json={"refresh_token": context["refresh_token"]})
    assert second.status_code == 401


def test_update_profile(client, make_user):
    context = make_user("profile@example.com")
    response = client.patch("/auth/me", json={"first_name": "Ada", "last_name": "Lovelace"}, headers=context["headers"])
    assert response.status_code == 200
    assert response.json()["user"]["display_name"] == "Ada Lovelace"
