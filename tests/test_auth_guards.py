from __future__ import annotations

import io

import pytest


@pytest.mark.integration
@pytest.mark.parametrize(
    "path",
    ["/documents", "/properties", "/vendors", "/discussions", "/activities", "/dashboard/stats", "/auth/me"],
)
def test_routes_require_auth(client, path):
    response = client.get(path)
    assert response.status_code == 401
    assert response.json()["detail"] == "Authentication required"


@pytest.mark.integration
def test_documents_upload_requires_auth(client):
    response = client.post(
        "/documents/upload",
        data={"type": "plan", "category": "design"},
        files={"file": ("sample.pdf", io.BytesIO(b"%PDF-1.4\n%%EOF"), "application/pdf")},
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "Authentication required"


@pytest.mark.integration
def test_unknown_bearer_token_is_rejected(client):
    response = client.get("/documents", headers={"Authorization": "Bearer not-a-session"})
    assert response.status_code == 401


@pytest.mark.integration
def test_public_share_route_needs_no_session(client):
    response = client.get("/shares/does-not-exist")
    assert response.status_code == 404
    assert response.json()["detail"] == "Share link not found"


@pytest.mark.integration
def test_bearer_token_authenticates(client, make_user):
    context = make_user("viewer@example.com")
    response = client.get("/auth/me", headers=context["headers"])
    assert response.status_code == 200
    assert response.json()["user"]["email"] == "viewer@example.com"
