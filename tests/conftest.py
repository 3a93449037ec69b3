from __future__ import annotations

import os
import pathlib
import sys
from typing import Callable, Iterator

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_REGION", "us-east-1")

import boto3
import pytest
from fastapi.testclient import TestClient

ROOT_DIR = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from buildtrack.config import settings
from buildtrack.db.session import SessionFactory, engine
from buildtrack.main import app
from buildtrack.models import UserRole
from buildtrack.models.base import Base
from buildtrack.services.auth import AuthService


@pytest.fixture(scope="session", autouse=True)
def database_schema() -> Iterator[None]:
    """Create every table once for the test session."""
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture(autouse=True)
def cleanup_database() -> Iterator[None]:
    """Empty every table after each test to keep isolation."""
    yield
    with SessionFactory() as session:
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()


@pytest.fixture(scope="session")
def client() -> Iterator[TestClient]:
    """Provide a FastAPI TestClient instance."""
    with TestClient(app) as _client:
        yield _client


@pytest.fixture()
def make_user() -> Callable[..., dict[str, str]]:
    """Create a user with a live session; returns its id, token and bearer headers."""

    def _make(email: str, role: UserRole = UserRole.VIEWER) -> dict[str, str]:
        with SessionFactory() as session:
            service = AuthService(session)
            user = service.get_or_create_user(email)
            user.role = role
            session.commit()
            issued = service.issue_session(user)
            return {
                "user_id": str(user.id),
                "token": issued.session_token,
                "refresh_token": issued.refresh_token,
                "headers": {"Authorization": f"Bearer {issued.session_token}"},
            }

    return _make


@pytest.fixture()
def auth_context(client: TestClient, make_user) -> Iterator[dict[str, str]]:
    """Create a project manager session and attach its cookie to the client."""
    context = make_user("pm@example.com", UserRole.PM)
    client.cookies.set(settings.cookie_name, context["token"])
    try:
        yield context
    finally:
        client.cookies.clear()


@pytest.fixture()
def mock_s3_bucket():
    from moto import mock_aws

    with mock_aws():
        s3 = boto3.client("s3", region_name=settings.aws.region)
        bucket = "test-storage-bucket"
        s3.create_bucket(Bucket=bucket)
        previous_bucket = settings.aws.s3_bucket
        settings.aws.s3_bucket = bucket
        try:
            yield s3
        finally:
            settings.aws.s3_bucket = previous_bucket


@pytest.fixture()
def db_session() -> Iterator:
    with SessionFactory() as session:
        yield session

@pytest.fixture()
def project(client, auth_context) -> dict:
    """A property managed by the authenticated PM."""
    response = client.post(
        "/properties",
        json={
            "name": "Maple Street Duplex",
            "address": "412 Maple St",
            "type": "residential",
            "total_budget": "485000.00",
            "pm_id": auth_context["user_id"],
        },
    )
    assert response.status_code == 201
    return response.json()


@pytest.fixture()
def create_document(client, project) -> Callable[..., dict]:
    """Create document metadata for a file already sitting in object storage."""

    def _create(headers: dict[str, str] | None = None, **overrides) -> dict:
        payload = {
            "name": "Site plan",
            "description": "Ground floor layout",
            "type": "plan",
            "category": "design",
            "property_id": project["id"],
            "tags": ["plans"],
            "file_path": "documents/seed/site-plan.pdf",
            "file_name": "site-plan.pdf",
            "mime_type": "application/pdf",
        }
        payload.update(overrides)
        response = client.post("/documents", json=payload, headers=headers or {})
        assert response.status_code == 201, response.text
        return response.json()

    return _create
