from __future__ import annotations

from types import SimpleNamespace

import pytest

from buildtrack.dependencies.services import get_permit_lookup
from buildtrack.main import app
from buildtrack.services.permit_lookup import (
    DEFAULT_NOTES,
    FALLBACK_AUTHORITY,
    FALLBACK_PERMIT_NAME,
    PermitLookupService,
    PermitRecord,
)


class FakeCompletions:
    def __init__(self, result=None, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[dict] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.result


def _service(result=None, error=None) -> tuple[PermitLookupService, FakeCompletions]:
    completions = FakeCompletions(result, error)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return PermitLookupService(client=client, model="test-model"), completions


def test_lookup_returns_validated_records():
    service, completions = _service(
        [
            PermitRecord(
                permit_name="Residential Remodel Permit",
                issuing_authority="Austin Development Services",
                form_url="https://example.gov/remodel",
                fee="$350",
            ),
            PermitRecord(permit_name="Electrical Permit", issuing_authority="Austin Development Services"),
        ]
    )
    records = service.lookup("412 Maple St, Austin TX", "Kitchen remodel with new circuits")

    assert [record.permit_name for record in records] == ["Residential Remodel Permit", "Electrical Permit"]
    assert records[0].fee == "$350"
    assert records[1].form_url == ""
    assert records[1].notes == DEFAULT_NOTES

    call = completions.calls[0]
    assert call["model"] == "test-model"
    assert call["response_model"] == list[PermitRecord]
    assert "412 Maple St, Austin TX" in call["messages"][1]["content"]


@pytest.mark.parametrize(
    "result",
    [
        [],
        [PermitRecord(permit_name="Building Permit", issuing_authority=None)],
        [PermitRecord(permit_name="", issuing_authority="City")],
    ],
)
def test_unusable_answers_fall_back(result):
    service, _ = _service(result)
    records = service.lookup("1 Main St", "Deck")
    assert len(records) == 1
    assert records[0].permit_name == FALLBACK_PERMIT_NAME
    assert records[0].issuing_authority == FALLBACK_AUTHORITY
    assert records[0].notes.startswith("AI lookup failed.")
    assert "Address: 1 Main St, Work: Deck" in records[0].notes


def test_upstream_error_falls_back():
    service, _ = _service(error=RuntimeError("connection reset"))
    records = service.lookup("1 Main St", "Deck")
    assert records[0].permit_name == FALLBACK_PERMIT_NAME
    assert records[0].notes.startswith("AI service unavailable.")


@pytest.fixture()
def fake_lookup():
    service, completions = _service(
        [PermitRecord(permit_name="Fence Permit", issuing_authority="Travis County", notes="Max 8ft")]
    )
    app.dependency_overrides[get_permit_lookup] = lambda: service
    try:
        yield completions
    finally:
        app.dependency_overrides.pop(get_permit_lookup, None)


def test_lookup_route(client, auth_context, fake_lookup):
    response = client.post(
        "/permits/lookup", json={"project_address": " 9 Ranch Rd ", "scope_of_work": "New fence"}
    )
    assert response.status_code == 200
    assert response.json() == {
        "permits": [
            {
                "permit_name": "Fence Permit",
                "issuing_authority": "Travis County",
                "form_url": "",
                "fee": None,
                "processing_time": None,
                "notes": "Max 8ft",
            }
        ]
    }
    assert "Project Address: 9 Ranch Rd\n" in fake_lookup.calls[0]["messages"][1]["content"]


@pytest.mark.parametrize(
    "payload",
    [
        {"project_address": "   ", "scope_of_work": "Fence"},
        {"project_address": "9 Ranch Rd", "scope_of_work": ""},
        {"project_address": "9 Ranch Rd"},
    ],
)
def test_lookup_route_rejects_blank_input(client, auth_context, fake_lookup, payload):
    assert client.post("/permits/lookup", json=payload).status_code == 422
    assert fake_lookup.calls == []


def test_lookup_route_requires_auth(client):
    client.cookies.clear()
    response = client.post("/permits/lookup", json={"project_address": "9 Ranch Rd", "scope_of_work": "Fence"})
    assert response.status_code == 401
