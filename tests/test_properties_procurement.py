from __future__ import annotations

import uuid
from decimal import Decimal


def test_property_crud(client, project, auth_context):
    assert project["status"] == "planning"
    assert Decimal(project["total_budget"]) == Decimal("485000")

    listed = client.get("/properties", params={"pm_id": auth_context["user_id"]}).json()
    assert [row["id"] for row in listed] == [project["id"]]
    assert client.get("/properties", params={"pm_id": str(uuid.uuid4())}).json() == []

    updated = client.patch(f"/properties/{project['id']}", json={"progress": 40, "status": "active"})
    assert updated.status_code == 200
    assert updated.json()["progress"] == 40
    assert updated.json()["status"] == "active"

    assert client.patch(f"/properties/{project['id']}", json={"progress": 140}).status_code == 422

    deleted = client.delete(f"/properties/{project['id']}")
    assert deleted.json() == {"status": "deleted", "id": project["id"]}
    assert client.get(f"/properties/{project['id']}").json() == {"detail": "Property not found"}


def test_project_members(client, project, make_user):
    teammate = make_user("crew@example.com")
    url = f"/properties/{project['id']}/members"

    added = client.post(url, json={"user_id": teammate["user_id"], "role": "vendor"})
    assert added.status_code == 201
    # re-adding updates the role instead of duplicating the membership
    client.post(url, json={"user_id": teammate["user_id"], "role": "member"})
    members = client.get(url).json()
    assert [(row["user_id"], row["role"]) for row in members] == [(teammate["user_id"], "member")]

    assert client.post(url, json={"user_id": str(uuid.uuid4())}).status_code == 404

    removed = client.delete(f"{url}/{teammate['user_id']}")
    assert removed.json() == {"status": "deleted"}
    assert client.delete(f"{url}/{teammate['user_id']}").status_code == 404


def test_milestone_completion_is_logged_once(client, project):
    created = client.post(
        f"/properties/{project['id']}/milestones",
        json={"name": "Framing inspection", "target_date": "2024-11-01T00:00:00Z", "order": 2},
    )
    assert created.status_code == 201
    milestone_id = created.json()["id"]

    client.patch(f"/milestones/{milestone_id}", json={"status": "complete"})
    client.patch(f"/milestones/{milestone_id}", json={"status": "complete", "description": "Passed"})

    activity = client.get("/activities", params={"property_id": project["id"]}).json()
    completed = [row for row in activity if row["action"] == "milestone_completed"]
    assert len(completed) == 1
    assert completed[0]["description"] == "Completed milestone: Framing inspection"


def test_rfq_invitations_and_award(client, project, auth_context):
    vendor = client.post("/vendors", json={"name": "Sparks Electric", "trades": ["electrical"], "rating": "4.5"})
    assert vendor.status_code == 201
    vendor_id = vendor.json()["id"]

    rfq = client.post(
        "/rfqs",
        json={
            "property_id": project["id"],
            "title": "Electrical rough-in",
            "scope": "electrical",
            "description": "Rough-in for both units",
            "bid_due_date": "2024-12-01T17:00:00Z",
        },
    )
    assert rfq.status_code == 201
    assert rfq.json()["created_by"] == auth_context["user_id"]
    assert rfq.json()["vendor_ids"] == []
    rfq_id = rfq.json()["id"]

    invited = client.put(f"/rfqs/{rfq_id}/vendors/{vendor_id}")
    assert invited.json()["vendor_ids"] == [vendor_id]
    duplicate = client.put(f"/rfqs/{rfq_id}/vendors/{vendor_id}")
    assert duplicate.status_code == 409
    assert duplicate.json() == {"detail": "Vendor already invited"}

    bid = client.post(f"/rfqs/{rfq_id}/bids", json={"vendor_id": vendor_id, "base_bid": "18250.00"})
    assert bid.status_code == 201
    assert bid.json()["status"] == "submitted"

    awarded = client.post(f"/bids/{bid.json()['id']}/award")
    assert awarded.json()["status"] == "awarded"
    assert awarded.json()["awarded_at"] is not None

    logs = client.get("/audit-logs", params={"entity_type": "bid"}).json()
    assert {log["action"] for log in logs} == {"create", "approve"}

    uninvited = client.delete(f"/rfqs/{rfq_id}/vendors/{vendor_id}")
    assert uninvited.json()["vendor_ids"] == []
    assert client.delete(f"/rfqs/{rfq_id}/vendors/{vendor_id}").status_code == 404

    activity = client.get("/activities", params={"property_id": project["id"]}).json()
    assert any(row["action"] == "rfq_created" for row in activity)


def test_rfq_for_unknown_property(client, auth_context):
    response = client.post(
        "/rfqs",
        json={
            "property_id": str(uuid.uuid4()),
            "title": "Roofing",
            "scope": "roofing",
            "description": "Tear-off",
            "bid_due_date": "2024-12-01T17:00:00Z",
        },
    )
    assert response.status_code == 404


def test_dashboard_stats(client, project):
    client.post(
        "/properties",
        json={"name": "Oak Annex", "address": "7 Oak Ave", "type": "commercial", "total_budget": "1250000", "schedule_adherence": 81},
    )
    client.post(f"/properties/{project['id']}/permits", json={"type": "building", "status": "submitted"})
    client.post(f"/properties/{project['id']}/permits", json={"type": "electrical", "status": "under_review"})
    client.post(f"/properties/{project['id']}/permits", json={"type": "plumbing", "status": "approved"})

    stats = client.get("/dashboard/stats").json()
    assert stats == {
        "active_projects": 2,
        "total_budget": 1.735,
        "spent_budget": 0,
        "avg_schedule_adherence": 91,
        "pending_permits": 2,
    }
