from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

from buildtrack.models import UserRole


def test_create_and_fetch_document(client, create_document):
    document = create_document()
    assert document["version"] == 1
    assert document["is_latest_version"] is True
    assert document["status"] == "draft"
    assert document["access_level"] == "project_team"
    assert document["download_path"] == f"/documents/{document['id']}/download"

    response = client.get(f"/documents/{document['id']}")
    assert response.status_code == 200
    assert response.json()["name"] == "Site plan"


def test_malformed_and_missing_ids(client, auth_context):
    assert client.get("/documents/not-a-uuid").json() == {"detail": "Invalid document id"}
    missing = client.get(f"/documents/{uuid.uuid4()}")
    assert missing.status_code == 404
    assert missing.json() == {"detail": "Document not found"}


def test_create_rejects_blank_fields(client, project):
    response = client.post(
        "/documents",
        json={"name": "", "type": "plan", "category": "design", "file_path": "x", "file_name": "x.pdf"},
    )
    assert response.status_code == 422


def test_outsider_cannot_read_team_document(client, create_document, make_user):
    document = create_document()
    public = create_document(name="Neighbour notice", access_level="public")
    outsider = make_user("outsider@example.com")

    denied = client.get(f"/documents/{document['id']}", headers=outsider["headers"])
    assert denied.status_code == 403
    assert denied.json() == {"detail": "Access denied"}

    listing = client.get("/documents", headers=outsider["headers"]).json()
    assert [item["id"] for item in listing["items"]] == [public["id"]]
    assert listing["pagination"]["total"] == 1


def test_user_share_grants_read(client, create_document, make_user):
    document = create_document(access_level="owners_only")
    outsider = make_user("guest@example.com")
    assert client.get(f"/documents/{document['id']}", headers=outsider["headers"]).status_code == 403

    share = client.post(f"/documents/{document['id']}/shares", json={"shared_with": outsider["user_id"]})
    assert share.status_code == 201
    assert share.json()["share_token"] is None
    assert "share_path" not in share.json()

    assert client.get(f"/documents/{document['id']}", headers=outsider["headers"]).status_code == 200


def test_user_share_is_limited_to_its_flags(client, create_document, make_user):
    document = create_document(access_level="owners_only")
    guest = make_user("guest@example.com")
    client.post(
        f"/documents/{document['id']}/shares",
        json={"shared_with": guest["user_id"], "can_download": False, "can_comment": False},
    )
    url = f"/documents/{document['id']}"
    headers = guest["headers"]

    assert client.get(url, headers=headers).status_code == 200
    assert client.get(f"{url}/comments", headers=headers).status_code == 200

    comment = client.post(f"{url}/comments", json={"comment": "Looks fine"}, headers=headers)
    assert comment.status_code == 403
    assert comment.json() == {"detail": "Share does not allow comments"}
    annotation = client.post(
        f"{url}/annotations", json={"type": "text", "content": "Here", "x": 1, "y": 2}, headers=headers
    )
    assert annotation.status_code == 403
    download = client.get(f"{url}/download", headers=headers)
    assert download.status_code == 403
    assert download.json() == {"detail": "Share does not allow downloads"}

    assert client.patch(url, json={"name": "Renamed"}, headers=headers).status_code == 403
    assert client.post(f"{url}/submit", headers=headers).status_code == 403
    assert client.post(f"{url}/approve", headers=headers).status_code == 403
    assert client.post(f"{url}/reject", json={"comments": "No"}, headers=headers).status_code == 403
    assert client.post(f"{url}/archive", json={"reason": "Old"}, headers=headers).status_code == 403
    version = client.post(
        f"{url}/versions", files={"file": ("v2.pdf", b"%PDF-1.4", "application/pdf")}, headers=headers
    )
    assert version.status_code == 403
    assert client.get(f"{url}/shares", headers=headers).status_code == 403
    assert client.post(f"{url}/shares", json={}, headers=headers).status_code == 403
    assert client.post(f"{url}/mobile-signing", headers=headers).status_code == 403
    assert client.delete(url, headers=headers).status_code == 403

    current = client.get(url).json()
    assert current["name"] == "Site plan"
    assert current["status"] == "draft"


def test_user_share_with_comment_flag(client, create_document, make_user):
    document = create_document(access_level="owners_only")
    guest = make_user("reviewer@example.com")
    share = client.post(
        f"/documents/{document['id']}/shares",
        json={"shared_with": guest["user_id"], "can_comment": True},
    ).json()
    url = f"/documents/{document['id']}"

    comment = client.post(f"{url}/comments", json={"comment": "Check the setback"}, headers=guest["headers"])
    assert comment.status_code == 201
    resolved = client.patch(
        f"{url}/comments/{comment.json()['id']}", json={"is_resolved": True}, headers=guest["headers"]
    )
    assert resolved.json()["is_resolved"] is True

    # recipients cannot revoke a share they did not create
    assert client.post(f"/shares/{share['id']}/revoke", headers=guest["headers"]).status_code == 403


def test_restricted_document_by_role(client, create_document, make_user):
    document = create_document(access_level="restricted", allowed_roles=["vendor"])
    vendor = make_user("sparky@example.com", UserRole.VENDOR)
    viewer = make_user("nosy@example.com")

    assert client.get(f"/documents/{document['id']}", headers=vendor["headers"]).status_code == 200
    assert client.get(f"/documents/{document['id']}", headers=viewer["headers"]).status_code == 403


def test_search_filters(client, create_document):
    create_document(name="Electrical riser diagram", category="electrical", tags=["mep", "riser"])
    create_document(name="Plumbing riser diagram", category="plumbing", tags=["mep"])
    create_document(name="Kitchen elevation", category="design", tags=["interiors"])

    by_text = client.get("/documents", params={"q": "riser"}).json()
    assert by_text["pagination"]["total"] == 2

    by_tags = client.get("/documents", params={"tags": "mep,riser"}).json()
    assert [item["name"] for item in by_tags["items"]] == ["Electrical riser diagram"]

    by_category = client.get("/documents", params={"category": "PLUMBING"}).json()
    assert [item["name"] for item in by_category["items"]] == ["Plumbing riser diagram"]

    paged = client.get("/documents", params={"limit": 2, "page": 2}).json()
    assert paged["pagination"] == {"page": 2, "limit": 2, "total": 3, "pages": 2}
    assert len(paged["items"]) == 1

    assert client.get("/documents", params={"limit": 500}).status_code == 422
    assert client.get("/documents", params={"status": "pending"}).status_code == 422


def test_update_metadata_is_audited(client, create_document):
    document = create_document()
    response = client.patch(
        f"/documents/{document['id']}", json={"name": "Site plan rev A", "tags": ["plans", "rev-a"]}
    )
    assert response.status_code == 200
    assert response.json()["name"] == "Site plan rev A"
    assert response.json()["version"] == 1

    logs = client.get("/audit-logs", params={"entity_type": "document", "entity_id": document["id"]}).json()
    update = next(log for log in logs if log["action"] == "update")
    assert update["old_values"]["name"] == "Site plan"
    assert update["new_values"]["tags"] == ["plans", "rev-a"]


def test_review_workflow(client, create_document, project):
    document = create_document()
    doc_id = document["id"]

    submitted = client.post(f"/documents/{doc_id}/submit")
    assert submitted.json()["status"] == "review"

    blank = client.post(f"/documents/{doc_id}/reject", json={"comments": "  "})
    assert blank.status_code == 400
    assert blank.json() == {"detail": "Rejection comments are required"}

    rejected = client.post(f"/documents/{doc_id}/reject", json={"comments": "Needs engineer stamp"})
    assert rejected.json()["status"] == "rejected"
    assert rejected.json()["review_comments"] == "Needs engineer stamp"

    approved = client.post(f"/documents/{doc_id}/approve")
    assert approved.status_code == 200
    assert approved.json()["status"] == "approved"
    assert approved.json()["approved_at"] is not None

    activity = client.get("/activities", params={"property_id": project["id"]}).json()
    actions = {row["action"] for row in activity}
    assert {"document_uploaded", "document_submitted", "document_rejected", "document_approved"} <= actions


def test_archive_requires_reason_once(client, create_document):
    doc_id = create_document()["id"]
    assert client.post(f"/documents/{doc_id}/archive", json={}).status_code == 422
    assert client.post(f"/documents/{doc_id}/archive", json={"reason": " "}).status_code == 400

    archived = client.post(f"/documents/{doc_id}/archive", json={"reason": "Superseded"})
    assert archived.status_code == 200
    assert archived.json()["is_archived"] is True
    assert archived.json()["status"] == "draft"

    again = client.post(f"/documents/{doc_id}/archive", json={"reason": "Superseded"})
    assert again.status_code == 409

    assert client.get("/documents").json()["pagination"]["total"] == 0
    assert client.get("/documents", params={"include_archived": True}).json()["pagination"]["total"] == 1


def test_delete_document(client, create_document):
    doc_id = create_document()["id"]
    response = client.delete(f"/documents/{doc_id}")
    assert response.json() == {"status": "deleted", "id": doc_id}
    assert client.get(f"/documents/{doc_id}").status_code == 404


def test_threaded_comments(client, create_document):
    doc_id = create_document()["id"]
    other_id = create_document(name="Other")["id"]

    top = client.post(f"/documents/{doc_id}/comments", json={"comment": "Check the setbacks"})
    assert top.status_code == 201
    reply = client.post(
        f"/documents/{doc_id}/comments",
        json={"comment": "Setbacks confirmed", "parent_comment_id": top.json()["id"]},
    )
    assert reply.status_code == 201

    stray = client.post(
        f"/documents/{other_id}/comments",
        json={"comment": "Wrong thread", "parent_comment_id": top.json()["id"]},
    )
    assert stray.status_code == 400

    flat = client.get(f"/documents/{doc_id}/comments").json()
    assert len(flat) == 2

    tree = client.get(f"/documents/{doc_id}/comments", params={"threaded": True}).json()
    assert len(tree) == 1
    assert tree[0]["comment"] == "Check the setbacks"
    assert [item["comment"] for item in tree[0]["replies"]] == ["Setbacks confirmed"]

    resolved = client.patch(f"/documents/{doc_id}/comments/{top.json()['id']}", json={"is_resolved": True})
    assert resolved.json()["is_resolved"] is True


def test_annotations_are_removed_by_author_only(client, create_document, make_user, auth_context, project):
    doc_id = create_document()["id"]
    teammate = make_user("teammate@example.com")
    added = client.post(
        f"/properties/{project['id']}/members", json={"user_id": teammate["user_id"], "role": "member"}
    )
    assert added.status_code == 201

    annotation = client.post(
        f"/documents/{doc_id}/annotations",
        json={"type": "stamp", "content": "APPROVED", "x": 120.5, "y": 80, "page_number": 2, "stamp_type": "approved"},
    )
    assert annotation.status_code == 201
    assert annotation.json()["position_x"] == 120.5
    annotation_id = annotation.json()["id"]

    listed = client.get(f"/documents/{doc_id}/annotations", headers=teammate["headers"])
    assert len(listed.json()) == 1

    foreign = client.delete(f"/documents/{doc_id}/annotations/{annotation_id}", headers=teammate["headers"])
    assert foreign.status_code == 404

    own = client.delete(f"/documents/{doc_id}/annotations/{annotation_id}")
    assert own.json() == {"status": "deleted", "id": annotation_id}
    assert client.get(f"/documents/{doc_id}/annotations").json() == []


def test_public_share_link(client, create_document, mock_s3_bucket):
    doc_id = create_document()["id"]
    created = client.post(f"/documents/{doc_id}/shares", json={"can_comment": True})
    assert created.status_code == 201
    token = created.json()["share_token"]
    assert created.json()["share_path"] == f"/shares/{token}"

    first = client.get(f"/shares/{token}")
    assert first.status_code == 200
    body = first.json()
    assert body["document"]["id"] == doc_id
    assert body["can_comment"] is True
    assert body["access_count"] == 1
    assert "test-storage-bucket" in body["download_url"]

    assert client.get(f"/shares/{token}").json()["access_count"] == 2

    revoked = client.post(f"/shares/{created.json()['id']}/revoke")
    assert revoked.json()["is_active"] is False
    assert client.get(f"/shares/{token}").status_code == 404


def test_share_without_download(client, create_document):
    doc_id = create_document()["id"]
    token = client.post(f"/documents/{doc_id}/shares", json={"can_download": False}).json()["share_token"]
    body = client.get(f"/shares/{token}").json()
    assert body["can_download"] is False
    assert body["download_url"] is None


def test_share_expiry_must_be_in_future(client, create_document):
    doc_id = create_document()["id"]
    past = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
    response = client.post(f"/documents/{doc_id}/shares", json={"expires_at": past})
    assert response.status_code == 400


def test_mobile_signing_session(client, create_document, make_user):
    doc_id = create_document()["id"]
    started = client.post(f"/documents/{doc_id}/mobile-signing")
    assert started.status_code == 201
    session = started.json()
    assert session["signing_url"].endswith(f"/mobile-sign/{session['id']}")

    assert client.get(f"/signing-sessions/{session['id']}").status_code == 200

    stranger = make_user("stranger@example.com")
    assert client.get(f"/signing-sessions/{session['id']}", headers=stranger["headers"]).status_code == 404

    completed = client.post(f"/signing-sessions/{session['id']}/complete")
    assert completed.json()["completed_at"] is not None
