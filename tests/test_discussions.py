from __future__ import annotations

import pytest


@pytest.fixture()
def discussion(client, project) -> dict:
    response = client.post(
        "/discussions",
        json={"property_id": project["id"], "title": "Window delivery", "body": "Windows slipped a week."},
    )
    assert response.status_code == 201
    return response.json()


def test_start_discussion_logs_activity(client, project, discussion):
    assert discussion["visibility"] == "project_team"
    assert discussion["reactions"] == {}

    activity = client.get("/activities", params={"property_id": project["id"]}).json()
    started = [row for row in activity if row["action"] == "discussion_started"]
    assert started[0]["description"] == "Started a discussion: Window delivery"


def test_discussion_for_unknown_property(client, auth_context):
    response = client.post(
        "/discussions", json={"property_id": "00000000-0000-0000-0000-000000000000", "body": "Hello"}
    )
    assert response.status_code == 404


def test_visibility_follows_project_membership(client, discussion, make_user):
    outsider = make_user("passerby@example.com")
    assert client.get(f"/discussions/{discussion['id']}", headers=outsider["headers"]).status_code == 403
    assert client.get("/discussions", headers=outsider["headers"]).json() == []

    public = client.post("/discussions", json={"body": "Street closure Friday", "visibility": "public"}).json()
    listed = client.get("/discussions", headers=outsider["headers"]).json()
    assert [row["id"] for row in listed] == [public["id"]]


def test_only_author_edits(client, project, discussion, make_user):
    teammate = make_user("framer@example.com")
    client.post(f"/properties/{project['id']}/members", json={"user_id": teammate["user_id"]})

    assert client.get(f"/discussions/{discussion['id']}", headers=teammate["headers"]).status_code == 200
    forbidden = client.patch(
        f"/discussions/{discussion['id']}", json={"is_pinned": True}, headers=teammate["headers"]
    )
    assert forbidden.status_code == 403
    assert client.delete(f"/discussions/{discussion['id']}", headers=teammate["headers"]).status_code == 403

    pinned = client.patch(f"/discussions/{discussion['id']}", json={"is_pinned": True})
    assert pinned.json()["is_pinned"] is True

    deleted = client.delete(f"/discussions/{discussion['id']}")
    assert deleted.json() == {"status": "deleted", "id": discussion["id"]}


def test_comments_and_locking(client, discussion):
    url = f"/discussions/{discussion['id']}/comments"
    first = client.post(url, json={"body": "  Supplier confirmed the new date.  "})
    assert first.status_code == 201
    assert first.json()["body"] == "Supplier confirmed the new date."

    reply = client.post(url, json={"body": "Thanks", "parent_comment_id": first.json()["id"]})
    assert reply.json()["parent_comment_id"] == first.json()["id"]

    other = client.post("/discussions", json={"body": "Unrelated"}).json()
    stray = client.post(
        f"/discussions/{other['id']}/comments",
        json={"body": "Wrong thread", "parent_comment_id": first.json()["id"]},
    )
    assert stray.status_code == 400

    detail = client.get(f"/discussions/{discussion['id']}").json()
    assert [comment["body"] for comment in detail["comments"]] == ["Supplier confirmed the new date.", "Thanks"]

    client.patch(f"/discussions/{discussion['id']}", json={"is_locked": True})
    locked = client.post(url, json={"body": "One more thing"})
    assert locked.status_code == 409
    assert locked.json() == {"detail": "Discussion is locked"}


def test_reactions_are_idempotent(client, discussion):
    url = f"/discussions/{discussion['id']}/reactions"
    client.post(url, json={"type": "like"})
    client.post(url, json={"type": "like"})
    counts = client.post(url, json={"type": "insight"}).json()
    assert counts == {"reactions": {"like": 1, "insight": 1}}

    removed = client.delete(f"{url}/like")
    assert removed.json() == {"reactions": {"insight": 1}}
    assert client.delete(f"{url}/like").status_code == 404
    assert client.delete(f"{url}/shrug").status_code == 422
