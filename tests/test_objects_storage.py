from __future__ import annotations

import base64
import hashlib

import pytest

BUCKET = "test-storage-bucket"
PDF_BYTES = b"%PDF-1.4 site plan sheet A1"


@pytest.fixture()
def uploaded(client, project, mock_s3_bucket) -> dict:
    response = client.post(
        "/documents/upload",
        data={
            "type": "plan",
            "category": "design",
            "property_id": project["id"],
            "tags": "plans, permit-set",
            "description": "Sheet A1",
        },
        files={"file": ("site plan.pdf", PDF_BYTES, "application/pdf")},
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_upload_stores_object_and_metadata(uploaded, auth_context, mock_s3_bucket):
    assert uploaded["name"] == "site_plan.pdf"
    assert uploaded["file_name"] == "site_plan.pdf"
    assert uploaded["file_size"] == len(PDF_BYTES)
    assert uploaded["mime_type"] == "application/pdf"
    assert uploaded["checksum"] == hashlib.sha256(PDF_BYTES).hexdigest()
    assert uploaded["tags"] == ["plans", "permit-set"]
    assert uploaded["file_path"].startswith(f"documents/{auth_context['user_id']}/")
    assert uploaded["file_path"].endswith(".pdf")

    stored = mock_s3_bucket.get_object(Bucket=BUCKET, Key=uploaded["file_path"])
    assert stored["Body"].read() == PDF_BYTES


def test_download_streams_file(client, uploaded):
    response = client.get(f"/documents/{uploaded['id']}/download")
    assert response.status_code == 200
    assert response.content == PDF_BYTES
    assert response.headers["content-type"] == "application/pdf"
    assert 'filename="site_plan.pdf"' in response.headers["content-disposition"]


def test_upload_rejects_empty_file(client, project, mock_s3_bucket):
    response = client.post(
        "/documents/upload",
        data={"type": "photo", "category": "progress"},
        files={"file": ("empty.jpg", b"", "image/jpeg")},
    )
    assert response.status_code == 400
    assert response.json() == {"detail": "Empty file"}


def test_upload_requires_type_and_category(client, project, mock_s3_bucket):
    response = client.post("/documents/upload", files={"file": ("a.pdf", PDF_BYTES, "application/pdf")})
    assert response.status_code == 422


def test_new_version_upload(client, uploaded, mock_s3_bucket):
    revised = b"%PDF-1.4 site plan sheet A1 rev B"
    response = client.post(
        f"/documents/{uploaded['id']}/versions",
        data={"version_notes": "Moved the driveway"},
        files={"file": ("site plan.pdf", revised, "application/pdf")},
    )
    assert response.status_code == 201, response.text
    version = response.json()
    assert version["version"] == 2
    assert version["parent_document_id"] == uploaded["id"]
    assert version["version_notes"] == "Moved the driveway"
    assert version["description"] == "Sheet A1"
    assert version["checksum"] == hashlib.sha256(revised).hexdigest()
    assert version["file_path"] != uploaded["file_path"]

    latest = client.get(f"/documents/{uploaded['id']}/latest").json()
    assert latest["id"] == version["id"]

    history = client.get(f"/documents/{version['id']}/versions").json()
    assert [row["version"] for row in history] == [2, 1]
    assert history[1]["is_latest_version"] is False

    download = client.get(f"/documents/{uploaded['id']}/download")
    assert download.content == PDF_BYTES


def test_object_upload_url(client, auth_context, mock_s3_bucket):
    response = client.post("/objects/upload")
    assert response.status_code == 200
    body = response.json()
    assert body["objectPath"].startswith("/objects/uploads/")
    assert BUCKET in body["uploadURL"]


def test_object_acl_and_read(client, auth_context, make_user, mock_s3_bucket):
    mock_s3_bucket.put_object(Bucket=BUCKET, Key="uploads/photo-1", Body=b"jpeg-bytes", ContentType="image/jpeg")

    # no policy yet: nobody may read
    assert client.get("/objects/uploads/photo-1").status_code == 403

    applied = client.put("/objects", json={"documentURL": f"s3://{BUCKET}/uploads/photo-1"})
    assert applied.json() == {"objectPath": "/objects/uploads/photo-1"}

    owner_read = client.get("/objects/uploads/photo-1")
    assert owner_read.status_code == 200
    assert owner_read.content == b"jpeg-bytes"

    other = make_user("other@example.com")
    assert client.get("/objects/uploads/photo-1", headers=other["headers"]).status_code == 403

    client.put("/objects", json={"documentURL": "/objects/uploads/photo-1", "visibility": "public"})
    assert client.get("/objects/uploads/photo-1", headers=other["headers"]).status_code == 200


def test_object_acl_leaves_foreign_urls_alone(client, auth_context, mock_s3_bucket):
    response = client.put("/objects", json={"documentURL": "https://example.com/logo.png"})
    assert response.json() == {"objectPath": "https://example.com/logo.png"}

    bad = client.put("/objects", json={"documentURL": "/objects/x", "visibility": "team"})
    assert bad.status_code == 422


def test_missing_object_is_404(client, auth_context, mock_s3_bucket):
    assert client.get("/objects/uploads/nothing-here").status_code == 404


def test_signatures(client, auth_context, mock_s3_bucket):
    image = base64.b64encode(b"\x89PNG signature").decode()
    saved = client.post("/signatures", json={"signature_data": f"data:image/png;base64,{image}"})
    assert saved.status_code == 201
    signature = saved.json()
    assert signature["storage_key"].startswith(f"signatures/{auth_context['user_id']}/")
    assert mock_s3_bucket.get_object(Bucket=BUCKET, Key=signature["storage_key"])["Body"].read() == b"\x89PNG signature"

    assert len(client.get("/signatures").json()) == 1

    invalid = client.post("/signatures", json={"signature_data": "data:image/png;base64,@@@"})
    assert invalid.status_code == 400

    deleted = client.delete(f"/signatures/{signature['id']}")
    assert deleted.json() == {"status": "deleted", "id": signature["id"]}
    assert client.get("/signatures").json() == []
