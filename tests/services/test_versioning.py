from __future__ import annotations

import uuid

import pytest

from buildtrack.config import get_settings
from buildtrack.errors import Conflict, NotFound, ValidationError
from buildtrack.models import DocumentStatus, User
from buildtrack.services.documents import DocumentSearch, DocumentService


@pytest.fixture()
def uploader(db_session) -> User:
    user = User(email="uploader@example.com")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture()
def service(db_session) -> DocumentService:
    return DocumentService(db_session)


def _root(service: DocumentService, uploader: User, **overrides):
    values = {
        "name": "Foundation plan",
        "description": "Rebar schedule and footing details",
        "type": "plan",
        "category": "structural",
        "tags": ["foundation", "permit-set"],
        "file_path": "documents/foundation-v1.pdf",
        "file_name": "foundation.pdf",
    }
    values.update(overrides)
    return service.create_document(values, uploaded_by=uploader.id)


def test_create_document_starts_a_chain(service, uploader):
    document = _root(service, uploader)
    assert document.version == 1
    assert document.parent_document_id is None
    assert document.is_latest_version is True
    assert document.status == DocumentStatus.DRAFT
    assert document.uploaded_by == uploader.id


def test_create_document_requires_file_fields(service, uploader):
    with pytest.raises(ValidationError):
        _root(service, uploader, file_path="")


def test_versions_attach_to_the_chain_root(service, uploader):
    root = _root(service, uploader)
    v2 = service.create_version(root.id, {"file_path": "documents/foundation-v2.pdf"}, uploader.id)
    # versioning from a non-root member still hangs off the root
    v3 = service.create_version(
        v2.id, {"file_path": "documents/foundation-v3.pdf", "version_notes": "Revised footings"}, uploader.id
    )

    assert (v2.version, v3.version) == (2, 3)
    assert v2.parent_document_id == root.id
    assert v3.parent_document_id == root.id
    assert v3.version_notes == "Revised footings"

    service.db.expire_all()
    assert service.get(root.id).is_latest_version is False
    assert service.get(v2.id).is_latest_version is False
    assert service.get(v3.id).is_latest_version is True


def test_new_version_inherits_and_overrides(service, uploader):
    root = _root(service, uploader)
    version = service.create_version(
        root.id,
        {"file_path": "documents/foundation-v2.pdf", "name": "Foundation plan (rev B)"},
        uploader.id,
    )
    assert version.name == "Foundation plan (rev B)"
    assert version.description == root.description
    assert version.category == "structural"
    assert version.tags == ["foundation", "permit-set"]
    assert version.file_name == "foundation.pdf"
    assert version.uploaded_by == uploader.id
    assert version.last_modified_by == uploader.id
    assert version.status == DocumentStatus.DRAFT


def test_new_version_requires_a_file(service, uploader):
    root = _root(service, uploader)
    with pytest.raises(ValidationError):
        service.create_version(root.id, {"version_notes": "no file"}, uploader.id)


def test_new_version_of_missing_document(service, uploader):
    with pytest.raises(NotFound):
        service.create_version(uuid.uuid4(), {"file_path": "documents/x.pdf"}, uploader.id)


def test_latest_version_resolves_from_any_member(service, uploader):
    root = _root(service, uploader)
    v2 = service.create_version(root.id, {"file_path": "documents/foundation-v2.pdf"}, uploader.id)
    v3 = service.create_version(root.id, {"file_path": "documents/foundation-v3.pdf"}, uploader.id)

    assert service.get_latest_version(root.id).id == v3.id
    assert service.get_latest_version(v2.id).id == v3.id
    assert service.get_latest_version(uuid.uuid4()) is None


def test_history_includes_root_newest_first(service, uploader):
    root = _root(service, uploader)
    service.create_version(root.id, {"file_path": "documents/foundation-v2.pdf"}, uploader.id)
    service.create_version(root.id, {"file_path": "documents/foundation-v3.pdf"}, uploader.id)

    history = service.get_version_history(root.id)
    assert [row.version for row in history] == [3, 2, 1]
    assert history[-1].id == root.id


def test_unrelated_chains_do_not_interfere(service, uploader):
    first = _root(service, uploader)
    second = _root(service, uploader, name="Electrical plan", file_path="documents/electrical.pdf")
    service.create_version(first.id, {"file_path": "documents/foundation-v2.pdf"}, uploader.id)

    service.db.expire_all()
    assert service.get(second.id).is_latest_version is True
    assert [row.version for row in service.get_version_history(second.id)] == [1]


# --- workflow ------------------------------------------------------------


def test_review_and_approval(service, uploader):
    document = _root(service, uploader)
    document = service.submit_for_review(document.id, uploader.id)
    assert document.status == DocumentStatus.REVIEW

    document = service.approve(document.id, uploader.id, "Looks good")
    assert document.status == DocumentStatus.APPROVED
    assert document.approved_by == uploader.id
    assert document.approved_at is not None
    assert document.review_comments == "Looks good"


def test_reject_requires_comments(service, uploader):
    document = _root(service, uploader)
    with pytest.raises(ValidationError):
        service.reject(document.id, uploader.id, "   ")

    document = service.reject(document.id, uploader.id, "Missing stamp")
    assert document.status == DocumentStatus.REJECTED
    assert document.reviewed_by == uploader.id
    assert document.reviewed_at is not None
    assert document.review_comments == "Missing stamp"


def test_archive_keeps_status(service, uploader):
    document = _root(service, uploader)
    service.submit_for_review(document.id, uploader.id)

    with pytest.raises(ValidationError):
        service.archive(document.id, "", uploader.id)

    archived = service.archive(document.id, "Superseded by new survey", uploader.id)
    assert archived.is_archived is True
    assert archived.archive_reason == "Superseded by new survey"
    assert archived.status == DocumentStatus.REVIEW

    with pytest.raises(Conflict):
        service.archive(document.id, "again", uploader.id)
    with pytest.raises(Conflict):
        service.submit_for_review(document.id, uploader.id)


def test_review_guard_is_configurable(db_session, uploader):
    guarded = get_settings().model_copy(update={"document_require_review_before_decision": True})
    service = DocumentService(db_session, settings=guarded)
    document = _root(service, uploader)

    with pytest.raises(Conflict):
        service.approve(document.id, uploader.id)

    service.submit_for_review(document.id, uploader.id)
    assert service.approve(document.id, uploader.id).status == DocumentStatus.APPROVED


def test_unguarded_decision_from_draft(service, uploader):
    document = _root(service, uploader)
    assert service.approve(document.id, uploader.id).status == DocumentStatus.APPROVED


# --- search --------------------------------------------------------------


def test_search_matches_name_or_description(service, uploader):
    _root(service, uploader)
    _root(service, uploader, name="Roof truss layout", description="Engineered trusses", file_path="documents/roof.pdf")

    by_name = service.search(DocumentSearch(query="FOUNDATION"))
    assert [doc.name for doc in by_name.items] == ["Foundation plan"]

    by_description = service.search(DocumentSearch(query="trusses"))
    assert [doc.name for doc in by_description.items] == ["Roof truss layout"]


def test_search_treats_wildcards_literally(service, uploader):
    _root(service, uploader, name="100% complete walkthrough")
    _root(service, uploader, name="Punch list", file_path="documents/punch.pdf")

    result = service.search(DocumentSearch(query="%"))
    assert [doc.name for doc in result.items] == ["100% complete walkthrough"]


def test_search_requires_every_tag(service, uploader):
    _root(service, uploader)
    _root(service, uploader, name="Framing plan", tags=["framing"], file_path="documents/framing.pdf")

    result = service.search(DocumentSearch(tags=["Foundation", "permit-set"]))
    assert result.total == 1
    assert result.items[0].name == "Foundation plan"

    assert service.search(DocumentSearch(tags=["foundation", "framing"])).total == 0


def test_search_hides_archived_and_old_versions(service, uploader):
    root = _root(service, uploader)
    service.create_version(root.id, {"file_path": "documents/foundation-v2.pdf"}, uploader.id)
    stale = _root(service, uploader, name="Old survey", file_path="documents/survey.pdf")
    service.archive(stale.id, "Replaced", uploader.id)

    result = service.search(DocumentSearch())
    assert result.total == 1
    assert result.items[0].version == 2

    everything = service.search(DocumentSearch(include_archived=True, all_versions=True))
    assert everything.total == 3


def test_search_filters_and_paginates(service, uploader):
    for index in range(5):
        _root(service, uploader, name=f"Daily report {index}", category="Reports", file_path=f"documents/r{index}.pdf")
    _root(service, uploader, name="Invoice", category="finance", file_path="documents/invoice.pdf")

    first_page = service.search(DocumentSearch(category="reports", page=1, limit=2))
    assert first_page.total == 5
    assert len(first_page.items) == 2

    last_page = service.search(DocumentSearch(category="reports", page=3, limit=2))
    assert len(last_page.items) == 1

    status_filtered = service.search(DocumentSearch(status=DocumentStatus.APPROVED))
    assert status_filtered.total == 0


def test_search_applies_read_filter_before_paging(service, uploader):
    for index in range(4):
        _root(service, uploader, name=f"Sheet {index}", file_path=f"documents/s{index}.pdf")

    visible = {"Sheet 1", "Sheet 3"}
    result = service.search(DocumentSearch(limit=1), readable=lambda doc: doc.name in visible)
    assert result.total == 2
    assert len(result.items) == 1
    assert result.items[0].name in visible


def test_search_excludes_archived_name_matches(service, uploader):
    live = _root(service, uploader, name="Building permit set", category="permits", file_path="documents/p1.pdf")
    old = _root(service, uploader, name="Expired permit", category="permits", file_path="documents/p0.pdf")
    service.archive(old.id, "Expired", uploader.id)

    result = service.search(DocumentSearch(query="permit", category="permits"))
    assert [doc.id for doc in result.items] == [live.id]
    # still reachable directly
    assert service.get(old.id).is_archived is True


def test_deleting_latest_promotes_highest_remaining(service, uploader):
    root = _root(service, uploader)
    v2 = service.create_version(root.id, {"file_path": "documents/foundation-v2.pdf"}, uploader.id)
    v3 = service.create_version(root.id, {"file_path": "documents/foundation-v3.pdf"}, uploader.id)
    v3_id, v2_id = v3.id, v2.id

    service.delete(v3_id)
    assert service.get_latest_version(root.id).id == v2_id

    # dropping an older version leaves the latest flag alone
    service.delete(root.id)
    assert service.get_latest_version(v2_id).id == v2_id
    assert [row.version for row in service.get_version_history(v2_id)] == [2]


def test_deleting_only_version_empties_chain(service, uploader):
    root = _root(service, uploader)
    root_id = root.id
    service.delete(root_id)
    assert service.get_latest_version(root_id) is None
    with pytest.raises(NotFound):
        service.get(root_id)
