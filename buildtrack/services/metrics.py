from __future__ import annotations

from prometheus_client import Counter


DOCUMENTS_UPLOADED_COUNTER = Counter(
    "bt_documents_uploaded_total",
    "Documents created, by upload or JSON registration",
    ["source"],
)

DOCUMENT_VERSIONS_COUNTER = Counter(
    "bt_document_versions_created_total",
    "New document versions appended to a chain",
)

DOCUMENT_TRANSITIONS_COUNTER = Counter(
    "bt_document_transitions_total",
    "Document workflow transitions by target status",
    ["status"],
)

SHARE_ACCESS_COUNTER = Counter(
    "bt_share_links_accessed_total",
    "Successful share link redemptions",
)

PERMIT_LOOKUPS_COUNTER = Counter(
    "bt_permit_lookups_total",
    "AI permit lookups by outcome",
    ["outcome"],
)


def record_document_uploaded(source: str) -> None:
    DOCUMENTS_UPLOADED_COUNTER.labels(source=source).inc()


def record_version_created() -> None:
    DOCUMENT_VERSIONS_COUNTER.inc()


def record_transition(status: str) -> None:
    DOCUMENT_TRANSITIONS_COUNTER.labels(status=status).inc()


def record_share_access() -> None:
    SHARE_ACCESS_COUNTER.inc()


def record_permit_lookup(ok: bool) -> None:
    PERMIT_LOOKUPS_COUNTER.labels(outcome="ok" if ok else "fallback").inc()
