"""Initial BuildTrack schema"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "20241101_0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

UUID = postgresql.UUID(as_uuid=True)
JSONB_LIST = sa.text("'[]'::jsonb")


def _enum(name: str, *values: str) -> postgresql.ENUM:
    return postgresql.ENUM(*values, name=name, create_type=False)


ENUMS = {
    "user_role": _enum("user_role", "admin", "pm", "owner", "vendor", "viewer"),
    "property_status": _enum("property_status", "planning", "permits", "assessment", "active", "completed", "on_hold"),
    "milestone_status": _enum("milestone_status", "pending", "active", "complete", "blocked", "cancelled"),
    "project_role": _enum("project_role", "owner", "pm", "member", "vendor"),
    "rfq_status": _enum("rfq_status", "draft", "sent", "responses_received", "awarded", "cancelled"),
    "bid_status": _enum("bid_status", "pending", "submitted", "awarded", "rejected"),
    "permit_status": _enum(
        "permit_status", "not_started", "submitted", "under_review", "approved", "rejected", "expired"
    ),
    "risk_type": _enum("risk_type", "risk", "issue"),
    "risk_impact": _enum("risk_impact", "low", "medium", "high", "critical"),
    "risk_status": _enum("risk_status", "open", "in_progress", "resolved", "closed"),
    "document_status": _enum("document_status", "draft", "review", "approved", "rejected", "archived"),
    "access_level": _enum(
        "access_level", "public", "project_team", "project_managers", "owners_only", "restricted"
    ),
    "annotation_type": _enum("annotation_type", "text", "highlight", "comment", "stamp", "signature"),
    "audit_action": _enum("audit_action", "create", "update", "delete", "view", "approve", "reject"),
    "reaction_type": _enum("reaction_type", "like", "love", "insight", "question", "celebrate"),
}


def _timestamps(updated: bool = True) -> list[sa.Column]:
    columns = [sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)]
    if updated:
        columns.append(
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)
        )
    return columns


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in ENUMS.values():
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=True),
        sa.Column("last_name", sa.String(), nullable=True),
        sa.Column("profile_image_url", sa.String(), nullable=True),
        sa.Column("role", ENUMS["user_role"], server_default="viewer", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "login_tokens",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("token_hash", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("purpose", sa.String(), server_default="login", nullable=False),
        sa.Column("requested_ip", sa.String(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("consumed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(updated=False),
        sa.UniqueConstraint("token_hash", name="uq_login_tokens_token_hash"),
    )
    op.create_index("ix_login_tokens_user_id", "login_tokens", ["user_id"])

    op.create_table(
        "user_sessions",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("session_token_hash", sa.String(), nullable=False),
        sa.Column("refresh_token_hash", sa.String(), nullable=True),
        sa.Column("user_agent", sa.String(), nullable=True),
        sa.Column("ip_address", sa.String(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("refresh_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(updated=False),
        sa.UniqueConstraint("session_token_hash", name="uq_user_sessions_token"),
        sa.UniqueConstraint("refresh_token_hash", name="uq_user_sessions_refresh_token"),
    )
    op.create_index("ix_user_sessions_user_id", "user_sessions", ["user_id"])

    op.create_table(
        "properties",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("address", sa.Text(), nullable=False),
        sa.Column("city", sa.Text(), nullable=True),
        sa.Column("state", sa.Text(), nullable=True),
        sa.Column("zip_code", sa.Text(), nullable=True),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("status", ENUMS["property_status"], server_default="planning", nullable=False),
        sa.Column("progress", sa.Integer(), server_default="0", nullable=False),
        sa.Column("total_budget", sa.Numeric(12, 2), nullable=False),
        sa.Column("spent_budget", sa.Numeric(12, 2), server_default="0", nullable=False),
        sa.Column("committed_budget", sa.Numeric(12, 2), server_default="0", nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("schedule_adherence", sa.Integer(), server_default="100", nullable=False),
        sa.Column("budget_variance", sa.Numeric(5, 2), server_default="0", nullable=False),
        sa.Column("safety_incidents", sa.Integer(), server_default="0", nullable=False),
        sa.Column("permit_sla", sa.Integer(), server_default="0", nullable=False),
        sa.Column("owner_id", UUID, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("pm_id", UUID, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_properties_owner_id", "properties", ["owner_id"])
    op.create_index("ix_properties_pm_id", "properties", ["pm_id"])

    op.create_table(
        "project_members",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("property_id", UUID, sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role", ENUMS["project_role"], server_default="member", nullable=False),
        *_timestamps(updated=False),
        sa.UniqueConstraint("property_id", "user_id", name="uq_project_members_property_user"),
    )
    op.create_index("ix_project_members_property_id", "project_members", ["property_id"])
    op.create_index("ix_project_members_user_id", "project_members", ["user_id"])

    op.create_table(
        "milestones",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("property_id", UUID, sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", ENUMS["milestone_status"], server_default="pending", nullable=False),
        sa.Column("target_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("actual_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("order", sa.Integer(), server_default="0", nullable=False),
        sa.Column("blockers", postgresql.JSONB(), server_default=JSONB_LIST, nullable=False),
        sa.Column("dependencies", postgresql.JSONB(), server_default=JSONB_LIST, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_milestones_property_id", "milestones", ["property_id"])

    op.create_table(
        "vendors",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("contact_email", sa.Text(), nullable=True),
        sa.Column("contact_phone", sa.Text(), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("trades", postgresql.JSONB(), server_default=JSONB_LIST, nullable=False),
        sa.Column("is_licensed", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("is_bonded", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("insurance_expiry", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rating", sa.Numeric(3, 2), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "budget_lines",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("property_id", UUID, sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=False),
        sa.Column("scope", sa.Text(), nullable=False),
        sa.Column("vendor_id", UUID, sa.ForeignKey("vendors.id"), nullable=True),
        sa.Column("contract_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("spent_amount", sa.Numeric(12, 2), server_default="0", nullable=False),
        sa.Column("percent_complete", sa.Integer(), server_default="0", nullable=False),
        sa.Column("bid_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("coi_valid", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("payment_blocked", sa.Boolean(), server_default=sa.false(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_budget_lines_property_id", "budget_lines", ["property_id"])

    op.create_table(
        "rfqs",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("property_id", UUID, sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("scope", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("bid_due_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("site_walkthrough_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", ENUMS["rfq_status"], server_default="draft", nullable=False),
        sa.Column("created_by", UUID, sa.ForeignKey("users.id"), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_rfqs_property_id", "rfqs", ["property_id"])

    op.create_table(
        "rfq_vendors",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("rfq_id", UUID, sa.ForeignKey("rfqs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("vendor_id", UUID, sa.ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False),
        sa.Column("invited_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("rfq_id", "vendor_id", name="uq_rfq_vendors_rfq_vendor"),
    )
    op.create_index("ix_rfq_vendors_rfq_id", "rfq_vendors", ["rfq_id"])

    op.create_table(
        "bids",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("rfq_id", UUID, sa.ForeignKey("rfqs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("vendor_id", UUID, sa.ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False),
        sa.Column("base_bid", sa.Numeric(12, 2), nullable=False),
        sa.Column("timeline", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", ENUMS["bid_status"], server_default="pending", nullable=False),
        sa.Column("score", sa.Integer(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("awarded_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_bids_rfq_id", "bids", ["rfq_id"])

    op.create_table(
        "permits",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("property_id", UUID, sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("permit_number", sa.Text(), nullable=True),
        sa.Column("status", ENUMS["permit_status"], server_default="not_started", nullable=False),
        sa.Column("submitted_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expiry_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cost", sa.Numeric(10, 2), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_permits_property_id", "permits", ["property_id"])

    op.create_table(
        "risks",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("property_id", UUID, sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", ENUMS["risk_type"], nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("impact", ENUMS["risk_impact"], nullable=False),
        sa.Column("owner_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", ENUMS["risk_status"], server_default="open", nullable=False),
        sa.Column("resolution", sa.Text(), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_risks_property_id", "risks", ["property_id"])

    op.create_table(
        "documents",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("property_id", UUID, sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=True),
        sa.Column("milestone_id", UUID, sa.ForeignKey("milestones.id", ondelete="CASCADE"), nullable=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("category", sa.Text(), nullable=False),
        sa.Column("tags", postgresql.JSONB(), server_default=JSONB_LIST, nullable=False),
        sa.Column("file_path", sa.Text(), nullable=False),
        sa.Column("file_name", sa.Text(), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("mime_type", sa.Text(), nullable=True),
        sa.Column("checksum", sa.String(), nullable=True),
        sa.Column("version", sa.Integer(), server_default="1", nullable=False),
        sa.Column("parent_document_id", UUID, nullable=True),
        sa.Column("is_latest_version", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("version_notes", sa.Text(), nullable=True),
        sa.Column("access_level", ENUMS["access_level"], server_default="project_team", nullable=False),
        sa.Column("allowed_users", postgresql.JSONB(), server_default=JSONB_LIST, nullable=False),
        sa.Column("allowed_roles", postgresql.JSONB(), server_default=JSONB_LIST, nullable=False),
        sa.Column("status", ENUMS["document_status"], server_default="draft", nullable=False),
        sa.Column("reviewed_by", UUID, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by", UUID, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("review_comments", sa.Text(), nullable=True),
        sa.Column("uploaded_by", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("last_modified_by", UUID, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("expiry_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_archived", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("archive_reason", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_documents_property_id", "documents", ["property_id"])
    op.create_index("ix_documents_milestone_id", "documents", ["milestone_id"])
    op.create_index("ix_documents_chain_latest", "documents", ["parent_document_id", "is_latest_version"])

    op.create_table(
        "document_comments",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("document_id", UUID, sa.ForeignKey("documents.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("comment", sa.Text(), nullable=False),
        sa.Column("parent_comment_id", UUID, nullable=True),
        sa.Column("is_resolved", sa.Boolean(), server_default=sa.false(), nullable=False),
        *_timestamps(updated=False),
    )
    op.create_index("ix_document_comments_document_id", "document_comments", ["document_id"])

    op.create_table(
        "document_shares",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("document_id", UUID, sa.ForeignKey("documents.id", ondelete="CASCADE"), nullable=False),
        sa.Column("shared_by", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("shared_with", UUID, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("share_token", sa.String(), nullable=True, unique=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("can_download", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("can_comment", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("access_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps(updated=False),
    )
    op.create_index("ix_document_shares_document_id", "document_shares", ["document_id"])
    op.create_index("ix_document_shares_shared_with", "document_shares", ["shared_with"])

    op.create_table(
        "document_annotations",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("document_id", UUID, sa.ForeignKey("documents.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("type", ENUMS["annotation_type"], nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("position_x", sa.Float(), nullable=False),
        sa.Column("position_y", sa.Float(), nullable=False),
        sa.Column("page_number", sa.Integer(), server_default="1", nullable=False),
        sa.Column("stamp_type", sa.Text(), nullable=True),
        sa.Column("color", sa.Text(), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_document_annotations_document_id", "document_annotations", ["document_id"])

    op.create_table(
        "signatures",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("storage_key", sa.Text(), nullable=False),
        sa.Column("preview_url", sa.Text(), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_signatures_user_id", "signatures", ["user_id"])

    op.create_table(
        "signing_sessions",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("document_id", UUID, sa.ForeignKey("documents.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_signing_sessions_document_id", "signing_sessions", ["document_id"])

    op.create_table(
        "activities",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("property_id", UUID, sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=True),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("action", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("entity_type", sa.Text(), nullable=True),
        sa.Column("entity_id", sa.String(), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_activities_property_id", "activities", ["property_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("action", ENUMS["audit_action"], nullable=False),
        sa.Column("entity_type", sa.Text(), nullable=False),
        sa.Column("entity_id", sa.String(), nullable=False),
        sa.Column("old_values", postgresql.JSONB(), nullable=True),
        sa.Column("new_values", postgresql.JSONB(), nullable=True),
        sa.Column("ip_address", sa.String(), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])

    op.create_table(
        "discussions",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("property_id", UUID, sa.ForeignKey("properties.id", ondelete="SET NULL"), nullable=True),
        sa.Column("author_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("visibility", ENUMS["access_level"], server_default="project_team", nullable=False),
        sa.Column("is_pinned", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("is_locked", sa.Boolean(), server_default=sa.false(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_discussions_property_id", "discussions", ["property_id"])

    op.create_table(
        "discussion_comments",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("discussion_id", UUID, sa.ForeignKey("discussions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("parent_comment_id", UUID, nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_discussion_comments_discussion_id", "discussion_comments", ["discussion_id"])

    op.create_table(
        "discussion_reactions",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("discussion_id", UUID, sa.ForeignKey("discussions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("type", ENUMS["reaction_type"], server_default="like", nullable=False),
        *_timestamps(updated=False),
        sa.UniqueConstraint("discussion_id", "user_id", "type", name="uq_discussion_reactions_user_type"),
    )
    op.create_index("ix_discussion_reactions_discussion_id", "discussion_reactions", ["discussion_id"])


def downgrade() -> None:
    for table in (
        "discussion_reactions",
        "discussion_comments",
        "discussions",
        "audit_logs",
        "activities",
        "signing_sessions",
        "signatures",
        "document_annotations",
        "document_shares",
        "document_comments",
        "documents",
        "risks",
        "permits",
        "bids",
        "rfq_vendors",
        "rfqs",
        "budget_lines",
        "vendors",
        "milestones",
        "project_members",
        "properties",
        "user_sessions",
        "login_tokens",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum_type in reversed(list(ENUMS.values())):
        enum_type.drop(bind, checkfirst=True)
