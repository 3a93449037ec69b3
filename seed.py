from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from dotenv import load_dotenv

load_dotenv()

from buildtrack.db.session import SessionLocal
from buildtrack.models import (
    AccessLevel,
    Document,
    DocumentStatus,
    Milestone,
    MilestoneStatus,
    Permit,
    PermitStatus,
    ProjectMember,
    ProjectRole,
    Property,
    PropertyStatus,
    User,
    UserRole,
    Vendor,
)

logger = logging.getLogger(__name__)

SEED_VERSION = "v1"


def seed_uuid(name: str) -> uuid.UUID:
    """Generate deterministic UUIDs scoped to the seed version."""
    return uuid.uuid5(uuid.NAMESPACE_URL, f"buildtrack/{SEED_VERSION}/{name}")


def parse_dt(value: str | None) -> datetime | None:
    if not value:
        return None
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


SEED_USERS: list[dict[str, Any]] = [
    {"key": "pm", "email": "pm@buildtrack.dev", "first_name": "Pat", "last_name": "Manager", "role": UserRole.PM},
    {"key": "owner", "email": "owner@buildtrack.dev", "first_name": "Olive", "last_name": "Owner", "role": UserRole.OWNER},
    {"key": "vendor", "email": "vendor@buildtrack.dev", "first_name": "Val", "last_name": "Vendor", "role": UserRole.VENDOR},
]

SEED_PROPERTIES: list[dict[str, Any]] = [
    {
        "key": "maple",
        "name": "Maple Street Duplex",
        "address": "412 Maple St",
        "city": "Austin",
        "state": "TX",
        "zip_code": "78704",
        "type": "residential",
        "status": PropertyStatus.ACTIVE,
        "progress": 35,
        "total_budget": "485000.00",
        "spent_budget": "162500.00",
        "schedule_adherence": 92,
        "due_date": "2025-03-31T00:00:00Z",
        "milestones": [
            {"key": "demo", "name": "Demolition", "status": MilestoneStatus.COMPLETE, "target_date": "2024-09-15T00:00:00Z"},
            {"key": "framing", "name": "Framing", "status": MilestoneStatus.ACTIVE, "target_date": "2024-11-01T00:00:00Z"},
            {"key": "mep", "name": "MEP rough-in", "status": MilestoneStatus.PENDING, "target_date": "2024-12-15T00:00:00Z"},
        ],
        "permits": [
            {"key": "building", "type": "building", "status": PermitStatus.APPROVED, "permit_number": "BP-2024-1187"},
            {"key": "electrical", "type": "electrical", "status": PermitStatus.UNDER_REVIEW},
        ],
        "documents": [
            {
                "key": "plans",
                "name": "Architectural plan set",
                "type": "plan",
                "category": "design",
                "tags": ["plans", "permit-set"],
                "access_level": AccessLevel.PROJECT_TEAM,
                "status": DocumentStatus.APPROVED,
            },
            {
                "key": "contract",
                "name": "GC contract",
                "type": "contract",
                "category": "legal",
                "tags": ["contract"],
                "access_level": AccessLevel.OWNERS_ONLY,
                "status": DocumentStatus.DRAFT,
            },
        ],
    }
]

SEED_VENDORS: list[dict[str, Any]] = [
    {"key": "sparks", "name": "Sparks Electric", "trades": ["electrical"], "is_licensed": True, "is_bonded": True},
    {"key": "flow", "name": "Flow Plumbing", "trades": ["plumbing"], "is_licensed": True},
]


def seed_users(session) -> dict[str, User]:
    users: dict[str, User] = {}
    for payload in SEED_USERS:
        user = session.query(User).filter(User.email == payload["email"]).one_or_none()
        if user is None:
            user = User(id=seed_uuid(f"user:{payload['key']}"), email=payload["email"])
            session.add(user)
        user.first_name = payload["first_name"]
        user.last_name = payload["last_name"]
        user.role = payload["role"]
        user.is_active = True
        session.flush([user])
        users[payload["key"]] = user
    return users


def seed_property(session, payload: dict[str, Any], users: dict[str, User]) -> Property:
    prop = session.get(Property, seed_uuid(f"property:{payload['key']}"))
    if prop is None:
        prop = Property(id=seed_uuid(f"property:{payload['key']}"))
        session.add(prop)
    for field in ("name", "address", "city", "state", "zip_code", "type", "status", "progress", "schedule_adherence"):
        setattr(prop, field, payload[field])
    prop.total_budget = Decimal(payload["total_budget"])
    prop.spent_budget = Decimal(payload["spent_budget"])
    prop.due_date = parse_dt(payload.get("due_date"))
    prop.pm_id = users["pm"].id
    prop.owner_id = users["owner"].id
    session.flush()

    for user, role in ((users["pm"], ProjectRole.PM), (users["owner"], ProjectRole.OWNER)):
        member = (
            session.query(ProjectMember)
            .filter(ProjectMember.property_id == prop.id, ProjectMember.user_id == user.id)
            .one_or_none()
        )
        if member is None:
            session.add(ProjectMember(property_id=prop.id, user_id=user.id, role=role))
        else:
            member.role = role

    for order, item in enumerate(payload.get("milestones", [])):
        milestone_id = seed_uuid(f"milestone:{payload['key']}:{item['key']}")
        milestone = session.get(Milestone, milestone_id)
        if milestone is None:
            milestone = Milestone(id=milestone_id, property_id=prop.id)
            session.add(milestone)
        milestone.name = item["name"]
        milestone.status = item["status"]
        milestone.target_date = parse_dt(item["target_date"])
        milestone.order = order

    for item in payload.get("permits", []):
        permit_id = seed_uuid(f"permit:{payload['key']}:{item['key']}")
        permit = session.get(Permit, permit_id)
        if permit is None:
            permit = Permit(id=permit_id, property_id=prop.id)
            session.add(permit)
        permit.type = item["type"]
        permit.status = item["status"]
        permit.permit_number = item.get("permit_number")

    for item in payload.get("documents", []):
        document_id = seed_uuid(f"document:{payload['key']}:{item['key']}")
        document = session.get(Document, document_id)
        if document is None:
            document = Document(
                id=document_id,
                property_id=prop.id,
                uploaded_by=users["pm"].id,
                file_path=f"seed/{payload['key']}/{item['key']}.pdf",
                file_name=f"{item['key']}.pdf",
                mime_type="application/pdf",
                version=1,
                is_latest_version=True,
            )
            session.add(document)
        document.name = item["name"]
        document.type = item["type"]
        document.category = item["category"]
        document.tags = list(item["tags"])
        document.access_level = item["access_level"]
        document.status = item["status"]
        document.allowed_users = []
        document.allowed_roles = []

    session.flush()
    return prop


def seed_vendors(session) -> None:
    for payload in SEED_VENDORS:
        vendor = session.get(Vendor, seed_uuid(f"vendor:{payload['key']}"))
        if vendor is None:
            vendor = Vendor(id=seed_uuid(f"vendor:{payload['key']}"), name=payload["name"])
            session.add(vendor)
        vendor.name = payload["name"]
        vendor.trades = list(payload["trades"])
        vendor.is_licensed = payload.get("is_licensed", False)
        vendor.is_bonded = payload.get("is_bonded", False)


def run_seed() -> None:
    session = SessionLocal()
    try:
        users = seed_users(session)
        properties = [seed_property(session, payload, users) for payload in SEED_PROPERTIES]
        seed_vendors(session)
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

    logger.info("Seed applied (users=%s properties=%s vendors=%s)", len(users), len(properties), len(SEED_VENDORS))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_seed()
