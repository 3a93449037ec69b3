#!/usr/bin/env python
"""Utility to mint a local session cookie for manual testing."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.append(str(BASE_DIR))

from buildtrack.config import settings
from buildtrack.db.session import SessionLocal
from buildtrack.models import UserRole
from buildtrack.services.auth import AuthService


def create_session(email: str, role: str | None) -> str:
    with SessionLocal() as db:
        service = AuthService(db)
        user = service.get_or_create_user(email.strip().lower())
        if role:
            user.role = UserRole(role)
        db.commit()

        issued = service.issue_session(user, user_agent="scripts/create_session.py")

        print("User:", user.email)
        print("Role:", user.role.value)
        print("Session expires:", issued.session.expires_at.isoformat())
        print("\nPaste these cookies into your browser's dev tools:")
        print(f"{settings.cookie_name}={issued.session_token}")
        print(f"{settings.refresh_cookie_name}={issued.refresh_token}")
        print("\nOr call the API with:")
        print(f"Authorization: Bearer {issued.session_token}")
        return issued.session_token


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a session cookie for local testing")
    parser.add_argument("email", help="User email to authenticate as")
    parser.add_argument("--role", choices=[role.value for role in UserRole], help="Set the user's global role")
    args = parser.parse_args()

    create_session(args.email, args.role)


if __name__ == "__main__":
    main()
