from __future__ import annotations

from decimal import Decimal
from typing import Optional

import typer

from .config import settings
from .db.session import SessionLocal
from .models import ProjectMember, ProjectRole, Property, User, UserRole
from .services.auth import AuthService

app = typer.Typer(help="BuildTrack administrative CLI")


def _find_user(db, email: str) -> User:
    user = db.query(User).filter(User.email == email.strip().lower()).one_or_none()
    if user is None:
        typer.echo(f"No user with email {email}", err=True)
        raise typer.Exit(code=1)
    return user


@app.command()
def create_user(
    email: str = typer.Argument(..., help="User email"),
    role: UserRole = typer.Option(UserRole.VIEWER, "--role", "-r", help="Global role"),
    first_name: str = typer.Option("", "--first-name", help="Optional first name"),
    last_name: str = typer.Option("", "--last-name", help="Optional last name"),
) -> None:
    """Create a user (or update the role of an existing one)."""
    db = SessionLocal()
    try:
        user = AuthService(db).get_or_create_user(email.strip().lower())
        user.role = role
        if first_name:
            user.first_name = first_name
        if last_name:
            user.last_name = last_name
        db.commit()
        typer.echo(f"User {user.email} ({user.id}) has role {role.value}")
    finally:
        db.close()


@app.command()
def create_property(
    name: str = typer.Argument(..., help="Property name"),
    address: str = typer.Argument(..., help="Street address"),
    property_type: str = typer.Option("residential", "--type", "-t", show_default=True),
    total_budget: float = typer.Option(0.0, "--budget", "-b", help="Total budget in dollars"),
    pm_email: Optional[str] = typer.Option(None, "--pm", help="Project manager email"),
    owner_email: Optional[str] = typer.Option(None, "--owner", help="Owner email"),
) -> None:
    """Create a property and register its PM and owner as project members."""
    db = SessionLocal()
    try:
        pm = _find_user(db, pm_email) if pm_email else None
        owner = _find_user(db, owner_email) if owner_email else None
        prop = Property(
            name=name,
            address=address,
            type=property_type,
            total_budget=Decimal(str(total_budget)),
            pm_id=pm.id if pm else None,
            owner_id=owner.id if owner else None,
        )
        db.add(prop)
        db.flush()
        for user, role in ((pm, ProjectRole.PM), (owner, ProjectRole.OWNER)):
            if user is not None:
                db.add(ProjectMember(property_id=prop.id, user_id=user.id, role=role))
        db.commit()
        typer.echo(f"Created property {prop.name} ({prop.id})")
    finally:
        db.close()


@app.command()
def send_magic_link(email: str = typer.Argument(...)) -> None:
    """Send a login magic link to an email address."""
    db = SessionLocal()
    try:
        AuthService(db).request_magic_link(email)
        typer.echo(f"Magic link sent to {email}. It opens {settings.app_url}/auth/callback")
    finally:
        db.close()


if __name__ == "__main__":
    app()
