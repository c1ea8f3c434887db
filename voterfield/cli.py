"""CLI tools for VoterField administration."""

from uuid import UUID

import click
from sqlalchemy import select

from voterfield.db.enums import OrgLimit, OrgStatus
from voterfield.db.models import User
from voterfield.db.session import SessionLocal
from voterfield.services import auth_service, org_service
from voterfield.services.org_service import OrgServiceError


@click.group()
def cli():
    """VoterField CLI tools."""
    pass


@cli.command()
@click.option("--name", required=True, help="Organization name")
@click.option("--admin-email", required=True, help="Admin email address")
@click.option("--admin-name", default="", help="Admin display name")
@click.option("--plan", "plan_id", default="free", show_default=True, help="Plan tier")
@click.option("--max-voters", type=int, default=None, help="Voter limit")
@click.option("--max-users", type=int, default=None, help="User limit")
def create_org(name, admin_email, admin_name, plan_id, max_voters, max_users):
    """
    Create organization and its first admin user.

    This is the bootstrap command for setting up a new tenant.

    Example:
        python -m voterfield.cli create-org --name "Acme Field" --admin-email admin@acme.org
    """
    limits = {}
    if max_voters is not None:
        limits[OrgLimit.MAX_VOTERS.value] = max_voters
    if max_users is not None:
        limits[OrgLimit.MAX_USERS.value] = max_users

    db = SessionLocal()
    try:
        existing = db.execute(
            select(User.id).where(User.email == admin_email.strip().lower())
        ).first()
        if existing:
            click.echo(f"❌ A user with email {admin_email} already exists")
            return
        org, admin = org_service.create_org(
            db, name, admin_name, admin_email, plan_id=plan_id, limits=limits
        )
        click.echo(f"✓ Created organization: {org.name}")
        click.echo(f"  ID: {org.id}")
        click.echo(f"  Slug: {org.slug}")
        click.echo(f"✓ Created admin {admin.email} (id: {admin.id})")
    except OrgServiceError as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--org-id", required=True, type=click.UUID)
@click.option(
    "--status",
    "status_value",
    required=True,
    type=click.Choice([s.value for s in OrgStatus]),
)
def set_org_status(org_id: UUID, status_value: str):
    """Suspend, reactivate, or schedule an organization for deletion."""
    db = SessionLocal()
    try:
        org = org_service.set_status(db, org_id, OrgStatus(status_value))
        click.echo(f"✓ {org.name} is now {org.status}")
    except OrgServiceError as e:
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--org-id", required=True, type=click.UUID)
@click.option("--key", required=True, type=click.Choice([k.value for k in OrgLimit]))
@click.option("--value", type=int, default=None, help="Omit to remove the limit")
def set_org_limit(org_id: UUID, key: str, value: int | None):
    """Set or clear a numeric organization limit."""
    db = SessionLocal()
    try:
        org = org_service.set_limit(db, org_id, OrgLimit(key), value)
        click.echo(f"✓ Limits for {org.name}: {org.limits}")
    except OrgServiceError as e:
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email")
def issue_token(email: str):
    """Mint a bearer token for a user (development / provisioning)."""
    db = SessionLocal()
    try:
        user = db.execute(
            select(User).where(User.email == email.strip().lower())
        ).scalar_one_or_none()
        if not user:
            click.echo(f"❌ No user with email {email}")
            return
        click.echo(auth_service.issue_token(user))
    finally:
        db.close()


if __name__ == "__main__":
    cli()
