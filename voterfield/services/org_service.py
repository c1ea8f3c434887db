"""Organization service - provisioning, status, limits, activity."""

import re
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from voterfield.db.enums import AuditAction, OrgLimit, OrgStatus, Role
from voterfield.db.models import Organization, User, Voter
from voterfield.db.types import utcnow
from voterfield.services import audit_service


class OrgServiceError(Exception):
    pass


class OrgNotFoundError(OrgServiceError):
    pass


class OrgValidationError(OrgServiceError):
    pass


class OrgLimitReachedError(OrgServiceError):
    pass


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug[:100] or "org"


def get_org(db: Session, org_id: UUID) -> Organization | None:
    return db.get(Organization, org_id)


def create_org(
    db: Session,
    name: str,
    admin_name: str,
    admin_email: str,
    plan_id: str = "free",
    limits: dict[str, int] | None = None,
) -> tuple[Organization, User]:
    """Provision an org with its first admin. Commits."""
    name = (name or "").strip()
    if not name:
        raise OrgValidationError("Organization name is required")
    email = (admin_email or "").strip().lower()
    if not email:
        raise OrgValidationError("Admin email is required")

    base_slug = slugify(name)
    slug = base_slug
    suffix = 1
    while db.execute(select(Organization.id).where(Organization.slug == slug)).first():
        suffix += 1
        slug = f"{base_slug}-{suffix}"

    org = Organization(name=name, slug=slug, plan_id=plan_id, limits=dict(limits or {}))
    db.add(org)
    db.flush()
    admin = User(
        organization_id=org.id,
        name=(admin_name or "").strip() or email,
        email=email,
        role=Role.ADMIN.value,
    )
    db.add(admin)
    db.flush()
    audit_service.append_audit(
        db, org.id, AuditAction.ORG_CREATE, admin.id, {"name": name, "plan_id": plan_id}
    )
    db.commit()
    db.refresh(org)
    db.refresh(admin)
    return org, admin


def set_status(db: Session, org_id: UUID, status: OrgStatus) -> Organization:
    org = get_org(db, org_id)
    if not org:
        raise OrgNotFoundError("Organization not found")
    previous = org.status
    org.status = status.value
    db.commit()
    audit_service.log_audit(
        db, org_id, AuditAction.ORG_STATUS_CHANGE, None,
        {"from": previous, "to": status.value},
    )
    return org


def set_limit(db: Session, org_id: UUID, key: OrgLimit, value: int | None) -> Organization:
    """Set (or clear, with None) a numeric limit."""
    org = get_org(db, org_id)
    if not org:
        raise OrgNotFoundError("Organization not found")
    limits = dict(org.limits or {})
    if value is None:
        limits.pop(key.value, None)
    else:
        if value < 0:
            raise OrgValidationError("Limit must be non-negative")
        limits[key.value] = value
    # Reassign so the JSON column is marked dirty
    org.limits = limits
    db.commit()
    audit_service.log_audit(
        db, org_id, AuditAction.ORG_LIMIT_CHANGE, None, {"key": key.value, "value": value}
    )
    return org


def get_limit(org: Organization, key: OrgLimit) -> int | None:
    value = (org.limits or {}).get(key.value)
    return int(value) if value is not None else None


def ensure_capacity(db: Session, org: Organization, key: OrgLimit, adding: int = 1) -> None:
    """Raise OrgLimitReachedError if adding rows would exceed the org limit."""
    limit = get_limit(org, key)
    if limit is None:
        return
    if key is OrgLimit.MAX_VOTERS:
        current = db.scalar(
            select(func.count()).select_from(Voter).where(Voter.organization_id == org.id)
        )
    else:
        current = db.scalar(
            select(func.count()).select_from(User).where(User.organization_id == org.id)
        )
    if (current or 0) + adding > limit:
        raise OrgLimitReachedError(f"Organization limit reached: {key.value}={limit}")


def touch_activity(db: Session, org_id: UUID, at: datetime | None = None) -> None:
    """Bump last_activity_at. Flush-only; part of the caller's transaction."""
    db.execute(
        update(Organization)
        .where(Organization.id == org_id)
        .values(last_activity_at=at or utcnow())
    )
