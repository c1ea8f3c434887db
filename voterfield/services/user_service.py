"""User service - roster, invites, role changes, profile updates."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from voterfield.db.enums import AuditAction, OrgLimit, Role
from voterfield.db.models import Organization, User
from voterfield.db.types import utcnow
from voterfield.services import audit_service, org_service
from voterfield.utils.normalization import clean_text, normalize_email


class UserServiceError(Exception):
    pass


class UserNotFoundError(UserServiceError):
    pass


class UserValidationError(UserServiceError):
    pass


class DuplicateEmailError(UserServiceError):
    pass


def get_user(db: Session, org_id: UUID, user_id: UUID) -> User | None:
    """Get a user scoped to the org."""
    return db.execute(
        select(User).where(User.id == user_id, User.organization_id == org_id)
    ).scalar_one_or_none()


def list_users(db: Session, org_id: UUID, role: Role | None = None) -> list[User]:
    query = select(User).where(User.organization_id == org_id)
    if role is not None:
        query = query.where(User.role == role.value)
    return list(db.execute(query.order_by(User.name, User.created_at)).scalars().all())


def find_first_with_role(db: Session, org_id: UUID, role: Role) -> User | None:
    """Oldest user in the org holding role."""
    return db.execute(
        select(User)
        .where(User.organization_id == org_id, User.role == role.value)
        .order_by(User.created_at, User.id)
        .limit(1)
    ).scalar_one_or_none()


def invite_user(
    db: Session,
    org: Organization,
    actor_user_id: UUID,
    name: str | None,
    email: str | None,
    phone: str | None = None,
    role: Role = Role.CANVASSER,
) -> User:
    """
    Create a user in the org. Commits.

    Raises:
        UserValidationError: name or email missing
        DuplicateEmailError: email already registered (system-wide)
        OrgLimitReachedError: max_users reached
    """
    name = clean_text(name)
    email = normalize_email(email)
    if not name or not email:
        raise UserValidationError("Name and email are required")
    if "@" not in email:
        raise UserValidationError("Invalid email")

    existing = db.execute(select(User.id).where(User.email == email)).first()
    if existing:
        raise DuplicateEmailError("A user with that email already exists")

    org_service.ensure_capacity(db, org, OrgLimit.MAX_USERS)

    user = User(
        organization_id=org.id,
        name=name,
        email=email,
        phone=clean_text(phone),
        role=role.value,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateEmailError("A user with that email already exists") from exc
    db.refresh(user)

    audit_service.log_audit(
        db,
        org.id,
        AuditAction.USER_INVITE,
        actor_user_id,
        {"new_user_id": user.id, "role": role.value, "email": audit_service.hash_email(email)},
    )
    return user


def change_role(
    db: Session, org_id: UUID, actor_user_id: UUID, user_id: UUID, role: Role
) -> User:
    user = get_user(db, org_id, user_id)
    if not user:
        raise UserNotFoundError("User not found")
    previous = user.role
    if previous == role.value:
        return user
    user.role = role.value
    db.commit()
    db.refresh(user)
    audit_service.log_audit(
        db,
        org_id,
        AuditAction.USER_ROLE_CHANGE,
        actor_user_id,
        {"user_id": user.id, "from": previous, "to": role.value},
    )
    return user


def update_profile(
    db: Session,
    user: User,
    name: str | None = None,
    phone: str | None = None,
    location: tuple[float, float] | None = None,
) -> User:
    """Update own name/phone/last known location. Commits."""
    changed: list[str] = []
    if name is not None:
        cleaned = clean_text(name)
        if not cleaned:
            raise UserValidationError("Name cannot be blank")
        user.name = cleaned
        changed.append("name")
    if phone is not None:
        user.phone = clean_text(phone)
        changed.append("phone")
    if location is not None:
        user.location_lat, user.location_lng = location
        user.location_updated_at = utcnow()
        changed.append("location")
    if not changed:
        raise UserValidationError("No valid fields provided")
    db.commit()
    db.refresh(user)
    # Location pings are frequent; only audit identity fields
    if changed != ["location"]:
        audit_service.log_audit(
            db,
            user.organization_id,
            AuditAction.USER_PROFILE_UPDATE,
            user.id,
            {"fields": [f for f in changed if f != "location"]},
        )
    return user
