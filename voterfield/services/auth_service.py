"""Auth service - credential resolution and role switching.

Token issuance proper is external (provisioning CLI / identity
provider); this module only resolves bearer tokens into a caller
context and implements the switch-role operation.
"""

import logging
from uuid import UUID

import jwt
from sqlalchemy.orm import Session

from voterfield.core.security import create_session_token, decode_session_token
from voterfield.db.enums import EventType, OrgStatus, Role
from voterfield.db.models import Organization, User
from voterfield.schemas.auth import UserSession
from voterfield.services import event_service, user_service

logger = logging.getLogger(__name__)


class AuthError(Exception):
    pass


class InvalidCredentialError(AuthError):
    """Missing, malformed, expired, or unknown credential (401)."""


class OrgInactiveError(AuthError):
    """Org is suspended or pending deletion (403)."""


class InvalidRoleError(AuthError):
    pass


class RoleNotPermittedError(AuthError):
    pass


class NoUserForRoleError(AuthError):
    pass


def resolve_session(db: Session, token: str) -> UserSession:
    """
    Resolve a bearer token into {user_id, org_id, role}.

    The role comes from the stored user, not the token claim, so a
    role change takes effect on the next request.
    """
    try:
        payload = decode_session_token(token)
        user_id = UUID(payload["sub"])
        org_id = UUID(payload["org_id"])
    except (jwt.InvalidTokenError, KeyError, ValueError, TypeError) as exc:
        raise InvalidCredentialError("Invalid token") from exc

    user = db.get(User, user_id)
    if not user or user.organization_id != org_id:
        raise InvalidCredentialError("Invalid token")

    org = db.get(Organization, org_id)
    if not org:
        raise InvalidCredentialError("Invalid token")
    if org.status != OrgStatus.ACTIVE.value:
        raise OrgInactiveError(f"Organization is {org.status}")

    if not Role.has_value(user.role):
        raise RoleNotPermittedError(f"Unknown role '{user.role}'")

    return UserSession(
        user_id=user.id,
        org_id=org.id,
        role=Role(user.role),
        email=user.email,
        name=user.name,
    )


def issue_token(user: User) -> str:
    return create_session_token(user.id, user.organization_id, user.role)


def switch_role(db: Session, session: UserSession, requested_role: str | None) -> tuple[User, str]:
    """
    Re-issue a credential for the requested role.

    - same role as caller: fresh token for the caller
    - non-admin asking for admin: refused
    - otherwise: token for the first org user holding the target role

    Non-admins can always drop to canvasser; only admins reach admin.

    Raises:
        InvalidRoleError: role not admin/canvasser
        RoleNotPermittedError: escalation to admin by a non-admin
        NoUserForRoleError: nobody in the org holds the target role
    """
    if not requested_role or not Role.has_value(requested_role):
        raise InvalidRoleError("Invalid role")
    target = Role(requested_role)

    if target == session.role:
        user = db.get(User, session.user_id)
        if not user:
            raise InvalidCredentialError("Invalid token")
    elif target == Role.ADMIN and session.role != Role.ADMIN:
        raise RoleNotPermittedError("Insufficient permissions")
    else:
        user = user_service.find_first_with_role(db, session.org_id, target)
        if not user:
            raise NoUserForRoleError("No user found for that role in this org")

    token = issue_token(user)
    event_service.emit_event(
        db,
        session.org_id,
        EventType.USER_LOGIN,
        user.id,
        {"via": "switch_role", "role": target.value, "requested_by": session.user_id},
    )
    logger.info("Role switch to %s", target.value, extra={"org_id": str(session.org_id)})
    return user, token
