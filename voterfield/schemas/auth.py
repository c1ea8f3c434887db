"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel

from voterfield.db.enums import Role


class UserSession(BaseModel):
    """
    Resolved caller context for authenticated requests.

    Returned by the get_current_session dependency; every service
    call is scoped by org_id taken from here.
    """
    user_id: UUID
    org_id: UUID
    role: Role
    email: str
    name: str


class SwitchRoleRequest(BaseModel):
    role: str | None = None


class TokenResponse(BaseModel):
    token: str
    user_id: UUID
    org_id: UUID
    role: Role
