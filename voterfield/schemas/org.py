"""Organization and user projections."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from voterfield.db.enums import Role
from voterfield.schemas.voter import GeoPoint


class OrgRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    status: str
    plan_id: str
    limits: dict
    last_activity_at: datetime | None = None


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    organization_id: UUID
    name: str
    email: str
    phone: str | None = None
    role: Role
    location: GeoPoint | None = None
    location_updated_at: datetime | None = None

    @classmethod
    def from_user(cls, user) -> "UserRead":
        location = None
        if user.location_lat is not None and user.location_lng is not None:
            location = GeoPoint(lat=user.location_lat, lng=user.location_lng)
        return cls(
            id=user.id,
            organization_id=user.organization_id,
            name=user.name,
            email=user.email,
            phone=user.phone,
            role=Role(user.role),
            location=location,
            location_updated_at=user.location_updated_at,
        )


class MeResponse(BaseModel):
    user: UserRead
    org: OrgRead


class InviteUserRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None


class RoleChangeRequest(BaseModel):
    role: Role


class ProfileUpdateRequest(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=50)
    location: GeoPoint | None = None
