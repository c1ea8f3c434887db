"""Voter registry schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class GeoPoint(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class VoterFields(BaseModel):
    """Writable voter fields. All optional at the schema level."""
    model_config = ConfigDict(extra="ignore")

    external_id: str | None = Field(default=None, max_length=100)
    first_name: str | None = Field(default=None, max_length=100)
    middle_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    suffix: str | None = Field(default=None, max_length=20)
    age: int | None = Field(default=None, ge=0, le=150)
    gender: str | None = Field(default=None, max_length=20)
    race: str | None = Field(default=None, max_length=50)
    party: str | None = Field(default=None, max_length=50)
    phone: str | None = Field(default=None, max_length=50)
    email: str | None = Field(default=None, max_length=255)
    address: str | None = Field(default=None, max_length=255)
    unit: str | None = Field(default=None, max_length=50)
    city: str | None = Field(default=None, max_length=100)
    state: str | None = Field(default=None, max_length=50)
    zip_code: str | None = Field(default=None, max_length=20)
    geom: GeoPoint | None = None


class VoterCreate(VoterFields):
    pass


class VoterUpdate(VoterFields):
    """Partial update; only fields present in the body are applied."""


class VoterRead(BaseModel):
    id: UUID
    organization_id: UUID
    external_id: str
    first_name: str
    middle_name: str | None = None
    last_name: str
    suffix: str | None = None
    age: int | None = None
    gender: str | None = None
    race: str | None = None
    party: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str
    unit: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    geom: GeoPoint
    last_interaction_status: str | None = None
    last_interaction_time: datetime | None = None
    created_at: datetime
    updated_at: datetime


class VoterListResponse(BaseModel):
    items: list[VoterRead]
    limit: int
    offset: int
