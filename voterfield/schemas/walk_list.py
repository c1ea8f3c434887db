"""Walk list and assignment schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from voterfield.db.enums import AssignmentStatus


class WalkListCreate(BaseModel):
    name: str | None = None
    voter_ids: list[UUID]


class WalkListRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    organization_id: UUID
    name: str
    voter_ids: list[UUID]
    created_by_user_id: UUID | None = None
    created_at: datetime


class AssignmentCreate(BaseModel):
    list_id: UUID | None = None
    canvasser_id: UUID | None = None


class AssignmentStatusUpdate(BaseModel):
    status: AssignmentStatus


class AssignmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    organization_id: UUID
    walk_list_id: UUID
    canvasser_id: UUID
    status: AssignmentStatus
    created_at: datetime
    updated_at: datetime
