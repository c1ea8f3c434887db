"""Pydantic schemas for background jobs."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class JobRead(BaseModel):
    """Job snapshot returned to pollers. The work payload is not exposed."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    organization_id: UUID
    user_id: UUID | None
    job_type: str = Field(serialization_alias="type")
    status: str
    result: dict | None
    error: str | None
    metadata: dict = Field(validation_alias="job_metadata")
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None
