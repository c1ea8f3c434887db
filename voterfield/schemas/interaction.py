"""Interaction ledger schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from voterfield.db.enums import InteractionChannel, ResultCode


class InteractionCreate(BaseModel):
    """
    Canonical field-app payload.

    org_id may be sent by older clients; the caller context always wins.
    """
    model_config = ConfigDict(extra="ignore")

    client_interaction_uuid: UUID
    voter_id: UUID
    assignment_id: UUID | None = None
    occurred_at: datetime
    channel: InteractionChannel = InteractionChannel.CANVASS
    result_code: ResultCode
    notes: str | None = Field(default=None, max_length=5000)
    survey_responses: dict[str, Any] | None = None


class InteractionRead(BaseModel):
    id: UUID
    organization_id: UUID
    user_id: UUID
    client_interaction_uuid: UUID
    voter_id: UUID
    assignment_id: UUID | None = None
    occurred_at: datetime
    channel: str
    result_code: str
    notes: str | None = None
    survey_responses: dict[str, Any] | None = None


class BulkInsertResponse(BaseModel):
    inserted: int
