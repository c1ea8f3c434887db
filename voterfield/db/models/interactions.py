"""Interaction ledger models."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from voterfield.db.base import Base
from voterfield.db.enums import InteractionChannel
from voterfield.db.types import JSONType, utcnow


class Interaction(Base):
    """
    Append-only canvass outcome.

    client_interaction_uuid is the idempotency key; the unique
    constraint is what makes concurrent retries safe.
    """

    __tablename__ = "interactions"
    __table_args__ = (
        UniqueConstraint(
            "organization_id",
            "client_interaction_uuid",
            name="uq_interactions_org_client_uuid",
        ),
        Index("idx_interactions_org_voter_time", "organization_id", "voter_id", "occurred_at"),
        Index("idx_interactions_org_time", "organization_id", "occurred_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    client_interaction_uuid: Mapped[uuid.UUID] = mapped_column(nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    voter_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("voters.id", ondelete="CASCADE"), nullable=False
    )
    assignment_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("assignments.id", ondelete="SET NULL"), nullable=True
    )
    occurred_at: Mapped[datetime] = mapped_column(nullable=False)
    channel: Mapped[str] = mapped_column(
        String(20), default=InteractionChannel.CANVASS.value, nullable=False
    )
    result_code: Mapped[str] = mapped_column(String(20), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


class InteractionSurveyResponse(Base):
    """Structured survey answers captured with an interaction."""

    __tablename__ = "interaction_survey_responses"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    interaction_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("interactions.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    responses: Mapped[dict] = mapped_column(JSONType, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
