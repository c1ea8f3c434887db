"""Audit log and platform event models (append-only)."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from voterfield.db.base import Base
from voterfield.db.types import JSONType, utcnow


class AuditLogEntry(Base):
    """
    Compliance record of a mutating action.

    Output only: application logic never reads these back.
    """

    __tablename__ = "audit_logs"
    __table_args__ = (Index("idx_audit_org_created", "organization_id", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    actor_user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    details: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


class PlatformEvent(Base):
    """Domain event; hook point for a future event bus."""

    __tablename__ = "platform_events"
    __table_args__ = (
        Index("idx_events_org_occurred", "organization_id", "occurred_at"),
        Index("idx_events_type", "event_type"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    event_metadata: Mapped[dict] = mapped_column(
        "metadata", JSONType, default=dict, nullable=False
    )
    occurred_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
