"""Tenant and identity models."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uuid
from datetime import datetime

from sqlalchemy import Float, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from voterfield.db.base import Base
from voterfield.db.enums import OrgStatus, Role
from voterfield.db.types import JSONType, utcnow

if TYPE_CHECKING:
    from voterfield.db.models import Voter


class Organization(Base):
    """
    A tenant in the multi-tenant system.

    All domain entities belong to an organization
    and must be scoped by organization_id in all queries.
    Organizations are never hard-deleted; status moves to pending_delete.
    """

    __tablename__ = "organizations"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=OrgStatus.ACTIVE.value, nullable=False
    )
    plan_id: Mapped[str] = mapped_column(String(50), default="free", nullable=False)
    limits: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    last_activity_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, onupdate=utcnow, nullable=False
    )

    users: Mapped[list["User"]] = relationship(back_populates="organization")
    voters: Mapped[list["Voter"]] = relationship(back_populates="organization")


class User(Base):
    """
    A member of exactly one organization.

    Created by invite (or provisioning); never deleted, only role and
    contact fields change.
    """

    __tablename__ = "users"
    __table_args__ = (Index("idx_users_org_role", "organization_id", "role"),)

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    role: Mapped[str] = mapped_column(
        String(20), default=Role.CANVASSER.value, nullable=False
    )

    # Last known location reported by the field app
    location_lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    location_lng: Mapped[float | None] = mapped_column(Float, nullable=True)
    location_updated_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, onupdate=utcnow, nullable=False
    )

    organization: Mapped["Organization"] = relationship(back_populates="users")
