"""Walk list and assignment models."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from voterfield.db.base import Base
from voterfield.db.enums import AssignmentStatus
from voterfield.db.types import utcnow


class WalkList(Base):
    """
    Named, fixed set of voters to canvass.

    Membership is immutable after creation.
    """

    __tablename__ = "walk_lists"
    __table_args__ = (Index("idx_walk_lists_org", "organization_id", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    members: Mapped[list["WalkListVoter"]] = relationship(
        back_populates="walk_list", cascade="all, delete-orphan", lazy="selectin"
    )

    @property
    def voter_ids(self) -> list[uuid.UUID]:
        return [member.voter_id for member in self.members]


class WalkListVoter(Base):
    """Membership row linking a voter to a walk list."""

    __tablename__ = "walk_list_voters"
    __table_args__ = (Index("idx_walk_list_voters_voter", "voter_id"),)

    walk_list_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("walk_lists.id", ondelete="CASCADE"), primary_key=True
    )
    voter_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("voters.id", ondelete="CASCADE"), primary_key=True
    )

    walk_list: Mapped["WalkList"] = relationship(back_populates="members")


class Assignment(Base):
    """
    Binding of a walk list to a canvasser.

    One assignment per list; re-assigning replaces the canvasser.
    """

    __tablename__ = "assignments"
    __table_args__ = (
        UniqueConstraint("organization_id", "walk_list_id", name="uq_assignments_org_list"),
        Index("idx_assignments_org_canvasser", "organization_id", "canvasser_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    walk_list_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("walk_lists.id", ondelete="CASCADE"), nullable=False
    )
    canvasser_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    assigned_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(20), default=AssignmentStatus.ASSIGNED.value, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, onupdate=utcnow, nullable=False
    )
