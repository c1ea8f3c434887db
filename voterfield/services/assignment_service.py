"""Assignment service - binds walk lists to canvassers.

One assignment per (org, list): assigning a list again re-points the
existing row to the new canvasser and resets it to assigned.
Status moves through ASSIGNMENT_TRANSITIONS, driven by interaction
activity or by an admin override.
"""

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from voterfield.db.enums import (
    ASSIGNMENT_TRANSITIONS,
    AssignmentStatus,
    AuditAction,
    EventType,
)
from voterfield.db.models import Assignment, Interaction, User, WalkListVoter
from voterfield.db.types import utcnow
from voterfield.db.upsert import insert_for
from voterfield.services import audit_service, event_service, walk_list_service

logger = logging.getLogger(__name__)


class AssignmentServiceError(Exception):
    pass


class AssignmentNotFoundError(AssignmentServiceError):
    pass


class AssignmentValidationError(AssignmentServiceError):
    pass


class InvalidTransitionError(AssignmentServiceError):
    pass


def list_assignments(
    db: Session, org_id: UUID, canvasser_id: UUID | None = None
) -> list[Assignment]:
    query = select(Assignment).where(Assignment.organization_id == org_id)
    if canvasser_id is not None:
        query = query.where(Assignment.canvasser_id == canvasser_id)
    return list(db.execute(query.order_by(Assignment.created_at.desc())).scalars().all())


def get_assignment(db: Session, org_id: UUID, assignment_id: UUID) -> Assignment | None:
    return db.execute(
        select(Assignment).where(
            Assignment.id == assignment_id, Assignment.organization_id == org_id
        )
    ).scalar_one_or_none()


def create_assignment(
    db: Session,
    org_id: UUID,
    user_id: UUID,
    list_id: UUID | None,
    canvasser_id: UUID | None,
) -> tuple[Assignment, bool]:
    """
    Assign a list to a canvasser (upsert by org + list). Commits.

    Returns (assignment, created) where created is False on reassignment.

    Raises:
        AssignmentValidationError: list_id or canvasser_id missing
        AssignmentNotFoundError: list or canvasser not in this org
    """
    if list_id is None or canvasser_id is None:
        raise AssignmentValidationError("list_id and canvasser_id are required")

    if not walk_list_service.get_walk_list(db, org_id, list_id):
        raise AssignmentNotFoundError("List not found")
    canvasser = db.execute(
        select(User).where(User.id == canvasser_id, User.organization_id == org_id)
    ).scalar_one_or_none()
    if not canvasser:
        raise AssignmentNotFoundError("Canvasser not found")

    existing_id = db.execute(
        select(Assignment.id).where(
            Assignment.organization_id == org_id, Assignment.walk_list_id == list_id
        )
    ).scalar_one_or_none()

    now = utcnow()
    stmt = insert_for(db, Assignment).values(
        organization_id=org_id,
        walk_list_id=list_id,
        canvasser_id=canvasser_id,
        assigned_by_user_id=user_id,
        status=AssignmentStatus.ASSIGNED.value,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[Assignment.organization_id, Assignment.walk_list_id],
        set_={
            "canvasser_id": stmt.excluded.canvasser_id,
            "assigned_by_user_id": stmt.excluded.assigned_by_user_id,
            "status": AssignmentStatus.ASSIGNED.value,
            "updated_at": now,
        },
    ).returning(Assignment.id)
    assignment_id = db.execute(stmt).scalar_one()
    db.commit()

    assignment = get_assignment(db, org_id, assignment_id)
    created = existing_id is None

    event_service.emit_event(
        db,
        org_id,
        EventType.ASSIGNMENT_CREATED if created else EventType.ASSIGNMENT_REASSIGNED,
        user_id,
        {"assignment_id": assignment_id, "list_id": list_id, "canvasser_id": canvasser_id},
    )
    audit_service.log_audit(
        db,
        org_id,
        AuditAction.ASSIGNMENT_CREATE,
        user_id,
        {
            "assignment_id": assignment_id,
            "list_id": list_id,
            "canvasser_id": canvasser_id,
            "reassigned": not created,
        },
    )
    return assignment, created


def can_transition(current: AssignmentStatus, target: AssignmentStatus) -> bool:
    return target in ASSIGNMENT_TRANSITIONS.get(current, frozenset())


def _apply_transition(
    db: Session,
    assignment: Assignment,
    target: AssignmentStatus,
    user_id: UUID | None,
    reason: str,
) -> None:
    """Set status and stage the event/audit rows. Caller commits."""
    previous = assignment.status
    assignment.status = target.value
    assignment.updated_at = utcnow()
    details = {
        "assignment_id": assignment.id,
        "from": previous,
        "to": target.value,
        "reason": reason,
    }
    event_service.append_event(
        db, assignment.organization_id, EventType.ASSIGNMENT_STATUS_CHANGED, user_id, details
    )
    audit_service.append_audit(
        db, assignment.organization_id, AuditAction.ASSIGNMENT_STATUS_CHANGE, user_id, details
    )


def transition_status(
    db: Session,
    org_id: UUID,
    user_id: UUID,
    assignment_id: UUID,
    target: AssignmentStatus,
) -> Assignment:
    """
    Admin override. Commits.

    Raises:
        AssignmentNotFoundError: unknown or foreign assignment
        InvalidTransitionError: target not reachable from current status
    """
    assignment = get_assignment(db, org_id, assignment_id)
    if not assignment:
        raise AssignmentNotFoundError("Assignment not found")
    current = AssignmentStatus(assignment.status)
    if current == target:
        return assignment
    if not can_transition(current, target):
        raise InvalidTransitionError(
            f"Cannot move assignment from {current.value} to {target.value}"
        )
    _apply_transition(db, assignment, target, user_id, reason="admin_override")
    db.commit()
    db.refresh(assignment)
    return assignment


def advance_on_interaction(db: Session, assignment: Assignment, user_id: UUID) -> None:
    """
    Progress an assignment after an interaction was staged against it.

    Runs inside the interaction transaction (flush only):
    - assigned -> in_progress on first activity
    - -> completed once every voter on the list has an interaction
    """
    current = AssignmentStatus(assignment.status)
    if current == AssignmentStatus.COMPLETED:
        return

    if _all_list_voters_contacted(db, assignment):
        _apply_transition(db, assignment, AssignmentStatus.COMPLETED, user_id, reason="list_completed")
    elif current == AssignmentStatus.ASSIGNED:
        _apply_transition(db, assignment, AssignmentStatus.IN_PROGRESS, user_id, reason="first_interaction")


def _all_list_voters_contacted(db: Session, assignment: Assignment) -> bool:
    total = db.scalar(
        select(func.count())
        .select_from(WalkListVoter)
        .where(WalkListVoter.walk_list_id == assignment.walk_list_id)
    ) or 0
    if total == 0:
        return False
    touched = db.scalar(
        select(func.count(func.distinct(WalkListVoter.voter_id)))
        .select_from(WalkListVoter)
        .join(
            Interaction,
            (Interaction.voter_id == WalkListVoter.voter_id)
            & (Interaction.organization_id == assignment.organization_id),
        )
        .where(WalkListVoter.walk_list_id == assignment.walk_list_id)
    ) or 0
    return touched >= total
