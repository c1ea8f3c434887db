"""Interaction ledger service - append-only canvass outcomes.

Idempotency is enforced by the storage layer: a unique constraint on
(organization_id, client_interaction_uuid) plus INSERT ... ON CONFLICT
DO NOTHING. No check-then-insert race is possible; when the insert
returns no id the key already existed and the stored row is returned.

A single write is one transaction: interaction row, survey response,
audit entry, event, assignment progression, org activity. Any failure
rolls the whole unit back.
"""

import logging
from datetime import timezone
from typing import Any, NamedTuple
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from voterfield.db.enums import AuditAction, EventType
from voterfield.db.models import (
    Assignment,
    Interaction,
    InteractionSurveyResponse,
    Voter,
)
from voterfield.db.upsert import insert_for
from voterfield.schemas.interaction import InteractionCreate
from voterfield.services import assignment_service, audit_service, event_service, org_service

logger = logging.getLogger(__name__)


class InteractionServiceError(Exception):
    pass


class InteractionNotFoundError(InteractionServiceError):
    """Referenced voter or assignment absent in this org."""


class InteractionPersistenceError(InteractionServiceError):
    """The atomic write failed and was rolled back."""


class LoggedInteraction(NamedTuple):
    interaction: Interaction
    survey_responses: dict[str, Any] | None
    created: bool


def _as_utc(payload: InteractionCreate) -> InteractionCreate:
    occurred = payload.occurred_at
    if occurred.tzinfo is None:
        occurred = occurred.replace(tzinfo=timezone.utc)
    else:
        occurred = occurred.astimezone(timezone.utc)
    return payload.model_copy(update={"occurred_at": occurred})


def get_by_client_uuid(db: Session, org_id: UUID, client_uuid: UUID) -> Interaction | None:
    return db.execute(
        select(Interaction).where(
            Interaction.organization_id == org_id,
            Interaction.client_interaction_uuid == client_uuid,
        )
    ).scalar_one_or_none()


def get_survey_responses(db: Session, interaction_ids: list[UUID]) -> dict[UUID, dict]:
    if not interaction_ids:
        return {}
    rows = db.execute(
        select(
            InteractionSurveyResponse.interaction_id, InteractionSurveyResponse.responses
        ).where(InteractionSurveyResponse.interaction_id.in_(interaction_ids))
    ).all()
    return {row.interaction_id: row.responses for row in rows}


def _voter_in_org(db: Session, org_id: UUID, voter_id: UUID) -> bool:
    return db.execute(
        select(Voter.id).where(Voter.id == voter_id, Voter.organization_id == org_id)
    ).first() is not None


def _assignment_in_org(db: Session, org_id: UUID, assignment_id: UUID) -> Assignment | None:
    return db.execute(
        select(Assignment).where(
            Assignment.id == assignment_id, Assignment.organization_id == org_id
        )
    ).scalar_one_or_none()


def _insert_or_ignore(
    db: Session, org_id: UUID, user_id: UUID, payload: InteractionCreate
) -> UUID | None:
    """Insert one ledger row; None when the client key already exists."""
    stmt = (
        insert_for(db, Interaction)
        .values(
            organization_id=org_id,
            client_interaction_uuid=payload.client_interaction_uuid,
            user_id=user_id,
            voter_id=payload.voter_id,
            assignment_id=payload.assignment_id,
            occurred_at=payload.occurred_at,
            channel=payload.channel.value,
            result_code=payload.result_code.value,
            notes=payload.notes,
        )
        .on_conflict_do_nothing(
            index_elements=[Interaction.organization_id, Interaction.client_interaction_uuid]
        )
        .returning(Interaction.id)
    )
    return db.execute(stmt).scalar_one_or_none()


def _stage_side_effects(
    db: Session,
    org_id: UUID,
    user_id: UUID,
    interaction_id: UUID,
    payload: InteractionCreate,
    assignment: Assignment | None,
) -> None:
    """Rows that must commit together with the interaction."""
    if payload.survey_responses:
        db.add(
            InteractionSurveyResponse(
                organization_id=org_id,
                interaction_id=interaction_id,
                responses=payload.survey_responses,
            )
        )
    details = {
        "interaction_id": interaction_id,
        "voter_id": payload.voter_id,
        "result_code": payload.result_code.value,
    }
    audit_service.append_audit(db, org_id, AuditAction.INTERACTION_CREATE, user_id, details)
    event_service.append_event(db, org_id, EventType.INTERACTION_CREATED, user_id, details)
    if assignment is not None:
        assignment_service.advance_on_interaction(db, assignment, user_id)
    org_service.touch_activity(db, org_id)


def log_interaction(
    db: Session, org_id: UUID, user_id: UUID, payload: InteractionCreate
) -> LoggedInteraction:
    """
    Idempotent single write.

    A replay with a known client key returns the stored interaction
    unchanged (created=False). Field validation happens in the schema
    before this is called.

    Raises:
        InteractionNotFoundError: voter or assignment not in this org
        InteractionPersistenceError: atomic write failed (rolled back)
    """
    payload = _as_utc(payload)

    existing = get_by_client_uuid(db, org_id, payload.client_interaction_uuid)
    if existing:
        return _replayed(db, existing)

    if not _voter_in_org(db, org_id, payload.voter_id):
        raise InteractionNotFoundError("Voter not found")
    assignment = None
    if payload.assignment_id is not None:
        assignment = _assignment_in_org(db, org_id, payload.assignment_id)
        if assignment is None:
            raise InteractionNotFoundError("Assignment not found")

    try:
        interaction_id = _insert_or_ignore(db, org_id, user_id, payload)
        if interaction_id is None:
            # Lost a race with a concurrent submission of the same key
            db.rollback()
            existing = get_by_client_uuid(db, org_id, payload.client_interaction_uuid)
            if existing is None:
                raise InteractionPersistenceError("Failed to log interaction")
            return _replayed(db, existing)
        _stage_side_effects(db, org_id, user_id, interaction_id, payload, assignment)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            "Interaction write rolled back: %s",
            exc.__class__.__name__,
            extra={"org_id": str(org_id), "user_id": str(user_id)},
        )
        raise InteractionPersistenceError("Failed to log interaction") from exc

    interaction = db.get(Interaction, interaction_id)
    return LoggedInteraction(interaction, payload.survey_responses or None, True)


def _replayed(db: Session, interaction: Interaction) -> LoggedInteraction:
    responses = get_survey_responses(db, [interaction.id]).get(interaction.id)
    return LoggedInteraction(interaction, responses, False)


def parse_bulk_item(raw: Any) -> InteractionCreate | None:
    """Validated payload, or None for a malformed item (dropped silently)."""
    if not isinstance(raw, dict):
        return None
    try:
        return _as_utc(InteractionCreate.model_validate(raw))
    except ValidationError:
        return None


def log_interactions_bulk(
    db: Session, org_id: UUID, user_id: UUID, items: list[Any]
) -> int:
    """
    Best-effort batch. Returns the number of newly inserted interactions.

    Malformed items, items referencing voters/assignments outside the
    org, repeated keys inside the batch, and already-stored keys are
    all skipped without error. The surviving inserts and their side
    effects commit as one transaction.

    Raises:
        InteractionPersistenceError: the batch transaction failed
    """
    candidates: dict[UUID, InteractionCreate] = {}
    for raw in items:
        payload = parse_bulk_item(raw)
        if payload is None or payload.client_interaction_uuid in candidates:
            continue
        candidates[payload.client_interaction_uuid] = payload
    if not candidates:
        return 0

    voter_ids = {p.voter_id for p in candidates.values()}
    known_voters = set(
        db.execute(
            select(Voter.id).where(Voter.organization_id == org_id, Voter.id.in_(voter_ids))
        ).scalars()
    )
    assignment_ids = {p.assignment_id for p in candidates.values() if p.assignment_id}
    assignments = {}
    if assignment_ids:
        assignments = {
            a.id: a
            for a in db.execute(
                select(Assignment).where(
                    Assignment.organization_id == org_id, Assignment.id.in_(assignment_ids)
                )
            ).scalars()
        }

    # Order by occurrence so assignment progression sees events in sequence
    ordered = sorted(candidates.values(), key=lambda p: p.occurred_at)
    inserted = 0
    try:
        for payload in ordered:
            if payload.voter_id not in known_voters:
                continue
            assignment = None
            if payload.assignment_id is not None:
                assignment = assignments.get(payload.assignment_id)
                if assignment is None:
                    continue
            interaction_id = _insert_or_ignore(db, org_id, user_id, payload)
            if interaction_id is None:
                continue
            _stage_side_effects(db, org_id, user_id, interaction_id, payload, assignment)
            inserted += 1
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            "Bulk interaction write rolled back: %s",
            exc.__class__.__name__,
            extra={"org_id": str(org_id), "user_id": str(user_id)},
        )
        raise InteractionPersistenceError("Failed to log interactions") from exc

    logger.info(
        "Bulk interactions: %d submitted, %d inserted",
        len(items),
        inserted,
        extra={"org_id": str(org_id)},
    )
    return inserted


def list_interactions(
    db: Session,
    org_id: UUID,
    voter_id: UUID | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[tuple[Interaction, dict | None]]:
    """Most recent first."""
    query = select(Interaction).where(Interaction.organization_id == org_id)
    if voter_id is not None:
        query = query.where(Interaction.voter_id == voter_id)
    query = query.order_by(
        Interaction.occurred_at.desc(), Interaction.created_at.desc(), Interaction.id.desc()
    )
    interactions = list(db.execute(query.limit(limit).offset(offset)).scalars().all())
    responses = get_survey_responses(db, [i.id for i in interactions])
    return [(i, responses.get(i.id)) for i in interactions]
