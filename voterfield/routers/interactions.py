"""Interaction ledger endpoints."""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from voterfield.core.deps import get_current_session, get_db
from voterfield.core.rate_limit import SYNC_LIMIT, limiter
from voterfield.db.models import Interaction
from voterfield.schemas.auth import UserSession
from voterfield.schemas.interaction import (
    BulkInsertResponse,
    InteractionCreate,
    InteractionRead,
)
from voterfield.services import interaction_service
from voterfield.services.interaction_service import (
    InteractionNotFoundError,
    InteractionPersistenceError,
)
from voterfield.utils.pagination import PageParams, get_page_params

router = APIRouter(prefix="/interactions", tags=["interactions"])


def _to_read(interaction: Interaction, survey_responses: dict | None) -> InteractionRead:
    return InteractionRead(
        id=interaction.id,
        organization_id=interaction.organization_id,
        user_id=interaction.user_id,
        client_interaction_uuid=interaction.client_interaction_uuid,
        voter_id=interaction.voter_id,
        assignment_id=interaction.assignment_id,
        occurred_at=interaction.occurred_at,
        channel=interaction.channel,
        result_code=interaction.result_code,
        notes=interaction.notes,
        survey_responses=survey_responses,
    )


@router.get("", response_model=list[InteractionRead], response_model_exclude_none=True)
def list_interactions(
    voter_id: UUID | None = None,
    page: PageParams = Depends(get_page_params),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Most recent first."""
    rows = interaction_service.list_interactions(
        db, session.org_id, voter_id=voter_id, limit=page.limit, offset=page.offset
    )
    return [_to_read(i, responses) for i, responses in rows]


@router.post(
    "",
    response_model=InteractionRead,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
def log_interaction(
    data: InteractionCreate,
    response: Response,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """
    Idempotent by client_interaction_uuid: a replay returns the stored
    interaction with 200 instead of 201.
    """
    try:
        logged = interaction_service.log_interaction(db, session.org_id, session.user_id, data)
    except InteractionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InteractionPersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if not logged.created:
        response.status_code = status.HTTP_200_OK
    return _to_read(logged.interaction, logged.survey_responses)


@router.post("/bulk", response_model=BulkInsertResponse)
@limiter.limit(SYNC_LIMIT)
def log_interactions_bulk(
    request: Request,
    items: list[Any] = Body(...),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Best-effort batch; malformed or duplicate items are skipped silently."""
    try:
        inserted = interaction_service.log_interactions_bulk(
            db, session.org_id, session.user_id, items
        )
    except InteractionPersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return BulkInsertResponse(inserted=inserted)
