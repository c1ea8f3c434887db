"""Voter registry endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from voterfield.core.deps import get_current_session, get_db
from voterfield.schemas.auth import UserSession
from voterfield.schemas.voter import (
    GeoPoint,
    VoterCreate,
    VoterListResponse,
    VoterRead,
    VoterUpdate,
)
from voterfield.services import org_service, voter_service
from voterfield.services.org_service import OrgLimitReachedError
from voterfield.services.voter_service import (
    DuplicateExternalIdError,
    RadiusFilter,
    VoterNotFoundError,
    VoterValidationError,
    VoterWithProjection,
)
from voterfield.utils.pagination import PageParams, get_page_params

router = APIRouter(prefix="/voters", tags=["voters"])


def _voter_to_read(row: VoterWithProjection) -> VoterRead:
    voter = row.voter
    return VoterRead(
        id=voter.id,
        organization_id=voter.organization_id,
        external_id=voter.external_id,
        first_name=voter.first_name,
        middle_name=voter.middle_name,
        last_name=voter.last_name,
        suffix=voter.suffix,
        age=voter.age,
        gender=voter.gender,
        race=voter.race,
        party=voter.party,
        phone=voter.phone,
        email=voter.email,
        address=voter.address,
        unit=voter.unit,
        city=voter.city,
        state=voter.state,
        zip_code=voter.zip_code,
        geom=GeoPoint(lat=voter.latitude, lng=voter.longitude),
        last_interaction_status=row.last_interaction_status,
        last_interaction_time=row.last_interaction_time,
        created_at=voter.created_at,
        updated_at=voter.updated_at,
    )


@router.get("", response_model=VoterListResponse, response_model_exclude_none=True)
def list_voters(
    search: str | None = Query(None, max_length=200),
    near_lat: float | None = Query(None, ge=-90, le=90),
    near_lng: float | None = Query(None, ge=-180, le=180),
    radius_km: float | None = Query(None, gt=0, le=500),
    page: PageParams = Depends(get_page_params),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """
    Voters ordered by last name, first name, with their latest interaction.

    near_lat/near_lng/radius_km must be given together.
    """
    radius_args = (near_lat, near_lng, radius_km)
    near = None
    if any(arg is not None for arg in radius_args):
        if any(arg is None for arg in radius_args):
            raise HTTPException(
                status_code=400,
                detail="near_lat, near_lng and radius_km must be provided together",
            )
        near = RadiusFilter(near_lat, near_lng, radius_km)

    rows = voter_service.list_voters(
        db, session.org_id, search=search, limit=page.limit, offset=page.offset, near=near
    )
    return VoterListResponse(
        items=[_voter_to_read(r) for r in rows], limit=page.limit, offset=page.offset
    )


@router.get("/{voter_id}", response_model=VoterRead, response_model_exclude_none=True)
def get_voter(
    voter_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    row = voter_service.get_voter(db, session.org_id, voter_id)
    if not row:
        raise HTTPException(status_code=404, detail="Voter not found")
    return _voter_to_read(row)


@router.post(
    "",
    response_model=VoterRead,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
def create_voter(
    data: VoterCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Manual entry. first_name, last_name and address are required."""
    org = org_service.get_org(db, session.org_id)
    try:
        row = voter_service.create_voter(
            db, org, session.user_id, data.model_dump(exclude_unset=True)
        )
    except VoterValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DuplicateExternalIdError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except OrgLimitReachedError as e:
        raise HTTPException(status_code=403, detail=str(e))
    return _voter_to_read(row)


@router.patch("/{voter_id}", response_model=VoterRead, response_model_exclude_none=True)
def update_voter(
    voter_id: UUID,
    data: VoterUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Partial update of whitelisted fields."""
    try:
        row = voter_service.update_voter(
            db, session.org_id, session.user_id, voter_id, data.model_dump(exclude_unset=True)
        )
    except VoterValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except VoterNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _voter_to_read(row)
