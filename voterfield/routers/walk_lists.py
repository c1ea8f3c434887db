"""Walk list endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from voterfield.core.deps import get_current_session, get_db, require_roles
from voterfield.db.enums import Role
from voterfield.schemas.auth import UserSession
from voterfield.schemas.walk_list import WalkListCreate, WalkListRead
from voterfield.services import walk_list_service
from voterfield.services.walk_list_service import WalkListValidationError

router = APIRouter(prefix="/lists", tags=["lists"])


@router.get("", response_model=list[WalkListRead])
def list_walk_lists(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return walk_list_service.list_walk_lists(db, session.org_id)


@router.get("/{list_id}", response_model=WalkListRead)
def get_walk_list(
    list_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    walk_list = walk_list_service.get_walk_list(db, session.org_id, list_id)
    if not walk_list:
        raise HTTPException(status_code=404, detail="List not found")
    return walk_list


@router.post("", response_model=WalkListRead, status_code=status.HTTP_201_CREATED)
def create_walk_list(
    data: WalkListCreate,
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    try:
        return walk_list_service.create_walk_list(
            db, session.org_id, session.user_id, data.name, data.voter_ids
        )
    except WalkListValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
