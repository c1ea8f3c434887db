"""Assignment endpoints."""

from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from voterfield.core.deps import get_current_session, get_db, require_roles
from voterfield.db.enums import Role
from voterfield.schemas.auth import UserSession
from voterfield.schemas.walk_list import (
    AssignmentCreate,
    AssignmentRead,
    AssignmentStatusUpdate,
)
from voterfield.services import assignment_service
from voterfield.services.assignment_service import (
    AssignmentNotFoundError,
    AssignmentValidationError,
    InvalidTransitionError,
)

router = APIRouter(prefix="/assignments", tags=["assignments"])


@router.get("", response_model=list[AssignmentRead])
def list_assignments(
    scope: Literal["org", "me"] = "me",
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """scope=org lists every assignment (admin only); scope=me the caller's."""
    if scope == "org":
        if session.role != Role.ADMIN:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return assignment_service.list_assignments(db, session.org_id)
    return assignment_service.list_assignments(db, session.org_id, canvasser_id=session.user_id)


@router.post("", response_model=AssignmentRead, status_code=status.HTTP_201_CREATED)
def create_assignment(
    data: AssignmentCreate,
    response: Response,
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    """Assign a list; assigning an already-assigned list replaces the canvasser."""
    try:
        assignment, created = assignment_service.create_assignment(
            db, session.org_id, session.user_id, data.list_id, data.canvasser_id
        )
    except AssignmentValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AssignmentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    if not created:
        response.status_code = status.HTTP_200_OK
    return assignment


@router.patch("/{assignment_id}/status", response_model=AssignmentRead)
def update_assignment_status(
    assignment_id: UUID,
    data: AssignmentStatusUpdate,
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    try:
        return assignment_service.transition_status(
            db, session.org_id, session.user_id, assignment_id, data.status
        )
    except AssignmentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
