"""Organization user roster endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from voterfield.core.deps import get_current_session, get_db, require_roles
from voterfield.db.enums import Role
from voterfield.schemas.auth import UserSession
from voterfield.schemas.org import (
    InviteUserRequest,
    ProfileUpdateRequest,
    RoleChangeRequest,
    UserRead,
)
from voterfield.services import org_service, user_service
from voterfield.services.org_service import OrgLimitReachedError
from voterfield.services.user_service import (
    DuplicateEmailError,
    UserNotFoundError,
    UserValidationError,
)

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=list[UserRead])
def list_users(
    role: Role | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    users = user_service.list_users(db, session.org_id, role)
    return [UserRead.from_user(u) for u in users]


@router.post("/invite", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def invite_user(
    data: InviteUserRequest,
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    """Add a canvasser to the organization."""
    org = org_service.get_org(db, session.org_id)
    try:
        user = user_service.invite_user(
            db, org, session.user_id, data.name, data.email, data.phone
        )
    except UserValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DuplicateEmailError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except OrgLimitReachedError as e:
        raise HTTPException(status_code=403, detail=str(e))
    return UserRead.from_user(user)


@router.patch("/me", response_model=UserRead)
def update_my_profile(
    data: ProfileUpdateRequest,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Update own name/phone or report last known location."""
    user = user_service.get_user(db, session.org_id, session.user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    location = (data.location.lat, data.location.lng) if data.location else None
    try:
        user = user_service.update_profile(
            db, user, name=data.name, phone=data.phone, location=location
        )
    except UserValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return UserRead.from_user(user)


@router.patch("/{user_id}/role", response_model=UserRead)
def change_user_role(
    user_id: UUID,
    data: RoleChangeRequest,
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    try:
        user = user_service.change_role(db, session.org_id, session.user_id, user_id, data.role)
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return UserRead.from_user(user)
