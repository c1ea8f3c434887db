"""Identity endpoints: caller context, org, role switching."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from voterfield.core.deps import get_current_session, get_db
from voterfield.schemas.auth import SwitchRoleRequest, TokenResponse, UserSession
from voterfield.schemas.org import MeResponse, OrgRead, UserRead
from voterfield.services import auth_service, org_service, user_service
from voterfield.services.auth_service import (
    InvalidCredentialError,
    InvalidRoleError,
    NoUserForRoleError,
    RoleNotPermittedError,
)

router = APIRouter(tags=["auth"])


@router.get("/me", response_model=MeResponse)
def get_me(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Current user and organization."""
    user = user_service.get_user(db, session.org_id, session.user_id)
    org = org_service.get_org(db, session.org_id)
    if not user or not org:
        raise HTTPException(status_code=401, detail="Invalid token")
    return MeResponse(user=UserRead.from_user(user), org=OrgRead.model_validate(org))


@router.get("/org", response_model=OrgRead)
def get_org(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    org = org_service.get_org(db, session.org_id)
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found")
    return org


@router.post("/auth/switch-role", response_model=TokenResponse)
def switch_role(
    data: SwitchRoleRequest,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """
    Re-issue a token for the requested role.

    Anyone can switch to canvasser or re-sign their current role;
    only admins can switch to admin.
    """
    try:
        user, token = auth_service.switch_role(db, session, data.role)
    except InvalidRoleError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RoleNotPermittedError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NoUserForRoleError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidCredentialError:
        raise HTTPException(status_code=401, detail="Invalid token")
    return TokenResponse(
        token=token, user_id=user.id, org_id=user.organization_id, role=user.role
    )
