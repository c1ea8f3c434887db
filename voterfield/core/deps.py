"""FastAPI dependencies for authentication, authorization, and database access."""

from typing import Generator

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from voterfield.db.session import SessionLocal
from voterfield.schemas.auth import UserSession

BEARER_PREFIX = "bearer "


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("authorization", "")
    if not header.lower().startswith(BEARER_PREFIX):
        return None
    token = header[len(BEARER_PREFIX):].strip()
    return token or None


def get_current_session(
    request: Request,
    db: Session = Depends(get_db),
) -> UserSession:
    """
    Resolve the caller's {user_id, org_id, role} from the bearer token.

    This is the PRIMARY auth dependency for every endpoint.

    Raises:
        HTTPException 401: missing/invalid credential
        HTTPException 403: organization not active
    """
    from voterfield.services import auth_service

    token = _bearer_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Missing token")

    try:
        session = auth_service.resolve_session(db, token)
    except auth_service.InvalidCredentialError:
        raise HTTPException(status_code=401, detail="Invalid token")
    except auth_service.OrgInactiveError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except auth_service.RoleNotPermittedError as e:
        raise HTTPException(status_code=403, detail=str(e))

    request.state.user_id = str(session.user_id)
    request.state.org_id = str(session.org_id)
    return session


def require_roles(allowed_roles: list):
    """
    Dependency factory for role-based authorization.

    Usage:
        @router.post("/lists", dependencies=[Depends(require_roles([Role.ADMIN]))])
    """
    def dependency(session: UserSession = Depends(get_current_session)) -> UserSession:
        if session.role not in allowed_roles:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return session
    return dependency
