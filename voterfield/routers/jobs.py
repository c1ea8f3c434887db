"""Background job endpoints: import/export submission and polling."""

from typing import Any
from uuid import UUID

from fastapi import (
    APIRouter,
    Body,
    Depends,
    File,
    HTTPException,
    Query,
    Request,
    UploadFile,
    status,
)
from sqlalchemy.orm import Session

from voterfield.core.config import settings
from voterfield.core.deps import get_current_session, get_db, require_roles
from voterfield.core.rate_limit import IMPORT_LIMIT, limiter
from voterfield.db.enums import JobStatus, JobType, Role
from voterfield.schemas.auth import UserSession
from voterfield.schemas.job import JobRead
from voterfield.services import export_service, import_service, job_service
from voterfield.services.import_service import ImportValidationError
from voterfield.services.storage_service import StorageError

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.get("", response_model=list[JobRead])
def list_jobs(
    status_filter: JobStatus | None = Query(None, alias="status"),
    job_type: JobType | None = Query(None, alias="type"),
    limit: int = Query(50, ge=1, le=200),
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    """Recent jobs for the organization."""
    return job_service.list_jobs(
        db, session.org_id, status=status_filter, job_type=job_type, limit=limit
    )


@router.get("/{job_id}", response_model=JobRead)
def get_job(
    job_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Current job snapshot; poll until completed or failed."""
    job = job_service.get_job(db, job_id, session.org_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@router.post("/import-voters", response_model=JobRead, status_code=status.HTTP_202_ACCEPTED)
@limiter.limit(IMPORT_LIMIT)
def import_voters(
    request: Request,
    records: list[Any] = Body(...),
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    """Queue an import of an inline array of voter records."""
    try:
        return import_service.submit_inline_import(db, session.org_id, session.user_id, records)
    except ImportValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post(
    "/import-voters/upload", response_model=JobRead, status_code=status.HTTP_202_ACCEPTED
)
@limiter.limit(IMPORT_LIMIT)
async def import_voters_upload(
    request: Request,
    file: UploadFile = File(...),
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    """Stage an uploaded CSV and queue its import."""
    data = await file.read(settings.MAX_UPLOAD_BYTES + 1)
    try:
        return import_service.submit_file_import(
            db, session.org_id, session.user_id, file.filename, data
        )
    except ImportValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageError:
        raise HTTPException(status_code=503, detail="File storage unavailable")


@router.post("/export", response_model=JobRead, status_code=status.HTTP_202_ACCEPTED)
def export_voters(
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    """Queue a CSV export of the voter registry."""
    return export_service.submit_export(db, session.org_id, session.user_id)
