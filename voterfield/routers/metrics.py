"""Progress metrics endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from voterfield.core.deps import get_db, require_roles
from voterfield.db.enums import Role
from voterfield.schemas.auth import UserSession
from voterfield.schemas.metrics import MetricsSummary
from voterfield.services import metrics_service

router = APIRouter(prefix="/metrics", tags=["metrics"])


@router.get("/summary", response_model=MetricsSummary)
def get_summary(
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    return metrics_service.get_summary(db, session.org_id)
