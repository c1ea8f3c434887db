"""Voter export - CSV snapshot of an org's registry written to storage."""

import csv
import io
import logging
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from voterfield.db.enums import AuditAction, EventType, JobType
from voterfield.db.models import Job, Voter
from voterfield.db.types import utcnow
from voterfield.services import audit_service, event_service, job_service, storage_service

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = (
    "external_id",
    "first_name",
    "middle_name",
    "last_name",
    "suffix",
    "age",
    "gender",
    "race",
    "party",
    "phone",
    "email",
    "address",
    "unit",
    "city",
    "state",
    "zip_code",
    "latitude",
    "longitude",
)


def submit_export(db: Session, org_id: UUID, user_id: UUID) -> Job:
    job = job_service.schedule_job(
        db, org_id, user_id, JobType.EXPORT_DATA, payload={"entity": "voters"}
    )
    audit_service.log_audit(db, org_id, AuditAction.EXPORT_CREATE, user_id, {"job_id": job.id})
    event_service.emit_event(db, org_id, EventType.EXPORT_STARTED, user_id, {"job_id": job.id})
    return job


def build_voters_csv(db: Session, org_id: UUID) -> tuple[bytes, int]:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_COLUMNS)
    count = 0
    voters = db.execute(
        select(Voter)
        .where(Voter.organization_id == org_id)
        .order_by(Voter.last_name, Voter.first_name, Voter.id)
        .execution_options(yield_per=1000)
    ).scalars()
    for voter in voters:
        writer.writerow(
            ["" if getattr(voter, col) is None else getattr(voter, col) for col in EXPORT_COLUMNS]
        )
        count += 1
    return buffer.getvalue().encode("utf-8"), count


def run_export_job(db: Session, job: Job) -> dict[str, Any] | None:
    """
    Generate the export for a claimed job and move it to a terminal state.

    Returns None when the job was force-failed while the file was being
    written; the object stays in storage but no completion is recorded.
    """
    try:
        data, count = build_voters_csv(db, job.organization_id)
        stamp = utcnow().strftime("%Y%m%dT%H%M%SZ")
        file_key = f"exports/{job.organization_id}/voters-{stamp}-{job.id}.csv"
        storage_service.put_object(file_key, data, content_type="text/csv")
    except Exception as exc:
        db.rollback()
        if job_service.mark_job_failed(db, job, str(exc) or exc.__class__.__name__):
            event_service.emit_event(
                db, job.organization_id, EventType.EXPORT_FAILED, job.user_id,
                {"job_id": job.id, "error": job.error},
            )
        raise

    result = {"file_key": file_key, "record_count": count}
    if not job_service.mark_job_completed(db, job, result):
        logger.warning("Export %s is %s; leaving %s unreferenced", job.id, job.status, file_key)
        return None
    event_service.emit_event(
        db, job.organization_id, EventType.EXPORT_COMPLETED, job.user_id, {"job_id": job.id, **result}
    )
    return result
