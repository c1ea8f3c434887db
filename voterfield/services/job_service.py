"""Job service - job records double as the work queue.

Lifecycle: pending -> processing -> completed | failed. Terminal states
are final; failed jobs are reported, never retried.
"""

from datetime import timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from voterfield.db.enums import JobStatus, JobType
from voterfield.db.models import Job
from voterfield.db.types import utcnow


def schedule_job(
    db: Session,
    org_id: UUID,
    user_id: UUID | None,
    job_type: JobType,
    payload: dict[str, Any],
    metadata: dict[str, Any] | None = None,
) -> Job:
    """
    Create a pending job. Commits, so the worker can see it as soon
    as this returns.
    """
    job = Job(
        organization_id=org_id,
        user_id=user_id,
        job_type=job_type.value,
        payload=payload,
        job_metadata=metadata or {},
        status=JobStatus.PENDING.value,
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    return job


def get_pending_jobs(db: Session, limit: int = 10) -> list[Job]:
    """Pending jobs, oldest first."""
    return list(
        db.execute(
            select(Job)
            .where(Job.status == JobStatus.PENDING.value)
            .order_by(Job.created_at)
            .limit(limit)
        )
        .scalars()
        .all()
    )


def get_job(db: Session, job_id: UUID, org_id: UUID | None = None) -> Job | None:
    """Get a job by ID, optionally scoped to org."""
    query = select(Job).where(Job.id == job_id)
    if org_id:
        query = query.where(Job.organization_id == org_id)
    return db.execute(query).scalar_one_or_none()


def list_jobs(
    db: Session,
    org_id: UUID,
    status: JobStatus | None = None,
    job_type: JobType | None = None,
    limit: int = 50,
) -> list[Job]:
    """List jobs for an organization with optional filters."""
    query = select(Job).where(Job.organization_id == org_id)
    if status:
        query = query.where(Job.status == status.value)
    if job_type:
        query = query.where(Job.job_type == job_type.value)
    return list(
        db.execute(query.order_by(Job.created_at.desc()).limit(limit)).scalars().all()
    )


def claim_job(db: Session, job: Job) -> bool:
    """
    Move pending -> processing.

    Conditional update so two workers cannot both claim the same job.
    Returns False if another worker got there first.
    """
    now = utcnow()
    result = db.execute(
        update(Job)
        .where(Job.id == job.id, Job.status == JobStatus.PENDING.value)
        .values(status=JobStatus.PROCESSING.value, started_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    if result.rowcount != 1:
        return False
    db.refresh(job)
    return True


def _finish_job(db: Session, job: Job, **values: Any) -> bool:
    """
    Move processing -> terminal with a conditional update.

    The import upsert (if any) is still pending in the session, so the
    batch and the status flip commit together. If the job already left
    processing (stale sweep from another worker), everything pending is
    rolled back and False is returned.
    """
    result = db.execute(
        update(Job)
        .where(Job.id == job.id, Job.status == JobStatus.PROCESSING.value)
        .values(completed_at=utcnow(), updated_at=utcnow(), **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        db.refresh(job)
        return False
    db.commit()
    db.refresh(job)
    return True


def mark_job_completed(db: Session, job: Job, result: dict[str, Any]) -> bool:
    """Mark a processing job completed. False if it was already terminal."""
    return _finish_job(
        db, job, status=JobStatus.COMPLETED.value, result=result, error=None
    )


def mark_job_failed(db: Session, job: Job, error: str) -> bool:
    """Mark a processing job failed. No retry. False if it was already terminal."""
    return _finish_job(db, job, status=JobStatus.FAILED.value, error=error[:2000])


def fail_stale_jobs(db: Session, max_runtime_seconds: int) -> list[Job]:
    """
    Force-fail processing jobs that have not been touched within
    max_runtime_seconds (worker crashed or hung).
    """
    cutoff = utcnow() - timedelta(seconds=max_runtime_seconds)
    candidates = list(
        db.execute(
            select(Job).where(
                Job.status == JobStatus.PROCESSING.value, Job.updated_at < cutoff
            )
        )
        .scalars()
        .all()
    )
    error = f"Job exceeded maximum runtime of {max_runtime_seconds}s"
    stale = []
    for job in candidates:
        now = utcnow()
        result = db.execute(
            update(Job)
            .where(
                Job.id == job.id,
                Job.status == JobStatus.PROCESSING.value,
                Job.updated_at < cutoff,
            )
            .values(status=JobStatus.FAILED.value, error=error, completed_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            stale.append(job)
    db.commit()
    for job in stale:
        db.refresh(job)
    return stale
