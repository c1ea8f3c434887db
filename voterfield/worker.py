"""
Background worker for processing queued jobs.

Usage:
    python -m voterfield.worker

Polls the jobs table for pending work, claims each job with a
conditional update, and dispatches it through the handler registry.
Run as a separate process (e.g., systemd service, Docker container).
"""

import asyncio
import logging

from voterfield.core.config import settings
from voterfield.core.structured_logging import build_log_context, configure_logging
from voterfield.db.enums import EventType, JobType
from voterfield.db.session import SessionLocal
from voterfield.jobs.registry import resolve_job_handler
from voterfield.services import event_service, job_service

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = settings.WORKER_POLL_INTERVAL
BATCH_SIZE = settings.WORKER_BATCH_SIZE

_FAILED_EVENTS = {
    JobType.IMPORT_VOTERS.value: EventType.IMPORT_FAILED,
    JobType.EXPORT_DATA.value: EventType.EXPORT_FAILED,
}


async def process_job(db, job) -> None:
    """Process a single claimed job based on its type."""
    logger.info(
        "Processing job %s (type=%s)",
        job.id,
        job.job_type,
        extra=build_log_context(org_id=str(job.organization_id), job_id=str(job.id)),
    )
    handler = resolve_job_handler(job.job_type)
    await handler(db, job)


def _emit_failed(db, job) -> None:
    event_type = _FAILED_EVENTS.get(job.job_type)
    if event_type:
        event_service.emit_event(
            db, job.organization_id, event_type, job.user_id,
            {"job_id": job.id, "error": job.error},
        )


def sweep_stale_jobs(db) -> int:
    """Force-fail processing jobs past JOB_MAX_RUNTIME_SECONDS."""
    stale = job_service.fail_stale_jobs(db, settings.JOB_MAX_RUNTIME_SECONDS)
    for job in stale:
        logger.warning("Job %s exceeded max runtime; marked failed", job.id)
        _emit_failed(db, job)
    return len(stale)


async def run_once(db, batch_size: int = BATCH_SIZE) -> int:
    """
    One poll cycle. Returns the number of jobs this worker claimed.
    """
    sweep_stale_jobs(db)

    jobs = job_service.get_pending_jobs(db, limit=batch_size)
    if jobs:
        logger.info("Found %d pending jobs", len(jobs))

    claimed = 0
    for job in jobs:
        if not job_service.claim_job(db, job):
            continue
        claimed += 1
        try:
            await process_job(db, job)
            logger.info("Job %s finished with status %s", job.id, job.status)
        except Exception as e:
            db.rollback()
            db.refresh(job)
            logger.error("Job %s failed: %s", job.id, type(e).__name__)
            # Handlers normally record their own failure; cover the ones that didn't
            if job_service.mark_job_failed(db, job, str(e) or type(e).__name__):
                _emit_failed(db, job)
    return claimed


async def worker_loop() -> None:
    """Main worker loop - polls for and processes pending jobs."""
    logger.info(
        "Worker starting (poll interval: %ss, batch size: %s)",
        POLL_INTERVAL_SECONDS,
        BATCH_SIZE,
    )
    while True:
        with SessionLocal() as db:
            try:
                await run_once(db)
            except Exception as e:
                logger.error("Error in worker loop: %s", e)
        await asyncio.sleep(POLL_INTERVAL_SECONDS)


def main() -> None:
    """Entry point for the worker."""
    configure_logging()
    try:
        asyncio.run(worker_loop())
    except KeyboardInterrupt:
        logger.info("Worker shutting down")
    except Exception:
        logger.exception(
            "Worker crashed",
            extra=build_log_context(route="worker", method="background"),
        )
        raise


if __name__ == "__main__":
    main()
