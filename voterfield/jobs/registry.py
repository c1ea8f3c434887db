"""Job handler registry."""

from __future__ import annotations

from typing import Awaitable, Callable, Mapping

from voterfield.db.enums import JobType
from voterfield.jobs.handlers import exports, imports

JobHandler = Callable[[object, object], Awaitable[None]]

# Handlers own the terminal transition (completed/failed) of their job
JOB_HANDLERS: Mapping[str, JobHandler] = {
    JobType.IMPORT_VOTERS.value: imports.process_import_voters,
    JobType.EXPORT_DATA.value: exports.process_export_data,
}


def resolve_job_handler(job_type: str) -> JobHandler:
    handler = JOB_HANDLERS.get(job_type)
    if handler is None:
        raise ValueError(f"Unknown job type: {job_type}")
    return handler
