"""Import job handlers."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


async def process_import_voters(db, job) -> None:
    """
    Ingest voter records for an import_voters job.

    Payload:
        - source: "inline" (records in payload) or "file" (file_key in storage)
        - records / file_key
    """
    from voterfield.services import import_service

    try:
        result = import_service.run_import_job(db, job)
    except Exception as e:
        logger.error("Voter import %s failed: %s", job.id, type(e).__name__)
        raise
    if result is None:
        return
    logger.info("Voter import %s imported %s records", job.id, result["imported_count"])
