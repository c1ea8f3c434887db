"""Export job handlers."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


async def process_export_data(db, job) -> None:
    """Write the org's voter registry to a CSV in object storage."""
    from voterfield.services import export_service

    try:
        result = export_service.run_export_job(db, job)
    except Exception as e:
        logger.error("Export %s failed: %s", job.id, type(e).__name__)
        raise
    if result is None:
        return
    logger.info("Export %s wrote %s records", job.id, result["record_count"])
