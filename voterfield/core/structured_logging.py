"""Structured logging helpers (PII-safe)."""

import logging
from typing import Any

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: int = logging.INFO) -> None:
    """Install the default root handler once per process."""
    logging.basicConfig(level=level, format=LOG_FORMAT)


def build_log_context(
    *,
    user_id: str | None = None,
    org_id: str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
    job_id: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict."""
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = user_id
    if org_id:
        context["org_id"] = org_id
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    if job_id:
        context["job_id"] = job_id
    return context
