"""Audit logging service - compliance trail of mutating actions.

Security guidelines:
- NEVER log secrets (tokens, credentials)
- Hash PII in details (use hash_email for emails)
- Record changed field names, not values
- Use IDs instead of raw data where possible

Two entry points:
- append_audit: add + flush inside the caller's transaction (the
  interaction write bundles its audit row this way)
- log_audit: best-effort, commits on its own after the primary
  operation committed; a failure is logged and swallowed
"""

import hashlib
import json
import logging
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from voterfield.core.request_context import get_request_id
from voterfield.db.enums import AuditAction
from voterfield.db.models import AuditLogEntry

logger = logging.getLogger(__name__)


def hash_email(email: str) -> str:
    """Hash email for audit log (prefix + SHA256 suffix for debugging)."""
    if not email:
        return ""
    prefix = email.split("@")[0][:3] if "@" in email else email[:3]
    suffix = hashlib.sha256(email.lower().encode()).hexdigest()[:12]
    return f"{prefix}...@[hash:{suffix}]"


def canonical_json(obj: dict | None) -> str:
    """
    Serialize object to canonical JSON.

    Uses sorted keys, compact separators, and str() for non-JSON types
    (UUIDs, datetimes).
    """
    return json.dumps(obj or {}, sort_keys=True, separators=(",", ":"), default=str)


def _json_safe(details: dict[str, Any] | None) -> dict[str, Any]:
    return json.loads(canonical_json(details))


def append_audit(
    db: Session,
    org_id: UUID,
    action: AuditAction,
    actor_user_id: UUID | None = None,
    details: dict[str, Any] | None = None,
) -> AuditLogEntry:
    """Stage an audit entry in the current transaction. Does not commit."""
    entry = AuditLogEntry(
        organization_id=org_id,
        actor_user_id=actor_user_id,
        action=action.value,
        details=_json_safe(details),
        request_id=get_request_id(),
    )
    db.add(entry)
    db.flush()
    return entry


def log_audit(
    db: Session,
    org_id: UUID,
    action: AuditAction,
    actor_user_id: UUID | None = None,
    details: dict[str, Any] | None = None,
) -> AuditLogEntry | None:
    """
    Best-effort audit write in its own commit.

    Call only after the primary operation has committed; a failure
    here never reverts it.
    """
    try:
        entry = append_audit(db, org_id, action, actor_user_id, details)
        db.commit()
        return entry
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning(
            "Audit write failed for %s: %s",
            action.value,
            exc.__class__.__name__,
            extra={"org_id": str(org_id)},
        )
        return None
