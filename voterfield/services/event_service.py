"""Platform event stream - append-only domain events.

Events are the hook point for a future event bus; nothing in the
application consumes them. Same two entry points as audit_service:
append_event (flush only, bundled) and emit_event (best-effort commit).
"""

import json
import logging
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from voterfield.db.enums import EventType
from voterfield.db.models import PlatformEvent
from voterfield.services.audit_service import canonical_json

logger = logging.getLogger(__name__)


def append_event(
    db: Session,
    org_id: UUID,
    event_type: EventType,
    user_id: UUID | None = None,
    metadata: dict[str, Any] | None = None,
) -> PlatformEvent:
    """Stage an event in the current transaction. Does not commit."""
    event = PlatformEvent(
        organization_id=org_id,
        user_id=user_id,
        event_type=event_type.value,
        event_metadata=json.loads(canonical_json(metadata)),
    )
    db.add(event)
    db.flush()
    return event


def emit_event(
    db: Session,
    org_id: UUID,
    event_type: EventType,
    user_id: UUID | None = None,
    metadata: dict[str, Any] | None = None,
) -> PlatformEvent | None:
    """Best-effort event write in its own commit."""
    try:
        event = append_event(db, org_id, event_type, user_id, metadata)
        db.commit()
        return event
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning(
            "Event write failed for %s: %s",
            event_type.value,
            exc.__class__.__name__,
            extra={"org_id": str(org_id)},
        )
        return None
