"""Walk list service - named, fixed groups of voters."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from voterfield.db.enums import AuditAction, EventType
from voterfield.db.models import Voter, WalkList, WalkListVoter
from voterfield.services import audit_service, event_service
from voterfield.utils.normalization import clean_text


class WalkListServiceError(Exception):
    pass


class WalkListNotFoundError(WalkListServiceError):
    pass


class WalkListValidationError(WalkListServiceError):
    pass


def list_walk_lists(db: Session, org_id: UUID) -> list[WalkList]:
    """All lists in the org with their voter ids, newest first."""
    return list(
        db.execute(
            select(WalkList)
            .where(WalkList.organization_id == org_id)
            .order_by(WalkList.created_at.desc(), WalkList.name)
        )
        .scalars()
        .all()
    )


def get_walk_list(db: Session, org_id: UUID, list_id: UUID) -> WalkList | None:
    return db.execute(
        select(WalkList).where(WalkList.id == list_id, WalkList.organization_id == org_id)
    ).scalar_one_or_none()


def create_walk_list(
    db: Session,
    org_id: UUID,
    user_id: UUID,
    name: str | None,
    voter_ids: list[UUID],
) -> WalkList:
    """
    Persist a list and its membership. Commits.

    Every voter id must belong to org_id; duplicates are collapsed.

    Raises:
        WalkListValidationError: blank name or foreign/unknown voter ids
    """
    name = clean_text(name)
    if not name:
        raise WalkListValidationError("Name is required")

    unique_ids = list(dict.fromkeys(voter_ids))
    if unique_ids:
        found = set(
            db.execute(
                select(Voter.id).where(
                    Voter.organization_id == org_id, Voter.id.in_(unique_ids)
                )
            ).scalars()
        )
        unknown = [vid for vid in unique_ids if vid not in found]
        if unknown:
            raise WalkListValidationError(
                f"{len(unknown)} voter id(s) not found in this organization"
            )

    walk_list = WalkList(
        organization_id=org_id,
        name=name,
        created_by_user_id=user_id,
        members=[WalkListVoter(voter_id=vid) for vid in unique_ids],
    )
    db.add(walk_list)
    db.commit()
    db.refresh(walk_list)

    event_service.emit_event(
        db,
        org_id,
        EventType.LIST_CREATED,
        user_id,
        {"list_id": walk_list.id, "count": len(unique_ids)},
    )
    audit_service.log_audit(
        db,
        org_id,
        AuditAction.LIST_CREATE,
        user_id,
        {"list_id": walk_list.id, "name": name, "count": len(unique_ids)},
    )
    return walk_list
