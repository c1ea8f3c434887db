"""Voter registry service.

The last-interaction fields are a read-time projection: each query
joins the newest interaction per voter (row_number window over the
interaction ledger). Nothing is ever written back to the voter row.
"""

import logging
import random
import uuid
from datetime import datetime
from typing import Any, NamedTuple
from uuid import UUID

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from voterfield.core.config import settings
from voterfield.db.enums import AuditAction, OrgLimit
from voterfield.db.models import Interaction, Organization, Voter
from voterfield.services import audit_service, org_service
from voterfield.utils.geo import bounding_box, haversine_km
from voterfield.utils.normalization import clean_text, escape_like, normalize_state

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("first_name", "last_name", "address")

# Fields a partial update may touch; geom expands to latitude/longitude
UPDATABLE_FIELDS = frozenset(
    {
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
        "geom",
    }
)

_TEXT_FIELDS = UPDATABLE_FIELDS - {"age", "geom"}


class VoterServiceError(Exception):
    pass


class VoterNotFoundError(VoterServiceError):
    pass


class VoterValidationError(VoterServiceError):
    pass


class DuplicateExternalIdError(VoterServiceError):
    pass


class VoterWithProjection(NamedTuple):
    voter: Voter
    last_interaction_status: str | None
    last_interaction_time: datetime | None


class RadiusFilter(NamedTuple):
    lat: float
    lng: float
    radius_km: float


def latest_interaction_subquery(org_id: UUID):
    """Newest interaction per voter: (voter_id, result_code, occurred_at)."""
    ranked = (
        select(
            Interaction.voter_id.label("voter_id"),
            Interaction.result_code.label("result_code"),
            Interaction.occurred_at.label("occurred_at"),
            func.row_number()
            .over(
                partition_by=Interaction.voter_id,
                order_by=(
                    Interaction.occurred_at.desc(),
                    Interaction.created_at.desc(),
                    Interaction.id.desc(),
                ),
            )
            .label("rn"),
        )
        .where(Interaction.organization_id == org_id)
        .subquery("ranked_interactions")
    )
    return (
        select(ranked.c.voter_id, ranked.c.result_code, ranked.c.occurred_at)
        .where(ranked.c.rn == 1)
        .subquery("latest_interaction")
    )


def _projected_query(org_id: UUID):
    latest = latest_interaction_subquery(org_id)
    return (
        select(Voter, latest.c.result_code, latest.c.occurred_at)
        .outerjoin(latest, latest.c.voter_id == Voter.id)
        .where(Voter.organization_id == org_id)
    )


def list_voters(
    db: Session,
    org_id: UUID,
    search: str | None = None,
    limit: int = 50,
    offset: int = 0,
    near: RadiusFilter | None = None,
) -> list[VoterWithProjection]:
    """
    Page of voters ordered by (last_name, first_name), each annotated
    with its latest interaction.

    search matches first name, last name, or address, case-insensitively.
    near applies a radius filter before paging.
    """
    query = _projected_query(org_id)

    term = clean_text(search)
    if term:
        pattern = f"%{escape_like(term)}%"
        query = query.where(
            or_(
                Voter.first_name.ilike(pattern, escape="\\"),
                Voter.last_name.ilike(pattern, escape="\\"),
                Voter.address.ilike(pattern, escape="\\"),
            )
        )

    query = query.order_by(Voter.last_name.asc(), Voter.first_name.asc(), Voter.id.asc())

    if near is None:
        rows = db.execute(query.limit(limit).offset(offset)).all()
        return [VoterWithProjection(*row) for row in rows]

    # Bounding box prefilter in SQL, exact great-circle check here
    min_lat, max_lat, min_lng, max_lng = bounding_box(near.lat, near.lng, near.radius_km)
    query = query.where(
        and_(
            Voter.latitude.between(min_lat, max_lat),
            Voter.longitude.between(min_lng, max_lng),
        )
    )
    matches = [
        VoterWithProjection(*row)
        for row in db.execute(query).all()
        if haversine_km(near.lat, near.lng, row[0].latitude, row[0].longitude) <= near.radius_km
    ]
    return matches[offset:offset + limit]


def get_voter(db: Session, org_id: UUID, voter_id: UUID) -> VoterWithProjection | None:
    row = db.execute(_projected_query(org_id).where(Voter.id == voter_id)).first()
    return VoterWithProjection(*row) if row else None


def get_voter_row(db: Session, org_id: UUID, voter_id: UUID) -> Voter | None:
    """Bare voter row scoped to the org (no projection)."""
    return db.execute(
        select(Voter).where(Voter.id == voter_id, Voter.organization_id == org_id)
    ).scalar_one_or_none()


def placeholder_geom() -> tuple[float, float]:
    """Default coordinate with a small jitter so map markers don't stack."""
    jitter = settings.GEOM_JITTER_DEGREES
    return (
        settings.DEFAULT_VOTER_LAT + random.random() * jitter,
        settings.DEFAULT_VOTER_LNG + random.random() * jitter,
    )


def _clean_fields(fields: dict[str, Any]) -> dict[str, Any]:
    cleaned: dict[str, Any] = {}
    for key, value in fields.items():
        if key in _TEXT_FIELDS:
            value = clean_text(value)
            if key == "state":
                value = normalize_state(value)
        cleaned[key] = value
    return cleaned


def _apply_geom(values: dict[str, Any]) -> None:
    geom = values.pop("geom", None)
    if geom is None:
        return
    if isinstance(geom, dict):
        values["latitude"], values["longitude"] = float(geom["lat"]), float(geom["lng"])
    else:
        values["latitude"], values["longitude"] = float(geom.lat), float(geom.lng)


def create_voter(
    db: Session,
    org: Organization,
    actor_user_id: UUID,
    fields: dict[str, Any],
) -> VoterWithProjection:
    """
    Strict manual entry. Commits.

    Raises:
        VoterValidationError: first name, last name or address missing
        DuplicateExternalIdError: external id already used in this org
        OrgLimitReachedError: max_voters reached
    """
    values = _clean_fields({k: v for k, v in fields.items() if k in UPDATABLE_FIELDS})
    missing = [name for name in REQUIRED_FIELDS if not values.get(name)]
    if missing:
        raise VoterValidationError(
            "first_name, last_name and address are required"
        )

    external_id = clean_text(fields.get("external_id")) or f"MAN-{uuid.uuid4()}"
    exists = db.execute(
        select(Voter.id).where(
            Voter.organization_id == org.id, Voter.external_id == external_id
        )
    ).first()
    if exists:
        raise DuplicateExternalIdError("A voter with that external_id already exists")

    org_service.ensure_capacity(db, org, OrgLimit.MAX_VOTERS)

    if values.get("geom") is None:
        values.pop("geom", None)
        values["latitude"], values["longitude"] = placeholder_geom()
    else:
        _apply_geom(values)

    voter = Voter(organization_id=org.id, external_id=external_id, **values)
    db.add(voter)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateExternalIdError(
            "A voter with that external_id already exists"
        ) from exc
    db.refresh(voter)

    audit_service.log_audit(
        db,
        org.id,
        AuditAction.VOTER_CREATE,
        actor_user_id,
        {"voter_id": voter.id, "external_id": external_id},
    )
    return VoterWithProjection(voter, None, None)


def update_voter(
    db: Session,
    org_id: UUID,
    actor_user_id: UUID,
    voter_id: UUID,
    changes: dict[str, Any],
) -> VoterWithProjection:
    """
    Partial merge of whitelisted fields. Commits.

    The audit entry records changed field names only.
    """
    recognized = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}
    if not recognized:
        raise VoterValidationError("No valid fields provided")

    voter = get_voter_row(db, org_id, voter_id)
    if not voter:
        raise VoterNotFoundError("Voter not found")

    values = _clean_fields(recognized)
    for name in REQUIRED_FIELDS:
        if name in values and not values[name]:
            raise VoterValidationError(f"{name} cannot be blank")
    if "geom" in values and values["geom"] is None:
        raise VoterValidationError("geom cannot be null")
    _apply_geom(values)

    changed = sorted(
        key for key, value in values.items() if getattr(voter, key) != value
    )
    for key in changed:
        setattr(voter, key, values[key])
    if changed:
        db.commit()
        audit_service.log_audit(
            db,
            org_id,
            AuditAction.VOTER_UPDATE,
            actor_user_id,
            {"voter_id": voter_id, "fields": _public_field_names(changed)},
        )

    result = get_voter(db, org_id, voter_id)
    if result is None:
        raise VoterNotFoundError("Voter not found")
    return result


def _public_field_names(changed: list[str]) -> list[str]:
    names = {"geom" if key in ("latitude", "longitude") else key for key in changed}
    return sorted(names)
