"""Voter import pipeline.

Submission is synchronous and only records a pending job; ingestion
runs in the worker. Import is deliberately permissive: every candidate
record is normalized with defaults, never rejected. Re-importing an
external id updates the existing voter (upsert on org + external_id).
"""

import csv
import io
import logging
import uuid
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from voterfield.core.config import settings
from voterfield.db.enums import AuditAction, EventType, JobType
from voterfield.db.models import Job, Voter
from voterfield.db.types import utcnow
from voterfield.db.upsert import insert_for
from voterfield.services import audit_service, event_service, job_service, storage_service
from voterfield.utils.normalization import (
    clean_text,
    normalize_state,
    normalize_zip,
    parse_float,
    parse_int,
)

logger = logging.getLogger(__name__)

UPSERT_CHUNK_SIZE = 500

DEFAULTS = {
    "first_name": "Unknown",
    "last_name": "Unknown",
    "address": "Unknown",
    "city": "Unknown",
    "state": "LA",
    "party": "Unenrolled",
}

# Accepted source keys per voter column (snake_case, camelCase, common CSV headers)
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "external_id": ("external_id", "externalId", "voter_id", "id"),
    "first_name": ("first_name", "firstName", "first"),
    "middle_name": ("middle_name", "middleName", "middle"),
    "last_name": ("last_name", "lastName", "last"),
    "suffix": ("suffix",),
    "age": ("age",),
    "gender": ("gender", "sex"),
    "race": ("race", "ethnicity"),
    "party": ("party",),
    "phone": ("phone", "phone_number", "phoneNumber"),
    "email": ("email",),
    "address": ("address", "street", "address1"),
    "unit": ("unit", "apt", "address2"),
    "city": ("city",),
    "state": ("state",),
    "zip_code": ("zip_code", "zipCode", "zip", "postal_code"),
}
LAT_KEYS = ("lat", "latitude")
LNG_KEYS = ("lng", "lon", "longitude")

UPSERT_COLUMNS = tuple(key for key in FIELD_ALIASES if key != "external_id") + (
    "latitude",
    "longitude",
)


class ImportServiceError(Exception):
    pass


class ImportValidationError(ImportServiceError):
    pass


def _first(raw: dict[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        if key in raw and raw[key] not in (None, ""):
            return raw[key]
    return None


def normalize_record(raw: Any) -> dict[str, Any]:
    """
    Turn one candidate record into a full voter row.

    Missing names/address become "Unknown", city "Unknown", state "LA",
    party "Unenrolled", geocoordinate (0, 0); a missing external id is
    synthesized.
    """
    if not isinstance(raw, dict):
        raw = {}

    row: dict[str, Any] = {}
    for column, keys in FIELD_ALIASES.items():
        row[column] = clean_text(_first(raw, keys))

    row["age"] = parse_int(row["age"])
    row["state"] = normalize_state(row["state"])
    row["zip_code"] = normalize_zip(_first(raw, FIELD_ALIASES["zip_code"]))
    for column, default in DEFAULTS.items():
        if not row.get(column):
            row[column] = default
    row["external_id"] = (row["external_id"] or f"ext-{uuid.uuid4()}")[:100]

    geom = raw.get("geom") if isinstance(raw.get("geom"), dict) else {}
    lat = parse_float(_first(geom, LAT_KEYS)) if geom else None
    lng = parse_float(_first(geom, LNG_KEYS)) if geom else None
    if lat is None:
        lat = parse_float(_first(raw, LAT_KEYS))
    if lng is None:
        lng = parse_float(_first(raw, LNG_KEYS))
    row["latitude"] = lat if lat is not None else 0.0
    row["longitude"] = lng if lng is not None else 0.0
    return row


def parse_csv(data: bytes) -> list[dict[str, Any]]:
    """Rows of an uploaded CSV as dicts keyed by trimmed header."""
    text = data.decode("utf-8-sig", errors="replace")
    reader = csv.DictReader(io.StringIO(text))
    rows = []
    for record in reader:
        rows.append(
            {(key or "").strip(): value for key, value in record.items() if key is not None}
        )
    return rows


# =============================================================================
# Submission
# =============================================================================

def _record_submission(db: Session, job: Job, user_id: UUID, details: dict[str, Any]) -> None:
    audit_service.log_audit(
        db, job.organization_id, AuditAction.IMPORT_CREATE, user_id, {"job_id": job.id, **details}
    )
    event_service.emit_event(
        db, job.organization_id, EventType.IMPORT_STARTED, user_id, {"job_id": job.id, **details}
    )


def submit_inline_import(
    db: Session, org_id: UUID, user_id: UUID, records: list[Any]
) -> Job:
    """Queue an import of inline records; returns the pending job."""
    if len(records) > settings.MAX_IMPORT_RECORDS:
        raise ImportValidationError(
            f"Too many records (max {settings.MAX_IMPORT_RECORDS})"
        )
    job = job_service.schedule_job(
        db,
        org_id,
        user_id,
        JobType.IMPORT_VOTERS,
        payload={"source": "inline", "records": records},
        metadata={"count": len(records)},
    )
    _record_submission(db, job, user_id, {"count": len(records)})
    return job


def submit_file_import(
    db: Session, org_id: UUID, user_id: UUID, filename: str | None, data: bytes
) -> Job:
    """Stage an uploaded CSV in object storage and queue its import."""
    if not data:
        raise ImportValidationError("Uploaded file is empty")
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise ImportValidationError("Uploaded file is too large")

    name = storage_service.safe_filename(filename)
    file_key = f"imports/{org_id}/{uuid.uuid4()}-{name}"
    storage_service.put_object(file_key, data, content_type="text/csv")

    job = job_service.schedule_job(
        db,
        org_id,
        user_id,
        JobType.IMPORT_VOTERS,
        payload={"source": "file", "file_key": file_key},
        metadata={"filename": name, "file_key": file_key, "size_bytes": len(data)},
    )
    _record_submission(db, job, user_id, {"filename": name})
    return job


# =============================================================================
# Execution (worker)
# =============================================================================

def load_records(job: Job) -> list[Any]:
    payload = job.payload or {}
    source = payload.get("source", "inline")
    if source == "inline":
        records = payload.get("records")
        if not isinstance(records, list):
            raise ImportValidationError("Job payload has no records")
        return records
    if source == "file":
        file_key = payload.get("file_key")
        if not file_key:
            raise ImportValidationError("Job payload has no file_key")
        return parse_csv(storage_service.get_object(file_key))
    raise ImportValidationError(f"Unknown import source: {source}")


def upsert_voters(db: Session, org_id: UUID, rows: list[dict[str, Any]]) -> int:
    """
    Append normalized rows to the registry as one batch (flush only).

    Within a batch the last row for an external id wins.
    Returns the number of distinct voters written.
    """
    by_external_id: dict[str, dict[str, Any]] = {}
    for row in rows:
        by_external_id[row["external_id"]] = row
    unique_rows = list(by_external_id.values())

    now = utcnow()
    table = Voter.__table__
    for start in range(0, len(unique_rows), UPSERT_CHUNK_SIZE):
        chunk = [
            {
                **row,
                "id": uuid.uuid4(),
                "organization_id": org_id,
                "created_at": now,
                "updated_at": now,
            }
            for row in unique_rows[start:start + UPSERT_CHUNK_SIZE]
        ]
        stmt = insert_for(db, table).values(chunk)
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.organization_id, table.c.external_id],
            set_={
                **{column: stmt.excluded[column] for column in UPSERT_COLUMNS},
                "updated_at": now,
            },
        )
        db.execute(stmt)
    return len(unique_rows)


def run_import_job(db: Session, job: Job) -> dict[str, Any] | None:
    """
    Ingest a claimed (processing) job and move it to a terminal state.

    The upsert and the completed status commit in one transaction. If
    the job was force-failed while running, the batch is discarded and
    None is returned. On error the batch is rolled back, the job is
    marked failed, import.failed is emitted, and the error re-raised.
    """
    try:
        records = load_records(job)
        rows = [normalize_record(record) for record in records]
        imported = upsert_voters(db, job.organization_id, rows)
    except Exception as exc:
        db.rollback()
        if job_service.mark_job_failed(db, job, str(exc) or exc.__class__.__name__):
            event_service.emit_event(
                db,
                job.organization_id,
                EventType.IMPORT_FAILED,
                job.user_id,
                {"job_id": job.id, "error": job.error},
            )
        raise

    result = {"imported_count": imported}
    if not job_service.mark_job_completed(db, job, result):
        logger.warning("Import %s is %s; discarded %d rows", job.id, job.status, imported)
        return None
    event_service.emit_event(
        db, job.organization_id, EventType.IMPORT_COMPLETED, job.user_id, {"job_id": job.id, **result}
    )
    audit_service.log_audit(
        db, job.organization_id, AuditAction.IMPORT_SUCCESS, job.user_id, {"job_id": job.id, **result}
    )
    return result
