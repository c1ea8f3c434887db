"""End-to-end tests for import/export jobs through the worker."""
import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from voterfield import worker
from voterfield.db.enums import AuditAction, EventType, JobStatus
from voterfield.db.models import AuditLogEntry, Job, PlatformEvent, Voter
from voterfield.services import import_service, storage_service

from tests.conftest import Tenant, add_voter


def voter_count(db, org_id) -> int:
    return db.scalar(
        select(func.count()).select_from(Voter).where(Voter.organization_id == org_id)
    )


def event_types(db) -> list[str]:
    return list(db.execute(select(PlatformEvent.event_type)).scalars())


@pytest.mark.asyncio
async def test_inline_import_end_to_end(admin_client: AsyncClient, db, tenant: Tenant):
    records = [
        {
            "external_id": f"V-{i:03d}",
            "first_name": f"First{i}",
            "last_name": f"Last{i}",
            "address": f"{i} Main St",
            "lat": 30.0 + i / 1000,
            "lng": -91.0,
        }
        for i in range(25)
    ]
    before = voter_count(db, tenant.org.id)

    response = await admin_client.post("/api/v1/jobs/import-voters", json=records)
    assert response.status_code == 202
    job = response.json()
    assert job["status"] == "pending"
    assert job["type"] == "import_voters"
    assert job["metadata"] == {"count": 25}
    assert "payload" not in job

    assert await worker.run_once(db) == 1

    polled = await admin_client.get(f"/api/v1/jobs/{job['id']}")
    assert polled.status_code == 200
    data = polled.json()
    assert data["status"] == "completed"
    assert data["result"] == {"imported_count": 25}
    assert data["completed_at"] is not None
    assert voter_count(db, tenant.org.id) == before + 25

    kinds = event_types(db)
    assert EventType.IMPORT_STARTED.value in kinds
    assert EventType.IMPORT_COMPLETED.value in kinds
    audit = db.execute(
        select(AuditLogEntry).where(AuditLogEntry.action == AuditAction.IMPORT_SUCCESS.value)
    ).scalar_one()
    assert audit.details["imported_count"] == 25


@pytest.mark.asyncio
async def test_import_fills_defaults(admin_client: AsyncClient, db, tenant: Tenant):
    response = await admin_client.post(
        "/api/v1/jobs/import-voters", json=[{"externalId": "SPARSE-1"}, "junk"]
    )
    await worker.run_once(db)

    job = db.get(Job, uuid.UUID(response.json()["id"]))
    db.refresh(job)
    assert job.status == JobStatus.COMPLETED.value
    assert job.result == {"imported_count": 2}

    voter = db.execute(
        select(Voter).where(Voter.organization_id == tenant.org.id, Voter.external_id == "SPARSE-1")
    ).scalar_one()
    assert voter.first_name == "Unknown"
    assert voter.last_name == "Unknown"
    assert voter.address == "Unknown"
    assert voter.city == "Unknown"
    assert voter.state == "LA"
    assert voter.party == "Unenrolled"
    assert (voter.latitude, voter.longitude) == (0.0, 0.0)

    synthesized = db.execute(
        select(Voter.external_id).where(
            Voter.organization_id == tenant.org.id, Voter.external_id != "SPARSE-1"
        )
    ).scalar_one()
    assert synthesized.startswith("ext-")


@pytest.mark.asyncio
async def test_reimport_updates_existing_voter(admin_client: AsyncClient, db, tenant: Tenant):
    existing = add_voter(db, tenant.org, external_id="KEEP-1", first_name="Old")

    await admin_client.post(
        "/api/v1/jobs/import-voters",
        json=[
            {"external_id": "KEEP-1", "first_name": "Interim"},
            {"external_id": "KEEP-1", "first_name": "New", "city": "Lafayette"},
        ],
    )
    await worker.run_once(db)

    db.expire_all()
    assert voter_count(db, tenant.org.id) == 1
    voter = db.get(Voter, existing.id)
    assert voter.first_name == "New"
    assert voter.city == "Lafayette"


@pytest.mark.asyncio
async def test_import_failure_marks_job_failed(admin_client: AsyncClient, db, tenant: Tenant, monkeypatch):
    def broken_upsert(db, org_id, rows):
        raise RuntimeError("registry unavailable")

    monkeypatch.setattr(import_service, "upsert_voters", broken_upsert)

    response = await admin_client.post(
        "/api/v1/jobs/import-voters", json=[{"external_id": "X"}]
    )
    await worker.run_once(db)

    polled = (await admin_client.get(f"/api/v1/jobs/{response.json()['id']}")).json()
    assert polled["status"] == "failed"
    assert polled["error"] == "registry unavailable"
    assert polled["result"] is None
    assert EventType.IMPORT_FAILED.value in event_types(db)
    assert voter_count(db, tenant.org.id) == 0

    # Failed jobs stay failed
    assert await worker.run_once(db) == 0


@pytest.mark.asyncio
async def test_import_rejects_non_array(admin_client: AsyncClient):
    response = await admin_client.post("/api/v1/jobs/import-voters", json={"records": []})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_canvasser_cannot_import(canvasser_client: AsyncClient):
    response = await canvasser_client.post("/api/v1/jobs/import-voters", json=[])
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_job_hidden_from_other_org(admin_client: AsyncClient, other_admin_client: AsyncClient):
    response = await admin_client.post("/api/v1/jobs/import-voters", json=[])
    job_id = response.json()["id"]

    foreign = await other_admin_client.get(f"/api/v1/jobs/{job_id}")
    assert foreign.status_code == 404
    assert foreign.json() == {"error": "Job not found"}


@pytest.mark.asyncio
async def test_canvasser_can_poll_job(admin_client: AsyncClient, canvasser_client: AsyncClient):
    response = await admin_client.post("/api/v1/jobs/import-voters", json=[])
    polled = await canvasser_client.get(f"/api/v1/jobs/{response.json()['id']}")
    assert polled.status_code == 200


@pytest.mark.asyncio
async def test_list_jobs_filters(admin_client: AsyncClient, db):
    await admin_client.post("/api/v1/jobs/import-voters", json=[])
    await admin_client.post("/api/v1/jobs/export")

    everything = await admin_client.get("/api/v1/jobs")
    assert len(everything.json()) == 2

    exports = await admin_client.get("/api/v1/jobs", params={"type": "export_data"})
    assert [j["type"] for j in exports.json()] == ["export_data"]


@pytest.mark.asyncio
async def test_csv_upload_import(admin_client: AsyncClient, db, tenant: Tenant):
    csv_body = (
        "﻿external_id,first_name,last_name,address,zip,latitude,longitude\n"
        "CSV-1,Ann,Lee,1 Elm St,07030,30.1,-91.1\n"
        "CSV-2,Bo,Kim,2 Elm St,,,\n"
    ).encode("utf-8")

    response = await admin_client.post(
        "/api/v1/jobs/import-voters/upload",
        files={"file": ("voters list.csv", csv_body, "text/csv")},
    )
    assert response.status_code == 202
    metadata = response.json()["metadata"]
    assert metadata["filename"] == "voters_list.csv"
    assert metadata["file_key"].startswith(f"imports/{tenant.org.id}/")

    await worker.run_once(db)

    ann = db.execute(
        select(Voter).where(Voter.organization_id == tenant.org.id, Voter.external_id == "CSV-1")
    ).scalar_one()
    assert ann.first_name == "Ann"
    assert ann.zip_code == "07030"
    assert ann.latitude == 30.1
    assert voter_count(db, tenant.org.id) == 2


@pytest.mark.asyncio
async def test_empty_upload_rejected(admin_client: AsyncClient):
    response = await admin_client.post(
        "/api/v1/jobs/import-voters/upload", files={"file": ("empty.csv", b"", "text/csv")}
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_export_writes_csv(admin_client: AsyncClient, db, tenant: Tenant):
    add_voter(db, tenant.org, external_id="EXP-1", last_name="Alpha")
    add_voter(db, tenant.org, external_id="EXP-2", last_name="Beta")

    response = await admin_client.post("/api/v1/jobs/export")
    assert response.status_code == 202
    await worker.run_once(db)

    data = (await admin_client.get(f"/api/v1/jobs/{response.json()['id']}")).json()
    assert data["status"] == "completed"
    assert data["result"]["record_count"] == 2

    content = storage_service.get_object(data["result"]["file_key"]).decode("utf-8")
    lines = content.strip().splitlines()
    assert lines[0].startswith("external_id,first_name")
    assert lines[1].startswith("EXP-1,")
    assert EventType.EXPORT_COMPLETED.value in event_types(db)
