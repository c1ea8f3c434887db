"""Tests for the interaction ledger: idempotency, projection, bundling."""
import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from voterfield.db.enums import AuditAction, EventType
from voterfield.db.models import (
    Assignment,
    AuditLogEntry,
    Interaction,
    InteractionSurveyResponse,
    Organization,
    PlatformEvent,
    WalkList,
    WalkListVoter,
)
from voterfield.services import event_service, interaction_service

from tests.conftest import Tenant, add_voter


def interaction_payload(voter_id, **overrides):
    payload = {
        "client_interaction_uuid": str(uuid.uuid4()),
        "voter_id": str(voter_id),
        "occurred_at": "2026-03-01T15:00:00Z",
        "result_code": "contacted",
    }
    payload.update(overrides)
    return payload


def count_interactions(db) -> int:
    return db.scalar(select(func.count()).select_from(Interaction))


def make_assignment(db, tenant: Tenant, voters) -> Assignment:
    walk_list = WalkList(
        organization_id=tenant.org.id,
        name="Precinct 4",
        created_by_user_id=tenant.admin.id,
        members=[WalkListVoter(voter_id=v.id) for v in voters],
    )
    db.add(walk_list)
    db.flush()
    assignment = Assignment(
        organization_id=tenant.org.id,
        walk_list_id=walk_list.id,
        canvasser_id=tenant.canvasser.id,
        assigned_by_user_id=tenant.admin.id,
    )
    db.add(assignment)
    db.commit()
    db.refresh(assignment)
    return assignment


@pytest.mark.asyncio
async def test_log_interaction_created(canvasser_client: AsyncClient, db, tenant: Tenant):
    voter = add_voter(db, tenant.org)
    response = await canvasser_client.post(
        "/api/v1/interactions", json=interaction_payload(voter.id, notes="Friendly")
    )
    assert response.status_code == 201
    data = response.json()
    assert data["user_id"] == str(tenant.canvasser.id)
    assert data["organization_id"] == str(tenant.org.id)
    assert data["result_code"] == "contacted"
    assert data["channel"] == "canvass"
    assert data["notes"] == "Friendly"


@pytest.mark.asyncio
async def test_replay_returns_stored_interaction(canvasser_client: AsyncClient, db, tenant: Tenant):
    voter = add_voter(db, tenant.org)
    payload = interaction_payload(voter.id)

    first = await canvasser_client.post("/api/v1/interactions", json=payload)
    # Same key with different content still returns the first stored row
    replay = await canvasser_client.post(
        "/api/v1/interactions", json={**payload, "result_code": "refused", "notes": "changed"}
    )

    assert first.status_code == 201
    assert replay.status_code == 200
    assert replay.json()["id"] == first.json()["id"]
    assert replay.json()["result_code"] == "contacted"
    assert count_interactions(db) == 1


@pytest.mark.asyncio
async def test_org_id_in_body_is_ignored(canvasser_client: AsyncClient, db, tenant: Tenant, other_tenant: Tenant):
    voter = add_voter(db, tenant.org)
    response = await canvasser_client.post(
        "/api/v1/interactions",
        json=interaction_payload(voter.id, org_id=str(other_tenant.org.id)),
    )
    assert response.status_code == 201
    assert response.json()["organization_id"] == str(tenant.org.id)


@pytest.mark.asyncio
async def test_voter_from_other_org_not_found(other_admin_client: AsyncClient, db, tenant: Tenant):
    voter = add_voter(db, tenant.org)
    response = await other_admin_client.post(
        "/api/v1/interactions", json=interaction_payload(voter.id)
    )
    assert response.status_code == 404
    assert response.json()["error"] == "Voter not found"
    assert count_interactions(db) == 0


@pytest.mark.asyncio
async def test_unknown_assignment_not_found(canvasser_client: AsyncClient, db, tenant: Tenant):
    voter = add_voter(db, tenant.org)
    response = await canvasser_client.post(
        "/api/v1/interactions",
        json=interaction_payload(voter.id, assignment_id=str(uuid.uuid4())),
    )
    assert response.status_code == 404
    assert response.json()["error"] == "Assignment not found"


@pytest.mark.asyncio
async def test_invalid_result_code_rejected(canvasser_client: AsyncClient, db, tenant: Tenant):
    voter = add_voter(db, tenant.org)
    response = await canvasser_client.post(
        "/api/v1/interactions", json=interaction_payload(voter.id, result_code="maybe")
    )
    assert response.status_code == 400
    assert "result_code" in response.json()["error"]


@pytest.mark.asyncio
async def test_side_effects_commit_with_interaction(canvasser_client: AsyncClient, db, tenant: Tenant):
    voter = add_voter(db, tenant.org)
    response = await canvasser_client.post(
        "/api/v1/interactions",
        json=interaction_payload(voter.id, survey_responses={"support": "strong", "sign": True}),
    )
    assert response.status_code == 201
    assert response.json()["survey_responses"] == {"support": "strong", "sign": True}

    audit = db.execute(
        select(AuditLogEntry).where(AuditLogEntry.action == AuditAction.INTERACTION_CREATE.value)
    ).scalar_one()
    assert audit.details["interaction_id"] == response.json()["id"]
    event = db.execute(
        select(PlatformEvent).where(PlatformEvent.event_type == EventType.INTERACTION_CREATED.value)
    ).scalar_one()
    assert event.user_id == tenant.canvasser.id

    db.expire_all()
    assert db.get(Organization, tenant.org.id).last_activity_at is not None


def _failing_event_write(db, *args, **kwargs):
    # Survey and audit rows are already flushed when the event insert fails
    db.flush()
    raise OperationalError("INSERT INTO platform_events", {}, Exception("database is locked"))


@pytest.mark.asyncio
async def test_failed_side_effect_rolls_back_interaction(
    canvasser_client: AsyncClient, db, tenant: Tenant, monkeypatch
):
    voter = add_voter(db, tenant.org)
    monkeypatch.setattr(event_service, "append_event", _failing_event_write)

    response = await canvasser_client.post(
        "/api/v1/interactions",
        json=interaction_payload(voter.id, survey_responses={"support": "lean"}),
    )

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to log interaction"}
    assert count_interactions(db) == 0
    assert db.scalar(select(func.count()).select_from(InteractionSurveyResponse)) == 0
    audit = select(func.count()).select_from(AuditLogEntry).where(
        AuditLogEntry.action == AuditAction.INTERACTION_CREATE.value
    )
    assert db.scalar(audit) == 0


def test_failed_bulk_write_rolls_back_batch(db, tenant: Tenant, monkeypatch):
    voters = [add_voter(db, tenant.org) for _ in range(2)]
    monkeypatch.setattr(event_service, "append_event", _failing_event_write)

    with pytest.raises(interaction_service.InteractionPersistenceError):
        interaction_service.log_interactions_bulk(
            db,
            tenant.org.id,
            tenant.canvasser.id,
            [interaction_payload(v.id, survey_responses={"q1": "yes"}) for v in voters],
        )

    assert count_interactions(db) == 0
    assert db.scalar(select(func.count()).select_from(InteractionSurveyResponse)) == 0

@pytest.mark.asyncio
async def test_survey_responses_returned_on_replay(canvasser_client: AsyncClient, db, tenant: Tenant):
    voter = add_voter(db, tenant.org)
    payload = interaction_payload(voter.id, survey_responses={"q1": "yes"})
    await canvasser_client.post("/api/v1/interactions", json=payload)
    replay = await canvasser_client.post("/api/v1/interactions", json=payload)
    assert replay.json()["survey_responses"] == {"q1": "yes"}


@pytest.mark.asyncio
async def test_voter_projection_tracks_latest_occurrence(
    canvasser_client: AsyncClient, db, tenant: Tenant
):
    voter = add_voter(db, tenant.org)
    await canvasser_client.post(
        "/api/v1/interactions",
        json=interaction_payload(voter.id, result_code="not_home", occurred_at="2026-03-01T10:00:00Z"),
    )
    await canvasser_client.post(
        "/api/v1/interactions",
        json=interaction_payload(voter.id, result_code="contacted", occurred_at="2026-03-01T12:00:00Z"),
    )
    # Synced late but happened earlier; must not win
    await canvasser_client.post(
        "/api/v1/interactions",
        json=interaction_payload(voter.id, result_code="refused", occurred_at="2026-03-01T08:00:00Z"),
    )

    data = (await canvasser_client.get(f"/api/v1/voters/{voter.id}")).json()
    assert data["last_interaction_status"] == "contacted"
    assert data["last_interaction_time"].startswith("2026-03-01T12:00:00")

    listed = (await canvasser_client.get("/api/v1/voters")).json()["items"]
    assert listed[0]["last_interaction_status"] == "contacted"


@pytest.mark.asyncio
async def test_occurred_at_normalized_to_utc(canvasser_client: AsyncClient, db, tenant: Tenant):
    voter = add_voter(db, tenant.org)
    response = await canvasser_client.post(
        "/api/v1/interactions",
        json=interaction_payload(voter.id, occurred_at="2026-03-01T10:00:00-05:00"),
    )
    assert response.json()["occurred_at"].startswith("2026-03-01T15:00:00")


@pytest.mark.asyncio
async def test_list_interactions_most_recent_first(canvasser_client: AsyncClient, db, tenant: Tenant):
    voter = add_voter(db, tenant.org)
    for hour in ("09", "14", "11"):
        await canvasser_client.post(
            "/api/v1/interactions",
            json=interaction_payload(voter.id, occurred_at=f"2026-03-02T{hour}:00:00Z"),
        )
    response = await canvasser_client.get("/api/v1/interactions", params={"voter_id": str(voter.id)})
    hours = [item["occurred_at"][11:13] for item in response.json()]
    assert hours == ["14", "11", "09"]


# =============================================================================
# Bulk
# =============================================================================

@pytest.mark.asyncio
async def test_bulk_dedupes_and_skips_bad_items(canvasser_client: AsyncClient, db, tenant: Tenant):
    voter = add_voter(db, tenant.org)
    first = interaction_payload(voter.id)
    second = interaction_payload(voter.id, result_code="not_home")
    items = [
        first,
        first,
        second,
        {"voter_id": str(voter.id), "result_code": "contacted"},  # no key / timestamp
        "not-an-object",
    ]

    response = await canvasser_client.post("/api/v1/interactions/bulk", json=items)
    assert response.status_code == 200
    assert response.json() == {"inserted": 2}
    assert count_interactions(db) == 2

    again = await canvasser_client.post("/api/v1/interactions/bulk", json=[first, second])
    assert again.json() == {"inserted": 0}
    assert count_interactions(db) == 2


@pytest.mark.asyncio
async def test_bulk_skips_foreign_voters(other_admin_client: AsyncClient, db, tenant: Tenant, other_tenant: Tenant):
    foreign = add_voter(db, tenant.org)
    own = add_voter(db, other_tenant.org)
    response = await other_admin_client.post(
        "/api/v1/interactions/bulk",
        json=[interaction_payload(foreign.id), interaction_payload(own.id)],
    )
    assert response.json() == {"inserted": 1}


@pytest.mark.asyncio
async def test_bulk_empty_array(canvasser_client: AsyncClient):
    response = await canvasser_client.post("/api/v1/interactions/bulk", json=[])
    assert response.json() == {"inserted": 0}


@pytest.mark.asyncio
async def test_bulk_requires_array(canvasser_client: AsyncClient):
    response = await canvasser_client.post("/api/v1/interactions/bulk", json={"items": []})
    assert response.status_code == 400


# =============================================================================
# Assignment progression
# =============================================================================

@pytest.mark.asyncio
async def test_interactions_advance_assignment(canvasser_client: AsyncClient, db, tenant: Tenant):
    first_voter = add_voter(db, tenant.org)
    second_voter = add_voter(db, tenant.org)
    assignment = make_assignment(db, tenant, [first_voter, second_voter])

    await canvasser_client.post(
        "/api/v1/interactions",
        json=interaction_payload(first_voter.id, assignment_id=str(assignment.id)),
    )
    db.expire_all()
    assert db.get(Assignment, assignment.id).status == "in_progress"

    await canvasser_client.post(
        "/api/v1/interactions",
        json=interaction_payload(second_voter.id, assignment_id=str(assignment.id)),
    )
    db.expire_all()
    assert db.get(Assignment, assignment.id).status == "completed"

    transitions = db.execute(
        select(PlatformEvent).where(
            PlatformEvent.event_type == EventType.ASSIGNMENT_STATUS_CHANGED.value
        )
    ).scalars().all()
    assert sorted(e.event_metadata["to"] for e in transitions) == ["completed", "in_progress"]


@pytest.mark.asyncio
async def test_bulk_partial_success(canvasser_client: AsyncClient, db, tenant: Tenant):
    voter = add_voter(db, tenant.org)
    stored = interaction_payload(voter.id)
    await canvasser_client.post("/api/v1/interactions", json=stored)

    missing_code = interaction_payload(voter.id)
    missing_code.pop("result_code")
    also_missing = interaction_payload(voter.id)
    also_missing.pop("result_code")
    batch = [
        interaction_payload(voter.id),
        interaction_payload(voter.id, result_code="moved"),
        missing_code,
        also_missing,
        stored,
    ]

    response = await canvasser_client.post("/api/v1/interactions/bulk", json=batch)
    assert response.json() == {"inserted": 2}
    assert count_interactions(db) == 3
