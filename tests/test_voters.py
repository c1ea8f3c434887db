"""Tests for the voter registry endpoints."""
import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from voterfield.core.config import settings
from voterfield.db.enums import AuditAction, OrgLimit
from voterfield.db.models import AuditLogEntry, Voter
from voterfield.services import org_service

from tests.conftest import Tenant, add_voter


@pytest.mark.asyncio
async def test_create_voter_minimal(admin_client: AsyncClient, tenant: Tenant):
    response = await admin_client.post(
        "/api/v1/voters",
        json={"first_name": "Jane", "last_name": "Doe", "address": "1 Main St"},
    )
    assert response.status_code == 201
    data = response.json()
    assert data["external_id"].startswith("MAN-")
    assert data["organization_id"] == str(tenant.org.id)
    # Placeholder coordinate: default point plus a small jitter
    assert settings.DEFAULT_VOTER_LAT <= data["geom"]["lat"] <= settings.DEFAULT_VOTER_LAT + settings.GEOM_JITTER_DEGREES
    assert settings.DEFAULT_VOTER_LNG <= data["geom"]["lng"] <= settings.DEFAULT_VOTER_LNG + settings.GEOM_JITTER_DEGREES
    # Absent optional fields are omitted, not null
    assert "middle_name" not in data
    assert "last_interaction_status" not in data

    fetched = await admin_client.get(f"/api/v1/voters/{data['id']}")
    assert fetched.status_code == 200
    assert fetched.json() == data


@pytest.mark.asyncio
async def test_create_voter_with_geom_and_state(admin_client: AsyncClient):
    response = await admin_client.post(
        "/api/v1/voters",
        json={
            "external_id": "EXT-1",
            "first_name": "Jo",
            "last_name": "Ray",
            "address": "9 Oak Ave",
            "state": "Louisiana",
            "geom": {"lat": 30.1, "lng": -91.2},
        },
    )
    assert response.status_code == 201
    data = response.json()
    assert data["external_id"] == "EXT-1"
    assert data["state"] == "LA"
    assert data["geom"] == {"lat": 30.1, "lng": -91.2}


@pytest.mark.asyncio
async def test_create_voter_requires_core_fields(admin_client: AsyncClient):
    response = await admin_client.post(
        "/api/v1/voters", json={"first_name": "Jane", "last_name": "Doe"}
    )
    assert response.status_code == 400
    assert response.json()["error"] == "first_name, last_name and address are required"


@pytest.mark.asyncio
async def test_create_voter_duplicate_external_id(admin_client: AsyncClient, db, tenant: Tenant):
    add_voter(db, tenant.org, external_id="DUP-1")
    response = await admin_client.post(
        "/api/v1/voters",
        json={"external_id": "DUP-1", "first_name": "A", "last_name": "B", "address": "C"},
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_same_external_id_allowed_across_orgs(
    other_admin_client: AsyncClient, db, tenant: Tenant
):
    add_voter(db, tenant.org, external_id="SHARED-1")
    response = await other_admin_client.post(
        "/api/v1/voters",
        json={"external_id": "SHARED-1", "first_name": "A", "last_name": "B", "address": "C"},
    )
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_create_voter_respects_limit(admin_client: AsyncClient, db, tenant: Tenant):
    add_voter(db, tenant.org)
    org_service.set_limit(db, tenant.org.id, OrgLimit.MAX_VOTERS, 1)
    response = await admin_client.post(
        "/api/v1/voters", json={"first_name": "A", "last_name": "B", "address": "C"}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_voters_ordered_by_name(canvasser_client: AsyncClient, db, tenant: Tenant):
    add_voter(db, tenant.org, first_name="Zed", last_name="Adams")
    add_voter(db, tenant.org, first_name="Amy", last_name="Baker")
    add_voter(db, tenant.org, first_name="Al", last_name="Adams")

    response = await canvasser_client.get("/api/v1/voters")
    assert response.status_code == 200
    data = response.json()
    names = [(v["last_name"], v["first_name"]) for v in data["items"]]
    assert names == [("Adams", "Al"), ("Adams", "Zed"), ("Baker", "Amy")]
    assert data["limit"] == 50
    assert data["offset"] == 0


@pytest.mark.asyncio
async def test_list_voters_paging(canvasser_client: AsyncClient, db, tenant: Tenant):
    for last in ("A", "B", "C", "D"):
        add_voter(db, tenant.org, last_name=last)
    response = await canvasser_client.get("/api/v1/voters", params={"limit": 2, "offset": 1})
    assert [v["last_name"] for v in response.json()["items"]] == ["B", "C"]


@pytest.mark.asyncio
async def test_search_is_case_insensitive(canvasser_client: AsyncClient, db, tenant: Tenant):
    add_voter(db, tenant.org, first_name="Jane", last_name="Doe", address="1 Main St")
    add_voter(db, tenant.org, first_name="Sam", last_name="Roe", address="42 Magnolia Dr")

    response = await canvasser_client.get("/api/v1/voters", params={"search": "DOE"})
    assert [v["first_name"] for v in response.json()["items"]] == ["Jane"]

    response = await canvasser_client.get("/api/v1/voters", params={"search": "magnolia"})
    assert [v["first_name"] for v in response.json()["items"]] == ["Sam"]


@pytest.mark.asyncio
async def test_search_treats_wildcards_literally(canvasser_client: AsyncClient, db, tenant: Tenant):
    add_voter(db, tenant.org, last_name="Doe")
    response = await canvasser_client.get("/api/v1/voters", params={"search": "%"})
    assert response.json()["items"] == []


@pytest.mark.asyncio
async def test_radius_filter(canvasser_client: AsyncClient, db, tenant: Tenant):
    add_voter(db, tenant.org, last_name="Near", latitude=30.4500, longitude=-91.1800)
    add_voter(db, tenant.org, last_name="Far", latitude=29.9500, longitude=-90.0700)

    response = await canvasser_client.get(
        "/api/v1/voters", params={"near_lat": 30.451, "near_lng": -91.181, "radius_km": 2}
    )
    assert response.status_code == 200
    assert [v["last_name"] for v in response.json()["items"]] == ["Near"]


@pytest.mark.asyncio
async def test_radius_filter_needs_all_params(canvasser_client: AsyncClient):
    response = await canvasser_client.get("/api/v1/voters", params={"near_lat": 30.4})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_voters_are_tenant_scoped(other_admin_client: AsyncClient, db, tenant: Tenant):
    voter = add_voter(db, tenant.org)
    response = await other_admin_client.get(f"/api/v1/voters/{voter.id}")
    assert response.status_code == 404

    response = await other_admin_client.get("/api/v1/voters")
    assert response.json()["items"] == []


@pytest.mark.asyncio
async def test_update_voter_audits_field_names_only(admin_client: AsyncClient, db, tenant: Tenant):
    voter = add_voter(db, tenant.org)
    response = await admin_client.patch(
        f"/api/v1/voters/{voter.id}",
        json={"city": "Baton Rouge", "phone": "555-0199", "unknown_field": "ignored"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["city"] == "Baton Rouge"
    assert data["phone"] == "555-0199"

    entry = db.execute(
        select(AuditLogEntry).where(AuditLogEntry.action == AuditAction.VOTER_UPDATE.value)
    ).scalar_one()
    assert entry.details["fields"] == ["city", "phone"]
    assert "Baton Rouge" not in str(entry.details)
    assert entry.actor_user_id == tenant.admin.id


@pytest.mark.asyncio
async def test_update_voter_geom(admin_client: AsyncClient, db, tenant: Tenant):
    voter = add_voter(db, tenant.org)
    response = await admin_client.patch(
        f"/api/v1/voters/{voter.id}", json={"geom": {"lat": 31.0, "lng": -92.0}}
    )
    assert response.status_code == 200
    assert response.json()["geom"] == {"lat": 31.0, "lng": -92.0}


@pytest.mark.asyncio
async def test_update_voter_without_known_fields(admin_client: AsyncClient, db, tenant: Tenant):
    voter = add_voter(db, tenant.org)
    response = await admin_client.patch(f"/api/v1/voters/{voter.id}", json={"shoe_size": 9})
    assert response.status_code == 400
    assert response.json()["error"] == "No valid fields provided"


@pytest.mark.asyncio
async def test_update_voter_rejects_blank_required(admin_client: AsyncClient, db, tenant: Tenant):
    voter = add_voter(db, tenant.org)
    response = await admin_client.patch(f"/api/v1/voters/{voter.id}", json={"last_name": "  "})
    assert response.status_code == 400

    db.expire_all()
    assert db.get(Voter, voter.id).last_name == "Voter"


@pytest.mark.asyncio
async def test_update_unknown_voter(admin_client: AsyncClient):
    response = await admin_client.patch(f"/api/v1/voters/{uuid.uuid4()}", json={"city": "X"})
    assert response.status_code == 404
