"""Tests for the organization user roster."""
import pytest
from httpx import AsyncClient
from sqlalchemy import select

from voterfield.db.enums import AuditAction, OrgLimit
from voterfield.db.models import AuditLogEntry
from voterfield.services import org_service

from tests.conftest import Tenant


@pytest.mark.asyncio
async def test_admin_invites_canvasser(admin_client: AsyncClient, db, tenant: Tenant):
    response = await admin_client.post(
        "/api/v1/users/invite",
        json={"name": "Nia New", "email": "Nia.New@Example.org", "phone": "555-0100"},
    )
    assert response.status_code == 201
    data = response.json()
    assert data["role"] == "canvasser"
    assert data["email"] == "nia.new@example.org"
    assert data["organization_id"] == str(tenant.org.id)

    entry = db.execute(
        select(AuditLogEntry).where(AuditLogEntry.action == AuditAction.USER_INVITE.value)
    ).scalar_one()
    assert "nia.new@example.org" not in str(entry.details)
    assert entry.details["email"].startswith("nia...@[hash:")


@pytest.mark.asyncio
async def test_invite_requires_name_and_email(admin_client: AsyncClient):
    response = await admin_client.post("/api/v1/users/invite", json={"name": "No Email"})
    assert response.status_code == 400
    assert response.json()["error"] == "Name and email are required"


@pytest.mark.asyncio
async def test_invite_duplicate_email_conflicts(admin_client: AsyncClient, tenant: Tenant):
    response = await admin_client.post(
        "/api/v1/users/invite", json={"name": "Dup", "email": tenant.canvasser.email}
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_canvasser_cannot_invite(canvasser_client: AsyncClient):
    response = await canvasser_client.post(
        "/api/v1/users/invite", json={"name": "X", "email": "x@example.org"}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_invite_respects_user_limit(admin_client: AsyncClient, db, tenant: Tenant):
    # admin + canvasser already exist
    org_service.set_limit(db, tenant.org.id, OrgLimit.MAX_USERS, 2)

    response = await admin_client.post(
        "/api/v1/users/invite", json={"name": "Over", "email": "over@example.org"}
    )
    assert response.status_code == 403
    assert "max_users" in response.json()["error"]


@pytest.mark.asyncio
async def test_list_users_filters_by_role(admin_client: AsyncClient, tenant: Tenant):
    response = await admin_client.get("/api/v1/users", params={"role": "canvasser"})
    assert response.status_code == 200
    assert [u["id"] for u in response.json()] == [str(tenant.canvasser.id)]

    response = await admin_client.get("/api/v1/users")
    assert len(response.json()) == 2


@pytest.mark.asyncio
async def test_users_are_tenant_scoped(other_admin_client: AsyncClient, tenant: Tenant, other_tenant: Tenant):
    response = await other_admin_client.get("/api/v1/users")
    assert [u["id"] for u in response.json()] == [str(other_tenant.admin.id)]


@pytest.mark.asyncio
async def test_update_own_location(canvasser_client: AsyncClient):
    response = await canvasser_client.patch(
        "/api/v1/users/me", json={"location": {"lat": 30.45, "lng": -91.18}}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["location"] == {"lat": 30.45, "lng": -91.18}
    assert data["location_updated_at"] is not None


@pytest.mark.asyncio
async def test_update_profile_requires_a_field(canvasser_client: AsyncClient):
    response = await canvasser_client.patch("/api/v1/users/me", json={})
    assert response.status_code == 400
    assert response.json()["error"] == "No valid fields provided"


@pytest.mark.asyncio
async def test_admin_changes_role(admin_client: AsyncClient, db, tenant: Tenant):
    response = await admin_client.patch(
        f"/api/v1/users/{tenant.canvasser.id}/role", json={"role": "admin"}
    )
    assert response.status_code == 200
    assert response.json()["role"] == "admin"

    entry = db.execute(
        select(AuditLogEntry).where(AuditLogEntry.action == AuditAction.USER_ROLE_CHANGE.value)
    ).scalar_one()
    assert entry.details == {"user_id": str(tenant.canvasser.id), "from": "canvasser", "to": "admin"}


@pytest.mark.asyncio
async def test_change_role_of_foreign_user_not_found(admin_client: AsyncClient, other_tenant: Tenant):
    response = await admin_client.patch(
        f"/api/v1/users/{other_tenant.admin.id}/role", json={"role": "canvasser"}
    )
    assert response.status_code == 404
