"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database, rebuilt for every test
- Two tenants (admin + canvasser in the primary one) with minted tokens
- HTTPX AsyncClients bound to the app with bearer headers
"""
import os
import tempfile
import uuid
from dataclasses import dataclass
from typing import AsyncGenerator, Generator

# Must be set before anything from voterfield is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TESTING"] = "1"
os.environ["ENV"] = "test"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["LOCAL_STORAGE_PATH"] = tempfile.mkdtemp(prefix="voterfield-tests-")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from voterfield.core.deps import get_db
from voterfield.core.security import create_session_token
from voterfield.db.base import Base
from voterfield.db.enums import Role
from voterfield.db.models import Organization, User, Voter
from voterfield.db.session import SessionLocal, engine
from voterfield.main import app
from voterfield.services import org_service


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Fresh schema per test.

    The in-memory engine shares one connection (StaticPool), so the
    app and the test see the same data through this session.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@dataclass
class Tenant:
    """One organization with its members and their tokens."""
    org: Organization
    admin: User
    admin_token: str
    canvasser: User | None = None
    canvasser_token: str | None = None


def token_for(user: User) -> str:
    return create_session_token(user.id, user.organization_id, user.role)


def add_user(db: Session, org: Organization, role: Role = Role.CANVASSER, name: str | None = None) -> User:
    suffix = uuid.uuid4().hex[:8]
    user = User(
        organization_id=org.id,
        name=name or f"Canvasser {suffix}",
        email=f"{role.value}-{suffix}@example.org",
        role=role.value,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def add_voter(db: Session, org: Organization, **fields) -> Voter:
    values = {
        "external_id": f"T-{uuid.uuid4().hex[:10]}",
        "first_name": "Test",
        "last_name": "Voter",
        "address": "100 Main St",
        "latitude": 30.45,
        "longitude": -91.18,
    }
    values.update(fields)
    voter = Voter(organization_id=org.id, **values)
    db.add(voter)
    db.commit()
    db.refresh(voter)
    return voter


@pytest.fixture(scope="function")
def tenant(db: Session) -> Tenant:
    """Primary org with an admin and a canvasser."""
    org, admin = org_service.create_org(
        db, "Test Field Org", "Ada Admin", f"admin-{uuid.uuid4().hex[:8]}@example.org"
    )
    canvasser = add_user(db, org, Role.CANVASSER, name="Cal Canvasser")
    return Tenant(
        org=org,
        admin=admin,
        admin_token=token_for(admin),
        canvasser=canvasser,
        canvasser_token=token_for(canvasser),
    )


@pytest.fixture(scope="function")
def other_tenant(db: Session) -> Tenant:
    """Second org (admin only) for isolation checks."""
    org, admin = org_service.create_org(
        db, "Other Field Org", "Olive Other", f"other-{uuid.uuid4().hex[:8]}@example.org"
    )
    return Tenant(org=org, admin=admin, admin_token=token_for(admin))


# =============================================================================
# Client Fixtures
# =============================================================================

def _client(token: str | None = None) -> AsyncClient:
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers=headers,
    )


@pytest.fixture(scope="function")
def override_db(db: Session) -> Generator[Session, None, None]:
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    yield db
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client(override_db: Session) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated client."""
    async with _client() as c:
        yield c


@pytest.fixture(scope="function")
async def admin_client(override_db: Session, tenant: Tenant) -> AsyncGenerator[AsyncClient, None]:
    async with _client(tenant.admin_token) as c:
        yield c


@pytest.fixture(scope="function")
async def canvasser_client(override_db: Session, tenant: Tenant) -> AsyncGenerator[AsyncClient, None]:
    async with _client(tenant.canvasser_token) as c:
        yield c


@pytest.fixture(scope="function")
async def other_admin_client(
    override_db: Session, other_tenant: Tenant
) -> AsyncGenerator[AsyncClient, None]:
    async with _client(other_tenant.admin_token) as c:
        yield c
