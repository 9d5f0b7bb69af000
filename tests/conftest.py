"""
Shared fixtures: in-memory SQLite store, seeded fleet, fake
identity service and a TestClient wired to both.
"""

from datetime import datetime, timezone

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.dependencies import get_clock, get_db, get_identity_client
from api.main import app
from core.auth import IdentityClient
from core.clock import MockClock
from core.config import FleetSettings, get_settings
from database.engine import Base
from database.models import Machine, Tire, UserRole


MACHINE_ID = "6f1c2a4e-3b7d-4c8e-9a1f-2d3e4f5a6b7c"
OTHER_MACHINE_ID = "0b9d7c6a-5e4f-4a3b-8c2d-1e0f9a8b7c6d"
UNKNOWN_MACHINE_ID = "11111111-2222-4333-8444-555555555555"
TIRE_ID = "a1b2c3d4-e5f6-4a7b-8c9d-0e1f2a3b4c5d"

USER_ID = "c0ffee00-1234-4abc-8def-0123456789ab"
OUTSIDER_ID = "deadbeef-0000-4000-8000-000000000000"

DEVICE_KEY = "test-device-key"
IDENTITY_URL = "http://identity.test"

USER_TOKEN = "user-token"
OUTSIDER_TOKEN = "outsider-token"
UNREACHABLE_TOKEN = "unreachable-token"

NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

TEST_SETTINGS = FleetSettings(
    telemetry_api_key=DEVICE_KEY,
    identity_url=IDENTITY_URL,
    store_timeout_seconds=10.0,
)


def identity_handler(request: httpx.Request) -> httpx.Response:
    """Fake identity service keyed by bearer token."""
    token = request.headers.get("authorization", "")[len("Bearer "):]
    if token == USER_TOKEN:
        return httpx.Response(200, json={"id": USER_ID, "email": "ops@fleet.test"})
    if token == OUTSIDER_TOKEN:
        return httpx.Response(200, json={"id": OUTSIDER_ID})
    if token == UNREACHABLE_TOKEN:
        raise httpx.ConnectError("connection refused", request=request)
    return httpx.Response(401, json={"msg": "invalid JWT"})


def make_identity_client() -> IdentityClient:
    return IdentityClient(
        base_url=IDENTITY_URL,
        api_key="anon-key",
        transport=httpx.MockTransport(identity_handler),
    )


# =============================================================
# STORE
# =============================================================

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def seeded(db_session):
    """Two machines, one tire, one role grant for USER_ID."""
    db_session.add_all([
        Machine(id=MACHINE_ID, name="CAT 793F #12", model="793F", status="operational"),
        Machine(id=OTHER_MACHINE_ID, name="Komatsu 930E #3", model="930E", status="operational"),
    ])
    db_session.flush()
    db_session.add_all([
        Tire(id=TIRE_ID, machine_id=MACHINE_ID, serial="TR-0042", position="FL"),
        UserRole(user_id=USER_ID, role="manager"),
    ])
    db_session.commit()
    return db_session


@pytest.fixture
def clock():
    return MockClock(NOW)


# =============================================================
# HTTP
# =============================================================

@pytest.fixture
def client(session_factory, seeded, clock):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: TEST_SETTINGS
    app.dependency_overrides[get_identity_client] = make_identity_client
    app.dependency_overrides[get_clock] = lambda: clock

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def device_headers():
    return {"x-api-key": DEVICE_KEY}


@pytest.fixture
def user_headers():
    return {"Authorization": f"Bearer {USER_TOKEN}"}


@pytest.fixture
def outsider_headers():
    return {"Authorization": f"Bearer {OUTSIDER_TOKEN}"}
