"""
API - Dependency Providers.

Shared FastAPI dependencies. Tests override these through
app.dependency_overrides.
"""

from typing import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from core.auth import CredentialResolver, IdentityClient
from core.clock import ClockProtocol, SystemClock
from core.config import FleetSettings, get_settings
from database.engine import get_session


CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type, x-api-key",
}


# =============================================================
# HELPER: Database dependency
# =============================================================

def get_db() -> Generator[Session, None, None]:
    db = get_session()
    try:
        yield db
    finally:
        db.close()


# =============================================================
# HELPER: Auth dependencies
# =============================================================

def get_identity_client(settings: FleetSettings = Depends(get_settings)) -> IdentityClient:
    return IdentityClient(
        base_url=settings.identity_url,
        api_key=settings.identity_api_key,
        timeout_seconds=settings.identity_timeout_seconds,
    )


def get_credential_resolver(
    settings: FleetSettings = Depends(get_settings),
    identity: IdentityClient = Depends(get_identity_client),
) -> CredentialResolver:
    return CredentialResolver(device_api_key=settings.telemetry_api_key, identity=identity)


def get_clock() -> ClockProtocol:
    return SystemClock()
