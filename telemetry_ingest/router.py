"""
FastAPI Router for Telemetry Ingestion.

POST   /telemetry-ingest   ingest one reading or a batch
OPTIONS /telemetry-ingest  CORS preflight, empty body

Any other method is answered 405 by the app-level handler.
"""

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from api.dependencies import CORS_HEADERS, get_clock, get_credential_resolver, get_db
from core.auth import CredentialResolver
from core.clock import ClockProtocol
from core.config import FleetSettings, get_settings

from .repository import IngestRepository
from .service import TelemetryIngestService

router = APIRouter(prefix="/telemetry-ingest", tags=["Telemetry Ingestion"])


def get_ingest_service(
    db: Session = Depends(get_db),
    settings: FleetSettings = Depends(get_settings),
    clock: ClockProtocol = Depends(get_clock),
) -> TelemetryIngestService:
    repository = IngestRepository(db, timeout_seconds=settings.store_timeout_seconds)
    return TelemetryIngestService(repository, clock=clock)


@router.options("")
def ingest_preflight():
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post("")
async def ingest_telemetry(
    request: Request,
    resolver: CredentialResolver = Depends(get_credential_resolver),
    service: TelemetryIngestService = Depends(get_ingest_service),
):
    """
    Ingest sensor readings.

    The credential is checked before the body is read, so an
    unauthenticated caller gets 401 even with a malformed body.
    """
    credential = await run_in_threadpool(resolver.resolve, request.headers)
    raw_body = await request.body()
    result = await run_in_threadpool(service.ingest, raw_body, credential)
    return result.to_response()
