"""
FastAPI Router for the Machine Timeline.

GET     /machine-timeline?machineId=...
GET     /machine-timeline/{machine_id}
OPTIONS on both paths for CORS preflight.

The machineId query parameter wins over the path segment.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from api.dependencies import CORS_HEADERS, get_credential_resolver, get_db
from core.auth import CredentialResolver
from core.config import FleetSettings, get_settings
from database.access import AccessScope

from .repository import TimelineRepository
from .schemas import TimelineQuery, TimelineResponse
from .service import MachineTimelineService

router = APIRouter(prefix="/machine-timeline", tags=["Machine Timeline"])


def _timeline(
    request: Request,
    path_machine_id: Optional[str],
    query_machine_id: Optional[str],
    start_date: Optional[str],
    end_date: Optional[str],
    event_types: Optional[str],
    limit: Optional[str],
    db: Session,
    resolver: CredentialResolver,
    settings: FleetSettings,
) -> TimelineResponse:
    credential = resolver.resolve_bearer(request.headers)

    query = TimelineQuery.from_params(
        machine_id=query_machine_id or path_machine_id,
        start_date=start_date,
        end_date=end_date,
        event_types=event_types,
        limit=limit,
    )

    scope = AccessScope(db, credential.subject_id, timeout_seconds=settings.store_timeout_seconds)
    service = MachineTimelineService(TimelineRepository(scope))
    return service.get_timeline(query)


@router.options("")
def timeline_preflight():
    return Response(status_code=200, headers=CORS_HEADERS)


@router.options("/{machine_id}")
def timeline_preflight_by_path(machine_id: str):
    return Response(status_code=200, headers=CORS_HEADERS)


@router.get("", response_model=TimelineResponse)
def get_machine_timeline(
    request: Request,
    machineId: Optional[str] = Query(None),
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    eventTypes: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    resolver: CredentialResolver = Depends(get_credential_resolver),
    settings: FleetSettings = Depends(get_settings),
):
    """Merged alert, occurrence and critical telemetry feed for one machine."""
    return _timeline(
        request, None, machineId, startDate, endDate, eventTypes, limit,
        db, resolver, settings,
    )


@router.get("/{machine_id}", response_model=TimelineResponse)
def get_machine_timeline_by_path(
    request: Request,
    machine_id: str,
    machineId: Optional[str] = Query(None),
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    eventTypes: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    resolver: CredentialResolver = Depends(get_credential_resolver),
    settings: FleetSettings = Depends(get_settings),
):
    return _timeline(
        request, machine_id, machineId, startDate, endDate, eventTypes, limit,
        db, resolver, settings,
    )
