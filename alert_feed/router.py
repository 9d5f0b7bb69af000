"""
FastAPI Router for the Alert Feed.

GET     /alerts   filtered, paginated alert list
OPTIONS /alerts   CORS preflight
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from api.dependencies import CORS_HEADERS, get_credential_resolver, get_db
from core.auth import CredentialResolver
from core.config import FleetSettings, get_settings
from database.access import AccessScope

from .schemas import AlertFeedQuery, AlertFeedResponse
from .service import AlertFeedService

router = APIRouter(prefix="/alerts", tags=["Alerts"])


@router.options("")
def alerts_preflight():
    return Response(status_code=200, headers=CORS_HEADERS)


@router.get("", response_model=AlertFeedResponse)
def list_alerts(
    request: Request,
    severity: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    machineId: Optional[str] = Query(None),
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    offset: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    resolver: CredentialResolver = Depends(get_credential_resolver),
    settings: FleetSettings = Depends(get_settings),
):
    """
    Get alerts visible to the caller, newest first.
    """
    credential = resolver.resolve_bearer(request.headers)

    query = AlertFeedQuery.from_params(
        severity=severity,
        alert_type=type,
        status=status,
        machine_id=machineId,
        start_date=startDate,
        end_date=endDate,
        limit=limit,
        offset=offset,
    )

    scope = AccessScope(db, credential.subject_id, timeout_seconds=settings.store_timeout_seconds)
    return AlertFeedService(scope).list_alerts(query)
