"""
API - Application.

============================================================
RESPONSIBILITY
============================================================
Assembles the FastAPI app serving the fleet telemetry
handlers and maps every error to a {"error": ...} body.

============================================================
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from alert_feed.router import router as alerts_router
from core.exceptions import DependencyError, FleetError
from machine_timeline.router import router as timeline_router
from telemetry_ingest.router import router as ingest_router

from .dependencies import CORS_HEADERS

logger = logging.getLogger(__name__)


HTTP_ERROR_MESSAGES = {
    404: "Not found",
    405: "Method not allowed",
}


app = FastAPI(
    title="Fleet Telemetry API",
    description="Tire telemetry ingestion, machine timeline and alert feed.",
    version="1.0.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type", "x-api-key"],
)


# ============================================================
# Exception Handlers
# ============================================================

@app.exception_handler(FleetError)
async def fleet_error_handler(request: Request, exc: FleetError):
    if isinstance(exc, DependencyError):
        logger.error(f"{request.method} {request.url.path} failed: {exc.to_dict()}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response(),
        headers=CORS_HEADERS,
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = HTTP_ERROR_MESSAGES.get(exc.status_code, str(exc.detail))
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": message},
        headers={**CORS_HEADERS, **(exc.headers or {})},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": DependencyError.default_message},
        headers=CORS_HEADERS,
    )


# ============================================================
# Routers
# ============================================================

app.include_router(ingest_router)
app.include_router(timeline_router)
app.include_router(alerts_router)


@app.get("/")
def root():
    return {"status": "ok", "message": "Fleet Telemetry API is running"}
