"""
Core Module - Exceptions.

============================================================
RESPONSIBILITY
============================================================
Defines the request-level exception taxonomy shared by the
ingestion and timeline handlers.

- Every exception knows the HTTP status it maps to
- Every exception renders its own JSON error body
- Caller-facing messages are fixed; detail goes to the log

============================================================
EXCEPTION HIERARCHY
============================================================
FleetError (base)
├── InputError                 400
│   └── UnknownMachinesError   400
├── AuthError                  401
├── NotFoundError              404
└── DependencyError            500

Degraded writes (alert insert, machine state update, audit
append) are NOT exceptions; see telemetry_ingest.service.

============================================================
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


# ============================================================
# FIELD ERRORS
# ============================================================

@dataclass(frozen=True)
class FieldError:
    """One schema violation: dotted path plus message."""

    field: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "message": self.message}


# ============================================================
# BASE EXCEPTION
# ============================================================

class FleetError(Exception):
    """
    Base exception for all request-level failures.

    Carries:
    - message: the text returned to the caller
    - status_code: HTTP status for the response
    - context: extra detail for logging only
    - timestamp: when the error occurred
    """

    status_code: int = 500
    default_message: str = "Processing failed"

    def __init__(
        self,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        self.message = message or self.default_message
        super().__init__(self.message)

        self.context = context or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

        if cause:
            self.context["cause_type"] = type(cause).__name__
            self.context["cause_message"] = str(cause)

    def payload(self) -> Dict[str, Any]:
        """Extra response fields beyond the error message."""
        return {}

    def to_response(self) -> Dict[str, Any]:
        """Render the JSON body returned to the caller."""
        body: Dict[str, Any] = {"error": self.message}
        body.update(self.payload())
        return body

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for logging."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "status_code": self.status_code,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }


# ============================================================
# INPUT ERRORS
# ============================================================

class InputError(FleetError):
    """Malformed JSON, schema violation, bad id or bad date."""

    status_code = 400
    default_message = "Validation failed"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[List[FieldError]] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.details = list(details or [])

    def payload(self) -> Dict[str, Any]:
        if not self.details:
            return {}
        return {"details": [d.to_dict() for d in self.details]}


class UnknownMachinesError(InputError):
    """A batch references well-formed machine ids that do not exist."""

    default_message = "Invalid machine IDs"

    def __init__(self, invalid_ids: List[str]):
        super().__init__(context={"invalid_ids": list(invalid_ids)})
        self.invalid_ids = list(invalid_ids)

    def payload(self) -> Dict[str, Any]:
        return {"invalidIds": self.invalid_ids}


# ============================================================
# AUTH / LOOKUP ERRORS
# ============================================================

class AuthError(FleetError):
    """Missing or rejected credential. Never carries detail."""

    status_code = 401
    default_message = "Unauthorized"


class NotFoundError(FleetError):
    """A single requested resource is absent or not visible."""

    status_code = 404
    default_message = "Not found"


# ============================================================
# DEPENDENCY ERRORS
# ============================================================

class DependencyError(FleetError):
    """
    Store or identity service failed.

    The caller only sees the generic message; the cause is
    kept in context for the server-side log.
    """

    status_code = 500
    default_message = "Processing failed"


__all__ = [
    "FieldError",
    "FleetError",
    "InputError",
    "UnknownMachinesError",
    "AuthError",
    "NotFoundError",
    "DependencyError",
]
