"""
Core Module Package.

This package contains the infrastructure shared by the
ingestion and timeline handlers.

Components:
- config: Environment-backed settings
- clock: Testable UTC clock
- exceptions: Request-level exception taxonomy
- thresholds: Tire pressure and speed limits
- auth: Device key / bearer token resolution
"""

from .clock import ClockProtocol, SystemClock, MockClock
from .config import FleetSettings, get_settings
from .exceptions import (
    FleetError,
    InputError,
    UnknownMachinesError,
    AuthError,
    NotFoundError,
    DependencyError,
    FieldError,
)
