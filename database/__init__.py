"""
Database Package Initialization.

============================================================
RELATIONAL STORE FOR FLEET TELEMETRY
============================================================

Two access modes share one schema:

- Privileged sessions: ingestion writes telemetry, alerts,
  machine state and audit events
- AccessScope: subject-bound, read-only queries for the
  timeline and alert feed

============================================================
"""

from .engine import (
    Base,
    create_database_engine,
    configure_engine,
    get_engine,
    get_session,
    get_db_session,
    get_session_factory,
    apply_statement_timeout,
    initialize_database,
    create_all_tables,
    DatabasePersistenceError,
    DatabaseConnectionError,
    DatabaseInitializationError,
)

from .models import (
    Machine,
    Tire,
    Telemetry,
    Alert,
    Occurrence,
    AuditEvent,
    UserRole,
    AlertType,
    AlertSeverity,
    AlertStatus,
)

from .access import AccessScope, ReadOnlyViolation
