"""
Telemetry Ingest - Store Access.

============================================================
PURPOSE
============================================================
Privileged writes for one ingestion request.

Every public method is its own transaction: it applies the
statement timeout, commits on success and rolls back on
failure. A failed step therefore never undoes an earlier
committed step (telemetry stays persisted when the alert
insert fails).

Database errors are wrapped in StoreError; the service
decides whether a failure is fatal or degraded.

============================================================
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Generator, Iterable, List, Optional, Set

from sqlalchemy import insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database.engine import apply_statement_timeout
from database.models import Alert, AuditEvent, Machine, Telemetry


class StoreError(Exception):
    """A store step failed. Carries the operation name."""

    def __init__(self, operation: str, original: Exception):
        self.operation = operation
        self.original = original
        super().__init__(f"{operation}: {original}")


class IngestRepository:
    """
    Store access for the ingestion orchestrator.

    Usage:
        repo = IngestRepository(session, timeout_seconds=10)
        known = repo.find_existing_machine_ids(["..."])
    """

    def __init__(self, session: Session, timeout_seconds: Optional[float] = None):
        self._session = session
        self._timeout_seconds = timeout_seconds
        self._logger = logging.getLogger("repository.IngestRepository")

    @property
    def session(self) -> Session:
        return self._session

    @contextmanager
    def _step(self, operation: str) -> Generator[Session, None, None]:
        try:
            apply_statement_timeout(self._session, self._timeout_seconds)
            yield self._session
            self._session.commit()
        except SQLAlchemyError as e:
            self._session.rollback()
            self._logger.error(f"Database error in {operation}: {e}", exc_info=True)
            raise StoreError(operation, e) from e

    # =========================================================
    # READS
    # =========================================================

    def find_existing_machine_ids(self, machine_ids: Iterable[str]) -> Set[str]:
        ids = list(machine_ids)
        if not ids:
            return set()
        with self._step("find_existing_machine_ids") as session:
            rows = session.execute(select(Machine.id).where(Machine.id.in_(ids)))
            return {row[0] for row in rows}

    # =========================================================
    # WRITES
    # =========================================================

    def insert_telemetry(self, rows: List[Dict[str, Any]]) -> int:
        if not rows:
            return 0
        with self._step("insert_telemetry") as session:
            session.execute(insert(Telemetry), rows)
        self._logger.debug(f"Inserted {len(rows)} telemetry rows")
        return len(rows)

    def update_machine_state(
        self,
        machine_id: str,
        status: str,
        last_telemetry_at: datetime,
        updated_at: datetime,
    ) -> int:
        """Unconditional overwrite; returns the number of rows touched."""
        with self._step("update_machine_state") as session:
            result = session.execute(
                update(Machine)
                .where(Machine.id == machine_id)
                .values(
                    status=status,
                    last_telemetry_at=last_telemetry_at,
                    updated_at=updated_at,
                )
            )
            return result.rowcount

    def insert_alerts(self, rows: List[Dict[str, Any]]) -> int:
        if not rows:
            return 0
        with self._step("insert_alerts") as session:
            session.execute(insert(Alert), rows)
        self._logger.debug(f"Inserted {len(rows)} alert rows")
        return len(rows)

    def append_audit_event(
        self,
        entity_type: str,
        entity_id: str,
        action: str,
        metadata: Dict[str, Any],
        actor_id: Optional[str] = None,
    ) -> None:
        with self._step("append_audit_event") as session:
            session.add(
                AuditEvent(
                    entity_type=entity_type,
                    entity_id=entity_id,
                    action=action,
                    actor_id=actor_id,
                    event_metadata=metadata,
                )
            )


__all__ = ["StoreError", "IngestRepository"]
