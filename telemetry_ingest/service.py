"""
Telemetry Ingest - Orchestrator.

============================================================
PURPOSE
============================================================
Sequences one ingestion request:

1. Validate / normalize the body            -> InputError (400)
2. Check every machine id exists            -> UnknownMachinesError (400)
3. Build rows, classify, reduce states      (in memory)
4. Insert telemetry                         -> DependencyError (500)
5. Update machine state, per machine        degraded on failure
6. Insert alerts                            degraded on failure
7. Append audit event                       degraded on failure

Authentication happens before the body is read (router).

============================================================
FAILURE ASYMMETRY
============================================================
Telemetry acceptance is the contract. Once telemetry rows are
committed, alert/state/audit failures are collected as
WriteOutcome values and logged; they never change the HTTP
outcome. alerts_generated reports what was attempted, not
what was persisted.

============================================================
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from core.auth import Credential
from core.clock import ClockProtocol, SystemClock, to_iso8601
from core.exceptions import DependencyError, UnknownMachinesError

from .classifier import AlertDraft, classify
from .repository import IngestRepository, StoreError
from .schemas import NormalizedReading, parse_ingest_payload
from .state_reducer import MachineStateUpdate, reduce_machine_states


logger = logging.getLogger(__name__)

TELEMETRY_WRITE_FAILED_MESSAGE = "Failed to process telemetry data"


# =============================================================
# RESULT TYPES
# =============================================================

@dataclass(frozen=True)
class WriteOutcome:
    """Result of one best-effort write."""

    step: str
    ok: bool
    target: Optional[str] = None
    error: Optional[str] = None


@dataclass
class IngestionResult:
    """What one ingestion request did."""

    processed: int
    alerts_generated: int
    timestamp: datetime
    source: str
    outcomes: List[WriteOutcome] = field(default_factory=list)

    @property
    def degraded(self) -> List[WriteOutcome]:
        return [o for o in self.outcomes if not o.ok]

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": True,
            "processed": self.processed,
            "alerts_generated": self.alerts_generated,
            "timestamp": to_iso8601(self.timestamp),
        }


@dataclass
class IngestionPlan:
    """Everything derived in memory before the first write."""

    readings: List[NormalizedReading]
    telemetry_rows: List[Dict[str, Any]]
    alerts: List[AlertDraft]
    machine_updates: List[MachineStateUpdate]


def build_plan(readings: List[NormalizedReading]) -> IngestionPlan:
    """Telemetry rows, classifier output and reduced machine states."""
    telemetry_rows: List[Dict[str, Any]] = []
    alerts: List[AlertDraft] = []

    for reading in readings:
        telemetry_rows.append(reading.to_row())
        alerts.extend(classify(reading, reading.timestamp))

    return IngestionPlan(
        readings=readings,
        telemetry_rows=telemetry_rows,
        alerts=alerts,
        machine_updates=reduce_machine_states(readings),
    )


# =============================================================
# SERVICE
# =============================================================

class TelemetryIngestService:
    """Ingestion orchestrator. One instance per request."""

    def __init__(
        self,
        repository: IngestRepository,
        clock: Optional[ClockProtocol] = None,
    ):
        self._repository = repository
        self._clock = clock or SystemClock()

    def ingest(self, raw_body: bytes, credential: Credential) -> IngestionResult:
        """
        Run the full ingestion sequence for an authenticated caller.

        Raises:
            InputError: body invalid
            UnknownMachinesError: a machine id does not exist
            DependencyError: the existence check or telemetry insert failed
        """
        received_at = self._clock.now()
        readings = parse_ingest_payload(
            raw_body, received_at, received_ms=self._clock.epoch_millis()
        )

        self._check_machines_exist(readings)

        plan = build_plan(readings)

        self._insert_telemetry(plan)

        outcomes: List[WriteOutcome] = []
        outcomes.extend(self._apply_machine_updates(plan.machine_updates))
        outcomes.append(self._insert_alerts(plan.alerts))
        outcomes.append(self._append_audit(plan, credential))

        result = IngestionResult(
            processed=len(plan.telemetry_rows),
            alerts_generated=len(plan.alerts),
            timestamp=self._clock.now(),
            source=credential.source,
            outcomes=outcomes,
        )

        for outcome in result.degraded:
            logger.error(
                f"[{credential.source}] Degraded write {outcome.step}"
                f" target={outcome.target}: {outcome.error}"
            )

        logger.info(
            f"[{credential.source}] Processed {result.processed} telemetry readings, "
            f"generated {result.alerts_generated} alerts"
        )
        return result

    # ---------------------------------------------------------
    # FATAL STEPS
    # ---------------------------------------------------------

    def _check_machines_exist(self, readings: List[NormalizedReading]) -> None:
        submitted: Dict[str, str] = {}
        for r in readings:
            submitted.setdefault(r.machine_id, r.submitted_machine_id or r.machine_id)
        unique_ids = list(submitted)

        try:
            known = self._repository.find_existing_machine_ids(unique_ids)
        except StoreError as e:
            logger.error(f"Failed to validate machines: {e}")
            raise DependencyError(cause=e) from e

        invalid = [submitted[machine_id] for machine_id in unique_ids if machine_id not in known]
        if invalid:
            raise UnknownMachinesError(invalid)

    def _insert_telemetry(self, plan: IngestionPlan) -> None:
        try:
            self._repository.insert_telemetry(plan.telemetry_rows)
        except StoreError as e:
            logger.error(f"Telemetry insert error: {e}")
            raise DependencyError(TELEMETRY_WRITE_FAILED_MESSAGE, cause=e) from e

    # ---------------------------------------------------------
    # DEGRADED STEPS
    # ---------------------------------------------------------

    def _apply_machine_updates(self, updates: List[MachineStateUpdate]) -> List[WriteOutcome]:
        outcomes: List[WriteOutcome] = []
        for state in updates:
            try:
                self._repository.update_machine_state(
                    machine_id=state.machine_id,
                    status=state.status.value,
                    last_telemetry_at=state.last_telemetry_at,
                    updated_at=self._clock.now(),
                )
                outcomes.append(WriteOutcome("machine_state", True, target=state.machine_id))
            except StoreError as e:
                outcomes.append(
                    WriteOutcome("machine_state", False, target=state.machine_id, error=str(e))
                )
        return outcomes

    def _insert_alerts(self, alerts: List[AlertDraft]) -> WriteOutcome:
        try:
            self._repository.insert_alerts([a.to_row() for a in alerts])
            return WriteOutcome("alerts", True)
        except StoreError as e:
            return WriteOutcome("alerts", False, error=str(e))

    def _append_audit(self, plan: IngestionPlan, credential: Credential) -> WriteOutcome:
        entity_id = plan.telemetry_rows[0]["machine_id"] if plan.telemetry_rows else "batch"
        try:
            self._repository.append_audit_event(
                entity_type="telemetry",
                entity_id=entity_id,
                action="ingest",
                actor_id=credential.subject_id,
                metadata={
                    "count": len(plan.telemetry_rows),
                    "alerts_generated": len(plan.alerts),
                    "source": credential.source,
                },
            )
            return WriteOutcome("audit", True, target=entity_id)
        except StoreError as e:
            return WriteOutcome("audit", False, target=entity_id, error=str(e))


__all__ = [
    "WriteOutcome",
    "IngestionResult",
    "IngestionPlan",
    "build_plan",
    "TelemetryIngestService",
]
