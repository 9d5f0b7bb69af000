"""
Telemetry Ingest Package.

Validates sensor readings, classifies threshold breaches,
reduces per-machine status and persists the results.
"""

from .schemas import NormalizedReading, ReadingIn, ReadingBatchIn, parse_ingest_payload
from .classifier import AlertDraft, classify
from .state_reducer import MachineStateUpdate, reduce_machine_states
from .repository import IngestRepository, StoreError
from .service import IngestionResult, TelemetryIngestService, WriteOutcome

__all__ = [
    "NormalizedReading",
    "ReadingIn",
    "ReadingBatchIn",
    "parse_ingest_payload",
    "AlertDraft",
    "classify",
    "MachineStateUpdate",
    "reduce_machine_states",
    "IngestRepository",
    "StoreError",
    "IngestionResult",
    "TelemetryIngestService",
    "WriteOutcome",
]
