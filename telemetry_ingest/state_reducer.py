"""
Telemetry Ingest - Machine State Reducer.

Folds a batch into one state update per machine. The reading
with the greatest timestamp wins (not seq); on a timestamp tie
the reading seen first is kept. Updates are applied without
comparing against the machine's stored last_telemetry_at, so an
old batch can move it backward.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List

from core.thresholds import MachineStatus, determine_status

from .schemas import NormalizedReading


@dataclass(frozen=True)
class MachineStateUpdate:
    """Status and last telemetry instant for one machine."""

    machine_id: str
    status: MachineStatus
    last_telemetry_at: datetime
    pressure: float
    speed: float


def latest_by_machine(readings: Iterable[NormalizedReading]) -> Dict[str, NormalizedReading]:
    """Latest-by-timestamp reading per machine, in first-seen order."""
    latest: Dict[str, NormalizedReading] = {}
    for reading in readings:
        current = latest.get(reading.machine_id)
        if current is None or reading.timestamp > current.timestamp:
            latest[reading.machine_id] = reading
    return latest


def reduce_machine_states(readings: Iterable[NormalizedReading]) -> List[MachineStateUpdate]:
    return [
        MachineStateUpdate(
            machine_id=machine_id,
            status=determine_status(reading.pressure, reading.speed),
            last_telemetry_at=reading.timestamp,
            pressure=reading.pressure,
            speed=reading.speed,
        )
        for machine_id, reading in latest_by_machine(readings).items()
    ]


__all__ = ["MachineStateUpdate", "latest_by_machine", "reduce_machine_states"]
