"""
Tests for the per-machine state reducer.
"""

from datetime import timedelta

from core.thresholds import MachineStatus
from telemetry_ingest.schemas import NormalizedReading
from telemetry_ingest.state_reducer import latest_by_machine, reduce_machine_states

from conftest import MACHINE_ID, NOW, OTHER_MACHINE_ID


def _reading(machine_id, pressure, speed=10.0, minutes=0, seq=1):
    return NormalizedReading(
        machine_id=machine_id,
        tire_id=None,
        pressure=pressure,
        speed=speed,
        timestamp=NOW + timedelta(minutes=minutes),
        seq=seq,
    )


class TestReduceMachineStates:

    def test_latest_reading_wins(self):
        readings = [
            _reading(MACHINE_ID, 3.0, minutes=1),
            _reading(MACHINE_ID, 1.5, minutes=2),
            _reading(MACHINE_ID, 3.0, minutes=3),
        ]

        updates = reduce_machine_states(readings)

        assert len(updates) == 1
        assert updates[0].pressure == 3.0
        assert updates[0].status == MachineStatus.OPERATIONAL
        assert updates[0].last_telemetry_at == NOW + timedelta(minutes=3)

    def test_order_in_batch_does_not_matter(self):
        readings = [
            _reading(MACHINE_ID, 1.5, minutes=5),
            _reading(MACHINE_ID, 3.0, minutes=1),
        ]

        update = reduce_machine_states(readings)[0]

        assert update.status == MachineStatus.CRITICAL
        assert update.last_telemetry_at == NOW + timedelta(minutes=5)

    def test_seq_is_ignored(self):
        readings = [
            _reading(MACHINE_ID, 4.7, minutes=2, seq=1),
            _reading(MACHINE_ID, 3.0, minutes=1, seq=99),
        ]
        assert reduce_machine_states(readings)[0].status == MachineStatus.WARNING

    def test_timestamp_tie_keeps_first(self):
        readings = [
            _reading(MACHINE_ID, 1.0, minutes=0),
            _reading(MACHINE_ID, 3.0, minutes=0),
        ]
        assert latest_by_machine(readings)[MACHINE_ID].pressure == 1.0

    def test_one_update_per_machine_in_first_seen_order(self):
        readings = [
            _reading(OTHER_MACHINE_ID, 3.0),
            _reading(MACHINE_ID, 3.0),
            _reading(OTHER_MACHINE_ID, 2.2, minutes=1),
        ]

        updates = reduce_machine_states(readings)

        assert [u.machine_id for u in updates] == [OTHER_MACHINE_ID, MACHINE_ID]
        assert updates[0].status == MachineStatus.WARNING

    def test_empty_batch(self):
        assert reduce_machine_states([]) == []
