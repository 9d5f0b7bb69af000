"""
Tests for threshold classification and machine status.
"""

import pytest

from core.thresholds import MachineStatus, determine_status, format_measure
from database.models import AlertSeverity, AlertType
from telemetry_ingest.classifier import classify, pressure_band, speed_band
from telemetry_ingest.schemas import NormalizedReading

from conftest import MACHINE_ID, NOW, TIRE_ID


def _reading(pressure: float, speed: float) -> NormalizedReading:
    return NormalizedReading(
        machine_id=MACHINE_ID,
        tire_id=TIRE_ID,
        pressure=pressure,
        speed=speed,
        timestamp=NOW,
        seq=1,
    )


# =============================================================
# TEST: Bands
# =============================================================

class TestPressureBands:

    @pytest.mark.parametrize("pressure,expected", [
        (0.0, (AlertType.PRESSURE_LOW, AlertSeverity.CRITICAL)),
        (1.99, (AlertType.PRESSURE_LOW, AlertSeverity.CRITICAL)),
        (2.0, (AlertType.PRESSURE_LOW, AlertSeverity.HIGH)),
        (2.49, (AlertType.PRESSURE_LOW, AlertSeverity.HIGH)),
        (2.5, None),
        (3.5, None),
        (4.5, None),
        (4.51, (AlertType.PRESSURE_HIGH, AlertSeverity.MEDIUM)),
        (5.0, (AlertType.PRESSURE_HIGH, AlertSeverity.MEDIUM)),
        (5.01, (AlertType.PRESSURE_HIGH, AlertSeverity.CRITICAL)),
        (10.0, (AlertType.PRESSURE_HIGH, AlertSeverity.CRITICAL)),
    ])
    def test_pressure_band(self, pressure, expected):
        assert pressure_band(pressure) == expected


class TestSpeedBands:

    @pytest.mark.parametrize("speed,expected", [
        (0.0, None),
        (60.0, None),
        (60.1, AlertSeverity.HIGH),
        (80.0, AlertSeverity.HIGH),
        (80.1, AlertSeverity.CRITICAL),
        (200.0, AlertSeverity.CRITICAL),
    ])
    def test_speed_band(self, speed, expected):
        assert speed_band(speed) == expected


# =============================================================
# TEST: classify()
# =============================================================

class TestClassify:

    def test_normal_reading_raises_nothing(self):
        assert classify(_reading(3.2, 45), NOW) == []

    def test_low_pressure_and_high_speed(self):
        alerts = classify(_reading(1.8, 90), NOW)

        assert [(a.type, a.severity) for a in alerts] == [
            (AlertType.PRESSURE_LOW, AlertSeverity.CRITICAL),
            (AlertType.SPEED_EXCEEDED, AlertSeverity.CRITICAL),
        ]
        assert alerts[0].message == "Pressão crítica: 1.8 bar"
        assert alerts[1].message == "Velocidade crítica: 90 km/h"

    def test_alert_carries_reading_ids_and_timestamp(self):
        alert = classify(_reading(2.3, 10), NOW)[0]

        assert alert.machine_id == MACHINE_ID
        assert alert.tire_id == TIRE_ID
        assert alert.opened_at == NOW
        assert alert.message == "Pressão baixa: 2.3 bar"
        assert alert.recommended_action == "Verificar pneu na próxima parada"

    def test_high_pressure_medium(self):
        alert = classify(_reading(4.8, 10), NOW)[0]
        assert alert.type == AlertType.PRESSURE_HIGH
        assert alert.severity == AlertSeverity.MEDIUM
        assert alert.message == "Pressão elevada: 4.8 bar"

    def test_row_is_inserted_open(self):
        row = classify(_reading(5.5, 10), NOW)[0].to_row()

        assert row["status"] == "open"
        assert row["type"] == "pressure_high"
        assert row["severity"] == "critical"
        assert row["opened_at"] == row["updated_at"] == NOW


# =============================================================
# TEST: Machine Status
# =============================================================

class TestDetermineStatus:

    @pytest.mark.parametrize("pressure,speed,expected", [
        (3.0, 30, MachineStatus.OPERATIONAL),
        (2.5, 60, MachineStatus.OPERATIONAL),
        (2.4, 30, MachineStatus.WARNING),
        (4.6, 30, MachineStatus.WARNING),
        (3.0, 61, MachineStatus.WARNING),
        (1.9, 30, MachineStatus.CRITICAL),
        (5.1, 30, MachineStatus.CRITICAL),
        (3.0, 81, MachineStatus.CRITICAL),
        (2.4, 81, MachineStatus.CRITICAL),
    ])
    def test_status(self, pressure, speed, expected):
        assert determine_status(pressure, speed) == expected

    def test_status_is_pure(self):
        assert determine_status(1.5, 0) == determine_status(1.5, 0)


class TestFormatMeasure:

    @pytest.mark.parametrize("value,expected", [
        (90.0, "90"),
        (1.8, "1.8"),
        (0, "0"),
        (2.25, "2.25"),
    ])
    def test_format(self, value, expected):
        assert format_measure(value) == expected
