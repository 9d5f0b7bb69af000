"""
Core Module - Safety Thresholds.

============================================================
PURPOSE
============================================================
Tire pressure (bar) and speed (km/h) limits shared by the
classifier, the machine state reducer and the timeline.

All comparisons are strict: a reading exactly on a limit
belongs to the milder band.

============================================================
"""

from enum import Enum


# ============================================================
# LIMITS
# ============================================================

PRESSURE_LOW_CRITICAL = 2.0
PRESSURE_LOW_WARNING = 2.5
PRESSURE_HIGH_WARNING = 4.5
PRESSURE_HIGH_CRITICAL = 5.0

SPEED_WARNING = 60.0
SPEED_CRITICAL = 80.0

# Accepted input ranges
PRESSURE_MIN = 0.0
PRESSURE_MAX = 10.0
SPEED_MIN = 0.0
SPEED_MAX = 200.0


# ============================================================
# MACHINE STATUS
# ============================================================

class MachineStatus(str, Enum):
    """Aggregate operational classification of a machine."""
    OPERATIONAL = "operational"
    WARNING = "warning"
    CRITICAL = "critical"


def is_critical(pressure: float, speed: float) -> bool:
    return (
        pressure < PRESSURE_LOW_CRITICAL
        or pressure > PRESSURE_HIGH_CRITICAL
        or speed > SPEED_CRITICAL
    )


def is_out_of_range(pressure: float, speed: float) -> bool:
    """True when any warning limit is breached."""
    return (
        pressure < PRESSURE_LOW_WARNING
        or pressure > PRESSURE_HIGH_WARNING
        or speed > SPEED_WARNING
    )


def determine_status(pressure: float, speed: float) -> MachineStatus:
    """Status implied by a single reading, independent of history."""
    if is_critical(pressure, speed):
        return MachineStatus.CRITICAL
    if is_out_of_range(pressure, speed):
        return MachineStatus.WARNING
    return MachineStatus.OPERATIONAL


def format_measure(value: float) -> str:
    """Render a measurement the way it was sent: 90 not 90.0."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


__all__ = [
    "PRESSURE_LOW_CRITICAL",
    "PRESSURE_LOW_WARNING",
    "PRESSURE_HIGH_WARNING",
    "PRESSURE_HIGH_CRITICAL",
    "SPEED_WARNING",
    "SPEED_CRITICAL",
    "PRESSURE_MIN",
    "PRESSURE_MAX",
    "SPEED_MIN",
    "SPEED_MAX",
    "MachineStatus",
    "is_critical",
    "is_out_of_range",
    "determine_status",
    "format_measure",
]
