"""
Machine Timeline - Store Reads.

All reads go through an AccessScope so they carry the caller's
visibility predicate. Each source is read newest first on its
own timestamp column with the date window applied in SQL.
"""

from typing import Any, List, Optional, Tuple

from sqlalchemy import or_

from core import thresholds
from database.access import AccessScope
from database.models import Alert, Machine, Occurrence, Telemetry, Tire

from .schemas import DateWindow

TELEMETRY_SOURCE_CAP = 50

# (row, tire_serial, tire_position)
TireJoinedRow = Tuple[Any, Optional[str], Optional[str]]


def _apply_window(stmt, column, window: DateWindow):
    if window.start is not None:
        stmt = stmt.where(column >= window.start)
    if window.end is not None:
        stmt = stmt.where(column <= window.end)
    return stmt


class TimelineRepository:
    """Per-source fetches for one timeline request."""

    def __init__(self, scope: AccessScope):
        self._scope = scope

    @property
    def scope(self) -> AccessScope:
        return self._scope

    def get_machine(self, machine_id: str) -> Optional[Machine]:
        stmt = self._scope.select(Machine).where(Machine.id == machine_id)
        return self._scope.execute(stmt).scalars().first()

    def fetch_alerts(self, machine_id: str, window: DateWindow, limit: int) -> List[TireJoinedRow]:
        stmt = (
            self._scope.select(Alert, Tire.serial, Tire.position)
            .outerjoin(Tire, Alert.tire_id == Tire.id)
            .where(Alert.machine_id == machine_id)
        )
        stmt = _apply_window(stmt, Alert.opened_at, window)
        stmt = stmt.order_by(Alert.opened_at.desc()).limit(limit)
        return [tuple(row) for row in self._scope.execute(stmt).all()]

    def fetch_occurrences(
        self, machine_id: str, window: DateWindow, limit: int
    ) -> List[TireJoinedRow]:
        stmt = (
            self._scope.select(Occurrence, Tire.serial, Tire.position)
            .outerjoin(Tire, Occurrence.tire_id == Tire.id)
            .where(Occurrence.machine_id == machine_id)
        )
        stmt = _apply_window(stmt, Occurrence.created_at, window)
        stmt = stmt.order_by(Occurrence.created_at.desc()).limit(limit)
        return [tuple(row) for row in self._scope.execute(stmt).all()]

    def fetch_critical_telemetry(
        self, machine_id: str, window: DateWindow, limit: int
    ) -> List[TireJoinedRow]:
        """Out-of-band readings only, capped at TELEMETRY_SOURCE_CAP."""
        stmt = (
            self._scope.select(Telemetry, Tire.serial, Tire.position)
            .outerjoin(Tire, Telemetry.tire_id == Tire.id)
            .where(Telemetry.machine_id == machine_id)
            .where(
                or_(
                    Telemetry.pressure < thresholds.PRESSURE_LOW_WARNING,
                    Telemetry.pressure > thresholds.PRESSURE_HIGH_WARNING,
                    Telemetry.speed > thresholds.SPEED_WARNING,
                )
            )
        )
        stmt = _apply_window(stmt, Telemetry.timestamp, window)
        stmt = stmt.order_by(Telemetry.timestamp.desc()).limit(min(limit, TELEMETRY_SOURCE_CAP))
        return [tuple(row) for row in self._scope.execute(stmt).all()]


__all__ = ["TimelineRepository", "TELEMETRY_SOURCE_CAP"]
