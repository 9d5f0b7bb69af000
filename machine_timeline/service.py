"""
Machine Timeline - Aggregator.

============================================================
PURPOSE
============================================================
Builds one chronological feed for a machine out of three
sources: alerts, occurrences and critical telemetry.

Each source is mapped to TimelineEvent, the lists are
concatenated, stably sorted newest first and truncated to
the requested limit. total is the count before truncation.

============================================================
"""

import logging
from typing import Dict, List

from sqlalchemy.exc import SQLAlchemyError

from core import thresholds
from core.clock import ensure_utc
from core.exceptions import DependencyError, NotFoundError
from database.models import AlertType, Machine

from .repository import TimelineRepository, TireJoinedRow
from .schemas import (
    MachineSummary,
    TimelineEvent,
    TimelineEventType,
    TimelineQuery,
    TimelineResponse,
)


logger = logging.getLogger(__name__)


# =============================================================
# EVENT TITLES
# =============================================================

ALERT_TITLES: Dict[str, str] = {
    AlertType.PRESSURE_LOW.value: "Alerta de Pressão Baixa",
    AlertType.PRESSURE_HIGH.value: "Alerta de Pressão Alta",
    AlertType.SPEED_EXCEEDED.value: "Alerta de Velocidade",
    AlertType.NO_SIGNAL.value: "Perda de Sinal",
    AlertType.ANOMALY.value: "Anomalia Detectada",
}
DEFAULT_ALERT_TITLE = "Alerta"
OCCURRENCE_TITLE = "Ocorrência Registrada"
TELEMETRY_TITLE = "Telemetria Crítica"


# =============================================================
# ROW MAPPERS
# =============================================================

def alert_event(row: TireJoinedRow) -> TimelineEvent:
    alert, tire_serial, tire_position = row
    return TimelineEvent(
        id=f"alert-{alert.id}",
        type=TimelineEventType.ALERT,
        title=ALERT_TITLES.get(alert.type, DEFAULT_ALERT_TITLE),
        description=alert.message,
        timestamp=ensure_utc(alert.opened_at),
        severity=alert.severity,
        metadata={
            "alertId": alert.id,
            "type": alert.type,
            "status": alert.status,
            "reason": alert.reason,
            "probableCause": alert.probable_cause,
            "recommendedAction": alert.recommended_action,
            "tireSerial": tire_serial,
            "tirePosition": tire_position,
        },
    )


def occurrence_event(row: TireJoinedRow) -> TimelineEvent:
    occurrence, tire_serial, tire_position = row
    return TimelineEvent(
        id=f"occurrence-{occurrence.id}",
        type=TimelineEventType.OCCURRENCE,
        title=OCCURRENCE_TITLE,
        description=occurrence.description,
        timestamp=ensure_utc(occurrence.created_at),
        severity="high" if occurrence.status == "open" else "low",
        metadata={
            "occurrenceId": occurrence.id,
            "status": occurrence.status,
            "createdBy": occurrence.created_by,
            "alertId": occurrence.alert_id,
            "tireSerial": tire_serial,
            "tirePosition": tire_position,
        },
    )


def describe_telemetry(pressure: float, speed: float) -> str:
    """Low pressure, then high pressure, then speed."""
    if pressure < thresholds.PRESSURE_LOW_WARNING:
        return f"Pressão baixa detectada: {thresholds.format_measure(pressure)} bar"
    if pressure > thresholds.PRESSURE_HIGH_WARNING:
        return f"Pressão alta detectada: {thresholds.format_measure(pressure)} bar"
    return f"Velocidade elevada: {thresholds.format_measure(speed)} km/h"


def telemetry_event(row: TireJoinedRow) -> TimelineEvent:
    reading, tire_serial, tire_position = row
    critical = thresholds.is_critical(reading.pressure, reading.speed)
    return TimelineEvent(
        id=f"telemetry-{reading.id}",
        type=TimelineEventType.TELEMETRY,
        title=TELEMETRY_TITLE,
        description=describe_telemetry(reading.pressure, reading.speed),
        timestamp=ensure_utc(reading.timestamp),
        severity="critical" if critical else "high",
        metadata={
            "telemetryId": reading.id,
            "pressure": reading.pressure,
            "speed": reading.speed,
            "tireSerial": tire_serial,
            "tirePosition": tire_position,
        },
    )


def merge_events(sources: List[List[TimelineEvent]], limit: int) -> List[TimelineEvent]:
    """Concatenate, stable sort newest first, truncate."""
    merged: List[TimelineEvent] = []
    for events in sources:
        merged.extend(events)
    merged.sort(key=lambda e: e.timestamp, reverse=True)
    return merged[:limit]


def machine_summary(machine: Machine) -> MachineSummary:
    return MachineSummary(
        id=machine.id,
        name=machine.name,
        model=machine.model,
        status=machine.status,
        lastTelemetryAt=ensure_utc(machine.last_telemetry_at) if machine.last_telemetry_at else None,
    )


# =============================================================
# SERVICE
# =============================================================

class MachineTimelineService:
    """
    Timeline reads for one authenticated subject.

    Usage:
        service = MachineTimelineService(TimelineRepository(scope))
        response = service.get_timeline(TimelineQuery.from_params(machine_id))
    """

    def __init__(self, repository: TimelineRepository):
        self._repository = repository

    @property
    def subject_id(self) -> str:
        return self._repository.scope.subject_id

    def get_timeline(self, query: TimelineQuery) -> TimelineResponse:
        """
        Raises:
            NotFoundError: machine absent or not visible to the subject
            DependencyError: a store read failed
        """
        try:
            machine = self._repository.get_machine(query.machine_id)
            if machine is None:
                raise NotFoundError("Machine not found")
            sources = self._fetch_sources(query)
        except SQLAlchemyError as e:
            logger.error(f"Timeline read failed for machine {query.machine_id}: {e}", exc_info=True)
            raise DependencyError("Failed to process request", cause=e) from e

        total = sum(len(events) for events in sources)
        timeline = merge_events(sources, query.limit)

        logger.info(
            f"Fetched {len(timeline)} timeline events for machine {query.machine_id} "
            f"by user {self.subject_id}"
        )
        return TimelineResponse(
            machine=machine_summary(machine),
            timeline=timeline,
            total=total,
        )

    def _fetch_sources(self, query: TimelineQuery) -> List[List[TimelineEvent]]:
        sources: List[List[TimelineEvent]] = []
        selected = set(query.event_types)

        if TimelineEventType.ALERT in selected:
            rows = self._repository.fetch_alerts(query.machine_id, query.window, query.limit)
            sources.append([alert_event(r) for r in rows])

        if TimelineEventType.OCCURRENCE in selected:
            rows = self._repository.fetch_occurrences(query.machine_id, query.window, query.limit)
            sources.append([occurrence_event(r) for r in rows])

        if TimelineEventType.TELEMETRY in selected:
            rows = self._repository.fetch_critical_telemetry(
                query.machine_id, query.window, query.limit
            )
            sources.append([telemetry_event(r) for r in rows])

        return sources


__all__ = [
    "ALERT_TITLES",
    "alert_event",
    "occurrence_event",
    "telemetry_event",
    "describe_telemetry",
    "merge_events",
    "machine_summary",
    "MachineTimelineService",
]
