"""
Telemetry Ingest - Threshold Classifier.

============================================================
PURPOSE
============================================================
Maps one normalized reading to zero, one or two alerts.

PRESSURE (first match wins, at most one alert):
    p < 2.0        pressure_low   critical
    p < 2.5        pressure_low   high
    p > 5.0        pressure_high  critical
    p > 4.5        pressure_high  medium

SPEED (independent of pressure):
    s > 80         speed_exceeded critical
    s > 60         speed_exceeded high

No deduplication against alerts already open: every breach
in every reading produces a new alert.

============================================================
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from core.thresholds import (
    PRESSURE_HIGH_CRITICAL,
    PRESSURE_HIGH_WARNING,
    PRESSURE_LOW_CRITICAL,
    PRESSURE_LOW_WARNING,
    SPEED_CRITICAL,
    SPEED_WARNING,
    format_measure,
)
from database.models import AlertSeverity, AlertStatus, AlertType

from .schemas import NormalizedReading


# =============================================================
# ALERT TEMPLATES
# =============================================================

@dataclass(frozen=True)
class AlertTemplate:
    """Fixed wording for one (type, severity) pair. {value} is interpolated."""

    message: str
    reason: str
    probable_cause: str
    recommended_action: str


ALERT_TEMPLATES: Dict[Tuple[AlertType, AlertSeverity], AlertTemplate] = {
    (AlertType.PRESSURE_LOW, AlertSeverity.CRITICAL): AlertTemplate(
        message="Pressão crítica: {value} bar",
        reason="Pressão abaixo do limite crítico",
        probable_cause="Possível furo ou vazamento",
        recommended_action="Parar máquina imediatamente e verificar pneu",
    ),
    (AlertType.PRESSURE_LOW, AlertSeverity.HIGH): AlertTemplate(
        message="Pressão baixa: {value} bar",
        reason="Pressão abaixo do recomendado",
        probable_cause="Desgaste ou vazamento lento",
        recommended_action="Verificar pneu na próxima parada",
    ),
    (AlertType.PRESSURE_HIGH, AlertSeverity.CRITICAL): AlertTemplate(
        message="Pressão excessiva: {value} bar",
        reason="Pressão acima do limite crítico",
        probable_cause="Sobreaquecimento ou calibração incorreta",
        recommended_action="Reduzir pressão imediatamente",
    ),
    (AlertType.PRESSURE_HIGH, AlertSeverity.MEDIUM): AlertTemplate(
        message="Pressão elevada: {value} bar",
        reason="Pressão acima do recomendado",
        probable_cause="Calibração elevada",
        recommended_action="Monitorar e ajustar se necessário",
    ),
    (AlertType.SPEED_EXCEEDED, AlertSeverity.CRITICAL): AlertTemplate(
        message="Velocidade crítica: {value} km/h",
        reason="Velocidade excede limite seguro",
        probable_cause="Operação fora dos parâmetros",
        recommended_action="Reduzir velocidade imediatamente",
    ),
    (AlertType.SPEED_EXCEEDED, AlertSeverity.HIGH): AlertTemplate(
        message="Velocidade elevada: {value} km/h",
        reason="Velocidade acima do recomendado",
        probable_cause="Operação em velocidade elevada",
        recommended_action="Monitorar e reduzir se necessário",
    ),
}


# =============================================================
# ALERT DRAFT
# =============================================================

@dataclass(frozen=True)
class AlertDraft:
    """An alert ready to be inserted in "open" status."""

    machine_id: str
    tire_id: Optional[str]
    type: AlertType
    severity: AlertSeverity
    message: str
    reason: str
    probable_cause: str
    recommended_action: str
    opened_at: datetime

    def to_row(self) -> Dict[str, Any]:
        """Column values for the alerts table."""
        return {
            "machine_id": self.machine_id,
            "tire_id": self.tire_id,
            "type": self.type.value,
            "severity": self.severity.value,
            "status": AlertStatus.OPEN.value,
            "message": self.message,
            "reason": self.reason,
            "probable_cause": self.probable_cause,
            "recommended_action": self.recommended_action,
            "opened_at": self.opened_at,
            "updated_at": self.opened_at,
        }


def _draft(
    reading: NormalizedReading,
    alert_type: AlertType,
    severity: AlertSeverity,
    value: float,
    timestamp: datetime,
) -> AlertDraft:
    template = ALERT_TEMPLATES[(alert_type, severity)]
    return AlertDraft(
        machine_id=reading.machine_id,
        tire_id=reading.tire_id,
        type=alert_type,
        severity=severity,
        message=template.message.format(value=format_measure(value)),
        reason=template.reason,
        probable_cause=template.probable_cause,
        recommended_action=template.recommended_action,
        opened_at=timestamp,
    )


# =============================================================
# BANDS
# =============================================================

def pressure_band(pressure: float) -> Optional[Tuple[AlertType, AlertSeverity]]:
    """The pressure band a value falls in, or None when in range."""
    if pressure < PRESSURE_LOW_CRITICAL:
        return AlertType.PRESSURE_LOW, AlertSeverity.CRITICAL
    if pressure < PRESSURE_LOW_WARNING:
        return AlertType.PRESSURE_LOW, AlertSeverity.HIGH
    if pressure > PRESSURE_HIGH_CRITICAL:
        return AlertType.PRESSURE_HIGH, AlertSeverity.CRITICAL
    if pressure > PRESSURE_HIGH_WARNING:
        return AlertType.PRESSURE_HIGH, AlertSeverity.MEDIUM
    return None


def speed_band(speed: float) -> Optional[AlertSeverity]:
    if speed > SPEED_CRITICAL:
        return AlertSeverity.CRITICAL
    if speed > SPEED_WARNING:
        return AlertSeverity.HIGH
    return None


# =============================================================
# CLASSIFY
# =============================================================

def classify(reading: NormalizedReading, timestamp: datetime) -> List[AlertDraft]:
    """
    Alerts raised by one reading.

    Args:
        reading: Normalized reading
        timestamp: Becomes opened_at/updated_at of every alert

    Returns:
        Pressure alert (if any) followed by speed alert (if any)
    """
    alerts: List[AlertDraft] = []

    band = pressure_band(reading.pressure)
    if band is not None:
        alert_type, severity = band
        alerts.append(_draft(reading, alert_type, severity, reading.pressure, timestamp))

    speed_severity = speed_band(reading.speed)
    if speed_severity is not None:
        alerts.append(
            _draft(reading, AlertType.SPEED_EXCEEDED, speed_severity, reading.speed, timestamp)
        )

    return alerts


__all__ = [
    "AlertTemplate",
    "ALERT_TEMPLATES",
    "AlertDraft",
    "pressure_band",
    "speed_band",
    "classify",
]
