"""
Database ORM Models - Fleet Telemetry Tables.

============================================================
SCHEMA
============================================================

Owned by this core:
- telemetry      append-only sensor readings
- alerts         threshold breaches (inserted as "open")
- audit_events   append-only ingestion log
- machines       status + last_telemetry_at updated by ingestion

Read-only here (owned by other writers):
- tires, occurrences, user_roles

Identifiers are UUID strings so the same schema runs on
PostgreSQL and on SQLite in tests.

============================================================
"""

from datetime import datetime, timezone
import enum
import uuid

from sqlalchemy import (
    Column, BigInteger, String, Text, Float, JSON,
    DateTime, ForeignKey, Index,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from .engine import Base


# =============================================================
# HELPER FUNCTIONS
# =============================================================

def generate_uuid():
    """Generate a new UUID."""
    return str(uuid.uuid4())


def utc_now():
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


JSONType = JSON().with_variant(JSONB, "postgresql")


# =============================================================
# ENUMS
# =============================================================

class AlertType(str, enum.Enum):
    PRESSURE_LOW = "pressure_low"
    PRESSURE_HIGH = "pressure_high"
    SPEED_EXCEEDED = "speed_exceeded"
    NO_SIGNAL = "no_signal"
    ANOMALY = "anomaly"


class AlertSeverity(str, enum.Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AlertStatus(str, enum.Enum):
    OPEN = "open"
    ACKNOWLEDGED = "acknowledged"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"


# =============================================================
# 1. MACHINES TABLE
# =============================================================

class Machine(Base):
    """
    A vehicle carrying monitored tires.

    status and last_telemetry_at are rewritten by every
    ingestion batch that touches the machine.
    """
    __tablename__ = "machines"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    model = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default="operational", index=True)
    last_telemetry_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    tires = relationship("Tire", back_populates="machine")


# =============================================================
# 2. TIRES TABLE
# =============================================================

class Tire(Base):
    """Tire mounted on a machine. Joined for serial/position."""
    __tablename__ = "tires"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    machine_id = Column(String(36), ForeignKey("machines.id"), nullable=True, index=True)
    serial = Column(String(100), nullable=False)
    position = Column(String(50), nullable=True)
    recommended_pressure = Column(Float, nullable=False, default=3.5)
    current_pressure = Column(Float, nullable=True)
    lifecycle_status = Column(String(30), nullable=False, default="active")
    installed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    machine = relationship("Machine", back_populates="tires")


# =============================================================
# 3. TELEMETRY TABLE
# =============================================================

class Telemetry(Base):
    """
    One normalized sensor reading.

    Append-only: never updated or deleted by this core.
    """
    __tablename__ = "telemetry"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    machine_id = Column(String(36), ForeignKey("machines.id"), nullable=False)
    tire_id = Column(String(36), ForeignKey("tires.id"), nullable=True)
    pressure = Column(Float, nullable=False)
    speed = Column(Float, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    seq = Column(BigInteger, nullable=False)

    __table_args__ = (
        Index("idx_telemetry_machine_timestamp", "machine_id", "timestamp"),
    )


# =============================================================
# 4. ALERTS TABLE
# =============================================================

class Alert(Base):
    """
    A graded threshold breach.

    Inserted in "open" status by ingestion; lifecycle
    transitions belong to other writers.
    """
    __tablename__ = "alerts"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    machine_id = Column(String(36), ForeignKey("machines.id"), nullable=False)
    tire_id = Column(String(36), ForeignKey("tires.id"), nullable=True)

    type = Column(String(30), nullable=False, index=True)
    severity = Column(String(20), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="open", index=True)

    message = Column(Text, nullable=False)
    reason = Column(Text, nullable=True)
    probable_cause = Column(Text, nullable=True)
    recommended_action = Column(Text, nullable=True)
    acknowledged_by = Column(String(36), nullable=True)

    opened_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (
        Index("idx_alerts_machine_opened", "machine_id", "opened_at"),
    )


# =============================================================
# 5. OCCURRENCES TABLE
# =============================================================

class Occurrence(Base):
    """Manually reported incident. Owned by the occurrences service."""
    __tablename__ = "occurrences"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    machine_id = Column(String(36), ForeignKey("machines.id"), nullable=False)
    tire_id = Column(String(36), ForeignKey("tires.id"), nullable=True)
    alert_id = Column(String(36), ForeignKey("alerts.id"), nullable=True)

    description = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="open")
    created_by = Column(String(36), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (
        Index("idx_occurrences_machine_created", "machine_id", "created_at"),
    )


# =============================================================
# 6. AUDIT EVENTS TABLE
# =============================================================

class AuditEvent(Base):
    """Append-only record that an ingestion happened."""
    __tablename__ = "audit_events"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(100), nullable=False)
    action = Column(String(50), nullable=False)
    actor_id = Column(String(36), nullable=True)
    event_metadata = Column("metadata", JSONType, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)


# =============================================================
# 7. USER ROLES TABLE
# =============================================================

class UserRole(Base):
    """Role grant. Any grant makes fleet rows visible to the user."""
    __tablename__ = "user_roles"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    role = Column(String(20), nullable=False, default="operator")


__all__ = [
    "generate_uuid",
    "utc_now",
    "AlertType",
    "AlertSeverity",
    "AlertStatus",
    "Machine",
    "Tire",
    "Telemetry",
    "Alert",
    "Occurrence",
    "AuditEvent",
    "UserRole",
]
