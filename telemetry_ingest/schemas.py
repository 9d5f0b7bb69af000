"""
Telemetry Ingest - Validation & Normalization.

============================================================
PURPOSE
============================================================
Parses a raw request body into normalized readings.

Accepted shapes:
- a single reading object
- {"readings": [reading, ...]} with 1-1000 entries

Rejections carry one FieldError per violation with the
dotted location of the offending field.

No side effects.

============================================================
"""

import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_core import PydanticCustomError

from core.clock import ensure_utc, from_iso8601
from core.exceptions import FieldError, InputError
from core.thresholds import PRESSURE_MAX, PRESSURE_MIN, SPEED_MAX, SPEED_MIN


MAX_BATCH_SIZE = 1000

UUID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)


def _require_uuid(value: Optional[str], message: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str) or not UUID_PATTERN.match(value):
        raise PydanticCustomError("uuid_format", message)
    return value


# =============================================================
# INPUT SCHEMAS
# =============================================================

class ReadingIn(BaseModel):
    """One sensor reading as sent by a device."""

    machineId: str = Field(..., strict=True)
    tireId: Optional[str] = Field(None, strict=True)
    pressure: float = Field(..., ge=PRESSURE_MIN, le=PRESSURE_MAX, strict=True)
    speed: float = Field(..., ge=SPEED_MIN, le=SPEED_MAX, strict=True)
    timestamp: Optional[datetime] = None
    seq: Optional[int] = Field(None, gt=0, strict=True)

    @field_validator("machineId")
    @classmethod
    def _machine_id_is_uuid(cls, v: str) -> str:
        return _require_uuid(v, "Invalid machine ID format")

    @field_validator("tireId")
    @classmethod
    def _tire_id_is_uuid(cls, v: Optional[str]) -> Optional[str]:
        return _require_uuid(v, "Invalid tire ID format")

    @field_validator("timestamp", mode="before")
    @classmethod
    def _timestamp_is_iso_instant(cls, v: Any) -> Any:
        if v is None:
            return None
        if not isinstance(v, str):
            raise PydanticCustomError("datetime_format", "Invalid datetime")
        try:
            parsed = datetime.fromisoformat(v)
        except ValueError:
            raise PydanticCustomError("datetime_format", "Invalid datetime")
        if parsed.tzinfo is None:
            raise PydanticCustomError("datetime_format", "Invalid datetime")
        return from_iso8601(v)


class ReadingBatchIn(BaseModel):
    """A batch of readings."""

    readings: List[ReadingIn] = Field(..., min_length=1, max_length=MAX_BATCH_SIZE)


# =============================================================
# NORMALIZED OUTPUT
# =============================================================

@dataclass(frozen=True)
class NormalizedReading:
    """A validated reading with timestamp and seq filled in."""

    machine_id: str
    tire_id: Optional[str]
    pressure: float
    speed: float
    timestamp: datetime
    seq: int
    submitted_machine_id: Optional[str] = field(default=None, compare=False, repr=False)

    def to_row(self) -> Dict[str, Any]:
        """Column values for the telemetry table."""
        return {
            "machine_id": self.machine_id,
            "tire_id": self.tire_id,
            "pressure": self.pressure,
            "speed": self.speed,
            "timestamp": self.timestamp,
            "seq": self.seq,
        }


# =============================================================
# PARSING
# =============================================================

def _field_errors(error: ValidationError) -> List[FieldError]:
    return [
        FieldError(
            field=".".join(str(part) for part in e["loc"]),
            message=e["msg"],
        )
        for e in error.errors()
    ]


def validate_payload(body: Any) -> List[ReadingIn]:
    """
    Validate a decoded JSON body.

    A body carrying a "readings" key is validated as a batch,
    anything else as a single reading.

    Raises:
        InputError: with one FieldError per violation
    """
    if not isinstance(body, dict):
        raise InputError(details=[FieldError(field="", message="Expected a JSON object")])

    try:
        if "readings" in body:
            return ReadingBatchIn.model_validate(body).readings
        return [ReadingIn.model_validate(body)]
    except ValidationError as e:
        raise InputError(details=_field_errors(e)) from e


def normalize_readings(
    readings: List[ReadingIn],
    received_at: datetime,
    received_ms: Optional[int] = None,
) -> List[NormalizedReading]:
    """
    Fill in missing timestamp and seq from the receipt instant.

    Ids are lower-cased for storage; the machine id as sent is
    kept on submitted_machine_id for error reporting.
    """
    received_at = ensure_utc(received_at)
    if received_ms is None:
        received_ms = int(received_at.timestamp() * 1000)

    return [
        NormalizedReading(
            machine_id=r.machineId.lower(),
            tire_id=r.tireId.lower() if r.tireId else None,
            pressure=float(r.pressure),
            speed=float(r.speed),
            timestamp=ensure_utc(r.timestamp) if r.timestamp else received_at,
            seq=r.seq or received_ms,
            submitted_machine_id=r.machineId,
        )
        for r in readings
    ]


def parse_ingest_payload(
    raw_body: bytes,
    received_at: datetime,
    received_ms: Optional[int] = None,
) -> List[NormalizedReading]:
    """
    Raw request body to normalized readings.

    Raises:
        InputError: malformed JSON or schema violation
    """
    try:
        body = json.loads(raw_body) if raw_body else None
    except (ValueError, UnicodeDecodeError) as e:
        raise InputError(
            details=[FieldError(field="", message="Malformed JSON body")]
        ) from e

    return normalize_readings(validate_payload(body), received_at, received_ms)


__all__ = [
    "MAX_BATCH_SIZE",
    "ReadingIn",
    "ReadingBatchIn",
    "NormalizedReading",
    "validate_payload",
    "normalize_readings",
    "parse_ingest_payload",
]
