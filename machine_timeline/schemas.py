"""
Pydantic Schemas and Query Parsing for the Machine Timeline.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from core.clock import from_iso8601
from core.exceptions import InputError


# =============================================================
# ENUMS
# =============================================================

class TimelineEventType(str, Enum):
    ALERT = "alert"
    OCCURRENCE = "occurrence"
    TELEMETRY = "telemetry"


ALL_EVENT_TYPES = [
    TimelineEventType.ALERT,
    TimelineEventType.OCCURRENCE,
    TimelineEventType.TELEMETRY,
]

DEFAULT_LIMIT = 100
MAX_LIMIT = 500

MACHINE_ID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


# =============================================================
# RESPONSE SCHEMAS
# =============================================================

class TimelineEvent(BaseModel):
    """One entry of the merged feed."""
    id: str
    type: TimelineEventType
    title: str
    description: str
    timestamp: datetime
    severity: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class MachineSummary(BaseModel):
    id: str
    name: str
    model: str
    status: str
    lastTelemetryAt: Optional[datetime] = None


class TimelineResponse(BaseModel):
    machine: MachineSummary
    timeline: List[TimelineEvent]
    total: int


# =============================================================
# QUERY PARSING
# =============================================================

def is_valid_machine_id(value: Optional[str]) -> bool:
    return bool(value) and MACHINE_ID_PATTERN.match(value) is not None


def parse_limit(
    raw: Optional[str],
    default: int = DEFAULT_LIMIT,
    maximum: int = MAX_LIMIT,
) -> int:
    """
    Leading-integer parse clamped to [1, maximum].

    Missing, unparsable and zero values fall back to the default.
    """
    match = _LEADING_INT.match(raw or "")
    value = int(match.group(1)) if match else 0
    if value == 0:
        value = default
    return min(max(value, 1), maximum)


def parse_event_types(raw: Optional[str]) -> List[TimelineEventType]:
    """Comma list; unknown values dropped; nothing left means all."""
    if raw is None:
        return list(ALL_EVENT_TYPES)
    known = {t.value: t for t in ALL_EVENT_TYPES}
    selected: List[TimelineEventType] = []
    for part in raw.split(","):
        event_type = known.get(part.strip())
        if event_type is not None and event_type not in selected:
            selected.append(event_type)
    return selected or list(ALL_EVENT_TYPES)


def parse_date(raw: Optional[str], name: str) -> Optional[datetime]:
    """Optional ISO 8601 instant; naive values are read as UTC."""
    if not raw:
        return None
    try:
        return from_iso8601(raw)
    except ValueError as e:
        raise InputError(f"Invalid {name} format") from e


@dataclass(frozen=True)
class DateWindow:
    """Inclusive [start, end] bound on a source's own timestamp column."""
    start: Optional[datetime] = None
    end: Optional[datetime] = None


@dataclass(frozen=True)
class TimelineQuery:
    machine_id: str
    window: DateWindow = field(default_factory=DateWindow)
    event_types: List[TimelineEventType] = field(default_factory=lambda: list(ALL_EVENT_TYPES))
    limit: int = DEFAULT_LIMIT

    @classmethod
    def from_params(
        cls,
        machine_id: Optional[str],
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        event_types: Optional[str] = None,
        limit: Optional[str] = None,
    ) -> "TimelineQuery":
        """
        Raises:
            InputError: bad machine id or date
        """
        if not is_valid_machine_id(machine_id):
            raise InputError("Valid Machine ID is required")

        return cls(
            machine_id=machine_id.lower(),
            window=DateWindow(
                start=parse_date(start_date, "startDate"),
                end=parse_date(end_date, "endDate"),
            ),
            event_types=parse_event_types(event_types),
            limit=parse_limit(limit),
        )


__all__ = [
    "TimelineEventType",
    "ALL_EVENT_TYPES",
    "DEFAULT_LIMIT",
    "MAX_LIMIT",
    "TimelineEvent",
    "MachineSummary",
    "TimelineResponse",
    "is_valid_machine_id",
    "parse_limit",
    "parse_event_types",
    "parse_date",
    "DateWindow",
    "TimelineQuery",
]
