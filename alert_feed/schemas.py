"""
Pydantic Schemas and Query Parsing for the Alert Feed.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel

from core.exceptions import InputError
from database.models import AlertSeverity, AlertStatus, AlertType
from machine_timeline.schemas import DateWindow, is_valid_machine_id, parse_date, parse_limit

DEFAULT_LIMIT = 100
MAX_LIMIT = 500

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


# =============================================================
# RESPONSE SCHEMAS
# =============================================================

class AlertItem(BaseModel):
    id: str
    machineId: str
    tireId: Optional[str] = None
    type: str
    severity: str
    status: str
    message: str
    reason: Optional[str] = None
    probableCause: Optional[str] = None
    recommendedAction: Optional[str] = None
    acknowledgedBy: Optional[str] = None
    openedAt: datetime
    updatedAt: datetime
    machineName: str
    machineModel: Optional[str] = None
    machineStatus: Optional[str] = None
    tireSerial: Optional[str] = None
    tirePosition: Optional[str] = None


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    hasMore: bool


class AlertSummary(BaseModel):
    total: int
    bySeverity: Dict[str, int]
    byStatus: Dict[str, int]


class AlertFeedResponse(BaseModel):
    alerts: List[AlertItem]
    pagination: Pagination
    summary: AlertSummary


# =============================================================
# QUERY PARSING
# =============================================================

def parse_offset(raw: Optional[str]) -> int:
    """Leading-integer parse; negative or garbage means 0."""
    match = _LEADING_INT.match(raw or "")
    if not match:
        return 0
    return max(int(match.group(1)), 0)


def _enum_value(raw: Optional[str], allowed, name: str) -> Optional[str]:
    if not raw:
        return None
    values = {member.value for member in allowed}
    if raw not in values:
        raise InputError(f"Invalid {name} value")
    return raw


@dataclass(frozen=True)
class AlertFeedQuery:
    severity: Optional[str] = None
    type: Optional[str] = None
    status: Optional[str] = None
    machine_id: Optional[str] = None
    window: DateWindow = field(default_factory=DateWindow)
    limit: int = DEFAULT_LIMIT
    offset: int = 0

    @classmethod
    def from_params(
        cls,
        severity: Optional[str] = None,
        alert_type: Optional[str] = None,
        status: Optional[str] = None,
        machine_id: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        limit: Optional[str] = None,
        offset: Optional[str] = None,
    ) -> "AlertFeedQuery":
        """
        Raises:
            InputError: any filter fails validation
        """
        if machine_id and not is_valid_machine_id(machine_id):
            raise InputError("Invalid machine ID format")

        return cls(
            severity=_enum_value(severity, AlertSeverity, "severity"),
            type=_enum_value(alert_type, AlertType, "type"),
            status=_enum_value(status, AlertStatus, "status"),
            machine_id=machine_id.lower() if machine_id else None,
            window=DateWindow(
                start=parse_date(start_date, "startDate"),
                end=parse_date(end_date, "endDate"),
            ),
            limit=parse_limit(limit, default=DEFAULT_LIMIT, maximum=MAX_LIMIT),
            offset=parse_offset(offset),
        )


__all__ = [
    "AlertItem",
    "Pagination",
    "AlertSummary",
    "AlertFeedResponse",
    "AlertFeedQuery",
    "parse_offset",
]
