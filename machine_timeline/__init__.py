"""
Machine Timeline Package.

Chronological feed of alerts, occurrences and critical
telemetry for one machine, read through the caller's
access scope.
"""

from .schemas import TimelineEvent, TimelineEventType, TimelineQuery, TimelineResponse
from .service import MachineTimelineService
from .repository import TimelineRepository

__all__ = [
    "TimelineEvent",
    "TimelineEventType",
    "TimelineQuery",
    "TimelineResponse",
    "MachineTimelineService",
    "TimelineRepository",
]
