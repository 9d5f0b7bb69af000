"""
Alert Feed - Filtered Alert Listing.

============================================================
PURPOSE
============================================================
Paginated, filterable list of alerts visible to the caller,
newest first, each joined with its machine and tire.

The summary block counts every visible alert by severity and
status regardless of filters; summary.total is the filtered
count, same as pagination.total.

============================================================
"""

import logging
from typing import Any, Dict, List

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from core.clock import ensure_utc
from core.exceptions import DependencyError
from database.access import AccessScope
from database.models import Alert, AlertSeverity, AlertStatus, Machine, Tire

from .schemas import (
    AlertFeedQuery,
    AlertFeedResponse,
    AlertItem,
    AlertSummary,
    Pagination,
)


logger = logging.getLogger(__name__)

UNKNOWN_MACHINE_NAME = "Unknown"


def _filtered(stmt, query: AlertFeedQuery):
    if query.severity:
        stmt = stmt.where(Alert.severity == query.severity)
    if query.type:
        stmt = stmt.where(Alert.type == query.type)
    if query.status:
        stmt = stmt.where(Alert.status == query.status)
    if query.machine_id:
        stmt = stmt.where(Alert.machine_id == query.machine_id)
    if query.window.start is not None:
        stmt = stmt.where(Alert.opened_at >= query.window.start)
    if query.window.end is not None:
        stmt = stmt.where(Alert.opened_at <= query.window.end)
    return stmt


def alert_item(alert: Alert, machine: Any, tire_serial, tire_position) -> AlertItem:
    return AlertItem(
        id=alert.id,
        machineId=alert.machine_id,
        tireId=alert.tire_id,
        type=alert.type,
        severity=alert.severity,
        status=alert.status,
        message=alert.message,
        reason=alert.reason,
        probableCause=alert.probable_cause,
        recommendedAction=alert.recommended_action,
        acknowledgedBy=alert.acknowledged_by,
        openedAt=ensure_utc(alert.opened_at),
        updatedAt=ensure_utc(alert.updated_at),
        machineName=machine.name if machine is not None else UNKNOWN_MACHINE_NAME,
        machineModel=machine.model if machine is not None else None,
        machineStatus=machine.status if machine is not None else None,
        tireSerial=tire_serial,
        tirePosition=tire_position,
    )


class AlertFeedService:
    """Alert listing bound to one access scope."""

    def __init__(self, scope: AccessScope):
        self._scope = scope

    def list_alerts(self, query: AlertFeedQuery) -> AlertFeedResponse:
        """
        Raises:
            DependencyError: a store read failed
        """
        try:
            total = self._count(query)
            rows = self._page(query)
            by_severity = self._group_counts(Alert.severity, [s.value for s in AlertSeverity])
            by_status = self._group_counts(Alert.status, [s.value for s in AlertStatus])
        except SQLAlchemyError as e:
            logger.error(f"Alert feed read failed: {e}", exc_info=True)
            raise DependencyError("Failed to process request", cause=e) from e

        alerts = [alert_item(*row) for row in rows]

        logger.info(f"Fetched {len(alerts)} of {total} alerts for user {self._scope.subject_id}")
        return AlertFeedResponse(
            alerts=alerts,
            pagination=Pagination(
                total=total,
                limit=query.limit,
                offset=query.offset,
                hasMore=query.offset + len(alerts) < total,
            ),
            summary=AlertSummary(total=total, bySeverity=by_severity, byStatus=by_status),
        )

    def _count(self, query: AlertFeedQuery) -> int:
        stmt = _filtered(self._scope.select(func.count(Alert.id)), query)
        return int(self._scope.execute(stmt).scalar() or 0)

    def _page(self, query: AlertFeedQuery) -> List[tuple]:
        stmt = (
            self._scope.select(Alert, Machine, Tire.serial, Tire.position)
            .outerjoin(Machine, Alert.machine_id == Machine.id)
            .outerjoin(Tire, Alert.tire_id == Tire.id)
        )
        stmt = _filtered(stmt, query)
        stmt = stmt.order_by(Alert.opened_at.desc()).offset(query.offset).limit(query.limit)
        return [tuple(row) for row in self._scope.execute(stmt).all()]

    def _group_counts(self, column, keys: List[str]) -> Dict[str, int]:
        counts = {key: 0 for key in keys}
        stmt = self._scope.select(column, func.count(Alert.id)).group_by(column)
        for value, count in self._scope.execute(stmt).all():
            if value in counts:
                counts[value] = int(count)
        return counts


__all__ = ["AlertFeedService", "alert_item"]
