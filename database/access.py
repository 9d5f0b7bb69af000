"""
Database - Access-Controlled Read Mode.

============================================================
PURPOSE
============================================================
Read path for the timeline and alert feed endpoints.

Every statement issued through an AccessScope carries a
visibility predicate bound to the caller's subject id, so a
caller can never see rows their identity cannot access:
rows are visible only when the subject holds a role grant.

============================================================
CRITICAL CONSTRAINTS
============================================================
- All access is READ-ONLY
- The predicate is part of the SQL, not a post-filter
- Statement timeout applied before the first query

============================================================
"""

import logging
from typing import Any, Optional

from sqlalchemy import exists, select
from sqlalchemy.engine import Result
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from .engine import apply_statement_timeout
from .models import UserRole


logger = logging.getLogger(__name__)


class ReadOnlyViolation(Exception):
    """Raised when a non-SELECT statement is sent through a scope."""
    pass


class AccessScope:
    """
    Subject-bound, read-only view of the store.

    Usage:
        scope = AccessScope(session, subject_id="...")
        stmt = scope.select(Machine).where(Machine.id == machine_id)
        machine = scope.execute(stmt).scalars().first()
    """

    def __init__(
        self,
        session: Session,
        subject_id: str,
        timeout_seconds: Optional[float] = None,
    ):
        self._session = session
        self._subject_id = subject_id
        self._timeout_seconds = timeout_seconds
        self._timeout_applied = False

    @property
    def subject_id(self) -> str:
        return self._subject_id

    def visibility(self):
        """SQL predicate: the subject holds at least one role grant."""
        return exists(
            select(UserRole.id).where(UserRole.user_id == self._subject_id)
        )

    def select(self, *entities: Any) -> Select:
        """A SELECT already restricted to rows the subject may see."""
        return select(*entities).where(self.visibility())

    def execute(self, statement: Select) -> Result:
        if not isinstance(statement, Select):
            logger.error(f"Rejected write through access scope for subject {self._subject_id}")
            raise ReadOnlyViolation(
                f"AccessScope only runs SELECT statements, got {type(statement).__name__}"
            )
        if not self._timeout_applied:
            apply_statement_timeout(self._session, self._timeout_seconds)
            self._timeout_applied = True
        return self._session.execute(statement)


__all__ = ["AccessScope", "ReadOnlyViolation"]
