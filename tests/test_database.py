"""
Tests for the engine helpers and table setup.
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine, inspect, select
from sqlalchemy.pool import StaticPool

from database import engine as db_engine
from database.engine import (
    apply_statement_timeout,
    configure_engine,
    create_all_tables,
    get_db_session,
    get_database_url,
    verify_database_connection,
)
from database.models import Machine

from conftest import MACHINE_ID


@pytest.fixture
def configured_engine(monkeypatch):
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    monkeypatch.setattr(db_engine, "_engine", None)
    monkeypatch.setattr(db_engine, "_SessionFactory", None)
    configure_engine(engine)
    yield engine
    engine.dispose()


class TestEngineSetup:

    def test_create_all_tables(self, configured_engine):
        create_all_tables(configured_engine)

        tables = set(inspect(configured_engine).get_table_names())
        assert {
            "machines", "tires", "telemetry", "alerts",
            "occurrences", "audit_events", "user_roles",
        } <= tables

    def test_verify_connection(self, configured_engine):
        assert verify_database_connection(configured_engine) is True

    def test_session_context_rolls_back_on_error(self, configured_engine):
        create_all_tables(configured_engine)

        with pytest.raises(RuntimeError):
            with get_db_session() as session:
                session.add(Machine(id=MACHINE_ID, name="CAT", model="793F"))
                session.flush()
                raise RuntimeError("boom")

        with get_db_session() as session:
            assert session.execute(select(Machine)).scalars().all() == []

    def test_database_url_from_env(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL_SYNC", raising=False)
        monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://u:p@db/fleet")

        assert get_database_url() == "postgresql://u:p@db/fleet"


class TestStatementTimeout:

    def _session(self, dialect_name):
        session = MagicMock()
        session.get_bind.return_value.dialect.name = dialect_name
        return session

    def test_postgres_sets_local_timeout(self):
        session = self._session("postgresql")

        apply_statement_timeout(session, 2.5)

        statement = session.execute.call_args[0][0]
        assert str(statement) == "SET LOCAL statement_timeout = 2500"

    def test_other_dialects_untouched(self):
        session = self._session("sqlite")
        apply_statement_timeout(session, 2.5)
        session.execute.assert_not_called()

    def test_disabled_timeout(self):
        session = self._session("postgresql")
        apply_statement_timeout(session, None)
        session.execute.assert_not_called()
