"""Tests for the logging report scope and the SQLite reader pragmas."""
import pytest
from loguru import logger
from sqlalchemy import text
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

from kosh_ledger.core.database import configure_sqlite
from kosh_ledger.core.errors import NotFoundError
from kosh_ledger.core.logging import report_scope


@pytest.fixture
def records():
    captured = []
    sink = logger.add(lambda m: captured.append(m.record), level="DEBUG")
    yield captured
    logger.remove(sink)


class TestReportScope:
    def test_lines_are_tagged_and_timed(self, records):
        with report_scope("/api/reports/gstr1"):
            logger.info("building")

        tagged = [r for r in records if r["extra"].get("report") == "/api/reports/gstr1"]
        assert [r["message"] for r in tagged][0] == "building"
        assert "finished in" in tagged[-1]["message"]

    def test_failure_is_logged_and_reraised(self, records):
        with pytest.raises(NotFoundError):
            with report_scope("ledger"):
                raise NotFoundError("Customer", 7)

        [failure] = [r for r in records if r["level"].name == "WARNING"]
        assert "ledger failed after" in failure["message"]
        assert "Customer not found: 7" in failure["message"]

    def test_no_tag_outside_scope(self, records):
        with report_scope("inner"):
            pass
        logger.info("after")
        assert records[-1]["extra"].get("report") != "inner"


class TestSqlitePragmas:
    def test_busy_timeout_is_applied(self):
        engine = create_engine("sqlite://", poolclass=StaticPool)
        configure_sqlite(engine, busy_timeout_ms=1234)
        with engine.connect() as conn:
            assert conn.execute(text("PRAGMA busy_timeout")).scalar() == 1234
        engine.dispose()
