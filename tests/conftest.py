"""Shared pytest fixtures for chaibook tests."""

import os
import tempfile
import time
from datetime import datetime, timedelta, UTC

import pytest

from chaibook.database.factories import create_document_database, create_sqlite_database
from chaibook.domain.cache import QueryCache
from chaibook.domain.cash_flow import CashFlowService
from chaibook.domain.dashboard import DashboardService
from chaibook.domain.employee import EmployeeService
from chaibook.domain.expense import ExpenseService
from chaibook.domain.report import ReportService
from chaibook.domain.stock import StockService
from chaibook.domain.stock_analytics import StockAnalyticsService
from chaibook.domain.supplier import SupplierService


class FakeClock:
    """Settable clock standing in for datetime.now(UTC)."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)

    def set(self, now: datetime) -> None:
        self.now = now


@pytest.fixture(autouse=True)
def local_zone(monkeypatch):
    """Pin the machine's local time zone; UTC unless a test switches it.

    Returns a function that switches the zone for the rest of the test.
    """
    if not hasattr(time, "tzset"):

        def unavailable(name: str) -> None:
            pytest.skip("time.tzset is unavailable on this platform")

        yield unavailable
        return

    def switch(name: str) -> None:
        monkeypatch.setenv("TZ", name)
        time.tzset()

    switch("UTC")
    yield switch
    monkeypatch.undo()
    time.tzset()


@pytest.fixture
def temp_db():
    """Create a temporary SQLite database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def temp_document_db(tmp_path):
    """Create a temporary JSON document store for testing."""
    db_path = str(tmp_path / "chaibook.json")
    db = create_document_database(db_path)
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()


@pytest.fixture(params=["sql", "document"])
def any_db(request):
    """Run a test against each storage backend."""
    if request.param == "sql":
        return request.getfixturevalue("temp_db")
    return request.getfixturevalue("temp_document_db")


@pytest.fixture
def clock():
    """Clock fixed at 2024-06-01 10:00 UTC (a Saturday)."""
    return FakeClock(datetime(2024, 6, 1, 10, 0, tzinfo=UTC))


@pytest.fixture
def cache():
    return QueryCache()


@pytest.fixture
def cash_flow_service(any_db, cache, clock):
    """Create a CashFlowService over each backend."""
    return CashFlowService(any_db, cache=cache, clock=clock)


@pytest.fixture
def employee_service(any_db, cash_flow_service, cache, clock):
    """Create an EmployeeService sharing the cash flow service."""
    return EmployeeService(any_db, cash_flow=cash_flow_service, cache=cache, clock=clock)


@pytest.fixture
def expense_service(any_db, cash_flow_service, employee_service, cache, clock):
    """Create an ExpenseService wired to the shared services."""
    return ExpenseService(
        any_db,
        cash_flow=cash_flow_service,
        employees=employee_service,
        cache=cache,
        clock=clock,
    )


@pytest.fixture
def stock_service(any_db, cache, clock):
    """Create a StockService over each backend."""
    return StockService(any_db, cache=cache, clock=clock)


@pytest.fixture
def supplier_service(any_db, cache, clock):
    return SupplierService(any_db, cache=cache, clock=clock)


@pytest.fixture
def analytics_service(any_db, clock):
    """Create a StockAnalyticsService over each backend."""
    return StockAnalyticsService(any_db, clock=clock)


@pytest.fixture
def dashboard_service(any_db, cache, clock):
    return DashboardService(any_db, cache=cache, clock=clock)


@pytest.fixture
def report_service(any_db):
    return ReportService(any_db)


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
