"""
Pytest fixtures for the lease kernel test suite.

Provides:
- Database sessions isolated per test by an outer transaction rollback
- Deterministic clock and owner ids
- Service factories and small data builders

Environment Variables:
- DATABASE_URL: database to test against.  Defaults to in-memory SQLite.
  Tests marked ``postgres`` are skipped unless it points at PostgreSQL.
"""

import json
import logging
import os
from datetime import date
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from lease_kernel.db.engine import (
    create_tables,
    drop_tables,
    init_engine_from_url,
    reset_engine,
)
from lease_kernel.domain.clock import DeterministicClock
from lease_kernel.domain.identity import FixedIdentity
from lease_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from lease_kernel.selectors.dashboard_selector import DashboardSelector
from lease_kernel.services.contract_service import ContractService
from lease_kernel.services.payment_service import PaymentService
from lease_kernel.services.property_service import PropertyService
from lease_kernel.services.tenant_service import TenantService

DEFAULT_DATABASE_URL = "sqlite://"

TEST_TODAY = date(2024, 1, 1)


def get_database_url() -> str:
    """Get database URL from environment, or use in-memory SQLite."""
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "postgres: mark test as requiring PostgreSQL"
    )


def pytest_collection_modifyitems(config, items):
    if get_database_url().startswith("postgresql"):
        return
    skip_pg = pytest.mark.skip(reason="needs a PostgreSQL DATABASE_URL")
    for item in items:
        if "postgres" in item.keywords:
            item.add_marker(skip_pg)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Ensure LogContext is clean for every test."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """Capture kernel log records as parsed JSON dicts.

    Returns a callable; each call returns every record emitted so far.
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("lease_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Session-scoped DB infrastructure
# =============================================================================


@pytest.fixture(scope="session")
def db_engine():
    """Single engine for the entire test session."""
    eng = init_engine_from_url(get_database_url(), echo=False)
    yield eng
    reset_engine()


@pytest.fixture(scope="session")
def db_tables(db_engine):
    """Create all tables once per session, drop once at end."""
    drop_tables()
    create_tables()
    yield
    drop_tables()


@pytest.fixture(scope="function")
def session(db_tables, db_engine) -> Generator[Session, None, None]:
    """Provide a database session for testing.

    The session joins an outer transaction on a dedicated connection.
    ``session.commit()`` inside a test releases a savepoint only; the
    outer transaction is rolled back at teardown.
    """
    conn = db_engine.connect()
    trans = conn.begin()
    sess = Session(bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False)
    yield sess
    try:
        sess.close()
    finally:
        try:
            trans.rollback()
        finally:
            conn.close()


# =============================================================================
# Identity and time
# =============================================================================


@pytest.fixture
def owner_id():
    return uuid4()


@pytest.fixture
def other_owner_id():
    return uuid4()


@pytest.fixture
def identity(owner_id):
    return FixedIdentity(owner_id)


@pytest.fixture
def deterministic_clock():
    """Clock fixed at noon on 2024-01-01."""
    return DeterministicClock.on(TEST_TODAY)


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def property_service(session, owner_id, deterministic_clock):
    return PropertyService(session, owner_id, deterministic_clock)


@pytest.fixture
def tenant_service(session, owner_id, deterministic_clock):
    return TenantService(session, owner_id, deterministic_clock)


@pytest.fixture
def contract_service(session, owner_id, deterministic_clock):
    return ContractService(session, owner_id, deterministic_clock)


@pytest.fixture
def payment_service(session, owner_id, deterministic_clock):
    return PaymentService(session, owner_id, deterministic_clock)


@pytest.fixture
def dashboard(session, owner_id, deterministic_clock):
    return DashboardSelector(session, owner_id, deterministic_clock)


# =============================================================================
# Data builders
# =============================================================================


@pytest.fixture
def make_property(property_service):
    """Create a property; keyword arguments override the defaults."""
    counter = iter(range(1, 10_000))

    def _make(**overrides):
        n = next(counter)
        values = {
            "name": f"Unit {n}",
            "address": f"{n} Main Street",
            "monthly_rent": Decimal("1000.00"),
        }
        values.update(overrides)
        return property_service.create_property(**values)

    return _make


@pytest.fixture
def make_tenant(tenant_service):
    """Create a tenant with a unique email and document number."""
    counter = iter(range(1, 10_000))

    def _make(**overrides):
        n = next(counter)
        values = {
            "first_name": "Ana",
            "last_name": f"Tenant{n}",
            "email": f"tenant{n}@example.com",
            "document_number": f"DOC-{n:05d}",
        }
        values.update(overrides)
        return tenant_service.create_tenant(**values)

    return _make


@pytest.fixture
def prop(make_property):
    return make_property()


@pytest.fixture
def tenant(make_tenant):
    return make_tenant()
