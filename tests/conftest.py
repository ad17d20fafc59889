"""
Pytest fixtures for the lease billing test suite.

Provides:
- In-memory SQLite engine/session (SAVEPOINT-capable) for unit tests
- A DeterministicClock pinned to 2025-01-15 09:00 UTC
- Tenant / admin / system AuthContexts
- Contract and bill factories
- Structured log capture
"""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest
from sqlalchemy.orm import sessionmaker

from lease_kernel.db.base import Base
from lease_kernel.db.engine import build_engine
from lease_kernel.domain.auth import AuthContext
from lease_kernel.domain.clock import DeterministicClock
from lease_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from lease_kernel.models import Contract
from lease_kernel.services.bill_ledger import BillLedger
from lease_kernel.services.notification_dispatcher import NotificationDispatcher

import lease_batch.models  # noqa: F401  (registers job_runs)

FIXED_NOW = datetime(2025, 1, 15, 9, 0, 0, tzinfo=timezone.utc)
TODAY = FIXED_NOW.date()


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
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture lease_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger):
            ledger.create(...)
            assert any(r["message"] == "bill_created" for r in captured_logs())
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("lease_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    eng = build_engine("sqlite:///:memory:")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    sess = session_factory()
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def clock():
    return DeterministicClock(FIXED_NOW)


# =============================================================================
# Callers
# =============================================================================


@pytest.fixture
def tenant_id():
    return uuid4()


@pytest.fixture
def tenant(tenant_id):
    return AuthContext.tenant(tenant_id)


@pytest.fixture
def other_tenant():
    return AuthContext.tenant(uuid4())


@pytest.fixture
def admin():
    return AuthContext.admin(uuid4())


@pytest.fixture
def system():
    return AuthContext.system()


# =============================================================================
# Services and factories
# =============================================================================


@pytest.fixture
def dispatcher(session, clock):
    return NotificationDispatcher(session, clock)


@pytest.fixture
def ledger(session, clock, dispatcher):
    return BillLedger(session, clock, dispatcher)


@pytest.fixture
def make_contract(session, tenant_id):
    def _make(
        *,
        tenant=None,
        status="active",
        end_date=date(2025, 12, 31),
        start_date=date(2024, 1, 1),
        rent_amount=Decimal("3500.00"),
        space_id=None,
    ) -> Contract:
        contract = Contract(
            tenant_id=tenant or tenant_id,
            space_id=space_id,
            rent_amount=rent_amount,
            deposit_amount=Decimal("7000.00"),
            start_date=start_date,
            end_date=end_date,
            status=status,
        )
        session.add(contract)
        session.flush()
        return contract

    return _make


@pytest.fixture
def contract(make_contract):
    return make_contract()


@pytest.fixture
def make_bill(ledger, admin, contract):
    def _make(**fields):
        values = {
            "contract_id": contract.id,
            "billing_month": "2025-01",
            "due_date": date(2025, 1, 31),
            "rent_amount": "3500",
        }
        values.update(fields)
        return ledger.create(values, admin)

    return _make


@pytest.fixture
def bill(make_bill):
    return make_bill()
