"""
Pytest fixtures for the allocation kernel test suite.

Provides:
- A fresh in-memory SQLite database per test
- A deterministic logical clock
- Ledger fixtures at the usual starting points (bare, initialized, with a
  registered resource type)
- Captured structured log records
"""

import json
import logging
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy.orm import Session

from allocation_kernel.db.engine import (
    create_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from allocation_kernel.domain.allocation import LedgerSettings
from allocation_kernel.domain.clock import DeterministicClock
from allocation_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from allocation_kernel.services.allocation_ledger import AllocationLedgerService

ADMIN = "admin"
GUARDIAN = "guardian"
ALICE = "alice"
BOB = "bob"
CAROL = "carol"

GPU_TYPE = 1
START_HEIGHT = 1000


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
    Capture allocation_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger):
            ledger.initialize(ADMIN)
            logs = captured_logs()
            assert any(r["message"] == "initialize_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("allocation_kernel")
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
    """Fresh in-memory SQLite engine with all tables created."""
    eng = init_engine_from_url("sqlite://")
    create_tables()
    yield eng
    reset_engine()


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    """
    Session bound to the per-test database.

    The ledger commits and rolls back for real; isolation comes from the
    database being discarded at teardown.
    """
    sess = get_session()
    yield sess
    sess.close()


# =============================================================================
# Clock and settings
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(start_height=START_HEIGHT)


@pytest.fixture
def settings() -> LedgerSettings:
    return LedgerSettings(administrator=ADMIN, default_emergency_contact=GUARDIAN)


# =============================================================================
# Ledger fixtures
# =============================================================================


@pytest.fixture
def ledger(session, settings, deterministic_clock) -> AllocationLedgerService:
    """Ledger that has not been initialized."""
    return AllocationLedgerService(session, settings, deterministic_clock)


@pytest.fixture
def initialized_ledger(ledger) -> AllocationLedgerService:
    ledger.initialize(ADMIN)
    return ledger


@pytest.fixture
def register_resource(initialized_ledger):
    """Factory fixture registering a resource type with overridable fields."""

    def _register(
        type_id: int = GPU_TYPE,
        name: str = "gpu-hours",
        total_supply: int = 100,
        unit_price: int = 10,
        min_allocation: int = 1,
        max_allocation: int = 50,
        priority_floor: int = 1,
    ):
        return initialized_ledger.register_resource_type(
            ADMIN, type_id, name, total_supply, unit_price,
            min_allocation, max_allocation, priority_floor,
        )

    return _register


@pytest.fixture
def gpu_ledger(initialized_ledger, register_resource) -> AllocationLedgerService:
    """Initialized ledger with type 1: supply 100, price 10, min 1, max 50, floor 1."""
    register_resource()
    return initialized_ledger


@pytest.fixture
def grant(gpu_ledger):
    """Factory fixture: submit and approve ``amount`` units of type 1 for ``actor``."""

    def _grant(actor: str, amount: int, type_id: int = GPU_TYPE):
        request = gpu_ledger.submit_request(actor, type_id, amount)
        return gpu_ledger.approve_request(ADMIN, request.request_id)

    return _grant
