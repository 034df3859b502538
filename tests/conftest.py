"""
Pytest fixtures for the gym kernel test suite.

Provides:
- A fresh SQLite database file per test (foreign keys enforced)
- Kernels wired with the atomic and with the sequential strategy
- A deterministic clock and test actor
- Entity factories going through the public services
- Log capture as parsed JSON dicts
"""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from gym_kernel.bootstrap import build_kernel
from gym_kernel.config import KernelSettings
from gym_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from gym_kernel.domain.clock import DeterministicClock
from gym_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from gym_kernel.uow import SequentialScopeProvider, TransactionalScopeProvider

# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()


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
    Capture gym_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, kernel):
            kernel.clients.create_client(...)
            logs = captured_logs()
            assert any(r["message"] == "client_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("gym_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def db_engine(tmp_path):
    """A file-backed SQLite database created for this test only."""
    engine = init_engine_from_url(f"sqlite:///{tmp_path / 'gym.db'}")
    create_tables()
    yield engine
    reset_engine()


@pytest.fixture
def session_factory(db_engine):
    return get_session_factory()


@pytest.fixture
def session(session_factory):
    """A plain session for direct model work and assertions."""
    sess = session_factory()
    yield sess
    sess.rollback()
    sess.close()


class StoreProbe:
    """Reads committed state through a fresh session each call."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def count(self, model, **criteria) -> int:
        with self._session_factory() as sess:
            stmt = select(func.count()).select_from(model).filter_by(**criteria)
            return sess.execute(stmt).scalar_one()

    def get(self, model, entity_id):
        with self._session_factory() as sess:
            return sess.get(model, entity_id)

    def all(self, model, **criteria) -> list:
        with self._session_factory() as sess:
            return list(sess.execute(select(model).filter_by(**criteria)).scalars())


@pytest.fixture
def store(session_factory) -> StoreProbe:
    return StoreProbe(session_factory)


# =============================================================================
# Kernel fixtures
# =============================================================================


@pytest.fixture
def test_actor_id():
    return TEST_ACTOR_ID


@pytest.fixture
def clock():
    return DeterministicClock(datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings(test_actor_id):
    return KernelSettings(database_url="sqlite://", default_actor_id=test_actor_id)


@pytest.fixture
def atomic_provider(session_factory, clock):
    return TransactionalScopeProvider(session_factory, clock)


@pytest.fixture
def sequential_provider(session_factory, clock):
    return SequentialScopeProvider(session_factory, clock)


@pytest.fixture
def kernel(atomic_provider, settings):
    """Services over the atomic (transactional) strategy."""
    return build_kernel(atomic_provider, settings)


@pytest.fixture
def sequential_kernel(sequential_provider, settings):
    """Services over the sequential (fallback) strategy, same database."""
    return build_kernel(sequential_provider, settings)


# =============================================================================
# Entity factories
# =============================================================================


@pytest.fixture
def make_client(kernel):
    counter = {"n": 0}

    def _make(level="beginner", first_name="Ana", last_name="Perez", email=None):
        counter["n"] += 1
        result = kernel.clients.create_client(
            first_name,
            last_name,
            email or f"client{counter['n']}-{uuid4().hex[:6]}@example.com",
            level=level,
        )
        assert result.success, result.message
        return result.data["client_id"]

    return _make


@pytest.fixture
def make_plan(kernel):
    def _make(level="beginner", name="Strength Basics", duration_weeks=8):
        result = kernel.plans.create_plan(name, level, duration_weeks)
        assert result.success, result.message
        return result.data["plan_id"]

    return _make


@pytest.fixture
def make_contract(kernel):
    def _make(client_id, plan_id, price=Decimal("100.00"), duration_months=3, **kwargs):
        result = kernel.contracts.create_contract(client_id, plan_id, price, duration_months, **kwargs)
        assert result.success, result.message
        return result.data["contract_id"]

    return _make


@pytest.fixture
def make_progress(kernel):
    def _make(client_id, contract_id, weight_kg="80.5", **kwargs):
        result = kernel.progress.record_progress(client_id, contract_id, weight_kg=weight_kg, **kwargs)
        assert result.success, result.message
        return result.data["entry_id"]

    return _make
