"""
Tests for UnitOfWorkCoordinator under both execution strategies.

Covers:
- Atomic commit and all-or-nothing abort
- Sequential per-step commits and PartialFailureError reporting
- best_effort collection of step errors
- Scope handles closed on every exit path
"""

from uuid import uuid4

import pytest

from gym_kernel.exceptions import AtomicFailureError, PartialFailureError
from gym_kernel.models.client import Client
from gym_kernel.uow import (
    ExecutionMode,
    Operation,
    SequentialScopeProvider,
    TransactionalScopeProvider,
    UnitOfWorkCoordinator,
)


def _insert_client(name: str):
    client_id = uuid4()

    def run(uow):
        return uow.clients.create(
            Client(id=client_id, first_name=name, last_name="Test", email=f"{name}-{client_id.hex[:6]}@example.com")
        )

    return Operation(f"insert_{name}", run, "client", client_id), client_id


def _failing(name: str = "boom", error: Exception | None = None):
    def run(uow):
        raise error or RuntimeError("step failed")

    return Operation(name, run)


class _TrackingProvider:
    """Wraps a provider and records every handle it hands out."""

    def __init__(self, inner):
        self._inner = inner
        self.handles = []
        self.mode = inner.mode
        self.clock = inner.clock
        self.session_factory = inner.session_factory

    def begin(self):
        handle = self._inner.begin()
        self.handles.append(handle)
        return handle


class TestAtomicStrategy:
    def test_commits_all_steps(self, atomic_provider, store):
        coordinator = UnitOfWorkCoordinator(atomic_provider)
        op1, id1 = _insert_client("a")
        op2, id2 = _insert_client("b")

        outcome = coordinator.run_atomic([op1, op2], label="two_clients")

        assert outcome.success
        assert outcome.mode == ExecutionMode.ATOMIC.value
        assert outcome.completed_steps == ["insert_a", "insert_b"]
        assert outcome.result("insert_a") == id1
        assert store.count(Client) == 2

    def test_failure_discards_every_write(self, atomic_provider, store):
        coordinator = UnitOfWorkCoordinator(atomic_provider)
        op1, _ = _insert_client("a")
        cause = RuntimeError("disk on fire")

        with pytest.raises(AtomicFailureError) as exc_info:
            coordinator.run_atomic([op1, _failing("explode", cause)], label="doomed")

        error = exc_info.value
        assert error.failed_step == "explode"
        assert error.label == "doomed"
        assert error.cause is cause
        assert error.__cause__ is cause
        assert error.retryable is True
        assert store.count(Client) == 0

    def test_best_effort_does_not_weaken_atomicity(self, atomic_provider, store):
        coordinator = UnitOfWorkCoordinator(atomic_provider)
        op1, _ = _insert_client("a")

        with pytest.raises(AtomicFailureError):
            coordinator.run_atomic([op1, _failing()], label="doomed", best_effort=True)
        assert store.count(Client) == 0

    def test_constraint_violation_at_flush_aborts(self, atomic_provider, store):
        coordinator = UnitOfWorkCoordinator(atomic_provider)
        op1, _ = _insert_client("a")

        def duplicate_email(uow):
            uow.clients.create(Client(first_name="x", last_name="y", email="dup@example.com"))
            uow.clients.create(Client(first_name="z", last_name="w", email="dup@example.com"))

        with pytest.raises(AtomicFailureError) as exc_info:
            coordinator.run_atomic([op1, Operation("dup", duplicate_email)], label="dup")
        assert exc_info.value.failed_step == "dup"
        assert store.count(Client) == 0

    def test_logs_abort(self, atomic_provider, captured_logs):
        coordinator = UnitOfWorkCoordinator(atomic_provider)
        with pytest.raises(AtomicFailureError):
            coordinator.run_atomic([_failing("explode")], label="doomed")

        records = [r for r in captured_logs() if r["message"] == "unit_of_work_aborted"]
        assert records
        assert records[0]["failed_step"] == "explode"
        assert records[0]["operation"] == "doomed"

    def test_empty_unit_succeeds(self, atomic_provider):
        outcome = UnitOfWorkCoordinator(atomic_provider).run_atomic([], label="nothing")
        assert outcome.success
        assert outcome.completed_steps == []


class TestSequentialStrategy:
    def test_failure_reports_completed_steps(self, sequential_provider, store):
        coordinator = UnitOfWorkCoordinator(sequential_provider)
        op1, id1 = _insert_client("a")
        op3, _ = _insert_client("c")

        with pytest.raises(PartialFailureError) as exc_info:
            coordinator.run_atomic([op1, _failing("explode"), op3], label="partial")

        error = exc_info.value
        assert error.completed_steps == ["insert_a"]
        assert error.failed_step == "explode"
        assert error.is_clean is False
        assert error.retryable is False
        # the first step stays applied, the third never ran
        assert store.count(Client) == 1
        assert store.get(Client, id1) is not None

    def test_failure_on_first_step_is_clean(self, sequential_provider, store):
        coordinator = UnitOfWorkCoordinator(sequential_provider)
        with pytest.raises(PartialFailureError) as exc_info:
            coordinator.run_atomic([_failing("first")], label="clean")
        assert exc_info.value.is_clean
        assert store.count(Client) == 0

    def test_failed_step_leaves_no_half_write(self, sequential_provider, store):
        coordinator = UnitOfWorkCoordinator(sequential_provider)

        def half(uow):
            uow.clients.create(Client(first_name="x", last_name="y", email="half@example.com"))
            raise RuntimeError("after the insert")

        with pytest.raises(PartialFailureError):
            coordinator.run_atomic([Operation("half", half)], label="half")
        assert store.count(Client) == 0

    def test_best_effort_collects_errors_and_continues(self, sequential_provider, store):
        coordinator = UnitOfWorkCoordinator(sequential_provider)
        op1, _ = _insert_client("a")
        op3, _ = _insert_client("c")

        outcome = coordinator.run_atomic([op1, _failing("explode"), op3], label="lenient", best_effort=True)

        assert not outcome.success
        assert outcome.completed_steps == ["insert_a", "insert_c"]
        assert [e.step for e in outcome.errors] == ["explode"]
        assert outcome.errors[0].code == "RuntimeError"
        assert store.count(Client) == 2

    def test_logs_partial_failure(self, sequential_provider, captured_logs):
        coordinator = UnitOfWorkCoordinator(sequential_provider)
        op1, _ = _insert_client("a")
        with pytest.raises(PartialFailureError):
            coordinator.run_atomic([op1, _failing("explode")], label="partial")

        records = [r for r in captured_logs() if r["message"] == "partial_failure"]
        assert records
        assert records[0]["completed_steps"] == ["insert_a"]
        assert records[0]["failed_step"] == "explode"


class TestScopeRelease:
    @pytest.mark.parametrize("provider_cls", [TransactionalScopeProvider, SequentialScopeProvider])
    def test_handle_closed_on_success(self, provider_cls, session_factory, clock):
        provider = _TrackingProvider(provider_cls(session_factory, clock))
        op, _ = _insert_client("a")
        UnitOfWorkCoordinator(provider).run_atomic([op], label="ok")
        assert provider.handles and all(h.closed for h in provider.handles)

    @pytest.mark.parametrize("provider_cls", [TransactionalScopeProvider, SequentialScopeProvider])
    def test_handle_closed_on_failure(self, provider_cls, session_factory, clock):
        provider = _TrackingProvider(provider_cls(session_factory, clock))
        with pytest.raises((AtomicFailureError, PartialFailureError)):
            UnitOfWorkCoordinator(provider).run_atomic([_failing()], label="fail")
        assert all(h.closed for h in provider.handles)

    def test_close_is_idempotent(self, atomic_provider):
        handle = atomic_provider.begin()
        handle.close()
        handle.close()
        assert handle.closed

    def test_read_scope_discards_writes(self, atomic_provider, store):
        coordinator = UnitOfWorkCoordinator(atomic_provider)
        with coordinator.read() as uow:
            uow.clients.create(Client(first_name="x", last_name="y", email="read@example.com"))
        assert store.count(Client) == 0
