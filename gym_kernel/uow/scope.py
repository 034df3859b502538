"""
Scope providers -- how a unit of work reaches the store.

Responsibility:
    Hide whether the deployment can open an atomic multi-statement scope.
    ``TransactionalScopeProvider`` runs every step in one transaction;
    ``SequentialScopeProvider`` commits each step on its own.  The choice
    is made once, at start-up, by ``select_scope_provider``.

Invariants enforced:
    - ``ScopeHandle.close()`` is idempotent and releases the session.
    - A sequential handle never leaves a failed step half-applied: the
      step's own changes are rolled back before the error propagates.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from gym_kernel.db.engine import probe_transaction_support
from gym_kernel.domain.clock import Clock, SystemClock
from gym_kernel.exceptions import TransactionsUnavailableError
from gym_kernel.logging_config import get_logger
from gym_kernel.uow.operation import Operation
from gym_kernel.uow.unit_of_work import UnitOfWork

logger = get_logger("uow.scope")


class ExecutionMode(str, Enum):
    ATOMIC = "atomic"
    SEQUENTIAL = "sequential"


class ScopeHandle(ABC):
    """One open scope.  Obtained from ``ScopeProvider.begin()``."""

    mode: ExecutionMode

    def __init__(self, session: Session, clock: Clock):
        self._session = session
        self._closed = False
        self.uow = UnitOfWork(session, clock)

    @property
    def closed(self) -> bool:
        return self._closed

    @abstractmethod
    def run(self, operation: Operation) -> Any:
        """Execute one operation inside this scope."""

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def abort(self) -> None: ...

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._session.close()


class TransactionalScopeHandle(ScopeHandle):
    mode = ExecutionMode.ATOMIC

    def __init__(self, session: Session, clock: Clock):
        super().__init__(session, clock)
        self._session.begin()

    def run(self, operation: Operation) -> Any:
        result = operation.fn(self.uow)
        self._session.flush()
        return result

    def commit(self) -> None:
        self._session.commit()

    def abort(self) -> None:
        self._session.rollback()


class SequentialScopeHandle(ScopeHandle):
    """Each ``run()`` commits on success and rolls back only itself on failure."""

    mode = ExecutionMode.SEQUENTIAL

    def run(self, operation: Operation) -> Any:
        try:
            result = operation.fn(self.uow)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        return result

    def commit(self) -> None:
        # Every step already committed.
        pass

    def abort(self) -> None:
        # Applied steps stay applied; only pending state is dropped.
        self._session.rollback()


class ScopeProvider(ABC):
    mode: ExecutionMode

    def __init__(self, session_factory: sessionmaker[Session], clock: Clock | None = None):
        self._session_factory = session_factory
        self.clock = clock or SystemClock()

    @property
    def session_factory(self) -> sessionmaker[Session]:
        return self._session_factory

    @abstractmethod
    def begin(self) -> ScopeHandle: ...


class TransactionalScopeProvider(ScopeProvider):
    mode = ExecutionMode.ATOMIC

    def begin(self) -> ScopeHandle:
        session = self._session_factory()
        try:
            return TransactionalScopeHandle(session, self.clock)
        except Exception:
            session.close()
            raise


class SequentialScopeProvider(ScopeProvider):
    mode = ExecutionMode.SEQUENTIAL

    def begin(self) -> ScopeHandle:
        return SequentialScopeHandle(self._session_factory(), self.clock)


def select_scope_provider(
    engine: Engine,
    session_factory: sessionmaker[Session],
    execution_mode: str = "auto",
    require_atomic: bool = False,
    clock: Clock | None = None,
) -> ScopeProvider:
    """
    Decide the execution strategy once, at start-up.

    Args:
        execution_mode: ``auto`` probes the store; ``atomic`` and
            ``sequential`` force a strategy.
        require_atomic: Refuse to start in sequential mode.

    Raises:
        TransactionsUnavailableError: atomic execution is required (by mode
            or flag) and the probe says the store cannot provide it, or
            ``sequential`` was forced while ``require_atomic`` is set.
        ValueError: unknown execution mode.
    """
    dialect = engine.dialect.name
    if execution_mode not in ("auto", "atomic", "sequential"):
        raise ValueError(f"Unknown execution mode: {execution_mode!r}")

    if execution_mode == "sequential":
        if require_atomic:
            raise TransactionsUnavailableError(
                dialect, "sequential mode configured while atomic execution is required"
            )
        reason = "sequential mode configured"
    else:
        supported, reason = probe_transaction_support(engine)
        if supported:
            logger.info("atomic_mode_selected", extra={"dialect": dialect})
            return TransactionalScopeProvider(session_factory, clock)
        if execution_mode == "atomic" or require_atomic:
            raise TransactionsUnavailableError(dialect, reason)

    logger.warning(
        "degraded_mode_selected",
        extra={"dialect": dialect, "reason": reason},
    )
    return SequentialScopeProvider(session_factory, clock)
