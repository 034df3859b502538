"""
UnitOfWorkCoordinator -- runs a list of operations as one outcome.

Responsibility:
    Groups repository calls so that a multi-entity business action either
    commits completely or leaves no trace (atomic strategy), or, on a store
    that cannot open atomic scopes, runs step by step and reports exactly
    which steps were applied (sequential strategy).

Architecture position:
    Kernel > UoW.  Called by the association manager, the cascade executor
    and every business service.  Owns the only commit/rollback calls in the
    write path.

Invariants enforced:
    - Atomic: any step failure aborts the scope; nothing is written and the
      triggering exception is preserved as ``AtomicFailureError.cause``.
    - Sequential: a failure surfaces as ``PartialFailureError`` with the
      completed steps, never as a silent success.
    - The scope handle is closed on every exit path.

Failure modes:
    - AtomicFailureError (retryable) under the atomic strategy.
    - PartialFailureError (not retryable) under the sequential strategy,
      unless ``best_effort`` collects the errors in the outcome instead.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from gym_kernel.exceptions import AtomicFailureError, PartialFailureError
from gym_kernel.logging_config import LogContext, get_logger
from gym_kernel.uow.operation import Operation, StepError, UnitOfWorkOutcome
from gym_kernel.uow.scope import ExecutionMode, ScopeHandle, ScopeProvider
from gym_kernel.uow.unit_of_work import UnitOfWork

logger = get_logger("uow.coordinator")


class UnitOfWorkCoordinator:
    """Executes operations through the scope provider chosen at start-up."""

    def __init__(self, provider: ScopeProvider):
        self._provider = provider

    @property
    def mode(self) -> ExecutionMode:
        return self._provider.mode

    @property
    def is_atomic(self) -> bool:
        return self._provider.mode is ExecutionMode.ATOMIC

    @property
    def clock(self):
        return self._provider.clock

    @contextmanager
    def read(self) -> Iterator[UnitOfWork]:
        """
        Read-only unit of work for validation and queries.

        Anything left pending is rolled back; the session is closed on exit.
        """
        session = self._provider.session_factory()
        try:
            yield UnitOfWork(session, self._provider.clock)
        finally:
            session.rollback()
            session.close()

    def run_atomic(
        self,
        operations: Iterable[Operation],
        *,
        label: str,
        best_effort: bool = False,
    ) -> UnitOfWorkOutcome:
        """
        Run ``operations`` in order as one unit of work.

        Args:
            operations: Named steps; each receives the scope's UnitOfWork.
            label: Name of the business action, used in logs and errors.
            best_effort: Sequential strategy only.  Record a failed step in
                ``outcome.errors`` and keep going instead of stopping.
                Ignored by the atomic strategy, where any failure aborts.

        Returns:
            UnitOfWorkOutcome with each step's return value.

        Raises:
            AtomicFailureError: atomic scope aborted.
            PartialFailureError: sequential run stopped at a failed step.
        """
        ops = list(operations)
        with LogContext.bind(operation=label):
            try:
                handle = self._provider.begin()
            except Exception as exc:
                logger.error(
                    "unit_of_work_begin_failed",
                    extra={"label": label, "error": str(exc)},
                )
                if self.is_atomic:
                    raise AtomicFailureError(label, "begin", exc) from exc
                raise PartialFailureError(label, [], "begin", exc) from exc

            try:
                if handle.mode is ExecutionMode.ATOMIC:
                    return self._run_in_transaction(handle, ops, label)
                return self._run_sequentially(handle, ops, label, best_effort)
            finally:
                handle.close()

    def _run_in_transaction(
        self,
        handle: ScopeHandle,
        ops: list[Operation],
        label: str,
    ) -> UnitOfWorkOutcome:
        outcome = UnitOfWorkOutcome(label=label, mode=handle.mode.value)
        step = "begin"
        try:
            for op in ops:
                step = op.name
                outcome.results[op.name] = handle.run(op)
                outcome.completed_steps.append(op.name)
            step = "commit"
            handle.commit()
        except Exception as exc:
            handle.abort()
            logger.warning(
                "unit_of_work_aborted",
                extra={
                    "label": label,
                    "failed_step": step,
                    "discarded_steps": outcome.completed_steps,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
            raise AtomicFailureError(label, step, exc) from exc

        logger.info(
            "unit_of_work_committed",
            extra={"label": label, "mode": handle.mode.value, "steps": len(ops)},
        )
        return outcome

    def _run_sequentially(
        self,
        handle: ScopeHandle,
        ops: list[Operation],
        label: str,
        best_effort: bool,
    ) -> UnitOfWorkOutcome:
        outcome = UnitOfWorkOutcome(label=label, mode=handle.mode.value)
        for op in ops:
            try:
                outcome.results[op.name] = handle.run(op)
            except Exception as exc:
                if not best_effort:
                    logger.error(
                        "partial_failure",
                        extra={
                            "label": label,
                            "completed_steps": outcome.completed_steps,
                            "failed_step": op.name,
                            "error_type": type(exc).__name__,
                            "error": str(exc),
                        },
                    )
                    raise PartialFailureError(
                        label, outcome.completed_steps, op.name, exc
                    ) from exc
                outcome.errors.append(
                    StepError(op.name, exc, op.entity_type, op.entity_id)
                )
                logger.warning(
                    "step_failed_continuing",
                    extra={
                        "label": label,
                        "failed_step": op.name,
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                    },
                )
                continue
            outcome.completed_steps.append(op.name)

        handle.commit()
        log = logger.info if outcome.success else logger.warning
        log(
            "unit_of_work_completed",
            extra={
                "label": label,
                "mode": handle.mode.value,
                "completed_steps": outcome.completed_steps,
                "failed_steps": [e.step for e in outcome.errors],
            },
        )
        return outcome
