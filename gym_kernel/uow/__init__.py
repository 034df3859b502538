"""Unit of work: scope providers, the coordinator and its operation types."""

from gym_kernel.uow.coordinator import UnitOfWorkCoordinator
from gym_kernel.uow.operation import Operation, StepError, UnitOfWorkOutcome
from gym_kernel.uow.scope import (
    ExecutionMode,
    ScopeHandle,
    ScopeProvider,
    SequentialScopeProvider,
    TransactionalScopeProvider,
    select_scope_provider,
)
from gym_kernel.uow.unit_of_work import UnitOfWork

__all__ = [
    "ExecutionMode",
    "Operation",
    "ScopeHandle",
    "ScopeProvider",
    "SequentialScopeProvider",
    "StepError",
    "TransactionalScopeProvider",
    "UnitOfWork",
    "UnitOfWorkCoordinator",
    "UnitOfWorkOutcome",
    "select_scope_provider",
]
