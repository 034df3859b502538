"""
BaseService -- shared plumbing for the business services.

Responsibility:
    Holds the coordinator and the default actor, builds the audit step that
    closes most units of work, and maps typed errors and cascade reports to
    ``ServiceResult``.

Invariants enforced:
    - Services never commit.  Every write goes through
      ``UnitOfWorkCoordinator.run_atomic``.
    - Expected failures (not found, consistency, blocked cascades, unit of
      work failures) come back as ``ServiceResult.fail`` with the typed
      error attached.  Malformed identifiers raise before the try block.
"""

from __future__ import annotations

from abc import ABC
from collections.abc import Callable
from enum import Enum
from typing import Any
from uuid import UUID

from gym_kernel.domain.clock import Clock
from gym_kernel.domain.dtos import RollbackReport, ServiceResult
from gym_kernel.domain.identifiers import SYSTEM_ACTOR_ID
from gym_kernel.exceptions import (
    ClientNotFoundError,
    ContractNotFoundError,
    GymKernelError,
    PartialFailureError,
    PlanNotFoundError,
    UnitOfWorkError,
)
from gym_kernel.logging_config import get_logger
from gym_kernel.models.audit_event import AuditAction
from gym_kernel.models.client import Client
from gym_kernel.models.contract import Contract
from gym_kernel.models.plan import TrainingPlan
from gym_kernel.uow import Operation, UnitOfWork, UnitOfWorkCoordinator

logger = get_logger("services")

Payload = dict[str, Any] | Callable[[], dict[str, Any]] | None


def enum_value(value: Any) -> Any:
    """Plain value of a status or level, whether loaded as str or set as Enum."""
    return value.value if isinstance(value, Enum) else value


def audit_operation(
    entity_type: str,
    entity_id: UUID,
    action: AuditAction,
    actor_id: UUID,
    payload: Payload = None,
) -> Operation:
    """
    Step that appends one audit event.

    ``payload`` may be a callable; it is evaluated when the step runs, so a
    cascade can record the counts it actually reached.
    """

    def record(uow: UnitOfWork) -> int:
        data = payload() if callable(payload) else (payload or {})
        return uow.audit.record(entity_type, entity_id, action, actor_id, data).seq

    return Operation(
        name=f"audit_{action.value}:{entity_id}",
        fn=record,
        entity_type="audit_event",
        entity_id=entity_id,
    )


def require_client(uow: UnitOfWork, client_id: UUID) -> Client:
    client = uow.clients.get_by_id(client_id)
    if client is None:
        raise ClientNotFoundError(client_id)
    return client


def require_plan(uow: UnitOfWork, plan_id: UUID) -> TrainingPlan:
    plan = uow.plans.get_by_id(plan_id)
    if plan is None:
        raise PlanNotFoundError(plan_id)
    return plan


def require_contract(uow: UnitOfWork, contract_id: UUID) -> Contract:
    contract = uow.contracts.get_by_id(contract_id)
    if contract is None:
        raise ContractNotFoundError(contract_id)
    return contract


class BaseService(ABC):
    """Common constructor and result mapping for business services."""

    def __init__(self, coordinator: UnitOfWorkCoordinator, actor_id: UUID | None = None):
        self._coordinator = coordinator
        self._actor_id = actor_id or SYSTEM_ACTOR_ID

    @property
    def clock(self) -> Clock:
        return self._coordinator.clock

    def _actor(self, actor_id: UUID | None) -> UUID:
        return actor_id or self._actor_id

    def _rejected(self, action: str, exc: GymKernelError) -> ServiceResult:
        if isinstance(exc, UnitOfWorkError):
            logger.error(
                "service_failed",
                extra={"action": action, "error_code": exc.code, "error": str(exc)},
            )
        else:
            logger.info(
                "service_rejected",
                extra={"action": action, "error_code": exc.code, "error": str(exc)},
            )
        return ServiceResult.fail(f"Could not {action}: {exc}", exc)

    def _from_report(
        self,
        action: str,
        label: str,
        report: RollbackReport,
        success_message: str,
    ) -> ServiceResult:
        """Map a cascade report; a report with item errors is a failure."""
        if report.success:
            return ServiceResult.ok(success_message, **report.to_dict())
        first = report.errors[0]
        error = PartialFailureError(
            label,
            report.completed_steps,
            first.step,
            first.cause or RuntimeError(first.message),
        )
        logger.error(
            "service_partially_applied",
            extra={
                "action": action,
                "completed_steps": report.completed_steps,
                "failed_steps": [e.step for e in report.errors],
            },
        )
        return ServiceResult.fail(
            f"Could not fully {action}: {len(report.errors)} step(s) failed",
            error,
            **report.to_dict(),
        )
