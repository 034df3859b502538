"""
PlanService -- training plan lifecycle.

Leaving the ACTIVE status (cancel or finish) detaches the plan from every
client.  Active contracts on the plan block that unless ``force`` is given,
in which case they are canceled through the contract cascade in the same
unit of work.  Deleting a plan runs the plan cascade.
"""

from __future__ import annotations

from uuid import UUID, uuid4

from gym_kernel.domain.dependency_graph import EntityKind
from gym_kernel.domain.dtos import CascadeItemError, RollbackReport, ServiceResult
from gym_kernel.domain.identifiers import parse_id
from gym_kernel.exceptions import (
    CascadeBlockedError,
    GymKernelError,
    InvalidFieldError,
    InvalidStateError,
)
from gym_kernel.logging_config import get_logger
from gym_kernel.models.audit_event import AuditAction
from gym_kernel.models.plan import PlanStatus, TrainingPlan
from gym_kernel.services.base import BaseService, audit_operation, enum_value, require_plan
from gym_kernel.services.cascade_executor import CascadeRollbackExecutor
from gym_kernel.services.client_service import parse_level
from gym_kernel.services.mappers import plan_to_info
from gym_kernel.uow import Operation, UnitOfWorkCoordinator

logger = get_logger("services.plan")


class PlanService(BaseService):
    def __init__(
        self,
        coordinator: UnitOfWorkCoordinator,
        cascade_executor: CascadeRollbackExecutor,
        actor_id: UUID | None = None,
    ):
        super().__init__(coordinator, actor_id)
        self._cascade = cascade_executor

    def create_plan(
        self,
        name: str,
        level: str,
        duration_weeks: int = 4,
        actor_id: UUID | None = None,
    ) -> ServiceResult:
        actor = self._actor(actor_id)
        try:
            if not name or not name.strip():
                raise InvalidFieldError("name", "is required")
            if not isinstance(duration_weeks, int) or duration_weeks < 1:
                raise InvalidFieldError("duration_weeks", "must be a positive whole number")
            plan_level = parse_level(level)
            plan = TrainingPlan(
                id=uuid4(),
                name=name.strip(),
                level=plan_level.value,
                duration_weeks=duration_weeks,
                status=PlanStatus.ACTIVE.value,
            )
            self._coordinator.run_atomic(
                [
                    Operation("create_plan", lambda uow: uow.plans.create(plan), "plan", plan.id),
                    audit_operation(
                        "plan", plan.id, AuditAction.PLAN_CREATED, actor, {"name": plan.name, "level": plan_level}
                    ),
                ],
                label="create_plan",
            )
        except GymKernelError as exc:
            return self._rejected("create plan", exc)
        return ServiceResult.ok("Plan created", plan_id=plan.id)

    def get_plan(self, plan_id: UUID | str) -> ServiceResult:
        plan_uuid = parse_id(plan_id, "plan_id")
        try:
            with self._coordinator.read() as uow:
                plan = require_plan(uow, plan_uuid)
                client_ids = [c.id for c in uow.associations.clients_for_plan(plan_uuid)]
                info = plan_to_info(plan, client_ids)
        except GymKernelError as exc:
            return self._rejected("get plan", exc)
        return ServiceResult.ok("Plan found", plan=info)

    def change_plan_status(
        self,
        plan_id: UUID | str,
        new_status: PlanStatus | str,
        force: bool = False,
        reason: str = "",
        actor_id: UUID | None = None,
    ) -> ServiceResult:
        """
        Move an active plan to CANCELED or FINISHED, unlinking its clients.

        Returns a failed result with CascadeBlockedError when the plan has
        active contracts and ``force`` is False.
        """
        plan_uuid = parse_id(plan_id, "plan_id")
        actor = self._actor(actor_id)
        try:
            try:
                target = PlanStatus(enum_value(new_status))
            except ValueError as exc:
                raise InvalidFieldError("status", f"unknown plan status {new_status!r}") from exc

            report = RollbackReport(
                root_type=EntityKind.PLAN.value,
                root_id=plan_uuid,
                reason=reason or f"plan {target.value}",
                mode=self._coordinator.mode.value,
            )
            with self._coordinator.read() as uow:
                plan = require_plan(uow, plan_uuid)
                current = enum_value(plan.status)
                if current != PlanStatus.ACTIVE.value or target is PlanStatus.ACTIVE:
                    raise InvalidStateError("Plan", plan_uuid, current, f"change status to {target.value}")
                active_contracts = uow.contracts.find_active_by_plan(plan_uuid)
                if active_contracts and not force:
                    raise CascadeBlockedError("Plan", plan_uuid, {"active contracts": len(active_contracts)})

                operations: list[Operation] = []
                for contract in active_contracts:
                    operations.extend(
                        self._cascade.contract_operations(
                            uow, contract, report.reason, actor, report, unlink=False
                        )
                    )
                operations.extend(
                    self._cascade.association_removal_operations(uow, EntityKind.PLAN, plan_uuid, report)
                )

            operations.append(
                Operation(
                    "set_plan_status",
                    lambda uow: uow.plans.update(plan_uuid, status=target.value),
                    "plan",
                    plan_uuid,
                )
            )
            operations.append(
                audit_operation(
                    "plan",
                    plan_uuid,
                    AuditAction.PLAN_STATUS_CHANGED,
                    actor,
                    lambda: {"from": current, "to": target.value, **report.counts()},
                )
            )
            outcome = self._coordinator.run_atomic(operations, label="change_plan_status", best_effort=True)
        except GymKernelError as exc:
            return self._rejected("change plan status", exc)

        report.completed_steps = list(outcome.completed_steps)
        report.errors = [
            CascadeItemError(e.step, e.entity_type, e.entity_id, e.code, str(e.error), e.error)
            for e in outcome.errors
        ]
        if not outcome.success:
            first = outcome.errors[0]
            return ServiceResult.fail(
                f"Could not fully change plan status: {len(outcome.errors)} step(s) failed",
                first.error,
                **report.to_dict(),
            )
        logger.info(
            "plan_status_changed",
            extra={"plan_id": str(plan_uuid), "status": target.value, **report.counts()},
        )
        return ServiceResult.ok("Plan status changed", status=target, **report.to_dict())

    def delete_plan(
        self,
        plan_id: UUID | str,
        force: bool = False,
        reason: str = "",
        actor_id: UUID | None = None,
    ) -> ServiceResult:
        plan_uuid = parse_id(plan_id, "plan_id")
        try:
            with self._coordinator.read() as uow:
                require_plan(uow, plan_uuid)
            report = self._cascade.cascade_from_plan(
                plan_uuid, reason or "plan deleted", force=force, actor_id=self._actor(actor_id)
            )
        except GymKernelError as exc:
            return self._rejected("delete plan", exc)
        return self._from_report("delete plan", "cascade_from_plan", report, "Plan deleted")
