"""
CascadeRollbackExecutor -- unwinds dependents when a root goes away.

Responsibility:
    Given a root (contract, client or plan), walks the static dependency
    table and removes or cancels every dependent row before the row it
    references, then applies the root action.  Each cascade writes one
    audit event.

Architecture position:
    Kernel > Services.  Builds ``Operation`` lists and submits them to the
    UnitOfWorkCoordinator with ``best_effort=True``.

Invariants enforced:
    - Order: progress entries, then contracts, then associations, then the
      client/plan row.  The store's foreign keys reject any other order.
    - Completeness: after a successful client cascade no contract, progress
      entry or association references the client.
    - Idempotence: a second cascade on the same root touches nothing and
      reports ``eliminated == 0``.
    - Contract cascade drops the client↔plan link only when no other active
      contract for the pair remains.

Failure modes:
    - CascadeBlockedError: dependents exist and ``force`` is False.
    - AtomicFailureError: atomic strategy, any step failed, nothing applied.
    - Sequential strategy: per-item failures land in ``RollbackReport.errors``
      and the cascade continues with the remaining items.

Audit relevance:
    The audit payload carries the counts the cascade reached, including in
    sequential mode where some items may have failed.
"""

from __future__ import annotations

from collections.abc import Callable
from uuid import UUID

from gym_kernel.domain.dependency_graph import CascadeAction, CascadeStep, EntityKind, walk
from gym_kernel.domain.dtos import CascadeItemError, RollbackReport
from gym_kernel.domain.identifiers import SYSTEM_ACTOR_ID
from gym_kernel.exceptions import CascadeBlockedError
from gym_kernel.logging_config import LogContext, get_logger
from gym_kernel.models.audit_event import AuditAction
from gym_kernel.models.contract import Contract, ContractStatus
from gym_kernel.services.association_manager import unlink_operation
from gym_kernel.services.base import audit_operation
from gym_kernel.uow import Operation, UnitOfWork, UnitOfWorkCoordinator

logger = get_logger("services.cascade_executor")

_CASCADE_ACTIONS = {
    EntityKind.CONTRACT: AuditAction.CASCADE_CONTRACT,
    EntityKind.CLIENT: AuditAction.CASCADE_CLIENT,
    EntityKind.PLAN: AuditAction.CASCADE_PLAN,
}


def _counting(op: Operation, bump: Callable[[], None]) -> Operation:
    """Wrap ``op`` so ``bump`` runs when the step reports a change."""

    def run(uow: UnitOfWork):
        result = op.fn(uow)
        if result:
            bump()
        return result

    return Operation(op.name, run, op.entity_type, op.entity_id)


class CascadeRollbackExecutor:
    """Dependency-ordered removal of everything that hangs off a root."""

    def __init__(self, coordinator: UnitOfWorkCoordinator, actor_id: UUID | None = None):
        self._coordinator = coordinator
        self._actor_id = actor_id or SYSTEM_ACTOR_ID

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def cascade_from_contract(
        self,
        contract_id: UUID,
        reason: str = "",
        actor_id: UUID | None = None,
    ) -> RollbackReport:
        """
        Cancel a contract and remove its progress entries.

        Already-canceled contracts are not touched again; a missing contract
        yields an empty successful report.
        """
        actor = actor_id or self._actor_id
        report = self._new_report(EntityKind.CONTRACT, contract_id, reason)
        with self._coordinator.read() as uow:
            contract = uow.contracts.get_by_id(contract_id)
            if contract is None:
                logger.info("cascade_root_missing", extra={"root_type": "contract", "root_id": str(contract_id)})
                return report
            operations = self.contract_operations(uow, contract, reason, actor, report)
        operations.append(self._audit(EntityKind.CONTRACT, contract_id, actor, report))
        return self._execute(operations, report, "cascade_from_contract")

    def cascade_from_client(
        self,
        client_id: UUID,
        reason: str = "",
        force: bool = False,
        actor_id: UUID | None = None,
    ) -> RollbackReport:
        """
        Remove a client and everything that references it.

        Raises:
            CascadeBlockedError: the client has plan links or active
                contracts and ``force`` is False.
        """
        actor = actor_id or self._actor_id
        report = self._new_report(EntityKind.CLIENT, client_id, reason)
        with self._coordinator.read() as uow:
            if uow.clients.get_by_id(client_id) is None:
                logger.info("cascade_root_missing", extra={"root_type": "client", "root_id": str(client_id)})
                return report
            dependents = {
                "plan associations": uow.associations.count_by(client_id=client_id),
                "active contracts": len(uow.contracts.find_active_by_client(client_id)),
            }
            if any(dependents.values()) and not force:
                raise CascadeBlockedError("Client", client_id, dependents)
            operations = self._walk_operations(uow, EntityKind.CLIENT, client_id, reason, report)
        operations.append(self._audit(EntityKind.CLIENT, client_id, actor, report))
        return self._execute(operations, report, "cascade_from_client")

    def cascade_from_plan(
        self,
        plan_id: UUID,
        reason: str = "",
        force: bool = False,
        actor_id: UUID | None = None,
    ) -> RollbackReport:
        """Remove a plan and everything that references it."""
        actor = actor_id or self._actor_id
        report = self._new_report(EntityKind.PLAN, plan_id, reason)
        with self._coordinator.read() as uow:
            if uow.plans.get_by_id(plan_id) is None:
                logger.info("cascade_root_missing", extra={"root_type": "plan", "root_id": str(plan_id)})
                return report
            dependents = {
                "client associations": uow.associations.count_by(plan_id=plan_id),
                "active contracts": len(uow.contracts.find_active_by_plan(plan_id)),
            }
            if any(dependents.values()) and not force:
                raise CascadeBlockedError("Plan", plan_id, dependents)
            operations = self._walk_operations(uow, EntityKind.PLAN, plan_id, reason, report)
        operations.append(self._audit(EntityKind.PLAN, plan_id, actor, report))
        return self._execute(operations, report, "cascade_from_plan")

    # ------------------------------------------------------------------
    # Composable pieces
    # ------------------------------------------------------------------

    def contract_operations(
        self,
        uow: UnitOfWork,
        contract: Contract,
        reason: str,
        actor_id: UUID,
        report: RollbackReport,
        *,
        unlink: bool = True,
    ) -> list[Operation]:
        """
        Steps cancelling one contract, for use inside a larger unit.

        Discovery reads go through ``uow``; the returned steps update
        ``report`` as they run.  An already canceled contract leaves the
        pair link alone; any link present now was made after it.
        """
        steps = walk(EntityKind.CONTRACT, contract.id, uow.find_children)
        operations = [self._step_operation(step, reason, report) for step in steps]
        if unlink and contract.status != ContractStatus.CANCELED.value:

            def bump() -> None:
                report.associations_removed += 1

            operations.append(
                _counting(
                    unlink_operation(
                        contract.client_id,
                        contract.plan_id,
                        only_if_unused=True,
                        name=f"unlink_association:{contract.id}",
                    ),
                    bump,
                )
            )
        return operations

    def association_removal_operations(
        self,
        uow: UnitOfWork,
        parent_kind: EntityKind,
        parent_id: UUID,
        report: RollbackReport,
    ) -> list[Operation]:
        """Steps removing every link of a client or plan."""
        via = "client_id" if parent_kind is EntityKind.CLIENT else "plan_id"
        return [
            self._step_operation(CascadeStep(EntityKind.ASSOCIATION, link_id, CascadeAction.UNLINK), "", report)
            for link_id in uow.find_children(EntityKind.ASSOCIATION, via, parent_id)
        ]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _new_report(self, kind: EntityKind, root_id: UUID, reason: str) -> RollbackReport:
        return RollbackReport(
            root_type=kind.value,
            root_id=root_id,
            reason=reason,
            mode=self._coordinator.mode.value,
        )

    def _walk_operations(
        self,
        uow: UnitOfWork,
        kind: EntityKind,
        root_id: UUID,
        reason: str,
        report: RollbackReport,
    ) -> list[Operation]:
        steps = walk(kind, root_id, uow.find_children)
        return [self._step_operation(step, reason, report) for step in steps]

    def _step_operation(self, step: CascadeStep, reason: str, report: RollbackReport) -> Operation:
        entity_id = step.entity_id

        if step.kind is EntityKind.PROGRESS_ENTRY:

            def run(uow: UnitOfWork) -> bool:
                if uow.progress.delete(entity_id):
                    report.eliminated += 1
                    return True
                return False

        elif step.kind is EntityKind.CONTRACT and step.action is CascadeAction.CANCEL:

            def run(uow: UnitOfWork) -> bool:
                contract = uow.contracts.get_by_id(entity_id)
                if contract is None or contract.status == ContractStatus.CANCELED.value:
                    return False
                uow.contracts.cancel(entity_id, reason, uow.clock.now())
                report.contracts_canceled += 1
                return True

        elif step.kind is EntityKind.CONTRACT:

            def run(uow: UnitOfWork) -> bool:
                contract = uow.contracts.get_by_id(entity_id)
                if contract is None:
                    return False
                was_active = contract.status == ContractStatus.ACTIVE.value
                if was_active:
                    uow.contracts.cancel(entity_id, reason, uow.clock.now())
                uow.contracts.delete(entity_id)
                report.contracts_canceled += int(was_active)
                report.contracts_deleted += 1
                return True

        elif step.kind is EntityKind.ASSOCIATION:

            def run(uow: UnitOfWork) -> bool:
                if uow.associations.delete(entity_id):
                    report.associations_removed += 1
                    return True
                return False

        else:
            repository_kind = step.kind

            def run(uow: UnitOfWork) -> bool:
                if uow.repository_for(repository_kind).delete(entity_id):
                    report.root_removed = True
                    return True
                return False

        return Operation(step.name, run, step.kind.value, entity_id)

    def _audit(
        self,
        kind: EntityKind,
        root_id: UUID,
        actor_id: UUID,
        report: RollbackReport,
    ) -> Operation:
        return audit_operation(
            kind.value,
            root_id,
            _CASCADE_ACTIONS[kind],
            actor_id,
            lambda: {"reason": report.reason, "mode": report.mode, **report.counts()},
        )

    def _execute(self, operations: list[Operation], report: RollbackReport, label: str) -> RollbackReport:
        with LogContext.bind(root_id=str(report.root_id)):
            outcome = self._coordinator.run_atomic(operations, label=label, best_effort=True)
            report.completed_steps = list(outcome.completed_steps)
            report.errors = [
                CascadeItemError(
                    step=error.step,
                    entity_type=error.entity_type,
                    entity_id=error.entity_id,
                    error_code=error.code,
                    message=str(error.error),
                    cause=error.error,
                )
                for error in outcome.errors
            ]
            log = logger.info if report.success else logger.warning
            log(
                "cascade_completed",
                extra={
                    "root_type": report.root_type,
                    "mode": report.mode,
                    "success": report.success,
                    "failed_items": len(report.errors),
                    **report.counts(),
                },
            )
        return report
