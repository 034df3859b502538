"""
ReconciliationService -- compensating pass for sequential-mode drift.

Responsibility:
    A sequential (non-atomic) run that stops midway can leave rows that
    disagree with each other.  ``reconcile()`` finds the two shapes such a
    stop can produce and repairs them:

    - an active contract whose client↔plan link is missing (contract
      creation stopped after the insert): the link is created;
    - progress entries attached to a canceled contract (cancellation
      cascade interrupted): the entries are deleted.

Invariants enforced:
    - Idempotent: a second run on a consistent store does nothing and
      writes no audit event.

Failure modes:
    - AtomicFailureError under the atomic strategy propagates to the caller.
    - Under the sequential strategy each repair is its own step; failures
      are collected in ``ReconciliationReport.errors``.
"""

from __future__ import annotations

from uuid import UUID

from gym_kernel.domain.dtos import CascadeItemError, ReconciliationReport
from gym_kernel.logging_config import get_logger
from gym_kernel.models.audit_event import AuditAction
from gym_kernel.services.association_manager import link_operation
from gym_kernel.services.base import BaseService, audit_operation
from gym_kernel.uow import Operation, UnitOfWork

logger = get_logger("services.reconciliation")


class ReconciliationService(BaseService):
    def reconcile(self, actor_id: UUID | None = None) -> ReconciliationReport:
        actor = self._actor(actor_id)
        report = ReconciliationReport()

        with self._coordinator.read() as uow:
            missing: list[tuple[UUID, UUID]] = []
            for contract in uow.contracts.find_all_active():
                pair = (contract.client_id, contract.plan_id)
                if pair not in missing and not uow.associations.is_linked(*pair):
                    missing.append(pair)
            orphans = [entry.id for entry in uow.progress.find_attached_to_canceled()]

        if not missing and not orphans:
            logger.info("reconciliation_clean")
            return report

        operations: list[Operation] = []
        for client_id, plan_id in missing:
            operations.append(self._repair_link(client_id, plan_id, report))
        for entry_id in orphans:
            operations.append(self._remove_orphan(entry_id, report))
        operations.append(
            audit_operation(
                "reconciliation",
                actor,
                AuditAction.RECONCILED,
                actor,
                lambda: {
                    "associations_created": [[str(c), str(p)] for c, p in report.associations_created],
                    "orphan_entries_deleted": [str(e) for e in report.orphan_entries_deleted],
                },
            )
        )

        outcome = self._coordinator.run_atomic(operations, label="reconcile", best_effort=True)
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
        logger.info(
            "reconciliation_completed",
            extra={
                "associations_created": len(report.associations_created),
                "orphan_entries_deleted": len(report.orphan_entries_deleted),
                "failed_items": len(report.errors),
            },
        )
        return report

    @staticmethod
    def _repair_link(client_id: UUID, plan_id: UUID, report: ReconciliationReport) -> Operation:
        link = link_operation(client_id, plan_id)

        def run(uow: UnitOfWork) -> UUID | None:
            if uow.associations.is_linked(client_id, plan_id):
                return None
            link_id = link.fn(uow)
            report.associations_created.append((client_id, plan_id))
            return link_id

        return Operation(link.name, run, link.entity_type)

    @staticmethod
    def _remove_orphan(entry_id: UUID, report: ReconciliationReport) -> Operation:
        def run(uow: UnitOfWork) -> bool:
            if uow.progress.delete(entry_id):
                report.orphan_entries_deleted.append(entry_id)
                return True
            return False

        return Operation(f"delete_progress_entry:{entry_id}", run, "progress_entry", entry_id)
