"""
AssociationManager -- the client↔plan link and the active-contract rule.

Responsibility:
    Creates and removes client↔plan links, enforcing level compatibility
    and the one-active-contract-per-pair rule.  Exposes its write steps as
    ``Operation``s so contract creation, cascades and reconciliation can
    compose them into their own units of work.

Architecture position:
    Kernel > Services.  Depends on the coordinator; delegates contract
    cancellation to CascadeRollbackExecutor when a forced unlink meets an
    active contract.

Invariants enforced:
    - Symmetry: the link is a single join row, so "client lists plan" and
      "plan lists client" can never disagree.
    - A link with an active contract is only removed together with that
      contract's cancellation, in the same unit of work.

Failure modes:
    - ClientNotFoundError / PlanNotFoundError.
    - InvalidStateError: plan is not active.
    - IncompatibleLevelError: the compatibility predicate rejects the pair.
    - AlreadyAssociatedError / NotAssociatedError.
    - ActiveContractExistsError: unlink without ``cascade_contracts``.
    - AtomicFailureError / PartialFailureError from the coordinator.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from gym_kernel.domain.dtos import RollbackReport
from gym_kernel.domain.identifiers import SYSTEM_ACTOR_ID
from gym_kernel.domain.levels import CompatibilityCheck, is_level_compatible
from gym_kernel.exceptions import (
    ActiveContractExistsError,
    AlreadyAssociatedError,
    IncompatibleLevelError,
    InvalidStateError,
    NotAssociatedError,
)
from gym_kernel.logging_config import get_logger
from gym_kernel.models.audit_event import AuditAction
from gym_kernel.models.client import Client
from gym_kernel.models.plan import TrainingPlan
from gym_kernel.services.base import audit_operation, enum_value, require_client, require_plan
from gym_kernel.uow import Operation, UnitOfWork, UnitOfWorkCoordinator, UnitOfWorkOutcome

if TYPE_CHECKING:
    from gym_kernel.services.cascade_executor import CascadeRollbackExecutor

logger = get_logger("services.association_manager")


def link_operation(client_id: UUID, plan_id: UUID, name: str | None = None) -> Operation:
    """Step inserting the link row."""
    return Operation(
        name=name or f"link_association:{client_id}:{plan_id}",
        fn=lambda uow: uow.associations.link(client_id, plan_id, uow.clock.now()),
        entity_type="association",
    )


def unlink_operation(
    client_id: UUID,
    plan_id: UUID,
    *,
    only_if_unused: bool = False,
    name: str | None = None,
) -> Operation:
    """
    Step removing the link row.

    With ``only_if_unused`` the row stays when the pair still has an active
    contract at the time the step runs.  The step returns True when a row
    was removed.
    """

    def unlink(uow: UnitOfWork) -> bool:
        if only_if_unused and has_active_contract(uow, client_id, plan_id):
            return False
        return uow.associations.unlink(client_id, plan_id)

    return Operation(
        name=name or f"unlink_association:{client_id}:{plan_id}",
        fn=unlink,
        entity_type="association",
    )


def has_active_contract(uow: UnitOfWork, client_id: UUID, plan_id: UUID) -> bool:
    return uow.contracts.find_active_by_client_and_plan(client_id, plan_id) is not None


class AssociationManager:
    """Maintains client↔plan links through the unit-of-work coordinator."""

    def __init__(
        self,
        coordinator: UnitOfWorkCoordinator,
        cascade_executor: CascadeRollbackExecutor,
        compatibility_check: CompatibilityCheck = is_level_compatible,
        actor_id: UUID | None = None,
    ):
        self._coordinator = coordinator
        self._cascade = cascade_executor
        self._compatibility_check = compatibility_check
        self._actor_id = actor_id or SYSTEM_ACTOR_ID

    def is_compatible(
        self,
        client: Client,
        plan: TrainingPlan,
        compatibility_check: CompatibilityCheck | None = None,
    ) -> bool:
        check = compatibility_check or self._compatibility_check
        return check(client.level, plan.level)

    def association_operations(
        self,
        client_id: UUID,
        plan_id: UUID,
        actor_id: UUID | None = None,
    ) -> list[Operation]:
        """Link step followed by its audit step."""
        return [
            link_operation(client_id, plan_id),
            audit_operation(
                "client",
                client_id,
                AuditAction.PLAN_ASSOCIATED,
                actor_id or self._actor_id,
                {"client_id": client_id, "plan_id": plan_id},
            ),
        ]

    def associate(
        self,
        client_id: UUID,
        plan_id: UUID,
        compatibility_check: CompatibilityCheck | None = None,
        actor_id: UUID | None = None,
    ) -> UnitOfWorkOutcome:
        """
        Link a client to a plan.

        Preconditions:
            Client and plan exist, the plan is active, the pair passes the
            compatibility predicate and is not linked yet.
        """
        with self._coordinator.read() as uow:
            client = require_client(uow, client_id)
            plan = require_plan(uow, plan_id)
            if not plan.is_active:
                raise InvalidStateError("Plan", plan_id, enum_value(plan.status), "associate")
            if not self.is_compatible(client, plan, compatibility_check):
                raise IncompatibleLevelError(enum_value(client.level), enum_value(plan.level))
            if uow.associations.is_linked(client_id, plan_id):
                raise AlreadyAssociatedError(client_id, plan_id)

        outcome = self._coordinator.run_atomic(
            self.association_operations(client_id, plan_id, actor_id),
            label="associate_plan",
        )
        logger.info(
            "plan_associated",
            extra={"client_id": str(client_id), "plan_id": str(plan_id)},
        )
        return outcome

    def disassociate(
        self,
        client_id: UUID,
        plan_id: UUID,
        cascade_contracts: bool = False,
        reason: str = "",
        actor_id: UUID | None = None,
    ) -> UnitOfWorkOutcome:
        """
        Unlink a client from a plan.

        With ``cascade_contracts`` an active contract for the pair is
        canceled (its progress entries removed) in the same unit of work
        as the unlink.
        """
        actor = actor_id or self._actor_id
        report = RollbackReport(root_type="association", root_id=client_id, reason=reason)
        operations: list[Operation] = []

        with self._coordinator.read() as uow:
            require_client(uow, client_id)
            require_plan(uow, plan_id)
            if not uow.associations.is_linked(client_id, plan_id):
                raise NotAssociatedError(client_id, plan_id)
            active = uow.contracts.find_active_by_client_and_plan(client_id, plan_id)
            if active is not None:
                if not cascade_contracts:
                    raise ActiveContractExistsError(client_id, plan_id, active.id)
                operations.extend(
                    self._cascade.contract_operations(
                        uow,
                        active,
                        reason or "plan disassociated",
                        actor,
                        report,
                        unlink=False,
                    )
                )

        operations.append(unlink_operation(client_id, plan_id))
        operations.append(
            audit_operation(
                "client",
                client_id,
                AuditAction.PLAN_DISASSOCIATED,
                actor,
                lambda: {
                    "client_id": client_id,
                    "plan_id": plan_id,
                    "reason": reason,
                    "contracts_canceled": report.contracts_canceled,
                    "eliminated": report.eliminated,
                },
            )
        )
        outcome = self._coordinator.run_atomic(operations, label="disassociate_plan")
        logger.info(
            "plan_disassociated",
            extra={
                "client_id": str(client_id),
                "plan_id": str(plan_id),
                "contracts_canceled": report.contracts_canceled,
            },
        )
        return outcome
