"""
PlanAssociationService -- caller surface for client↔plan links.

Thin layer over AssociationManager: parses ids, maps typed errors to
``ServiceResult`` and offers the link-centric read views.
"""

from __future__ import annotations

from uuid import UUID

from gym_kernel.domain.dtos import ClientInfo, ClientPlanInfo, PlanInfo, ServiceResult
from gym_kernel.domain.identifiers import parse_id
from gym_kernel.exceptions import GymKernelError
from gym_kernel.services.association_manager import AssociationManager, has_active_contract
from gym_kernel.services.base import BaseService
from gym_kernel.services.mappers import client_to_info, plan_to_info
from gym_kernel.uow import UnitOfWorkCoordinator


class PlanAssociationService(BaseService):
    def __init__(
        self,
        coordinator: UnitOfWorkCoordinator,
        association_manager: AssociationManager,
        actor_id: UUID | None = None,
    ):
        super().__init__(coordinator, actor_id)
        self._associations = association_manager

    def associate_plan(
        self,
        client_id: UUID | str,
        plan_id: UUID | str,
        actor_id: UUID | None = None,
    ) -> ServiceResult:
        client_uuid = parse_id(client_id, "client_id")
        plan_uuid = parse_id(plan_id, "plan_id")
        try:
            self._associations.associate(client_uuid, plan_uuid, actor_id=self._actor(actor_id))
        except GymKernelError as exc:
            return self._rejected("associate plan", exc)
        return ServiceResult.ok("Plan associated", client_id=client_uuid, plan_id=plan_uuid)

    def disassociate_plan(
        self,
        client_id: UUID | str,
        plan_id: UUID | str,
        force: bool = False,
        reason: str = "",
        actor_id: UUID | None = None,
    ) -> ServiceResult:
        """
        Unlink a plan from a client.

        Without ``force`` an active contract for the pair blocks the unlink
        (ActiveContractExistsError); with ``force`` it is canceled first.
        """
        client_uuid = parse_id(client_id, "client_id")
        plan_uuid = parse_id(plan_id, "plan_id")
        try:
            outcome = self._associations.disassociate(
                client_uuid,
                plan_uuid,
                cascade_contracts=force,
                reason=reason,
                actor_id=self._actor(actor_id),
            )
        except GymKernelError as exc:
            return self._rejected("disassociate plan", exc)
        canceled = [
            step.split(":", 1)[1]
            for step in outcome.completed_steps
            if step.startswith("cancel_contract:") and outcome.result(step)
        ]
        return ServiceResult.ok(
            "Plan disassociated",
            client_id=client_uuid,
            plan_id=plan_uuid,
            canceled_contracts=canceled,
        )

    def list_client_plans(self, client_id: UUID | str) -> list[ClientPlanInfo]:
        client_uuid = parse_id(client_id, "client_id")
        with self._coordinator.read() as uow:
            links = {link.plan_id: link for link in uow.associations.find_by_client(client_uuid)}
            return [
                ClientPlanInfo(
                    plan=plan_to_info(plan),
                    associated_at=links[plan.id].associated_at if plan.id in links else None,
                    has_active_contract=has_active_contract(uow, client_uuid, plan.id),
                )
                for plan in uow.associations.plans_for_client(client_uuid)
            ]

    def list_plan_clients(self, plan_id: UUID | str) -> list[ClientInfo]:
        plan_uuid = parse_id(plan_id, "plan_id")
        with self._coordinator.read() as uow:
            return [client_to_info(c) for c in uow.associations.clients_for_plan(plan_uuid)]

    def list_available_plans(self, client_id: UUID | str) -> list[PlanInfo]:
        """Active plans the client is not linked to and whose level fits."""
        client_uuid = parse_id(client_id, "client_id")
        with self._coordinator.read() as uow:
            client = uow.clients.get_by_id(client_uuid)
            if client is None:
                return []
            linked = {plan.id for plan in uow.associations.plans_for_client(client_uuid)}
            return [
                plan_to_info(plan)
                for plan in uow.plans.list_active()
                if plan.id not in linked and self._associations.is_compatible(client, plan)
            ]
