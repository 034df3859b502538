"""
Persistence for client↔plan links.

One row per pair.  Both directions of the relationship are answered from
the same table, so there is no second side to keep in step.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, select

from gym_kernel.models.association import ClientPlanAssociation
from gym_kernel.models.client import Client
from gym_kernel.models.plan import TrainingPlan
from gym_kernel.repositories.base import BaseRepository


class AssociationRepository(BaseRepository[ClientPlanAssociation]):
    model = ClientPlanAssociation

    def _order_by(self) -> tuple:
        return (ClientPlanAssociation.associated_at, ClientPlanAssociation.id)

    def find_pair(self, client_id: UUID, plan_id: UUID) -> ClientPlanAssociation | None:
        return self.session.execute(
            select(ClientPlanAssociation).where(
                ClientPlanAssociation.client_id == client_id,
                ClientPlanAssociation.plan_id == plan_id,
            )
        ).scalar_one_or_none()

    def is_linked(self, client_id: UUID, plan_id: UUID) -> bool:
        return self.find_pair(client_id, plan_id) is not None

    def link(self, client_id: UUID, plan_id: UUID, at: datetime | None = None) -> UUID:
        """
        Insert the link row.  ``at`` defaults to the store's clock.

        Raises:
            IntegrityError: on flush if the pair is already linked.
        """
        link = ClientPlanAssociation(client_id=client_id, plan_id=plan_id)
        if at is not None:
            link.associated_at = at
        return self.create(link)

    def unlink(self, client_id: UUID, plan_id: UUID) -> bool:
        """Remove the link row.  Returns False when there was none."""
        result = self.session.execute(
            delete(ClientPlanAssociation).where(
                ClientPlanAssociation.client_id == client_id,
                ClientPlanAssociation.plan_id == plan_id,
            )
        )
        self.session.flush()
        return result.rowcount > 0

    def find_by_client(self, client_id: UUID) -> list[ClientPlanAssociation]:
        return self.find_by(client_id=client_id)

    def find_by_plan(self, plan_id: UUID) -> list[ClientPlanAssociation]:
        return self.find_by(plan_id=plan_id)

    def plans_for_client(self, client_id: UUID) -> list[TrainingPlan]:
        """Plans linked to the client, in the order they were linked."""
        stmt = (
            select(TrainingPlan)
            .join(ClientPlanAssociation, ClientPlanAssociation.plan_id == TrainingPlan.id)
            .where(ClientPlanAssociation.client_id == client_id)
            .order_by(ClientPlanAssociation.associated_at, ClientPlanAssociation.id)
        )
        return list(self.session.execute(stmt).scalars())

    def clients_for_plan(self, plan_id: UUID) -> list[Client]:
        stmt = (
            select(Client)
            .join(ClientPlanAssociation, ClientPlanAssociation.client_id == Client.id)
            .where(ClientPlanAssociation.plan_id == plan_id)
            .order_by(ClientPlanAssociation.associated_at, ClientPlanAssociation.id)
        )
        return list(self.session.execute(stmt).scalars())
