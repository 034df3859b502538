"""
Persistence for contracts.

Status is stored as its string value; finders compare against
``ContractStatus.X.value`` so the same query runs on every dialect.
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import select

from gym_kernel.models.contract import Contract, ContractStatus
from gym_kernel.repositories.base import BaseRepository

_ACTIVE = ContractStatus.ACTIVE.value


class ContractRepository(BaseRepository[Contract]):
    model = Contract

    def find_active_by_client_and_plan(
        self,
        client_id: UUID,
        plan_id: UUID,
        exclude_id: UUID | None = None,
    ) -> Contract | None:
        """
        The active contract for the pair, if any.

        At most one row can match: the partial unique index
        ``uq_contract_active_pair`` guarantees it.
        """
        stmt = select(Contract).where(
            Contract.client_id == client_id,
            Contract.plan_id == plan_id,
            Contract.status == _ACTIVE,
        )
        if exclude_id is not None:
            stmt = stmt.where(Contract.id != exclude_id)
        return self.session.execute(stmt).scalar_one_or_none()

    def find_by_client(self, client_id: UUID) -> list[Contract]:
        return self.find_by(client_id=client_id)

    def find_active_by_client(self, client_id: UUID) -> list[Contract]:
        return self.find_by(client_id=client_id, status=_ACTIVE)

    def find_by_plan(self, plan_id: UUID) -> list[Contract]:
        return self.find_by(plan_id=plan_id)

    def find_active_by_plan(self, plan_id: UUID) -> list[Contract]:
        return self.find_by(plan_id=plan_id, status=_ACTIVE)

    def find_all_active(self) -> list[Contract]:
        return self.find_by(status=_ACTIVE)

    def find_expired(self, as_of: date) -> list[Contract]:
        """Active contracts whose end date is before ``as_of``."""
        stmt = (
            select(Contract)
            .where(Contract.status == _ACTIVE, Contract.end_date < as_of)
            .order_by(Contract.end_date, Contract.id)
        )
        return list(self.session.execute(stmt).scalars())

    def cancel(self, contract_id: UUID, reason: str, at: datetime) -> bool:
        return self.update(
            contract_id,
            status=ContractStatus.CANCELED.value,
            cancellation_reason=reason or None,
            canceled_at=at,
        )

    def mark_renewed(self, contract_id: UUID, at: datetime) -> bool:
        return self.update(contract_id, status=ContractStatus.RENEWED.value, renewed_at=at)

    def mark_finished(self, contract_id: UUID) -> bool:
        return self.update(contract_id, status=ContractStatus.FINISHED.value)
