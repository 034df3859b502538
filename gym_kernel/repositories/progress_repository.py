"""Persistence for progress entries."""

from uuid import UUID

from sqlalchemy import select

from gym_kernel.models.contract import Contract, ContractStatus
from gym_kernel.models.progress_entry import ProgressEntry
from gym_kernel.repositories.base import BaseRepository


class ProgressEntryRepository(BaseRepository[ProgressEntry]):
    model = ProgressEntry

    def _order_by(self) -> tuple:
        return (ProgressEntry.entry_date, ProgressEntry.created_at, ProgressEntry.id)

    def find_by_contract(self, contract_id: UUID) -> list[ProgressEntry]:
        return self.find_by(contract_id=contract_id)

    def find_by_client(self, client_id: UUID) -> list[ProgressEntry]:
        return self.find_by(client_id=client_id)

    def find_attached_to_canceled(self) -> list[ProgressEntry]:
        """Entries whose contract is canceled: leftovers of an interrupted cascade."""
        stmt = (
            select(ProgressEntry)
            .join(Contract, Contract.id == ProgressEntry.contract_id)
            .where(Contract.status == ContractStatus.CANCELED.value)
            .order_by(*self._order_by())
        )
        return list(self.session.execute(stmt).scalars())
