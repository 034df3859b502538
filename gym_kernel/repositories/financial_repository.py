"""Persistence for financial movements.  Rows here are never cascade-deleted."""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from gym_kernel.models.financial_record import FinancialRecord, RecordType
from gym_kernel.repositories.base import BaseRepository


class FinancialRecordRepository(BaseRepository[FinancialRecord]):
    model = FinancialRecord

    def find_by_client(self, client_id: UUID) -> list[FinancialRecord]:
        return self.find_by(client_id=client_id)

    def total(self, record_type: RecordType, client_id: UUID | None = None) -> Decimal:
        stmt = select(func.coalesce(func.sum(FinancialRecord.amount), 0)).where(
            FinancialRecord.record_type == record_type.value
        )
        if client_id is not None:
            stmt = stmt.where(FinancialRecord.client_id == client_id)
        return Decimal(str(self.session.execute(stmt).scalar_one()))
