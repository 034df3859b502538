"""
Module: gym_kernel.models.financial_record
Responsibility: ORM persistence for financial movements (inflows/outflows).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    Audit permanence -- financial records are never cascade-deleted.
    client_id and contract_id are plain reference columns (no foreign key)
    so the row outlives the client and contract it was recorded for.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from gym_kernel.db.base import TrackedBase, UUIDString


class RecordType(str, Enum):
    INFLOW = "inflow"
    OUTFLOW = "outflow"


class FinancialRecord(TrackedBase):
    """A single money movement in the gym's ledger."""

    __tablename__ = "financial_records"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_financial_amount_positive"),
        Index("idx_financial_client", "client_id"),
        Index("idx_financial_contract", "contract_id"),
        Index("idx_financial_type", "record_type"),
    )

    record_type: Mapped[RecordType] = mapped_column(String(10), nullable=False)

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    category: Mapped[str] = mapped_column(String(50), nullable=False, default="general")

    occurred_on: Mapped[date] = mapped_column(Date, nullable=False)

    client_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    contract_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    def __repr__(self) -> str:
        return f"<FinancialRecord {self.record_type} {self.amount} on {self.occurred_on}>"
