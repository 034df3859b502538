"""
Module: gym_kernel.models.progress_entry
Responsibility: ORM persistence for physical-progress tracking entries.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    The referenced contract belongs to the same client (service layer,
    services/progress_service.py).  Both foreign keys make the store refuse
    to delete a contract or client that still has entries.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, Date, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from gym_kernel.db.base import TrackedBase, UUIDString


class ProgressEntry(TrackedBase):
    """One dated measurement of a client under a contract."""

    __tablename__ = "progress_entries"

    __table_args__ = (
        Index("idx_progress_client", "client_id"),
        Index("idx_progress_contract", "contract_id"),
    )

    client_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("clients.id"),
        nullable=False,
    )

    contract_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("contracts.id"),
        nullable=False,
    )

    entry_date: Mapped[date] = mapped_column(Date, nullable=False)

    weight_kg: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)

    body_fat_pct: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)

    measurements: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    comments: Mapped[str] = mapped_column(String(1000), nullable=False, default="")

    def __repr__(self) -> str:
        return f"<ProgressEntry {self.id}: contract={self.contract_id} on {self.entry_date}>"
