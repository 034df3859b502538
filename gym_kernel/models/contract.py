"""
Module: gym_kernel.models.contract
Responsibility: ORM persistence for client/plan contracts.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    At most one ACTIVE contract per (client_id, plan_id).  Checked by the
    services before writing, and backstopped by the partial unique index
    uq_contract_active_pair so a racing writer gets an IntegrityError
    instead of a second active row.

Lifecycle:
    ACTIVE -> CANCELED   (cancellation cascade)
    ACTIVE -> RENEWED    (renewal; successor row points back via
                          previous_contract_id)
    ACTIVE -> FINISHED   (expiry)
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from gym_kernel.db.base import TrackedBase, UUIDString


class ContractStatus(str, Enum):
    """Contract lifecycle status."""

    ACTIVE = "active"
    CANCELED = "canceled"
    FINISHED = "finished"
    RENEWED = "renewed"


class Contract(TrackedBase):
    """A priced, dated agreement between one client and one plan."""

    __tablename__ = "contracts"

    __table_args__ = (
        Index("idx_contract_client", "client_id"),
        Index("idx_contract_plan", "plan_id"),
        Index("idx_contract_status", "status"),
        Index(
            "uq_contract_active_pair",
            "client_id",
            "plan_id",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
    )

    client_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("clients.id"),
        nullable=False,
    )

    plan_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("training_plans.id"),
        nullable=False,
    )

    price: Mapped[Decimal] = mapped_column(nullable=False)

    duration_months: Mapped[int] = mapped_column(Integer, nullable=False)

    conditions: Mapped[str] = mapped_column(String(1000), nullable=False, default="")

    start_date: Mapped[date] = mapped_column(Date, nullable=False)

    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[ContractStatus] = mapped_column(
        String(20),
        nullable=False,
        default=ContractStatus.ACTIVE,
    )

    cancellation_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    canceled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    renewed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Renewal chain; plain reference so deleting history never trips a FK
    previous_contract_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    @property
    def is_active(self) -> bool:
        return self.status == ContractStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<Contract {self.id}: client={self.client_id} plan={self.plan_id} ({self.status})>"
