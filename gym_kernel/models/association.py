"""
Module: gym_kernel.models.association
Responsibility: Join table linking clients and training plans.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    Symmetry -- a (client, plan) link is ONE row.  "client.plans contains p"
    and "plan.clients contains c" are both answered by the existence of that
    row, so the two sides cannot disagree.
    Uniqueness -- uq_association_pair rejects a second row for the same pair.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from gym_kernel.db.base import Base, UUIDString


class ClientPlanAssociation(Base):
    """One client↔plan link."""

    __tablename__ = "client_plan_associations"

    __table_args__ = (
        UniqueConstraint("client_id", "plan_id", name="uq_association_pair"),
        Index("idx_association_client", "client_id"),
        Index("idx_association_plan", "plan_id"),
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

    associated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<ClientPlanAssociation client={self.client_id} plan={self.plan_id}>"
