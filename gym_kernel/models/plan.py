"""
Module: gym_kernel.models.plan
Responsibility: ORM persistence for training plans.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Only ACTIVE plans accept new associations or contracts (service layer).
    - Status transitions: ACTIVE -> CANCELED | FINISHED.  Leaving ACTIVE
      unlinks clients (services/plan_service.py).
"""

from enum import Enum

from sqlalchemy import Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from gym_kernel.db.base import TrackedBase
from gym_kernel.models.client import FitnessLevel


class PlanStatus(str, Enum):
    """Training plan lifecycle status."""

    ACTIVE = "active"
    CANCELED = "canceled"
    FINISHED = "finished"


class TrainingPlan(TrackedBase):
    """
    A training programme clients can be associated with and contracted on.

    Non-goals:
        - Associated clients are NOT stored on the row; they live in
          client_plan_associations.
    """

    __tablename__ = "training_plans"

    __table_args__ = (
        Index("idx_plan_status", "status"),
        Index("idx_plan_level", "level"),
    )

    name: Mapped[str] = mapped_column(String(150), nullable=False)

    level: Mapped[FitnessLevel] = mapped_column(String(20), nullable=False)

    duration_weeks: Mapped[int] = mapped_column(Integer, nullable=False, default=4)

    status: Mapped[PlanStatus] = mapped_column(
        String(20),
        nullable=False,
        default=PlanStatus.ACTIVE,
    )

    @property
    def is_active(self) -> bool:
        return self.status == PlanStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<TrainingPlan {self.id}: {self.name} ({self.level}, {self.status})>"
