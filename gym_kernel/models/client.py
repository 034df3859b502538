"""
Module: gym_kernel.models.client
Responsibility: ORM persistence for gym clients.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - email is unique (uq_client_email).
    - A client row can only be deleted once every dependent row (progress
      entries, contracts, plan associations) has been removed.  The foreign
      keys on those tables make the store reject anything else.

Audit relevance:
    Client deletion is a cascade root; see services/cascade_executor.py.
"""

from enum import Enum

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from gym_kernel.db.base import TrackedBase


class FitnessLevel(str, Enum):
    """Training level shared by clients and plans.

    Contract: ordered beginner < intermediate < advanced.
    """

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class Client(TrackedBase):
    """
    A gym member.

    Guarantees:
        - email is globally unique.
        - level defaults to BEGINNER.

    Non-goals:
        - Associated plans are NOT stored on the row; they live in
          client_plan_associations.
    """

    __tablename__ = "clients"

    __table_args__ = (
        UniqueConstraint("email", name="uq_client_email"),
        Index("idx_client_active", "is_active"),
    )

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)

    last_name: Mapped[str] = mapped_column(String(100), nullable=False)

    email: Mapped[str] = mapped_column(String(255), nullable=False)

    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)

    level: Mapped[FitnessLevel] = mapped_column(
        String(20),
        nullable=False,
        default=FitnessLevel.BEGINNER,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Client {self.id}: {self.full_name}>"
