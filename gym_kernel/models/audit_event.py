"""
Module: gym_kernel.models.audit_event
Responsibility: Append-only, hash-chained audit trail of business actions
    and cascades.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - seq is unique and monotonically increasing (allocated by
      audit/sequence.py, never max()+1).
    - hash = H(entity_type | entity_id | action | payload_hash | prev_hash).
    - entity_id is a plain reference column: audit rows outlive the
      entities they describe.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, BigInteger, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from gym_kernel.db.base import Base, UUIDString


class AuditAction(str, Enum):
    """Types of auditable actions."""

    CLIENT_CREATED = "client_created"
    CLIENT_UPDATED = "client_updated"
    PLAN_CREATED = "plan_created"
    PLAN_STATUS_CHANGED = "plan_status_changed"

    PLAN_ASSOCIATED = "plan_associated"
    PLAN_DISASSOCIATED = "plan_disassociated"

    CONTRACT_CREATED = "contract_created"
    CONTRACT_UPDATED = "contract_updated"
    CONTRACT_RENEWED = "contract_renewed"
    CONTRACT_EXPIRED = "contract_expired"

    CASCADE_CONTRACT = "cascade_contract"
    CASCADE_CLIENT = "cascade_client"
    CASCADE_PLAN = "cascade_plan"

    RECONCILED = "reconciled"


class AuditEvent(Base):
    """
    Audit event with hash chain for tamper evidence.

    Contract:
        Rows are append-only, never updated or deleted.
    """

    __tablename__ = "audit_events"

    __table_args__ = (
        Index("idx_audit_entity", "entity_type", "entity_id"),
        Index("idx_audit_action", "action"),
    )

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)

    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)

    entity_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    action: Mapped[AuditAction] = mapped_column(String(50), nullable=False)

    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)

    hash: Mapped[str] = mapped_column(String(64), nullable=False)

    def __repr__(self) -> str:
        return f"<AuditEvent {self.action} on {self.entity_type}:{self.entity_id}>"

    @property
    def is_genesis(self) -> bool:
        return self.prev_hash is None
