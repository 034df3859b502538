"""
Data transfer objects returned across the service boundary.

Services never hand ORM instances to callers: each read maps the row into
a frozen dataclass here, and each write returns a ``ServiceResult``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from gym_kernel.models.client import FitnessLevel
from gym_kernel.models.contract import ContractStatus
from gym_kernel.models.financial_record import RecordType
from gym_kernel.models.plan import PlanStatus


@dataclass(frozen=True)
class ClientInfo:
    id: UUID
    first_name: str
    last_name: str
    email: str
    phone: str | None
    level: FitnessLevel
    is_active: bool
    plan_ids: tuple[UUID, ...] = ()

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass(frozen=True)
class PlanInfo:
    id: UUID
    name: str
    level: FitnessLevel
    duration_weeks: int
    status: PlanStatus
    client_ids: tuple[UUID, ...] = ()


@dataclass(frozen=True)
class ClientPlanInfo:
    """A plan as seen from one client, with the pair's contract state."""

    plan: PlanInfo
    associated_at: datetime | None
    has_active_contract: bool


@dataclass(frozen=True)
class ContractInfo:
    id: UUID
    client_id: UUID
    plan_id: UUID
    price: Decimal
    duration_months: int
    conditions: str
    start_date: date
    end_date: date
    status: ContractStatus
    cancellation_reason: str | None = None
    canceled_at: datetime | None = None
    renewed_at: datetime | None = None
    previous_contract_id: UUID | None = None


@dataclass(frozen=True)
class ProgressEntryInfo:
    id: UUID
    client_id: UUID
    contract_id: UUID
    entry_date: date
    weight_kg: Decimal | None
    body_fat_pct: Decimal | None
    measurements: dict | None
    comments: str


@dataclass(frozen=True)
class FinancialRecordInfo:
    id: UUID
    record_type: RecordType
    amount: Decimal
    description: str
    category: str
    occurred_on: date
    client_id: UUID | None
    contract_id: UUID | None = None


@dataclass(frozen=True)
class Balance:
    inflow: Decimal
    outflow: Decimal

    @property
    def net(self) -> Decimal:
        return self.inflow - self.outflow


@dataclass(frozen=True)
class CascadeItemError:
    """One dependent that could not be processed during a fallback cascade."""

    step: str
    entity_type: str | None
    entity_id: UUID | None
    error_code: str
    message: str
    cause: BaseException | None = field(default=None, compare=False, repr=False)


@dataclass
class RollbackReport:
    """
    Outcome of one cascade.

    Counters are updated step by step as the cascade runs, so under the
    sequential strategy the report reflects exactly what was applied.
    ``eliminated`` counts deleted progress entries.
    """

    root_type: str
    root_id: UUID
    reason: str = ""
    mode: str = ""
    eliminated: int = 0
    contracts_canceled: int = 0
    contracts_deleted: int = 0
    associations_removed: int = 0
    root_removed: bool = False
    completed_steps: list[str] = field(default_factory=list)
    errors: list[CascadeItemError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def affected_rows(self) -> int:
        return (
            self.eliminated
            + self.contracts_canceled
            + self.contracts_deleted
            + self.associations_removed
            + int(self.root_removed)
        )

    def counts(self) -> dict[str, int | bool]:
        return {
            "eliminated": self.eliminated,
            "contracts_canceled": self.contracts_canceled,
            "contracts_deleted": self.contracts_deleted,
            "associations_removed": self.associations_removed,
            "root_removed": self.root_removed,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "root_type": self.root_type,
            "root_id": str(self.root_id),
            "reason": self.reason,
            "mode": self.mode,
            **self.counts(),
            "success": self.success,
            "errors": [
                {
                    "step": e.step,
                    "entity_type": e.entity_type,
                    "entity_id": str(e.entity_id) if e.entity_id else None,
                    "error_code": e.error_code,
                    "message": e.message,
                }
                for e in self.errors
            ],
        }


@dataclass
class ReconciliationReport:
    associations_created: list[tuple[UUID, UUID]] = field(default_factory=list)
    orphan_entries_deleted: list[UUID] = field(default_factory=list)
    errors: list[CascadeItemError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def repaired(self) -> int:
        return len(self.associations_created) + len(self.orphan_entries_deleted)


@dataclass(frozen=True)
class ServiceResult:
    """
    What every business service write returns.

    ``error`` keeps the typed exception that caused a failure so callers
    can branch on its class or ``code`` instead of the message.
    """

    success: bool
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    error: BaseException | None = None

    @property
    def error_code(self) -> str | None:
        if self.error is None:
            return None
        return getattr(self.error, "code", type(self.error).__name__)

    @classmethod
    def ok(cls, message: str, **data: Any) -> ServiceResult:
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, message: str, error: BaseException, **data: Any) -> ServiceResult:
        return cls(success=False, message=message, data=data, error=error)
