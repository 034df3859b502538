"""Operation and outcome types exchanged with the coordinator."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from uuid import UUID

if TYPE_CHECKING:
    from gym_kernel.uow.unit_of_work import UnitOfWork


@dataclass(frozen=True)
class Operation:
    """
    One named step of a unit of work.

    ``entity_type``/``entity_id`` are optional labels naming the row the
    step touches; cascades use them to report per-item failures.
    """

    name: str
    fn: Callable[[UnitOfWork], Any]
    entity_type: str | None = None
    entity_id: UUID | None = None


@dataclass(frozen=True)
class StepError:
    """A step that failed under best-effort sequential execution."""

    step: str
    error: BaseException
    entity_type: str | None = None
    entity_id: UUID | None = None

    @property
    def code(self) -> str:
        return getattr(self.error, "code", type(self.error).__name__)


@dataclass
class UnitOfWorkOutcome:
    label: str
    mode: str
    results: dict[str, Any] = field(default_factory=dict)
    completed_steps: list[str] = field(default_factory=list)
    errors: list[StepError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    def result(self, step: str) -> Any:
        return self.results.get(step)
