"""Pure domain helpers: clock, identifiers, levels, DTOs, dependency graph."""

from gym_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from gym_kernel.domain.dependency_graph import (
    CascadeAction,
    CascadeStep,
    EntityKind,
    walk,
)
from gym_kernel.domain.dtos import RollbackReport, ServiceResult
from gym_kernel.domain.identifiers import parse_id
from gym_kernel.domain.levels import is_level_compatible, level_rank

__all__ = [
    "CascadeAction",
    "CascadeStep",
    "Clock",
    "DeterministicClock",
    "EntityKind",
    "RollbackReport",
    "ServiceResult",
    "SystemClock",
    "is_level_compatible",
    "level_rank",
    "parse_id",
    "walk",
]
