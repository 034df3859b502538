"""
Level compatibility between clients and training plans.

A client may take a plan at their own level or above: a beginner may take
any plan, an intermediate client intermediate or advanced plans, an advanced
client only advanced plans.  A missing or unknown client level counts as
beginner.
"""

from collections.abc import Callable
from enum import Enum

from gym_kernel.models.client import FitnessLevel

LEVEL_ORDER: tuple[FitnessLevel, ...] = (
    FitnessLevel.BEGINNER,
    FitnessLevel.INTERMEDIATE,
    FitnessLevel.ADVANCED,
)

CompatibilityCheck = Callable[[str | None, str], bool]


def level_rank(level: str | None) -> int:
    if not level:
        return 0
    raw = level.value if isinstance(level, Enum) else str(level)
    try:
        return LEVEL_ORDER.index(FitnessLevel(raw.lower()))
    except ValueError:
        return 0


def is_level_compatible(client_level: str | None, plan_level: str) -> bool:
    """Default compatibility predicate."""
    return level_rank(client_level) <= level_rank(plan_level)
