"""Persistence for training plans."""

from gym_kernel.models.plan import PlanStatus, TrainingPlan
from gym_kernel.repositories.base import BaseRepository


class PlanRepository(BaseRepository[TrainingPlan]):
    model = TrainingPlan

    def list_active(self) -> list[TrainingPlan]:
        return self.find_by(status=PlanStatus.ACTIVE.value)
