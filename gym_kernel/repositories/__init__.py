"""Entity repositories.  Flush-only; the unit of work owns commits."""

from gym_kernel.repositories.association_repository import AssociationRepository
from gym_kernel.repositories.base import BaseRepository
from gym_kernel.repositories.client_repository import ClientRepository
from gym_kernel.repositories.contract_repository import ContractRepository
from gym_kernel.repositories.financial_repository import FinancialRecordRepository
from gym_kernel.repositories.plan_repository import PlanRepository
from gym_kernel.repositories.progress_repository import ProgressEntryRepository

__all__ = [
    "AssociationRepository",
    "BaseRepository",
    "ClientRepository",
    "ContractRepository",
    "FinancialRecordRepository",
    "PlanRepository",
    "ProgressEntryRepository",
]
