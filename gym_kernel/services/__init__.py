"""Business services and the consistency components they build on."""

from gym_kernel.services.association_manager import AssociationManager
from gym_kernel.services.base import BaseService
from gym_kernel.services.cascade_executor import CascadeRollbackExecutor
from gym_kernel.services.client_service import ClientService
from gym_kernel.services.contract_service import ContractService
from gym_kernel.services.finance_service import FinanceService
from gym_kernel.services.plan_association_service import PlanAssociationService
from gym_kernel.services.plan_service import PlanService
from gym_kernel.services.progress_service import ProgressService
from gym_kernel.services.reconciliation_service import ReconciliationService

__all__ = [
    "AssociationManager",
    "BaseService",
    "CascadeRollbackExecutor",
    "ClientService",
    "ContractService",
    "FinanceService",
    "PlanAssociationService",
    "PlanService",
    "ProgressService",
    "ReconciliationService",
]
