"""Domain models for the gym kernel."""

from gym_kernel.models.association import ClientPlanAssociation
from gym_kernel.models.audit_event import AuditAction, AuditEvent
from gym_kernel.models.client import Client, FitnessLevel
from gym_kernel.models.contract import Contract, ContractStatus
from gym_kernel.models.financial_record import FinancialRecord, RecordType
from gym_kernel.models.plan import PlanStatus, TrainingPlan
from gym_kernel.models.progress_entry import ProgressEntry
from gym_kernel.models.sequence import SequenceCounter

__all__ = [
    "AuditAction",
    "AuditEvent",
    "Client",
    "ClientPlanAssociation",
    "Contract",
    "ContractStatus",
    "FinancialRecord",
    "FitnessLevel",
    "PlanStatus",
    "ProgressEntry",
    "RecordType",
    "SequenceCounter",
    "TrainingPlan",
]
