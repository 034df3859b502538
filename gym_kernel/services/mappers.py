"""ORM row -> DTO conversions shared by the services."""

from gym_kernel.domain.dtos import (
    ClientInfo,
    ContractInfo,
    FinancialRecordInfo,
    PlanInfo,
    ProgressEntryInfo,
)
from gym_kernel.models.client import Client, FitnessLevel
from gym_kernel.models.contract import Contract, ContractStatus
from gym_kernel.models.financial_record import FinancialRecord, RecordType
from gym_kernel.models.plan import PlanStatus, TrainingPlan
from gym_kernel.models.progress_entry import ProgressEntry


def client_to_info(client: Client, plan_ids=()) -> ClientInfo:
    return ClientInfo(
        id=client.id,
        first_name=client.first_name,
        last_name=client.last_name,
        email=client.email,
        phone=client.phone,
        level=FitnessLevel(client.level),
        is_active=client.is_active,
        plan_ids=tuple(plan_ids),
    )


def plan_to_info(plan: TrainingPlan, client_ids=()) -> PlanInfo:
    return PlanInfo(
        id=plan.id,
        name=plan.name,
        level=FitnessLevel(plan.level),
        duration_weeks=plan.duration_weeks,
        status=PlanStatus(plan.status),
        client_ids=tuple(client_ids),
    )


def contract_to_info(contract: Contract) -> ContractInfo:
    return ContractInfo(
        id=contract.id,
        client_id=contract.client_id,
        plan_id=contract.plan_id,
        price=contract.price,
        duration_months=contract.duration_months,
        conditions=contract.conditions,
        start_date=contract.start_date,
        end_date=contract.end_date,
        status=ContractStatus(contract.status),
        cancellation_reason=contract.cancellation_reason,
        canceled_at=contract.canceled_at,
        renewed_at=contract.renewed_at,
        previous_contract_id=contract.previous_contract_id,
    )


def progress_to_info(entry: ProgressEntry) -> ProgressEntryInfo:
    return ProgressEntryInfo(
        id=entry.id,
        client_id=entry.client_id,
        contract_id=entry.contract_id,
        entry_date=entry.entry_date,
        weight_kg=entry.weight_kg,
        body_fat_pct=entry.body_fat_pct,
        measurements=entry.measurements,
        comments=entry.comments,
    )


def record_to_info(record: FinancialRecord) -> FinancialRecordInfo:
    return FinancialRecordInfo(
        id=record.id,
        record_type=RecordType(record.record_type),
        amount=record.amount,
        description=record.description,
        category=record.category,
        occurred_on=record.occurred_on,
        client_id=record.client_id,
        contract_id=record.contract_id,
    )
