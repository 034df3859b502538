"""FinanceService -- inflow/outflow movements and balances."""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from uuid import UUID, uuid4

from gym_kernel.domain.dtos import Balance, FinancialRecordInfo, ServiceResult
from gym_kernel.domain.identifiers import parse_id
from gym_kernel.exceptions import GymKernelError, InvalidFieldError
from gym_kernel.models.financial_record import FinancialRecord, RecordType
from gym_kernel.services.base import BaseService, enum_value
from gym_kernel.services.mappers import record_to_info
from gym_kernel.uow import Operation


class FinanceService(BaseService):
    def record_movement(
        self,
        record_type: RecordType | str,
        amount: Decimal | int | str,
        description: str = "",
        category: str = "general",
        client_id: UUID | str | None = None,
        occurred_on: date | None = None,
        contract_id: UUID | str | None = None,
    ) -> ServiceResult:
        client_uuid = parse_id(client_id, "client_id") if client_id is not None else None
        contract_uuid = parse_id(contract_id, "contract_id") if contract_id is not None else None
        try:
            try:
                kind = RecordType(enum_value(record_type))
            except ValueError as exc:
                raise InvalidFieldError("record_type", f"unknown record type {record_type!r}") from exc
            try:
                value = Decimal(str(amount))
            except (InvalidOperation, ValueError) as exc:
                raise InvalidFieldError("amount", f"not a number: {amount!r}") from exc
            if not value.is_finite() or value <= 0:
                raise InvalidFieldError("amount", "must be greater than zero")

            record = FinancialRecord(
                id=uuid4(),
                record_type=kind.value,
                amount=value,
                description=description,
                category=category or "general",
                occurred_on=occurred_on or self.clock.today(),
                client_id=client_uuid,
                contract_id=contract_uuid,
            )
            self._coordinator.run_atomic(
                [Operation("record_movement", lambda uow: uow.finance.create(record), "financial_record", record.id)],
                label="record_movement",
            )
        except GymKernelError as exc:
            return self._rejected("record movement", exc)
        return ServiceResult.ok("Movement recorded", record_id=record.id)

    def balance(self, client_id: UUID | str | None = None) -> Balance:
        client_uuid = parse_id(client_id, "client_id") if client_id is not None else None
        with self._coordinator.read() as uow:
            return Balance(
                inflow=uow.finance.total(RecordType.INFLOW, client_uuid),
                outflow=uow.finance.total(RecordType.OUTFLOW, client_uuid),
            )

    def list_by_client(self, client_id: UUID | str) -> list[FinancialRecordInfo]:
        client_uuid = parse_id(client_id, "client_id")
        with self._coordinator.read() as uow:
            return [record_to_info(r) for r in uow.finance.find_by_client(client_uuid)]
