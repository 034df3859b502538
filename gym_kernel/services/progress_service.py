"""
ProgressService -- physical-progress entries under a contract.

An entry may only be recorded for an active client, against an active
contract that belongs to that client.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID, uuid4

from gym_kernel.domain.dtos import ProgressEntryInfo, ServiceResult
from gym_kernel.domain.identifiers import parse_id
from gym_kernel.exceptions import (
    ContractOwnershipError,
    GymKernelError,
    InvalidFieldError,
    InvalidStateError,
    ProgressEntryNotFoundError,
)
from gym_kernel.logging_config import get_logger
from gym_kernel.models.progress_entry import ProgressEntry
from gym_kernel.services.base import BaseService, enum_value, require_client, require_contract
from gym_kernel.services.mappers import progress_to_info
from gym_kernel.uow import Operation

logger = get_logger("services.progress")


def _optional_decimal(field: str, value: Any, upper: Decimal | None = None) -> Decimal | None:
    if value is None:
        return None
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidFieldError(field, f"not a number: {value!r}") from exc
    if not number.is_finite() or number <= 0:
        raise InvalidFieldError(field, "must be greater than zero")
    if upper is not None and number > upper:
        raise InvalidFieldError(field, f"must not exceed {upper}")
    return number


class ProgressService(BaseService):
    def record_progress(
        self,
        client_id: UUID | str,
        contract_id: UUID | str,
        entry_date: date | None = None,
        weight_kg: Decimal | float | str | None = None,
        body_fat_pct: Decimal | float | str | None = None,
        measurements: dict[str, Any] | None = None,
        comments: str = "",
    ) -> ServiceResult:
        client_uuid = parse_id(client_id, "client_id")
        contract_uuid = parse_id(contract_id, "contract_id")
        try:
            today = self.clock.today()
            when = entry_date or today
            if when > today:
                raise InvalidFieldError("entry_date", "must not be in the future")
            weight = _optional_decimal("weight_kg", weight_kg)
            body_fat = _optional_decimal("body_fat_pct", body_fat_pct, Decimal("100"))

            with self._coordinator.read() as uow:
                client = require_client(uow, client_uuid)
                if not client.is_active:
                    raise InvalidStateError("Client", client_uuid, "inactive", "record progress for")
                contract = require_contract(uow, contract_uuid)
                if contract.client_id != client_uuid:
                    raise ContractOwnershipError(contract_uuid, client_uuid)
                if not contract.is_active:
                    raise InvalidStateError(
                        "Contract", contract_uuid, enum_value(contract.status), "record progress on"
                    )

            entry = ProgressEntry(
                id=uuid4(),
                client_id=client_uuid,
                contract_id=contract_uuid,
                entry_date=when,
                weight_kg=weight,
                body_fat_pct=body_fat,
                measurements=measurements,
                comments=comments,
            )
            self._coordinator.run_atomic(
                [Operation("create_progress_entry", lambda uow: uow.progress.create(entry), "progress_entry", entry.id)],
                label="record_progress",
            )
        except GymKernelError as exc:
            return self._rejected("record progress", exc)

        logger.info(
            "progress_recorded",
            extra={"entry_id": str(entry.id), "contract_id": str(contract_uuid)},
        )
        return ServiceResult.ok("Progress recorded", entry_id=entry.id)

    def update_progress_entry(
        self,
        entry_id: UUID | str,
        entry_date: date | None = None,
        weight_kg: Decimal | float | str | None = None,
        body_fat_pct: Decimal | float | str | None = None,
        measurements: dict[str, Any] | None = None,
        comments: str | None = None,
    ) -> ServiceResult:
        """Change the given fields of an entry; ``None`` leaves a field as it is."""
        entry_uuid = parse_id(entry_id, "entry_id")
        try:
            changes: dict[str, Any] = {}
            if entry_date is not None:
                if entry_date > self.clock.today():
                    raise InvalidFieldError("entry_date", "must not be in the future")
                changes["entry_date"] = entry_date
            if weight_kg is not None:
                changes["weight_kg"] = _optional_decimal("weight_kg", weight_kg)
            if body_fat_pct is not None:
                changes["body_fat_pct"] = _optional_decimal("body_fat_pct", body_fat_pct, Decimal("100"))
            if measurements is not None:
                changes["measurements"] = measurements
            if comments is not None:
                changes["comments"] = comments
            if not changes:
                raise InvalidFieldError("changes", "no field to update")

            with self._coordinator.read() as uow:
                if uow.progress.get_by_id(entry_uuid) is None:
                    raise ProgressEntryNotFoundError(entry_uuid)
            self._coordinator.run_atomic(
                [
                    Operation(
                        "update_progress_entry",
                        lambda uow: uow.progress.update(entry_uuid, **changes),
                        "progress_entry",
                        entry_uuid,
                    )
                ],
                label="update_progress_entry",
            )
        except GymKernelError as exc:
            return self._rejected("update progress entry", exc)

        logger.info(
            "progress_updated",
            extra={"entry_id": str(entry_uuid), "fields": sorted(changes)},
        )
        return ServiceResult.ok("Progress entry updated", entry_id=entry_uuid, updated_fields=sorted(changes))

    def delete_progress_entry(self, entry_id: UUID | str) -> ServiceResult:
        entry_uuid = parse_id(entry_id, "entry_id")
        try:
            with self._coordinator.read() as uow:
                if uow.progress.get_by_id(entry_uuid) is None:
                    raise ProgressEntryNotFoundError(entry_uuid)
            self._coordinator.run_atomic(
                [Operation("delete_progress_entry", lambda uow: uow.progress.delete(entry_uuid), "progress_entry", entry_uuid)],
                label="delete_progress_entry",
            )
        except GymKernelError as exc:
            return self._rejected("delete progress entry", exc)
        return ServiceResult.ok("Progress entry deleted", entry_id=entry_uuid)

    def list_by_contract(self, contract_id: UUID | str) -> list[ProgressEntryInfo]:
        contract_uuid = parse_id(contract_id, "contract_id")
        with self._coordinator.read() as uow:
            return [progress_to_info(e) for e in uow.progress.find_by_contract(contract_uuid)]

    def list_by_client(self, client_id: UUID | str) -> list[ProgressEntryInfo]:
        client_uuid = parse_id(client_id, "client_id")
        with self._coordinator.read() as uow:
            return [progress_to_info(e) for e in uow.progress.find_by_client(client_uuid)]
