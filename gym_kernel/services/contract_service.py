"""
ContractService -- contract lifecycle across client, plan and ledger.

Responsibility:
    Creates, updates, cancels, renews and expires contracts.  Each write touches
    several entities (contract, client↔plan link, financial record, audit)
    and is submitted to the coordinator as one unit of work.

Architecture position:
    Kernel > Services.  Uses AssociationManager for link steps and the
    compatibility predicate, CascadeRollbackExecutor for cancellation.

Invariants enforced:
    - At most one active contract per (client, plan): checked here before
      the write and backstopped by the partial unique index; a concurrent
      insert rejected by that index is reported as a duplicate too.
    - Creation is all-or-nothing under the atomic strategy: contract, link
      and payment record are committed together or not at all.
    - Renewal marks the prior contract ``renewed`` before inserting the
      successor, so the pair never has two active rows.

Failure modes:
    - InvalidFieldError for price, duration or period problems.
    - ClientNotFoundError / PlanNotFoundError / ContractNotFoundError.
    - InvalidStateError, DuplicateActiveContractError, IncompatibleLevelError.
    - AtomicFailureError / PartialFailureError from the coordinator.
    All of these are returned as ``ServiceResult.fail``.

Audit relevance:
    CONTRACT_CREATED, CONTRACT_UPDATED, CONTRACT_RENEWED and CONTRACT_EXPIRED
    events; the cancellation cascade writes CASCADE_CONTRACT.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.exc import IntegrityError

from gym_kernel.domain.dates import add_months
from gym_kernel.domain.dtos import ContractInfo, ServiceResult
from gym_kernel.domain.identifiers import parse_id
from gym_kernel.exceptions import (
    DuplicateActiveContractError,
    GymKernelError,
    IncompatibleLevelError,
    InvalidFieldError,
    InvalidStateError,
    UnitOfWorkError,
)
from gym_kernel.logging_config import get_logger
from gym_kernel.models.audit_event import AuditAction
from gym_kernel.models.contract import Contract, ContractStatus
from gym_kernel.models.financial_record import FinancialRecord, RecordType
from gym_kernel.services.association_manager import AssociationManager, link_operation
from gym_kernel.services.base import (
    BaseService,
    audit_operation,
    enum_value,
    require_client,
    require_contract,
    require_plan,
)
from gym_kernel.services.cascade_executor import CascadeRollbackExecutor
from gym_kernel.services.mappers import contract_to_info
from gym_kernel.uow import Operation, UnitOfWork, UnitOfWorkCoordinator

logger = get_logger("services.contract")

PAYMENT_CATEGORY = "contract"


def _validate_price(price: Any) -> Decimal:
    try:
        amount = Decimal(str(price))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidFieldError("price", f"not a number: {price!r}") from exc
    if not amount.is_finite() or amount <= 0:
        raise InvalidFieldError("price", "must be greater than zero")
    return amount


def _validate_duration(duration_months: int) -> None:
    if not isinstance(duration_months, int) or duration_months < 1:
        raise InvalidFieldError("duration_months", "must be a positive whole number of months")


def _validate_period(start: date, end: date, today: date) -> None:
    if start >= end:
        raise InvalidFieldError("end_date", "must be after start_date")
    if end <= today:
        raise InvalidFieldError("end_date", "must be in the future")


class ContractService(BaseService):
    """Contract lifecycle operations."""

    def __init__(
        self,
        coordinator: UnitOfWorkCoordinator,
        association_manager: AssociationManager,
        cascade_executor: CascadeRollbackExecutor,
        actor_id: UUID | None = None,
    ):
        super().__init__(coordinator, actor_id)
        self._associations = association_manager
        self._cascade = cascade_executor

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_contract(
        self,
        client_id: UUID | str,
        plan_id: UUID | str,
        price: Decimal | int | str,
        duration_months: int,
        start_date: date | None = None,
        end_date: date | None = None,
        conditions: str = "",
        register_payment: bool = False,
        actor_id: UUID | None = None,
    ) -> ServiceResult:
        """
        Create a contract, link the pair if needed and optionally book the
        payment, as one unit of work.

        Raises:
            InvalidIdentifierError: malformed client or plan id.
        """
        client_uuid = parse_id(client_id, "client_id")
        plan_uuid = parse_id(plan_id, "plan_id")
        actor = self._actor(actor_id)

        try:
            amount = _validate_price(price)
            _validate_duration(duration_months)
            today = self.clock.today()
            start = start_date or today
            end = end_date or add_months(start, duration_months)
            _validate_period(start, end, today)

            with self._coordinator.read() as uow:
                client = require_client(uow, client_uuid)
                plan = require_plan(uow, plan_uuid)
                if not client.is_active:
                    raise InvalidStateError("Client", client_uuid, "inactive", "contract")
                if not plan.is_active:
                    raise InvalidStateError("Plan", plan_uuid, enum_value(plan.status), "contract")
                existing = uow.contracts.find_active_by_client_and_plan(client_uuid, plan_uuid)
                if existing is not None:
                    raise DuplicateActiveContractError(client_uuid, plan_uuid, existing.id)
                needs_link = not uow.associations.is_linked(client_uuid, plan_uuid)
                if needs_link and not self._associations.is_compatible(client, plan):
                    raise IncompatibleLevelError(enum_value(client.level), enum_value(plan.level))
                plan_name = plan.name

            contract_id = uuid4()
            operations = [
                self._insert_contract_operation(
                    Contract(
                        id=contract_id,
                        client_id=client_uuid,
                        plan_id=plan_uuid,
                        price=amount,
                        duration_months=duration_months,
                        conditions=conditions,
                        start_date=start,
                        end_date=end,
                        status=ContractStatus.ACTIVE.value,
                    )
                )
            ]
            if needs_link:
                operations.append(link_operation(client_uuid, plan_uuid, name="link_association"))
            if register_payment:
                operations.append(
                    self._payment_operation(
                        client_uuid, contract_id, amount, f"Contract payment - {plan_name}", start
                    )
                )
            operations.append(
                audit_operation(
                    "contract",
                    contract_id,
                    AuditAction.CONTRACT_CREATED,
                    actor,
                    {
                        "client_id": client_uuid,
                        "plan_id": plan_uuid,
                        "price": amount,
                        "start_date": start,
                        "end_date": end,
                        "association_created": needs_link,
                        "payment_registered": register_payment,
                    },
                )
            )
            try:
                outcome = self._coordinator.run_atomic(operations, label="create_contract")
            except UnitOfWorkError as exc:
                existing_id = self._concurrent_duplicate(exc, client_uuid, plan_uuid)
                if existing_id is None:
                    raise
                raise DuplicateActiveContractError(client_uuid, plan_uuid, existing_id) from exc
        except GymKernelError as exc:
            return self._rejected("create contract", exc)

        logger.info(
            "contract_created",
            extra={
                "contract_id": str(contract_id),
                "client_id": str(client_uuid),
                "plan_id": str(plan_uuid),
            },
        )
        return ServiceResult.ok(
            "Contract created",
            contract_id=contract_id,
            association_created=needs_link,
            financial_record_id=outcome.result("register_payment"),
        )

    def cancel_contract(
        self,
        contract_id: UUID | str,
        reason: str = "",
        actor_id: UUID | None = None,
    ) -> ServiceResult:
        """
        Cancel an active (or finished) contract through the contract cascade.

        Canceled and renewed contracts are rejected with InvalidStateError.
        """
        contract_uuid = parse_id(contract_id, "contract_id")
        try:
            with self._coordinator.read() as uow:
                contract = require_contract(uow, contract_uuid)
                if contract.status in (ContractStatus.CANCELED.value, ContractStatus.RENEWED.value):
                    raise InvalidStateError("Contract", contract_uuid, enum_value(contract.status), "cancel")
            report = self._cascade.cascade_from_contract(contract_uuid, reason, self._actor(actor_id))
        except GymKernelError as exc:
            return self._rejected("cancel contract", exc)
        return self._from_report("cancel contract", "cascade_from_contract", report, "Contract canceled")

    def renew_contract(
        self,
        contract_id: UUID | str,
        price: Decimal | int | str,
        duration_months: int,
        start_date: date | None = None,
        end_date: date | None = None,
        conditions: str | None = None,
        actor_id: UUID | None = None,
    ) -> ServiceResult:
        """
        Replace an active or finished contract with a successor.

        The successor starts when the prior contract ends (or today, if that
        is already past) unless ``start_date`` is given, and carries
        ``previous_contract_id``.  No cascade runs: progress entries stay
        attached to the prior contract.
        """
        contract_uuid = parse_id(contract_id, "contract_id")
        actor = self._actor(actor_id)
        try:
            amount = _validate_price(price)
            _validate_duration(duration_months)
            today = self.clock.today()

            with self._coordinator.read() as uow:
                previous = require_contract(uow, contract_uuid)
                if previous.status not in (ContractStatus.ACTIVE.value, ContractStatus.FINISHED.value):
                    raise InvalidStateError("Contract", contract_uuid, enum_value(previous.status), "renew")
                client_uuid, plan_uuid = previous.client_id, previous.plan_id
                client = require_client(uow, client_uuid)
                plan = require_plan(uow, plan_uuid)
                if not plan.is_active:
                    raise InvalidStateError("Plan", plan_uuid, enum_value(plan.status), "renew contract on")
                other = uow.contracts.find_active_by_client_and_plan(
                    client_uuid, plan_uuid, exclude_id=contract_uuid
                )
                if other is not None:
                    raise DuplicateActiveContractError(client_uuid, plan_uuid, other.id)
                needs_link = not uow.associations.is_linked(client_uuid, plan_uuid)
                if needs_link and not self._associations.is_compatible(client, plan):
                    raise IncompatibleLevelError(enum_value(client.level), enum_value(plan.level))
                start = start_date or max(previous.end_date, today)
                new_conditions = previous.conditions if conditions is None else conditions

            end = end_date or add_months(start, duration_months)
            _validate_period(start, end, today)

            successor_id = uuid4()
            operations = [
                Operation(
                    "mark_renewed",
                    lambda uow: uow.contracts.mark_renewed(contract_uuid, uow.clock.now()),
                    "contract",
                    contract_uuid,
                ),
                self._insert_contract_operation(
                    Contract(
                        id=successor_id,
                        client_id=client_uuid,
                        plan_id=plan_uuid,
                        price=amount,
                        duration_months=duration_months,
                        conditions=new_conditions,
                        start_date=start,
                        end_date=end,
                        status=ContractStatus.ACTIVE.value,
                        previous_contract_id=contract_uuid,
                    ),
                    name="create_successor",
                ),
            ]
            if needs_link:
                operations.append(link_operation(client_uuid, plan_uuid, name="link_association"))
            operations.append(
                audit_operation(
                    "contract",
                    successor_id,
                    AuditAction.CONTRACT_RENEWED,
                    actor,
                    {"previous_contract_id": contract_uuid, "price": amount, "end_date": end},
                )
            )
            self._coordinator.run_atomic(operations, label="renew_contract")
        except GymKernelError as exc:
            return self._rejected("renew contract", exc)

        logger.info(
            "contract_renewed",
            extra={"contract_id": str(successor_id), "previous_contract_id": str(contract_uuid)},
        )
        return ServiceResult.ok(
            "Contract renewed",
            contract_id=successor_id,
            previous_contract_id=contract_uuid,
        )

    def update_contract(
        self,
        contract_id: UUID | str,
        price: Decimal | int | str | None = None,
        duration_months: int | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        conditions: str | None = None,
        actor_id: UUID | None = None,
    ) -> ServiceResult:
        """
        Change terms of an active or finished contract in place.

        ``None`` leaves a field as it is.  A new duration without an end
        date moves the end date to match.  The resulting period must still
        end after it starts.  Status is never changed here.
        """
        contract_uuid = parse_id(contract_id, "contract_id")
        actor = self._actor(actor_id)
        try:
            changes: dict[str, Any] = {}
            if price is not None:
                changes["price"] = _validate_price(price)
            if duration_months is not None:
                _validate_duration(duration_months)
                changes["duration_months"] = duration_months
            if conditions is not None:
                changes["conditions"] = conditions

            with self._coordinator.read() as uow:
                contract = require_contract(uow, contract_uuid)
                if contract.status in (ContractStatus.CANCELED.value, ContractStatus.RENEWED.value):
                    raise InvalidStateError("Contract", contract_uuid, enum_value(contract.status), "update")
                start = start_date or contract.start_date
                if end_date is not None:
                    end = end_date
                elif duration_months is not None:
                    end = add_months(start, duration_months)
                else:
                    end = contract.end_date

            if start >= end:
                raise InvalidFieldError("end_date", "must be after start_date")
            if start_date is not None:
                changes["start_date"] = start
            if end_date is not None or duration_months is not None:
                changes["end_date"] = end
            if not changes:
                raise InvalidFieldError("changes", "no field to update")

            self._coordinator.run_atomic(
                [
                    Operation(
                        "update_contract",
                        lambda uow: uow.contracts.update(contract_uuid, **changes),
                        "contract",
                        contract_uuid,
                    ),
                    audit_operation(
                        "contract", contract_uuid, AuditAction.CONTRACT_UPDATED, actor, {"changes": changes}
                    ),
                ],
                label="update_contract",
            )
        except GymKernelError as exc:
            return self._rejected("update contract", exc)

        logger.info(
            "contract_updated",
            extra={"contract_id": str(contract_uuid), "fields": sorted(changes)},
        )
        return ServiceResult.ok("Contract updated", contract_id=contract_uuid, updated_fields=sorted(changes))

    def expire_contracts(self, as_of: date | None = None, actor_id: UUID | None = None) -> ServiceResult:
        """Mark every active contract whose end date has passed as finished."""
        cutoff = as_of or self.clock.today()
        actor = self._actor(actor_id)
        try:
            with self._coordinator.read() as uow:
                expired = [contract.id for contract in uow.contracts.find_expired(cutoff)]

            operations: list[Operation] = []
            for expired_id in expired:
                operations.append(
                    Operation(
                        f"finish_contract:{expired_id}",
                        lambda uow, cid=expired_id: uow.contracts.mark_finished(cid),
                        "contract",
                        expired_id,
                    )
                )
                operations.append(
                    audit_operation(
                        "contract", expired_id, AuditAction.CONTRACT_EXPIRED, actor, {"as_of": cutoff}
                    )
                )
            outcome = self._coordinator.run_atomic(operations, label="expire_contracts", best_effort=True)
        except GymKernelError as exc:
            return self._rejected("expire contracts", exc)

        finished = [
            step.split(":", 1)[1] for step in outcome.completed_steps if step.startswith("finish_contract:")
        ]
        if not outcome.success:
            first = outcome.errors[0]
            return ServiceResult.fail(
                f"Could not expire {len(outcome.errors)} contract(s)",
                first.error,
                finished=len(finished),
                contract_ids=finished,
            )
        return ServiceResult.ok("Contracts expired", finished=len(finished), contract_ids=finished)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_contract(self, contract_id: UUID | str) -> ServiceResult:
        contract_uuid = parse_id(contract_id, "contract_id")
        try:
            with self._coordinator.read() as uow:
                info = contract_to_info(require_contract(uow, contract_uuid))
        except GymKernelError as exc:
            return self._rejected("get contract", exc)
        return ServiceResult.ok("Contract found", contract=info)

    def list_contracts_by_client(
        self,
        client_id: UUID | str,
        status: ContractStatus | None = None,
    ) -> list[ContractInfo]:
        client_uuid = parse_id(client_id, "client_id")
        with self._coordinator.read() as uow:
            contracts = uow.contracts.find_by_client(client_uuid)
            return [
                contract_to_info(c)
                for c in contracts
                if status is None or c.status == ContractStatus(status).value
            ]

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _concurrent_duplicate(
        self,
        exc: UnitOfWorkError,
        client_id: UUID,
        plan_id: UUID,
    ) -> UUID | None:
        """
        Id of the active contract that beat ours to the pair, when ``exc`` is
        the partial unique index rejecting the contract insert.
        """
        if getattr(exc, "failed_step", None) != "create_contract":
            return None
        if not isinstance(getattr(exc, "cause", None), IntegrityError):
            return None
        with self._coordinator.read() as uow:
            for contract in uow.contracts.find_active_by_client(client_id):
                if contract.plan_id == plan_id:
                    return contract.id
        return None

    @staticmethod
    def _insert_contract_operation(contract: Contract, name: str = "create_contract") -> Operation:
        return Operation(
            name,
            lambda uow: uow.contracts.create(contract),
            "contract",
            contract.id,
        )

    def _payment_operation(
        self,
        client_id: UUID,
        contract_id: UUID,
        amount: Decimal,
        description: str,
        occurred_on: date,
    ) -> Operation:
        def record(uow: UnitOfWork) -> UUID:
            return uow.finance.create(
                FinancialRecord(
                    record_type=RecordType.INFLOW.value,
                    amount=amount,
                    description=description,
                    category=PAYMENT_CATEGORY,
                    occurred_on=occurred_on,
                    client_id=client_id,
                    contract_id=contract_id,
                )
            )

        return Operation("register_payment", record, "financial_record")
