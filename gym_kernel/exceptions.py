"""
Typed exception hierarchy for the gym kernel.

Every error carries a class-level ``code`` (machine-readable) and keeps its
context as attributes, so callers catch by type and report structured data
instead of parsing messages.

    GymKernelError (base)
    |
    +-- ValidationError
    |   +-- InvalidIdentifierError
    |   +-- InvalidFieldError
    |
    +-- NotFoundError
    |   +-- ClientNotFoundError
    |   +-- PlanNotFoundError
    |   +-- ContractNotFoundError
    |   +-- ProgressEntryNotFoundError
    |
    +-- ConsistencyViolationError
    |   +-- DuplicateActiveContractError
    |   +-- IncompatibleLevelError
    |   +-- AlreadyAssociatedError
    |   +-- NotAssociatedError
    |   +-- ActiveContractExistsError
    |   +-- InvalidStateError
    |   +-- ContractOwnershipError
    |
    +-- UnitOfWorkError
    |   +-- AtomicFailureError
    |   +-- PartialFailureError
    |   +-- TransactionsUnavailableError
    |
    +-- CascadeBlockedError

Category        | Code                        | When Raised
----------------|-----------------------------|------------------------------------------
Validation      | INVALID_IDENTIFIER          | Id is not a well-formed UUID
                | INVALID_FIELD               | Price, dates or durations out of range
----------------|-----------------------------|------------------------------------------
Not found       | CLIENT_NOT_FOUND            | Client id does not exist
                | PLAN_NOT_FOUND              | Plan id does not exist
                | CONTRACT_NOT_FOUND          | Contract id does not exist
                | PROGRESS_ENTRY_NOT_FOUND    | Progress entry id does not exist
----------------|-----------------------------|------------------------------------------
Consistency     | DUPLICATE_ACTIVE_CONTRACT   | Pair already has an active contract
                | INCOMPATIBLE_LEVEL          | Plan level rejected for the client
                | ALREADY_ASSOCIATED          | Client and plan already linked
                | NOT_ASSOCIATED              | Client and plan are not linked
                | ACTIVE_CONTRACT_EXISTS      | Unlink blocked by an active contract
                | INVALID_STATE               | Entity lifecycle forbids the action
                | CONTRACT_OWNERSHIP          | Contract belongs to another client
----------------|-----------------------------|------------------------------------------
Unit of work    | ATOMIC_FAILURE              | Atomic scope aborted, nothing written
                | PARTIAL_FAILURE             | Fallback run stopped midway
                | TRANSACTIONS_UNAVAILABLE    | Atomic execution required, unsupported
----------------|-----------------------------|------------------------------------------
Cascade         | CASCADE_BLOCKED             | Dependents exist and force not given

Retry policy: ``AtomicFailureError.retryable`` is True (all writes were
discarded).  ``PartialFailureError.retryable`` is False: some steps were
already applied and replaying them may duplicate work.
"""

from __future__ import annotations

from typing import Any


class GymKernelError(Exception):
    """
    Base exception for all gym kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "GYM_KERNEL_ERROR"


# Validation


class ValidationError(GymKernelError):
    """Caller-supplied input is malformed."""

    code: str = "VALIDATION_ERROR"


class InvalidIdentifierError(ValidationError):
    """Identifier is not a well-formed UUID."""

    code: str = "INVALID_IDENTIFIER"

    def __init__(self, field: str, value: Any):
        self.field = field
        self.value = str(value)
        super().__init__(f"Invalid identifier for {field}: {value!r}")


class InvalidFieldError(ValidationError):
    """Field value outside its allowed range."""

    code: str = "INVALID_FIELD"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


# Not found


class NotFoundError(GymKernelError):
    """Referenced entity does not exist."""

    code: str = "NOT_FOUND"
    entity_type: str = "entity"

    def __init__(self, entity_id: Any):
        self.entity_id = str(entity_id)
        super().__init__(f"{self.entity_type} not found: {entity_id}")


class ClientNotFoundError(NotFoundError):
    code: str = "CLIENT_NOT_FOUND"
    entity_type: str = "Client"


class PlanNotFoundError(NotFoundError):
    code: str = "PLAN_NOT_FOUND"
    entity_type: str = "Plan"


class ContractNotFoundError(NotFoundError):
    code: str = "CONTRACT_NOT_FOUND"
    entity_type: str = "Contract"


class ProgressEntryNotFoundError(NotFoundError):
    code: str = "PROGRESS_ENTRY_NOT_FOUND"
    entity_type: str = "ProgressEntry"


# Consistency


class ConsistencyViolationError(GymKernelError):
    """A cross-entity business invariant would be broken."""

    code: str = "CONSISTENCY_VIOLATION"


class DuplicateActiveContractError(ConsistencyViolationError):
    """At most one active contract may exist per (client, plan) pair."""

    code: str = "DUPLICATE_ACTIVE_CONTRACT"

    def __init__(self, client_id: Any, plan_id: Any, existing_contract_id: Any):
        self.client_id = str(client_id)
        self.plan_id = str(plan_id)
        self.existing_contract_id = str(existing_contract_id)
        super().__init__(
            f"An active contract already exists for client {client_id} "
            f"and plan {plan_id}: {existing_contract_id}"
        )


class IncompatibleLevelError(ConsistencyViolationError):
    """Plan level is not compatible with the client's level."""

    code: str = "INCOMPATIBLE_LEVEL"

    def __init__(self, client_level: str, plan_level: str):
        self.client_level = client_level
        self.plan_level = plan_level
        super().__init__(
            f"Plan level '{plan_level}' is not compatible with "
            f"client level '{client_level}'"
        )


class AlreadyAssociatedError(ConsistencyViolationError):
    code: str = "ALREADY_ASSOCIATED"

    def __init__(self, client_id: Any, plan_id: Any):
        self.client_id = str(client_id)
        self.plan_id = str(plan_id)
        super().__init__(f"Client {client_id} is already associated with plan {plan_id}")


class NotAssociatedError(ConsistencyViolationError):
    code: str = "NOT_ASSOCIATED"

    def __init__(self, client_id: Any, plan_id: Any):
        self.client_id = str(client_id)
        self.plan_id = str(plan_id)
        super().__init__(f"Client {client_id} is not associated with plan {plan_id}")


class ActiveContractExistsError(ConsistencyViolationError):
    """Unlinking a plan is blocked by an active contract for the pair."""

    code: str = "ACTIVE_CONTRACT_EXISTS"

    def __init__(self, client_id: Any, plan_id: Any, contract_id: Any):
        self.client_id = str(client_id)
        self.plan_id = str(plan_id)
        self.contract_id = str(contract_id)
        super().__init__(
            f"Client {client_id} has active contract {contract_id} with plan "
            f"{plan_id}; cancel it first or force the operation"
        )


class InvalidStateError(ConsistencyViolationError):
    """Entity lifecycle state does not allow the requested action."""

    code: str = "INVALID_STATE"

    def __init__(self, entity_type: str, entity_id: Any, state: str, action: str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.state = state
        self.action = action
        super().__init__(
            f"Cannot {action} {entity_type} {entity_id} in state '{state}'"
        )


class ContractOwnershipError(ConsistencyViolationError):
    """Contract does not belong to the given client."""

    code: str = "CONTRACT_OWNERSHIP"

    def __init__(self, contract_id: Any, client_id: Any):
        self.contract_id = str(contract_id)
        self.client_id = str(client_id)
        super().__init__(
            f"Contract {contract_id} does not belong to client {client_id}"
        )


# Unit of work


class UnitOfWorkError(GymKernelError):
    """Base for failures raised by the unit-of-work coordinator."""

    code: str = "UNIT_OF_WORK_ERROR"
    retryable: bool = False


class AtomicFailureError(UnitOfWorkError):
    """
    The atomic scope aborted and all writes were discarded.

    ``cause`` is the exception that triggered the abort, unmodified.
    """

    code: str = "ATOMIC_FAILURE"
    retryable: bool = True

    def __init__(self, label: str, failed_step: str, cause: BaseException):
        self.label = label
        self.failed_step = failed_step
        self.cause = cause
        super().__init__(
            f"Atomic unit '{label}' aborted at step '{failed_step}': {cause}"
        )


class PartialFailureError(UnitOfWorkError):
    """
    A sequential (fallback) run failed after some steps were applied.

    Not safe to retry blindly: ``completed_steps`` are already committed.
    """

    code: str = "PARTIAL_FAILURE"
    retryable: bool = False

    def __init__(
        self,
        label: str,
        completed_steps: list[str],
        failed_step: str,
        cause: BaseException,
    ):
        self.label = label
        self.completed_steps = list(completed_steps)
        self.failed_step = failed_step
        self.cause = cause
        super().__init__(
            f"Sequential unit '{label}' failed at step '{failed_step}' after "
            f"{len(completed_steps)} applied step(s): {cause}"
        )

    @property
    def is_clean(self) -> bool:
        """True when the failure happened before any step was applied."""
        return not self.completed_steps


class TransactionsUnavailableError(UnitOfWorkError):
    """Atomic execution is required but the store cannot provide it."""

    code: str = "TRANSACTIONS_UNAVAILABLE"

    def __init__(self, dialect: str, reason: str):
        self.dialect = dialect
        self.reason = reason
        super().__init__(
            f"Atomic execution required but unavailable on {dialect}: {reason}"
        )


# Cascade


class CascadeBlockedError(GymKernelError):
    """Dependents exist and the caller did not pass force=True."""

    code: str = "CASCADE_BLOCKED"

    def __init__(self, entity_type: str, entity_id: Any, dependents: dict[str, int]):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.dependents = dict(dependents)
        summary = ", ".join(f"{count} {kind}" for kind, count in dependents.items())
        super().__init__(
            f"Cannot remove {entity_type} {entity_id}: it still has {summary}. "
            "Use force=True to cascade."
        )
