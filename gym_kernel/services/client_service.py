"""
ClientService -- client registration, lookup, changes and removal.

Removal goes through the client cascade: without ``force`` a client that
still has plan links or active contracts is refused with
CascadeBlockedError; with ``force`` every dependent row is unwound first.
Financial records are kept (they reference the client by plain id).
"""

from __future__ import annotations

from typing import Any
from uuid import UUID, uuid4

from gym_kernel.domain.dtos import ServiceResult
from gym_kernel.domain.identifiers import parse_id
from gym_kernel.exceptions import GymKernelError, InvalidFieldError, InvalidStateError
from gym_kernel.logging_config import get_logger
from gym_kernel.models.audit_event import AuditAction
from gym_kernel.models.client import Client, FitnessLevel
from gym_kernel.services.base import BaseService, audit_operation, require_client
from gym_kernel.services.cascade_executor import CascadeRollbackExecutor
from gym_kernel.services.mappers import client_to_info
from gym_kernel.uow import Operation, UnitOfWorkCoordinator

logger = get_logger("services.client")


def parse_level(level: FitnessLevel | str | None) -> FitnessLevel:
    if level is None:
        return FitnessLevel.BEGINNER
    try:
        return FitnessLevel(level.value if isinstance(level, FitnessLevel) else str(level).lower())
    except ValueError as exc:
        raise InvalidFieldError("level", f"unknown level {level!r}") from exc


def _required_name(field: str, value: str | None) -> str:
    if not value or not value.strip():
        raise InvalidFieldError(field, "is required")
    return value.strip()


def _normalized_email(email: str | None) -> str:
    normalized = (email or "").strip().lower()
    if "@" not in normalized:
        raise InvalidFieldError("email", "is not a valid address")
    return normalized


class ClientService(BaseService):
    def __init__(
        self,
        coordinator: UnitOfWorkCoordinator,
        cascade_executor: CascadeRollbackExecutor,
        actor_id: UUID | None = None,
    ):
        super().__init__(coordinator, actor_id)
        self._cascade = cascade_executor

    def create_client(
        self,
        first_name: str,
        last_name: str,
        email: str,
        phone: str | None = None,
        level: FitnessLevel | str | None = None,
        actor_id: UUID | None = None,
    ) -> ServiceResult:
        actor = self._actor(actor_id)
        try:
            first_name = _required_name("first_name", first_name)
            last_name = _required_name("last_name", last_name)
            normalized_email = _normalized_email(email)
            fitness_level = parse_level(level)

            with self._coordinator.read() as uow:
                if uow.clients.find_by_email(normalized_email) is not None:
                    raise InvalidFieldError("email", "is already registered")

            client = Client(
                id=uuid4(),
                first_name=first_name,
                last_name=last_name,
                email=normalized_email,
                phone=phone,
                level=fitness_level.value,
                is_active=True,
            )
            self._coordinator.run_atomic(
                [
                    Operation("create_client", lambda uow: uow.clients.create(client), "client", client.id),
                    audit_operation(
                        "client",
                        client.id,
                        AuditAction.CLIENT_CREATED,
                        actor,
                        {"email": normalized_email, "level": fitness_level},
                    ),
                ],
                label="create_client",
            )
        except GymKernelError as exc:
            return self._rejected("create client", exc)

        logger.info("client_created", extra={"client_id": str(client.id)})
        return ServiceResult.ok("Client created", client_id=client.id)

    def update_client(
        self,
        client_id: UUID | str,
        first_name: str | None = None,
        last_name: str | None = None,
        email: str | None = None,
        phone: str | None = None,
        level: FitnessLevel | str | None = None,
        is_active: bool | None = None,
        actor_id: UUID | None = None,
    ) -> ServiceResult:
        """
        Change the given fields; ``None`` leaves a field as it is.

        A new email must not belong to another client, and a client with
        linked plans cannot be deactivated.  Existing links are not
        re-checked against a changed level.
        """
        client_uuid = parse_id(client_id, "client_id")
        actor = self._actor(actor_id)
        try:
            changes: dict[str, Any] = {}
            if first_name is not None:
                changes["first_name"] = _required_name("first_name", first_name)
            if last_name is not None:
                changes["last_name"] = _required_name("last_name", last_name)
            if email is not None:
                changes["email"] = _normalized_email(email)
            if phone is not None:
                changes["phone"] = phone.strip() or None
            if level is not None:
                changes["level"] = parse_level(level).value
            if is_active is not None:
                changes["is_active"] = bool(is_active)
            if not changes:
                raise InvalidFieldError("changes", "no field to update")

            with self._coordinator.read() as uow:
                client = require_client(uow, client_uuid)
                if "email" in changes and changes["email"] != client.email:
                    owner = uow.clients.find_by_email(changes["email"])
                    if owner is not None:
                        raise InvalidFieldError("email", "is already registered")
                if changes.get("is_active") is False and uow.associations.find_by_client(client_uuid):
                    raise InvalidStateError("Client", client_uuid, "linked to plans", "deactivate")

            self._coordinator.run_atomic(
                [
                    Operation(
                        "update_client",
                        lambda uow: uow.clients.update(client_uuid, **changes),
                        "client",
                        client_uuid,
                    ),
                    audit_operation(
                        "client", client_uuid, AuditAction.CLIENT_UPDATED, actor, {"changes": changes}
                    ),
                ],
                label="update_client",
            )
        except GymKernelError as exc:
            return self._rejected("update client", exc)

        logger.info(
            "client_updated",
            extra={"client_id": str(client_uuid), "fields": sorted(changes)},
        )
        return ServiceResult.ok("Client updated", client_id=client_uuid, updated_fields=sorted(changes))

    def get_client(self, client_id: UUID | str) -> ServiceResult:
        """Client details, including linked plan ids in link order."""
        client_uuid = parse_id(client_id, "client_id")
        try:
            with self._coordinator.read() as uow:
                client = require_client(uow, client_uuid)
                plan_ids = [plan.id for plan in uow.associations.plans_for_client(client_uuid)]
                info = client_to_info(client, plan_ids)
        except GymKernelError as exc:
            return self._rejected("get client", exc)
        return ServiceResult.ok("Client found", client=info)

    def delete_client(
        self,
        client_id: UUID | str,
        force: bool = False,
        reason: str = "",
        actor_id: UUID | None = None,
    ) -> ServiceResult:
        """
        Remove a client through the client cascade.

        Returns a failed result with CascadeBlockedError when dependents
        exist and ``force`` is False.
        """
        client_uuid = parse_id(client_id, "client_id")
        try:
            with self._coordinator.read() as uow:
                require_client(uow, client_uuid)
            report = self._cascade.cascade_from_client(
                client_uuid,
                reason or "client deleted",
                force=force,
                actor_id=self._actor(actor_id),
            )
        except GymKernelError as exc:
            return self._rejected("delete client", exc)
        return self._from_report("delete client", "cascade_from_client", report, "Client deleted")
