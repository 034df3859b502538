"""Identifier parsing for the caller surface."""

from typing import Any
from uuid import UUID

from gym_kernel.exceptions import InvalidIdentifierError


def parse_id(value: Any, field: str) -> UUID:
    """
    Coerce a caller-supplied identifier to UUID.

    Raises:
        InvalidIdentifierError: If value is neither a UUID nor a UUID string.
            This is rejected before any store access.
    """
    if isinstance(value, UUID):
        return value
    if isinstance(value, str):
        try:
            return UUID(value.strip())
        except ValueError:
            pass
    raise InvalidIdentifierError(field, value)


# Actor recorded on audit events when the caller does not name one.
SYSTEM_ACTOR_ID = UUID("00000000-0000-0000-0000-000000000001")
