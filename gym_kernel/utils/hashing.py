"""
Canonical JSON and SHA-256 helpers for the audit chain.

The same payload must always produce the same digest: keys are sorted,
separators carry no whitespace, and non-JSON types have one fixed text
form each (Decimals in normalized fixed-point, so 100 and 100.00 agree).
"""

import hashlib
import json
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

GENESIS_HASH = "GENESIS"


def _encode(value: Any) -> Any:
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    if isinstance(value, date):
        # datetime is a date subclass
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Cannot encode {type(value).__name__} in an audit payload")


def canonicalize_json(data: Any) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=_encode)


def to_json_safe(data: dict) -> dict:
    """Same content, reduced to JSON-native types for storage in a JSON column."""
    return json.loads(canonicalize_json(data))


def _sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def hash_payload(payload: dict) -> str:
    return _sha256(canonicalize_json(payload))


def hash_audit_event(
    entity_type: str,
    entity_id: str,
    action: str,
    payload_hash: str,
    prev_hash: str | None,
) -> str:
    """
    Digest of one chain link.  Includes the previous link's digest, so
    editing any stored event breaks every digest after it.
    """
    link = (entity_type, str(entity_id), action, payload_hash, prev_hash or GENESIS_HASH)
    return _sha256("|".join(link))
