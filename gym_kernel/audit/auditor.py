"""
AuditorService -- append-only, hash-chained audit trail.

Responsibility:
    Appends one ``AuditEvent`` per business action and per cascade using
    the session of the running unit of work.  An aborted unit leaves no
    audit row; a committed one always has its row.

Invariants enforced:
    - Each event stores ``payload_hash`` (canonical JSON digest) and
      ``hash = H(entity_type | entity_id | action | payload_hash | prev_hash)``
      where ``prev_hash`` is the hash of the event with the previous ``seq``.
    - ``seq`` is allocated by SequenceService.

Failure modes:
    - TypeError from the canonical encoder when a payload holds a value
      with no fixed text form.  The step fails and the unit aborts.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from gym_kernel.audit.sequence import SequenceService
from gym_kernel.domain.clock import Clock, SystemClock
from gym_kernel.logging_config import get_logger
from gym_kernel.models.audit_event import AuditAction, AuditEvent
from gym_kernel.utils.hashing import hash_audit_event, hash_payload, to_json_safe

logger = get_logger("audit.auditor")


def _event_hash(event: AuditEvent) -> str:
    action = event.action.value if isinstance(event.action, AuditAction) else event.action
    return hash_audit_event(
        event.entity_type, str(event.entity_id), action, event.payload_hash, event.prev_hash
    )


class AuditorService:
    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._sequences = SequenceService(session)

    def record(
        self,
        entity_type: str,
        entity_id: UUID,
        action: AuditAction,
        actor_id: UUID,
        payload: dict[str, Any] | None = None,
    ) -> AuditEvent:
        """Append an event after the current chain head and flush it."""
        seq = self._sequences.next_value(SequenceService.AUDIT_EVENT)
        head = self._session.execute(
            select(AuditEvent.hash).order_by(AuditEvent.seq.desc()).limit(1)
        ).scalar_one_or_none()

        stored_payload = to_json_safe(payload or {})
        event = AuditEvent(
            seq=seq,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action.value,
            actor_id=actor_id,
            occurred_at=self._clock.now(),
            payload=stored_payload,
            payload_hash=hash_payload(stored_payload),
            prev_hash=head,
        )
        event.hash = _event_hash(event)
        self._session.add(event)
        self._session.flush()

        logger.info(
            "audit_event_recorded",
            extra={"seq": seq, "entity_type": entity_type, "entity_id": str(entity_id), "action": action.value},
        )
        return event

    def validate_chain(self) -> bool:
        """Recompute the whole chain in ``seq`` order; False at the first broken link."""
        expected_prev: str | None = None
        for event in self._session.execute(select(AuditEvent).order_by(AuditEvent.seq)).scalars():
            if event.prev_hash != expected_prev:
                reason = "prev_hash mismatch"
            elif hash_payload(event.payload or {}) != event.payload_hash:
                reason = "payload altered"
            elif _event_hash(event) != event.hash:
                reason = "hash mismatch"
            else:
                expected_prev = event.hash
                continue
            logger.error("audit_chain_broken", extra={"seq": event.seq, "reason": reason})
            return False
        return True

    def get_trail(self, entity_id: UUID) -> list[AuditEvent]:
        """Events for one entity, oldest first."""
        stmt = select(AuditEvent).where(AuditEvent.entity_id == entity_id).order_by(AuditEvent.seq)
        return list(self._session.execute(stmt).scalars())
