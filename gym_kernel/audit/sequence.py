"""
SequenceService -- named counters for audit ordering.

``AuditEvent.seq`` is drawn from a locked ``SequenceCounter`` row inside
the caller's unit of work.  An aborted unit therefore gives its number
back, and two concurrent writers can never draw the same number.  Reading
``max(seq) + 1`` would allow both.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from gym_kernel.logging_config import get_logger
from gym_kernel.models.sequence import SequenceCounter

logger = get_logger("audit.sequence")


class SequenceService:
    AUDIT_EVENT = "audit_event"

    def __init__(self, session: Session):
        self._session = session

    def _counter(self, name: str, *, lock: bool) -> SequenceCounter | None:
        stmt = select(SequenceCounter).where(SequenceCounter.name == name)
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self._session.execute(stmt).scalar_one_or_none()

    def next_value(self, name: str) -> int:
        """Lock (or create) the counter row, bump it and return the new value. Flushes, never commits."""
        counter = self._counter(name, lock=True)
        if counter is None:
            counter = SequenceCounter(name=name, current_value=0)
            self._session.add(counter)
        counter.current_value += 1
        self._session.flush()
        logger.debug("sequence_allocated", extra={"sequence_name": name, "value": counter.current_value})
        return counter.current_value

    def current_value(self, name: str) -> int | None:
        counter = self._counter(name, lock=False)
        return None if counter is None else counter.current_value
