"""
Module: gym_kernel.repositories.base
Responsibility: Generic persistence contract shared by every entity
    repository: create / get_by_id / update / delete and column finders.
Architecture position: Kernel > Repositories.  May import from db/ and
    models/.  MUST NOT import from services/ or uow/.

Invariants enforced:
    - Flush-only: repositories flush inside the caller's session and never
      commit or rollback.  The unit of work owns transaction boundaries.
    - Every write is flushed immediately, so statements reach the store in
      call order (an UPDATE that frees a unique slot lands before the INSERT
      that takes it).

Failure modes:
    - sqlalchemy.exc.IntegrityError on flush when a foreign key or unique
      constraint is violated; it propagates to the coordinator unchanged.
"""

from abc import ABC
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from gym_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(ABC, Generic[ModelType]):
    """
    Abstract base class for entity repositories.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller; all writes are
        flushed, never committed.

    Non-goals:
        - Does NOT validate business rules.  Services do that before
          building operations.
    """

    model: type[ModelType]

    def __init__(self, session: Session):
        self.session = session

    def _order_by(self) -> tuple:
        created_at = getattr(self.model, "created_at", None)
        if created_at is not None:
            return (created_at, self.model.id)
        return (self.model.id,)

    def create(self, entity: ModelType) -> UUID:
        """Add ``entity`` and flush.  Returns its id."""
        self.session.add(entity)
        self.session.flush()
        return entity.id

    def get_by_id(self, entity_id: UUID) -> ModelType | None:
        return self.session.get(self.model, entity_id)

    def exists(self, entity_id: UUID) -> bool:
        return self.get_by_id(entity_id) is not None

    def update(self, entity_id: UUID, **changes: Any) -> bool:
        """
        Apply ``changes`` to the row and flush.

        Returns:
            False when the row does not exist.
        """
        entity = self.get_by_id(entity_id)
        if entity is None:
            return False
        for key, value in changes.items():
            if not hasattr(self.model, key):
                raise AttributeError(f"{self.model.__name__} has no column {key!r}")
            setattr(entity, key, value)
        self.session.flush()
        return True

    def delete(self, entity_id: UUID) -> bool:
        """
        Delete the row and flush.

        Returns:
            False when the row was already gone (idempotent removal).
        """
        entity = self.get_by_id(entity_id)
        if entity is None:
            return False
        self.session.delete(entity)
        self.session.flush()
        return True

    def find_by(self, **criteria: Any) -> list[ModelType]:
        stmt = select(self.model).filter_by(**criteria).order_by(*self._order_by())
        return list(self.session.execute(stmt).scalars())

    def find_ids_by(self, column: str, value: Any) -> list[UUID]:
        """Ids of rows whose ``column`` equals ``value``, oldest first."""
        stmt = (
            select(self.model.id)
            .where(getattr(self.model, column) == value)
            .order_by(*self._order_by())
        )
        return list(self.session.execute(stmt).scalars())

    def count_by(self, **criteria: Any) -> int:
        stmt = select(func.count()).select_from(self.model).filter_by(**criteria)
        return self.session.execute(stmt).scalar_one()
