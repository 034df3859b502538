"""
Module: gym_kernel.db.base
Responsibility: declarative bases shared by every model: the UUID primary
    key, the column type map and created/updated timestamps.
Architecture position: Kernel > DB.  Lowest import target in the package;
    MUST NOT import from models/, repositories/, services/ or uow/.

Invariants enforced:
    - Primary keys are uuid4 values, stored as 36-character strings so the
      same schema works on SQLite and PostgreSQL.
    - ``Decimal`` columns are Numeric(12, 2); money is never a float.
    - ``datetime`` columns are timezone-aware.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """``uuid.UUID`` in Python, ``VARCHAR(36)`` in the database."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        UUID: UUIDString(),
        Decimal: Numeric(12, 2),
        datetime: DateTime(timezone=True),
    }

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)


class TrackedBase(Base):
    """Rows that carry server-set ``created_at`` and ``updated_at``."""

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
