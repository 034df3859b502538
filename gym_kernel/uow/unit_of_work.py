"""
UnitOfWork -- the repositories of one scope, bound to one session.

Operations handed to the coordinator receive a ``UnitOfWork`` and do all of
their reads and writes through it, so whatever scope the coordinator opened
(one transaction, or one commit per step) covers them.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from gym_kernel.audit.auditor import AuditorService
from gym_kernel.domain.clock import Clock, SystemClock
from gym_kernel.domain.dependency_graph import EntityKind
from gym_kernel.repositories import (
    AssociationRepository,
    BaseRepository,
    ClientRepository,
    ContractRepository,
    FinancialRecordRepository,
    PlanRepository,
    ProgressEntryRepository,
)


class UnitOfWork:
    """Repository bundle over a caller-owned session.  Never commits."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()
        self.clients = ClientRepository(session)
        self.plans = PlanRepository(session)
        self.associations = AssociationRepository(session)
        self.contracts = ContractRepository(session)
        self.progress = ProgressEntryRepository(session)
        self.finance = FinancialRecordRepository(session)
        self.audit = AuditorService(session, self.clock)
        self._by_kind: dict[EntityKind, BaseRepository] = {
            EntityKind.CLIENT: self.clients,
            EntityKind.PLAN: self.plans,
            EntityKind.ASSOCIATION: self.associations,
            EntityKind.CONTRACT: self.contracts,
            EntityKind.PROGRESS_ENTRY: self.progress,
        }

    def repository_for(self, kind: EntityKind) -> BaseRepository:
        return self._by_kind[kind]

    def find_children(self, kind: EntityKind, via: str, parent_id: UUID) -> list[UUID]:
        """Child finder for ``dependency_graph.walk``."""
        return self.repository_for(kind).find_ids_by(via, parent_id)
