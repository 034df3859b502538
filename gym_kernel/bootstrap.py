"""
Start-up wiring: engine, capability probe, coordinator and services.

``bootstrap()`` is the only place the execution strategy is decided.
``build_kernel()`` wires services on top of an already chosen scope
provider, which is what the tests use.
"""

from __future__ import annotations

from dataclasses import dataclass

from gym_kernel.config import KernelSettings, load_settings
from gym_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from gym_kernel.domain.clock import Clock, SystemClock
from gym_kernel.logging_config import configure_logging, get_logger
from gym_kernel.services import (
    AssociationManager,
    CascadeRollbackExecutor,
    ClientService,
    ContractService,
    FinanceService,
    PlanAssociationService,
    PlanService,
    ProgressService,
    ReconciliationService,
)
from gym_kernel.uow import ScopeProvider, UnitOfWorkCoordinator, select_scope_provider

logger = get_logger("bootstrap")


@dataclass(frozen=True)
class GymKernel:
    """Wired services sharing one coordinator."""

    settings: KernelSettings
    coordinator: UnitOfWorkCoordinator
    associations: AssociationManager
    cascades: CascadeRollbackExecutor
    clients: ClientService
    plans: PlanService
    plan_associations: PlanAssociationService
    contracts: ContractService
    progress: ProgressService
    finance: FinanceService
    reconciliation: ReconciliationService


def build_kernel(provider: ScopeProvider, settings: KernelSettings | None = None) -> GymKernel:
    settings = settings or KernelSettings()
    actor = settings.default_actor_id
    coordinator = UnitOfWorkCoordinator(provider)
    cascades = CascadeRollbackExecutor(coordinator, actor)
    associations = AssociationManager(coordinator, cascades, actor_id=actor)
    return GymKernel(
        settings=settings,
        coordinator=coordinator,
        associations=associations,
        cascades=cascades,
        clients=ClientService(coordinator, cascades, actor),
        plans=PlanService(coordinator, cascades, actor),
        plan_associations=PlanAssociationService(coordinator, associations, actor),
        contracts=ContractService(coordinator, associations, cascades, actor),
        progress=ProgressService(coordinator, actor),
        finance=FinanceService(coordinator, actor),
        reconciliation=ReconciliationService(coordinator, actor),
    )


def bootstrap(
    settings: KernelSettings | None = None,
    clock: Clock | None = None,
    create_schema: bool = True,
) -> GymKernel:
    """
    Initialise the engine, pick the execution strategy once and wire services.

    Raises:
        TransactionsUnavailableError: atomic execution is required and the
            store cannot provide it.
    """
    settings = settings or load_settings()
    configure_logging(level=settings.log_level)

    engine = init_engine_from_url(settings.database_url, echo=settings.echo)
    if create_schema:
        create_tables()

    provider = select_scope_provider(
        engine,
        get_session_factory(),
        execution_mode=settings.execution_mode,
        require_atomic=settings.require_atomic,
        clock=clock or SystemClock(),
    )
    logger.info(
        "kernel_bootstrapped",
        extra={"dialect": engine.dialect.name, "mode": provider.mode.value},
    )
    return build_kernel(provider, settings)
