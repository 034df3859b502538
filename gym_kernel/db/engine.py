"""
Module: gym_kernel.db.engine
Responsibility: the process-wide engine and session factory, schema
    creation, and the start-up probe that tells the scope layer whether
    atomic multi-statement scopes are available.
Architecture position: Kernel > DB.  MUST NOT import from repositories/,
    services/ or uow/.  Sessions are handed to the unit-of-work layer, which
    owns every commit and rollback.

Invariants enforced:
    - SQLite connections run with ``PRAGMA foreign_keys=ON``: a child row
      can never outlive its parent, on SQLite as on PostgreSQL.
    - The probe runs once, at start-up, never per call.

Failure modes:
    - RuntimeError from get_engine/get_session_factory before
      init_engine_from_url().
"""

import atexit

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import NotSupportedError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from gym_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None

_NOT_INITIALIZED = "Engine not initialized. Call init_engine_from_url() first."


def _sqlite_on_connect(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


def init_engine_from_url(database_url: str, echo: bool = False) -> Engine:
    """
    Create the engine for ``database_url`` (``sqlite:///...`` or
    ``postgresql+psycopg://...``) and its session factory.  Calling it again
    replaces both; dispose the old engine first with ``reset_engine()``.
    """
    global _engine, _session_factory

    engine = create_engine(database_url, echo=echo, pool_pre_ping=True)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _sqlite_on_connect)

    _engine = engine
    # Objects stay readable after the coordinator commits and closes.
    _session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    logger.info("engine_initialized", extra={"dialect": engine.dialect.name, "echo": echo})
    return engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    if _session_factory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _session_factory


def probe_transaction_support(engine: Engine) -> tuple[bool, str]:
    """
    Begin an explicit transaction, run ``SELECT 1`` and roll back.

    Stores whose topology rejects explicit transactions answer with
    NotSupportedError or OperationalError here.

    Returns:
        (supported, reason); reason is empty when supported.
    """
    try:
        with engine.connect() as conn, conn.begin() as trans:
            conn.execute(text("SELECT 1"))
            trans.rollback()
    except (NotSupportedError, OperationalError) as exc:
        logger.warning(
            "transaction_probe_failed",
            extra={"dialect": engine.dialect.name, "error": str(exc)},
        )
        return False, str(exc)
    logger.debug("transaction_probe_succeeded", extra={"dialect": engine.dialect.name})
    return True, ""


def create_tables() -> None:
    """Create every table of the kernel's models (no-op for existing tables)."""
    import gym_kernel.models  # noqa: F401  (registers the tables)
    from gym_kernel.db.base import Base

    Base.metadata.create_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory (tests, shutdown)."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


atexit.register(reset_engine)
