"""
Module: ledger_kernel.db.engine
Responsibility: SQLAlchemy engine initialization, session factory management,
    and transactional scope utilities.  This is the single point of database
    connection configuration for the kernel.
Architecture position: Kernel > DB.  May import from db/base.py.
    MUST NOT import from services/, selectors/, domain/, or outer layers
    (except create_tables/drop_tables which import models).

Invariants enforced:
    - PostgreSQL is the production backend.  Sessions run at READ COMMITTED
      with explicit row-level locking (SELECT ... FOR UPDATE) on the profile
      and job rows a mutation touches.
    - statement_timeout / lock_timeout are set on every PostgreSQL connection
      so no operation blocks indefinitely.
    - SQLite is accepted for tests and local tooling.  It has no row locks;
      writers serialize on the database file instead.

Failure modes:
    - RuntimeError if get_engine/get_session/get_session_factory called before
      init_engine_from_url().
    - Connection pool exhaustion if pool_size + max_overflow is exceeded
      (bounded by pool_timeout).
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from ledger_kernel.logging_config import get_logger

logger = get_logger("db.engine")

# Module-level engine and session factory
_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def build_engine(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    statement_timeout_ms: int | None = None,
    lock_timeout_ms: int | None = None,
) -> Engine:
    """
    Create an engine for the given URL without touching module state.

    PostgreSQL URLs get a QueuePool, READ COMMITTED isolation and the
    per-connection timeouts.  SQLite URLs get a StaticPool for in-memory
    databases (one shared connection) and the driver default otherwise.

    Args:
        database_url: SQLAlchemy URL (postgresql://... or sqlite://...).
        echo: If True, log all SQL statements.
        pool_size: Number of connections to keep in the pool.
        max_overflow: Max connections beyond pool_size.
        pool_pre_ping: If True, test connections before use.
        pool_timeout: Seconds to wait for a pooled connection.
        pool_recycle: Seconds after which a connection is recycled.
        statement_timeout_ms: PostgreSQL statement_timeout, None to leave unset.
        lock_timeout_ms: PostgreSQL lock_timeout, None to leave unset.

    Returns:
        SQLAlchemy Engine instance.
    """
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite":
        if url.database in (None, "", ":memory:"):
            return create_engine(
                url,
                echo=echo,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        return create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
        )

    options = []
    if statement_timeout_ms:
        options.append(f"-c statement_timeout={int(statement_timeout_ms)}")
    if lock_timeout_ms:
        options.append(f"-c lock_timeout={int(lock_timeout_ms)}")
    connect_args = {"options": " ".join(options)} if options else {}

    return create_engine(
        url,
        echo=echo,
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=pool_pre_ping,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
        isolation_level="READ COMMITTED",
        connect_args=connect_args,
    )


def init_engine_from_url(database_url: str, **engine_options) -> Engine:
    """
    Initialize the module-level engine and session factory.

    Preconditions: database_url is a valid SQLAlchemy URL.  A second call
        overwrites the first (call reset_engine() in between to dispose).
    Postconditions: get_engine/get_session/get_session_factory use this engine.

    Args:
        database_url: Database connection URL.
        **engine_options: Forwarded to build_engine().

    Returns:
        SQLAlchemy Engine instance.
    """
    global _engine, _SessionFactory

    _engine = build_engine(database_url, **engine_options)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    logger.info(
        "engine_initialized",
        extra={
            "dialect": _engine.dialect.name,
            "pool": type(_engine.pool).__name__,
        },
    )

    return _engine


def init_engine_from_config(database_config) -> Engine:
    """
    Initialize the engine from a ``ledger_config.DatabaseConfig``.

    Args:
        database_config: Parsed database section of the ledger configuration.

    Returns:
        SQLAlchemy Engine instance.
    """
    return init_engine_from_url(
        database_config.url,
        echo=database_config.echo,
        pool_size=database_config.pool_size,
        max_overflow=database_config.max_overflow,
        pool_timeout=database_config.pool_timeout,
        pool_recycle=database_config.pool_recycle,
        statement_timeout_ms=database_config.statement_timeout_ms,
        lock_timeout_ms=database_config.lock_timeout_ms,
    )


def get_engine() -> Engine:
    """
    Get the current engine instance.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session() -> Session:
    """
    Get a new session instance.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory()


def get_session_factory() -> sessionmaker[Session]:
    """
    Get the session factory for creating sessions.

    Useful for multi-threaded callers where each thread needs its own session.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory


@contextmanager
def session_scope(
    factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """
    Provide a transactional scope around a series of operations.

    Postconditions: On normal exit, session is committed and closed.
        On exception, session is rolled back and closed.  The exception
        is re-raised to the caller.  Closing a session that was never
        committed (caller abandoned the request) discards its transaction,
        so no partial state survives.

    Args:
        factory: Session factory to use; defaults to the module-level one.

    Usage:
        with session_scope() as session:
            session.add(entity)
            # Commits on successful exit, rolls back on exception
    """
    session = factory() if factory is not None else get_session()
    logger.debug("transaction_started")
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception:
        session.rollback()
        logger.debug("transaction_rolled_back")
        raise
    finally:
        session.close()


def create_tables(engine: Engine | None = None) -> None:
    """
    Create all tables defined in the models.

    Args:
        engine: Engine to use; defaults to the module-level engine.
    """
    from ledger_kernel.db.base import Base
    import ledger_kernel.models  # noqa: F401  (registers tables on Base.metadata)

    Base.metadata.create_all(engine or get_engine())


def drop_tables(engine: Engine | None = None) -> None:
    """
    Drop all tables. Use with caution - primarily for testing.
    """
    from ledger_kernel.db.base import Base
    import ledger_kernel.models  # noqa: F401

    Base.metadata.drop_all(engine or get_engine())


def reset_engine() -> None:
    """
    Reset the engine and session factory.

    Useful for test cleanup.
    """
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
        _engine = None

    _SessionFactory = None


def _atexit_dispose():
    """Dispose the engine on process exit to release all pooled connections."""
    if _engine is not None:
        _engine.dispose()


atexit.register(_atexit_dispose)


def is_postgres(engine: Engine | None = None) -> bool:
    """Check if the given (or current) engine is PostgreSQL."""
    target = engine or _engine
    if target is None:
        return False
    return target.dialect.name == "postgresql"
