"""
Engine, session factory and transaction helpers.

One engine per process, created by ``init_engine_from_url`` and handed out
through ``get_engine`` / ``get_session_factory``.  Services never commit;
``session_scope`` and ``run_in_transaction`` own every commit and rollback.

Dialect handling:
    PostgreSQL runs at READ COMMITTED behind a pre-pinging QueuePool.  The
    delivered-quantity increment and every item transition are single
    conditional UPDATEs, which is all the isolation they need.

    SQLite (development and tests) has foreign keys switched on and opens
    every transaction with BEGIN IMMEDIATE, so writers queue on the file
    lock instead of failing at commit, and SAVEPOINT works under pysqlite.

Accessors raise RuntimeError until the engine is initialized.
run_in_transaction raises StorageError when contention outlives its retry
budget or the driver fails in a way retrying cannot fix.
"""

import atexit
import time
from contextlib import contextmanager
from typing import Callable, Generator, TypeVar

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from warehouse_kernel.domain.policies import RetryPolicy
from warehouse_kernel.exceptions import StorageError, WarehouseKernelError
from warehouse_kernel.logging_config import get_logger

logger = get_logger("db.engine")

T = TypeVar("T")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

_NOT_INITIALIZED = "Engine not initialized; call init_engine_from_url() first."


def _install_sqlite_hooks(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # pysqlite must not issue its own BEGIN; the "begin" hook does
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Create the process-wide engine and session factory.

    ``database_url`` is a ``postgresql://`` or ``sqlite:///`` URL.  The pool
    arguments apply to PostgreSQL only; for SQLite ``pool_timeout`` becomes
    the driver's busy timeout.  Calling again replaces the previous engine
    without disposing it; use ``reset_engine()`` first.
    """
    global _engine, _SessionFactory

    if database_url.startswith("sqlite"):
        _engine = create_engine(
            database_url,
            echo=echo,
            connect_args={"timeout": pool_timeout, "check_same_thread": False},
        )
        _install_sqlite_hooks(_engine)
    else:
        _engine = create_engine(
            database_url,
            echo=echo,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            isolation_level="READ COMMITTED",
        )

    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    logger.info(
        "engine_initialized",
        extra={"dialect": _engine.dialect.name, "pool_size": pool_size, "echo": echo},
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """The shared sessionmaker; worker threads call it for their own sessions."""
    if _SessionFactory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _SessionFactory


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Commit on clean exit, roll back and re-raise on error, always close.

        with session_scope() as session:
            ScanInService(session, clock).scan_in(request, user)
    """
    session = get_session()
    try:
        yield session
        session.commit()
        logger.debug("session_scope_committed")
    except Exception:
        session.rollback()
        logger.warning("session_scope_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, OperationalError):
        return True
    return isinstance(exc, WarehouseKernelError) and exc.retryable


def run_in_transaction(
    work: Callable[[Session], T],
    *,
    session_factory: Callable[[], Session] | None = None,
    retry_policy: RetryPolicy | None = None,
    max_attempts: int = 3,
    base_delay: float = 0.05,
    operation: str = "transaction",
) -> T:
    """
    Run ``work(session)`` in its own transaction with bounded retry.

    Each attempt opens a fresh session, calls ``work`` and commits.  Lock
    contention (``OperationalError``, or a kernel error flagged
    ``retryable``) rolls the attempt back and tries again after a linear
    backoff.  Domain errors roll back and propagate unchanged.  A
    ``retry_policy`` (see ``warehouse_config.bridges.build_retry_policy``)
    overrides ``max_attempts`` and ``base_delay``.

    Raises:
        StorageError: contention outlived ``max_attempts``, or the driver
            raised a non-transient SQLAlchemy error.
        WarehouseKernelError: any non-retryable domain error from ``work``.
    """
    if retry_policy is not None:
        max_attempts = retry_policy.max_attempts
        base_delay = retry_policy.base_delay_seconds
    factory = session_factory or get_session_factory()
    last_exc: BaseException | None = None

    for attempt in range(1, max_attempts + 1):
        session = factory()
        try:
            result = work(session)
            session.commit()
            return result
        except (OperationalError, WarehouseKernelError) as exc:
            session.rollback()
            if not _is_transient(exc):
                raise
            last_exc = exc
            logger.warning(
                "transaction_retry",
                extra={
                    "operation": operation,
                    "attempt": attempt,
                    "max_attempts": max_attempts,
                    "error": type(exc).__name__,
                },
            )
            if attempt < max_attempts:
                time.sleep(base_delay * attempt)
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error(
                "transaction_storage_failure",
                extra={"operation": operation},
                exc_info=True,
            )
            raise StorageError(operation, str(exc)) from exc
        finally:
            session.close()

    logger.error(
        "transaction_retries_exhausted",
        extra={"operation": operation, "max_attempts": max_attempts},
    )
    raise StorageError(
        operation, f"gave up after {max_attempts} attempts: {last_exc}"
    ) from last_exc


def _metadata():
    from warehouse_kernel.db.base import Base

    # Importing the package registers every mapped class on Base.metadata
    import warehouse_kernel.models  # noqa: F401

    return Base.metadata


def create_tables() -> None:
    _metadata().create_all(get_engine())


def drop_tables() -> None:
    """Tests only."""
    _metadata().drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _SessionFactory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


@atexit.register
def _dispose_at_exit():
    if _engine is not None:
        _engine.dispose()
