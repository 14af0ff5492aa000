"""SQLAlchemy engine and session management.

Provides a factory for creating engines, a request-scoped session registry
that records use to reach the database, a context manager for scoped units
of work, and lifecycle helpers for schema creation and shutdown.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine as sa_create_engine
from sqlalchemy import event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, scoped_session, sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from domain_repository.core.config import DatabaseConfig

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level singleton (set via ``init_engine``)
# ---------------------------------------------------------------------------
_engine: Engine | None = None
_scoped: scoped_session[Session] | None = None


def _is_sqlite_memory(url: str) -> bool:
    parsed = make_url(url)
    return parsed.get_backend_name() == "sqlite" and parsed.database in (None, "", ":memory:")


def create_engine(
    url: str,
    *,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    echo: bool = False,
    use_null_pool: bool = False,
) -> Engine:
    """Create and return a new SQLAlchemy :class:`Engine`.

    Args:
        url: Database connection URL.
        pool_size: Number of persistent connections to keep in the pool.
        max_overflow: Maximum additional connections beyond *pool_size*.
        pool_timeout: Seconds to wait for a connection from the pool.
        pool_recycle: Seconds after which a connection is recycled.
        echo: If ``True``, log all emitted SQL statements.
        use_null_pool: If ``True``, disable connection pooling entirely.

    In-memory SQLite URLs always get a single shared connection so every
    session sees the same database.
    """
    pool_kwargs: dict = {}
    if _is_sqlite_memory(url):
        pool_kwargs["poolclass"] = StaticPool
        pool_kwargs["connect_args"] = {"check_same_thread": False}
    elif use_null_pool:
        pool_kwargs["poolclass"] = NullPool
    else:
        pool_kwargs.update(
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
        )

    engine = sa_create_engine(url, echo=echo, **pool_kwargs)
    if make_url(url).get_backend_name() == "sqlite":
        _enable_sqlite_savepoints(engine)
    logger.info("Created engine for %s", url.split("@")[-1])
    return engine


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINT nests correctly on pysqlite."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):  # noqa: ARG001
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def init_engine(
    url: str | None = None,
    *,
    config: DatabaseConfig | None = None,
    create_tables: bool = False,
) -> Engine:
    """Initialise the module-level engine and scoped session registry.

    This is the primary entry-point at application startup. Records and
    repositories created afterwards use the session returned by
    :func:`current_session`.

    Args:
        url: Database URL. Overrides ``config.url`` when both are given.
        config: Database settings; defaults to :class:`DatabaseConfig`.
        create_tables: If ``True``, create all tables known to the
            declarative metadata (useful for dev/test).
    """
    global _engine, _scoped  # noqa: PLW0603

    cfg = config or DatabaseConfig()
    if _engine is not None:
        dispose()

    _engine = create_engine(
        url or cfg.url,
        pool_size=cfg.pool_size,
        max_overflow=cfg.max_overflow,
        pool_timeout=cfg.pool_timeout,
        pool_recycle=cfg.pool_recycle,
        echo=cfg.echo,
        use_null_pool=cfg.use_null_pool,
    )
    _scoped = scoped_session(
        sessionmaker(bind=_engine, expire_on_commit=cfg.expire_on_commit)
    )

    if create_tables:
        create_all(_engine)

    return _engine


def create_all(engine: Engine | None = None) -> None:
    """Create all tables defined in the ORM metadata.

    Raises:
        RuntimeError: If no engine is available.
    """
    from .record import Base

    eng = engine or _engine
    if eng is None:
        raise RuntimeError(
            "No engine available. Call init_engine() first or pass an engine."
        )
    Base.metadata.create_all(eng)
    logger.info("Database tables created / verified.")


def dispose() -> None:
    """Dispose of the module-level engine and release all pooled connections."""
    global _engine, _scoped  # noqa: PLW0603

    if _scoped is not None:
        _scoped.remove()
        _scoped = None
    if _engine is not None:
        _engine.dispose()
        logger.info("Engine disposed.")
        _engine = None


def get_engine() -> Engine:
    """Return the module-level engine.

    Raises:
        RuntimeError: If :func:`init_engine` has not been called.
    """
    if _engine is None:
        raise RuntimeError("Engine not initialised. Call init_engine() first.")
    return _engine


def current_session() -> Session:
    """Return the session bound to the current scope.

    Raises:
        RuntimeError: If :func:`init_engine` has not been called.
    """
    if _scoped is None:
        raise RuntimeError(
            "Session registry not initialised. Call init_engine() first."
        )
    return _scoped()


def remove_session() -> None:
    """Close and discard the current scope's session."""
    if _scoped is not None:
        _scoped.remove()


@contextmanager
def get_session() -> Iterator[Session]:
    """Yield the current scope's session for the caller's block.

    Usage::

        with get_session() as session:
            repo = UserRepository(session=session)
            ...

    The session is committed on successful exit and rolled back on
    exception. It is always removed from the scope afterwards.
    """
    session = current_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        remove_session()
