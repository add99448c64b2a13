from __future__ import annotations

from collections.abc import Generator, Iterable
from contextlib import contextmanager
from typing import Any

from loguru import logger
from sqlalchemy import Engine, create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from config import get_settings
from learnflow.db.models.base import Base

_engine: Engine | None = None
_SessionLocal: sessionmaker[Session] | None = None


def configure_engine(url: str | None = None, **engine_kwargs: Any) -> Engine:
    """
    (Re)create the engine and session factory.

    SQLite URLs get ``check_same_thread=False`` so async routes can share
    sessions created on the threadpool.

    Args:
        url: Database URL (defaults to settings.database_url)
        **engine_kwargs: Extra create_engine arguments (e.g. poolclass)

    Returns:
        The new engine
    """
    global _engine, _SessionLocal
    settings = get_settings()
    url = url or settings.database_url

    if url.startswith("sqlite"):
        connect_args = engine_kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        engine_kwargs["connect_args"] = connect_args
    else:
        engine_kwargs.setdefault("pool_pre_ping", True)

    if _engine is not None:
        _engine.dispose()

    _engine = create_engine(url, echo=settings.log_level == "DEBUG", **engine_kwargs)
    _SessionLocal = sessionmaker(bind=_engine, autocommit=False, autoflush=False, expire_on_commit=False)
    return _engine


def get_engine() -> Engine:
    """Get the database engine (lazy initialization)."""
    if _engine is None:
        configure_engine()
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Get or create the session factory."""
    if _SessionLocal is None:
        configure_engine()
    return _SessionLocal


def init_db() -> None:
    """Initialize database tables."""
    Base.metadata.create_all(bind=get_engine())
    logger.info("Database tables initialized")


def check_database_health() -> str:
    """Return "connected" or an error description."""
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return "connected"
    except SQLAlchemyError as e:
        logger.warning(f"Database health check failed: {e}")
        return f"error: {type(e).__name__}"


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Provide a transactional scope around a series of operations."""
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:  # Intentionally broad - rollback on any error before re-raising
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def atomic(session: Session) -> Generator[Session, None, None]:
    """Commit the session's current transaction on success, roll back on any error."""
    try:
        yield session
        session.commit()
    except Exception:  # Intentionally broad - rollback on any error before re-raising
        session.rollback()
        raise


def get_session() -> Generator[Session, None, None]:
    """FastAPI dependency for database sessions."""
    session = get_session_factory()()
    try:
        yield session
    finally:
        session.close()


# ========================================
# Conflict-tolerant inserts
# ========================================


def insert_or_ignore(
    session: Session,
    model: type[Base],
    values: dict[str, Any],
    conflict_columns: Iterable[str],
) -> bool:
    """
    INSERT a row unless it collides with an existing unique key.

    Emits ``INSERT ... ON CONFLICT DO NOTHING`` so concurrent writers racing
    on the same key never raise and never duplicate.

    Args:
        session: Active session (the insert joins its transaction)
        model: Mapped class to insert into
        values: Column values
        conflict_columns: Columns of the unique constraint to tolerate

    Returns:
        True if the row was inserted, False if it already existed
    """
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise NotImplementedError(f"insert_or_ignore does not support dialect {dialect!r}")

    stmt = insert(model).values(**values).on_conflict_do_nothing(index_elements=list(conflict_columns))
    result = session.execute(stmt)
    return result.rowcount == 1
