from learnflow.db.database import (
    atomic,
    configure_engine,
    get_engine,
    get_session,
    init_db,
    insert_or_ignore,
    session_scope,
)

__all__ = [
    "atomic",
    "configure_engine",
    "get_engine",
    "get_session",
    "init_db",
    "insert_or_ignore",
    "session_scope",
]
