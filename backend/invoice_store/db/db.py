"""
Database engine and connection management.

Reads DATABASE_URL from environment and hands out transactional connections.
The model functions never open connections themselves; callers pass one in.
"""

import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy import exc as sa_exc
from sqlalchemy.engine import Engine

from ..shared.config import config
from ..shared.errors import ConfigurationError, translate_db_errors
from .schema import metadata

logger = logging.getLogger(__name__)

_engine = None


def get_database_url() -> str:
    """
    Get DATABASE_URL from environment or return default.

    Raises:
        ValueError: If DATABASE_URL is explicitly set but empty.
    """
    return config.DATABASE_URL


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores REFERENCES clauses unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine() -> Engine:
    """Get or create SQLAlchemy engine."""
    global _engine
    if _engine is None:
        database_url = get_database_url()
        try:
            _engine = create_engine(database_url, echo=config.DATABASE_ECHO)
        except sa_exc.ArgumentError as e:
            # Also covers NoSuchModuleError for unknown dialects
            raise ConfigurationError(f"Invalid DATABASE_URL: {e}", "get_engine") from e
        if _engine.dialect.name == "sqlite":
            event.listen(_engine, "connect", _enable_sqlite_foreign_keys)
        logger.info("Created database engine for %s", _engine.url.render_as_string(hide_password=True))
    return _engine


def dispose_engine():
    """Dispose of the module-level engine so the next call re-reads DATABASE_URL."""
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None


@contextmanager
def connect():
    """
    Yield a connection wrapped in a transaction.

    Commits when the block exits normally, rolls back if it raises.

    Usage:
        with connect() as conn:
            user = create_user(conn, "alice", "a@x.com", "secret123")
    """
    engine = get_engine()
    with translate_db_errors("connect"):
        with engine.begin() as conn:
            yield conn


def init_db():
    """
    Initialize database tables.

    Creates all tables defined in schema. Should be called once at application startup.
    """
    engine = get_engine()
    with translate_db_errors("init_db"):
        metadata.create_all(engine)


def reset_db():
    """
    Drop and recreate all tables. USE WITH CAUTION - deletes all data!

    Only for testing/development.
    """
    engine = get_engine()
    with translate_db_errors("reset_db"):
        metadata.drop_all(engine)
        metadata.create_all(engine)
