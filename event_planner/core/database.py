"""Database configuration and session management.

The default store is SQLite, configured for a web application where request
handlers and the background sweeper touch the same tables:

    - **WAL (Write-Ahead Logging)**: readers keep going while a writer holds the
      lock, so event listings are not blocked by an admission in progress.

    - **Foreign Keys**: off by default in SQLite. Enabled so that every Signup
      row points at an existing Event.

    - **Busy timeout**: the driver ``timeout`` bounds how long a statement waits
      for a competing writer. Concurrent signups for the same event queue on
      this lock instead of failing, and a store that stays locked past the
      timeout surfaces as an operation error rather than a silent pass.

Any other SQLAlchemy URL (e.g. PostgreSQL) works unchanged; the pragmas are only
applied to SQLite connections.
"""

from sqlalchemy import event as sa_event
from sqlmodel import Session, SQLModel, create_engine

from event_planner.core.config import settings


def build_engine(database_url: str, timeout: float, echo: bool = False, **kwargs):
    """Create an engine for ``database_url`` with the store's connection settings."""
    is_sqlite = database_url.startswith("sqlite")
    if is_sqlite:
        # check_same_thread=False: FastAPI may hand a session to a worker thread.
        connect_args = {"check_same_thread": False, "timeout": timeout}
    else:
        connect_args = {"connect_timeout": int(timeout)}

    engine = create_engine(
        database_url,
        connect_args=connect_args,
        echo=echo,
        **kwargs,
    )

    if is_sqlite:
        sa_event.listen(engine, "connect", set_sqlite_pragma)

    return engine


def set_sqlite_pragma(dbapi_connection, connection_record):
    """Configure SQLite pragmas on each new connection.

    These settings are connection-level, not database-level, so they must
    be set each time a new connection is established from the pool.
    """
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


engine = build_engine(
    settings.database_url,
    timeout=settings.db_timeout_seconds,
    echo=settings.debug,  # Log SQL statements when DEBUG=true
)


def create_db_and_tables():
    """Create all database tables."""
    SQLModel.metadata.create_all(engine)


def get_session():
    """Dependency for getting database session."""
    with Session(engine) as session:
        yield session
