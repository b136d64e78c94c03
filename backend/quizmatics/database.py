"""Database engine and helpers.

This module configures the SQLModel/SQLAlchemy engine from
`settings.DATABASE_URL` (a local SQLite file by default) and provides
small helpers used by the application and tests.

SQLite does not enforce foreign keys unless asked to on every
connection, and the schema relies on `ON DELETE CASCADE` to remove a
teacher's lessons and the lesson/quiz links, so the pragma is switched
on in a connect hook.
"""

from sqlalchemy import event
from sqlmodel import SQLModel, create_engine, Session

from .config import settings

_connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    _connect_args = {"check_same_thread": False}

engine = create_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO, connect_args=_connect_args)


if engine.dialect.name == "sqlite":
    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_db_and_tables():
    """Create database tables using SQLModel metadata.

    This function is intended for local development and tests;
    `run_migrations.py` applies the equivalent SQL schema to a bare
    database file.
    """
    # models must be imported so their tables are registered on the metadata
    from . import models  # noqa: F401
    SQLModel.metadata.create_all(engine)


def drop_db_and_tables():
    """Drop every table known to the SQLModel metadata."""
    from . import models  # noqa: F401
    SQLModel.metadata.drop_all(engine)


def get_session():
    """Yield a database `Session` for FastAPI dependency injection.

    The generator yields a session and ensures it is closed when the
    request scope finishes.
    """
    with Session(engine) as session:
        yield session
