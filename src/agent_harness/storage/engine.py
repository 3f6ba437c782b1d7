"""Database engine, sessions and schema setup for the harness store.

Messages and advisories reference their run with ``ON DELETE CASCADE``.
SQLite only honours that with foreign keys switched on per connection, so
every SQLite engine built here enables them and ``init_db`` refuses an
engine where they are off.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from agent_harness.exceptions import PersistenceError
from agent_harness.storage.schema import Base, HarnessMetaRow

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1"

# Agents of one run append concurrently from the same process.
SQLITE_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA busy_timeout=5000",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA foreign_keys=ON",
)


def sqlite_url(db_path: str) -> str:
    """SQLAlchemy URL for a database file path or ``":memory:"``."""
    if db_path == ":memory:":
        return "sqlite://"
    return f"sqlite:///{db_path}"


def _apply_sqlite_pragmas(dbapi_conn, connection_record):  # type: ignore[no-untyped-def]
    cursor = dbapi_conn.cursor()
    try:
        for pragma in SQLITE_PRAGMAS:
            cursor.execute(pragma)
    finally:
        cursor.close()


def create_harness_engine(
    db_path: str = ":memory:",
    *,
    url: str | None = None,
) -> Engine:
    """Create the engine backing a harness database.

    Args:
        db_path: SQLite file path, or ``":memory:"``. Ignored when *url*
            is given.
        url: Any SQLAlchemy URL. SQLite URLs get the same pragmas as
            *db_path*.
    """
    engine = create_engine(url or sqlite_url(db_path), echo=False)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _apply_sqlite_pragmas)
    logger.debug("Created %s engine for %s", engine.dialect.name, engine.url)
    return engine


def foreign_keys_enabled(engine: Engine) -> bool:
    """Whether deleting a run row cascades to its messages and advisories."""
    if engine.dialect.name != "sqlite":
        return True
    with engine.connect() as conn:
        return bool(conn.exec_driver_sql("PRAGMA foreign_keys").scalar())


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Sessions keep loaded attributes after commit; rows are mapped to DTOs afterwards."""
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create missing tables and stamp or verify the schema version.

    Raises:
        PersistenceError: SQLite foreign keys are off, or the database was
            written with a different schema version.
    """
    if not foreign_keys_enabled(engine):
        raise PersistenceError("SQLite foreign keys are off; run deletion would not cascade")

    Base.metadata.create_all(engine)

    with create_session_factory(engine)() as session:
        row = session.get(HarnessMetaRow, "schema_version")
        if row is None:
            session.add(HarnessMetaRow(key="schema_version", value=SCHEMA_VERSION))
            session.commit()
            logger.info("Initialized harness database (schema version %s)", SCHEMA_VERSION)
        elif row.value != SCHEMA_VERSION:
            raise PersistenceError(
                f"Database schema version {row.value} is not supported "
                f"(expected {SCHEMA_VERSION})"
            )
