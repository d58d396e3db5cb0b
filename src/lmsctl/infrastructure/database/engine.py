"""Database engine setup for the relational backend.

Any SQLAlchemy URL works; the default is a SQLite file under the data
directory. SQLAlchemy Core (not ORM) is used because lmsctl is a
short-lived CLI process with no benefit from session management or
identity maps.

Tables are created with ``metadata.create_all``. There are no migrations.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from lmsctl.infrastructure.database.schema import metadata

DB_FILENAME = "lms.db"


def default_database_url(data_dir: Path) -> str:
    """SQLite URL for ``{data_dir}/lms.db``."""
    return f"sqlite:///{data_dir / DB_FILENAME}"


def create_db_engine(url: str) -> Engine:
    """Create an engine for *url*. SQLite file databases use WAL mode."""
    engine = create_engine(url, echo=False)

    if engine.dialect.name == "sqlite" and engine.url.database not in (None, "", ":memory:"):

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    return engine


def init_database(engine: Engine) -> Engine:
    """Create all tables. Idempotent: safe to call on an existing database."""
    metadata.create_all(engine)
    return engine
