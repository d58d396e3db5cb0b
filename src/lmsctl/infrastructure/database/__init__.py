"""Relational database engine and schema via SQLAlchemy Core."""

from lmsctl.infrastructure.database.engine import (
    create_db_engine,
    default_database_url,
    init_database,
)
from lmsctl.infrastructure.database.schema import (
    authors,
    library_items,
    loan_records,
    metadata,
    users,
)

__all__ = [
    "authors",
    "create_db_engine",
    "default_database_url",
    "init_database",
    "library_items",
    "loan_records",
    "metadata",
    "users",
]
