"""Persistence contract, its four backends, and the backend factory."""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path

from lmsctl.domain.clock import Clock
from lmsctl.domain.errors import InvalidArgumentError
from lmsctl.infrastructure.database.engine import default_database_url
from lmsctl.infrastructure.persistence.base import PersistenceService
from lmsctl.infrastructure.persistence.caching import (
    CachingFilePersistenceService,
    PersistReport,
)
from lmsctl.infrastructure.persistence.csv_file import CsvPersistenceService, SkippedRecord
from lmsctl.infrastructure.persistence.memory import InMemoryPersistenceService
from lmsctl.infrastructure.persistence.relational import SqlPersistenceService


class BackendKind(StrEnum):
    """Selectable persistence backends."""

    MEMORY = "memory"
    FILE = "file"
    CACHING = "caching"
    SQL = "sql"


def create_persistence(
    backend: str,
    data_dir: Path,
    *,
    database_url: str | None = None,
    strict_csv: bool = False,
    clock: Clock | None = None,
) -> PersistenceService:
    """Build the persistence backend named *backend*.

    File-based backends store their CSV files in *data_dir*. The SQL
    backend defaults to a SQLite database inside *data_dir* when no
    *database_url* is given.
    """
    try:
        kind = BackendKind(backend)
    except ValueError:
        choices = ", ".join(k.value for k in BackendKind)
        msg = f"Unknown persistence backend {backend!r}. Expected one of: {choices}"
        raise InvalidArgumentError(msg) from None

    if kind is BackendKind.MEMORY:
        return InMemoryPersistenceService()
    if kind is BackendKind.FILE:
        return CsvPersistenceService(data_dir, clock, strict=strict_csv)
    if kind is BackendKind.CACHING:
        return CachingFilePersistenceService(data_dir, clock, strict=strict_csv)
    if database_url is None:
        data_dir.mkdir(parents=True, exist_ok=True)
        database_url = default_database_url(data_dir)
    return SqlPersistenceService(database_url, clock)


__all__ = [
    "BackendKind",
    "CachingFilePersistenceService",
    "CsvPersistenceService",
    "InMemoryPersistenceService",
    "PersistReport",
    "PersistenceService",
    "SkippedRecord",
    "SqlPersistenceService",
    "create_persistence",
]
