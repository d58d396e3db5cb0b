"""Caching-hybrid backend: in-memory for live traffic, CSV for checkpoints.

Reads and writes go to an :class:`InMemoryPersistenceService` only; there is
no write-through. The CSV files are touched in exactly two places:

- :meth:`CachingFilePersistenceService.load_all_from_file_to_memory`: full
  reload on construction (and on demand), discarding memory state.
- :meth:`CachingFilePersistenceService.persist_all_to_file`: upserts every
  in-memory record into the files. Records deleted from memory stay in the
  files.

Neither bulk operation is excluded against concurrent live traffic; callers
serialize them (the CLI is single-threaded).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from lmsctl.domain.clock import Clock
from lmsctl.domain.entities import Author, LibraryItem, LoanRecord, User
from lmsctl.infrastructure.persistence.base import PersistenceService
from lmsctl.infrastructure.persistence.csv_file import CsvPersistenceService, SkippedRecord
from lmsctl.infrastructure.persistence.memory import InMemoryPersistenceService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PersistReport:
    """Per-aggregate counts for a bulk load or persist."""

    authors: int = 0
    users: int = 0
    items: int = 0
    loans: int = 0
    skipped: list[SkippedRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "authors": self.authors,
            "users": self.users,
            "items": self.items,
            "loans": self.loans,
            "skipped": [
                {"file": s.filename, "line": s.line_number, "reason": s.reason}
                for s in self.skipped
            ],
        }


class CachingFilePersistenceService(PersistenceService):
    """In-memory store loaded from, and checkpointed to, a CSV directory."""

    def __init__(
        self,
        data_dir: Path | str,
        clock: Clock | None = None,
        *,
        strict: bool = False,
    ) -> None:
        self._file_store = CsvPersistenceService(data_dir, clock, strict=strict)
        self._memory_store = InMemoryPersistenceService()
        self.load_all_from_file_to_memory()

    # ------------------------------------------------------------------
    # Bulk operations
    # ------------------------------------------------------------------

    def load_all_from_file_to_memory(self) -> PersistReport:
        """Replace memory state with the file contents.

        Authors load before items, and users and items before loans, so
        references resolve in dependency order.
        """
        logger.debug("Loading data from %s into memory", self._file_store.data_dir)
        self._file_store.clear_skipped_records()
        memory = InMemoryPersistenceService()

        authors = self._file_store.load_all_authors()
        for author in authors:
            memory.save_author(author)
        users = self._file_store.load_all_users()
        for user in users:
            memory.save_user(user)
        items = self._file_store.load_all_library_items()
        for item in items:
            memory.save_library_item(item)
        loans = self._file_store.load_all_loan_records()
        for loan in loans:
            memory.save_loan_record(loan)

        self._memory_store = memory
        report = PersistReport(
            authors=len(authors),
            users=len(users),
            items=len(items),
            loans=len(loans),
            skipped=self._file_store.skipped_records,
        )
        logger.debug(
            "Loaded %d authors, %d users, %d items, %d loans",
            report.authors,
            report.users,
            report.items,
            report.loans,
        )
        return report

    def persist_all_to_file(self) -> PersistReport:
        """Upsert every in-memory record into the CSV files."""
        logger.debug("Persisting in-memory data to %s", self._file_store.data_dir)
        authors = self._memory_store.load_all_authors()
        for author in authors:
            self._file_store.save_author(author)
        users = self._memory_store.load_all_users()
        for user in users:
            self._file_store.save_user(user)
        items = self._memory_store.load_all_library_items()
        for item in items:
            self._file_store.save_library_item(item)
        loans = self._memory_store.load_all_loan_records()
        for loan in loans:
            self._file_store.save_loan_record(loan)
        return PersistReport(
            authors=len(authors),
            users=len(users),
            items=len(items),
            loans=len(loans),
        )

    # ------------------------------------------------------------------
    # Contract, delegated to memory
    # ------------------------------------------------------------------

    def save_author(self, author: Author) -> None:
        self._memory_store.save_author(author)

    def load_author(self, author_id: str) -> Author | None:
        return self._memory_store.load_author(author_id)

    def load_all_authors(self) -> list[Author]:
        return self._memory_store.load_all_authors()

    def delete_author(self, author_id: str) -> None:
        self._memory_store.delete_author(author_id)

    def save_library_item(self, item: LibraryItem) -> None:
        self._memory_store.save_library_item(item)

    def load_library_item(self, item_id: str) -> LibraryItem | None:
        return self._memory_store.load_library_item(item_id)

    def load_all_library_items(self) -> list[LibraryItem]:
        return self._memory_store.load_all_library_items()

    def delete_library_item(self, item_id: str) -> None:
        self._memory_store.delete_library_item(item_id)

    def save_user(self, user: User) -> None:
        self._memory_store.save_user(user)

    def load_user(self, user_id: str) -> User | None:
        return self._memory_store.load_user(user_id)

    def load_all_users(self) -> list[User]:
        return self._memory_store.load_all_users()

    def delete_user(self, user_id: str) -> None:
        self._memory_store.delete_user(user_id)

    def save_loan_record(self, record: LoanRecord) -> None:
        self._memory_store.save_loan_record(record)

    def update_loan_record(self, record: LoanRecord) -> None:
        self._memory_store.update_loan_record(record)

    def load_loan_record(self, record_id: str) -> LoanRecord | None:
        return self._memory_store.load_loan_record(record_id)

    def load_loan_records_by_user_id(self, user_id: str) -> list[LoanRecord]:
        return self._memory_store.load_loan_records_by_user_id(user_id)

    def load_loan_records_by_item_id(self, item_id: str) -> list[LoanRecord]:
        return self._memory_store.load_loan_records_by_item_id(item_id)

    def load_all_loan_records(self) -> list[LoanRecord]:
        return self._memory_store.load_all_loan_records()

    def delete_loan_record(self, record_id: str) -> None:
        self._memory_store.delete_loan_record(record_id)

    def describe(self) -> dict[str, object]:
        info = self._memory_store.describe()
        info.update(backend="caching", data_dir=str(self._file_store.data_dir))
        return info
