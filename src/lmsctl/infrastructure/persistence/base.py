"""PersistenceService: the storage contract shared by every backend.

Four aggregates (Author, LibraryItem, User, LoanRecord) with uniform
semantics:

- ``save_*`` upserts by primary key.
- ``load_*`` returns ``None`` when no record exists. Never raises for
  "not found".
- ``load_all_*`` returns every record in the backend's own stable order.
- ``delete_*`` is idempotent.

Backends raise :class:`~lmsctl.domain.errors.OperationFailedError` for I/O
or driver failures only.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager

from lmsctl.domain.entities import Author, LibraryItem, LoanRecord, User


class PersistenceService(ABC):
    """Abstract base for all persistence backends."""

    #: True when begin/commit/rollback give real atomicity.
    supports_transactions: bool = False

    # --- Author ---------------------------------------------------------

    @abstractmethod
    def save_author(self, author: Author) -> None: ...

    @abstractmethod
    def load_author(self, author_id: str) -> Author | None: ...

    @abstractmethod
    def load_all_authors(self) -> list[Author]: ...

    @abstractmethod
    def delete_author(self, author_id: str) -> None: ...

    # --- Library item ---------------------------------------------------

    @abstractmethod
    def save_library_item(self, item: LibraryItem) -> None: ...

    @abstractmethod
    def load_library_item(self, item_id: str) -> LibraryItem | None: ...

    @abstractmethod
    def load_all_library_items(self) -> list[LibraryItem]: ...

    @abstractmethod
    def delete_library_item(self, item_id: str) -> None: ...

    # --- User -----------------------------------------------------------

    @abstractmethod
    def save_user(self, user: User) -> None: ...

    @abstractmethod
    def load_user(self, user_id: str) -> User | None: ...

    @abstractmethod
    def load_all_users(self) -> list[User]: ...

    @abstractmethod
    def delete_user(self, user_id: str) -> None: ...

    # --- Loan record ----------------------------------------------------

    @abstractmethod
    def save_loan_record(self, record: LoanRecord) -> None: ...

    @abstractmethod
    def load_loan_record(self, record_id: str) -> LoanRecord | None: ...

    @abstractmethod
    def load_all_loan_records(self) -> list[LoanRecord]: ...

    @abstractmethod
    def delete_loan_record(self, record_id: str) -> None: ...

    def update_loan_record(self, record: LoanRecord) -> None:
        """Upsert a loan record. Same semantics as :meth:`save_loan_record`."""
        self.save_loan_record(record)

    def load_loan_records_by_user_id(self, user_id: str) -> list[LoanRecord]:
        return [r for r in self.load_all_loan_records() if r.user_id == user_id]

    def load_loan_records_by_item_id(self, item_id: str) -> list[LoanRecord]:
        return [r for r in self.load_all_loan_records() if r.item_id == item_id]

    # --- Transactions and lifecycle ---------------------------------------

    def begin_transaction(self) -> None:
        """Start a transaction. No-op unless ``supports_transactions``."""

    def commit_transaction(self) -> None:
        """Commit the open transaction. No-op unless ``supports_transactions``."""

    def rollback_transaction(self) -> None:
        """Roll back the open transaction. No-op unless ``supports_transactions``."""

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run the block in a transaction: commit on success, roll back on error."""
        self.begin_transaction()
        try:
            yield
        except BaseException:
            self.rollback_transaction()
            raise
        self.commit_transaction()

    def close(self) -> None:
        """Release backend resources."""

    def describe(self) -> dict[str, object]:
        """Backend summary for ``storage info``."""
        return {"backend": type(self).__name__}
