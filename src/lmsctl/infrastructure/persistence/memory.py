"""In-memory backend: dicts keyed by ID, one coarse lock.

Every public method is a short critical section (lock, operate, copy out,
unlock). Saved entities are copied in and loaded entities are copied out,
so callers never hold a reference into internal storage. Authors get the
same treatment as every other aggregate.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from typing import TypeVar

from lmsctl.domain.entities import Author, LibraryItem, LoanRecord, User
from lmsctl.infrastructure.persistence.base import PersistenceService

_E = TypeVar("_E", Author, User, LoanRecord, LibraryItem)


def _copy(entity: _E) -> _E:
    return replace(entity)


class InMemoryPersistenceService(PersistenceService):
    """Volatile storage. Data is lost when the process exits."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._authors: dict[str, Author] = {}
        self._items: dict[str, LibraryItem] = {}
        self._users: dict[str, User] = {}
        self._loans: dict[str, LoanRecord] = {}

    # --- Author ---------------------------------------------------------

    def save_author(self, author: Author) -> None:
        with self._lock:
            self._authors[author.id] = _copy(author)

    def load_author(self, author_id: str) -> Author | None:
        with self._lock:
            author = self._authors.get(author_id)
            return _copy(author) if author is not None else None

    def load_all_authors(self) -> list[Author]:
        with self._lock:
            return [_copy(a) for a in self._authors.values()]

    def delete_author(self, author_id: str) -> None:
        with self._lock:
            self._authors.pop(author_id, None)

    # --- Library item ---------------------------------------------------

    def save_library_item(self, item: LibraryItem) -> None:
        with self._lock:
            self._items[item.id] = _copy(item)

    def _resolve(self, item: LibraryItem) -> LibraryItem:
        # Author names are read at load time so renames reach every item.
        author = self._authors.get(item.author_id)
        return item.with_author(_copy(author) if author is not None else None)

    def load_library_item(self, item_id: str) -> LibraryItem | None:
        with self._lock:
            item = self._items.get(item_id)
            return self._resolve(item) if item is not None else None

    def load_all_library_items(self) -> list[LibraryItem]:
        with self._lock:
            return [self._resolve(i) for i in self._items.values()]

    def delete_library_item(self, item_id: str) -> None:
        with self._lock:
            self._items.pop(item_id, None)

    # --- User -----------------------------------------------------------

    def save_user(self, user: User) -> None:
        with self._lock:
            self._users[user.id] = _copy(user)

    def load_user(self, user_id: str) -> User | None:
        with self._lock:
            user = self._users.get(user_id)
            return _copy(user) if user is not None else None

    def load_all_users(self) -> list[User]:
        with self._lock:
            return [_copy(u) for u in self._users.values()]

    def delete_user(self, user_id: str) -> None:
        with self._lock:
            self._users.pop(user_id, None)

    # --- Loan record ----------------------------------------------------

    def save_loan_record(self, record: LoanRecord) -> None:
        with self._lock:
            self._loans[record.record_id] = _copy(record)

    def load_loan_record(self, record_id: str) -> LoanRecord | None:
        with self._lock:
            record = self._loans.get(record_id)
            return _copy(record) if record is not None else None

    def load_all_loan_records(self) -> list[LoanRecord]:
        with self._lock:
            return [_copy(r) for r in self._loans.values()]

    def load_loan_records_by_user_id(self, user_id: str) -> list[LoanRecord]:
        with self._lock:
            return [_copy(r) for r in self._loans.values() if r.user_id == user_id]

    def load_loan_records_by_item_id(self, item_id: str) -> list[LoanRecord]:
        with self._lock:
            return [_copy(r) for r in self._loans.values() if r.item_id == item_id]

    def delete_loan_record(self, record_id: str) -> None:
        with self._lock:
            self._loans.pop(record_id, None)

    def describe(self) -> dict[str, object]:
        with self._lock:
            return {
                "backend": "memory",
                "authors": len(self._authors),
                "items": len(self._items),
                "users": len(self._users),
                "loans": len(self._loans),
            }
