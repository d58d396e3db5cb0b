"""Domain entities: Author, User, Book, and LoanRecord.

All entities are frozen dataclasses with constructor invariants. A
"mutation" is a new value built with :func:`dataclasses.replace`, which
re-runs ``__post_init__`` so every copy is validated the same way.

Library items form a tagged union over :class:`ItemKind`. ``Book`` is the
only variant today; code that handles items switches on ``item.kind``
rather than on class hierarchies.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import ClassVar

from lmsctl.domain.errors import InvalidArgumentError
from lmsctl.domain.lifecycle import LOAN_TRANSITIONS, LoanStatus, is_valid_transition
from lmsctl.domain.types import AvailabilityStatus, ItemKind


def _require(value: str, message: str) -> None:
    if not value:
        raise InvalidArgumentError(message)


@dataclass(frozen=True)
class Author:
    """A book author. Identity is ``id``."""

    id: str
    name: str

    def __post_init__(self) -> None:
        _require(self.id, "Author ID cannot be empty.")
        _require(self.name, "Author name cannot be empty.")

    def renamed(self, name: str) -> Author:
        return replace(self, name=name)


@dataclass(frozen=True)
class User:
    """A library patron."""

    id: str
    name: str

    def __post_init__(self) -> None:
        _require(self.id, "User ID cannot be empty.")
        _require(self.name, "User name cannot be empty.")

    def renamed(self, name: str) -> User:
        return replace(self, name=name)


@dataclass(frozen=True, kw_only=True)
class Book:
    """A catalog item of kind ``Book``.

    The author is held twice: ``author_id`` is the foreign key and is always
    present; ``author`` is the resolved value. Backends that store only the
    key may return ``author=None`` when the referenced author record has
    since been deleted.

    Attributes:
        id: Item ID (unique across the catalog).
        title: Display title.
        isbn: ISBN string, not validated beyond non-emptiness.
        publication_year: Positive year.
        availability_status: Current circulation status.
    """

    kind: ClassVar[ItemKind] = ItemKind.BOOK

    id: str
    title: str
    isbn: str
    publication_year: int
    author: Author | None = None
    author_id: str = ""
    availability_status: AvailabilityStatus = AvailabilityStatus.AVAILABLE

    def __post_init__(self) -> None:
        _require(self.id, "Book ID cannot be empty.")
        _require(self.title, "Book title cannot be empty.")
        if self.author is not None:
            if not self.author_id:
                object.__setattr__(self, "author_id", self.author.id)
            elif self.author_id != self.author.id:
                msg = (
                    f"Book author ID {self.author_id!r} does not match "
                    f"author {self.author.id!r}."
                )
                raise InvalidArgumentError(msg)
        _require(self.author_id, "Book author cannot be empty.")
        _require(self.isbn, "Book ISBN cannot be empty.")
        if self.publication_year <= 0:
            raise InvalidArgumentError("Publication year must be positive.")
        object.__setattr__(
            self, "availability_status", AvailabilityStatus(self.availability_status)
        )

    def with_status(self, status: AvailabilityStatus) -> Book:
        return replace(self, availability_status=status)

    def with_author(self, author: Author | None) -> Book:
        """Return a copy with the resolved author value swapped."""
        if author is None:
            return replace(self, author=None)
        return replace(self, author=author, author_id=author.id)


# Sum type over all item kinds. Extend with ``Book | Magazine | ...``.
LibraryItem = Book


@dataclass(frozen=True)
class LoanRecord:
    """One loan of one item to one user.

    Created active (no return date) by the loan workflow and closed exactly
    once by :meth:`mark_returned`.
    """

    record_id: str
    item_id: str
    user_id: str
    loan_date: datetime
    due_date: datetime
    return_date: datetime | None = field(default=None)

    def __post_init__(self) -> None:
        _require(self.record_id, "LoanRecord ID cannot be empty.")
        _require(self.item_id, "LoanRecord Item ID cannot be empty.")
        _require(self.user_id, "LoanRecord User ID cannot be empty.")
        if self.due_date < self.loan_date:
            raise InvalidArgumentError("Due date cannot be before loan date.")
        if self.return_date is not None and self.return_date < self.loan_date:
            raise InvalidArgumentError("Return date cannot be before loan date.")

    @property
    def is_active(self) -> bool:
        return self.return_date is None

    @property
    def status(self) -> LoanStatus:
        return LoanStatus.ACTIVE if self.is_active else LoanStatus.RETURNED

    def mark_returned(self, when: datetime) -> LoanRecord:
        """Close the loan. Returned records are terminal."""
        if not is_valid_transition(self.status, LoanStatus.RETURNED, LOAN_TRANSITIONS):
            msg = f"Loan record '{self.record_id}' has already been returned."
            raise InvalidArgumentError(msg)
        return replace(self, return_date=when)

    def reopened(self) -> LoanRecord:
        """Return the active form of this record (compensation only)."""
        return replace(self, return_date=None)
