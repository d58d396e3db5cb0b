"""CatalogService: books and authors.

The catalog keeps no state between calls: every lookup goes through the
persistence backend, so the catalog and the loan workflow always agree on
an item's current status.
"""

from __future__ import annotations

import logging

from lmsctl.domain.entities import Author, Book, LibraryItem
from lmsctl.domain.errors import InvalidArgumentError, NotFoundError, OperationFailedError
from lmsctl.domain.types import AvailabilityStatus
from lmsctl.services.base import BaseService, require_id

logger = logging.getLogger(__name__)


class CatalogService(BaseService):
    """Adds, finds, updates, and removes catalog items."""

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def add_book(
        self,
        item_id: str,
        title: str,
        author_id: str,
        author_name: str,
        isbn: str,
        publication_year: int,
    ) -> Book:
        """Add a book, creating its author on first reference.

        An existing author is reused as stored; *author_name* only matters
        when the author is new.

        Raises:
            InvalidArgumentError: Empty ID/title/ISBN, non-positive year, or
                a new author without both ID and name.
            OperationFailedError: *item_id* already exists.
        """
        if not item_id or not title or not isbn:
            raise InvalidArgumentError("Book ID, title, and ISBN cannot be empty.")
        if publication_year <= 0:
            raise InvalidArgumentError("Publication year must be positive.")
        if self._persistence.load_library_item(item_id) is not None:
            raise OperationFailedError(f"Item with ID '{item_id}' already exists.")

        author = self._persistence.load_author(author_id) if author_id else None
        if author is None:
            if not author_id or not author_name:
                raise InvalidArgumentError(
                    "Author ID and name cannot be empty for new author."
                )
            author = Author(author_id, author_name)
            self._persistence.save_author(author)
            logger.debug("Created author %s", author_id)

        book = Book(
            id=item_id,
            title=title,
            author=author,
            isbn=isbn,
            publication_year=publication_year,
        )
        self._persistence.save_library_item(book)
        logger.debug("Added book %s", item_id)
        return book

    def remove_item(self, item_id: str) -> bool:
        """Delete an item. Returns False when no such item exists."""
        require_id(item_id, "Item ID")
        if self._persistence.load_library_item(item_id) is None:
            return False
        self._persistence.delete_library_item(item_id)
        logger.debug("Removed item %s", item_id)
        return True

    def find_item_by_id(self, item_id: str) -> LibraryItem | None:
        require_id(item_id, "Item ID")
        return self._persistence.load_library_item(item_id)

    def find_items_by_title(self, title: str) -> list[LibraryItem]:
        require_id(title, "Title")
        return [i for i in self._persistence.load_all_library_items() if i.title == title]

    def find_items_by_author(self, author_id: str) -> list[LibraryItem]:
        require_id(author_id, "Author ID")
        return [
            i for i in self._persistence.load_all_library_items() if i.author_id == author_id
        ]

    def get_all_items(self) -> list[LibraryItem]:
        return self._persistence.load_all_library_items()

    def update_item_status(self, item_id: str, status: AvailabilityStatus) -> LibraryItem:
        """Overwrite an item's availability status.

        Raises:
            NotFoundError: No item with *item_id*.
        """
        require_id(item_id, "Item ID")
        item = self._persistence.load_library_item(item_id)
        if item is None:
            raise NotFoundError(f"Item with ID '{item_id}' not found for status update.")
        updated = item.with_status(AvailabilityStatus(status))
        self._persistence.save_library_item(updated)
        logger.debug("Item %s status -> %s", item_id, updated.availability_status.label)
        return updated

    # ------------------------------------------------------------------
    # Authors
    # ------------------------------------------------------------------

    def find_author_by_id(self, author_id: str) -> Author | None:
        require_id(author_id, "Author ID")
        return self._persistence.load_author(author_id)

    def get_all_authors(self) -> list[Author]:
        return self._persistence.load_all_authors()
