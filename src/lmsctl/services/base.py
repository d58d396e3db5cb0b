"""BaseService: shared foundation for the catalog, user, and loan services.

Every service receives a :class:`PersistenceService` at construction time
and reads through it on every call. Services hold no entity state of their
own; the backend is the system of record.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from lmsctl.domain.errors import InvalidArgumentError

if TYPE_CHECKING:
    from lmsctl.infrastructure.persistence.base import PersistenceService


def require_id(value: str, label: str) -> None:
    """Raise InvalidArgumentError when *value* is empty."""
    if not value:
        raise InvalidArgumentError(f"{label} cannot be empty.")


class BaseService:
    """Base for service-layer classes.

    Usage::

        class CatalogService(BaseService):
            def find_item_by_id(self, item_id: str) -> LibraryItem | None:
                return self._persistence.load_library_item(item_id)
    """

    def __init__(self, persistence: PersistenceService) -> None:
        if persistence is None:
            raise InvalidArgumentError("Persistence service cannot be null.")
        self._persistence = persistence

    @property
    def persistence(self) -> PersistenceService:
        return self._persistence
