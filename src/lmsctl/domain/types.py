"""Item kinds and availability enums."""

from __future__ import annotations

from enum import IntEnum, StrEnum


class ItemKind(StrEnum):
    """Discriminator for the library item union."""

    BOOK = "Book"


class AvailabilityStatus(IntEnum):
    """Circulation status of a library item.

    Persisted as its integer value. Only AVAILABLE and BORROWED are driven
    by the loan workflow; the others are set manually.
    """

    AVAILABLE = 0
    BORROWED = 1
    RESERVED = 2
    MAINTENANCE = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def parse(cls, value: str | int) -> AvailabilityStatus:
        """Resolve a status from its name (any case) or integer value."""
        if isinstance(value, int):
            return cls(value)
        text = value.strip()
        if text.lstrip("-").isdigit():
            return cls(int(text))
        return cls[text.upper()]
