"""Loan lifecycle model.

A loan record has two states, derived from its return date:

- ``active``: no return date recorded yet.
- ``returned``: return date set. Terminal.
"""

from __future__ import annotations

from enum import StrEnum


class LoanStatus(StrEnum):
    """Computed status of a loan record."""

    ACTIVE = "active"
    RETURNED = "returned"


LOAN_TRANSITIONS: dict[str, list[str]] = {
    "active": ["returned"],
    "returned": [],
}


def is_valid_transition(
    current: str,
    target: str,
    transitions: dict[str, list[str]],
) -> bool:
    """Check if transitioning from *current* to *target* is allowed."""
    allowed = transitions.get(current, [])
    return target in allowed
