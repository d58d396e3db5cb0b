"""Loan record ID generation.

Loan IDs have the form ``loan_<n>`` with a monotonically increasing
counter. The counter is guarded by its own lock, independent of any
persistence lock, so concurrent borrows never share an ID.

INVARIANT: IDs are permanent. Once issued, an ID is never reused by the
same generator.
"""

from __future__ import annotations

import re
import threading
from collections.abc import Callable, Iterable

LOAN_ID_PREFIX = "loan_"
LOAN_ID_PATTERN = re.compile(r"^loan_(\d+)$")


def parse_loan_number(record_id: str) -> int | None:
    """Extract the counter from a ``loan_<n>`` ID, or None for foreign IDs."""
    match = LOAN_ID_PATTERN.match(record_id)
    if match is None:
        return None
    return int(match.group(1))


class LoanIdGenerator:
    """Thread-safe ``loan_<n>`` generator.

    Args:
        seed: Optional callable returning the IDs already issued. It is
            consulted once, on first use, and the counter resumes after the
            highest ``loan_<n>`` found. Foreign IDs are ignored.
    """

    def __init__(self, seed: Callable[[], Iterable[str]] | None = None) -> None:
        self._lock = threading.Lock()
        self._counter = 0
        self._seed = seed
        self._seeded = seed is None

    def next_id(self) -> str:
        with self._lock:
            if not self._seeded:
                numbers = [parse_loan_number(rid) for rid in self._seed()]  # type: ignore[misc]
                self._counter = max((n for n in numbers if n is not None), default=0)
                self._seeded = True
            self._counter += 1
            return f"{LOAN_ID_PREFIX}{self._counter}"
