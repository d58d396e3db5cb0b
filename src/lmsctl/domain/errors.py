"""Domain error taxonomy.

Every error raised by services and persistence backends derives from
:class:`LmsError`. Backends only raise :class:`OperationFailedError`, and
only for genuine I/O or driver failures; "not found" is always ``None``.
"""

from __future__ import annotations


class LmsError(Exception):
    """Base class for all library-management domain errors."""

    code = "LMS_ERROR"


class InvalidArgumentError(LmsError):
    """Caller-supplied input violates a precondition."""

    code = "INVALID_ARGUMENT"


class NotFoundError(LmsError):
    """A referenced entity does not exist where existence was required."""

    code = "NOT_FOUND"


class OperationFailedError(LmsError):
    """A conflict or environment failure (duplicate id, I/O, driver)."""

    code = "OPERATION_FAILED"
