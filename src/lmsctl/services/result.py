"""Result envelope and typed payloads for every lmsctl operation.

Services return domain objects and raise :class:`~lmsctl.domain.errors.LmsError`.
Commands turn the objects into payload models (:class:`UserPayload`,
:class:`ItemPayload`, :class:`LoanPayload`, ...) and ``AppContext.run``
wraps the dumped payload, or the error, in a :class:`ServiceResult`. The
renderers and ``--json`` only ever see that envelope.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from lmsctl.domain.clock import DATE_FORMAT, DATETIME_FORMAT

if TYPE_CHECKING:
    from collections.abc import Iterable

    from lmsctl.domain.entities import Author, LibraryItem, LoanRecord, User
    from lmsctl.domain.errors import LmsError
    from lmsctl.services.loan import OverdueNotice


class Payload(BaseModel):
    """Base for the typed data of a successful result."""

    model_config = ConfigDict(frozen=True)


class AuthorPayload(Payload):
    id: str
    name: str

    @classmethod
    def of(cls, author: Author) -> AuthorPayload:
        return cls(id=author.id, name=author.name)


class UserPayload(Payload):
    id: str
    name: str

    @classmethod
    def of(cls, user: User) -> UserPayload:
        return cls(id=user.id, name=user.name)


class ItemPayload(Payload):
    """A catalog item; ``author_name`` is None when the author record is gone."""

    id: str
    kind: str
    title: str
    author_id: str
    author_name: str | None
    isbn: str
    publication_year: int
    status: str

    @classmethod
    def of(cls, item: LibraryItem) -> ItemPayload:
        return cls(
            id=item.id,
            kind=str(item.kind),
            title=item.title,
            author_id=item.author_id,
            author_name=item.author.name if item.author is not None else None,
            isbn=item.isbn,
            publication_year=item.publication_year,
            status=item.availability_status.label,
        )


class LoanPayload(Payload):
    """A loan record with its timestamps already formatted for display."""

    id: str
    item_id: str
    user_id: str
    loan_date: str
    due_date: str
    return_date: str | None
    status: str

    @classmethod
    def of(cls, record: LoanRecord) -> LoanPayload:
        returned = record.return_date
        return cls(
            id=record.record_id,
            item_id=record.item_id,
            user_id=record.user_id,
            loan_date=record.loan_date.strftime(DATETIME_FORMAT),
            due_date=record.due_date.strftime(DATE_FORMAT),
            return_date=returned.strftime(DATETIME_FORMAT) if returned else None,
            status=str(record.status),
        )


class OverdueNoticePayload(Payload):
    record_id: str
    user_id: str
    user_name: str
    item_id: str
    item_title: str
    due_date: str
    message: str

    @classmethod
    def of(cls, notice: OverdueNotice) -> OverdueNoticePayload:
        return cls(
            record_id=notice.record_id,
            user_id=notice.user_id,
            user_name=notice.user_name,
            item_id=notice.item_id,
            item_title=notice.item_title,
            due_date=notice.due_date.strftime(DATE_FORMAT),
            message=notice.message,
        )


def listing(rows: Iterable[Payload], *, key: str = "items") -> dict[str, Any]:
    """Dump *rows* under *key* together with their count."""
    dumped = [row.model_dump() for row in rows]
    return {key: dumped, "count": len(dumped)}


class ServiceError(BaseModel):
    """Error half of a failed ServiceResult, keyed by the LmsError code."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_exception(cls, exc: LmsError) -> ServiceError:
        return cls(code=exc.code, message=str(exc))


class ServiceResult(BaseModel):
    """Outcome of one CLI operation.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the operation (e.g. ``"borrow_item"``).
        data: Dumped payload on success.
        warnings: Non-fatal issues, printed to stderr after the output.
        error: Set exactly when ``ok`` is False.
    """

    model_config = ConfigDict(frozen=True)

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None

    @classmethod
    def success(cls, op: str, data: Payload | dict[str, Any]) -> ServiceResult:
        if isinstance(data, Payload):
            data = data.model_dump()
        return cls(ok=True, op=op, data=data)

    @classmethod
    def failure(cls, op: str, exc: LmsError) -> ServiceResult:
        return cls(ok=False, op=op, error=ServiceError.from_exception(exc))
