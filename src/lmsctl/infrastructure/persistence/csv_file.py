"""CSV file backend: one headerless file per aggregate.

File layouts (comma-delimited, no header row)::

    authors.csv  id,name
    users.csv    id,name
    items.csv    id,Book,title,authorId,isbn,publicationYear,status(0-3)
    loans.csv    recordId,itemId,userId,loanDate,dueDate,returnDate

Dates use ``YYYY-MM-DD HH:MM:SS``; ``returnDate`` is empty while a loan is
active. Commas, double quotes, line feeds and carriage returns inside values
are swapped for the control bytes 0x1E, 0x1F, 0x1C and 0x1D before writing
and swapped back on read, so no CSV quoting is ever needed. Text that
already contains those bytes does not survive the round trip.

Every mutation rewrites the whole file. An in-process lock serializes the
read-modify-write cycle; concurrent writers in other processes can still
lose updates, so the directory must only be used by one process at a time.

Malformed records are skipped with a warning (lenient, the default) or
raise :class:`OperationFailedError` (``strict=True``). A line that is not
valid UTF-8 is a malformed record like any other; its bytes are kept as
they are when the file is rewritten. Skipped records are kept in
:attr:`CsvPersistenceService.skipped_records`, once per line.
"""

from __future__ import annotations

import csv
import os
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TypeVar

import structlog

from lmsctl.domain.clock import DATETIME_FORMAT, Clock
from lmsctl.domain.entities import Author, Book, LibraryItem, LoanRecord, User
from lmsctl.domain.errors import InvalidArgumentError, OperationFailedError
from lmsctl.domain.types import AvailabilityStatus, ItemKind
from lmsctl.infrastructure.persistence.base import PersistenceService

logger = structlog.get_logger(__name__)

COMMA_PLACEHOLDER = "\x1e"
QUOTE_PLACEHOLDER = "\x1f"
LF_PLACEHOLDER = "\x1c"
CR_PLACEHOLDER = "\x1d"

_ESCAPES = (
    ('"', QUOTE_PLACEHOLDER),
    (",", COMMA_PLACEHOLDER),
    ("\n", LF_PLACEHOLDER),
    ("\r", CR_PLACEHOLDER),
)

AUTHORS_FILE = "authors.csv"
USERS_FILE = "users.csv"
ITEMS_FILE = "items.csv"
LOANS_FILE = "loans.csv"

_T = TypeVar("_T")
Row = list[str]


def escape_field(value: str) -> str:
    for char, placeholder in _ESCAPES:
        value = value.replace(char, placeholder)
    return value


def unescape_field(value: str) -> str:
    for char, placeholder in _ESCAPES:
        value = value.replace(placeholder, char)
    return value


@dataclass(frozen=True)
class SkippedRecord:
    """A CSV line dropped from a load result."""

    filename: str
    line_number: int
    reason: str


class _RecordError(Exception):
    """Internal: a single CSV row could not be turned into an entity."""


def _require_utf8(fields: Row) -> None:
    for field in fields:
        try:
            field.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise _RecordError("line is not valid UTF-8") from exc


class CsvPersistenceService(PersistenceService):
    """File-backed storage in *data_dir*.

    Args:
        data_dir: Directory holding the four CSV files. Created if missing.
        clock: Date formatter/parser for loan timestamps.
        strict: Raise on malformed records instead of skipping them.
    """

    def __init__(
        self,
        data_dir: Path | str,
        clock: Clock | None = None,
        *,
        strict: bool = False,
    ) -> None:
        if not str(data_dir):
            raise InvalidArgumentError("Data directory path cannot be empty.")
        self._dir = Path(data_dir)
        self._clock = clock or Clock()
        self._strict = strict
        self._lock = threading.RLock()
        self._skipped: list[SkippedRecord] = []
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            msg = f"Could not create data directory {self._dir}: {exc}"
            raise OperationFailedError(msg) from exc

    @property
    def data_dir(self) -> Path:
        return self._dir

    @property
    def skipped_records(self) -> list[SkippedRecord]:
        """Records dropped by lenient loads since the last clear."""
        with self._lock:
            return list(self._skipped)

    def clear_skipped_records(self) -> None:
        with self._lock:
            self._skipped.clear()

    # ------------------------------------------------------------------
    # Raw file I/O
    # ------------------------------------------------------------------

    def _read_rows(self, filename: str) -> list[tuple[int, Row]]:
        """Read ``(line_number, fields)`` pairs. A missing file is empty."""
        path = self._dir / filename
        if not path.exists():
            return []
        try:
            with path.open(newline="", encoding="utf-8", errors="surrogateescape") as fh:
                reader = csv.reader(fh, quoting=csv.QUOTE_NONE)
                return [
                    (reader.line_num, [unescape_field(f) for f in row])
                    for row in reader
                    if row
                ]
        except (OSError, csv.Error) as exc:
            msg = f"Could not read file {path}: {exc}"
            raise OperationFailedError(msg) from exc

    def _write_rows(self, filename: str, rows: Sequence[Row]) -> None:
        """Rewrite *filename* in full. The old file survives a failed write."""
        path = self._dir / filename
        tmp_path = path.with_name(f"{filename}.tmp")
        try:
            with tmp_path.open("w", newline="", encoding="utf-8", errors="surrogateescape") as fh:
                writer = csv.writer(fh, quoting=csv.QUOTE_NONE, lineterminator="\n")
                for row in rows:
                    writer.writerow([escape_field(f) for f in row])
            os.replace(tmp_path, path)
        except (OSError, csv.Error) as exc:
            tmp_path.unlink(missing_ok=True)
            msg = f"Could not write file {path}: {exc}"
            raise OperationFailedError(msg) from exc

    def _upsert(self, filename: str, row: Row) -> None:
        with self._lock:
            rows = [fields for _, fields in self._read_rows(filename)]
            for idx, fields in enumerate(rows):
                if fields and fields[0] == row[0]:
                    rows[idx] = row
                    break
            else:
                rows.append(row)
            self._write_rows(filename, rows)

    def _delete(self, filename: str, key: str) -> None:
        with self._lock:
            rows = [fields for _, fields in self._read_rows(filename)]
            kept = [fields for fields in rows if not (fields and fields[0] == key)]
            if len(kept) != len(rows):
                self._write_rows(filename, kept)

    # ------------------------------------------------------------------
    # Parsing with skip policy
    # ------------------------------------------------------------------

    def _skip(self, filename: str, line_number: int, reason: str) -> None:
        if self._strict:
            msg = f"Malformed record in {filename} line {line_number}: {reason}"
            raise OperationFailedError(msg)
        record = SkippedRecord(filename, line_number, reason)
        with self._lock:
            if record in self._skipped:
                return
            self._skipped.append(record)
        logger.warning(
            "Skipping malformed record",
            file=filename,
            line=line_number,
            reason=reason,
        )

    def _load(
        self,
        filename: str,
        parse: Callable[[Row], _T],
        *,
        key: str | None = None,
    ) -> list[_T]:
        """Parse every row of *filename* (or only the row keyed *key*)."""
        result: list[_T] = []
        with self._lock:
            rows = self._read_rows(filename)
            if key is None:
                # A full read replaces what earlier reads reported for this file.
                self._skipped = [s for s in self._skipped if s.filename != filename]
        for line_number, fields in rows:
            if key is not None and fields[0] != key:
                continue
            try:
                _require_utf8(fields)
                result.append(parse(fields))
            except (_RecordError, InvalidArgumentError, ValueError) as exc:
                self._skip(filename, line_number, str(exc))
        return result

    def _parse_datetime(self, text: str, label: str) -> datetime:
        parsed = self._clock.parse_date(text, DATETIME_FORMAT)
        if parsed is None:
            msg = f"invalid {label} {text!r}"
            raise _RecordError(msg)
        return parsed

    def _format_datetime(self, ts: datetime) -> str:
        return self._clock.format_datetime(ts, DATETIME_FORMAT)

    @staticmethod
    def _expect_fields(fields: Row, count: int) -> None:
        if len(fields) != count:
            msg = f"expected {count} fields, found {len(fields)}"
            raise _RecordError(msg)

    # ------------------------------------------------------------------
    # Author
    # ------------------------------------------------------------------

    def _parse_author(self, fields: Row) -> Author:
        self._expect_fields(fields, 2)
        return Author(fields[0], fields[1])

    def save_author(self, author: Author) -> None:
        self._upsert(AUTHORS_FILE, [author.id, author.name])

    def load_author(self, author_id: str) -> Author | None:
        found = self._load(AUTHORS_FILE, self._parse_author, key=author_id)
        return found[0] if found else None

    def load_all_authors(self) -> list[Author]:
        return self._load(AUTHORS_FILE, self._parse_author)

    def delete_author(self, author_id: str) -> None:
        self._delete(AUTHORS_FILE, author_id)

    # ------------------------------------------------------------------
    # Library item
    # ------------------------------------------------------------------

    def _parse_item(self, fields: Row) -> LibraryItem:
        if len(fields) < 2 or fields[1] != ItemKind.BOOK:
            kind = fields[1] if len(fields) > 1 else ""
            msg = f"unsupported item type {kind!r}"
            raise _RecordError(msg)
        self._expect_fields(fields, 7)
        item_id, _, title, author_id, isbn, year, status = fields
        author: Author | None = None
        if author_id:
            author = self.load_author(author_id)
            if author is None:
                logger.warning(
                    "Author not found for book",
                    author_id=author_id,
                    item_id=item_id,
                )
        return Book(
            id=item_id,
            title=title,
            author=author,
            author_id=author_id,
            isbn=isbn,
            publication_year=int(year),
            availability_status=AvailabilityStatus(int(status)),
        )

    def save_library_item(self, item: LibraryItem) -> None:
        row = [
            item.id,
            str(item.kind),
            item.title,
            item.author_id,
            item.isbn,
            str(item.publication_year),
            str(int(item.availability_status)),
        ]
        self._upsert(ITEMS_FILE, row)

    def load_library_item(self, item_id: str) -> LibraryItem | None:
        found = self._load(ITEMS_FILE, self._parse_item, key=item_id)
        return found[0] if found else None

    def load_all_library_items(self) -> list[LibraryItem]:
        return self._load(ITEMS_FILE, self._parse_item)

    def delete_library_item(self, item_id: str) -> None:
        self._delete(ITEMS_FILE, item_id)

    # ------------------------------------------------------------------
    # User
    # ------------------------------------------------------------------

    def _parse_user(self, fields: Row) -> User:
        self._expect_fields(fields, 2)
        return User(fields[0], fields[1])

    def save_user(self, user: User) -> None:
        self._upsert(USERS_FILE, [user.id, user.name])

    def load_user(self, user_id: str) -> User | None:
        found = self._load(USERS_FILE, self._parse_user, key=user_id)
        return found[0] if found else None

    def load_all_users(self) -> list[User]:
        return self._load(USERS_FILE, self._parse_user)

    def delete_user(self, user_id: str) -> None:
        self._delete(USERS_FILE, user_id)

    # ------------------------------------------------------------------
    # Loan record
    # ------------------------------------------------------------------

    def _parse_loan(self, fields: Row) -> LoanRecord:
        self._expect_fields(fields, 6)
        record_id, item_id, user_id, loan, due, returned = fields
        return LoanRecord(
            record_id=record_id,
            item_id=item_id,
            user_id=user_id,
            loan_date=self._parse_datetime(loan, "loan date"),
            due_date=self._parse_datetime(due, "due date"),
            return_date=self._parse_datetime(returned, "return date") if returned else None,
        )

    def save_loan_record(self, record: LoanRecord) -> None:
        returned = record.return_date
        row = [
            record.record_id,
            record.item_id,
            record.user_id,
            self._format_datetime(record.loan_date),
            self._format_datetime(record.due_date),
            self._format_datetime(returned) if returned is not None else "",
        ]
        self._upsert(LOANS_FILE, row)

    def load_loan_record(self, record_id: str) -> LoanRecord | None:
        found = self._load(LOANS_FILE, self._parse_loan, key=record_id)
        return found[0] if found else None

    def load_all_loan_records(self) -> list[LoanRecord]:
        return self._load(LOANS_FILE, self._parse_loan)

    def delete_loan_record(self, record_id: str) -> None:
        self._delete(LOANS_FILE, record_id)

    def describe(self) -> dict[str, object]:
        return {
            "backend": "file",
            "data_dir": str(self._dir),
            "strict": self._strict,
            "skipped_records": len(self.skipped_records),
        }
