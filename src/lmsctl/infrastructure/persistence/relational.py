"""Relational backend over SQLAlchemy Core.

Each aggregate maps to one table (see :mod:`lmsctl.infrastructure.database.schema`).
Saves are merge-on-key upserts with bound parameters: native
``INSERT ... ON CONFLICT DO UPDATE`` on SQLite and PostgreSQL, otherwise an
UPDATE followed by an INSERT when no row matched.

Connection model:

- The connection is opened lazily on first use and reused afterwards.
- Auto-commit is the default: each operation runs in its own short
  transaction.
- :meth:`SqlPersistenceService.begin_transaction` suspends auto-commit until
  :meth:`commit_transaction` or :meth:`rollback_transaction`. Transactions do
  not nest.
- A dedicated lock serializes connection acquisition and transaction state.
- :meth:`close` rolls back any open transaction and closes the connection.

Driver errors are re-raised as :class:`OperationFailedError` with the
original message appended.
"""

from __future__ import annotations

import contextlib
import threading
from collections.abc import Iterator
from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import Table, delete, insert, select, update
from sqlalchemy.engine import make_url
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from lmsctl.domain.clock import DATETIME_FORMAT, Clock
from lmsctl.domain.entities import Author, Book, LibraryItem, LoanRecord, User
from lmsctl.domain.errors import InvalidArgumentError, OperationFailedError
from lmsctl.domain.types import AvailabilityStatus, ItemKind
from lmsctl.infrastructure.database.engine import create_db_engine, init_database
from lmsctl.infrastructure.database.schema import authors, library_items, loan_records, users
from lmsctl.infrastructure.persistence.base import PersistenceService

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection, Engine, Row, RootTransaction

logger = structlog.get_logger(__name__)

_NATIVE_UPSERT = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class SqlPersistenceService(PersistenceService):
    """Storage in a relational database reached through SQLAlchemy.

    Args:
        url: SQLAlchemy database URL (e.g. ``sqlite:///lms_data/lms.db``).
        clock: Date formatter/parser for loan timestamps.
        engine: Pre-built engine to use instead of creating one from *url*.
            The caller keeps ownership and disposes it.
    """

    supports_transactions = True

    def __init__(
        self,
        url: str,
        clock: Clock | None = None,
        *,
        engine: Engine | None = None,
    ) -> None:
        if not url and engine is None:
            raise InvalidArgumentError("Database URL cannot be empty.")
        self._url = url
        self._clock = clock or Clock()
        self._engine = engine
        self._owns_engine = engine is None
        self._conn: Connection | None = None
        self._txn: RootTransaction | None = None
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Connection and transaction management
    # ------------------------------------------------------------------

    def _connection(self) -> Connection:
        """Return the shared connection, connecting on first use. Lock held."""
        if self._conn is not None and not self._conn.closed:
            return self._conn
        try:
            if self._engine is None:
                self._engine = create_db_engine(self._url)
            init_database(self._engine)
            self._conn = self._engine.connect()
        except SQLAlchemyError as exc:
            msg = f"Failed to connect to database: {exc}"
            raise OperationFailedError(msg) from exc
        logger.debug("Connected to database", dialect=self._conn.dialect.name)
        return self._conn

    @contextlib.contextmanager
    def _session(self) -> Iterator[Connection]:
        """Yield the connection inside the open transaction or a fresh one."""
        with self._lock:
            conn = self._connection()
            try:
                if self._txn is not None:
                    yield conn
                else:
                    with conn.begin():
                        yield conn
            except SQLAlchemyError as exc:
                msg = f"Database operation failed: {exc}"
                raise OperationFailedError(msg) from exc

    @property
    def in_transaction(self) -> bool:
        with self._lock:
            return self._txn is not None

    def begin_transaction(self) -> None:
        with self._lock:
            if self._txn is not None:
                raise OperationFailedError("A transaction is already in progress.")
            conn = self._connection()
            try:
                self._txn = conn.begin()
            except SQLAlchemyError as exc:
                msg = f"Failed to begin transaction: {exc}"
                raise OperationFailedError(msg) from exc

    def commit_transaction(self) -> None:
        with self._lock:
            txn, self._txn = self._txn, None
            if txn is None:
                return
            try:
                txn.commit()
            except SQLAlchemyError as exc:
                msg = f"Failed to commit transaction: {exc}"
                raise OperationFailedError(msg) from exc

    def rollback_transaction(self) -> None:
        with self._lock:
            txn, self._txn = self._txn, None
            if txn is None:
                return
            try:
                txn.rollback()
            except SQLAlchemyError as exc:
                msg = f"Failed to roll back transaction: {exc}"
                raise OperationFailedError(msg) from exc

    def close(self) -> None:
        with self._lock:
            if self._txn is not None:
                logger.warning("Rolling back open transaction on close")
                self.rollback_transaction()
            if self._conn is not None:
                self._conn.close()
                self._conn = None
            if self._engine is not None and self._owns_engine:
                self._engine.dispose()
                self._engine = None

    def __del__(self) -> None:
        with contextlib.suppress(Exception):
            self.close()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _upsert(conn: Connection, table: Table, key: str, values: dict[str, Any]) -> None:
        """Merge *values* into *table* on the primary key column *key*."""
        changes = {k: v for k, v in values.items() if k != key}
        native_insert = _NATIVE_UPSERT.get(conn.dialect.name)
        if native_insert is not None:
            stmt = native_insert(table).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=[table.c[key]],
                set_={k: stmt.excluded[k] for k in changes},
            )
            conn.execute(stmt)
            return
        result = conn.execute(update(table).where(table.c[key] == values[key]).values(**changes))
        if result.rowcount == 0:
            conn.execute(insert(table).values(**values))

    def _format_datetime(self, ts: datetime) -> str:
        return self._clock.format_datetime(ts, DATETIME_FORMAT)

    def _parse_datetime(self, value: str | datetime) -> datetime:
        """Parse a stored timestamp, dropping any fractional seconds."""
        if isinstance(value, datetime):
            return value.replace(microsecond=0, tzinfo=None)
        parsed = self._clock.parse_date(value.split(".", 1)[0], DATETIME_FORMAT)
        if parsed is None:
            msg = f"Invalid stored timestamp: {value!r}"
            raise InvalidArgumentError(msg)
        return parsed

    @staticmethod
    def _skip_row(table: Table, key: Any, exc: Exception) -> None:
        logger.warning("Skipping unreadable row", table=table.name, key=key, reason=str(exc))

    # ------------------------------------------------------------------
    # Author
    # ------------------------------------------------------------------

    def save_author(self, author: Author) -> None:
        with self._session() as conn:
            self._upsert(conn, authors, "AuthorId", {"AuthorId": author.id, "Name": author.name})

    def load_author(self, author_id: str) -> Author | None:
        with self._session() as conn:
            row = conn.execute(select(authors).where(authors.c.AuthorId == author_id)).first()
        return Author(row.AuthorId, row.Name) if row is not None else None

    def load_all_authors(self) -> list[Author]:
        with self._session() as conn:
            rows = conn.execute(select(authors)).all()
        result: list[Author] = []
        for row in rows:
            try:
                result.append(Author(row.AuthorId, row.Name))
            except InvalidArgumentError as exc:
                self._skip_row(authors, row.AuthorId, exc)
        return result

    def delete_author(self, author_id: str) -> None:
        with self._session() as conn:
            conn.execute(delete(authors).where(authors.c.AuthorId == author_id))

    # ------------------------------------------------------------------
    # Library item
    # ------------------------------------------------------------------

    def _item_query(self) -> Any:
        joined = library_items.outerjoin(authors, library_items.c.AuthorId == authors.c.AuthorId)
        return select(library_items, authors.c.Name.label("AuthorName")).select_from(joined)

    def _row_to_item(self, row: Row[Any]) -> LibraryItem:
        if row.ItemType != ItemKind.BOOK:
            msg = f"Unsupported item type {row.ItemType!r}"
            raise InvalidArgumentError(msg)
        author = None
        if row.AuthorId and row.AuthorName is not None:
            author = Author(row.AuthorId, row.AuthorName)
        elif row.AuthorId:
            logger.warning("Author not found for book", author_id=row.AuthorId, item_id=row.ItemId)
        return Book(
            id=row.ItemId,
            title=row.Title,
            author=author,
            author_id=row.AuthorId or "",
            isbn=row.ISBN or "",
            publication_year=row.PublicationYear,
            availability_status=AvailabilityStatus(row.AvailabilityStatus),
        )

    def save_library_item(self, item: LibraryItem) -> None:
        values = {
            "ItemId": item.id,
            "ItemType": str(item.kind),
            "Title": item.title,
            "AuthorId": item.author_id or None,
            "ISBN": item.isbn or None,
            "PublicationYear": item.publication_year,
            "AvailabilityStatus": int(item.availability_status),
        }
        with self._session() as conn:
            self._upsert(conn, library_items, "ItemId", values)

    def load_library_item(self, item_id: str) -> LibraryItem | None:
        with self._session() as conn:
            row = conn.execute(self._item_query().where(library_items.c.ItemId == item_id)).first()
        if row is None:
            return None
        try:
            return self._row_to_item(row)
        except (InvalidArgumentError, ValueError) as exc:
            self._skip_row(library_items, item_id, exc)
            return None

    def load_all_library_items(self) -> list[LibraryItem]:
        with self._session() as conn:
            rows = conn.execute(self._item_query()).all()
        result: list[LibraryItem] = []
        for row in rows:
            try:
                result.append(self._row_to_item(row))
            except (InvalidArgumentError, ValueError) as exc:
                self._skip_row(library_items, row.ItemId, exc)
        return result

    def delete_library_item(self, item_id: str) -> None:
        with self._session() as conn:
            conn.execute(delete(library_items).where(library_items.c.ItemId == item_id))

    # ------------------------------------------------------------------
    # User
    # ------------------------------------------------------------------

    def save_user(self, user: User) -> None:
        with self._session() as conn:
            self._upsert(conn, users, "UserId", {"UserId": user.id, "Name": user.name})

    def load_user(self, user_id: str) -> User | None:
        with self._session() as conn:
            row = conn.execute(select(users).where(users.c.UserId == user_id)).first()
        return User(row.UserId, row.Name) if row is not None else None

    def load_all_users(self) -> list[User]:
        with self._session() as conn:
            rows = conn.execute(select(users)).all()
        result: list[User] = []
        for row in rows:
            try:
                result.append(User(row.UserId, row.Name))
            except InvalidArgumentError as exc:
                self._skip_row(users, row.UserId, exc)
        return result

    def delete_user(self, user_id: str) -> None:
        with self._session() as conn:
            conn.execute(delete(users).where(users.c.UserId == user_id))

    # ------------------------------------------------------------------
    # Loan record
    # ------------------------------------------------------------------

    def _row_to_loan(self, row: Row[Any]) -> LoanRecord:
        return LoanRecord(
            record_id=row.LoanRecordId,
            item_id=row.ItemId,
            user_id=row.UserId,
            loan_date=self._parse_datetime(row.LoanDate),
            due_date=self._parse_datetime(row.DueDate),
            return_date=(
                self._parse_datetime(row.ReturnDate) if row.ReturnDate is not None else None
            ),
        )

    def _load_loans(self, *criteria: Any) -> list[LoanRecord]:
        with self._session() as conn:
            stmt = select(loan_records)
            if criteria:
                stmt = stmt.where(*criteria)
            rows = conn.execute(stmt).all()
        result: list[LoanRecord] = []
        for row in rows:
            try:
                result.append(self._row_to_loan(row))
            except InvalidArgumentError as exc:
                self._skip_row(loan_records, row.LoanRecordId, exc)
        return result

    def save_loan_record(self, record: LoanRecord) -> None:
        returned = record.return_date
        values = {
            "LoanRecordId": record.record_id,
            "ItemId": record.item_id,
            "UserId": record.user_id,
            "LoanDate": self._format_datetime(record.loan_date),
            "DueDate": self._format_datetime(record.due_date),
            "ReturnDate": self._format_datetime(returned) if returned is not None else None,
        }
        with self._session() as conn:
            self._upsert(conn, loan_records, "LoanRecordId", values)

    def load_loan_record(self, record_id: str) -> LoanRecord | None:
        found = self._load_loans(loan_records.c.LoanRecordId == record_id)
        return found[0] if found else None

    def load_loan_records_by_user_id(self, user_id: str) -> list[LoanRecord]:
        return self._load_loans(loan_records.c.UserId == user_id)

    def load_loan_records_by_item_id(self, item_id: str) -> list[LoanRecord]:
        return self._load_loans(loan_records.c.ItemId == item_id)

    def load_all_loan_records(self) -> list[LoanRecord]:
        return self._load_loans()

    def delete_loan_record(self, record_id: str) -> None:
        with self._session() as conn:
            conn.execute(delete(loan_records).where(loan_records.c.LoanRecordId == record_id))

    def describe(self) -> dict[str, object]:
        url = self._engine.url if self._engine is not None else make_url(self._url)
        return {
            "backend": "sql",
            "url": url.render_as_string(hide_password=True),
            "in_transaction": self.in_transaction,
        }
