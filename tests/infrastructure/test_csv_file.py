"""Tests for the CSV file backend: format, escaping, and parse policy."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from lmsctl.domain.entities import Author, Book, LoanRecord, User
from lmsctl.domain.errors import InvalidArgumentError, OperationFailedError
from lmsctl.infrastructure.persistence.csv_file import (
    COMMA_PLACEHOLDER,
    LF_PLACEHOLDER,
    QUOTE_PLACEHOLDER,
    CsvPersistenceService,
    escape_field,
    unescape_field,
)

T0 = datetime(2024, 3, 1, 10, 30, 0)


@pytest.fixture
def store(data_dir: Path) -> CsvPersistenceService:
    return CsvPersistenceService(data_dir)


def _dune() -> Book:
    return Book(
        id="b1",
        title="Dune",
        author=Author("a1", "Herbert"),
        isbn="0441013597",
        publication_year=1965,
    )


class TestEscaping:
    def test_escape_replaces_comma_and_quote(self) -> None:
        expected = f"a{COMMA_PLACEHOLDER}{QUOTE_PLACEHOLDER}b{QUOTE_PLACEHOLDER}"
        assert escape_field('a,"b"') == expected

    def test_unescape_reverses(self) -> None:
        text = 'Dune, the "Messiah"'
        assert unescape_field(escape_field(text)) == text

    def test_file_holds_placeholders(self, store: CsvPersistenceService, data_dir: Path) -> None:
        store.save_user(User("u1", 'Smith, "Al"'))
        raw = (data_dir / "users.csv").read_text(encoding="utf-8")
        assert "," in raw  # the delimiter
        assert '"' not in raw
        assert raw == f"u1,Smith{COMMA_PLACEHOLDER} {QUOTE_PLACEHOLDER}Al{QUOTE_PLACEHOLDER}\n"

    def test_line_breaks_stay_on_one_line(
        self, store: CsvPersistenceService, data_dir: Path
    ) -> None:
        store.save_user(User("u1", "Alice\nSmith\r\nJr"))
        raw = (data_dir / "users.csv").read_text(encoding="utf-8")
        assert raw.count("\n") == 1
        assert LF_PLACEHOLDER in raw
        assert store.load_user("u1") == User("u1", "Alice\nSmith\r\nJr")

    def test_multiline_title(self, store: CsvPersistenceService) -> None:
        store.save_author(Author("a1", "Herbert"))
        store.save_library_item(replace(_dune(), title="Dune\nMessiah"))
        loaded = store.load_library_item("b1")
        assert loaded is not None
        assert loaded.title == "Dune\nMessiah"


class TestFileFormat:
    def test_headerless_rows(self, store: CsvPersistenceService, data_dir: Path) -> None:
        store.save_author(Author("a1", "Herbert"))
        store.save_library_item(_dune())
        store.save_loan_record(LoanRecord("loan_1", "b1", "u1", T0, T0 + timedelta(days=14)))

        assert (data_dir / "authors.csv").read_text() == "a1,Herbert\n"
        assert (data_dir / "items.csv").read_text() == "b1,Book,Dune,a1,0441013597,1965,0\n"
        assert (data_dir / "loans.csv").read_text() == (
            "loan_1,b1,u1,2024-03-01 10:30:00,2024-03-15 10:30:00,\n"
        )

    def test_return_date_written(self, store: CsvPersistenceService, data_dir: Path) -> None:
        record = LoanRecord("loan_1", "b1", "u1", T0, T0 + timedelta(days=14))
        store.save_loan_record(record)
        store.update_loan_record(record.mark_returned(T0 + timedelta(days=1)))
        assert (data_dir / "loans.csv").read_text().endswith(",2024-03-02 10:30:00\n")

    def test_creates_data_dir(self, tmp_path: Path) -> None:
        target = tmp_path / "nested" / "dir"
        CsvPersistenceService(target)
        assert target.is_dir()

    def test_missing_files_read_as_empty(self, store: CsvPersistenceService) -> None:
        assert store.load_all_authors() == []
        assert store.load_all_loan_records() == []

    def test_no_temp_files_left(self, store: CsvPersistenceService, data_dir: Path) -> None:
        store.save_user(User("u1", "Alice"))
        store.delete_user("u1")
        assert not list(data_dir.glob("*.tmp"))

    def test_empty_path_rejected(self) -> None:
        with pytest.raises(InvalidArgumentError):
            CsvPersistenceService("")

    def test_unusable_directory(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        with pytest.raises(OperationFailedError):
            CsvPersistenceService(blocker / "data")

    def test_dangling_author(self, store: CsvPersistenceService) -> None:
        store.save_author(Author("a1", "Herbert"))
        store.save_library_item(_dune())
        store.delete_author("a1")
        loaded = store.load_library_item("b1")
        assert loaded is not None
        assert loaded.author is None
        assert loaded.author_id == "a1"


class TestParsePolicy:
    BAD_ITEMS = (
        "b1,Book,Dune,a1,0441013597,1965,0\n"
        "b2,Magazine,Wired,a1,123,2001,0\n"
        "b3,Book,Emma,a1,978,not-a-year,0\n"
        "b4,Book,Short\n"
        "b5,Book,Status,a1,978,1815,9\n"
    )

    def _seed(self, data_dir: Path) -> None:
        data_dir.mkdir(parents=True, exist_ok=True)
        (data_dir / "authors.csv").write_text("a1,Herbert\n")
        (data_dir / "items.csv").write_text(self.BAD_ITEMS)

    def test_lenient_skips_and_records(self, data_dir: Path) -> None:
        self._seed(data_dir)
        store = CsvPersistenceService(data_dir)
        items = store.load_all_library_items()
        assert [i.id for i in items] == ["b1"]
        skipped = store.skipped_records
        assert [s.line_number for s in skipped] == [2, 3, 4, 5]
        assert all(s.filename == "items.csv" for s in skipped)
        assert "Magazine" in skipped[0].reason

    def test_clear_skipped_records(self, data_dir: Path) -> None:
        self._seed(data_dir)
        store = CsvPersistenceService(data_dir)
        store.load_all_library_items()
        store.clear_skipped_records()
        assert store.skipped_records == []

    def test_strict_raises(self, data_dir: Path) -> None:
        self._seed(data_dir)
        store = CsvPersistenceService(data_dir, strict=True)
        with pytest.raises(OperationFailedError, match="items.csv line 2"):
            store.load_all_library_items()

    def test_bad_loan_date_skipped(self, data_dir: Path) -> None:
        data_dir.mkdir(parents=True)
        (data_dir / "loans.csv").write_text(
            "loan_1,b1,u1,2024-03-01 10:30:00,2024-03-15 10:30:00,\n"
            "loan_2,b1,u1,03/01/2024,2024-03-15 10:30:00,\n"
            "loan_3,b1,u1,2024-03-15 10:30:00,2024-03-01 10:30:00,\n"
        )
        store = CsvPersistenceService(data_dir)
        assert [r.record_id for r in store.load_all_loan_records()] == ["loan_1"]
        assert len(store.skipped_records) == 2

    def test_upsert_preserves_unparseable_rows(self, data_dir: Path) -> None:
        self._seed(data_dir)
        store = CsvPersistenceService(data_dir)
        store.save_library_item(_dune().with_status(1))  # type: ignore[arg-type]
        lines = (data_dir / "items.csv").read_text().splitlines()
        assert lines[0] == "b1,Book,Dune,a1,0441013597,1965,1"
        assert len(lines) == 5

    def test_describe(self, store: CsvPersistenceService, data_dir: Path) -> None:
        info = store.describe()
        assert info["backend"] == "file"
        assert info["data_dir"] == str(data_dir)
        assert info["strict"] is False


class TestSkippedRecordBookkeeping:
    def test_repeated_loads_record_once(self, data_dir: Path) -> None:
        data_dir.mkdir(parents=True)
        (data_dir / "users.csv").write_text("u1,Alice\nbroken\n", encoding="utf-8")
        store = CsvPersistenceService(data_dir)
        for _ in range(5):
            assert [u.id for u in store.load_all_users()] == ["u1"]
        store.load_user("u1")
        assert len(store.skipped_records) == 1
        assert store.describe()["skipped_records"] == 1

    def test_fixed_line_drops_out(self, data_dir: Path) -> None:
        data_dir.mkdir(parents=True)
        path = data_dir / "users.csv"
        path.write_text("u1,Alice\nbroken\n", encoding="utf-8")
        store = CsvPersistenceService(data_dir)
        store.load_all_users()
        path.write_text("u1,Alice\nu2,Bob\n", encoding="utf-8")
        assert len(store.load_all_users()) == 2
        assert store.skipped_records == []

    def test_invalid_utf8_line_is_skipped(self, data_dir: Path) -> None:
        data_dir.mkdir(parents=True)
        (data_dir / "users.csv").write_bytes(b"u1,Alice\nu2,\xff\xfe\nu3,Carol\n")
        store = CsvPersistenceService(data_dir)
        assert [u.id for u in store.load_all_users()] == ["u1", "u3"]
        (skipped,) = store.skipped_records
        assert skipped.line_number == 2
        assert "UTF-8" in skipped.reason

    def test_invalid_utf8_strict(self, data_dir: Path) -> None:
        data_dir.mkdir(parents=True)
        (data_dir / "users.csv").write_bytes(b"u1,Alice\nu2,\xff\xfe\n")
        store = CsvPersistenceService(data_dir, strict=True)
        with pytest.raises(OperationFailedError, match="users.csv line 2"):
            store.load_all_users()

    def test_rewrite_keeps_undecodable_bytes(self, data_dir: Path) -> None:
        data_dir.mkdir(parents=True)
        path = data_dir / "users.csv"
        path.write_bytes(b"u1,Alice\nu2,\xff\xfe\n")
        store = CsvPersistenceService(data_dir)
        store.save_user(User("u3", "Carol"))
        assert path.read_bytes() == b"u1,Alice\nu2,\xff\xfe\nu3,Carol\n"
