"""Tests for the caching-hybrid backend's checkpoint semantics."""

from __future__ import annotations

from pathlib import Path

from lmsctl.domain.entities import Author, Book, User
from lmsctl.infrastructure.persistence.caching import CachingFilePersistenceService
from lmsctl.infrastructure.persistence.csv_file import CsvPersistenceService


def _dune() -> Book:
    return Book(
        id="b1",
        title="Dune",
        author=Author("a1", "Herbert"),
        isbn="0441013597",
        publication_year=1965,
    )


class TestNoWriteThrough:
    def test_saves_stay_in_memory(self, data_dir: Path) -> None:
        cache = CachingFilePersistenceService(data_dir)
        cache.save_user(User("u1", "Alice"))
        assert cache.load_user("u1") == User("u1", "Alice")
        assert CsvPersistenceService(data_dir).load_all_users() == []

    def test_persist_writes_files(self, data_dir: Path) -> None:
        cache = CachingFilePersistenceService(data_dir)
        cache.save_author(Author("a1", "Herbert"))
        cache.save_library_item(_dune())
        cache.save_user(User("u1", "Alice"))
        report = cache.persist_all_to_file()
        assert (report.authors, report.users, report.items, report.loans) == (1, 1, 1, 0)

        files = CsvPersistenceService(data_dir)
        assert files.load_library_item("b1") == _dune()
        assert files.load_user("u1") == User("u1", "Alice")


class TestReload:
    def test_constructor_loads_files(self, data_dir: Path) -> None:
        files = CsvPersistenceService(data_dir)
        files.save_author(Author("a1", "Herbert"))
        files.save_library_item(_dune())
        files.save_user(User("u1", "Alice"))

        cache = CachingFilePersistenceService(data_dir)
        assert cache.load_library_item("b1") == _dune()
        assert cache.load_all_users() == [User("u1", "Alice")]

    def test_reload_discards_unsaved_changes(self, data_dir: Path) -> None:
        cache = CachingFilePersistenceService(data_dir)
        cache.save_user(User("u1", "Alice"))
        cache.persist_all_to_file()
        cache.save_user(User("u2", "Bob"))

        report = cache.load_all_from_file_to_memory()
        assert report.users == 1
        assert [u.id for u in cache.load_all_users()] == ["u1"]

    def test_deletes_do_not_reach_files(self, data_dir: Path) -> None:
        cache = CachingFilePersistenceService(data_dir)
        cache.save_user(User("u1", "Alice"))
        cache.persist_all_to_file()
        cache.delete_user("u1")
        cache.persist_all_to_file()

        assert cache.load_user("u1") is None
        assert CsvPersistenceService(data_dir).load_user("u1") == User("u1", "Alice")

    def test_report_lists_skipped_records(self, data_dir: Path) -> None:
        data_dir.mkdir(parents=True)
        (data_dir / "users.csv").write_text("u1,Alice\nbroken-row\n")
        cache = CachingFilePersistenceService(data_dir)
        report = cache.load_all_from_file_to_memory()
        assert report.users == 1
        assert [(s.filename, s.line_number) for s in report.skipped] == [("users.csv", 2)]
        assert report.to_dict()["skipped"] == [
            {"file": "users.csv", "line": 2, "reason": "expected 2 fields, found 1"}
        ]

    def test_describe(self, data_dir: Path) -> None:
        cache = CachingFilePersistenceService(data_dir)
        cache.save_user(User("u1", "Alice"))
        info = cache.describe()
        assert info["backend"] == "caching"
        assert info["users"] == 1


class TestDamagedFiles:
    def test_undecodable_line_does_not_block_startup(self, data_dir: Path) -> None:
        data_dir.mkdir(parents=True)
        (data_dir / "users.csv").write_bytes(b"u1,Alice\nu2,\xff\xfe\n")
        cache = CachingFilePersistenceService(data_dir)
        assert [u.id for u in cache.load_all_users()] == ["u1"]
        report = cache.load_all_from_file_to_memory()
        assert report.users == 1
        assert [s.line_number for s in report.skipped] == [2]
