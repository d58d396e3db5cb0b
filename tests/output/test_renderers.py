"""Tests for the Rich renderers."""

from __future__ import annotations

from lmsctl.output.console import style_for_status
from lmsctl.output.renderers import render_result
from lmsctl.services.result import ServiceError, ServiceResult

DUNE = {
    "id": "b1",
    "kind": "Book",
    "title": "Dune",
    "author_id": "a1",
    "author_name": "Frank Herbert",
    "isbn": "0441013597",
    "publication_year": 1965,
    "status": "Available",
}


class TestSingleEntity:
    def test_mutation_fields(self) -> None:
        out = render_result(ServiceResult(ok=True, op="add_book", data=DUNE))
        assert "add_book" in out
        assert "title: Dune" in out
        assert "status: Available" in out
        assert "Frank Herbert" not in out

    def test_mutation_verbose_shows_author(self) -> None:
        out = render_result(ServiceResult(ok=True, op="add_book", data=DUNE), verbose=True)
        assert "author_name: Frank Herbert" in out

    def test_item_panel(self) -> None:
        out = render_result(ServiceResult(ok=True, op="find_item", data=DUNE))
        assert "b1: Dune" in out
        assert "author: Frank Herbert (a1)" in out
        assert "year: 1965" in out

    def test_dangling_author(self) -> None:
        data = {**DUNE, "author_name": None}
        out = render_result(ServiceResult(ok=True, op="find_item", data=data))
        assert "(unknown author)" in out

    def test_markup_in_user_data_is_literal(self) -> None:
        data = {**DUNE, "title": "[bold]Loud[/bold]"}
        out = render_result(ServiceResult(ok=True, op="find_item", data=data))
        assert "[bold]Loud[/bold]" in out


class TestTables:
    def test_item_table(self) -> None:
        data = {"items": [DUNE], "count": 1}
        out = render_result(ServiceResult(ok=True, op="list_items", data=data))
        assert "Dune" in out
        assert "0441013597" in out
        assert "1 item" in out
        assert "1 items" not in out

    def test_user_table(self) -> None:
        data = {"items": [{"id": "u1", "name": "Alice"}, {"id": "u2", "name": "Bob"}], "count": 2}
        out = render_result(ServiceResult(ok=True, op="list_users", data=data))
        assert "Alice" in out and "Bob" in out
        assert "2 users" in out

    def test_loan_table(self) -> None:
        loan = {
            "id": "loan_1",
            "item_id": "b1",
            "user_id": "u1",
            "loan_date": "2024-03-01 10:30:00",
            "due_date": "2024-03-15",
            "return_date": None,
            "status": "active",
        }
        data = {"items": [loan], "count": 1}
        out = render_result(ServiceResult(ok=True, op="loan_history", data=data))
        assert "loan_1" in out
        assert "2024-03-15" in out
        assert "1 loan" in out

    def test_no_overdue(self) -> None:
        data = {"notices": [], "count": 0}
        out = render_result(ServiceResult(ok=True, op="process_overdue", data=data))
        assert "No overdue loans." in out

    def test_overdue_table(self) -> None:
        notice = {
            "record_id": "loan_1",
            "user_id": "u1",
            "user_name": "Alice",
            "item_id": "b1",
            "item_title": "Dune",
            "due_date": "2024-03-15",
            "message": "...",
        }
        data = {"notices": [notice], "count": 1}
        out = render_result(ServiceResult(ok=True, op="process_overdue", data=data))
        assert "Alice (u1)" in out
        assert "1 overdue notice sent" in out


class TestStorageAndFallback:
    def test_storage_report(self) -> None:
        data = {
            "authors": 1,
            "users": 2,
            "items": 3,
            "loans": 4,
            "skipped": [{"file": "users.csv", "line": 5, "reason": "bad row"}],
        }
        quiet = render_result(ServiceResult(ok=True, op="reload", data=data))
        assert "loans: 4" in quiet
        assert "skipped: 1" in quiet
        assert "users.csv:5" not in quiet
        verbose = render_result(ServiceResult(ok=True, op="reload", data=data), verbose=True)
        assert "users.csv:5: bad row" in verbose

    def test_generic(self) -> None:
        data = {"backend": "memory", "counts": {"users": 1}}
        out = render_result(ServiceResult(ok=True, op="unknown_op", data=data))
        assert "backend: memory" in out
        assert '{"users":1}' in out


class TestErrors:
    def test_error_line(self) -> None:
        result = ServiceResult(
            ok=False,
            op="return_item",
            error=ServiceError(
                code="NOT_FOUND",
                message="No active loan found for user 'u1' and item 'b1'.",
                detail={"user_id": "u1"},
            ),
        )
        out = render_result(result)
        assert "ERROR  return_item: No active loan found" in out
        assert "code: NOT_FOUND" in out
        assert "detail" not in out
        assert "user_id: u1" in render_result(result, verbose=True)


class TestStyles:
    def test_status_styles(self) -> None:
        assert style_for_status("Borrowed") == "lms.status.borrowed"
        assert style_for_status("returned") == "lms.loan.returned"
        assert style_for_status("lost") == ""
