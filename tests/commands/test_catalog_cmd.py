"""Tests for the ``catalog`` command group."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import pytest
from click.testing import Result

Invoke = Callable[..., Result]

DUNE = ("catalog", "add-book", "b1", "Dune", "a1", "Frank Herbert", "0441013597", "1965")


def _data(result: Result) -> dict[str, Any]:
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)["data"]


def _error_code(result: Result) -> str:
    assert result.exit_code == 1, result.output
    return json.loads(result.stderr)["error"]["code"]


class TestAddBook:
    def test_add(self, invoke: Invoke) -> None:
        item = _data(invoke(*DUNE))
        assert item == {
            "id": "b1",
            "kind": "Book",
            "title": "Dune",
            "author_id": "a1",
            "author_name": "Frank Herbert",
            "isbn": "0441013597",
            "publication_year": 1965,
            "status": "Available",
        }

    def test_existing_author_reused(self, invoke: Invoke) -> None:
        invoke(*DUNE)
        item = _data(
            invoke("catalog", "add-book", "b2", "Dune Messiah", "a1", "", "0593098234", "1969")
        )
        assert item["author_name"] == "Frank Herbert"
        assert _data(invoke("catalog", "authors"))["count"] == 1

    def test_new_author_needs_name(self, invoke: Invoke) -> None:
        result = invoke("catalog", "add-book", "b1", "Dune", "a9", "", "0441013597", "1965")
        assert _error_code(result) == "INVALID_ARGUMENT"

    def test_duplicate_item(self, invoke: Invoke) -> None:
        invoke(*DUNE)
        assert _error_code(invoke(*DUNE)) == "OPERATION_FAILED"

    def test_year_must_be_integer(self, invoke: Invoke) -> None:
        result = invoke("catalog", "add-book", "b1", "Dune", "a1", "F", "x", "soon")
        assert result.exit_code == 2


class TestLookup:
    def test_find(self, invoke: Invoke) -> None:
        invoke(*DUNE)
        assert _data(invoke("catalog", "find", "b1"))["title"] == "Dune"
        assert _error_code(invoke("catalog", "find", "b9")) == "NOT_FOUND"

    def test_search_by_title_and_author(self, invoke: Invoke) -> None:
        invoke(*DUNE)
        invoke("catalog", "add-book", "b2", "Emma", "a2", "Jane Austen", "0141439580", "1815")
        by_title = _data(invoke("catalog", "search", "--title", "Emma"))
        assert [i["id"] for i in by_title["items"]] == ["b2"]
        by_author = _data(invoke("catalog", "search", "--author", "a1"))
        assert [i["id"] for i in by_author["items"]] == ["b1"]

    @pytest.mark.parametrize(
        "args",
        [(), ("--title", "Dune", "--author", "a1")],
    )
    def test_search_needs_exactly_one_filter(self, invoke: Invoke, args: tuple[str, ...]) -> None:
        result = invoke("catalog", "search", *args)
        assert result.exit_code == 2
        assert "exactly one" in result.stderr

    def test_list(self, invoke: Invoke) -> None:
        assert _data(invoke("catalog", "list")) == {"items": [], "count": 0}
        invoke(*DUNE)
        assert _data(invoke("catalog", "list"))["count"] == 1


class TestStatusAndRemove:
    @pytest.mark.parametrize("value", ["maintenance", "MAINTENANCE", "3"])
    def test_status_by_name_or_number(self, invoke: Invoke, value: str) -> None:
        invoke(*DUNE)
        item = _data(invoke("catalog", "status", "b1", value))
        assert item["status"] == "Maintenance"

    def test_unknown_status(self, invoke: Invoke) -> None:
        invoke(*DUNE)
        assert invoke("catalog", "status", "b1", "lost").exit_code == 2

    def test_status_missing_item(self, invoke: Invoke) -> None:
        assert _error_code(invoke("catalog", "status", "b9", "available")) == "NOT_FOUND"

    def test_remove(self, invoke: Invoke) -> None:
        invoke(*DUNE)
        assert _data(invoke("catalog", "remove", "b1")) == {"id": "b1", "removed": True}
        assert _error_code(invoke("catalog", "remove", "b1")) == "NOT_FOUND"


class TestRich:
    def test_find_panel(self, invoke: Invoke) -> None:
        invoke(*DUNE)
        result = invoke("catalog", "find", "b1", json_output=False)
        assert result.exit_code == 0
        assert "b1: Dune" in result.stdout
        assert "Frank Herbert" in result.stdout
