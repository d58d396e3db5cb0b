"""Command group: books, authors, and item status."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from lmsctl.commands._base import LmsGroup
from lmsctl.domain.errors import NotFoundError
from lmsctl.domain.types import AvailabilityStatus
from lmsctl.services.result import AuthorPayload, ItemPayload, listing

if TYPE_CHECKING:
    from lmsctl.commands._context import AppContext
    from lmsctl.domain.entities import LibraryItem

_CATALOG_EXAMPLES = """\
  lmsctl catalog add-book b1 "Dune" a1 "Frank Herbert" 978-0441172719 1965
  lmsctl catalog find b1
  lmsctl catalog search --title "Dune"
  lmsctl catalog search --author a1
  lmsctl --json catalog list
  lmsctl catalog authors
  lmsctl catalog status b1 maintenance
  lmsctl catalog remove b1"""

_STATUS_CHOICES = [s.name.lower() for s in AvailabilityStatus] + [
    str(s.value) for s in AvailabilityStatus
]


def _items_payload(items: list[LibraryItem]) -> dict[str, Any]:
    return listing(ItemPayload.of(i) for i in items)


@click.group(cls=LmsGroup, examples=_CATALOG_EXAMPLES)
def catalog() -> None:
    """Manage catalog items and their authors."""


@catalog.command(
    "add-book",
    examples="""\
  lmsctl catalog add-book b1 "Dune" a1 "Frank Herbert" 978-0441172719 1965
  lmsctl catalog add-book b2 "Children of Dune" a1 "" 978-0593098240 1976""",
)
@click.argument("item_id")
@click.argument("title")
@click.argument("author_id")
@click.argument("author_name")
@click.argument("isbn")
@click.argument("publication_year", type=int)
@click.pass_obj
def add_book(
    app: AppContext,
    item_id: str,
    title: str,
    author_id: str,
    author_name: str,
    isbn: str,
    publication_year: int,
) -> None:
    """Add a book. A new AUTHOR_ID is created with AUTHOR_NAME."""
    app.run(
        "add_book",
        lambda: ItemPayload.of(
            app.catalog.add_book(item_id, title, author_id, author_name, isbn, publication_year)
        ),
    )


@catalog.command(examples="  lmsctl catalog find b1")
@click.argument("item_id")
@click.pass_obj
def find(app: AppContext, item_id: str) -> None:
    """Show a single item by ID."""

    def action() -> ItemPayload:
        item = app.catalog.find_item_by_id(item_id)
        if item is None:
            raise NotFoundError(f"Item with ID '{item_id}' not found.")
        return ItemPayload.of(item)

    app.run("find_item", action)


@catalog.command(
    examples="""\
  lmsctl catalog search --title "Dune"
  lmsctl catalog search --author a1"""
)
@click.option("--title", default=None, help="Exact title to match.")
@click.option("--author", "author_id", default=None, help="Author ID to match.")
@click.pass_obj
def search(app: AppContext, title: str | None, author_id: str | None) -> None:
    """Find items by exact title or by author ID."""
    if (title is None) == (author_id is None):
        raise click.UsageError("Pass exactly one of --title or --author.")
    if title is not None:
        app.run("search_items", lambda: _items_payload(app.catalog.find_items_by_title(title)))
    else:
        app.run(
            "search_items",
            lambda: _items_payload(app.catalog.find_items_by_author(author_id or "")),
        )


@catalog.command("list", examples="  lmsctl --json catalog list")
@click.pass_obj
def list_items(app: AppContext) -> None:
    """List every item in the catalog."""
    app.run("list_items", lambda: _items_payload(app.catalog.get_all_items()))


@catalog.command(examples="  lmsctl catalog authors")
@click.pass_obj
def authors(app: AppContext) -> None:
    """List every known author."""
    app.run(
        "list_authors",
        lambda: listing(AuthorPayload.of(a) for a in app.catalog.get_all_authors()),
    )


@catalog.command(
    examples="""\
  lmsctl catalog status b1 maintenance
  lmsctl catalog status b1 0"""
)
@click.argument("item_id")
@click.argument("status", type=click.Choice(_STATUS_CHOICES, case_sensitive=False))
@click.pass_obj
def status(app: AppContext, item_id: str, status: str) -> None:
    """Set an item's availability STATUS by name or number."""
    new_status = AvailabilityStatus.parse(status)
    app.run(
        "update_item_status",
        lambda: ItemPayload.of(app.catalog.update_item_status(item_id, new_status)),
    )


@catalog.command(examples="  lmsctl catalog remove b1")
@click.argument("item_id")
@click.pass_obj
def remove(app: AppContext, item_id: str) -> None:
    """Remove an item. Its loan records are kept."""

    def action() -> dict[str, Any]:
        if not app.catalog.remove_item(item_id):
            raise NotFoundError(f"Item with ID '{item_id}' not found.")
        return {"id": item_id, "removed": True}

    app.run("remove_item", action)
