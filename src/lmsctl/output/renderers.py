"""Operation-specific Rich renderers for ServiceResult.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json as _json
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from lmsctl.output.console import create_console, get_output, style_for_status

if TYPE_CHECKING:
    from rich.console import Console

    from lmsctl.services.result import ServiceResult

Renderer = Callable[..., None]


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich."""
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {msg}"

    rows = result.data.get("items")
    if rows is None:
        rows = result.data.get("notices")
    if isinstance(rows, list):
        return "\n".join(_extract_id(row) for row in rows if _extract_id(row))

    if "id" in result.data:
        return str(result.data["id"])
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _extract_id(row: Any) -> str:
    if isinstance(row, dict):
        for key in ("id", "record_id"):
            val = row.get(key)
            if val is not None:
                return str(val)
    return ""


def _status_line(console: Console, result: ServiceResult) -> None:
    label = Text("OK", style="lms.ok")
    op = Text(f"  {result.op}", style="lms.op")
    console.print(label, op, sep="")


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="lms.key")
    if key == "id" or key.endswith("_id"):
        v = Text(str(value), style="lms.id")
    elif key == "title":
        v = Text(str(value), style="lms.title")
    elif key == "status":
        v = Text(str(value), style=style_for_status(str(value)))
    elif value is None:
        v = Text("-", style="dim")
    else:
        v = Text(str(value))
    console.print(k, v, sep="")


def _status_cell(value: Any) -> Text:
    return Text(str(value), style=style_for_status(str(value)))


def _cells(*values: Any) -> list[Text]:
    """Wrap row values as Text so user data is never parsed as markup."""
    return [v if isinstance(v, Text) else Text("-" if v is None else str(v)) for v in values]


def _new_table(*columns: str) -> Table:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    for col in columns:
        if col == "ID":
            table.add_column(col, style="lms.id", no_wrap=True)
        elif col == "Title":
            table.add_column(col, style="lms.title")
        else:
            table.add_column(col)
    return table


def _count_line(console: Console, result: ServiceResult, noun: str) -> None:
    count = result.data.get("count", len(result.data.get("items", [])))
    suffix = "" if count == 1 else "s"
    console.print(f"\n{count} {noun}{suffix}")


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="lms.error")
    op = Text(f"  {result.op}: ", style="lms.op")
    console.print(label, op, Text(msg), sep="")
    if err is not None:
        console.print(Text(f"  code: {err.code}", style="dim"))
    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Single-entity renderers ───────────────────────────────────────────


def _render_mutation(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render add/rename/status/borrow/return/remove results."""
    _status_line(console, result)
    for key, value in result.data.items():
        if key == "author_name" and not verbose:
            continue
        _field(console, key, value)


def _render_item(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render a single catalog item as a panel."""
    d = result.data
    author = d.get("author_name") or "(unknown author)"
    status = str(d.get("status", ""))
    body = Text()
    if verbose:
        body.append(f"kind: {d.get('kind', '')}\n")
    body.append(f"author: {author} ({d.get('author_id', '')})\n")
    body.append(f"isbn: {d.get('isbn', '')}\n")
    body.append(f"year: {d.get('publication_year', '')}\n")
    body.append("status: ")
    body.append(status, style=style_for_status(status))
    title = Text(f"{d.get('id', '?')}: {d.get('title', 'Untitled')}")
    console.print(Panel(body, title=title, border_style="dim", expand=False))


# ── Table renderers ───────────────────────────────────────────────────


def _render_item_table(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items = result.data.get("items", [])
    columns = ["ID", "Title", "Author", "ISBN", "Year", "Status"]
    if verbose:
        columns.append("Author ID")
    table = _new_table(*columns)
    for item in items:
        row: list[Any] = [
            item.get("id", ""),
            item.get("title", ""),
            item.get("author_name"),
            item.get("isbn", ""),
            item.get("publication_year", ""),
            _status_cell(item.get("status", "")),
        ]
        if verbose:
            row.append(item.get("author_id", ""))
        table.add_row(*_cells(*row))
    console.print(table)
    _count_line(console, result, "item")


def _render_user_table(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    table = _new_table("ID", "Name")
    for user in result.data.get("items", []):
        table.add_row(*_cells(user.get("id", ""), user.get("name", "")))
    console.print(table)
    _count_line(console, result, "user")


def _render_author_table(
    result: ServiceResult, console: Console, *, verbose: bool = False
) -> None:
    table = _new_table("ID", "Name")
    for author in result.data.get("items", []):
        table.add_row(*_cells(author.get("id", ""), author.get("name", "")))
    console.print(table)
    _count_line(console, result, "author")


def _render_loan_table(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    columns = ["ID", "Item", "User", "Loaned", "Due", "Returned", "Status"]
    table = _new_table(*columns)
    for loan in result.data.get("items", []):
        table.add_row(
            *_cells(
                loan.get("id", ""),
                loan.get("item_id", ""),
                loan.get("user_id", ""),
                loan.get("loan_date", ""),
                loan.get("due_date", ""),
                loan.get("return_date"),
                _status_cell(loan.get("status", "")),
            )
        )
    console.print(table)
    _count_line(console, result, "loan")


def _render_overdue(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    notices = result.data.get("notices", [])
    if not notices:
        _status_line(console, result)
        console.print("  No overdue loans.")
        return
    table = _new_table("ID", "User", "Item", "Due")
    for notice in notices:
        table.add_row(
            *_cells(
                notice.get("record_id", ""),
                f"{notice.get('user_name', '')} ({notice.get('user_id', '')})",
                f"{notice.get('item_title', '')} ({notice.get('item_id', '')})",
                Text(str(notice.get("due_date", "")), style="lms.error"),
            )
        )
    console.print(table)
    console.print(f"\n{len(notices)} overdue notice{'' if len(notices) == 1 else 's'} sent")


# ── Storage renderers ─────────────────────────────────────────────────


def _render_storage_report(
    result: ServiceResult, console: Console, *, verbose: bool = False
) -> None:
    """Render save_all / reload counts and any skipped CSV records."""
    _status_line(console, result)
    for key in ("authors", "users", "items", "loans"):
        if key in result.data:
            _field(console, key, result.data[key])
    skipped = result.data.get("skipped", [])
    _field(console, "skipped", len(skipped))
    if skipped and verbose:
        for rec in skipped:
            console.print(
                Text("  skipped ", style="lms.warning"),
                Text(f"{rec['file']}:{rec['line']}: {rec['reason']}"),
                sep="",
            )


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            _field(console, key, _json.dumps(value, separators=(",", ":")))
        else:
            _field(console, key, value)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Renderer] = {
    # Users
    "add_user": _render_mutation,
    "find_user": _render_mutation,
    "rename_user": _render_mutation,
    "remove_user": _render_mutation,
    "search_users": _render_user_table,
    "list_users": _render_user_table,
    # Catalog
    "add_book": _render_mutation,
    "update_item_status": _render_mutation,
    "remove_item": _render_mutation,
    "find_item": _render_item,
    "search_items": _render_item_table,
    "list_items": _render_item_table,
    "list_authors": _render_author_table,
    # Loans
    "borrow_item": _render_mutation,
    "return_item": _render_mutation,
    "active_loans": _render_loan_table,
    "loan_history": _render_loan_table,
    "process_overdue": _render_overdue,
    # Storage
    "save_all": _render_storage_report,
    "reload": _render_storage_report,
    "storage_info": _render_generic,
}
