"""Command group: borrowing, returning, and overdue processing."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from lmsctl.commands._base import LmsGroup
from lmsctl.services.result import LoanPayload, OverdueNoticePayload, listing

if TYPE_CHECKING:
    from lmsctl.commands._context import AppContext
    from lmsctl.domain.entities import LoanRecord

_LOAN_EXAMPLES = """\
  lmsctl loan borrow u1 b1
  lmsctl loan return u1 b1
  lmsctl loan active u1
  lmsctl loan history --user u1
  lmsctl loan history --item b1
  lmsctl loan overdue"""


def _loans_payload(records: list[LoanRecord]) -> dict[str, Any]:
    return listing(LoanPayload.of(r) for r in records)


@click.group(cls=LmsGroup, examples=_LOAN_EXAMPLES)
def loan() -> None:
    """Borrow and return items, and chase overdue loans."""


@loan.command(examples="  lmsctl loan borrow u1 b1")
@click.argument("user_id")
@click.argument("item_id")
@click.pass_obj
def borrow(app: AppContext, user_id: str, item_id: str) -> None:
    """Lend ITEM_ID to USER_ID."""
    app.run("borrow_item", lambda: LoanPayload.of(app.loans.borrow_item(user_id, item_id)))


@loan.command("return", examples="  lmsctl loan return u1 b1")
@click.argument("user_id")
@click.argument("item_id")
@click.pass_obj
def return_(app: AppContext, user_id: str, item_id: str) -> None:
    """Return USER_ID's active loan of ITEM_ID."""
    app.run("return_item", lambda: LoanPayload.of(app.loans.return_item(user_id, item_id)))


@loan.command(examples="  lmsctl loan active u1")
@click.argument("user_id")
@click.pass_obj
def active(app: AppContext, user_id: str) -> None:
    """List a user's active loans."""
    app.run("active_loans", lambda: _loans_payload(app.loans.get_active_loans_for_user(user_id)))


@loan.command(
    examples="""\
  lmsctl loan history --user u1
  lmsctl loan history --item b1"""
)
@click.option("--user", "user_id", default=None, help="History of one user.")
@click.option("--item", "item_id", default=None, help="History of one item.")
@click.pass_obj
def history(app: AppContext, user_id: str | None, item_id: str | None) -> None:
    """List every loan, active or returned, of a user or an item."""
    if (user_id is None) == (item_id is None):
        raise click.UsageError("Pass exactly one of --user or --item.")
    if user_id is not None:
        app.run(
            "loan_history",
            lambda: _loans_payload(app.loans.get_loan_history_for_user(user_id)),
        )
    else:
        app.run(
            "loan_history",
            lambda: _loans_payload(app.loans.get_loan_history_for_item(item_id or "")),
        )


@loan.command(examples="  lmsctl loan overdue")
@click.pass_obj
def overdue(app: AppContext) -> None:
    """Notify every user with a loan due before today."""
    app.run(
        "process_overdue",
        lambda: listing(
            (OverdueNoticePayload.of(n) for n in app.loans.process_overdue_items()),
            key="notices",
        ),
    )
