"""Command group: library users."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from lmsctl.commands._base import LmsGroup
from lmsctl.domain.errors import NotFoundError
from lmsctl.services.result import UserPayload, listing

if TYPE_CHECKING:
    from lmsctl.commands._context import AppContext

_USER_EXAMPLES = """\
  lmsctl --backend file user add u1 "Alice Smith"
  lmsctl --backend file user find u1
  lmsctl --backend file user search "Alice Smith"
  lmsctl --backend file --json user list
  lmsctl --backend file user rename u1 "Alice Jones"
  lmsctl --backend file user remove u1"""


@click.group(cls=LmsGroup, examples=_USER_EXAMPLES)
def user() -> None:
    """Register, look up, and remove library users."""


@user.command(examples='  lmsctl user add u1 "Alice Smith"')
@click.argument("user_id")
@click.argument("name")
@click.pass_obj
def add(app: AppContext, user_id: str, name: str) -> None:
    """Register a new user."""
    app.run("add_user", lambda: UserPayload.of(app.users.add_user(user_id, name)))


@user.command(examples="  lmsctl user find u1")
@click.argument("user_id")
@click.pass_obj
def find(app: AppContext, user_id: str) -> None:
    """Show a single user by ID."""

    def action() -> UserPayload:
        found = app.users.find_user_by_id(user_id)
        if found is None:
            raise NotFoundError(f"User with ID '{user_id}' not found.")
        return UserPayload.of(found)

    app.run("find_user", action)


@user.command(examples='  lmsctl user search "Alice Smith"')
@click.argument("name")
@click.pass_obj
def search(app: AppContext, name: str) -> None:
    """Find users whose name matches exactly."""
    app.run(
        "search_users",
        lambda: listing(UserPayload.of(u) for u in app.users.find_users_by_name(name)),
    )


@user.command("list", examples="  lmsctl --json user list")
@click.pass_obj
def list_users(app: AppContext) -> None:
    """List every registered user."""
    app.run("list_users", lambda: listing(UserPayload.of(u) for u in app.users.get_all_users()))


@user.command(examples='  lmsctl user rename u1 "Alice Jones"')
@click.argument("user_id")
@click.argument("name")
@click.pass_obj
def rename(app: AppContext, user_id: str, name: str) -> None:
    """Change a user's name."""
    app.run("rename_user", lambda: UserPayload.of(app.users.update_user(user_id, name)))


@user.command(examples="  lmsctl user remove u1")
@click.argument("user_id")
@click.pass_obj
def remove(app: AppContext, user_id: str) -> None:
    """Remove a user. Their loan records are kept."""

    def action() -> dict[str, Any]:
        if not app.users.remove_user(user_id):
            raise NotFoundError(f"User with ID '{user_id}' not found.")
        return {"id": user_id, "removed": True}

    app.run("remove_user", action)
