"""Subcommand modules for lmsctl.

``register_commands()`` imports each group only when the CLI is built.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all command groups and standalone commands on the root group."""
    # --- Groups ---
    from lmsctl.commands.catalog import catalog
    from lmsctl.commands.loan import loan
    from lmsctl.commands.storage import storage
    from lmsctl.commands.user import user

    cli.add_command(user)
    cli.add_command(catalog)
    cli.add_command(loan)
    cli.add_command(storage)

    # --- Standalone commands ---
    from lmsctl.commands.shell import shell

    cli.add_command(shell)
