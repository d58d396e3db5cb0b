"""Command: interactive shell sharing one AppContext across commands.

The in-memory and caching backends keep state only for the life of the
process, so the shell is how several commands see the same data.
"""

from __future__ import annotations

import shlex
from typing import TYPE_CHECKING

import click

from lmsctl.commands._base import LmsCommand

if TYPE_CHECKING:
    from lmsctl.commands._context import AppContext

EXIT_WORDS = frozenset({"exit", "quit"})


@click.command(
    cls=LmsCommand,
    examples="""\
  lmsctl shell
  lmsctl --backend caching --data-dir ./lib shell
  printf 'user add u1 Alice\\nuser list\\n' | lmsctl shell""",
)
@click.option("--prompt", "prompt_text", default="lms", show_default=True, help="Prompt text.")
@click.pass_obj
def shell(app: AppContext, prompt_text: str) -> None:
    """Run commands interactively until 'exit', 'quit', or end of input.

    Global options (backend, output mode) are fixed when the shell starts.
    """
    from lmsctl.cli import cli

    click.echo("Library Management System shell. Type 'help' for commands, 'exit' to leave.")
    while True:
        try:
            line = click.prompt(prompt_text, default="", show_default=False, prompt_suffix="> ")
        except click.exceptions.Abort:
            click.echo()
            break
        try:
            argv = shlex.split(line)
        except ValueError as exc:
            click.echo(f"ERROR: {exc}", err=True)
            continue
        if not argv:
            continue
        if argv[0] in EXIT_WORDS:
            break
        if argv[0] == "help":
            argv = ["--help"]
        if argv[0] == "shell":
            click.echo("ERROR: already in the shell.", err=True)
            continue
        try:
            cli.main(args=argv, prog_name="lmsctl", obj=app, standalone_mode=False)
        except click.ClickException as exc:
            exc.show()
        except click.exceptions.Abort:
            click.echo("Aborted.", err=True)
        except SystemExit:
            # A failed command already printed its error; keep the session alive.
            continue
