"""Click base classes for lmsctl commands and groups.

Both accept an ``examples`` block. ``--examples`` prints it and exits;
``--help`` only points at it. When the run uses the memory backend the
examples end with a reminder that nothing outlives the command.

Groups list subcommands in the order they were registered (add, find,
search, list, change, remove) instead of alphabetically.
"""

from __future__ import annotations

import textwrap
from typing import Any

import click

MEMORY_BACKEND_NOTE = (
    "Note: the memory backend starts empty on every run. Pass --backend "
    "file, caching, or sql, or work inside 'lmsctl shell'."
)


def _normalize_examples(examples: str | None) -> str | None:
    if not examples or not examples.strip():
        return None
    return textwrap.indent(textwrap.dedent(examples).strip("\n"), "  ")


def _uses_memory_backend(ctx: click.Context) -> bool:
    # Root options are parsed before a subcommand's eager flags run.
    settings = getattr(ctx.find_root().obj, "settings", None)
    return settings is not None and settings.storage.backend == "memory"


class _ExamplesMixin:
    """Adds ``--examples`` and the matching help epilog to a Click command."""

    examples: str | None

    def _init_examples(self, params: list[click.Parameter], examples: str | None) -> None:
        self.examples = _normalize_examples(examples)
        if self.examples is None:
            return
        params.append(
            click.Option(
                ["--examples"],
                is_flag=True,
                expose_value=False,
                is_eager=True,
                callback=self._show_examples,
                help="Show usage examples and exit.",
            )
        )

    def _show_examples(self, ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value or ctx.resilient_parsing:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(self.examples)
        if _uses_memory_backend(ctx):
            click.echo(f"\n{MEMORY_BACKEND_NOTE}")
        ctx.exit(0)

    def format_epilog(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        super().format_epilog(ctx, formatter)  # type: ignore[misc]
        if self.examples:
            formatter.write_paragraph()
            formatter.write_text(f"Run '{ctx.command_path} --examples' for usage examples.")


class LmsCommand(_ExamplesMixin, click.Command):
    """Click Command with an optional ``examples`` block."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._init_examples(self.params, examples)


class LmsGroup(_ExamplesMixin, click.Group):
    """Click Group with an optional ``examples`` block.

    Subcommands default to :class:`LmsCommand`, so
    ``@group.command(examples=...)`` needs no ``cls=``.
    """

    command_class = LmsCommand

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._init_examples(self.params, examples)

    def list_commands(self, ctx: click.Context) -> list[str]:
        return list(self.commands)
