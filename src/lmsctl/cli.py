"""Root CLI group for lmsctl with global flags and command registration."""

from __future__ import annotations

import click

from lmsctl import __version__
from lmsctl.commands import register_commands
from lmsctl.commands._base import LmsGroup
from lmsctl.commands._context import AppContext
from lmsctl.config.settings import LmsSettings


@click.group(cls=LmsGroup, invoke_without_command=True)
@click.version_option(version=__version__, prog_name="lmsctl")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output (IDs only).")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug logging.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option(
    "--backend",
    type=click.Choice(["memory", "file", "caching", "sql"]),
    default=None,
    help="Persistence backend (default from config: memory).",
)
@click.option("--data-dir", default=None, help="Directory for CSV files and the SQLite database.")
@click.option("--database-url", default=None, help="SQLAlchemy URL for the sql backend.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    backend: str | None,
    data_dir: str | None,
    database_url: str | None,
) -> None:
    """Library Management System CLI.

    The memory backend forgets everything when the command exits; use
    ``lmsctl shell`` or a file, caching, or sql backend to keep data.
    """
    if not isinstance(ctx.obj, AppContext):
        settings = LmsSettings.from_cli(
            config_path=config_path,
            backend=backend,
            data_dir=data_dir,
            database_url=database_url,
            json_output=json_output,
            quiet=quiet,
            verbose=verbose,
            log_json=log_json,
        )
        app = AppContext(settings)
        ctx.obj = app
        ctx.call_on_close(app.close)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
