"""Command group: inspect the backend and checkpoint the caching store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from lmsctl.commands._base import LmsGroup
from lmsctl.domain.errors import LmsError
from lmsctl.infrastructure.persistence import CachingFilePersistenceService

if TYPE_CHECKING:
    from lmsctl.commands._context import AppContext

_STORAGE_EXAMPLES = """\
  lmsctl --backend caching storage info
  lmsctl --backend caching storage save-all
  lmsctl --backend caching -v storage reload"""


class UnsupportedBackendError(LmsError):
    """The command needs a backend other than the configured one."""

    code = "UNSUPPORTED"


def _caching_backend(app: AppContext) -> CachingFilePersistenceService:
    backend = app.persistence
    if not isinstance(backend, CachingFilePersistenceService):
        current = app.settings.storage.backend
        msg = f"This command requires the caching backend (current: {current})."
        raise UnsupportedBackendError(msg)
    return backend


@click.group(cls=LmsGroup, examples=_STORAGE_EXAMPLES)
def storage() -> None:
    """Inspect the storage backend and checkpoint cached data."""


@storage.command("save-all", examples="  lmsctl --backend caching storage save-all")
@click.pass_obj
def save_all(app: AppContext) -> None:
    """Write every cached record to the CSV files."""
    app.run("save_all", lambda: _caching_backend(app).persist_all_to_file().to_dict())


@storage.command(examples="  lmsctl --backend caching -v storage reload")
@click.pass_obj
def reload(app: AppContext) -> None:
    """Discard cached data and reload it from the CSV files."""
    app.run("reload", lambda: _caching_backend(app).load_all_from_file_to_memory().to_dict())


@storage.command(examples="  lmsctl --json storage info")
@click.pass_obj
def info(app: AppContext) -> None:
    """Show the configured backend and its record counts."""

    def action() -> dict[str, Any]:
        settings = app.settings
        data = dict(app.persistence.describe())
        data["config_path"] = str(settings.config_path) if settings.config_path else None
        data["autosave"] = settings.storage.autosave
        return data

    app.run("storage_info", action)
