"""Unified settings: CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs: CLI flags passed by Click
  2. Env vars: ``LMSCTL_*`` prefix, ``__`` for nested sections
     (``LMSCTL_STORAGE__BACKEND=sql``)
  3. TOML file: ``lmsctl.toml`` from ``--config``, ``LMSCTL_CONFIG``, or walk-up
  4. Code defaults: baked into the section models
"""

from __future__ import annotations

import os
import threading
import tomllib
from pathlib import Path
from typing import Any

import click
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from lmsctl.config.models import LoansConfig, StorageConfig


CONFIG_FILENAME = "lmsctl.toml"
CONFIG_ENV_VAR = "LMSCTL_CONFIG"


def _explicit_config(path: str, origin: str) -> Path:
    toml_path = Path(path).expanduser()
    if not toml_path.is_file():
        msg = f"Config file not found: {path} (from {origin})"
        raise click.ClickException(msg)
    return toml_path


def locate_config(config_path: str | None = None, start: Path | None = None) -> Path | None:
    """Pick the ``lmsctl.toml`` a CLI run reads.

    ``--config`` wins over ``LMSCTL_CONFIG``, and either must name an
    existing file. Without them the nearest ``lmsctl.toml`` in *start*
    (default: CWD) or one of its parents is used; None if there is none.
    """
    if config_path:
        return _explicit_config(config_path, "--config")
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return _explicit_config(env_path, CONFIG_ENV_VAR)
    here = (start or Path.cwd()).resolve()
    for directory in (here, *here.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from an ``lmsctl.toml`` file."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# TOML path handed to settings_customise_sources during construction.
_tls = threading.local()


class LmsSettings(BaseSettings):
    """Settings for the whole lmsctl CLI, frozen after construction.

    Attributes:
        root: Directory relative paths resolve against (parent of
            ``lmsctl.toml``, or CWD if no config was found).
        config_path: The config file in use, if any.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "LMSCTL_",
        "env_nested_delimiter": "__",
    }

    root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    storage: StorageConfig = Field(default_factory=StorageConfig)
    loans: LoansConfig = Field(default_factory=LoansConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @property
    def data_dir(self) -> Path:
        """Storage directory; relative paths resolve against :attr:`root`."""
        path = self.storage.data_dir.expanduser()
        return path if path.is_absolute() else self.root / path

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        root: Path | None = None,
        backend: str | None = None,
        data_dir: str | None = None,
        database_url: str | None = None,
        **cli_flags: Any,
    ) -> LmsSettings:
        """Construct settings from a CLI invocation.

        Reads the file :func:`locate_config` picks for *config_path*,
        resolves *root* from the config file's parent directory, and merges
        CLI flags as highest-priority overrides. Storage flags left as None
        do not override lower-priority sources.
        """
        toml_path = locate_config(config_path, root)

        resolved_root = root
        if resolved_root is None:
            resolved_root = toml_path.parent.resolve() if toml_path else Path.cwd()

        storage_overrides = {
            key: value
            for key, value in (
                ("backend", backend),
                ("data_dir", data_dir),
                ("database_url", database_url),
            )
            if value is not None
        }
        if storage_overrides:
            cli_flags["storage"] = storage_overrides

        _tls.toml_path = toml_path
        try:
            return cls(
                root=resolved_root,
                config_path=toml_path,
                **cli_flags,
            )
        except ValidationError as exc:
            msg = f"Invalid configuration: {exc}"
            raise click.ClickException(msg) from exc
        finally:
            _tls.toml_path = None
