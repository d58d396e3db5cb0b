"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults live here, ``lmsctl.toml`` only holds
overrides. An empty file (or none at all) gives an in-memory library.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

BackendName = Literal["memory", "file", "caching", "sql"]


class StorageConfig(BaseModel):
    """[storage] section."""

    model_config = {"frozen": True}

    backend: BackendName = "memory"
    data_dir: Path = Path("lms_data")
    database_url: str | None = None
    autosave: bool = True
    strict_csv: bool = False


class LoansConfig(BaseModel):
    """[loans] section."""

    model_config = {"frozen": True}

    default_duration_days: int = Field(default=14, gt=0)

