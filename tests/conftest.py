"""Shared pytest fixtures and test doubles for lmsctl tests."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from datetime import datetime, timedelta
from pathlib import Path

import pytest
import structlog
from click.testing import CliRunner, Result

from lmsctl.domain.clock import Clock
from lmsctl.infrastructure.persistence import create_persistence
from lmsctl.infrastructure.persistence.base import PersistenceService
from lmsctl.infrastructure.persistence.memory import InMemoryPersistenceService
from lmsctl.services.catalog import CatalogService
from lmsctl.services.loan import LoanService
from lmsctl.services.user import UserService

START = datetime(2024, 3, 1, 10, 30, 0)

BACKENDS = ["memory", "file", "caching", "sql"]


class FixedClock(Clock):
    """Clock frozen at a settable instant."""

    def __init__(self, now: datetime = START) -> None:
        self._now = now

    def now(self) -> datetime:
        return self._now

    def set(self, now: datetime) -> None:
        self._now = now

    def advance(self, *, days: int = 0, hours: int = 0) -> None:
        self._now += timedelta(days=days, hours=hours)


class RecordingNotifier:
    """Notifier that keeps every message instead of printing it."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    def send_notification(self, user_id: str, message: str) -> None:
        self.sent.append((user_id, message))


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    """Undo configure_logging() calls made by CLI tests."""
    yield
    logging.getLogger().handlers.clear()
    logging.getLogger("lmsctl").setLevel(logging.NOTSET)
    structlog.reset_defaults()


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture(params=BACKENDS)
def backend(
    request: pytest.FixtureRequest, data_dir: Path, clock: FixedClock
) -> Iterator[PersistenceService]:
    """Each of the four persistence backends on a fresh data directory."""
    service = create_persistence(request.param, data_dir, clock=clock)
    try:
        yield service
    finally:
        service.close()


@pytest.fixture
def memory() -> InMemoryPersistenceService:
    return InMemoryPersistenceService()


@pytest.fixture
def catalog(backend: PersistenceService) -> CatalogService:
    return CatalogService(backend)


@pytest.fixture
def users(backend: PersistenceService) -> UserService:
    return UserService(backend)


@pytest.fixture
def loans(
    catalog: CatalogService,
    users: UserService,
    backend: PersistenceService,
    notifier: RecordingNotifier,
    clock: FixedClock,
) -> LoanService:
    return LoanService(catalog, users, backend, notifier, clock)


@pytest.fixture
def _isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run CLI tests from an empty temp directory with no LMSCTL_* env."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("LMSCTL_CONFIG", raising=False)
    for name in ("BACKEND", "DATA_DIR", "DATABASE_URL", "AUTOSAVE", "STRICT_CSV"):
        monkeypatch.delenv(f"LMSCTL_STORAGE__{name}", raising=False)


@pytest.fixture
def invoke(
    cli_runner: CliRunner, data_dir: Path, _isolated_cwd: None
) -> Callable[..., Result]:
    """Run ``lmsctl`` against *data_dir* with the file backend and JSON output.

    Pass ``backend=`` to pick another backend, ``json_output=False`` for Rich output.
    """
    from lmsctl.cli import cli

    def run(
        *args: str,
        backend: str = "file",
        json_output: bool = True,
        input: str | None = None,
    ) -> Result:
        argv = ["--backend", backend, "--data-dir", str(data_dir)]
        if json_output:
            argv.append("--json")
        return cli_runner.invoke(cli, [*argv, *args], input=input)

    return run
