"""AppContext: shared Click context for all commands.

Created once by the root CLI group and handed to every subcommand via
``@click.pass_obj``. Builds the persistence backend and the services on
first use, converts domain errors into ServiceResults, and routes output
(stdout on success, stderr plus exit code 1 on failure).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import click

from lmsctl.domain.clock import Clock
from lmsctl.domain.errors import LmsError
from lmsctl.output.formatters import OutputSettings, format_result
from lmsctl.services.result import Payload, ServiceResult

if TYPE_CHECKING:
    from lmsctl.config.settings import LmsSettings
    from lmsctl.infrastructure.persistence.base import PersistenceService
    from lmsctl.services.catalog import CatalogService
    from lmsctl.services.loan import LoanService
    from lmsctl.services.notification import NotificationService
    from lmsctl.services.user import UserService

logger = logging.getLogger(__name__)


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    Nothing touches storage until a command needs it, so ``--help`` and
    ``--version`` never create data directories or databases.
    """

    def __init__(
        self,
        settings: LmsSettings,
        *,
        clock: Clock | None = None,
        notifier: NotificationService | None = None,
    ) -> None:
        self.settings = settings
        self.clock = clock or Clock()
        self._notifier = notifier
        self._persistence: PersistenceService | None = None
        self._catalog: CatalogService | None = None
        self._users: UserService | None = None
        self._loans: LoanService | None = None
        self._closed = False

        from lmsctl.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    # ------------------------------------------------------------------
    # Lazy collaborators
    # ------------------------------------------------------------------

    @property
    def persistence(self) -> PersistenceService:
        """The configured backend (created lazily on first access)."""
        if self._persistence is None:
            from lmsctl.infrastructure.persistence import create_persistence

            storage = self.settings.storage
            logger.debug("Opening %s backend", storage.backend)
            self._persistence = create_persistence(
                storage.backend,
                self.settings.data_dir,
                database_url=storage.database_url,
                strict_csv=storage.strict_csv,
                clock=self.clock,
            )
        return self._persistence

    @property
    def catalog(self) -> CatalogService:
        if self._catalog is None:
            from lmsctl.services.catalog import CatalogService

            self._catalog = CatalogService(self.persistence)
        return self._catalog

    @property
    def users(self) -> UserService:
        if self._users is None:
            from lmsctl.services.user import UserService

            self._users = UserService(self.persistence)
        return self._users

    @property
    def loans(self) -> LoanService:
        if self._loans is None:
            from lmsctl.services.loan import LoanService
            from lmsctl.services.notification import ConsoleNotificationService

            self._loans = LoanService(
                self.catalog,
                self.users,
                self.persistence,
                self._notifier or ConsoleNotificationService(err=self.settings.json_output),
                self.clock,
                self.settings.loans.default_duration_days,
            )
        return self._loans

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def run(self, op: str, action: Callable[[], Payload | dict[str, Any]]) -> None:
        """Run *action* and emit its payload, or the domain error it raised."""
        try:
            result = ServiceResult.success(op, action())
        except LmsError as exc:
            logger.debug("%s failed: %s", op, exc)
            result = ServiceResult.failure(op, exc)
        self.emit(result)

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success: writes to stdout, returns normally. Warnings go to
          stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Checkpoint the caching backend (when autosave is on) and close it."""
        if self._closed:
            return
        self._closed = True
        persistence = self._persistence
        if persistence is None:
            return

        from lmsctl.infrastructure.persistence import CachingFilePersistenceService

        try:
            if (
                isinstance(persistence, CachingFilePersistenceService)
                and self.settings.storage.autosave
            ):
                report = persistence.persist_all_to_file()
                logger.debug("Autosaved %s", report.to_dict())
        except LmsError as exc:
            click.echo(f"ERROR: autosave failed: {exc}", err=True)
            raise SystemExit(1) from exc
        finally:
            persistence.close()
