"""Notification delivery for loan workflows.

Notifications are fire-and-forget: senders never learn whether a message
reached the user, and delivery problems never fail the calling workflow.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

import click

logger = logging.getLogger(__name__)


@runtime_checkable
class NotificationService(Protocol):
    """Anything that can deliver a message to a user."""

    def send_notification(self, user_id: str, message: str) -> None: ...


class ConsoleNotificationService:
    """Writes notifications to the terminal.

    Args:
        err: Write to stderr instead of stdout, keeping stdout free for
            machine-readable results.
    """

    def __init__(self, *, err: bool = False) -> None:
        self._err = err

    def send_notification(self, user_id: str, message: str) -> None:
        if not user_id or not message:
            logger.error("Notification dropped: user ID and message are required")
            return
        click.echo(f"[NOTIFICATION to User '{user_id}']: {message}", err=self._err)
