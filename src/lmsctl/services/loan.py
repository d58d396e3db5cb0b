"""LoanService: the borrow / return / overdue workflow.

Each loan record moves ``active → returned`` exactly once. Borrowing and
returning touch two aggregates (the loan record and the item status):

- On backends with ``supports_transactions`` both writes run inside
  ``persistence.transaction()``.
- Elsewhere, if the second write fails the first is undone by a
  compensating write and the original error is re-raised.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from lmsctl.domain.clock import Clock
from lmsctl.domain.entities import LoanRecord
from lmsctl.domain.errors import (
    InvalidArgumentError,
    LmsError,
    NotFoundError,
    OperationFailedError,
)
from lmsctl.domain.ids import LoanIdGenerator
from lmsctl.domain.types import AvailabilityStatus
from lmsctl.services.base import BaseService, require_id

if TYPE_CHECKING:
    from lmsctl.infrastructure.persistence.base import PersistenceService
    from lmsctl.services.catalog import CatalogService
    from lmsctl.services.notification import NotificationService
    from lmsctl.services.user import UserService

logger = logging.getLogger(__name__)

DEFAULT_LOAN_DURATION_DAYS = 14
UNKNOWN_USER = "Unknown User"
UNKNOWN_ITEM = "Unknown Item"


@dataclass(frozen=True)
class OverdueNotice:
    """One overdue notification that was sent."""

    record_id: str
    user_id: str
    item_id: str
    user_name: str
    item_title: str
    due_date: datetime
    message: str


class LoanService(BaseService):
    """Coordinates catalog, users, and persistence for loans.

    Args:
        catalog: Item lookups and status changes.
        users: User lookups.
        persistence: Backend holding loan records.
        notifier: Receives overdue notices.
        clock: Source of "now" and "today".
        default_loan_duration_days: Days from loan to due date. Must be > 0.
    """

    def __init__(
        self,
        catalog: CatalogService,
        users: UserService,
        persistence: PersistenceService,
        notifier: NotificationService,
        clock: Clock,
        default_loan_duration_days: int = DEFAULT_LOAN_DURATION_DAYS,
    ) -> None:
        super().__init__(persistence)
        if catalog is None or users is None or notifier is None or clock is None:
            raise InvalidArgumentError("LoanService dependencies cannot be null.")
        if default_loan_duration_days <= 0:
            raise InvalidArgumentError("Default loan duration must be positive.")
        self._catalog = catalog
        self._users = users
        self._notifier = notifier
        self._clock = clock
        self._duration_days = default_loan_duration_days
        self._ids = LoanIdGenerator(
            lambda: [r.record_id for r in persistence.load_all_loan_records()]
        )

    @property
    def default_loan_duration_days(self) -> int:
        return self._duration_days

    # ------------------------------------------------------------------
    # Borrow / return
    # ------------------------------------------------------------------

    def borrow_item(self, user_id: str, item_id: str) -> LoanRecord:
        """Lend *item_id* to *user_id* and mark the item borrowed.

        Raises:
            InvalidArgumentError: Empty user or item ID.
            NotFoundError: Unknown user or item.
            OperationFailedError: Item not available, or already on loan to
                this user.
        """
        require_id(user_id, "User ID")
        require_id(item_id, "Item ID")

        if self._users.find_user_by_id(user_id) is None:
            raise NotFoundError(f"User with ID '{user_id}' not found.")
        item = self._catalog.find_item_by_id(item_id)
        if item is None:
            raise NotFoundError(f"Item with ID '{item_id}' not found.")
        if item.availability_status != AvailabilityStatus.AVAILABLE:
            msg = (
                f"Item '{item.title}' (ID: {item_id}) is not available for borrowing. "
                f"Current status: {item.availability_status.label}"
            )
            raise OperationFailedError(msg)
        for existing in self._persistence.load_loan_records_by_item_id(item_id):
            if existing.user_id == user_id and existing.is_active:
                msg = f"User '{user_id}' already has an active loan for item '{item_id}'."
                raise OperationFailedError(msg)

        loan_date = self._clock.now()
        record = LoanRecord(
            record_id=self._ids.next_id(),
            item_id=item_id,
            user_id=user_id,
            loan_date=loan_date,
            due_date=self._clock.add_days(loan_date, self._duration_days),
        )

        if self._persistence.supports_transactions:
            with self._persistence.transaction():
                self._persistence.save_loan_record(record)
                self._catalog.update_item_status(item_id, AvailabilityStatus.BORROWED)
        else:
            self._persistence.save_loan_record(record)
            try:
                self._catalog.update_item_status(item_id, AvailabilityStatus.BORROWED)
            except LmsError:
                self._compensate(
                    "borrow",
                    record.record_id,
                    lambda: self._persistence.delete_loan_record(record.record_id),
                )
                raise

        logger.info("Item %s borrowed by %s as %s", item_id, user_id, record.record_id)
        return record

    def return_item(self, user_id: str, item_id: str) -> LoanRecord:
        """Close the user's active loan of *item_id* and free the item.

        Raises:
            InvalidArgumentError: Empty user or item ID.
            NotFoundError: No active loan of this item by this user.
        """
        require_id(user_id, "User ID")
        require_id(item_id, "Item ID")

        active = next(
            (
                r
                for r in self._persistence.load_loan_records_by_item_id(item_id)
                if r.user_id == user_id and r.is_active
            ),
            None,
        )
        if active is None:
            msg = f"No active loan found for user '{user_id}' and item '{item_id}'."
            raise NotFoundError(msg)

        returned = active.mark_returned(self._clock.now())

        if self._persistence.supports_transactions:
            with self._persistence.transaction():
                self._persistence.update_loan_record(returned)
                self._catalog.update_item_status(item_id, AvailabilityStatus.AVAILABLE)
        else:
            self._persistence.update_loan_record(returned)
            try:
                self._catalog.update_item_status(item_id, AvailabilityStatus.AVAILABLE)
            except LmsError:
                self._compensate(
                    "return",
                    returned.record_id,
                    lambda: self._persistence.update_loan_record(returned.reopened()),
                )
                raise

        logger.info("Item %s returned by %s (%s)", item_id, user_id, returned.record_id)
        return returned

    def _compensate(self, op: str, record_id: str, undo: Callable[[], None]) -> None:
        """Run *undo*; a failing undo is logged and the caller's error still wins."""
        logger.warning("Item status update failed during %s; undoing %s", op, record_id)
        try:
            undo()
        except LmsError:
            logger.exception("Compensation for %s of %s failed", op, record_id)

    # ------------------------------------------------------------------
    # Projections
    # ------------------------------------------------------------------

    def get_active_loans_for_user(self, user_id: str) -> list[LoanRecord]:
        require_id(user_id, "User ID")
        return [
            r for r in self._persistence.load_loan_records_by_user_id(user_id) if r.is_active
        ]

    def get_loan_history_for_user(self, user_id: str) -> list[LoanRecord]:
        require_id(user_id, "User ID")
        return self._persistence.load_loan_records_by_user_id(user_id)

    def get_loan_history_for_item(self, item_id: str) -> list[LoanRecord]:
        require_id(item_id, "Item ID")
        return self._persistence.load_loan_records_by_item_id(item_id)

    # ------------------------------------------------------------------
    # Overdue
    # ------------------------------------------------------------------

    def process_overdue_items(self) -> list[OverdueNotice]:
        """Notify every user holding a loan due before today.

        A loan due earlier today is not overdue. Notices are sent on every
        call; there is no memory of earlier runs.
        """
        today = self._clock.today()
        notices: list[OverdueNotice] = []
        for record in self._persistence.load_all_loan_records():
            if not record.is_active or not record.due_date < today:
                continue
            user_name = self._user_name(record.user_id)
            item_title = self._item_title(record.item_id)
            message = (
                f"Dear {user_name}, the item '{item_title}' (Loan ID: {record.record_id}) "
                f"was due on {self._clock.format_date(record.due_date)}. "
                "Please return it as soon as possible."
            )
            self._notifier.send_notification(record.user_id, message)
            notices.append(
                OverdueNotice(
                    record_id=record.record_id,
                    user_id=record.user_id,
                    item_id=record.item_id,
                    user_name=user_name,
                    item_title=item_title,
                    due_date=record.due_date,
                    message=message,
                )
            )
        logger.debug("Processed overdue loans: %d notices", len(notices))
        return notices

    def _user_name(self, user_id: str) -> str:
        try:
            user = self._users.find_user_by_id(user_id)
        except LmsError:
            logger.warning("User lookup failed for %s", user_id, exc_info=True)
            return UNKNOWN_USER
        return user.name if user is not None else UNKNOWN_USER

    def _item_title(self, item_id: str) -> str:
        try:
            item = self._catalog.find_item_by_id(item_id)
        except LmsError:
            logger.warning("Item lookup failed for %s", item_id, exc_info=True)
            return UNKNOWN_ITEM
        return item.title if item is not None else UNKNOWN_ITEM
