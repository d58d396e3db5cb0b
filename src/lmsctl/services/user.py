"""UserService: patron registration and lookup."""

from __future__ import annotations

import logging

from lmsctl.domain.entities import User
from lmsctl.domain.errors import InvalidArgumentError, NotFoundError, OperationFailedError
from lmsctl.services.base import BaseService, require_id

logger = logging.getLogger(__name__)


class UserService(BaseService):
    """Registers, renames, and removes library users."""

    def add_user(self, user_id: str, name: str) -> User:
        if not user_id or not name:
            raise InvalidArgumentError("User ID and name cannot be empty.")
        if self._persistence.load_user(user_id) is not None:
            raise OperationFailedError(f"User with ID '{user_id}' already exists.")
        user = User(user_id, name)
        self._persistence.save_user(user)
        logger.debug("Added user %s", user_id)
        return user

    def find_user_by_id(self, user_id: str) -> User | None:
        require_id(user_id, "User ID")
        return self._persistence.load_user(user_id)

    def find_users_by_name(self, name: str) -> list[User]:
        """Exact, case-sensitive name match."""
        require_id(name, "User name")
        return [u for u in self._persistence.load_all_users() if u.name == name]

    def get_all_users(self) -> list[User]:
        return self._persistence.load_all_users()

    def update_user(self, user_id: str, new_name: str) -> User:
        require_id(user_id, "User ID")
        require_id(new_name, "New user name")
        user = self._persistence.load_user(user_id)
        if user is None:
            raise NotFoundError(f"User with ID '{user_id}' not found for update.")
        updated = user.renamed(new_name)
        self._persistence.save_user(updated)
        return updated

    def remove_user(self, user_id: str) -> bool:
        """Delete a user. Returns False when no such user exists.

        Loan records referencing the user are left in place.
        """
        require_id(user_id, "User ID")
        if self._persistence.load_user(user_id) is None:
            return False
        self._persistence.delete_user(user_id)
        logger.debug("Removed user %s", user_id)
        return True
