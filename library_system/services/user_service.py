import logging
from typing import List, Optional

from library_system.exceptions import InvalidArgumentError, NotFoundError, OperationFailedError
from library_system.storage.base import StorageBackend
from library_system.user import User
from library_system.utils.validators import TextValidator

logger = logging.getLogger(__name__)


class UserService:
    """Registers and looks up library members."""

    def __init__(self, storage: StorageBackend) -> None:
        if storage is None:
            raise InvalidArgumentError("Storage backend cannot be None for UserService.")
        self.storage = storage

    def add_user(self, user_id: str, name: str) -> User:
        TextValidator.require_id(user_id, "User")
        TextValidator.require_text(name, "User name")
        if self.storage.load_user(user_id) is not None:
            raise OperationFailedError(f"User with ID '{user_id}' already exists.")
        user = User(user_id, name)
        self.storage.save_user(user)
        logger.info("Added user %s", user_id)
        return user

    def find_user_by_id(self, user_id: str) -> Optional[User]:
        TextValidator.require_id(user_id, "User")
        return self.storage.load_user(user_id)

    def find_users_by_name(self, name: str) -> List[User]:
        TextValidator.require_text(name, "User name")
        return [user for user in self.storage.load_all_users() if user.name == name]

    def get_all_users(self) -> List[User]:
        return self.storage.load_all_users()

    def update_user(self, user_id: str, new_name: str) -> User:
        TextValidator.require_id(user_id, "User")
        TextValidator.require_text(new_name, "New user name")
        user = self.storage.load_user(user_id)
        if user is None:
            raise NotFoundError(f"User with ID '{user_id}' not found for update.")
        user.name = new_name
        self.storage.save_user(user)
        return user

    def remove_user(self, user_id: str) -> bool:
        TextValidator.require_id(user_id, "User")
        if self.storage.load_user(user_id) is None:
            return False
        self.storage.delete_user(user_id)
        logger.info("Removed user %s", user_id)
        return True
