import logging
from abc import ABC, abstractmethod
from typing import Optional

from rich.console import Console

logger = logging.getLogger(__name__)


class NotificationService(ABC):
    """Delivers a text message to a library member."""

    @abstractmethod
    def send_notification(self, user_id: str, message: str) -> None:
        pass


class ConsoleNotificationService(NotificationService):
    """Prints notifications to the terminal.

    Invalid notifications (empty user id or message) are logged and dropped.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def send_notification(self, user_id: str, message: str) -> None:
        if not user_id:
            logger.error("Notification dropped: user ID cannot be empty.")
            return
        if not message:
            logger.error("Notification dropped: message for user '%s' cannot be empty.", user_id)
            return
        # Messages carry user-supplied titles; never interpret them as rich markup.
        self.console.print(f"[NOTIFICATION to User '{user_id}']: {message}",
                           markup=False, highlight=False, soft_wrap=True)
