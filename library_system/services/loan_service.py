"""
Loan lifecycle: borrow, return and overdue processing.

A loan for a (user, item) pair goes NONE -> ACTIVE (borrow) -> CLOSED (return).

Borrow and return each make two separate storage writes: the loan record
first, then the item status. They are not wrapped in a transaction on any
backend, so a failure between the two leaves the loan written and the item
status unchanged.
"""

import logging
from typing import Callable, List, Optional

from library_system.book import AvailabilityStatus
from library_system.exceptions import InvalidArgumentError, NotFoundError, OperationFailedError
from library_system.loan_record import LoanRecord
from library_system.services.catalog_service import CatalogService
from library_system.services.loan_ids import CounterLoanIdGenerator
from library_system.services.notification_service import NotificationService
from library_system.services.user_service import UserService
from library_system.storage.base import StorageBackend
from library_system.utils.date_time import DateTimeUtils
from library_system.utils.validators import TextValidator

logger = logging.getLogger(__name__)

DEFAULT_LOAN_DURATION_DAYS = 14
UNKNOWN_USER = "Unknown User"
UNKNOWN_ITEM = "Unknown Item"

OVERDUE_MESSAGE = ("Dear {user}, the item '{title}' (Loan ID: {loan_id}) was due on {due}. "
                   "Please return it as soon as possible.")


class LoanService:
    """Coordinates loans between the catalog, the user registry and storage."""

    def __init__(self, catalog: CatalogService, users: UserService, storage: StorageBackend,
                 notifications: NotificationService, date_time_utils: DateTimeUtils,
                 default_loan_duration_days: int = DEFAULT_LOAN_DURATION_DAYS,
                 id_generator: Optional[Callable[[], str]] = None) -> None:
        for name, value in (("Catalog service", catalog), ("User service", users),
                            ("Storage backend", storage), ("Notification service", notifications),
                            ("DateTime utils", date_time_utils)):
            if value is None:
                raise InvalidArgumentError(f"{name} cannot be None.")
        if default_loan_duration_days <= 0:
            raise InvalidArgumentError("Default loan duration must be positive.")

        self.catalog = catalog
        self.users = users
        self.storage = storage
        self.notifications = notifications
        self.date_time_utils = date_time_utils
        self.default_loan_duration_days = default_loan_duration_days
        self.id_generator = id_generator or CounterLoanIdGenerator()

    def borrow_item(self, user_id: str, item_id: str) -> LoanRecord:
        TextValidator.require_id(user_id, "User")
        TextValidator.require_id(item_id, "Item")

        if self.users.find_user_by_id(user_id) is None:
            raise NotFoundError(f"User with ID '{user_id}' not found.")

        item = self.catalog.find_item_by_id(item_id)
        if item is None:
            raise NotFoundError(f"Library item with ID '{item_id}' not found.")
        if item.status != AvailabilityStatus.AVAILABLE:
            raise OperationFailedError(
                f"Item '{item_id}' is not available for borrowing. Status: {item.status.name}")

        if any(loan.item_id == item_id for loan in self.get_active_loans_for_user(user_id)):
            raise OperationFailedError(f"User '{user_id}' has already borrowed item '{item_id}'.")

        loan_date = self.date_time_utils.now()
        due_date = self.date_time_utils.add_days(loan_date, self.default_loan_duration_days)
        loan = LoanRecord(self.id_generator(), item_id, user_id, loan_date, due_date)

        self.storage.save_loan_record(loan)
        # Not atomic with the save above.
        self.catalog.update_item_status(item_id, AvailabilityStatus.BORROWED)

        logger.info("User %s borrowed item %s (loan %s, due %s)", user_id, item_id, loan.id,
                    DateTimeUtils.format_date(due_date))
        return loan

    def return_item(self, user_id: str, item_id: str) -> LoanRecord:
        """Close the user's active loan for the item and make the item available again."""
        TextValidator.require_id(user_id, "User")
        TextValidator.require_id(item_id, "Item")

        active = next((loan for loan in self.storage.load_loan_records_by_item(item_id)
                       if loan.user_id == user_id and loan.is_active), None)
        if active is None:
            raise NotFoundError(f"No active loan found for user '{user_id}' and item '{item_id}'.")

        active.return_date = self.date_time_utils.now()
        self.storage.update_loan_record(active)
        # Not atomic with the update above.
        self.catalog.update_item_status(item_id, AvailabilityStatus.AVAILABLE)

        logger.info("User %s returned item %s (loan %s)", user_id, item_id, active.id)
        return active

    def get_active_loans_for_user(self, user_id: str) -> List[LoanRecord]:
        TextValidator.require_id(user_id, "User")
        return [loan for loan in self.storage.load_loan_records_by_user(user_id) if loan.is_active]

    def get_loan_history_for_user(self, user_id: str) -> List[LoanRecord]:
        TextValidator.require_id(user_id, "User")
        return self.storage.load_loan_records_by_user(user_id)

    def get_loan_history_for_item(self, item_id: str) -> List[LoanRecord]:
        TextValidator.require_id(item_id, "Item")
        return self.storage.load_loan_records_by_item(item_id)

    def process_overdue_items(self) -> List[LoanRecord]:
        """Notify the borrower of every active loan due before today's midnight.

        Nothing is remembered between runs: each call notifies every loan that is
        still overdue. Returns the records notified.
        """
        today = self.date_time_utils.today()
        overdue = [loan for loan in self.storage.load_all_loan_records() if loan.is_overdue(today)]

        for loan in overdue:
            user = self.users.find_user_by_id(loan.user_id)
            item = self.catalog.find_item_by_id(loan.item_id)
            message = OVERDUE_MESSAGE.format(
                user=user.name if user is not None else UNKNOWN_USER,
                title=item.title if item is not None else UNKNOWN_ITEM,
                loan_id=loan.id,
                due=DateTimeUtils.format_date(loan.due_date),
            )
            self.notifications.send_notification(loan.user_id, message)

        if overdue:
            logger.info("Sent %d overdue notification(s)", len(overdue))
        return overdue
