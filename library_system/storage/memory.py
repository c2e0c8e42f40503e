"""
In-memory storage backend.

Thread-safe dictionaries keyed by id, guarded by one re-entrant lock in the
same way as the memory cache it grew out of. Items, users and loan records are
copied on save and on load; authors are kept and handed back by reference.
"""

import logging
import threading
from typing import Dict, List, Optional, Tuple

from library_system.author import Author
from library_system.book import LibraryItem
from library_system.loan_record import LoanRecord
from library_system.storage.base import StorageBackend
from library_system.user import User

logger = logging.getLogger(__name__)


class InMemoryStorage(StorageBackend):
    """Process-local storage with no persistence."""

    def __init__(self):
        self._lock = threading.RLock()
        self._authors: Dict[str, Author] = {}
        self._items: Dict[str, LibraryItem] = {}
        self._users: Dict[str, User] = {}
        self._loans: Dict[str, LoanRecord] = {}

    # ------------------------- Authors ------------------------- #
    def save_author(self, author: Author) -> None:
        with self._lock:
            self._authors[author.id] = author

    def load_author(self, author_id: str) -> Optional[Author]:
        with self._lock:
            return self._authors.get(author_id)

    def load_all_authors(self) -> List[Author]:
        with self._lock:
            return list(self._authors.values())

    def delete_author(self, author_id: str) -> None:
        with self._lock:
            self._authors.pop(author_id, None)

    # ------------------------- Library items ------------------------- #
    def save_library_item(self, item: LibraryItem) -> None:
        with self._lock:
            self._items[item.id] = item.clone()

    def load_library_item(self, item_id: str) -> Optional[LibraryItem]:
        with self._lock:
            item = self._items.get(item_id)
            return item.clone() if item is not None else None

    def load_all_library_items(self) -> List[LibraryItem]:
        with self._lock:
            return [item.clone() for item in self._items.values()]

    def delete_library_item(self, item_id: str) -> None:
        with self._lock:
            self._items.pop(item_id, None)

    # ------------------------- Users ------------------------- #
    def save_user(self, user: User) -> None:
        with self._lock:
            self._users[user.id] = user.clone()

    def load_user(self, user_id: str) -> Optional[User]:
        with self._lock:
            user = self._users.get(user_id)
            return user.clone() if user is not None else None

    def load_all_users(self) -> List[User]:
        with self._lock:
            return [user.clone() for user in self._users.values()]

    def delete_user(self, user_id: str) -> None:
        with self._lock:
            self._users.pop(user_id, None)

    # ------------------------- Loan records ------------------------- #
    def save_loan_record(self, record: LoanRecord) -> None:
        with self._lock:
            self._loans[record.id] = record.clone()

    def load_loan_record(self, record_id: str) -> Optional[LoanRecord]:
        with self._lock:
            record = self._loans.get(record_id)
            return record.clone() if record is not None else None

    def load_loan_records_by_user(self, user_id: str) -> List[LoanRecord]:
        with self._lock:
            return [r.clone() for r in self._loans.values() if r.user_id == user_id]

    def load_loan_records_by_item(self, item_id: str) -> List[LoanRecord]:
        with self._lock:
            return [r.clone() for r in self._loans.values() if r.item_id == item_id]

    def load_all_loan_records(self) -> List[LoanRecord]:
        with self._lock:
            return [r.clone() for r in self._loans.values()]

    def delete_loan_record(self, record_id: str) -> None:
        with self._lock:
            self._loans.pop(record_id, None)

    def update_loan_record(self, record: LoanRecord) -> None:
        self.save_loan_record(record)

    # ------------------------- Maintenance ------------------------- #
    def snapshot(self) -> Tuple[List[Author], List[User], List[LibraryItem], List[LoanRecord]]:
        """Authors, users, items and loan records, all read under one lock hold."""
        with self._lock:
            return (self.load_all_authors(), self.load_all_users(),
                    self.load_all_library_items(), self.load_all_loan_records())

    def clear(self) -> None:
        """Drop every stored entity."""
        with self._lock:
            self._authors.clear()
            self._items.clear()
            self._users.clear()
            self._loans.clear()
            logger.debug("In-memory storage cleared")
