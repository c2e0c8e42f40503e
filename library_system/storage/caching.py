"""
Caching storage backend.

Reads and writes go to an in-memory store only. The file store is read once on
construction (and on ``reload``) and written only by ``persist_all``. Anything
changed since the last ``persist_all`` is lost if the process exits without one.
"""

import logging
from typing import List, Optional

from library_system.author import Author
from library_system.book import LibraryItem
from library_system.loan_record import LoanRecord
from library_system.storage.base import StorageBackend
from library_system.storage.file import FileStorage
from library_system.storage.memory import InMemoryStorage
from library_system.user import User

logger = logging.getLogger(__name__)


class CachingStorage(StorageBackend):
    """In-memory store bulk-loaded from, and explicitly flushed to, a file store."""

    def __init__(self, data_dir: str):
        self.memory = InMemoryStorage()
        self.file = FileStorage(data_dir)
        self.reload()

    def reload(self) -> None:
        """Replace the in-memory state with the file contents.

        Load order follows references: authors, users, items, loans.
        """
        self.memory.clear()
        for author in self.file.load_all_authors():
            self.memory.save_author(author)
        for user in self.file.load_all_users():
            self.memory.save_user(user)
        items = self.file.load_all_library_items()
        for item in items:
            # Point at the author instance held in memory, not the file's copy.
            if item.author_id is not None:
                shared = self.memory.load_author(item.author_id)
                if shared is not None:
                    item.author = shared
            self.memory.save_library_item(item)
        loans = self.file.load_all_loan_records()
        for record in loans:
            self.memory.save_loan_record(record)
        logger.info("Cache loaded from %s: %d items, %d loans", self.file.data_dir, len(items), len(loans))

    def persist_all(self) -> None:
        """Overwrite the files with the current in-memory state."""
        authors, users, items, loans = self.memory.snapshot()
        self.file.write_all_authors(authors)
        self.file.write_all_users(users)
        self.file.write_all_library_items(items)
        self.file.write_all_loan_records(loans)
        logger.info("Cache persisted to %s", self.file.data_dir)

    def save_author(self, author: Author) -> None:
        self.memory.save_author(author)

    def load_author(self, author_id: str) -> Optional[Author]:
        return self.memory.load_author(author_id)

    def load_all_authors(self) -> List[Author]:
        return self.memory.load_all_authors()

    def delete_author(self, author_id: str) -> None:
        self.memory.delete_author(author_id)

    def save_library_item(self, item: LibraryItem) -> None:
        self.memory.save_library_item(item)

    def load_library_item(self, item_id: str) -> Optional[LibraryItem]:
        return self.memory.load_library_item(item_id)

    def load_all_library_items(self) -> List[LibraryItem]:
        return self.memory.load_all_library_items()

    def delete_library_item(self, item_id: str) -> None:
        self.memory.delete_library_item(item_id)

    def save_user(self, user: User) -> None:
        self.memory.save_user(user)

    def load_user(self, user_id: str) -> Optional[User]:
        return self.memory.load_user(user_id)

    def load_all_users(self) -> List[User]:
        return self.memory.load_all_users()

    def delete_user(self, user_id: str) -> None:
        self.memory.delete_user(user_id)

    def save_loan_record(self, record: LoanRecord) -> None:
        self.memory.save_loan_record(record)

    def load_loan_record(self, record_id: str) -> Optional[LoanRecord]:
        return self.memory.load_loan_record(record_id)

    def load_loan_records_by_user(self, user_id: str) -> List[LoanRecord]:
        return self.memory.load_loan_records_by_user(user_id)

    def load_loan_records_by_item(self, item_id: str) -> List[LoanRecord]:
        return self.memory.load_loan_records_by_item(item_id)

    def load_all_loan_records(self) -> List[LoanRecord]:
        return self.memory.load_all_loan_records()

    def delete_loan_record(self, record_id: str) -> None:
        self.memory.delete_loan_record(record_id)

    def update_loan_record(self, record: LoanRecord) -> None:
        self.memory.update_loan_record(record)
