"""
Storage contract shared by every backend.

Rules every implementation follows:
- save_* is an upsert keyed by id; delete_* on a missing id is a no-op.
- Absence is reported as None (single lookups) or an empty list, never as an error.
- Failures (I/O, protocol, corrupt records hit by a single lookup) are raised as
  OperationFailedError, never as backend-specific exceptions.
- Items, users and loan records are returned as independent copies. Authors may be
  returned as shared references, as the in-memory backend does.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from library_system.author import Author
from library_system.book import LibraryItem
from library_system.loan_record import LoanRecord
from library_system.user import User


class StorageBackend(ABC):
    """Abstract base class for storage backends."""

    # ------------------------- Authors ------------------------- #
    @abstractmethod
    def save_author(self, author: Author) -> None:
        pass

    @abstractmethod
    def load_author(self, author_id: str) -> Optional[Author]:
        pass

    @abstractmethod
    def load_all_authors(self) -> List[Author]:
        pass

    @abstractmethod
    def delete_author(self, author_id: str) -> None:
        pass

    # ------------------------- Library items ------------------------- #
    @abstractmethod
    def save_library_item(self, item: LibraryItem) -> None:
        pass

    @abstractmethod
    def load_library_item(self, item_id: str) -> Optional[LibraryItem]:
        pass

    @abstractmethod
    def load_all_library_items(self) -> List[LibraryItem]:
        pass

    @abstractmethod
    def delete_library_item(self, item_id: str) -> None:
        pass

    # ------------------------- Users ------------------------- #
    @abstractmethod
    def save_user(self, user: User) -> None:
        pass

    @abstractmethod
    def load_user(self, user_id: str) -> Optional[User]:
        pass

    @abstractmethod
    def load_all_users(self) -> List[User]:
        pass

    @abstractmethod
    def delete_user(self, user_id: str) -> None:
        pass

    # ------------------------- Loan records ------------------------- #
    @abstractmethod
    def save_loan_record(self, record: LoanRecord) -> None:
        pass

    @abstractmethod
    def load_loan_record(self, record_id: str) -> Optional[LoanRecord]:
        pass

    @abstractmethod
    def load_loan_records_by_user(self, user_id: str) -> List[LoanRecord]:
        pass

    @abstractmethod
    def load_loan_records_by_item(self, item_id: str) -> List[LoanRecord]:
        pass

    @abstractmethod
    def load_all_loan_records(self) -> List[LoanRecord]:
        pass

    @abstractmethod
    def delete_loan_record(self, record_id: str) -> None:
        pass

    @abstractmethod
    def update_loan_record(self, record: LoanRecord) -> None:
        """Replace the stored record with the same id (inserts it if missing)."""
        pass

    # ------------------------- Lifecycle ------------------------- #
    def close(self) -> None:
        """Release backend resources. Backends without resources keep this no-op."""
        return None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
