import logging
from typing import List, Optional

from library_system.author import Author
from library_system.book import AvailabilityStatus, Book, LibraryItem
from library_system.exceptions import InvalidArgumentError, NotFoundError, OperationFailedError
from library_system.storage.base import StorageBackend
from library_system.utils.validators import TextValidator, YearValidator

logger = logging.getLogger(__name__)


class CatalogService:
    """Manages the item catalog and the authors it references."""

    def __init__(self, storage: StorageBackend) -> None:
        if storage is None:
            raise InvalidArgumentError("Storage backend cannot be None for CatalogService.")
        self.storage = storage

    def get_or_create_author(self, author_id: str, author_name: str) -> Author:
        """Return the stored author with this id, creating it from author_name if absent."""
        TextValidator.require_id(author_id, "Author")
        author = self.storage.load_author(author_id)
        if author is not None:
            return author
        author = Author(author_id, TextValidator.require_text(author_name, "Author name"))
        self.storage.save_author(author)
        logger.info("Created author %s (%s)", author_id, author_name)
        return author

    def add_book(self, item_id: str, title: str, author_id: str, author_name: str,
                 isbn: str, publication_year: int) -> Book:
        TextValidator.require_id(item_id, "Item")
        TextValidator.require_text(title, "Book title")
        TextValidator.require_text(isbn, "Book ISBN")
        YearValidator.require_positive(publication_year)

        if self.storage.load_library_item(item_id) is not None:
            raise OperationFailedError(f"Library item with ID '{item_id}' already exists.")

        author = self.get_or_create_author(author_id, author_name)
        book = Book(item_id, title, author, isbn, publication_year)
        self.storage.save_library_item(book)
        logger.info("Added book %s: %s", item_id, title)
        return book

    def remove_item(self, item_id: str) -> bool:
        """Delete an item. Returns False when there was nothing to delete."""
        TextValidator.require_id(item_id, "Item")
        if self.storage.load_library_item(item_id) is None:
            return False
        self.storage.delete_library_item(item_id)
        logger.info("Removed item %s", item_id)
        return True

    def find_item_by_id(self, item_id: str) -> Optional[LibraryItem]:
        TextValidator.require_id(item_id, "Item")
        return self.storage.load_library_item(item_id)

    def find_items_by_title(self, title: str) -> List[LibraryItem]:
        """Exact title match."""
        TextValidator.require_text(title, "Title")
        return [item for item in self.storage.load_all_library_items() if item.title == title]

    def find_items_by_author(self, author_id: str) -> List[LibraryItem]:
        TextValidator.require_id(author_id, "Author")
        return [item for item in self.storage.load_all_library_items() if item.author_id == author_id]

    def get_all_items(self) -> List[LibraryItem]:
        return self.storage.load_all_library_items()

    def update_item_status(self, item_id: str, status: AvailabilityStatus) -> None:
        TextValidator.require_id(item_id, "Item")
        item = self.storage.load_library_item(item_id)
        if item is None:
            raise NotFoundError(f"Item with ID '{item_id}' not found for status update.")
        item.status = status
        self.storage.save_library_item(item)
        logger.debug("Item %s status set to %s", item_id, item.status.name)
