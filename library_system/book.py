from __future__ import annotations

from enum import IntEnum
from typing import Optional

from library_system.author import Author
from library_system.exceptions import InvalidArgumentError
from library_system.utils.validators import TextValidator, YearValidator

ITEM_TYPE_BOOK = "Book"


class AvailabilityStatus(IntEnum):
    """Item availability. The integer value is what the file and SQL backends persist."""

    AVAILABLE = 0
    BORROWED = 1
    RESERVED = 2
    MAINTENANCE = 3


def _coerce_status(value) -> AvailabilityStatus:
    try:
        return AvailabilityStatus(value)
    except ValueError as exc:
        raise InvalidArgumentError(f"Unknown availability status: {value!r}") from exc


class Book:
    """A single book in the catalog, the only library item variant so far."""

    item_type = ITEM_TYPE_BOOK

    def __init__(self, id: str, title: str, author: Optional[Author], isbn: str, publication_year: int,
                 status: AvailabilityStatus = AvailabilityStatus.AVAILABLE) -> None:
        if author is None:
            raise InvalidArgumentError("Book author cannot be null.")
        self._init_fields(id, title, author, isbn, publication_year, status)

    def _init_fields(self, id, title, author, isbn, publication_year, status) -> None:
        self._id = TextValidator.require_id(id, "Book")
        self._title = TextValidator.require_text(title, "Book title")
        self._author = author
        self._isbn = TextValidator.require_text(isbn, "Book ISBN")
        self._publication_year = YearValidator.require_positive(publication_year)
        self._status = _coerce_status(status)

    @classmethod
    def restore(cls, id: str, title: str, author: Optional[Author], isbn: str, publication_year: int,
                status: AvailabilityStatus = AvailabilityStatus.AVAILABLE) -> "Book":
        """Rebuild a persisted book.

        Same validation as the constructor except that the author may be missing:
        a stored item whose author record is gone still loads, without an author.
        """
        book = cls.__new__(cls)
        book._init_fields(id, title, author, isbn, publication_year, status)
        return book

    # ------------------------- Properties ------------------------- #
    @property
    def id(self) -> str:
        return self._id

    @property
    def title(self) -> str:
        return self._title

    @title.setter
    def title(self, value: str) -> None:
        self._title = TextValidator.require_text(value, "Book title")

    @property
    def author(self) -> Optional[Author]:
        return self._author

    @author.setter
    def author(self, value: Author) -> None:
        if value is None:
            raise InvalidArgumentError("Book author cannot be null.")
        self._author = value

    @property
    def isbn(self) -> str:
        return self._isbn

    @isbn.setter
    def isbn(self, value: str) -> None:
        self._isbn = TextValidator.require_text(value, "Book ISBN")

    @property
    def publication_year(self) -> int:
        return self._publication_year

    @publication_year.setter
    def publication_year(self, value: int) -> None:
        self._publication_year = YearValidator.require_positive(value)

    @property
    def status(self) -> AvailabilityStatus:
        return self._status

    @status.setter
    def status(self, value: AvailabilityStatus) -> None:
        self._status = _coerce_status(value)

    @property
    def author_id(self) -> Optional[str]:
        return self._author.id if self._author is not None else None

    # ------------------------- Copies & comparison ------------------------- #
    def clone(self) -> "Book":
        """Independent copy of this book. The Author reference is shared, not copied."""
        return Book.restore(self._id, self._title, self._author, self._isbn,
                            self._publication_year, self._status)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Book):
            return NotImplemented
        return (self._id == other._id and self._title == other._title
                and self._author == other._author and self._isbn == other._isbn
                and self._publication_year == other._publication_year
                and self._status == other._status)

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        author = self._author.name if self._author else "Unknown Author"
        return f"{self._title} by {author} (ISBN: {self._isbn})"


# Closed set of item variants; widen this alias when a second variant exists.
LibraryItem = Book


def build_library_item(item_type: str, id: str, title: str, author: Optional[Author], isbn: str,
                       publication_year: int, status: AvailabilityStatus) -> LibraryItem:
    """Rebuild a persisted item from its discriminant and fields."""
    if item_type == ITEM_TYPE_BOOK:
        return Book.restore(id, title, author, isbn, publication_year, status)
    raise InvalidArgumentError(f"Unknown library item type: {item_type!r}")
