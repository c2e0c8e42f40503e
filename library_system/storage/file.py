"""
Flat-file storage backend.

One comma-delimited file per entity type inside ``data_dir``::

    authors.csv  id,name
    users.csv    id,name
    items.csv    id,type,title,author_id,isbn,year,status
    loans.csv    id,item_id,user_id,loan_date,due_date,return_date

Field values never contain a literal comma, double quote or line break on disk:
they are swapped for the control characters 0x1C-0x1F on write and swapped back
on read. Data that already contains those control characters does not round-trip.

Every save, update and delete reads the whole file, replaces, inserts or drops
the matching line and rewrites the whole file, so a mutation costs O(records).
"""

import logging
import os
import threading
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, TypeVar

from library_system.author import Author
from library_system.book import LibraryItem, build_library_item
from library_system.exceptions import LibraryError, OperationFailedError
from library_system.loan_record import LoanRecord
from library_system.storage.base import StorageBackend
from library_system.user import User
from library_system.utils.date_time import DATETIME_FORMAT, DateTimeUtils

logger = logging.getLogger(__name__)

AUTHORS_FILE = "authors.csv"
USERS_FILE = "users.csv"
ITEMS_FILE = "items.csv"
LOANS_FILE = "loans.csv"

DELIMITER = ","
LF_SUBSTITUTE = "\x1c"
CR_SUBSTITUTE = "\x1d"
COMMA_SUBSTITUTE = "\x1e"
QUOTE_SUBSTITUTE = "\x1f"

_ESCAPES = str.maketrans({",": COMMA_SUBSTITUTE, '"': QUOTE_SUBSTITUTE,
                          "\n": LF_SUBSTITUTE, "\r": CR_SUBSTITUTE})
_UNESCAPES = str.maketrans({COMMA_SUBSTITUTE: ",", QUOTE_SUBSTITUTE: '"',
                            LF_SUBSTITUTE: "\n", CR_SUBSTITUTE: "\r"})

AUTHOR_FIELDS = 2
USER_FIELDS = 2
ITEM_FIELDS = 7
LOAN_FIELDS = 6

T = TypeVar("T")


class MalformedRecordError(ValueError):
    """A stored line that cannot be turned back into an entity."""
    pass


def escape_field(value: str) -> str:
    return value.translate(_ESCAPES)


def unescape_field(value: str) -> str:
    return value.translate(_UNESCAPES)


def _format_date(value: Optional[datetime]) -> str:
    return DateTimeUtils.format_datetime(value) if value is not None else ""


def _parse_date(text: str, field: str, required: bool = True) -> Optional[datetime]:
    if not text and not required:
        return None
    parsed = DateTimeUtils.parse_datetime(text, DATETIME_FORMAT)
    if parsed is None:
        raise MalformedRecordError(f"bad {field} {text!r}")
    return parsed


class FileStorage(StorageBackend):
    """Storage backed by four CSV-like files rewritten on every mutation."""

    def __init__(self, data_dir: str):
        self.data_dir = data_dir
        self._lock = threading.RLock()
        try:
            os.makedirs(self.data_dir, exist_ok=True)
        except OSError as e:
            raise OperationFailedError(f"Cannot create data directory '{data_dir}': {e}") from e
        logger.info("File storage using directory %s", os.path.abspath(self.data_dir))

    # ------------------------- Raw file access ------------------------- #
    def _path(self, filename: str) -> str:
        return os.path.join(self.data_dir, filename)

    def _read_lines(self, filename: str) -> List[str]:
        path = self._path(filename)
        if not os.path.exists(path):
            return []
        try:
            with open(path, "r", encoding="utf-8", newline="") as fh:
                return [line.rstrip("\r\n") for line in fh if line.strip("\r\n")]
        except OSError as e:
            raise OperationFailedError(f"Failed to read {path}: {e}") from e

    def _write_lines(self, filename: str, lines: Iterable[str]) -> None:
        path = self._path(filename)
        try:
            with open(path, "w", encoding="utf-8", newline="") as fh:
                for line in lines:
                    fh.write(line + "\n")
        except OSError as e:
            raise OperationFailedError(f"Failed to write {path}: {e}") from e

    @staticmethod
    def _join(fields: List[str]) -> str:
        return DELIMITER.join(escape_field(f) for f in fields)

    @staticmethod
    def _split(line: str) -> List[str]:
        return [unescape_field(f) for f in line.split(DELIMITER)]

    @staticmethod
    def _line_id(line: str) -> str:
        return unescape_field(line.split(DELIMITER, 1)[0])

    def _upsert_line(self, filename: str, record_id: str, fields: List[str]) -> None:
        with self._lock:
            lines = self._read_lines(filename)
            new_line = self._join(fields)
            for index, line in enumerate(lines):
                if self._line_id(line) == record_id:
                    lines[index] = new_line
                    break
            else:
                lines.append(new_line)
            self._write_lines(filename, lines)

    def _delete_line(self, filename: str, record_id: str) -> None:
        with self._lock:
            lines = self._read_lines(filename)
            kept = [line for line in lines if self._line_id(line) != record_id]
            if len(kept) != len(lines):
                self._write_lines(filename, kept)

    def _find_fields(self, filename: str, record_id: str) -> Optional[List[str]]:
        for line in self._read_lines(filename):
            if self._line_id(line) == record_id:
                return self._split(line)
        return None

    def _load_one(self, filename: str, record_id: str, parse: Callable[[List[str]], T]) -> Optional[T]:
        with self._lock:
            fields = self._find_fields(filename, record_id)
            if fields is None:
                return None
            try:
                return parse(fields)
            except (MalformedRecordError, LibraryError) as e:
                raise OperationFailedError(
                    f"Malformed record '{record_id}' in {filename}: {e}") from e

    def _load_many(self, filename: str, parse: Callable[[List[str]], T],
                   keep: Callable[[List[str]], bool] = lambda fields: True) -> List[T]:
        with self._lock:
            results = []
            for line_no, line in enumerate(self._read_lines(filename), start=1):
                fields = self._split(line)
                if not keep(fields):
                    continue
                try:
                    results.append(parse(fields))
                except (MalformedRecordError, LibraryError) as e:
                    logger.warning("Skipping malformed line %d in %s: %s", line_no, filename, e)
            return results

    # ------------------------- Record codecs ------------------------- #
    @staticmethod
    def _parse_author(fields: List[str]) -> Author:
        if len(fields) != AUTHOR_FIELDS:
            raise MalformedRecordError(f"expected {AUTHOR_FIELDS} fields, got {len(fields)}")
        return Author(fields[0], fields[1])

    @staticmethod
    def _parse_user(fields: List[str]) -> User:
        if len(fields) != USER_FIELDS:
            raise MalformedRecordError(f"expected {USER_FIELDS} fields, got {len(fields)}")
        return User(fields[0], fields[1])

    def _item_parser(self, authors: Dict[str, Author]) -> Callable[[List[str]], LibraryItem]:
        def parse(fields: List[str]) -> LibraryItem:
            if len(fields) != ITEM_FIELDS:
                raise MalformedRecordError(f"expected {ITEM_FIELDS} fields, got {len(fields)}")
            item_id, item_type, title, author_id, isbn, year, status = fields
            try:
                year_value = int(year)
                status_value = int(status)
            except ValueError as e:
                raise MalformedRecordError(str(e)) from e
            author = authors.get(author_id) if author_id else None
            if author_id and author is None:
                logger.warning("Item %s references missing author %s; loading without author",
                               item_id, author_id)
            return build_library_item(item_type, item_id, title, author, isbn, year_value, status_value)
        return parse

    @staticmethod
    def _item_fields(item: LibraryItem) -> List[str]:
        return [item.id, item.item_type, item.title, item.author_id or "", item.isbn,
                str(item.publication_year), str(int(item.status))]

    @staticmethod
    def _parse_loan(fields: List[str]) -> LoanRecord:
        if len(fields) != LOAN_FIELDS:
            raise MalformedRecordError(f"expected {LOAN_FIELDS} fields, got {len(fields)}")
        record_id, item_id, user_id, loan_date, due_date, return_date = fields
        return LoanRecord(record_id, item_id, user_id,
                          _parse_date(loan_date, "loan_date"),
                          _parse_date(due_date, "due_date"),
                          _parse_date(return_date, "return_date", required=False))

    @staticmethod
    def _loan_fields(record: LoanRecord) -> List[str]:
        return [record.id, record.item_id, record.user_id, _format_date(record.loan_date),
                _format_date(record.due_date), _format_date(record.return_date)]

    def _authors_by_id(self) -> Dict[str, Author]:
        return {author.id: author for author in self.load_all_authors()}

    # ------------------------- Authors ------------------------- #
    def save_author(self, author: Author) -> None:
        self._upsert_line(AUTHORS_FILE, author.id, [author.id, author.name])

    def load_author(self, author_id: str) -> Optional[Author]:
        return self._load_one(AUTHORS_FILE, author_id, self._parse_author)

    def load_all_authors(self) -> List[Author]:
        return self._load_many(AUTHORS_FILE, self._parse_author)

    def delete_author(self, author_id: str) -> None:
        self._delete_line(AUTHORS_FILE, author_id)

    # ------------------------- Library items ------------------------- #
    def save_library_item(self, item: LibraryItem) -> None:
        self._upsert_line(ITEMS_FILE, item.id, self._item_fields(item))

    def load_library_item(self, item_id: str) -> Optional[LibraryItem]:
        with self._lock:
            return self._load_one(ITEMS_FILE, item_id, self._item_parser(self._authors_by_id()))

    def load_all_library_items(self) -> List[LibraryItem]:
        with self._lock:
            return self._load_many(ITEMS_FILE, self._item_parser(self._authors_by_id()))

    def delete_library_item(self, item_id: str) -> None:
        self._delete_line(ITEMS_FILE, item_id)

    # ------------------------- Users ------------------------- #
    def save_user(self, user: User) -> None:
        self._upsert_line(USERS_FILE, user.id, [user.id, user.name])

    def load_user(self, user_id: str) -> Optional[User]:
        return self._load_one(USERS_FILE, user_id, self._parse_user)

    def load_all_users(self) -> List[User]:
        return self._load_many(USERS_FILE, self._parse_user)

    def delete_user(self, user_id: str) -> None:
        self._delete_line(USERS_FILE, user_id)

    # ------------------------- Loan records ------------------------- #
    def save_loan_record(self, record: LoanRecord) -> None:
        self._upsert_line(LOANS_FILE, record.id, self._loan_fields(record))

    def load_loan_record(self, record_id: str) -> Optional[LoanRecord]:
        return self._load_one(LOANS_FILE, record_id, self._parse_loan)

    def load_loan_records_by_user(self, user_id: str) -> List[LoanRecord]:
        return self._load_many(LOANS_FILE, self._parse_loan,
                               keep=lambda f: len(f) > 2 and f[2] == user_id)

    def load_loan_records_by_item(self, item_id: str) -> List[LoanRecord]:
        return self._load_many(LOANS_FILE, self._parse_loan,
                               keep=lambda f: len(f) > 1 and f[1] == item_id)

    def load_all_loan_records(self) -> List[LoanRecord]:
        return self._load_many(LOANS_FILE, self._parse_loan)

    def delete_loan_record(self, record_id: str) -> None:
        self._delete_line(LOANS_FILE, record_id)

    def update_loan_record(self, record: LoanRecord) -> None:
        self.save_loan_record(record)

    # ------------------------- Bulk rewrites ------------------------- #
    def write_all_authors(self, authors: Iterable[Author]) -> None:
        with self._lock:
            self._write_lines(AUTHORS_FILE, [self._join([a.id, a.name]) for a in authors])

    def write_all_users(self, users: Iterable[User]) -> None:
        with self._lock:
            self._write_lines(USERS_FILE, [self._join([u.id, u.name]) for u in users])

    def write_all_library_items(self, items: Iterable[LibraryItem]) -> None:
        with self._lock:
            self._write_lines(ITEMS_FILE, [self._join(self._item_fields(i)) for i in items])

    def write_all_loan_records(self, records: Iterable[LoanRecord]) -> None:
        with self._lock:
            self._write_lines(LOANS_FILE, [self._join(self._loan_fields(r)) for r in records])
