"""
Relational storage backend.

Holds one lazily opened connection, reopened whenever it reports disconnected.
Every save is a single upsert statement; reads are parameterised selects by id
or by foreign key. Transactions are explicit and never started implicitly by a
save or a load. Closing the backend rolls back any transaction still open.

Timestamps are written with microseconds and read back truncated to whole
seconds.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, List, Optional, TypeVar

from library_system.author import Author
from library_system.book import LibraryItem, build_library_item
from library_system.exceptions import LibraryError, OperationFailedError
from library_system.loan_record import LoanRecord
from library_system.storage.base import StorageBackend
from library_system.storage.dbapi import Connection, ProtocolError, ResultSet
from library_system.storage.schema import create_tables
from library_system.user import User
from library_system.utils.date_time import DATETIME_FORMAT, DateTimeUtils

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = DATETIME_FORMAT + ".%f"

T = TypeVar("T")

UPSERT_AUTHOR = """
    INSERT INTO Authors (AuthorId, Name) VALUES (?, ?)
    ON CONFLICT(AuthorId) DO UPDATE SET Name = excluded.Name
"""
UPSERT_USER = """
    INSERT INTO Users (UserId, Name) VALUES (?, ?)
    ON CONFLICT(UserId) DO UPDATE SET Name = excluded.Name
"""
UPSERT_ITEM = """
    INSERT INTO LibraryItems
        (ItemId, ItemType, Title, AuthorId, ISBN, PublicationYear, AvailabilityStatus)
    VALUES (?, ?, ?, ?, ?, ?, ?)
    ON CONFLICT(ItemId) DO UPDATE SET
        ItemType = excluded.ItemType,
        Title = excluded.Title,
        AuthorId = excluded.AuthorId,
        ISBN = excluded.ISBN,
        PublicationYear = excluded.PublicationYear,
        AvailabilityStatus = excluded.AvailabilityStatus
"""
UPSERT_LOAN = """
    INSERT INTO LoanRecords (LoanRecordId, ItemId, UserId, LoanDate, DueDate, ReturnDate)
    VALUES (?, ?, ?, ?, ?, ?)
    ON CONFLICT(LoanRecordId) DO UPDATE SET
        ItemId = excluded.ItemId,
        UserId = excluded.UserId,
        LoanDate = excluded.LoanDate,
        DueDate = excluded.DueDate,
        ReturnDate = excluded.ReturnDate
"""

SELECT_AUTHORS = "SELECT AuthorId, Name FROM Authors"
SELECT_USERS = "SELECT UserId, Name FROM Users"
SELECT_ITEMS = ("SELECT ItemId, ItemType, Title, AuthorId, ISBN, PublicationYear, AvailabilityStatus "
                "FROM LibraryItems")
SELECT_LOANS = "SELECT LoanRecordId, ItemId, UserId, LoanDate, DueDate, ReturnDate FROM LoanRecords"


def format_timestamp(value: datetime) -> str:
    return value.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(text: Optional[str]) -> Optional[datetime]:
    """Parse a stored timestamp, dropping any fractional seconds."""
    if text is None:
        return None
    parsed = DateTimeUtils.parse_datetime(text[:19], DATETIME_FORMAT)
    if parsed is None:
        raise ProtocolError(f"Invalid timestamp {text!r}")
    return parsed


class SqlStorage(StorageBackend):
    """Storage in a relational database reached through the dbapi layer."""

    def __init__(self, connection_string: str, driver=None, create_schema: bool = True):
        self.connection_string = connection_string
        self.create_schema = create_schema
        self._driver = driver
        self._connection: Optional[Connection] = None
        self._lock = threading.RLock()

    # ------------------------- Connection handling ------------------------- #
    def _get_connection(self) -> Connection:
        if self._connection is None:
            if self._driver is None:
                self._connection = Connection(self.connection_string)
            else:
                self._connection = Connection(self.connection_string, driver=self._driver)
        if not self._connection.is_connected():
            self._connection.connect()
            if self.create_schema:
                create_tables(self._connection)
            logger.info("SQL storage connected to %s", self.connection_string)
        return self._connection

    @contextmanager
    def _operation(self, action: str):
        """Serialise access to the connection and wrap failures as OperationFailedError."""
        with self._lock:
            try:
                yield self._get_connection()
            except ProtocolError as e:
                logger.error("SQL storage failed to %s: %s", action, e)
                raise OperationFailedError(f"Failed to {action}: {e}") from e

    def _update(self, action: str, sql: str, params: List[Optional[object]]) -> int:
        with self._operation(action) as conn:
            statement = conn.prepare_statement(sql)
            for index, value in enumerate(params, start=1):
                if value is None:
                    statement.bind_null(index)
                elif isinstance(value, int):
                    statement.bind_int(index, value)
                else:
                    statement.bind_string(index, value)
            return statement.execute_update()

    def _query(self, action: str, sql: str, params: List[str],
               parse: Callable[[ResultSet], T], skip_malformed: bool = True) -> List[T]:
        """Run a select and decode each row.

        With skip_malformed a row that cannot be decoded is logged and left out;
        otherwise it fails the whole call.
        """
        with self._operation(action) as conn:
            statement = conn.prepare_statement(sql)
            for index, value in enumerate(params, start=1):
                statement.bind_string(index, value)
            rows = statement.execute_query()
            results = []
            try:
                for row in rows:
                    try:
                        results.append(parse(row))
                    except (LibraryError, ProtocolError) as e:
                        if not skip_malformed:
                            raise ProtocolError(f"Invalid stored row: {e}") from e
                        logger.warning("Skipping malformed row %s while trying to %s: %s",
                                       row.get_string(1), action, e)
            finally:
                rows.close()
            return results

    def _query_one(self, action: str, sql: str, params: List[str],
                   parse: Callable[[ResultSet], T]) -> Optional[T]:
        results = self._query(action, sql, params, parse, skip_malformed=False)
        return results[0] if results else None

    # ------------------------- Transactions ------------------------- #
    def begin_transaction(self) -> None:
        with self._operation("begin transaction") as conn:
            conn.begin_transaction()

    def commit_transaction(self) -> None:
        with self._operation("commit transaction") as conn:
            conn.commit()

    def rollback_transaction(self) -> None:
        with self._operation("roll back transaction") as conn:
            conn.rollback()

    def close(self) -> None:
        with self._lock:
            connection, self._connection = self._connection, None
            if connection is None or not connection.is_connected():
                return
            try:
                try:
                    if connection.in_transaction():
                        logger.warning("Rolling back transaction left open on %s", self.connection_string)
                        connection.rollback()
                finally:
                    connection.disconnect()
            except ProtocolError as e:
                raise OperationFailedError(f"Failed to close connection: {e}") from e

    def __del__(self):
        try:
            self.close()
        except Exception:  # pragma: no cover - interpreter shutdown
            pass

    # ------------------------- Row decoding ------------------------- #
    @staticmethod
    def _author_from_row(row: ResultSet) -> Author:
        return Author(row.get_string("AuthorId"), row.get_string("Name"))

    @staticmethod
    def _user_from_row(row: ResultSet) -> User:
        return User(row.get_string("UserId"), row.get_string("Name"))

    def _item_from_row(self, row: ResultSet) -> LibraryItem:
        author = None
        if not row.is_null("AuthorId"):
            author_id = row.get_string("AuthorId")
            author = self._query_one("load author", SELECT_AUTHORS + " WHERE AuthorId = ?",
                                     [author_id], self._author_from_row)
            if author is None:
                logger.warning("Item %s references missing author %s",
                               row.get_string("ItemId"), author_id)
        return build_library_item(
            row.get_string("ItemType"), row.get_string("ItemId"), row.get_string("Title"), author,
            row.get_string("ISBN"), row.get_int("PublicationYear"), row.get_int("AvailabilityStatus"))

    @staticmethod
    def _loan_from_row(row: ResultSet) -> LoanRecord:
        return LoanRecord(row.get_string("LoanRecordId"), row.get_string("ItemId"),
                          row.get_string("UserId"), parse_timestamp(row.get_string("LoanDate")),
                          parse_timestamp(row.get_string("DueDate")),
                          parse_timestamp(row.get_string("ReturnDate")))

    # ------------------------- Authors ------------------------- #
    def save_author(self, author: Author) -> None:
        self._update("save author", UPSERT_AUTHOR, [author.id, author.name])

    def load_author(self, author_id: str) -> Optional[Author]:
        return self._query_one("load author", SELECT_AUTHORS + " WHERE AuthorId = ?",
                               [author_id], self._author_from_row)

    def load_all_authors(self) -> List[Author]:
        return self._query("load authors", SELECT_AUTHORS, [], self._author_from_row)

    def delete_author(self, author_id: str) -> None:
        self._update("delete author", "DELETE FROM Authors WHERE AuthorId = ?", [author_id])

    # ------------------------- Library items ------------------------- #
    def save_library_item(self, item: LibraryItem) -> None:
        self._update("save library item", UPSERT_ITEM,
                     [item.id, item.item_type, item.title, item.author_id, item.isbn,
                      item.publication_year, int(item.status)])

    def load_library_item(self, item_id: str) -> Optional[LibraryItem]:
        return self._query_one("load library item", SELECT_ITEMS + " WHERE ItemId = ?",
                               [item_id], self._item_from_row)

    def load_all_library_items(self) -> List[LibraryItem]:
        return self._query("load library items", SELECT_ITEMS, [], self._item_from_row)

    def delete_library_item(self, item_id: str) -> None:
        self._update("delete library item", "DELETE FROM LibraryItems WHERE ItemId = ?", [item_id])

    # ------------------------- Users ------------------------- #
    def save_user(self, user: User) -> None:
        self._update("save user", UPSERT_USER, [user.id, user.name])

    def load_user(self, user_id: str) -> Optional[User]:
        return self._query_one("load user", SELECT_USERS + " WHERE UserId = ?",
                               [user_id], self._user_from_row)

    def load_all_users(self) -> List[User]:
        return self._query("load users", SELECT_USERS, [], self._user_from_row)

    def delete_user(self, user_id: str) -> None:
        self._update("delete user", "DELETE FROM Users WHERE UserId = ?", [user_id])

    # ------------------------- Loan records ------------------------- #
    def _loan_params(self, record: LoanRecord) -> List[Optional[str]]:
        return_date = record.return_date
        return [record.id, record.item_id, record.user_id,
                format_timestamp(record.loan_date), format_timestamp(record.due_date),
                format_timestamp(return_date) if return_date is not None else None]

    def save_loan_record(self, record: LoanRecord) -> None:
        self._update("save loan record", UPSERT_LOAN, self._loan_params(record))

    def load_loan_record(self, record_id: str) -> Optional[LoanRecord]:
        return self._query_one("load loan record", SELECT_LOANS + " WHERE LoanRecordId = ?",
                               [record_id], self._loan_from_row)

    def load_loan_records_by_user(self, user_id: str) -> List[LoanRecord]:
        return self._query("load loan records by user", SELECT_LOANS + " WHERE UserId = ?",
                           [user_id], self._loan_from_row)

    def load_loan_records_by_item(self, item_id: str) -> List[LoanRecord]:
        return self._query("load loan records by item", SELECT_LOANS + " WHERE ItemId = ?",
                           [item_id], self._loan_from_row)

    def load_all_loan_records(self) -> List[LoanRecord]:
        return self._query("load loan records", SELECT_LOANS, [], self._loan_from_row)

    def delete_loan_record(self, record_id: str) -> None:
        self._update("delete loan record", "DELETE FROM LoanRecords WHERE LoanRecordId = ?", [record_id])

    def update_loan_record(self, record: LoanRecord) -> None:
        self._update("update loan record", UPSERT_LOAN, self._loan_params(record))
