"""
Thin connection / prepared-statement / result-set layer over a DB-API 2.0 driver.

The SQL backend talks only to these three classes. sqlite3 is the default
driver; any module with ``paramstyle == "qmark"`` and the usual ``connect()``
signature works. Driver exceptions come out as ProtocolError, with the
driver's own message kept as the diagnostic text.
"""

import logging
import sqlite3
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

SQLITE_URL_PREFIX = "sqlite:///"

Column = Union[int, str]


class ProtocolError(Exception):
    """A failure reported by the database driver."""
    pass


def _driver_errors(driver) -> tuple:
    return (getattr(driver, "Error", sqlite3.Error),)


def _describe(error: Exception) -> str:
    """Driver diagnostic: exception class name and message, e.g. "IntegrityError: UNIQUE ..."."""
    return f"{type(error).__name__}: {error}"


class Connection:
    """One connection to the relational store, with explicit transactions."""

    def __init__(self, connection_string: str, driver=sqlite3):
        if getattr(driver, "paramstyle", None) != "qmark":
            raise ProtocolError(
                f"Driver {getattr(driver, '__name__', driver)!r} does not use qmark parameters")
        self.connection_string = connection_string
        self.driver = driver
        self._conn = None
        self._in_transaction = False

    @staticmethod
    def _database_path(connection_string: str) -> str:
        if connection_string.startswith(SQLITE_URL_PREFIX):
            return connection_string[len(SQLITE_URL_PREFIX):]
        return connection_string

    def connect(self) -> None:
        if self._conn is not None:
            return
        target = self._database_path(self.connection_string)
        try:
            if self.driver is sqlite3:
                # Autocommit mode; transactions are issued explicitly with BEGIN.
                self._conn = sqlite3.connect(target, isolation_level=None, check_same_thread=False)
            else:
                self._conn = self.driver.connect(target)
        except _driver_errors(self.driver) as e:
            raise ProtocolError(f"Cannot connect to '{self.connection_string}': {_describe(e)}") from e
        self._in_transaction = False
        logger.debug("Connected to %s", self.connection_string)

    def disconnect(self) -> None:
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        self._in_transaction = False
        try:
            conn.close()
        except _driver_errors(self.driver) as e:
            raise ProtocolError(f"Error while disconnecting: {_describe(e)}") from e
        logger.debug("Disconnected from %s", self.connection_string)

    def is_connected(self) -> bool:
        return self._conn is not None

    def in_transaction(self) -> bool:
        return self._in_transaction

    def _require_connection(self):
        if self._conn is None:
            raise ProtocolError("Not connected")
        return self._conn

    def execute(self, sql: str) -> None:
        """Run a statement that takes no parameters and returns no rows."""
        conn = self._require_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(sql)
            cursor.close()
        except _driver_errors(self.driver) as e:
            raise ProtocolError(_describe(e)) from e
        self.commit_if_autocommit()

    def commit_if_autocommit(self) -> None:
        """Commit work done outside an explicit transaction.

        A no-op for sqlite3, which is opened in autocommit mode. Other drivers
        hold every statement in an implicit transaction until commit.
        """
        if self._in_transaction:
            return
        try:
            self._require_connection().commit()
        except _driver_errors(self.driver) as e:
            raise ProtocolError(f"Commit failed: {_describe(e)}") from e

    def begin_transaction(self) -> None:
        if self._in_transaction:
            raise ProtocolError("Transaction already in progress")
        self._in_transaction = True
        if self.driver is sqlite3:
            try:
                self.execute("BEGIN")
            except ProtocolError:
                self._in_transaction = False
                raise

    def commit(self) -> None:
        if not self._in_transaction:
            raise ProtocolError("No transaction in progress")
        try:
            self._require_connection().commit()
        except _driver_errors(self.driver) as e:
            raise ProtocolError(f"Commit failed: {_describe(e)}") from e
        finally:
            self._in_transaction = False

    def rollback(self) -> None:
        if not self._in_transaction:
            raise ProtocolError("No transaction in progress")
        try:
            self._require_connection().rollback()
        except _driver_errors(self.driver) as e:
            raise ProtocolError(f"Rollback failed: {_describe(e)}") from e
        finally:
            self._in_transaction = False

    def prepare_statement(self, sql: str) -> "PreparedStatement":
        return PreparedStatement(self, sql)


class PreparedStatement:
    """A parameterised statement.

    Each 1-based parameter index owns its own slot, so values bound to one
    statement never leak into another and rebinding replaces only that slot.
    """

    def __init__(self, connection: Connection, sql: str):
        self.connection = connection
        self.sql = sql
        self.parameter_count = sql.count("?")
        self._params: Dict[int, Any] = {}

    def _bind(self, index: int, value: Any) -> None:
        if not 1 <= index <= self.parameter_count:
            raise ProtocolError(
                f"Parameter index {index} out of range (1..{self.parameter_count})")
        self._params[index] = value

    def bind_string(self, index: int, value: str) -> None:
        self._bind(index, str(value))

    def bind_int(self, index: int, value: int) -> None:
        self._bind(index, int(value))

    def bind_null(self, index: int) -> None:
        self._bind(index, None)

    def clear_parameters(self) -> None:
        self._params.clear()

    def _parameters(self) -> List[Any]:
        missing = [i for i in range(1, self.parameter_count + 1) if i not in self._params]
        if missing:
            raise ProtocolError(f"Unbound parameter(s): {missing}")
        return [self._params[i] for i in range(1, self.parameter_count + 1)]

    def _run(self):
        conn = self.connection._require_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(self.sql, self._parameters())
            return cursor
        except _driver_errors(self.connection.driver) as e:
            raise ProtocolError(_describe(e)) from e

    def execute_query(self) -> "ResultSet":
        return ResultSet(self._run(), self.connection.driver)

    def execute_update(self) -> int:
        """Run the statement and return the number of affected rows."""
        cursor = self._run()
        try:
            count = cursor.rowcount
        finally:
            cursor.close()
        self.connection.commit_if_autocommit()
        return count


class ResultSet:
    """Forward-only cursor over query rows; columns by name or 1-based index."""

    def __init__(self, cursor, driver=sqlite3):
        self._cursor = cursor
        self._driver = driver
        self._row: Optional[tuple] = None
        self._columns = {desc[0].lower(): i for i, desc in enumerate(cursor.description or ())}

    def next(self) -> bool:
        """Advance to the next row. Returns False (and closes) when exhausted."""
        if self._cursor is None:
            self._row = None
            return False
        try:
            self._row = self._cursor.fetchone()
        except _driver_errors(self._driver) as e:
            raise ProtocolError(_describe(e)) from e
        if self._row is None:
            self.close()
            return False
        return True

    def _value(self, column: Column) -> Any:
        if self._row is None:
            raise ProtocolError("No current row")
        if isinstance(column, int):
            if not 1 <= column <= len(self._row):
                raise ProtocolError(f"Column index {column} out of range")
            return self._row[column - 1]
        try:
            return self._row[self._columns[column.lower()]]
        except KeyError:
            raise ProtocolError(f"Unknown column {column!r}") from None

    def is_null(self, column: Column) -> bool:
        return self._value(column) is None

    def get_string(self, column: Column) -> Optional[str]:
        value = self._value(column)
        return None if value is None else str(value)

    def get_int(self, column: Column) -> Optional[int]:
        value = self._value(column)
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ProtocolError(f"Column {column!r} is not an integer: {value!r}") from e

    def close(self) -> None:
        if self._cursor is not None:
            self._cursor.close()
            self._cursor = None

    def __iter__(self):
        while self.next():
            yield self
