import types

import pytest

from library_system.storage.dbapi import Connection, ProtocolError


@pytest.fixture
def conn(tmp_path):
    connection = Connection(f"sqlite:///{tmp_path / 'proto.db'}")
    connection.connect()
    connection.execute("CREATE TABLE t (id TEXT PRIMARY KEY, n INTEGER, note TEXT)")
    yield connection
    connection.disconnect()


def insert(conn, id, n, note):
    stmt = conn.prepare_statement("INSERT INTO t (id, n, note) VALUES (?, ?, ?)")
    stmt.bind_string(1, id)
    stmt.bind_int(2, n)
    if note is None:
        stmt.bind_null(3)
    else:
        stmt.bind_string(3, note)
    return stmt.execute_update()


def test_rejects_non_qmark_driver():
    fake = types.SimpleNamespace(paramstyle="format", __name__="fake")
    with pytest.raises(ProtocolError, match="qmark"):
        Connection("x", driver=fake)


def test_connect_and_disconnect(conn):
    assert conn.is_connected()
    conn.disconnect()
    assert not conn.is_connected()
    conn.disconnect()


def test_query_by_name_and_index(conn):
    assert insert(conn, "a", 7, None) == 1

    stmt = conn.prepare_statement("SELECT id, n, note FROM t WHERE id = ?")
    stmt.bind_string(1, "a")
    rows = stmt.execute_query()

    assert rows.next()
    assert rows.get_string("id") == "a"
    assert rows.get_int(2) == 7
    assert rows.is_null("NOTE")
    assert rows.get_string("note") is None
    assert not rows.next()


def test_each_statement_owns_its_parameters(conn):
    first = conn.prepare_statement("INSERT INTO t (id, n, note) VALUES (?, ?, ?)")
    second = conn.prepare_statement("INSERT INTO t (id, n, note) VALUES (?, ?, ?)")
    for stmt, id, n in ((first, "x", 1), (second, "y", 2)):
        stmt.bind_string(1, id)
        stmt.bind_int(2, n)
        stmt.bind_null(3)
    first.execute_update()
    second.execute_update()

    rows = conn.prepare_statement("SELECT id, n FROM t ORDER BY id").execute_query()
    assert [(r.get_string("id"), r.get_int("n")) for r in rows] == [("x", 1), ("y", 2)]


def test_unbound_and_out_of_range_parameters(conn):
    stmt = conn.prepare_statement("SELECT * FROM t WHERE id = ?")
    with pytest.raises(ProtocolError, match="out of range"):
        stmt.bind_string(2, "a")
    with pytest.raises(ProtocolError, match="Unbound"):
        stmt.execute_query()


def test_driver_errors_become_protocol_errors(conn):
    insert(conn, "a", 1, None)
    with pytest.raises(ProtocolError, match="UNIQUE"):
        insert(conn, "a", 2, None)


def test_transaction_rollback(conn):
    conn.begin_transaction()
    assert conn.in_transaction()
    insert(conn, "a", 1, None)
    conn.rollback()
    assert not conn.in_transaction()

    rows = conn.prepare_statement("SELECT COUNT(*) AS c FROM t").execute_query()
    rows.next()
    assert rows.get_int("c") == 0


def test_transaction_commit(conn):
    conn.begin_transaction()
    insert(conn, "a", 1, "kept")
    conn.commit()

    rows = conn.prepare_statement("SELECT note FROM t").execute_query()
    assert rows.next()
    assert rows.get_string(1) == "kept"


def test_nested_begin_is_rejected(conn):
    conn.begin_transaction()
    with pytest.raises(ProtocolError, match="already in progress"):
        conn.begin_transaction()
    conn.rollback()


def test_statement_without_connection_fails(tmp_path):
    connection = Connection(f"sqlite:///{tmp_path / 'x.db'}")
    with pytest.raises(ProtocolError, match="Not connected"):
        connection.prepare_statement("SELECT 1").execute_query()
