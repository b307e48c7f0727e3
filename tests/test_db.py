# tablekit — small data-access helpers for relational databases
# Copyright (C) 2024-2026 Dr Horst Herb
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""Tests for tablekit connections, statement execution and transactions."""

from __future__ import annotations

import threading
from unittest.mock import MagicMock

import pytest
from psycopg2.pool import PoolError

from tablekit import (
    BlockingConnectionPool,
    SingleConnectionPool,
    Statement,
    connect_sqlite,
    run_statement,
    transaction,
)
from tablekit.operations import paramstyle_for


def _mem_conn():
    return connect_sqlite(":memory:")


def _mock_conn(rows=None):
    conn = MagicMock()
    cur = conn.cursor.return_value
    if rows is None:
        cur.description = None
    else:
        cur.description = [("id",)]
        cur.fetchall.return_value = rows
    return conn, cur


class TestConnection:
    def test_sqlite_memory(self):
        conn = _mem_conn()
        assert conn is not None
        conn.close()

    def test_sqlite_file_creates_parent(self, tmp_path):
        conn = connect_sqlite(tmp_path / "nested" / "data.db")
        assert (tmp_path / "nested").is_dir()
        conn.close()

    def test_paramstyle(self):
        assert paramstyle_for(_mem_conn()) == "qmark"
        assert paramstyle_for(MagicMock()) == "format"


class TestRunStatement:
    def test_ddl_returns_no_rows(self):
        conn = _mem_conn()
        rows = run_statement(conn, Statement("CREATE TABLE t (id INTEGER PRIMARY KEY, v TEXT);"))
        assert rows == []

    def test_rows_are_dicts(self):
        conn = _mem_conn()
        run_statement(conn, Statement("CREATE TABLE t (id INTEGER PRIMARY KEY, v TEXT);"))
        run_statement(conn, Statement("INSERT INTO t (v) VALUES ($1);", ("hello",)))
        rows = run_statement(conn, Statement("SELECT * FROM t WHERE v = $1;", ("hello",)))
        assert rows == [{"id": 1, "v": "hello"}]
        assert type(rows[0]) is dict

    def test_postgres_style_rendering(self):
        conn, cur = _mock_conn(rows=[{"id": 7}])
        rows = run_statement(conn, Statement("SELECT * FROM t WHERE id = $1;", (7,)))
        cur.execute.assert_called_once_with("SELECT * FROM t WHERE id = %s;", (7,))
        conn.commit.assert_called_once()
        assert rows == [{"id": 7}]

    def test_postgres_without_params_passes_none(self):
        conn, cur = _mock_conn()
        run_statement(conn, Statement("DROP TABLE IF EXISTS t"))
        cur.execute.assert_called_once_with("DROP TABLE IF EXISTS t", None)

    def test_failure_rolls_back(self):
        conn, cur = _mock_conn()
        cur.execute.side_effect = RuntimeError("boom")
        with pytest.raises(RuntimeError):
            run_statement(conn, Statement("SELECT 1;"))
        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()
        cur.close.assert_called_once()

    def test_autocommit_restores_previous_setting(self):
        conn, cur = _mock_conn()
        conn.autocommit = False
        seen = []
        cur.execute.side_effect = lambda *a: seen.append(conn.autocommit)
        run_statement(conn, Statement("CREATE DATABASE x"), autocommit=True)
        assert seen == [True]
        assert conn.autocommit is False
        conn.commit.assert_not_called()


class TestTransaction:
    def test_commit_on_success(self):
        conn = _mem_conn()
        conn.execute("CREATE TABLE t (id INTEGER PRIMARY KEY, v TEXT);")

        with transaction(conn):
            conn.execute("INSERT INTO t (v) VALUES (?)", ("committed",))

        assert conn.execute("SELECT v FROM t").fetchone()[0] == "committed"

    def test_rollback_on_error(self):
        conn = _mem_conn()
        conn.execute("CREATE TABLE t (id INTEGER PRIMARY KEY, v TEXT);")

        try:
            with transaction(conn):
                conn.execute("INSERT INTO t (v) VALUES (?)", ("rollback",))
                raise RuntimeError("boom")
        except RuntimeError:
            pass

        assert conn.execute("SELECT * FROM t").fetchone() is None

    def test_failed_rollback_keeps_original_error(self):
        conn = MagicMock()
        conn.rollback.side_effect = ConnectionError("connection already closed")

        with pytest.raises(RuntimeError, match="boom"):
            with transaction(conn):
                raise RuntimeError("boom")
        conn.rollback.assert_called_once()


class TestSingleConnectionPool:
    def test_get_and_put(self):
        conn = MagicMock()
        pool = SingleConnectionPool(conn)
        assert pool.getconn() is conn
        pool.putconn(conn)
        assert pool.getconn() is conn

    def test_foreign_connection_rejected(self):
        pool = SingleConnectionPool(MagicMock())
        pool.getconn()
        with pytest.raises(ValueError):
            pool.putconn(MagicMock())

    def test_closeall(self):
        conn = MagicMock()
        pool = SingleConnectionPool(conn)
        pool.closeall()
        pool.closeall()
        conn.close.assert_called_once()
        with pytest.raises(RuntimeError):
            pool.getconn()

    def test_second_borrower_waits_for_putconn(self):
        conn = MagicMock()
        pool = SingleConnectionPool(conn)
        held = pool.getconn()
        acquired = threading.Event()

        def borrow():
            pool.getconn()
            acquired.set()

        worker = threading.Thread(target=borrow)
        worker.start()
        assert not acquired.wait(0.1)
        pool.putconn(held)
        assert acquired.wait(2)
        worker.join(2)


class TestBlockingConnectionPool:
    def test_second_borrower_waits_for_putconn(self):
        inner = MagicMock()
        pool = BlockingConnectionPool(inner, maxconn=1)
        held = pool.getconn()
        acquired = threading.Event()

        def borrow():
            pool.getconn()
            acquired.set()

        worker = threading.Thread(target=borrow)
        worker.start()
        assert not acquired.wait(0.1)
        pool.putconn(held)
        assert acquired.wait(2)
        worker.join(2)
        assert inner.getconn.call_count == 2
        inner.putconn.assert_called_once_with(held, close=False)

    def test_timeout_raises_pool_error(self):
        pool = BlockingConnectionPool(MagicMock(), maxconn=1, timeout=0.05)
        pool.getconn()
        with pytest.raises(PoolError):
            pool.getconn()

    def test_failed_getconn_frees_slot(self):
        inner = MagicMock()
        conn = MagicMock()
        inner.getconn.side_effect = [RuntimeError("server down"), conn]
        pool = BlockingConnectionPool(inner, maxconn=1, timeout=0.5)
        with pytest.raises(RuntimeError):
            pool.getconn()
        assert pool.getconn() is conn

    def test_closeall_delegates(self):
        inner = MagicMock()
        BlockingConnectionPool(inner, maxconn=2).closeall()
        inner.closeall.assert_called_once()
