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

"""Data-access object over a connection pool.

:class:`Database` owns its pool.  Every public method builds one
statement, borrows one connection, runs the statement, and hands the
connection back before returning or raising.

Usage::

    from tablekit import Database

    with Database.from_env() as db:
        db.create_table("papers", {"id": "SERIAL PRIMARY KEY", "doi": "TEXT"})
        row = db.insert_into_table("papers", {"doi": "10.1101/x"})
        db.update_table("papers", {"doi": "10.1101/y"}, {"id": row["id"]})
        rows = db.select_from_table("papers", {"doi": "10.1101/y"})
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from tablekit.config import DatabaseConfig
from tablekit.connection import SingleConnectionPool, connect_sqlite, create_pool
from tablekit.errors import ExecutionError
from tablekit.operations import run_statement
from tablekit.statements import (
    Statement,
    build_alter_table,
    build_copy,
    build_create_database,
    build_create_table,
    build_drop,
    build_insert,
    build_insert_bulk,
    build_select,
    build_update,
)

logger = logging.getLogger(__name__)

Row = dict[str, Any]


class Database:
    """Table-level helpers bound to a connection pool.

    Args:
        pool: Any object with ``getconn()``, ``putconn(conn)`` and
            ``closeall()``, such as a ``psycopg2.pool`` pool or a
            :class:`~tablekit.connection.SingleConnectionPool`.
    """

    def __init__(self, pool: Any) -> None:
        self.pool = pool
        self._closed = False

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> Database:
        return cls(create_pool(config))

    @classmethod
    def from_env(cls) -> Database:
        """Connect using the ``PG_*`` environment variables."""
        return cls.from_config(DatabaseConfig.from_env())

    @classmethod
    def sqlite(cls, path: str | Path = ":memory:") -> Database:
        """Wrap a single SQLite connection (PostgreSQL-only statements will fail)."""
        return cls(SingleConnectionPool(connect_sqlite(path)))

    def close(self) -> None:
        """Close every connection in the pool.  Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self.pool.closeall()
        logger.info("Connection pool closed")

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # --- Execution ----------------------------------------------------------

    def _run(
        self,
        operation: str,
        target: str,
        statement: Statement,
        *,
        autocommit: bool = False,
    ) -> list[Row]:
        try:
            conn = self.pool.getconn()
        except Exception as exc:
            logger.error("%s failed on '%s': no connection: %s", operation, target, exc)
            raise ExecutionError(operation, target, exc) from exc

        try:
            return run_statement(conn, statement, autocommit=autocommit)
        except Exception as exc:
            logger.error("%s failed on '%s': %s", operation, target, exc)
            raise ExecutionError(operation, target, exc) from exc
        finally:
            self.pool.putconn(conn)

    def execute(self, statement: Statement, *, autocommit: bool = False) -> list[Row]:
        """Run a prebuilt statement and return its rows."""
        return self._run("execute", "statement", statement, autocommit=autocommit)

    # --- Databases and tables -----------------------------------------------

    def create_database(self, name: str) -> None:
        """Create a database.  Fails if it already exists."""
        self._run("create_database", name, build_create_database(name), autocommit=True)

    def drop_database(self, name: str) -> None:
        self.drop("database", name)

    def create_table(self, table: str, columns: Mapping[str, str]) -> None:
        """Create *table* unless it exists.

        Args:
            table: Table name.
            columns: Column name → type declaration, e.g.
                ``{"id": "SERIAL PRIMARY KEY", "title": "TEXT NOT NULL"}``.
        """
        self._run("create_table", table, build_create_table(table, columns))

    def drop_table(self, name: str) -> None:
        self.drop("table", name)

    def drop(self, kind: str, name: str) -> None:
        """Drop a ``"table"`` or ``"database"`` if it exists."""
        statement = build_drop(kind, name)
        self._run(f"drop_{kind}", name, statement, autocommit=kind == "database")

    # --- Columns ------------------------------------------------------------

    def alter_table(
        self,
        table: str,
        *,
        add: Mapping[str, str] | None = None,
        drop: Sequence[str] | str | None = None,
        modify: Mapping[str, str] | None = None,
    ) -> None:
        """Apply column additions, removals and type changes in one statement."""
        statement = build_alter_table(table, add=add, drop=drop, modify=modify)
        self._run("alter_table", table, statement)

    def add_columns(self, table: str, columns: Mapping[str, str]) -> None:
        self._run("add_columns", table, build_alter_table(table, add=columns))

    def drop_column(self, table: str, column: str | Sequence[str]) -> None:
        """Drop one column, or several when given a list."""
        self._run("drop_column", table, build_alter_table(table, drop=column))

    def modify_columns(self, table: str, columns: Mapping[str, str]) -> None:
        """Change column types (``ALTER COLUMN ... TYPE``)."""
        self._run("modify_columns", table, build_alter_table(table, modify=columns))

    # --- Rows ---------------------------------------------------------------

    def insert_into_table(
        self, table: str, data: Mapping[str, Any] | Sequence[Mapping[str, Any]]
    ) -> Row | list[Row] | None:
        """Insert one row (mapping) or many rows (list of mappings).

        Returns:
            The inserted row for a mapping, or all inserted rows for a list,
            as returned by ``RETURNING *``.  A mapping insert returns
            ``None`` when the server reports no row (e.g. a ``DO INSTEAD
            NOTHING`` rule on the table).
        """
        if isinstance(data, Mapping):
            rows = self._run("insert_into_table", table, build_insert(table, data))
            if not rows:
                logger.warning("Insert into '%s' returned no row", table)
                return None
            return rows[0]
        return self._run("insert_into_table", table, build_insert_bulk(table, list(data)))

    def select_from_table(
        self, table: str, where: Mapping[str, Any] | None = None
    ) -> list[Row]:
        """Return all rows matching the equality filter (all rows if empty)."""
        return self._run("select_from_table", table, build_select(table, where))

    def update_table(
        self, table: str, data: Mapping[str, Any], where: Mapping[str, Any]
    ) -> None:
        """Set *data* on rows matching *where*.  Returns nothing."""
        self._run("update_table", table, build_update(table, data, where))

    def copy_from_file(
        self, table: str, path: str, format: str = "csv", header: bool = False
    ) -> None:
        """Bulk-load a CSV file that is readable by the database server."""
        self._run("copy_from_file", table, build_copy(table, path, format, header))
