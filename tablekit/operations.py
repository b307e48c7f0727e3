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

"""Run a single :class:`~tablekit.statements.Statement` on a DB-API connection.

The statement is rendered into the connection's paramstyle (``?`` for
SQLite, ``%s`` for psycopg2), executed, and committed.  Rows come back
as plain dicts regardless of backend.
"""

from __future__ import annotations

import logging
from typing import Any

from tablekit.statements import Statement, render
from tablekit.transactions import autocommit as autocommit_block
from tablekit.transactions import is_sqlite, transaction

logger = logging.getLogger(__name__)


def paramstyle_for(conn: Any) -> str:
    """Return the DB-API paramstyle used by this connection."""
    return "qmark" if is_sqlite(conn) else "format"


def _fetch_rows(cur: Any) -> list[dict[str, Any]]:
    # description is None for statements without a result set (DDL, plain UPDATE).
    if cur.description is None:
        return []
    return [dict(row) for row in cur.fetchall()]


def run_statement(
    conn: Any, statement: Statement, *, autocommit: bool = False
) -> list[dict[str, Any]]:
    """Execute one statement and return its rows (``[]`` if it has none).

    Args:
        conn: A DB-API connection (sqlite3 or psycopg2).
        statement: The statement to execute.
        autocommit: Run outside a transaction block (needed for
            ``CREATE DATABASE`` / ``DROP DATABASE`` on PostgreSQL).
    """
    sql, params = render(statement, paramstyle_for(conn))
    logger.debug("Executing: %s %r", sql, params)

    # psycopg2 only interpolates %s (and unescapes %%) when params is not None.
    bound: Any = params if params or is_sqlite(conn) else None

    block = autocommit_block(conn) if autocommit else transaction(conn)
    with block:
        cur = conn.cursor()
        try:
            cur.execute(sql, bound)
            return _fetch_rows(cur)
        finally:
            cur.close()
