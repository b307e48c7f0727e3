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

"""Commit/rollback context managers."""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

logger = logging.getLogger(__name__)


def is_sqlite(conn: Any) -> bool:
    """Return True if the connection is SQLite."""
    return "sqlite3" in type(conn).__module__


@contextmanager
def transaction(conn: Any) -> Generator[Any, None, None]:
    """Context manager that commits on success, rolls back on exception.

    For SQLite, ``BEGIN`` is issued explicitly so that ``conn.commit()``
    has a well-defined scope.  psycopg2 opens a transaction implicitly
    with the first statement.
    """
    if is_sqlite(conn):
        conn.execute("BEGIN")

    try:
        yield conn
        conn.commit()
    except Exception:
        # A failed rollback must not mask the statement error.
        try:
            conn.rollback()
        except Exception:
            logger.warning("Rollback failed", exc_info=True)
        raise


@contextmanager
def autocommit(conn: Any) -> Generator[Any, None, None]:
    """Run statements outside a transaction block.

    PostgreSQL refuses ``CREATE DATABASE`` and ``DROP DATABASE`` inside a
    transaction.  The connection's previous autocommit setting is restored
    on exit.  SQLite connections are committed after the block instead.
    """
    if is_sqlite(conn):
        yield conn
        conn.commit()
        return

    previous = conn.autocommit
    conn.autocommit = True
    try:
        yield conn
    finally:
        conn.autocommit = previous
