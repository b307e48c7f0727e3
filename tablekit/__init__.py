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

"""Table-level helpers for PostgreSQL (and SQLite) built on parameterized SQL.

Usage::

    from tablekit import Database

    db = Database.from_env()
    db.create_table("papers", {"id": "SERIAL PRIMARY KEY", "title": "TEXT"})
    db.insert_into_table("papers", {"title": "A paper"})
    rows = db.select_from_table("papers", {"title": "A paper"})
    db.close()
"""

from tablekit.config import DatabaseConfig
from tablekit.connection import (
    BlockingConnectionPool,
    SingleConnectionPool,
    connect_postgresql,
    connect_sqlite,
    create_pool,
)
from tablekit.database import Database
from tablekit.errors import ExecutionError, TablekitError, ValidationError
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
    render,
    validate_identifier,
    validate_table_name,
)
from tablekit.transactions import transaction

__all__ = [
    "Database",
    "DatabaseConfig",
    "connect_sqlite",
    "connect_postgresql",
    "create_pool",
    "BlockingConnectionPool",
    "SingleConnectionPool",
    "run_statement",
    "transaction",
    "Statement",
    "render",
    "validate_identifier",
    "validate_table_name",
    "build_create_table",
    "build_create_database",
    "build_drop",
    "build_alter_table",
    "build_insert",
    "build_insert_bulk",
    "build_select",
    "build_update",
    "build_copy",
    "TablekitError",
    "ValidationError",
    "ExecutionError",
]
