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

"""Parameterized SQL statement builders.

Every builder is a pure function returning a :class:`Statement`, i.e. SQL text
with ``$1..$n`` positional placeholders plus the ordered values bound to
them.  Nothing here touches a connection.

Values (row contents, filter values) are always bound parameters.
Identifiers (table and column names) cannot be bound, so they are checked
against ``^[A-Za-z0-9_]+$`` and interpolated.  Column type declarations
such as ``"VARCHAR(64) NOT NULL"`` are passed through verbatim and must
come from trusted code.

Usage::

    stmt = build_insert("papers", {"doi": "10.1101/x", "title": "A paper"})
    stmt.text    # 'INSERT INTO papers (doi, title) VALUES ($1, $2) RETURNING *;'
    stmt.params  # ('10.1101/x', 'A paper')
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from tablekit.errors import ValidationError

IDENTIFIER_RE = re.compile(r"^[A-Za-z0-9_]+$")

DROP_KINDS = ("table", "database")
COPY_FORMATS = ("csv",)
PARAMSTYLES = ("format", "qmark")

# Quoted literal, quoted identifier, $n placeholder, or a bare percent sign.
_TOKEN_RE = re.compile(r"""'(?:[^']|'')*'|"(?:[^"]|"")*"|\$(\d+)|%""")


@dataclass(frozen=True)
class Statement:
    """SQL text with ``$n`` placeholders and the values bound to them."""

    text: str
    params: tuple[Any, ...] = ()


# --- Identifier checks ------------------------------------------------------


def validate_identifier(name: str, kind: str = "identifier") -> str:
    """Return *name* unchanged if it is a plain SQL identifier.

    Raises :class:`ValidationError` for anything other than ASCII letters,
    digits and underscores, including quoted identifiers.
    """
    if not isinstance(name, str) or not IDENTIFIER_RE.match(name):
        raise ValidationError(
            f"Invalid {kind} name {name!r}. "
            "Only alphanumeric characters and underscores are allowed."
        )
    return name


def validate_table_name(name: str) -> str:
    """Validate a table name, optionally schema-qualified (``schema.table``)."""
    if not isinstance(name, str):
        raise ValidationError(f"Invalid table name {name!r}.")
    parts = name.split(".")
    if len(parts) > 2:
        raise ValidationError(f"Invalid table name {name!r}.")
    for part in parts:
        validate_identifier(part, "table")
    return name


def _columns(names: Sequence[str]) -> list[str]:
    return [validate_identifier(n, "column") for n in names]


def _type_decl(column: str, decl: Any) -> str:
    if not isinstance(decl, str) or not decl.strip():
        raise ValidationError(f"Missing type declaration for column {column!r}.")
    return decl


def _placeholders(start: int, count: int) -> str:
    return ", ".join(f"${i}" for i in range(start, start + count))


# --- DDL ----------------------------------------------------------------------


def build_create_table(table: str, columns: Mapping[str, str]) -> Statement:
    """``CREATE TABLE IF NOT EXISTS`` from a column → type-declaration mapping."""
    validate_table_name(table)
    if not columns:
        raise ValidationError(f"No columns given for table {table!r}.")
    definitions = ", ".join(
        f"{validate_identifier(col, 'column')} {_type_decl(col, decl)}"
        for col, decl in columns.items()
    )
    return Statement(f"CREATE TABLE IF NOT EXISTS {table} ({definitions});")


def build_create_database(name: str) -> Statement:
    """``CREATE DATABASE``.  Fails on the server if it already exists."""
    validate_identifier(name, "database")
    return Statement(f"CREATE DATABASE {name}")


def build_drop(kind: str, name: str) -> Statement:
    """``DROP TABLE IF EXISTS`` or ``DROP DATABASE IF EXISTS``.

    Args:
        kind: ``"table"`` or ``"database"``.
        name: Object name; must match ``^[A-Za-z0-9_]+$``.
    """
    validate_identifier(name, kind if kind in DROP_KINDS else "object")
    if kind == "table":
        return Statement(f"DROP TABLE IF EXISTS {name}")
    if kind == "database":
        return Statement(f"DROP DATABASE IF EXISTS {name}")
    if kind == "column":
        raise ValidationError(
            "Columns cannot be dropped with drop(); use drop_column() or alter_table()."
        )
    raise ValidationError(f'Invalid type ({kind}) provided. Use "table" or "database".')


def build_alter_table(
    table: str,
    add: Mapping[str, str] | None = None,
    drop: Sequence[str] | str | None = None,
    modify: Mapping[str, str] | None = None,
) -> Statement:
    """Combine column changes into a single ``ALTER TABLE`` statement.

    Clauses are emitted in the order ADD, DROP, ALTER ... TYPE.  An empty
    change set raises :class:`ValidationError`.
    """
    validate_table_name(table)
    if isinstance(drop, str):
        drop = [drop]

    alterations: list[str] = []
    for column, decl in (add or {}).items():
        validate_identifier(column, "column")
        alterations.append(f"ADD COLUMN {column} {_type_decl(column, decl)}")
    for column in _columns(drop or []):
        alterations.append(f"DROP COLUMN {column}")
    for column, decl in (modify or {}).items():
        validate_identifier(column, "column")
        alterations.append(f"ALTER COLUMN {column} TYPE {_type_decl(column, decl)}")

    if not alterations:
        raise ValidationError("No valid alterations provided.")
    return Statement(f"ALTER TABLE {table} {', '.join(alterations)};")


# --- DML ----------------------------------------------------------------------


def build_insert(table: str, row: Mapping[str, Any]) -> Statement:
    """Single-row ``INSERT ... RETURNING *``."""
    validate_table_name(table)
    if not row:
        raise ValidationError(f"No data provided for insert into {table!r}.")
    keys = _columns(list(row))
    text = (
        f"INSERT INTO {table} ({', '.join(keys)}) "
        f"VALUES ({_placeholders(1, len(keys))}) RETURNING *;"
    )
    return Statement(text, tuple(row.values()))


def build_insert_bulk(table: str, rows: Sequence[Mapping[str, Any]]) -> Statement:
    """Multi-row ``INSERT ... VALUES (...), (...) RETURNING *``.

    Placeholders are numbered row-major.  Every row must have exactly the
    key set of the first row; the column order of the first row is used
    for all of them.
    """
    validate_table_name(table)
    if not rows:
        raise ValidationError("No data provided for bulk insert.")
    keys = _columns(list(rows[0]))
    if not keys:
        raise ValidationError(f"No data provided for insert into {table!r}.")

    expected = set(keys)
    params: list[Any] = []
    tuples: list[str] = []
    for i, row in enumerate(rows):
        if set(row) != expected:
            raise ValidationError(
                f"Row {i} has columns {sorted(row)}, expected {sorted(expected)}."
            )
        tuples.append(f"({_placeholders(len(params) + 1, len(keys))})")
        params.extend(row[k] for k in keys)

    text = f"INSERT INTO {table} ({', '.join(keys)}) VALUES {', '.join(tuples)} RETURNING *;"
    return Statement(text, tuple(params))


def _equality(columns: Sequence[str], start: int, sep: str) -> str:
    return sep.join(f"{col} = ${start + i}" for i, col in enumerate(columns))


def build_select(table: str, where: Mapping[str, Any] | None = None) -> Statement:
    """``SELECT *`` with an optional conjunctive equality filter.

    An empty or missing filter omits the WHERE clause entirely.
    """
    validate_table_name(table)
    if not where:
        return Statement(f"SELECT * FROM {table};")
    keys = _columns(list(where))
    return Statement(
        f"SELECT * FROM {table} WHERE {_equality(keys, 1, ' AND ')};",
        tuple(where.values()),
    )


def build_update(
    table: str, data: Mapping[str, Any], where: Mapping[str, Any]
) -> Statement:
    """``UPDATE ... SET ... WHERE ...``.

    WHERE placeholders continue numbering after the SET placeholders.
    Both mappings must be non-empty; an unfiltered UPDATE is refused.
    """
    validate_table_name(table)
    if not data:
        raise ValidationError(f"No columns to update in {table!r}.")
    if not where:
        raise ValidationError(f"Refusing to update {table!r} without a WHERE filter.")
    set_keys = _columns(list(data))
    where_keys = _columns(list(where))
    text = (
        f"UPDATE {table} SET {_equality(set_keys, 1, ', ')} "
        f"WHERE {_equality(where_keys, len(set_keys) + 1, ' AND ')};"
    )
    return Statement(text, (*data.values(), *where.values()))


def build_copy(
    table: str, path: str, format: str = "csv", header: bool = False
) -> Statement:
    """Server-side ``COPY table FROM 'path'``.  Only CSV is supported.

    The path is read by the database server, not by this process.  It is
    embedded as a string literal, so it must come from trusted code.
    """
    validate_table_name(table)
    if not isinstance(format, str) or format.lower() not in COPY_FORMATS:
        raise ValidationError(f"Unsupported COPY format {format!r}; only csv is supported.")
    literal = "'" + str(path).replace("'", "''") + "'"
    flag = "true" if header else "false"
    return Statement(f"COPY {table} FROM {literal} WITH (FORMAT csv, HEADER {flag})")


# --- Driver paramstyles -------------------------------------------------------


def render(statement: Statement, paramstyle: str = "format") -> tuple[str, tuple[Any, ...]]:
    """Rewrite ``$n`` placeholders into a DB-API paramstyle.

    ``format`` (psycopg2) turns each ``$n`` into ``%s`` and doubles literal
    percent signs when parameters are bound.  ``qmark`` (sqlite3) turns
    them into ``?``.  Text inside quoted literals and quoted identifiers
    is never treated as a placeholder.

    Raises ``ValueError`` if the placeholders are not numbered ``1..n`` in
    order or if their count differs from the number of parameters.
    """
    if paramstyle not in PARAMSTYLES:
        raise ValueError(f"Unsupported paramstyle {paramstyle!r}")

    escape_percent = paramstyle == "format" and bool(statement.params)
    marker = "%s" if paramstyle == "format" else "?"
    seen = 0

    def _sub(match: re.Match[str]) -> str:
        nonlocal seen
        if match.group(1) is not None:
            index = int(match.group(1))
            if index != seen + 1:
                raise ValueError(f"Placeholder ${index} out of sequence in {statement.text!r}")
            seen = index
            return marker
        token = match.group(0)
        return token.replace("%", "%%") if escape_percent else token

    text = _TOKEN_RE.sub(_sub, statement.text)
    if seen != len(statement.params):
        raise ValueError(
            f"{seen} placeholder(s) but {len(statement.params)} parameter(s) "
            f"in {statement.text!r}"
        )
    return text, statement.params
