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

"""Exception hierarchy.

Two kinds of failure reach callers:

* :class:`ValidationError`: the request was rejected before any SQL was
  sent (bad identifier, empty change set, empty bulk insert, ...).
* :class:`ExecutionError`: the database rejected the statement.  The
  driver's exception is kept as ``cause`` (and chained as ``__cause__``)
  so that SQLSTATE codes and constraint names stay available.
"""

from __future__ import annotations


class TablekitError(Exception):
    """Base class for all errors raised by tablekit."""


class ValidationError(TablekitError, ValueError):
    """Raised when a request is rejected before reaching the database."""


class ExecutionError(TablekitError):
    """Raised when the database fails to execute a statement.

    Attributes:
        operation: Name of the public operation that failed.
        target: Table or database the operation was aimed at.
        cause: The original driver exception.
        pgcode: SQLSTATE code reported by the driver, if any.
        constraint: Name of the violated constraint, if any.
    """

    def __init__(self, operation: str, target: str, cause: BaseException) -> None:
        self.operation = operation
        self.target = target
        self.cause = cause
        self.pgcode: str | None = getattr(cause, "pgcode", None)
        diag = getattr(cause, "diag", None)
        self.constraint: str | None = getattr(diag, "constraint_name", None)
        super().__init__(f"{operation} failed on '{target}': {cause}")
