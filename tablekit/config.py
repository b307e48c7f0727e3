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

"""PostgreSQL connection settings.

Each setting can be overridden through an environment variable:

=============  ===============  ===========
Setting        Variable         Default
=============  ===============  ===========
user           ``PG_USER``      postgres
host           ``PG_HOST``      localhost
database       ``PG_DATABASE``  testdb
password       ``PG_PASSWORD``  password
port           ``PG_PORT``      5432
minconn        ``PG_POOL_MIN``  1
maxconn        ``PG_POOL_MAX``  10
=============  ===============  ===========
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


def _int_setting(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass
class DatabaseConfig:
    """Connection and pool settings for a PostgreSQL server."""

    user: str = "postgres"
    host: str = "localhost"
    database: str = "testdb"
    password: str = field(default="password", repr=False)
    port: int = 5432
    minconn: int = 1
    maxconn: int = 10

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> DatabaseConfig:
        """Build a config from ``PG_*`` environment variables.

        Args:
            environ: Mapping to read from instead of ``os.environ``.
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            user=env.get("PG_USER") or defaults.user,
            host=env.get("PG_HOST") or defaults.host,
            database=env.get("PG_DATABASE") or defaults.database,
            password=env.get("PG_PASSWORD") or defaults.password,
            port=_int_setting(env, "PG_PORT", defaults.port),
            minconn=_int_setting(env, "PG_POOL_MIN", defaults.minconn),
            maxconn=_int_setting(env, "PG_POOL_MAX", defaults.maxconn),
        )

    def connect_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``psycopg2.connect``."""
        return {
            "user": self.user,
            "host": self.host,
            "database": self.database,
            "password": self.password,
            "port": self.port,
        }
