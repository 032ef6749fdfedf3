"""Environment-driven settings.

Variables (a ``.env`` file in the working directory is honored):
  ENTITYQL_DATABASE_URL  SQLAlchemy async URL, default ``sqlite+aiosqlite:///:memory:``
  ENTITYQL_SQL_ECHO      ``1`` to log SQL through the ``sqlalchemy.engine`` logger
  ENTITYQL_API_PREFIX    path prefix of the HTTP router, default ``/api``
"""
from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
DEFAULT_API_PREFIX = "/api"


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    sql_echo: bool = False
    api_prefix: str = DEFAULT_API_PREFIX

    @property
    def is_memory_sqlite(self) -> bool:
        url = self.database_url
        return url.startswith("sqlite") and (":memory:" in url or url.rstrip("/").endswith(":"))

    @classmethod
    def from_env(cls) -> 'Settings':
        load_dotenv()
        prefix = (os.getenv("ENTITYQL_API_PREFIX") or DEFAULT_API_PREFIX).rstrip("/")
        return cls(
            database_url=os.getenv("ENTITYQL_DATABASE_URL") or DEFAULT_DATABASE_URL,
            sql_echo=os.getenv("ENTITYQL_SQL_ECHO", "0") not in ("", "0"),
            api_prefix=prefix,
        )
