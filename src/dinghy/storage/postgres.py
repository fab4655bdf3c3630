"""PostgreSQL connection management and the SQL store client."""

from __future__ import annotations

from typing import Any

import psycopg

from dinghy.errors import NotFoundError

__all__ = ["CREATE_TABLES_SQL", "SQLClient", "get_connection"]

CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS file_urls (
    url TEXT PRIMARY KEY,
    raw_data TEXT
);

CREATE TABLE IF NOT EXISTS file_url_deps (
    id SERIAL PRIMARY KEY,
    parent_url TEXT NOT NULL,
    child_url TEXT NOT NULL,
    UNIQUE (parent_url, child_url)
);

CREATE INDEX IF NOT EXISTS idx_file_url_deps_child ON file_url_deps(child_url);
"""


def get_connection(dsn: str, *, autocommit: bool = False) -> psycopg.Connection[tuple[Any, ...]]:
    """Create a new PostgreSQL connection."""
    return psycopg.connect(dsn, autocommit=autocommit)


class SQLClient:
    """Answers the two read queries of the dependency store in PostgreSQL.

    Driver errors are not caught here.  Give it an autocommit connection:
    the reads never commit, so otherwise the connection stays idle in a
    transaction and one failed query aborts every later one.
    """

    def __init__(self, conn: psycopg.Connection[Any]) -> None:
        self._conn = conn

    def ensure_schema(self) -> None:
        with self._conn.cursor() as cur:
            cur.execute(CREATE_TABLES_SQL)
        self._conn.commit()

    def fetch_roots(self, url: str) -> list[str]:
        with self._conn.cursor() as cur:
            cur.execute(
                "SELECT parent_url FROM file_url_deps WHERE child_url = %s ORDER BY id",
                (url,),
            )
            rows = cur.fetchall()
        return [r[0] for r in rows]

    def fetch_raw_data(self, url: str) -> str:
        with self._conn.cursor() as cur:
            cur.execute("SELECT raw_data FROM file_urls WHERE url = %s", (url,))
            row = cur.fetchone()
        if row is None or row[0] is None:
            raise NotFoundError(url)
        return row[0]  # type: ignore[no-any-return]

    def close(self) -> None:
        self._conn.close()
