"""PostgreSQL backed key-value storage for consumption flags."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Iterator, Mapping, Optional

import psycopg2
import psycopg2.extras
from psycopg2.extensions import connection as PgConnection
from psycopg2.extensions import cursor as PgCursor


CREATE_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS storefront_local_flags (
        flag_key TEXT PRIMARY KEY,
        flag_value BOOLEAN NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
"""


def connection_factory(db_config: Mapping[str, Any]) -> Callable[[], PgConnection]:
    """Return a callable opening new connections with ``db_config``."""

    params = dict(db_config)

    def _connect() -> PgConnection:
        return psycopg2.connect(**params)

    return _connect


@contextmanager
def managed_connection(
    connect: Callable[[], PgConnection],
    conn: Optional[PgConnection] = None,
) -> Iterator[tuple[PgConnection, bool]]:
    """Context manager that manages transaction boundaries for optional connections."""

    if conn is not None:
        yield conn, False
        return

    connection = connect()
    try:
        yield connection, True
        connection.commit()
    except Exception:
        connection.rollback()
        raise
    finally:
        connection.close()


class PostgresKeyValueStore:
    """Concrete key-value store persisting boolean flags in PostgreSQL."""

    def __init__(
        self,
        connect: Callable[[], PgConnection],
        *,
        conn: Optional[PgConnection] = None,
    ) -> None:
        self._connect = connect
        self._conn = conn

    @contextmanager
    def _cursor(self) -> Iterator[PgCursor]:
        with managed_connection(self._connect, self._conn) as (connection, managed):
            cursor = connection.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
            try:
                yield cursor
                if managed:
                    connection.commit()
            except Exception:
                if managed:
                    connection.rollback()
                raise
            finally:
                cursor.close()

    def ensure_schema(self) -> None:
        with self._cursor() as cursor:
            cursor.execute(CREATE_TABLE_SQL)

    def get_flag(self, key: str) -> Optional[bool]:
        with self._cursor() as cursor:
            cursor.execute(
                "SELECT flag_value FROM storefront_local_flags WHERE flag_key = %s",
                (key,),
            )
            row = cursor.fetchone()
        if row is None:
            return None
        return bool(row["flag_value"])

    def set_flag(self, key: str, value: bool) -> None:
        with self._cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO storefront_local_flags (flag_key, flag_value)
                VALUES (%s, %s)
                ON CONFLICT (flag_key) DO UPDATE
                SET flag_value = EXCLUDED.flag_value,
                    updated_at = NOW()
                """,
                (key, bool(value)),
            )
