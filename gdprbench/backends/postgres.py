"""
PostgreSQL backend built on psycopg 3 and psycopg_pool.

Each workload table maps to two PostgreSQL tables:

- ``<table>``: one row per record, fields stored as a JSONB object of text
  values, plus an ``expires_at`` timestamp derived from the record's TTL;
- ``<table>_log``: append-only operation log replayed by ``read_log``.

Both are created on first use. Metadata predicates compare ``fields->>name``;
glob key prefixes (``key*``) are translated to ``LIKE`` patterns. Every
operation runs in its own pooled transaction and writes its log row in the
same transaction. Database errors are logged and returned as
``Status.ERROR``.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, List, Optional, Sequence, Set, Tuple, TypeVar

import psycopg
from psycopg import Connection, sql
from psycopg.types.json import Jsonb

from gdprbench.backends.abstract import AbstractBackend, Record
from gdprbench.domain.models import LogEntry, Status, metadata_field_name
from gdprbench.infrastructure.db_factory import PoolManager, get_sync_connection, get_sync_pool
from gdprbench.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")

_CREATE_TABLES = """
CREATE TABLE IF NOT EXISTS {table} (
    key TEXT PRIMARY KEY,
    fields JSONB NOT NULL,
    expires_at TIMESTAMPTZ NOT NULL
);
CREATE INDEX IF NOT EXISTS {expiry_index} ON {table} (expires_at);
CREATE TABLE IF NOT EXISTS {log_table} (
    id BIGSERIAL PRIMARY KEY,
    ts TIMESTAMPTZ NOT NULL DEFAULT now(),
    operation TEXT NOT NULL,
    key TEXT NOT NULL,
    detail JSONB NOT NULL DEFAULT '{{}}'::jsonb
);
"""


def glob_to_like(pattern: str) -> str:
    """Translate a ``*``/``?`` glob into a SQL LIKE pattern with ``\\`` escapes."""
    out = []
    for ch in pattern:
        if ch in "%_\\":
            out.append("\\" + ch)
        elif ch == "*":
            out.append("%")
        elif ch == "?":
            out.append("_")
        else:
            out.append(ch)
    return "".join(out)


def _encode(values: Record) -> Dict[str, str]:
    return {name: bytes(value).decode("utf-8") for name, value in values.items()}


def _decode(fields: Dict[str, str], names: Optional[Sequence[str]] = None) -> Record:
    if names is None:
        return {name: value.encode("utf-8") for name, value in fields.items()}
    return {name: fields[name].encode("utf-8") for name in names if name in fields}


class PostgresBackend(AbstractBackend):
    """
    Backend storing records as JSONB rows.

    Parameters
    ----------
    dsn : str, optional
        Connection string; defaults to the one built from settings.
    pool_max_size : int, optional
        Upper bound on pooled connections; defaults to ``DB_POOL_MAX_SIZE``.
    """

    name = "postgres"

    def __init__(self, dsn: Optional[str] = None, pool_max_size: Optional[int] = None) -> None:
        self._dsn = dsn
        self._pool = get_sync_pool(dsn=dsn, max_size=pool_max_size)
        self._ready: Set[str] = set()
        self._ready_lock = threading.Lock()

    # ------------------------------------------------------------------ helpers

    def _ensure_schema(self, table: str) -> None:
        if table in self._ready:
            return
        with self._ready_lock:
            if table in self._ready:
                return
            ddl = sql.SQL(_CREATE_TABLES).format(
                table=sql.Identifier(table),
                log_table=sql.Identifier(f"{table}_log"),
                expiry_index=sql.Identifier(f"{table}_expires_at_idx"),
            )
            with get_sync_connection(self._dsn) as conn:
                conn.execute(ddl)
            self._ready.add(table)
            log.info("Schema ready", extra={"table": table})

    def _run(self, operation: str, table: str, default: T, work: Callable[[Connection], T]) -> T:
        try:
            self._ensure_schema(table)
            with self._pool.connection() as conn:
                return work(conn)
        except psycopg.Error as exc:
            log.warning(
                f"[POSTGRES] {operation} failed: {exc}",
                extra={"operation": operation, "table": table},
            )
            return default

    @staticmethod
    def _log(conn: Connection, table: str, operation: str, key: str, **detail: Any) -> None:
        conn.execute(
            sql.SQL("INSERT INTO {} (operation, key, detail) VALUES (%s, %s, %s)").format(
                sql.Identifier(f"{table}_log")
            ),
            (operation, key, Jsonb(detail)),
        )

    # ------------------------------------------------------------------ capabilities

    def insert_with_expiry(
        self, table: str, key: str, values: Record, ttl_seconds: int
    ) -> Status:
        if ttl_seconds <= 0:
            return Status.BAD_REQUEST

        def work(conn: Connection) -> Status:
            conn.execute(
                sql.SQL(
                    "INSERT INTO {} (key, fields, expires_at) "
                    "VALUES (%s, %s, now() + make_interval(secs => %s::double precision)) "
                    "ON CONFLICT (key) DO UPDATE "
                    "SET fields = EXCLUDED.fields, expires_at = EXCLUDED.expires_at"
                ).format(sql.Identifier(table)),
                (key, Jsonb(_encode(values)), ttl_seconds),
            )
            self._log(conn, table, "INSERT", key, ttl=ttl_seconds, fields=len(values))
            return Status.OK

        return self._run("INSERT", table, Status.ERROR, work)

    def read(
        self, table: str, key: str, fields: Optional[Sequence[str]] = None
    ) -> Tuple[Status, Record]:
        def work(conn: Connection) -> Tuple[Status, Record]:
            row = conn.execute(
                sql.SQL("SELECT fields FROM {} WHERE key = %s AND expires_at > now()").format(
                    sql.Identifier(table)
                ),
                (key,),
            ).fetchone()
            self._log(conn, table, "READ", key)
            if row is None:
                return Status.NOT_FOUND, {}
            return Status.OK, _decode(row[0], fields)

        return self._run("READ", table, (Status.ERROR, {}), work)

    def read_by_metadata(
        self, table: str, field_position: int, match_value: str, key_prefix: str
    ) -> Tuple[Status, List[Record]]:
        try:
            field_name = metadata_field_name(field_position)
        except ValueError:
            return Status.BAD_REQUEST, []

        def work(conn: Connection) -> Tuple[Status, List[Record]]:
            rows = conn.execute(
                sql.SQL(
                    "SELECT fields FROM {} WHERE fields->>%s::text = %s AND key LIKE %s "
                    "AND expires_at > now() ORDER BY key"
                ).format(sql.Identifier(table)),
                (field_name, match_value, glob_to_like(key_prefix)),
            ).fetchall()
            self._log(conn, table, "READ-META", match_value, field=field_name, prefix=key_prefix)
            return Status.OK, [_decode(row[0]) for row in rows]

        return self._run("READ-META", table, (Status.ERROR, []), work)

    def update(self, table: str, key: str, values: Record) -> Status:
        def work(conn: Connection) -> Status:
            cur = conn.execute(
                sql.SQL(
                    "UPDATE {} SET fields = fields || %s WHERE key = %s AND expires_at > now()"
                ).format(sql.Identifier(table)),
                (Jsonb(_encode(values)), key),
            )
            if cur.rowcount == 0:
                return Status.NOT_FOUND
            self._log(conn, table, "UPDATE", key, fields=sorted(values))
            return Status.OK

        return self._run("UPDATE", table, Status.ERROR, work)

    def update_by_metadata(
        self,
        table: str,
        field_position: int,
        match_value: str,
        key_prefix: str,
        target_field: str,
        new_value: bytes,
    ) -> Status:
        try:
            field_name = metadata_field_name(field_position)
        except ValueError:
            return Status.BAD_REQUEST

        def work(conn: Connection) -> Status:
            cur = conn.execute(
                sql.SQL(
                    "UPDATE {} SET fields = jsonb_set(fields, ARRAY[%s::text], to_jsonb(%s::text)) "
                    "WHERE fields->>%s::text = %s AND key LIKE %s AND expires_at > now()"
                ).format(sql.Identifier(table)),
                (
                    target_field,
                    bytes(new_value).decode("utf-8"),
                    field_name,
                    match_value,
                    glob_to_like(key_prefix),
                ),
            )
            self._log(
                conn,
                table,
                "UPDATE-META",
                match_value,
                field=field_name,
                target=target_field,
                matched=cur.rowcount,
            )
            return Status.OK

        return self._run("UPDATE-META", table, Status.ERROR, work)

    def delete(self, table: str, key: str) -> Status:
        def work(conn: Connection) -> Status:
            cur = conn.execute(
                sql.SQL("DELETE FROM {} WHERE key = %s AND expires_at > now()").format(
                    sql.Identifier(table)
                ),
                (key,),
            )
            if cur.rowcount == 0:
                return Status.NOT_FOUND
            self._log(conn, table, "DELETE", key)
            return Status.OK

        return self._run("DELETE", table, Status.ERROR, work)

    def delete_by_metadata(
        self, table: str, field_position: int, match_value: str, key_prefix: str
    ) -> Status:
        try:
            field_name = metadata_field_name(field_position)
        except ValueError:
            return Status.BAD_REQUEST

        def work(conn: Connection) -> Status:
            cur = conn.execute(
                sql.SQL(
                    "DELETE FROM {} WHERE fields->>%s::text = %s AND key LIKE %s "
                    "AND expires_at > now()"
                ).format(sql.Identifier(table)),
                (field_name, match_value, glob_to_like(key_prefix)),
            )
            self._log(
                conn, table, "DELETE-META", match_value, field=field_name, matched=cur.rowcount
            )
            return Status.OK

        return self._run("DELETE-META", table, Status.ERROR, work)

    def scan(
        self, table: str, start_key: str, length: int, fields: Optional[Sequence[str]] = None
    ) -> Tuple[Status, List[Record]]:
        if length <= 0:
            return Status.BAD_REQUEST, []

        def work(conn: Connection) -> Tuple[Status, List[Record]]:
            rows = conn.execute(
                sql.SQL(
                    "SELECT fields FROM {} WHERE key >= %s AND expires_at > now() "
                    "ORDER BY key LIMIT %s"
                ).format(sql.Identifier(table)),
                (start_key, length),
            ).fetchall()
            self._log(conn, table, "SCAN", start_key, length=length)
            return Status.OK, [_decode(row[0], fields) for row in rows]

        return self._run("SCAN", table, (Status.ERROR, []), work)

    def read_log(self, table: str, length: int) -> Tuple[Status, List[LogEntry]]:
        if length < 0:
            return Status.BAD_REQUEST, []

        def work(conn: Connection) -> Tuple[Status, List[LogEntry]]:
            rows = conn.execute(
                sql.SQL(
                    "SELECT ts, operation, key, detail FROM "
                    "(SELECT id, ts, operation, key, detail FROM {} ORDER BY id DESC LIMIT %s) recent "
                    "ORDER BY id"
                ).format(sql.Identifier(f"{table}_log")),
                (length,),
            ).fetchall()
            entries = [
                LogEntry(timestamp=ts.timestamp(), operation=operation, key=key, detail=detail)
                for ts, operation, key, detail in rows
            ]
            return Status.OK, entries

        return self._run("READ-LOG", table, (Status.ERROR, []), work)

    def verify_expiry_compliance(self, table: str, sample_count: int) -> Status:
        """Purge expired records among the first ``sample_count`` keys."""
        if sample_count < 0:
            return Status.BAD_REQUEST

        def work(conn: Connection) -> Status:
            cur = conn.execute(
                sql.SQL(
                    "WITH sample AS (SELECT key FROM {table} ORDER BY key LIMIT %s) "
                    "DELETE FROM {table} t USING sample "
                    "WHERE t.key = sample.key AND t.expires_at <= now()"
                ).format(table=sql.Identifier(table)),
                (sample_count,),
            )
            self._log(conn, table, "VERIFY-TTL", "*", sampled=sample_count, purged=cur.rowcount)
            return Status.OK

        return self._run("VERIFY-TTL", table, Status.ERROR, work)

    def drop(self, table: str) -> None:
        """Drop both tables of ``table``; used by integration tests."""
        with get_sync_connection(self._dsn) as conn:
            conn.execute(
                sql.SQL("DROP TABLE IF EXISTS {}, {}").format(
                    sql.Identifier(table), sql.Identifier(f"{table}_log")
                )
            )
        with self._ready_lock:
            self._ready.discard(table)

    def close(self) -> None:
        PoolManager().close_pool(self._dsn)


__all__ = ["PostgresBackend", "glob_to_like"]
