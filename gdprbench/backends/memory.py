"""
In-process backend for tests, dry runs and local experiments.

Records live in per-table dicts guarded by a single lock. Each record carries
an absolute expiry time derived from its TTL; expired records behave as
missing and are purged by the compliance check. Every call except
``read_log`` appends to a bounded per-table operation log.
"""

from __future__ import annotations

import bisect
import threading
import time
from collections import deque
from dataclasses import dataclass
from fnmatch import fnmatchcase
from typing import Any, Callable, Deque, Dict, List, Optional, Sequence, Tuple

from gdprbench.backends.abstract import AbstractBackend, Record
from gdprbench.domain.models import LogEntry, Status, metadata_field_name

DEFAULT_LOG_CAPACITY = 10_000


@dataclass
class _Row:
    values: Record
    expires_at: float


class _Table:
    def __init__(self, log_capacity: int) -> None:
        self.rows: Dict[str, _Row] = {}
        self.sorted_keys: List[str] = []
        self.log: Deque[LogEntry] = deque(maxlen=log_capacity)

    def put(self, key: str, row: _Row) -> None:
        if key not in self.rows:
            bisect.insort(self.sorted_keys, key)
        self.rows[key] = row

    def remove(self, key: str) -> None:
        del self.rows[key]
        pos = bisect.bisect_left(self.sorted_keys, key)
        del self.sorted_keys[pos]


class MemoryBackend(AbstractBackend):
    """
    Thread-safe dict-backed implementation of the backend capabilities.

    Parameters
    ----------
    log_capacity : int
        Operation log entries kept per table; older entries are dropped.
    clock : callable
        Source of the current Unix time, replaceable in tests.
    """

    name = "memory"

    def __init__(
        self,
        log_capacity: int = DEFAULT_LOG_CAPACITY,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._lock = threading.Lock()
        self._tables: Dict[str, _Table] = {}
        self._log_capacity = log_capacity
        self._clock = clock

    def _table(self, name: str) -> _Table:
        table = self._tables.get(name)
        if table is None:
            table = self._tables[name] = _Table(self._log_capacity)
        return table

    def _log(self, table: _Table, operation: str, key: str, **detail: Any) -> None:
        table.log.append(
            LogEntry(timestamp=self._clock(), operation=operation, key=key, detail=detail)
        )

    def _live(self, table: _Table, key: str) -> Optional[_Row]:
        row = table.rows.get(key)
        if row is None or row.expires_at <= self._clock():
            return None
        return row

    def _matches(
        self, table: _Table, field_position: int, match_value: str, key_prefix: str
    ) -> List[str]:
        name = metadata_field_name(field_position)
        expected = match_value.encode("utf-8")
        now = self._clock()
        return [
            key
            for key in table.sorted_keys
            if fnmatchcase(key, key_prefix)
            and table.rows[key].expires_at > now
            and table.rows[key].values.get(name) == expected
        ]

    @staticmethod
    def _project(values: Record, fields: Optional[Sequence[str]]) -> Record:
        if fields is None:
            return dict(values)
        return {name: values[name] for name in fields if name in values}

    def insert_with_expiry(
        self, table: str, key: str, values: Record, ttl_seconds: int
    ) -> Status:
        if ttl_seconds <= 0:
            return Status.BAD_REQUEST
        with self._lock:
            t = self._table(table)
            t.put(key, _Row(values=dict(values), expires_at=self._clock() + ttl_seconds))
            self._log(t, "INSERT", key, ttl=ttl_seconds, fields=len(values))
        return Status.OK

    def read(
        self, table: str, key: str, fields: Optional[Sequence[str]] = None
    ) -> Tuple[Status, Record]:
        with self._lock:
            t = self._table(table)
            self._log(t, "READ", key)
            row = self._live(t, key)
            if row is None:
                return Status.NOT_FOUND, {}
            return Status.OK, self._project(row.values, fields)

    def read_by_metadata(
        self, table: str, field_position: int, match_value: str, key_prefix: str
    ) -> Tuple[Status, List[Record]]:
        try:
            field_name = metadata_field_name(field_position)
        except ValueError:
            return Status.BAD_REQUEST, []
        with self._lock:
            t = self._table(table)
            self._log(t, "READ-META", match_value, field=field_name, prefix=key_prefix)
            keys = self._matches(t, field_position, match_value, key_prefix)
            return Status.OK, [dict(t.rows[key].values) for key in keys]

    def update(self, table: str, key: str, values: Record) -> Status:
        with self._lock:
            t = self._table(table)
            row = self._live(t, key)
            if row is None:
                return Status.NOT_FOUND
            row.values.update(values)
            self._log(t, "UPDATE", key, fields=sorted(values))
        return Status.OK

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
        with self._lock:
            t = self._table(table)
            keys = self._matches(t, field_position, match_value, key_prefix)
            for key in keys:
                t.rows[key].values[target_field] = bytes(new_value)
            self._log(
                t, "UPDATE-META", match_value, field=field_name, target=target_field, matched=len(keys)
            )
        return Status.OK

    def delete(self, table: str, key: str) -> Status:
        with self._lock:
            t = self._table(table)
            if self._live(t, key) is None:
                return Status.NOT_FOUND
            t.remove(key)
            self._log(t, "DELETE", key)
        return Status.OK

    def delete_by_metadata(
        self, table: str, field_position: int, match_value: str, key_prefix: str
    ) -> Status:
        try:
            field_name = metadata_field_name(field_position)
        except ValueError:
            return Status.BAD_REQUEST
        with self._lock:
            t = self._table(table)
            keys = self._matches(t, field_position, match_value, key_prefix)
            for key in keys:
                t.remove(key)
            self._log(t, "DELETE-META", match_value, field=field_name, matched=len(keys))
        return Status.OK

    def scan(
        self, table: str, start_key: str, length: int, fields: Optional[Sequence[str]] = None
    ) -> Tuple[Status, List[Record]]:
        if length <= 0:
            return Status.BAD_REQUEST, []
        with self._lock:
            t = self._table(table)
            self._log(t, "SCAN", start_key, length=length)
            now = self._clock()
            result: List[Record] = []
            pos = bisect.bisect_left(t.sorted_keys, start_key)
            while pos < len(t.sorted_keys) and len(result) < length:
                row = t.rows[t.sorted_keys[pos]]
                if row.expires_at > now:
                    result.append(self._project(row.values, fields))
                pos += 1
            return Status.OK, result

    def read_log(self, table: str, length: int) -> Tuple[Status, List[LogEntry]]:
        """Return up to ``length`` most recent log entries, oldest first."""
        if length < 0:
            return Status.BAD_REQUEST, []
        with self._lock:
            entries = list(self._table(table).log)
        return Status.OK, entries[len(entries) - min(length, len(entries)) :]

    def verify_expiry_compliance(self, table: str, sample_count: int) -> Status:
        """
        Purge expired records among the first ``sample_count`` keys.

        Afterwards no sampled key is past its expiry time, which is what a
        compliant store must guarantee.
        """
        if sample_count < 0:
            return Status.BAD_REQUEST
        with self._lock:
            t = self._table(table)
            now = self._clock()
            sample = t.sorted_keys[:sample_count]
            expired = [key for key in sample if t.rows[key].expires_at <= now]
            for key in expired:
                t.remove(key)
            self._log(t, "VERIFY-TTL", "*", sampled=len(sample), purged=len(expired))
        return Status.OK

    def record_count(self, table: str) -> int:
        """Number of stored records, expired ones included."""
        with self._lock:
            return len(self._table(table).rows)

    def close(self) -> None:
        with self._lock:
            self._tables.clear()


__all__ = ["DEFAULT_LOG_CAPACITY", "MemoryBackend"]
