"""
Storage backend capability interface for the GDPR workload benchmark.

The workload engine only talks to storage through this interface. Concrete
adapters (in-memory, PostgreSQL) implement the `Backend` protocol, usually by
subclassing `AbstractBackend`. Every call reports its outcome as a `Status`
value; adapters must not let per-operation failures escape as exceptions.
"""

from __future__ import annotations

import abc
from typing import Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from gdprbench.domain.models import LogEntry, Status

Record = Dict[str, bytes]


@runtime_checkable
class Backend(Protocol):
    """
    Capability set a storage system must offer to run the GDPR workload.

    Metadata-scoped calls select every record whose metadata field at
    ``field_position`` equals ``match_value`` and whose key matches the glob
    ``key_prefix`` (e.g. ``key*``).
    """

    def insert_with_expiry(
        self, table: str, key: str, values: Record, ttl_seconds: int
    ) -> Status: ...

    def read(
        self, table: str, key: str, fields: Optional[Sequence[str]] = None
    ) -> Tuple[Status, Record]: ...

    def read_by_metadata(
        self, table: str, field_position: int, match_value: str, key_prefix: str
    ) -> Tuple[Status, List[Record]]: ...

    def update(self, table: str, key: str, values: Record) -> Status: ...

    def update_by_metadata(
        self,
        table: str,
        field_position: int,
        match_value: str,
        key_prefix: str,
        target_field: str,
        new_value: bytes,
    ) -> Status: ...

    def delete(self, table: str, key: str) -> Status: ...

    def delete_by_metadata(
        self, table: str, field_position: int, match_value: str, key_prefix: str
    ) -> Status: ...

    def scan(
        self, table: str, start_key: str, length: int, fields: Optional[Sequence[str]] = None
    ) -> Tuple[Status, List[Record]]: ...

    def read_log(self, table: str, length: int) -> Tuple[Status, List[LogEntry]]: ...

    def verify_expiry_compliance(self, table: str, sample_count: int) -> Status: ...

    def close(self) -> None: ...


class AbstractBackend(abc.ABC):
    """
    Optional ABC helper for class-based adapters.

    Subclasses set `name` and implement every capability. `close` is a no-op
    by default; the class doubles as a context manager that calls it.
    """

    name: str

    @abc.abstractmethod
    def insert_with_expiry(
        self, table: str, key: str, values: Record, ttl_seconds: int
    ) -> Status:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def read(
        self, table: str, key: str, fields: Optional[Sequence[str]] = None
    ) -> Tuple[Status, Record]:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def read_by_metadata(
        self, table: str, field_position: int, match_value: str, key_prefix: str
    ) -> Tuple[Status, List[Record]]:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def update(self, table: str, key: str, values: Record) -> Status:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def update_by_metadata(
        self,
        table: str,
        field_position: int,
        match_value: str,
        key_prefix: str,
        target_field: str,
        new_value: bytes,
    ) -> Status:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def delete(self, table: str, key: str) -> Status:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def delete_by_metadata(
        self, table: str, field_position: int, match_value: str, key_prefix: str
    ) -> Status:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def scan(
        self, table: str, start_key: str, length: int, fields: Optional[Sequence[str]] = None
    ) -> Tuple[Status, List[Record]]:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def read_log(
        self, table: str, length: int
    ) -> Tuple[Status, List[LogEntry]]:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def verify_expiry_compliance(
        self, table: str, sample_count: int
    ) -> Status:  # pragma: no cover - interface only
        raise NotImplementedError

    def close(self) -> None:
        """Release resources held by the adapter."""

    def __enter__(self) -> AbstractBackend:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["AbstractBackend", "Backend", "Record"]
