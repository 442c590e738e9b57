"""
Domain models for the GDPR workload benchmark.

Defines the status values exchanged with storage backends, the closed set of
transaction operation kinds, and the fixed layout of the semantic metadata
fields every record carries. These definitions are shared by the workload
engine, the backend adapters and the measurement layer.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Tuple

from pydantic import BaseModel, Field


class Status(str, Enum):
    """
    Outcome of a single backend call or verification.

    Backends only ever surface ``OK``, a client error (``NOT_FOUND``,
    ``BAD_REQUEST``) or a server error (``ERROR``). ``UNEXPECTED_STATE`` is
    reserved for integrity verification mismatches.
    """

    OK = "OK"
    NOT_FOUND = "NOT_FOUND"
    BAD_REQUEST = "BAD_REQUEST"
    ERROR = "ERROR"
    UNEXPECTED_STATE = "UNEXPECTED_STATE"

    @property
    def is_ok(self) -> bool:
        return self is Status.OK

    @property
    def is_client_error(self) -> bool:
        return self in (Status.NOT_FOUND, Status.BAD_REQUEST)


class OperationKind(str, Enum):
    """Transaction operation kinds, in the order their weights are configured."""

    READ = "READ"
    READMETAPURPOSE = "READMETAPURPOSE"
    READMETAUSER = "READMETAUSER"
    UPDATE = "UPDATE"
    UPDATEMETAPURPOSE = "UPDATEMETAPURPOSE"
    UPDATEMETAUSER = "UPDATEMETAUSER"
    INSERT = "INSERT"
    DELETE = "DELETE"
    DELETEMETAPURPOSE = "DELETEMETAPURPOSE"
    DELETEMETAUSER = "DELETEMETAUSER"
    SCAN = "SCAN"
    READMODIFYWRITE = "READMODIFYWRITE"

    @property
    def is_metadata_scoped(self) -> bool:
        return self in _METADATA_SCOPED


_METADATA_SCOPED = frozenset(
    {
        OperationKind.READMETAPURPOSE,
        OperationKind.READMETAUSER,
        OperationKind.UPDATEMETAPURPOSE,
        OperationKind.UPDATEMETAUSER,
        OperationKind.DELETEMETAPURPOSE,
        OperationKind.DELETEMETAUSER,
    }
)


class MetadataField(int, Enum):
    """Reserved semantic field positions at the head of every record."""

    PURPOSE = 0
    TTL = 1
    USER = 2
    OBJECTIVE = 3
    DECISION = 4
    ACL = 5
    SHARED = 6
    SOURCE = 7
    CATEGORY = 8

    @property
    def field_name(self) -> str:
        return METADATA_FIELD_NAMES[self.value]


METADATA_FIELD_NAMES: Tuple[str, ...] = (
    "PUR",
    "TTL",
    "USR",
    "OBJ",
    "DEC",
    "ACL",
    "SHR",
    "SRC",
    "CAT",
)
METADATA_FIELD_COUNT = len(METADATA_FIELD_NAMES)

# Lease durations, in seconds, cycled through by record index.
TTL_POOL: Tuple[str, ...] = (
    "30",
    "10000",
    "12000",
    "14000",
    "16000",
    "18000",
    "20000",
    "22000",
    "24000",
    "1000000",
)

DATA_FIELD_NAME = "Data"

# Glob-style prefix matched by metadata-scoped operations.
KEY_PREFIX = "key"
KEY_PATTERN = KEY_PREFIX + "*"


def metadata_field_name(position: int) -> str:
    """
    Name of the metadata field stored at ``position``.

    Raises
    ------
    ValueError
        If ``position`` is not one of the nine reserved positions.
    """
    if not 0 <= position < METADATA_FIELD_COUNT:
        raise ValueError(f"Position {position} is not a metadata field")
    return METADATA_FIELD_NAMES[position]


class LogEntry(BaseModel):
    """
    One entry of a backend's operation log, as returned by ``read_log``.
    """

    timestamp: float = Field(..., description="Unix time the operation was applied.")
    operation: str = Field(..., description="Backend operation name, e.g. INSERT.")
    key: str = Field(..., description="Record key or metadata condition affected.")
    detail: Dict[str, Any] = Field(default_factory=dict, description="Operation arguments.")

    model_config = {
        "frozen": True,
    }


__all__ = [
    "DATA_FIELD_NAME",
    "KEY_PATTERN",
    "KEY_PREFIX",
    "LogEntry",
    "METADATA_FIELD_COUNT",
    "METADATA_FIELD_NAMES",
    "MetadataField",
    "OperationKind",
    "Status",
    "TTL_POOL",
    "metadata_field_name",
]
