"""
Record layout and field value synthesis.

A record carries the nine semantic metadata fields (purpose, time-to-live,
user, objective, decision, ACL, shared-with, source, category) followed by
opaque data fields. Metadata values are picked from per-field pools by
``record_index mod pool_size`` and are therefore reproducible from the record
index alone. Data values are either a deterministic string derived from the
record index (integrity mode) or random bytes of a drawn length.
"""

from __future__ import annotations

import random
import string
from typing import Dict, List, Optional, Sequence, Tuple

from gdprbench.config import WorkloadSettings
from gdprbench.domain.models import (
    DATA_FIELD_NAME,
    METADATA_FIELD_COUNT,
    METADATA_FIELD_NAMES,
    TTL_POOL,
    MetadataField,
)
from gdprbench.generators.base import NumberGenerator
from gdprbench.utils.hashing import java_string_hash

_ALPHANUM = string.ascii_letters + string.digits

# (field, value prefix, settings attribute holding the pool size)
_POOL_SPECS: Tuple[Tuple[MetadataField, str, str], ...] = (
    (MetadataField.PURPOSE, "purpose", "purpose_count"),
    (MetadataField.USER, "user", "user_count"),
    (MetadataField.OBJECTIVE, "obj", "objective_count"),
    (MetadataField.DECISION, "dec", "decision_count"),
    (MetadataField.ACL, "acl", "acl_count"),
    (MetadataField.SHARED, "shr", "shared_count"),
    (MetadataField.SOURCE, "src", "source_count"),
    (MetadataField.CATEGORY, "cat", "category_count"),
)


def field_names_for(field_count: int) -> List[str]:
    """
    Field names for a record of ``field_count`` fields.

    The first nine are the metadata names; generic data fields follow as
    ``Data``, ``Data1``, ``Data2``, ...
    """
    names = list(METADATA_FIELD_NAMES[:field_count])
    for position in range(METADATA_FIELD_COUNT, field_count):
        offset = position - METADATA_FIELD_COUNT
        names.append(DATA_FIELD_NAME if offset == 0 else f"{DATA_FIELD_NAME}{offset}")
    return names


def build_pools(settings: WorkloadSettings) -> List[Tuple[str, ...]]:
    """
    Build the candidate value pool of every metadata field, indexed by position.

    A non-positive configured size falls back to that pool's default size.
    """
    pools: List[Tuple[str, ...]] = [()] * METADATA_FIELD_COUNT
    pools[MetadataField.TTL] = TTL_POOL
    for field, prefix, attr in _POOL_SPECS:
        size = getattr(settings, attr)
        if size <= 0:
            size = WorkloadSettings.model_fields[attr].default
        pools[field] = tuple(f"{prefix}{i}" for i in range(size))
    return pools


class ValueSchema:
    """
    Immutable field layout plus value builders.

    Safe to share between threads: the only mutable collaborators are the
    injected generators, which are themselves thread-safe.

    Parameters
    ----------
    settings : WorkloadSettings
        Provides the field count, pool sizes and integrity toggle.
    length_generator : NumberGenerator
        Field length distribution for data values.
    field_chooser : NumberGenerator
        Picks the field position written by `build_one_value`.
    """

    def __init__(
        self,
        settings: WorkloadSettings,
        length_generator: NumberGenerator,
        field_chooser: NumberGenerator,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._field_names: Tuple[str, ...] = tuple(field_names_for(settings.field_count))
        self._pools = build_pools(settings)
        self._integrity = settings.data_integrity
        self._length_generator = length_generator
        self._field_chooser = field_chooser
        self._rng = rng or random.Random()

    @property
    def field_names(self) -> Tuple[str, ...]:
        return self._field_names

    @property
    def field_count(self) -> int:
        return len(self._field_names)

    def pool(self, position: int) -> Sequence[str]:
        return self._pools[position]

    def position_of(self, field_name: str) -> int:
        return self._field_names.index(field_name)

    def metadata_value(self, record_index: int, position: int) -> str:
        """Pool entry for metadata ``position`` of record ``record_index``."""
        pool = self._pools[position]
        return pool[record_index % len(pool)]

    def ttl_seconds(self, record_index: int) -> int:
        return int(self.metadata_value(record_index, MetadataField.TTL))

    def deterministic_data(self, record_index: int) -> str:
        """
        Fixed-length data value reproducible from ``record_index``.

        The record index and the hash of the text built so far are appended
        alternately until the configured length is reached, then truncated.
        """
        size = self._length_generator.next_value()
        text = ""
        seed = str(record_index)
        while len(text) < size:
            text += seed
            text += str(java_string_hash(text))
        return text[:size]

    def expected_value(self, record_index: int, position: int) -> bytes:
        """Deterministic value of ``position``, used for integrity checks."""
        if position < METADATA_FIELD_COUNT:
            return self.metadata_value(record_index, position).encode("ascii")
        return self.deterministic_data(record_index).encode("ascii")

    def random_data(self) -> bytes:
        length = self._length_generator.next_value()
        return "".join(self._rng.choices(_ALPHANUM, k=length)).encode("ascii")

    def build_value(self, record_index: int, position: int) -> bytes:
        """
        Value of field ``position`` for record ``record_index``.

        Metadata positions are always deterministic. Data positions are
        deterministic only in integrity mode and random otherwise.
        """
        if position < METADATA_FIELD_COUNT or self._integrity:
            return self.expected_value(record_index, position)
        return self.random_data()

    def build_all_values(self, record_index: int) -> Dict[str, bytes]:
        return {
            name: self.build_value(record_index, position)
            for position, name in enumerate(self._field_names)
        }

    def build_one_value(self, record_index: int) -> Dict[str, bytes]:
        position = self._field_chooser.next_value()
        return {self._field_names[position]: self.build_value(record_index, position)}


__all__ = ["ValueSchema", "build_pools", "field_names_for"]
