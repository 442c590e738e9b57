"""
Key space: record index to key mapping and insert progress tracking.
"""

from __future__ import annotations

from gdprbench.domain.models import KEY_PREFIX
from gdprbench.generators.counters import AcknowledgedCounterGenerator, CounterGenerator
from gdprbench.utils.hashing import fnv_hash64


def build_key_name(index: int, ordered: bool, zero_padding: int) -> str:
    """
    Textual key of record ``index``.

    Ordered mode uses the decimal index; hashed mode uses its FNV hash. The
    digits are left-padded with zeros up to ``zero_padding`` characters.
    """
    digits = str(index if ordered else fnv_hash64(index))
    return KEY_PREFIX + digits.rjust(zero_padding, "0")


class KeySpace:
    """
    Hands out record indices and tracks which ones are known to exist.

    Load-phase inserts draw from a plain counter starting at ``load_start``.
    Transaction-phase inserts draw from an acknowledged counter starting at
    ``transaction_start``; everything below it is assumed loaded, and the
    watermark only advances over a contiguous run of acknowledged indices.
    """

    def __init__(
        self,
        ordered: bool,
        zero_padding: int,
        load_start: int,
        transaction_start: int,
    ) -> None:
        self._ordered = ordered
        self._zero_padding = zero_padding
        self._load_sequence = CounterGenerator(load_start)
        self._transaction_sequence = AcknowledgedCounterGenerator(transaction_start)

    @property
    def ordered(self) -> bool:
        return self._ordered

    @property
    def transaction_sequence(self) -> AcknowledgedCounterGenerator:
        return self._transaction_sequence

    def key_for_index(self, index: int) -> str:
        return build_key_name(index, self._ordered, self._zero_padding)

    def next_load_index(self) -> int:
        return self._load_sequence.next_value()

    def next_insert_index(self) -> int:
        """Assign the next transaction-phase insert index, whether or not it commits."""
        return self._transaction_sequence.next_value()

    def acknowledge(self, index: int) -> None:
        self._transaction_sequence.acknowledge(index)

    def last_acknowledged(self) -> int:
        """Highest index below which every record is known to exist."""
        return self._transaction_sequence.last_value()


__all__ = ["KeySpace", "build_key_name"]
