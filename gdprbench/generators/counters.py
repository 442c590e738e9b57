"""
Thread-safe counters used to hand out record indices.

`CounterGenerator` backs the load phase. `AcknowledgedCounterGenerator` backs
transaction-phase inserts: it hands out indices in strictly increasing order
and only publishes an index through `last_value` once it and every index
before it have been acknowledged, so readers never target a record whose
insert is still in flight.
"""

from __future__ import annotations

import threading
from typing import Set

from gdprbench.generators.base import NumberGenerator


class CounterGenerator(NumberGenerator):
    """Monotonic counter starting at ``start``."""

    def __init__(self, start: int) -> None:
        self._next = start
        self._lock = threading.Lock()

    def next_value(self) -> int:
        with self._lock:
            value = self._next
            self._next += 1
        return value

    def last_value(self) -> int:
        with self._lock:
            return self._next - 1


class AcknowledgedCounterGenerator(CounterGenerator):
    """
    Counter whose published value only advances through a contiguous prefix
    of acknowledged indices.

    ``last_value()`` starts at ``start - 1``: everything below ``start`` is
    assumed to exist already (the loaded records).
    """

    def __init__(self, start: int) -> None:
        super().__init__(start)
        self._limit = start - 1
        self._pending: Set[int] = set()
        self._ack_lock = threading.Lock()

    def acknowledge(self, value: int) -> None:
        """
        Mark ``value`` as durably handled.

        Acknowledgements may arrive in any order. Acknowledging an index at or
        below the current watermark, or one already pending, is a no-op.
        """
        with self._ack_lock:
            if value <= self._limit:
                return
            self._pending.add(value)
            limit = self._limit
            while limit + 1 in self._pending:
                limit += 1
                self._pending.discard(limit)
            self._limit = limit

    def last_value(self) -> int:
        with self._ack_lock:
            return self._limit

    def pending_count(self) -> int:
        """Number of acknowledged indices still waiting on an earlier gap."""
        with self._ack_lock:
            return len(self._pending)


class SequentialGenerator(NumberGenerator):
    """Cycle through ``[lower, upper]`` in order, wrapping around at the end."""

    def __init__(self, lower: int, upper: int) -> None:
        if upper < lower:
            raise ValueError(f"SequentialGenerator requires lower <= upper, got {lower}..{upper}")
        self._lower = lower
        self._interval = upper - lower + 1
        self._counter = CounterGenerator(0)

    def next_value(self) -> int:
        return self._remember(self._lower + self._counter.next_value() % self._interval)


__all__ = ["AcknowledgedCounterGenerator", "CounterGenerator", "SequentialGenerator"]
