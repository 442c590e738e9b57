"""
Random distributions used to pick keys, field lengths and scan lengths.

These follow the YCSB reference generators, so key popularity and value sizes
have the same shape as in YCSB runs. Every generator accepts an
optional ``random.Random`` so tests can seed it; otherwise each instance owns
a fresh, independently seeded one.
"""

from __future__ import annotations

import math
import random
import threading
from pathlib import Path
from typing import Generic, List, Optional, Sequence, Tuple, TypeVar

from gdprbench.generators.base import NumberGenerator
from gdprbench.generators.counters import CounterGenerator
from gdprbench.utils.hashing import fnv_hash64

T = TypeVar("T")

ZIPFIAN_CONSTANT = 0.99


class ConstantGenerator(NumberGenerator):
    """Always returns the same value."""

    def __init__(self, value: int) -> None:
        self._value = value
        self._last = value

    def next_value(self) -> int:
        return self._value


class UniformGenerator(NumberGenerator):
    """Uniform integers over the inclusive range ``[lower, upper]``."""

    def __init__(self, lower: int, upper: int, rng: Optional[random.Random] = None) -> None:
        if upper < lower:
            raise ValueError(f"UniformGenerator requires lower <= upper, got {lower}..{upper}")
        self._lower = lower
        self._upper = upper
        self._rng = rng or random.Random()

    def next_value(self) -> int:
        return self._remember(self._rng.randint(self._lower, self._upper))


# ---------------------------------------------------------------------------
# Zipfian family
# ---------------------------------------------------------------------------


def _zeta(start: int, stop: int, theta: float, initial: float = 0.0) -> float:
    """Sum ``1 / i**theta`` for ``i`` in ``(start, stop]`` on top of ``initial``."""
    total = initial
    for i in range(start + 1, stop + 1):
        total += 1.0 / (i**theta)
    return total


class ZipfianGenerator(NumberGenerator):
    """
    Zipfian integers over ``[lower, upper]``; ``lower`` is the most popular.

    Parameters
    ----------
    lower, upper : int
        Inclusive bounds.
    theta : float
        Zipfian constant (default 0.99, as in YCSB).
    zetan : float, optional
        Precomputed zeta for the item count, to skip the O(n) computation.
    """

    def __init__(
        self,
        lower: int,
        upper: int,
        theta: float = ZIPFIAN_CONSTANT,
        zetan: Optional[float] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        items = upper - lower + 1
        if items < 1:
            raise ValueError(f"ZipfianGenerator requires lower <= upper, got {lower}..{upper}")
        self._base = lower
        self._theta = theta
        self._alpha = 1.0 / (1.0 - theta)
        self._zeta2 = _zeta(0, 2, theta)
        self._count_for_zeta = items
        self._zetan = zetan if zetan is not None else _zeta(0, items, theta)
        self._eta = self._compute_eta(items)
        self._items = items
        self._rng = rng or random.Random()
        self._lock = threading.Lock()

    def _compute_eta(self, items: int) -> float:
        if items < 2:
            return 0.0
        return (1.0 - (2.0 / items) ** (1.0 - self._theta)) / (1.0 - self._zeta2 / self._zetan)

    def _grow_to(self, item_count: int) -> None:
        """Incrementally extend zeta when the item count grows (O(delta))."""
        with self._lock:
            if item_count <= self._count_for_zeta:
                return
            self._zetan = _zeta(self._count_for_zeta, item_count, self._theta, self._zetan)
            self._count_for_zeta = item_count
            self._eta = self._compute_eta(item_count)

    def next_long(self, item_count: int) -> int:
        """Draw from ``[lower, lower + item_count)``."""
        if item_count > self._count_for_zeta:
            self._grow_to(item_count)
        with self._lock:
            zetan, eta = self._zetan, self._eta
        u = self._rng.random()
        uz = u * zetan
        if uz < 1.0:
            return self._remember(self._base)
        if uz < 1.0 + 0.5**self._theta:
            return self._remember(self._base + min(1, item_count - 1))
        offset = int(item_count * ((eta * u - eta + 1.0) ** self._alpha))
        return self._remember(self._base + min(offset, item_count - 1))

    def next_value(self) -> int:
        return self.next_long(self._items)


class ScrambledZipfianGenerator(NumberGenerator):
    """
    Zipfian popularity spread across ``[lower, upper]`` by FNV hashing.

    Draws from a fixed, very large Zipfian item space and folds the hashed
    rank into the requested range, so popular items are scattered rather than
    clustered at ``lower`` and the popularity of a key does not change when
    the range is resized.
    """

    ITEM_COUNT = 10_000_000_000
    ZETAN = 26.46902820178302

    def __init__(self, lower: int, upper: int, rng: Optional[random.Random] = None) -> None:
        if upper < lower:
            raise ValueError(
                f"ScrambledZipfianGenerator requires lower <= upper, got {lower}..{upper}"
            )
        self._lower = lower
        self._item_count = upper - lower + 1
        self._zipfian = ZipfianGenerator(
            0, self.ITEM_COUNT - 1, ZIPFIAN_CONSTANT, zetan=self.ZETAN, rng=rng
        )

    def next_value(self) -> int:
        rank = self._zipfian.next_value()
        return self._remember(self._lower + fnv_hash64(rank) % self._item_count)


class SkewedLatestGenerator(NumberGenerator):
    """
    Favour the most recently published index of ``basis``.

    The offset back from ``basis.last_value()`` is Zipfian, so the newest
    records are the most popular and popularity decays with age.
    """

    def __init__(self, basis: CounterGenerator, rng: Optional[random.Random] = None) -> None:
        self._basis = basis
        self._zipfian = ZipfianGenerator(0, max(basis.last_value(), 1) - 1, rng=rng)

    def next_value(self) -> int:
        latest = self._basis.last_value()
        if latest < 1:
            return self._remember(max(latest, 0))
        return self._remember(latest - self._zipfian.next_long(latest))


class HotspotGenerator(NumberGenerator):
    """
    Split ``[lower, upper]`` into a hot set and a cold set.

    ``hot_op_fraction`` of draws fall uniformly within the first
    ``hot_set_fraction`` of the range; the rest fall uniformly in the
    remainder.
    """

    def __init__(
        self,
        lower: int,
        upper: int,
        hot_set_fraction: float,
        hot_op_fraction: float,
        rng: Optional[random.Random] = None,
    ) -> None:
        if upper < lower:
            raise ValueError(f"HotspotGenerator requires lower <= upper, got {lower}..{upper}")
        if not 0.0 <= hot_set_fraction <= 1.0:
            raise ValueError(f"Hot set fraction must be within [0, 1], got {hot_set_fraction}")
        if not 0.0 <= hot_op_fraction <= 1.0:
            raise ValueError(f"Hot operation fraction must be within [0, 1], got {hot_op_fraction}")
        interval = upper - lower + 1
        self._lower = lower
        self._hot_interval = int(interval * hot_set_fraction)
        self._cold_interval = interval - self._hot_interval
        self._hot_op_fraction = hot_op_fraction
        self._rng = rng or random.Random()

    def next_value(self) -> int:
        hot = self._hot_interval > 0 and (
            self._cold_interval == 0 or self._rng.random() < self._hot_op_fraction
        )
        if hot:
            value = self._lower + self._rng.randrange(self._hot_interval)
        else:
            value = self._lower + self._hot_interval + self._rng.randrange(self._cold_interval)
        return self._remember(value)


class ExponentialGenerator(NumberGenerator):
    """
    Exponentially distributed non-negative offsets.

    ``percentile`` percent of draws fall below ``value_range``.
    """

    def __init__(
        self, percentile: float, value_range: float, rng: Optional[random.Random] = None
    ) -> None:
        if not 0.0 < percentile < 100.0:
            raise ValueError(f"Exponential percentile must be within (0, 100), got {percentile}")
        if value_range <= 0:
            raise ValueError(f"Exponential range must be positive, got {value_range}")
        self._gamma = -math.log(1.0 - percentile / 100.0) / value_range
        self._rng = rng or random.Random()

    def next_value(self) -> int:
        u = 1.0 - self._rng.random()  # (0, 1]
        return self._remember(int(-math.log(u) / self._gamma))


class HistogramGenerator(NumberGenerator):
    """
    Draw sizes from an empirical histogram.

    Bucket ``i`` holding ``count`` observations yields ``(i + 1) * block_size``
    with probability proportional to ``count``.
    """

    def __init__(
        self, buckets: Sequence[int], block_size: int = 1, rng: Optional[random.Random] = None
    ) -> None:
        self._buckets = list(buckets)
        self._block_size = block_size
        self._area = sum(self._buckets)
        if self._area <= 0:
            raise ValueError("Histogram must contain at least one observation")
        self._rng = rng or random.Random()

    @classmethod
    def from_file(cls, path: Path | str, rng: Optional[random.Random] = None) -> HistogramGenerator:
        """
        Load a histogram file.

        The first line is ``BlockSize <n>``; every following non-empty line is
        ``<bucket> <count>`` (tab or space separated).
        """
        lines = [line.split() for line in Path(path).read_text(encoding="utf-8").splitlines()]
        lines = [parts for parts in lines if parts]
        if not lines or lines[0][0] != "BlockSize" or len(lines[0]) != 2:
            raise ValueError(f"First line of histogram {path} must be 'BlockSize <n>'")
        block_size = int(lines[0][1])
        entries = [(int(bucket), int(count)) for bucket, count in lines[1:]]
        size = max((bucket for bucket, _ in entries), default=-1) + 1
        buckets = [0] * size
        for bucket, count in entries:
            buckets[bucket] = count
        return cls(buckets, block_size=block_size, rng=rng)

    def next_value(self) -> int:
        number = self._rng.randrange(self._area)
        for i, count in enumerate(self._buckets[:-1]):
            number -= count
            if number < 0:
                return self._remember((i + 1) * self._block_size)
        return self._remember(len(self._buckets) * self._block_size)


class DiscreteGenerator(Generic[T]):
    """Pick one of a fixed set of labels with probability proportional to its weight."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._values: List[Tuple[float, T]] = []
        self._total = 0.0
        self._rng = rng or random.Random()

    def add_value(self, weight: float, value: T) -> None:
        if weight <= 0:
            raise ValueError(f"Weight for {value!r} must be positive, got {weight}")
        self._values.append((weight, value))
        self._total += weight

    @property
    def values(self) -> List[Tuple[float, T]]:
        return list(self._values)

    def next_value(self) -> Optional[T]:
        if not self._values:
            return None
        point = self._rng.random() * self._total
        for weight, value in self._values:
            if point < weight:
                return value
            point -= weight
        return self._values[-1][1]


__all__ = [
    "ConstantGenerator",
    "DiscreteGenerator",
    "ExponentialGenerator",
    "HistogramGenerator",
    "HotspotGenerator",
    "ScrambledZipfianGenerator",
    "SkewedLatestGenerator",
    "UniformGenerator",
    "ZIPFIAN_CONSTANT",
    "ZipfianGenerator",
]
