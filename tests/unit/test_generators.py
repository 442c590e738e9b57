from __future__ import annotations

import random
from collections import Counter
from pathlib import Path

import pytest

from gdprbench.generators import (
    AcknowledgedCounterGenerator,
    ConstantGenerator,
    CounterGenerator,
    DiscreteGenerator,
    ExponentialGenerator,
    HistogramGenerator,
    HotspotGenerator,
    ScrambledZipfianGenerator,
    SequentialGenerator,
    SkewedLatestGenerator,
    UniformGenerator,
    ZipfianGenerator,
)
from gdprbench.utils.hashing import fnv1a_64, java_string_hash

SAMPLES = 5_000


def test_java_string_hash_matches_known_values() -> None:
    assert java_string_hash("") == 0
    assert java_string_hash("a") == 97
    assert java_string_hash("hello") == 99162322
    # Overflows into the negative range like a signed 32-bit int.
    assert java_string_hash("polygenelubricants") == -2147483648


def test_fnv1a_64_of_zero_is_stable() -> None:
    assert fnv1a_64(0) == fnv1a_64(0)
    assert fnv1a_64(0) != fnv1a_64(1)
    assert 0 <= fnv1a_64(2**70) < 2**64


def test_constant_and_counter() -> None:
    assert ConstantGenerator(5).next_value() == 5
    counter = CounterGenerator(10)
    assert [counter.next_value() for _ in range(3)] == [10, 11, 12]
    assert counter.last_value() == 12


def test_acknowledged_counter_ignores_stale_acknowledgements() -> None:
    counter = AcknowledgedCounterGenerator(0)
    counter.acknowledge(counter.next_value())
    counter.acknowledge(0)
    counter.acknowledge(-3)
    assert counter.last_value() == 0
    assert counter.pending_count() == 0


def test_uniform_stays_within_inclusive_bounds(rng: random.Random) -> None:
    generator = UniformGenerator(3, 6, rng=rng)
    seen = {generator.next_value() for _ in range(SAMPLES)}
    assert seen == {3, 4, 5, 6}
    assert generator.last_value() in seen


def test_zipfian_favours_lower_bound(rng: random.Random) -> None:
    generator = ZipfianGenerator(0, 99, rng=rng)
    counts = Counter(generator.next_value() for _ in range(SAMPLES))
    assert min(counts) >= 0 and max(counts) <= 99
    assert counts[0] == max(counts.values())


def test_zipfian_next_long_grows_item_count(rng: random.Random) -> None:
    generator = ZipfianGenerator(0, 9, rng=rng)
    values = [generator.next_long(1000) for _ in range(SAMPLES)]
    assert max(values) < 1000
    assert max(values) > 9


def test_scrambled_zipfian_stays_in_range(rng: random.Random) -> None:
    generator = ScrambledZipfianGenerator(100, 199, rng=rng)
    values = [generator.next_value() for _ in range(SAMPLES)]
    assert all(100 <= v <= 199 for v in values)


def test_skewed_latest_never_exceeds_basis(rng: random.Random) -> None:
    basis = AcknowledgedCounterGenerator(50)
    generator = SkewedLatestGenerator(basis, rng=rng)
    values = [generator.next_value() for _ in range(SAMPLES)]
    assert all(0 <= v <= 49 for v in values)
    assert Counter(values).most_common(1)[0][0] == 49


def test_hotspot_sends_most_draws_to_hot_set(rng: random.Random) -> None:
    generator = HotspotGenerator(0, 99, hot_set_fraction=0.2, hot_op_fraction=0.8, rng=rng)
    values = [generator.next_value() for _ in range(SAMPLES)]
    hot = sum(1 for v in values if v < 20)
    assert all(0 <= v <= 99 for v in values)
    assert 0.75 < hot / SAMPLES < 0.85


def test_exponential_percentile_bound(rng: random.Random) -> None:
    generator = ExponentialGenerator(95.0, 100.0, rng=rng)
    values = [generator.next_value() for _ in range(SAMPLES)]
    below = sum(1 for v in values if v < 100)
    assert min(values) >= 0
    assert 0.93 < below / SAMPLES < 0.97


def test_sequential_wraps_around() -> None:
    generator = SequentialGenerator(5, 7)
    assert [generator.next_value() for _ in range(5)] == [5, 6, 7, 5, 6]


def test_histogram_from_file(tmp_path: Path, rng: random.Random) -> None:
    path = tmp_path / "hist.txt"
    path.write_text("BlockSize\t10\n0\t0\n1\t5\n2\t5\n", encoding="utf-8")
    generator = HistogramGenerator.from_file(path, rng=rng)
    assert {generator.next_value() for _ in range(500)} == {20, 30}


def test_histogram_rejects_missing_header(tmp_path: Path) -> None:
    path = tmp_path / "hist.txt"
    path.write_text("0\t1\n", encoding="utf-8")
    with pytest.raises(ValueError):
        HistogramGenerator.from_file(path)


def test_discrete_rejects_non_positive_weight() -> None:
    generator: DiscreteGenerator[str] = DiscreteGenerator()
    with pytest.raises(ValueError):
        generator.add_value(0.0, "never")
    assert generator.next_value() is None


@pytest.mark.parametrize(
    "factory",
    [
        lambda: UniformGenerator(5, 4),
        lambda: ZipfianGenerator(5, 4),
        lambda: HotspotGenerator(0, 10, 1.5, 0.5),
        lambda: ExponentialGenerator(100.0, 10.0),
        lambda: ExponentialGenerator(95.0, 0.0),
    ],
)
def test_invalid_parameters_raise_value_error(factory) -> None:
    with pytest.raises(ValueError):
        factory()
