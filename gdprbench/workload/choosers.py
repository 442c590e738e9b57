"""
Distribution-driven choosers: which record, which field, how many records.

The factories here translate workload settings into generator instances and
turn generator construction problems into `WorkloadConfigError` so that a
bad configuration stops the run before any operation executes.
"""

from __future__ import annotations

import random
from typing import Optional

from gdprbench.config import WorkloadSettings
from gdprbench.domain.models import METADATA_FIELD_COUNT, MetadataField
from gdprbench.errors import WorkloadConfigError
from gdprbench.generators.base import NumberGenerator
from gdprbench.generators.counters import SequentialGenerator
from gdprbench.generators.distributions import (
    ConstantGenerator,
    ExponentialGenerator,
    HistogramGenerator,
    HotspotGenerator,
    ScrambledZipfianGenerator,
    SkewedLatestGenerator,
    UniformGenerator,
    ZipfianGenerator,
)
from gdprbench.workload.keyspace import KeySpace


def build_field_length_generator(
    settings: WorkloadSettings, rng: Optional[random.Random] = None
) -> NumberGenerator:
    distribution = settings.field_length_distribution
    if distribution == "constant":
        return ConstantGenerator(settings.field_length)
    if distribution == "uniform":
        return UniformGenerator(settings.min_field_length, settings.field_length, rng=rng)
    if distribution == "zipfian":
        return ZipfianGenerator(settings.min_field_length, settings.field_length, rng=rng)
    if distribution == "histogram":
        try:
            return HistogramGenerator.from_file(settings.field_length_histogram, rng=rng)
        except (OSError, ValueError) as exc:
            raise WorkloadConfigError(
                f"Couldn't read field length histogram file: {settings.field_length_histogram}"
            ) from exc
    raise WorkloadConfigError(f'Unknown field length distribution "{distribution}"')


def build_scan_length_generator(
    settings: WorkloadSettings, rng: Optional[random.Random] = None
) -> NumberGenerator:
    distribution = settings.scan_length_distribution
    if distribution == "uniform":
        return UniformGenerator(settings.min_scan_length, settings.max_scan_length, rng=rng)
    if distribution == "zipfian":
        return ZipfianGenerator(settings.min_scan_length, settings.max_scan_length, rng=rng)
    raise WorkloadConfigError(f'Distribution "{distribution}" not allowed for scan length')


def build_field_chooser(
    settings: WorkloadSettings, rng: Optional[random.Random] = None
) -> NumberGenerator:
    return UniformGenerator(0, settings.field_count - 1, rng=rng)


def build_metadata_chooser(rng: Optional[random.Random] = None) -> NumberGenerator:
    """Pick a metadata position other than purpose to rewrite in meta updates."""
    return UniformGenerator(MetadataField.TTL.value, METADATA_FIELD_COUNT - 1, rng=rng)


def build_request_generator(
    settings: WorkloadSettings, keyspace: KeySpace, rng: Optional[random.Random] = None
) -> NumberGenerator:
    """
    Generator behind the key chooser for ``requestdistribution``.

    The zipfian key space is sized for the records expected to be inserted
    during the run, so key popularity stays stable as the table grows; draws
    beyond the watermark are rejected by `KeyChooser`.
    """
    distribution = settings.request_distribution
    lower = settings.insert_start
    upper = settings.insert_start + settings.effective_insert_count - 1
    try:
        if distribution == "uniform":
            return UniformGenerator(lower, upper, rng=rng)
        if distribution == "sequential":
            return SequentialGenerator(lower, upper)
        if distribution == "zipfian":
            expected_new_keys = int(settings.operation_count * settings.insert_proportion * 2.0)
            return ScrambledZipfianGenerator(lower, upper + 1 + expected_new_keys, rng=rng)
        if distribution == "latest":
            return SkewedLatestGenerator(keyspace.transaction_sequence, rng=rng)
        if distribution == "hotspot":
            return HotspotGenerator(
                lower,
                upper,
                settings.hotspot_data_fraction,
                settings.hotspot_opn_fraction,
                rng=rng,
            )
        if distribution == "exponential":
            return ExponentialGenerator(
                settings.exponential_percentile,
                settings.effective_record_count * settings.exponential_frac,
                rng=rng,
            )
    except ValueError as exc:
        raise WorkloadConfigError(f"Invalid {distribution} request distribution: {exc}") from exc
    raise WorkloadConfigError(f'Unknown request distribution "{distribution}"')


class KeyChooser:
    """
    Picks the record index a transaction targets.

    Only indices at or below the key space watermark are returned. Offset
    generators (exponential) count back from the watermark and are redrawn
    while the result is negative; every other generator is redrawn while its
    draw lies above the watermark.
    """

    def __init__(self, generator: NumberGenerator, keyspace: KeySpace, from_latest: bool) -> None:
        self._generator = generator
        self._keyspace = keyspace
        self._from_latest = from_latest

    @classmethod
    def from_settings(
        cls, settings: WorkloadSettings, keyspace: KeySpace, rng: Optional[random.Random] = None
    ) -> KeyChooser:
        generator = build_request_generator(settings, keyspace, rng=rng)
        return cls(generator, keyspace, from_latest=isinstance(generator, ExponentialGenerator))

    def next_index(self) -> int:
        if self._from_latest:
            while True:
                index = self._keyspace.last_acknowledged() - self._generator.next_value()
                if index >= 0:
                    return index
        while True:
            index = self._generator.next_value()
            if index <= self._keyspace.last_acknowledged():
                return index


__all__ = [
    "KeyChooser",
    "build_field_chooser",
    "build_field_length_generator",
    "build_metadata_chooser",
    "build_request_generator",
    "build_scan_length_generator",
]
