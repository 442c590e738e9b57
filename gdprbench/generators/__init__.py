"""
Generators package for the GDPR workload benchmark.

Re-exports the counters and random distributions the workload engine draws
keys, field lengths, scan lengths and operations from.
"""

from gdprbench.generators.base import NumberGenerator
from gdprbench.generators.counters import (
    AcknowledgedCounterGenerator,
    CounterGenerator,
    SequentialGenerator,
)
from gdprbench.generators.distributions import (
    ConstantGenerator,
    DiscreteGenerator,
    ExponentialGenerator,
    HistogramGenerator,
    HotspotGenerator,
    ScrambledZipfianGenerator,
    SkewedLatestGenerator,
    UniformGenerator,
    ZipfianGenerator,
)

__all__ = [
    "AcknowledgedCounterGenerator",
    "ConstantGenerator",
    "CounterGenerator",
    "DiscreteGenerator",
    "ExponentialGenerator",
    "HistogramGenerator",
    "HotspotGenerator",
    "NumberGenerator",
    "ScrambledZipfianGenerator",
    "SequentialGenerator",
    "SkewedLatestGenerator",
    "UniformGenerator",
    "ZipfianGenerator",
]
