from time import sleep

import pytest

from gdprbench import config
from gdprbench.backends import available_backends, create_backend
from gdprbench.backends.memory import MemoryBackend
from gdprbench.utils import profiler
from gdprbench.workload import available_presets


def test_get_settings_defaults():
    settings = config.get_settings()
    assert settings.db_host == "localhost"
    assert settings.db_port == 5432
    assert settings.db_user == "postgres"
    assert settings.db_name == "gdprbench"
    assert settings.benchmark_threads > 0
    assert settings.dsn.startswith("postgresql://")


def test_profile_block_measures_time():
    with profiler.profile_block("sleep") as stats:
        sleep(0.05)
    assert stats.duration_seconds >= 0.05
    # cpu_percent stays None when the sampler never got a reading
    if stats.cpu_percent is not None:
        assert isinstance(stats.cpu_percent, float)
    assert stats.to_dict()["label"] == "sleep"


def test_available_backends_contains_known_entries():
    names = available_backends()
    assert "memory" in names
    assert "postgres" in names
    assert isinstance(create_backend("memory"), MemoryBackend)


def test_unknown_backend_raises():
    with pytest.raises(ValueError):
        create_backend("cassandra")


def test_available_presets_cover_every_actor():
    assert available_presets() == ["controller", "customer", "processor", "regulator"]
