"""
Pytest configuration for the GDPR workload benchmark.

Provides fixtures for:
- Workload settings built from benchmark property names
- Seeded random sources and shared measurements
- In-memory backend
- Database connection management for integration tests
"""

from __future__ import annotations

import os
import random
from typing import Any, Callable, Generator

import psycopg
import pytest

from gdprbench.backends.memory import MemoryBackend
from gdprbench.config import Settings, WorkloadSettings, get_settings
from gdprbench.measurements import Measurements

DEFAULT_SEED = 1234


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep GDPR_* variables and cached settings from leaking between tests."""
    for name in list(os.environ):
        if name.startswith("GDPR_"):
            monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def make_settings() -> Callable[..., WorkloadSettings]:
    """
    Factory for workload settings from property names.

    Defaults to a small read-only table with the one-shot startup calls off,
    so tests only see the calls they configure.
    """

    def _make(**properties: Any) -> WorkloadSettings:
        values: dict[str, Any] = {
            "recordcount": 100,
            "operationcount": 100,
            "fieldlength": 16,
            "readlog": False,
            "checkcompliance": False,
        }
        values.update(properties)
        return WorkloadSettings(**values)

    return _make


@pytest.fixture
def rng() -> random.Random:
    return random.Random(DEFAULT_SEED)


@pytest.fixture
def measurements() -> Measurements:
    return Measurements()


@pytest.fixture
def memory_backend() -> Generator[MemoryBackend, None, None]:
    backend = MemoryBackend()
    yield backend
    backend.close()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        DB_HOST=os.getenv("DB_HOST", "localhost"),
        DB_PORT=int(os.getenv("DB_PORT", "5432")),
        DB_USER=os.getenv("DB_USER", "postgres"),
        DB_PASSWORD=os.getenv("DB_PASSWORD", "postgres"),
        DB_NAME=os.getenv("DB_NAME", "gdprbench"),
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return test_settings.dsn


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            conn.execute("SELECT 1;").fetchone()
        return True
    except psycopg.Error:
        return False
