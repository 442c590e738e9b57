"""
Backends package for the GDPR workload benchmark.

Exports the capability interface, the bundled adapters and the measuring
wrapper. `create_backend` resolves a backend by name for the CLI.
"""

from __future__ import annotations

from typing import Callable, Dict, List

from gdprbench.backends.abstract import AbstractBackend, Backend, Record
from gdprbench.backends.measured import MeasuredBackend
from gdprbench.backends.memory import MemoryBackend


def _postgres() -> Backend:
    from gdprbench.backends.postgres import PostgresBackend

    return PostgresBackend()


def _backend_factories() -> Dict[str, Callable[[], Backend]]:
    """Registry of available backends."""
    return {
        "memory": MemoryBackend,
        "postgres": _postgres,
    }


def available_backends() -> List[str]:
    """List available backend names."""
    return sorted(_backend_factories())


def create_backend(name: str) -> Backend:
    factories = _backend_factories()
    if name not in factories:
        raise ValueError(f"Unknown backend '{name}'. Available: {', '.join(factories)}")
    return factories[name]()


__all__ = [
    "AbstractBackend",
    "Backend",
    "MeasuredBackend",
    "MemoryBackend",
    "Record",
    "available_backends",
    "create_backend",
]
