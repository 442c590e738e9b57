"""
Workload lifecycle contract.

A workload is constructed from its settings (``initialize``) and then driven
by an external loop: many ``load_insert`` calls during the load phase, many
``transact`` calls during the transaction phase. The workload owns no threads;
concurrency comes from the driver, which may call both methods from any
number of threads at once.
"""

from __future__ import annotations

import abc
from typing import Protocol, runtime_checkable

from gdprbench.backends.abstract import Backend
from gdprbench.config import WorkloadSettings


@runtime_checkable
class Workload(Protocol):
    """
    Common interface every workload implements.

    Attributes
    ----------
    name : str
        A short machine-friendly identifier.
    settings : WorkloadSettings
        The settings the workload was initialized with.
    """

    name: str
    settings: WorkloadSettings

    def initialize(self, settings: WorkloadSettings) -> None:
        """
        Build all per-run state from ``settings``.

        Raises
        ------
        WorkloadConfigError
            If the settings cannot produce a runnable workload.
        """
        ...

    def load_insert(self, backend: Backend) -> bool:
        """
        Insert the next record of the load phase.

        Returns
        -------
        bool
            False if the record could not be inserted. Load correctness
            depends on this, so the caller decides whether to abort.
        """
        ...

    def transact(self, backend: Backend) -> bool:
        """
        Execute one transaction-phase operation.

        Returns
        -------
        bool
            False only when no operation could be drawn. Failed operations
            are counted in the measurements, not reported here.
        """
        ...

    def request_stop(self) -> None:
        """Interrupt any pending insert backoff; called when the run is stopping."""
        ...


class AbstractWorkload(abc.ABC):
    """
    Optional ABC helper for class-based implementations.

    Subclasses set `name` and implement the three lifecycle methods.
    """

    name: str

    @abc.abstractmethod
    def initialize(self, settings: WorkloadSettings) -> None:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def load_insert(self, backend: Backend) -> bool:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def transact(self, backend: Backend) -> bool:  # pragma: no cover - interface only
        raise NotImplementedError

    def request_stop(self) -> None:
        """No-op unless the workload has interruptible waits."""


__all__ = ["AbstractWorkload", "Workload"]
