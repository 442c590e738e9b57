"""Common interface for number generators."""

from __future__ import annotations

import abc
from typing import Optional


class NumberGenerator(abc.ABC):
    """
    Draws a stream of integers from some distribution.

    Implementations must be safe to share between worker threads. The most
    recently drawn value is kept so callers can inspect it via `last_value`.
    """

    _last: Optional[int] = None

    @abc.abstractmethod
    def next_value(self) -> int:
        """Draw the next value."""
        raise NotImplementedError

    def last_value(self) -> Optional[int]:
        """Return the value most recently drawn, or None before the first draw."""
        return self._last

    def _remember(self, value: int) -> int:
        self._last = value
        return value


__all__ = ["NumberGenerator"]
