"""
Weighted operation mix selector.
"""

from __future__ import annotations

import random
from typing import Dict, List, Mapping, Optional, Tuple

from gdprbench.config import WorkloadSettings
from gdprbench.domain.models import OperationKind
from gdprbench.errors import WorkloadConfigError
from gdprbench.generators.distributions import DiscreteGenerator


class OperationMix:
    """
    Draws operation kinds in proportion to their configured weights.

    Kinds with a weight of zero are left out entirely. Weights need not sum
    to one. The mix is immutable once built.
    """

    def __init__(
        self, weights: Mapping[OperationKind, float], rng: Optional[random.Random] = None
    ) -> None:
        self._chooser: DiscreteGenerator[OperationKind] = DiscreteGenerator(rng=rng)
        for kind in OperationKind:
            weight = weights.get(kind, 0.0)
            if weight > 0:
                self._chooser.add_value(weight, kind)

    @classmethod
    def from_settings(
        cls, settings: WorkloadSettings, rng: Optional[random.Random] = None
    ) -> OperationMix:
        """
        Build the mix from the ``*proportion`` settings.

        Raises
        ------
        WorkloadConfigError
            If no operation kind has a positive weight.
        """
        weights = {OperationKind(name): value for name, value in settings.proportions().items()}
        mix = cls(weights, rng=rng)
        if mix.is_empty:
            raise WorkloadConfigError("Operation mix is empty: every operation proportion is zero.")
        return mix

    @property
    def is_empty(self) -> bool:
        return not self._chooser.values

    @property
    def entries(self) -> List[Tuple[OperationKind, float]]:
        return [(kind, weight) for weight, kind in self._chooser.values]

    def weights(self) -> Dict[OperationKind, float]:
        return dict(self.entries)

    def next(self) -> Optional[OperationKind]:
        """Draw the next kind, or None if the mix is empty."""
        return self._chooser.next_value()


__all__ = ["OperationMix"]
