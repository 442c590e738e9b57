"""Built-in GDPR actor workloads: controller, customer, processor and regulator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from gdprbench.errors import WorkloadConfigError


@dataclass(frozen=True)
class WorkloadPreset:
    """An actor's operation mix, expressed as workload properties."""

    name: str
    description: str
    properties: Dict[str, str] = field(default_factory=dict)


_NO_MIX = {
    "readproportion": "0",
    "updateproportion": "0",
    "insertproportion": "0",
    "deleteproportion": "0",
    "scanproportion": "0",
    "readmodifywriteproportion": "0",
}


PRESETS: Dict[str, WorkloadPreset] = {
    "controller": WorkloadPreset(
        name="controller",
        description="Data controller: 25% insert, 50% metadata updates, 25% metadata deletes",
        properties={
            **_NO_MIX,
            "insertproportion": "0.25",
            "updatemetapurposeproportion": "0.25",
            "updatemetauserproportion": "0.25",
            "deletemetapurposeproportion": "0.125",
            "deletemetauserproportion": "0.125",
            "requestdistribution": "uniform",
            "readlog": "false",
            "checkcompliance": "false",
        },
    ),
    "customer": WorkloadPreset(
        name="customer",
        description="Data subject: 40% read, 40% update, 20% delete, all by key",
        properties={
            **_NO_MIX,
            "readproportion": "0.4",
            "updateproportion": "0.4",
            "deleteproportion": "0.2",
            "requestdistribution": "zipfian",
            "readlog": "false",
            "checkcompliance": "false",
        },
    ),
    "processor": WorkloadPreset(
        name="processor",
        description="Data processor: 80% read by key, 20% read by purpose",
        properties={
            **_NO_MIX,
            "readproportion": "0.8",
            "readmetapurposeproportion": "0.2",
            "requestdistribution": "zipfian",
            "readlog": "false",
            "checkcompliance": "false",
        },
    ),
    "regulator": WorkloadPreset(
        name="regulator",
        description="Regulator: reads by user, plus log replay and TTL compliance check",
        properties={
            **_NO_MIX,
            "readmetauserproportion": "1.0",
            "requestdistribution": "uniform",
            "readlog": "true",
            "checkcompliance": "true",
        },
    ),
}


def available_presets() -> List[str]:
    """List preset names."""
    return sorted(PRESETS)


def get_preset(name: str) -> WorkloadPreset:
    if name not in PRESETS:
        raise WorkloadConfigError(f"Unknown preset '{name}'. Available: {', '.join(available_presets())}")
    return PRESETS[name]


__all__ = ["PRESETS", "WorkloadPreset", "available_presets", "get_preset"]
