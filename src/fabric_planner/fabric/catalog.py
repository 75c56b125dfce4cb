"""
Switch capacity catalog.

The calculator needs a handful of physical facts per switch role:
how many ports a leaf has, how many downlinks a spine offers toward leaves,
the per port bandwidth of each, and how many leaves a spine can fan out to.

The catalog is an immutable value passed into every calculation.
Tests and callers with different hardware build their own SwitchCatalog
instead of patching module state.

Units
bandwidth_per_port is in Mbps. The topology breakdown divides by 1000
to report Gbps.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class SwitchCapacity:
    """
    Physical capacity of one switch model.

    ports:
        Total physical ports.

    bandwidth_per_port:
        Per port bandwidth in Mbps.

    uplinks:
        Leaf only. Ports reserved for uplinks toward spines.

    downlinks:
        Spine only. Ports available toward leaves.

    max_endpoints:
        Leaf only. Endpoint ports a single leaf can host.

    max_leaves:
        Spine only. Maximum leaf fan out.
    """

    model: str
    ports: int
    bandwidth_per_port: int
    uplinks: int = 0
    downlinks: int = 0
    max_endpoints: int = 0
    max_leaves: int = 0


@dataclass(frozen=True)
class SwitchCatalog:
    """Capacity entries for the leaf and spine roles."""

    leaf: SwitchCapacity
    spine: SwitchCapacity

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> SwitchCatalog:
        """
        Build a catalog from a plain mapping.

        Expected shape:
            {"leaf": {"model": ..., "ports": ..., ...}, "spine": {...}}

        We raise ValueError for shapes that would make the sizing math
        meaningless, such as a leaf whose uplinks consume every port.
        """

        entries: dict[str, SwitchCapacity] = {}
        for role in ("leaf", "spine"):
            data = raw.get(role)
            if not isinstance(data, dict):
                raise ValueError(f"catalog.{role} must be a dict")
            try:
                entry = SwitchCapacity(**data)
            except TypeError as exc:
                raise ValueError(f"catalog.{role} has unexpected fields: {exc}") from exc
            if entry.ports <= 0:
                raise ValueError(f"catalog.{role}.ports must be positive, got {entry.ports}")
            if entry.bandwidth_per_port <= 0:
                raise ValueError(
                    f"catalog.{role}.bandwidth_per_port must be positive, got {entry.bandwidth_per_port}"
                )
            entries[role] = entry

        if entries["leaf"].uplinks >= entries["leaf"].ports:
            raise ValueError("catalog.leaf.uplinks must leave at least one endpoint port")
        if entries["spine"].downlinks <= 0:
            raise ValueError("catalog.spine.downlinks must be positive")

        return cls(leaf=entries["leaf"], spine=entries["spine"])


DS2000 = SwitchCapacity(
    model="DS2000",
    ports=48,
    bandwidth_per_port=1000,
    uplinks=4,
    max_endpoints=48,
)

DS3000 = SwitchCapacity(
    model="DS3000",
    ports=64,
    bandwidth_per_port=10000,
    downlinks=32,
    max_leaves=32,
)

DEFAULT_CATALOG = SwitchCatalog(leaf=DS2000, spine=DS3000)
