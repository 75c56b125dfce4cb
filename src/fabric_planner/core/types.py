"""
Core types.

This file defines the shared data structures used across the planner.

Important design choice
Every value here is immutable. A fabric spec goes in, a fresh result comes out,
and nothing is shared between calls. Collections are tuples for that reason.

The fabric spec is a union of exactly two shapes:
MultiClassFabricSpec describes one or more leaf classes.
LegacyFabricSpec describes a single implicit class with flat values.
Having no third shape means "both" and "neither" cannot be expressed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Dict, Optional, Tuple, Union


class Speed(StrEnum):
    """Standard port speed tiers offered by border hardware."""

    g10 = "10G"
    g25 = "25G"
    g100 = "100G"
    g400 = "400G"


STANDARD_SPEEDS: Tuple[Speed, ...] = (Speed.g10, Speed.g25, Speed.g100, Speed.g400)


def speed_to_gbps(speed: Speed | str) -> int:
    """Return the numeric Gbps value of a speed tier, for example 100 for 100G."""
    return int(str(speed).rstrip("Gg"))


class RedundancyLevel(StrEnum):
    none = "none"
    partial = "partial"
    full = "full"


class LinkMode(StrEnum):
    """
    How an external link is sized.

    target_bandwidth
      The user states a bandwidth and the allocator picks ports.

    explicit_ports
      The user lists speed and count pairs directly.
    """

    target_bandwidth = "target-bandwidth"
    explicit_ports = "explicit-ports"


class LinkCategory(StrEnum):
    external = "vpc.external"
    static_external = "vpc.staticExternal"


class OptimizeFor(StrEnum):
    """What the advanced bandwidth conversion ranks candidate allocations by."""

    efficiency = "efficiency"
    simplicity = "simplicity"
    cost = "cost"


class Severity(StrEnum):
    ok = "ok"
    warning = "warning"
    error = "error"


# ---------------------------
# FABRIC SPEC
# ---------------------------


@dataclass(frozen=True)
class EndpointProfile:
    """
    Endpoint demand attached to a leaf class.

    ports_per_endpoint
      Leaf ports consumed by one logical endpoint.

    count
      Number of endpoints of this profile.

    redundancy
      When True every endpoint also consumes a mirrored backup port,
      so the effective port demand of the profile doubles.
    """

    name: str
    ports_per_endpoint: int = 1
    count: int = 1
    redundancy: bool = False

    @property
    def port_demand(self) -> int:
        return self.count * self.ports_per_endpoint


@dataclass(frozen=True)
class LeafClass:
    """
    A group of identical leaves.

    count multiplies every profile in the class.
    """

    id: str
    name: str
    uplinks_per_leaf: int
    endpoint_profiles: Tuple[EndpointProfile, ...]
    count: int = 1

    def __post_init__(self) -> None:
        if self.count < 1:
            raise ValueError(f"leaf class '{self.id}' count must be at least 1, got {self.count}")


@dataclass(frozen=True)
class MultiClassFabricSpec:
    name: str
    leaf_classes: Tuple[LeafClass, ...]

    def __post_init__(self) -> None:
        if not self.leaf_classes:
            raise ValueError("multi class fabric spec requires at least one leaf class")


@dataclass(frozen=True)
class LegacyFabricSpec:
    """Single implicit leaf class described by flat values."""

    name: str
    uplinks_per_leaf: int
    endpoint_profile: EndpointProfile
    endpoint_count: int


FabricSpec = Union[MultiClassFabricSpec, LegacyFabricSpec]


# ---------------------------
# DERIVED TOPOLOGY
# ---------------------------


@dataclass(frozen=True)
class TopologySizing:
    """
    Partial result handed to topology validation.

    Fields left as None are not checked.
    """

    leaves_needed: Optional[int] = None
    spines_needed: Optional[int] = None
    total_capacity: Optional[float] = None
    oversubscription_ratio: Optional[float] = None


@dataclass(frozen=True)
class CapacityBreakdown:
    endpoint_ports: float
    uplink_ports: float
    available_endpoint_ports: float
    total_bandwidth_gbps: float


@dataclass(frozen=True)
class UtilizationBreakdown:
    """
    Utilization percentages.

    bandwidth_pct is a fixed placeholder until a traffic model exists.
    """

    leaf_port_pct: float
    spine_port_pct: float
    bandwidth_pct: float


@dataclass(frozen=True)
class RedundancyAssessment:
    has_redundant_spines: bool
    has_redundant_uplinks: bool
    level: RedundancyLevel


@dataclass(frozen=True)
class TopologyValidation:
    """
    Topology validation findings.

    is_valid is False only when errors exist.
    Warnings never block.
    within_bandwidth_limits is always True until bandwidth checks exist.
    """

    is_valid: bool
    within_port_limits: bool
    within_bandwidth_limits: bool
    meets_redundancy_requirements: bool
    warnings: Tuple[str, ...] = ()
    errors: Tuple[str, ...] = ()


@dataclass(frozen=True)
class DerivedTopology:
    leaves_needed: int
    spines_needed: int
    total_capacity: float
    oversubscription_ratio: float
    capacity_breakdown: CapacityBreakdown
    utilization: UtilizationBreakdown
    redundancy: RedundancyAssessment
    validation: TopologyValidation
    computed_at: datetime


@dataclass(frozen=True)
class ComputationMeta:
    algorithm_version: str
    computation_time_ms: float
    warnings: Tuple[str, ...] = ()
    errors: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TopologyComputationResult:
    fabric_spec: FabricSpec
    derived_topology: DerivedTopology
    computation_meta: ComputationMeta


# ---------------------------
# EXTERNAL LINKS
# ---------------------------


@dataclass(frozen=True)
class ExplicitPort:
    speed: Speed
    count: int


@dataclass(frozen=True)
class BreakoutMode:
    """
    One way to split a parent port.

    Example:
        a 400G port broken into 4 x 100G gives child_count 4, child_speed 100G.
    """

    child_count: int
    child_speed: Speed


@dataclass(frozen=True)
class BorderCapabilities:
    """
    What the border hardware can offer external links.

    max_ports
      Upper bound on ports any single allocation may use.

    available_speeds
      Speed tiers the hardware supports. Order breaks ties between equal speeds.

    breakout_capability
      Parent speed to breakout modes. Only the advanced conversion reads it.

    lag_support, max_ports_per_lag
      Link aggregation support.
    """

    max_ports: int
    available_speeds: Tuple[Speed, ...]
    breakout_capability: Dict[Speed, Tuple[BreakoutMode, ...]] = field(default_factory=dict)
    lag_support: bool = True
    max_ports_per_lag: Optional[int] = None


@dataclass(frozen=True)
class ExternalLink:
    """
    A connection from the border out to an external network.

    Only the payload that matches mode is meaningful:
    target_gbps and preferred_speed for target bandwidth mode,
    explicit_ports for explicit ports mode.
    """

    id: str
    name: str
    mode: LinkMode
    category: LinkCategory = LinkCategory.external
    enabled: bool = True
    description: Optional[str] = None
    target_gbps: Optional[float] = None
    preferred_speed: Optional[Speed] = None
    explicit_ports: Optional[Tuple[ExplicitPort, ...]] = None


@dataclass(frozen=True)
class ExternalLinkAllocation:
    """
    Resolved ports for one external link.

    efficiency
      Percentage of the target bandwidth achieved, capped at 100.
      Explicit links are always 100.
    """

    external_link: ExternalLink
    allocated_ports: Tuple[ExplicitPort, ...]
    total_bandwidth_gbps: float
    efficiency: int = 0
    warnings: Tuple[str, ...] = ()
    errors: Tuple[str, ...] = ()


@dataclass(frozen=True)
class DivisibilityResult:
    """
    Spread of external link ports across spines.

    valid
      False only for error severity.

    recommendations
      Nearby port totals that would divide evenly.

    evidence
      Structured counts for display or audit.
    """

    valid: bool
    severity: Severity
    messages: Tuple[str, ...]
    recommendations: Tuple[str, ...] = ()
    evidence: Dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class BreakoutRequirement:
    """
    Parent ports that must be broken out to serve an allocation.

    efficiency
      Percentage of generated child ports that are actually used.
    """

    parent_speed: Speed
    child_speed: Speed
    parent_ports: int
    child_ports_generated: int
    child_ports_used: int
    efficiency: int


@dataclass(frozen=True)
class ConversionResult:
    """
    One candidate allocation from the advanced bandwidth conversion.

    efficiency
      How closely provided bandwidth matches the target, 0 to 100.

    simplicity
      Higher means fewer distinct speeds and no breakout.

    estimated_cost
      Relative cost units, only meaningful for comparison.

    port_waste
      Child ports generated by breakout but left unused.
    """

    ports: Tuple[ExplicitPort, ...]
    efficiency: int
    simplicity: int
    estimated_cost: int
    port_waste: int = 0
    breakout_required: Tuple[BreakoutRequirement, ...] = ()
    warnings: Tuple[str, ...] = ()
