"""
Leaf and spine topology calculator.

This module sizes a two tier leaf spine fabric from a declarative fabric spec.

It answers:
- How many leaves are needed to host every endpoint port
- How many spines are needed to terminate every leaf uplink
- Total endpoint capacity and the oversubscription ratio
- Port utilization and a coarse redundancy classification

Effective uplinks per leaf
Multi class specs can mix leaves with different uplink counts, so each question
aggregates uplinks in the way that is conservative for that question:

    leaf sizing        minimum  (largest per leaf endpoint budget)
    spine sizing       maximum  (worst case fan in toward spines)
    oversubscription   average weighted by class count

These three helpers stay separate on purpose. Merging them changes results.

All math is documented for auditability and every function is pure.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone

from fabric_planner.core.errors import TopologyComputationFailed
from fabric_planner.core.types import (
    CapacityBreakdown,
    ComputationMeta,
    DerivedTopology,
    FabricSpec,
    LegacyFabricSpec,
    RedundancyAssessment,
    RedundancyLevel,
    TopologyComputationResult,
    TopologySizing,
    TopologyValidation,
    UtilizationBreakdown,
)
from fabric_planner.fabric.catalog import DEFAULT_CATALOG, SwitchCatalog
from fabric_planner.logging import get_logger

logger = get_logger(__name__)

ALGORITHM_VERSION = "1.0.0"


@dataclass(frozen=True)
class TopologyLimits:
    """
    Topology limits and thresholds.

    min_uplinks_per_leaf, max_uplinks_per_leaf
    Accepted uplink range for the quick pre flight check.

    max_endpoints
    Largest endpoint count a single fabric may carry.

    oversubscription_warning_ratio
    Ratios strictly above this value produce a warning.

    min_redundant_uplinks
    Redundant endpoints need at least this many uplinks per leaf.

    bandwidth_utilization_pct
    Reported bandwidth utilization. There is no traffic model yet.
    """

    min_uplinks_per_leaf: int = 1
    max_uplinks_per_leaf: int = 4
    max_endpoints: int = 10000
    oversubscription_warning_ratio: float = 3.0
    min_redundant_uplinks: int = 2
    bandwidth_utilization_pct: float = 50.0


DEFAULT_LIMITS = TopologyLimits()


@dataclass(frozen=True)
class QuickValidation:
    is_valid: bool
    issues: tuple[str, ...]


# ---------------------------
# SPEC AGGREGATES
# ---------------------------


def _endpoint_port_demand(spec: FabricSpec) -> tuple[int, int]:
    """
    Return (total_endpoint_ports, redundant_endpoint_ports).

    Redundant ports are counted a second time because every redundant
    endpoint consumes a mirrored backup port.
    """

    total = 0
    redundant = 0

    if isinstance(spec, LegacyFabricSpec):
        total = spec.endpoint_count * spec.endpoint_profile.ports_per_endpoint
        if spec.endpoint_profile.redundancy:
            redundant = total
        return total, redundant

    for leaf_class in spec.leaf_classes:
        for profile in leaf_class.endpoint_profiles:
            demand = profile.port_demand * leaf_class.count
            total += demand
            if profile.redundancy:
                redundant += demand

    return total, redundant


def _has_redundant_profiles(spec: FabricSpec) -> bool:
    if isinstance(spec, LegacyFabricSpec):
        return spec.endpoint_profile.redundancy
    return any(p.redundancy for lc in spec.leaf_classes for p in lc.endpoint_profiles)


def min_uplinks_per_leaf(spec: FabricSpec) -> int:
    """Smallest uplink count across classes. Used for leaf sizing."""
    if isinstance(spec, LegacyFabricSpec):
        return spec.uplinks_per_leaf
    return min(lc.uplinks_per_leaf for lc in spec.leaf_classes)


def max_uplinks_per_leaf(spec: FabricSpec) -> int:
    """Largest uplink count across classes. Used for spine sizing."""
    if isinstance(spec, LegacyFabricSpec):
        return spec.uplinks_per_leaf
    return max(lc.uplinks_per_leaf for lc in spec.leaf_classes)


def weighted_uplinks_per_leaf(spec: FabricSpec) -> float:
    """
    Uplinks per leaf averaged over leaves.

    sum(uplinks_per_leaf * count) / sum(count)
    """
    if isinstance(spec, LegacyFabricSpec):
        return spec.uplinks_per_leaf
    total_uplinks = sum(lc.uplinks_per_leaf * lc.count for lc in spec.leaf_classes)
    total_leaves = sum(lc.count for lc in spec.leaf_classes)
    return total_uplinks / total_leaves


# ---------------------------
# SIZING MATH
# ---------------------------


def calculate_leaves_needed(spec: FabricSpec, *, catalog: SwitchCatalog = DEFAULT_CATALOG) -> int:
    """
    Leaves required to host every endpoint port.

        leaves = ceil((endpoint_ports + redundant_ports) / (leaf_ports - min_uplinks))
    """
    total, redundant = _endpoint_port_demand(spec)
    available_ports_per_leaf = catalog.leaf.ports - min_uplinks_per_leaf(spec)
    return math.ceil((total + redundant) / available_ports_per_leaf)


def calculate_spines_needed(
    spec: FabricSpec,
    leaves_needed: int,
    *,
    catalog: SwitchCatalog = DEFAULT_CATALOG,
) -> int:
    """
    Spines required to terminate every leaf uplink.

        spines = ceil(leaves * max_uplinks / spine_downlinks)
    """
    total_uplinks = leaves_needed * max_uplinks_per_leaf(spec)
    return math.ceil(total_uplinks / catalog.spine.downlinks)


def calculate_total_capacity(
    leaves_needed: int,
    uplinks_per_leaf: float,
    *,
    catalog: SwitchCatalog = DEFAULT_CATALOG,
) -> float:
    """Endpoint facing bandwidth: leaves * (leaf_ports - uplinks) * leaf_port_bandwidth."""
    endpoint_capacity = leaves_needed * (catalog.leaf.ports - uplinks_per_leaf)
    return endpoint_capacity * catalog.leaf.bandwidth_per_port


def calculate_oversubscription_ratio(
    spec: FabricSpec,
    leaves_needed: int,
    *,
    catalog: SwitchCatalog = DEFAULT_CATALOG,
) -> float:
    """
    Endpoint bandwidth over uplink bandwidth.

        endpoint_bw = leaves * (leaf_ports - uplinks) * leaf_port_bw
        uplink_bw   = leaves * uplinks * spine_port_bw

    uplinks is the class weighted average. A fabric with no leaves has no
    oversubscription and reports 0.0.
    """
    if leaves_needed == 0:
        return 0.0

    uplinks = weighted_uplinks_per_leaf(spec)
    endpoint_bandwidth = leaves_needed * (catalog.leaf.ports - uplinks) * catalog.leaf.bandwidth_per_port
    uplink_bandwidth = leaves_needed * uplinks * catalog.spine.bandwidth_per_port
    return endpoint_bandwidth / uplink_bandwidth


# ---------------------------
# VALIDATION
# ---------------------------


def validate_topology(
    spec: FabricSpec,
    sizing: TopologySizing,
    *,
    catalog: SwitchCatalog = DEFAULT_CATALOG,
    limits: TopologyLimits = DEFAULT_LIMITS,
) -> TopologyValidation:
    """
    Check a sized topology against hardware limits and design rules.

    Rules
    1. Leaves above the spine fan out limit is an error.
    2. Oversubscription above the warning ratio is a warning.
    3. Redundant endpoints with fewer than the minimum uplinks on any class
       is a warning.
    """

    warnings: list[str] = []
    errors: list[str] = []

    max_leaves = catalog.spine.max_leaves
    within_port_limits = True
    if sizing.leaves_needed and sizing.leaves_needed > max_leaves:
        within_port_limits = False
        errors.append(
            f"Topology requires {sizing.leaves_needed} leaves, "
            f"exceeding {catalog.spine.model} maximum of {max_leaves}"
        )

    ratio = sizing.oversubscription_ratio
    if ratio and ratio > limits.oversubscription_warning_ratio:
        warnings.append(
            f"High oversubscription ratio: {ratio:.2f}:1 "
            f"exceeds {limits.oversubscription_warning_ratio:.2f}:1"
        )

    has_redundant = _has_redundant_profiles(spec)
    min_uplinks = min_uplinks_per_leaf(spec)
    meets_redundancy = not has_redundant or min_uplinks >= limits.min_redundant_uplinks
    if not meets_redundancy:
        warnings.append(
            f"Redundant endpoints require at least {limits.min_redundant_uplinks} uplinks "
            f"per leaf for proper failover, found {min_uplinks}"
        )

    return TopologyValidation(
        is_valid=len(errors) == 0,
        within_port_limits=within_port_limits,
        within_bandwidth_limits=True,
        meets_redundancy_requirements=meets_redundancy,
        warnings=tuple(warnings),
        errors=tuple(errors),
    )


def validate_fabric_spec_quick(
    spec: FabricSpec,
    *,
    limits: TopologyLimits = DEFAULT_LIMITS,
) -> QuickValidation:
    """
    Cheap pre flight check run before compute_topology.

    This is not full validation. It only checks uplink bounds and that the
    endpoint count is positive and within a single fabric.

    issues are human readable and name the offending value.
    """

    issues: list[str] = []
    lo, hi = limits.min_uplinks_per_leaf, limits.max_uplinks_per_leaf

    if isinstance(spec, LegacyFabricSpec):
        total_endpoints = spec.endpoint_count
        if not lo <= spec.uplinks_per_leaf <= hi:
            issues.append(
                f"Invalid uplinks per leaf {spec.uplinks_per_leaf} (must be {lo}-{hi})"
            )
    else:
        total_endpoints = 0
        for leaf_class in spec.leaf_classes:
            total_endpoints += sum(p.count for p in leaf_class.endpoint_profiles) * leaf_class.count
            if not lo <= leaf_class.uplinks_per_leaf <= hi:
                issues.append(
                    f"Invalid uplinks per leaf {leaf_class.uplinks_per_leaf} "
                    f"for class '{leaf_class.name}' (must be {lo}-{hi})"
                )

    if total_endpoints <= 0:
        issues.append("No endpoints specified")

    if total_endpoints > limits.max_endpoints:
        issues.append(
            f"Too many endpoints for single fabric: {total_endpoints} exceeds {limits.max_endpoints}"
        )

    return QuickValidation(is_valid=len(issues) == 0, issues=tuple(issues))


# ---------------------------
# ORCHESTRATION
# ---------------------------


def _classify_redundancy(spines_needed: int, uplinks_per_leaf: float) -> RedundancyAssessment:
    has_redundant_spines = spines_needed > 1
    has_redundant_uplinks = uplinks_per_leaf > 1

    if has_redundant_spines and has_redundant_uplinks:
        level = RedundancyLevel.full
    elif has_redundant_spines or has_redundant_uplinks:
        level = RedundancyLevel.partial
    else:
        level = RedundancyLevel.none

    return RedundancyAssessment(
        has_redundant_spines=has_redundant_spines,
        has_redundant_uplinks=has_redundant_uplinks,
        level=level,
    )


def _derive_topology(
    spec: FabricSpec,
    catalog: SwitchCatalog,
    limits: TopologyLimits,
) -> DerivedTopology:
    leaves_needed = calculate_leaves_needed(spec, catalog=catalog)
    spines_needed = calculate_spines_needed(spec, leaves_needed, catalog=catalog)

    uplinks = weighted_uplinks_per_leaf(spec)
    total_capacity = calculate_total_capacity(leaves_needed, uplinks, catalog=catalog)
    ratio = calculate_oversubscription_ratio(spec, leaves_needed, catalog=catalog)

    total, redundant = _endpoint_port_demand(spec)
    endpoint_ports = leaves_needed * (catalog.leaf.ports - uplinks)
    uplink_ports = leaves_needed * uplinks
    spine_downlinks = spines_needed * catalog.spine.downlinks

    breakdown = CapacityBreakdown(
        endpoint_ports=endpoint_ports,
        uplink_ports=uplink_ports,
        available_endpoint_ports=endpoint_ports - total - redundant,
        total_bandwidth_gbps=total_capacity / 1000,
    )

    utilization = UtilizationBreakdown(
        leaf_port_pct=(total + redundant) / endpoint_ports * 100 if endpoint_ports else 0.0,
        spine_port_pct=uplink_ports / spine_downlinks * 100 if spine_downlinks else 0.0,
        bandwidth_pct=limits.bandwidth_utilization_pct,
    )

    sizing = TopologySizing(
        leaves_needed=leaves_needed,
        spines_needed=spines_needed,
        total_capacity=total_capacity,
        oversubscription_ratio=ratio,
    )

    return DerivedTopology(
        leaves_needed=leaves_needed,
        spines_needed=spines_needed,
        total_capacity=total_capacity,
        oversubscription_ratio=ratio,
        capacity_breakdown=breakdown,
        utilization=utilization,
        redundancy=_classify_redundancy(spines_needed, uplinks),
        validation=validate_topology(spec, sizing, catalog=catalog, limits=limits),
        computed_at=datetime.now(timezone.utc),
    )


def compute_topology(
    spec: FabricSpec,
    *,
    catalog: SwitchCatalog = DEFAULT_CATALOG,
    limits: TopologyLimits = DEFAULT_LIMITS,
) -> TopologyComputationResult:
    """
    Compute the full derived topology for a fabric spec.

    Any unexpected failure is raised as TopologyComputationFailed carrying the
    elapsed time. A partially populated result is never returned.
    """

    start = time.perf_counter()

    try:
        derived = _derive_topology(spec, catalog, limits)
    except Exception as exc:
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.exception("topology computation failed for %s after %.1fms", spec.name, elapsed_ms)
        raise TopologyComputationFailed(elapsed_ms, exc) from exc

    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.debug(
        "computed topology for %s: leaves=%d spines=%d ratio=%.2f in %.1fms",
        spec.name,
        derived.leaves_needed,
        derived.spines_needed,
        derived.oversubscription_ratio,
        elapsed_ms,
    )

    return TopologyComputationResult(
        fabric_spec=spec,
        derived_topology=derived,
        computation_meta=ComputationMeta(
            algorithm_version=ALGORITHM_VERSION,
            computation_time_ms=elapsed_ms,
            warnings=derived.validation.warnings,
            errors=derived.validation.errors,
        ),
    )
