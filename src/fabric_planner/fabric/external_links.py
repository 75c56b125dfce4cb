"""
External link allocation.

An external link connects the fabric border to an outside network. Users size
it one of two ways:

target bandwidth
    "I need 250 Gbps". The allocator turns that into discrete ports.

explicit ports
    "Give me 2 x 100G and 2 x 25G". Used as is.

Allocation rules
1. A non positive target allocates nothing.
2. Prefer a single speed tier. Use the preferred speed when the border offers
   it, otherwise the fastest offered speed, with count = ceil(target / speed).
3. If that count does not fit in max_ports, fall back to a greedy pass over
   speeds from fastest to slowest, spending the remaining port budget.
4. If the budget runs out first, return the best partial allocation.
   Callers detect the shortfall by comparing total bandwidth to the target.

Tie break
Speeds are de duplicated and sorted by descending Gbps. Equal speeds keep the
order they have in available_speeds. The same inputs always give the same
allocation and the total port count never exceeds max_ports.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional

from fabric_planner.core.types import (
    STANDARD_SPEEDS,
    BorderCapabilities,
    BreakoutMode,
    BreakoutRequirement,
    ConversionResult,
    ExplicitPort,
    ExternalLink,
    ExternalLinkAllocation,
    LinkCategory,
    LinkMode,
    OptimizeFor,
    Speed,
    speed_to_gbps,
)
from fabric_planner.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TARGET_GBPS = 100

# Applied only when the caller supplies no border capabilities.
TYPICAL_BORDER_PORT_LIMIT = 128


def get_default_border_capabilities() -> BorderCapabilities:
    """Baseline border capabilities used when a caller omits them."""
    return BorderCapabilities(
        max_ports=32,
        available_speeds=STANDARD_SPEEDS,
        breakout_capability={
            Speed.g100: (BreakoutMode(4, Speed.g25),),
            Speed.g400: (BreakoutMode(4, Speed.g100), BreakoutMode(16, Speed.g25)),
        },
        lag_support=True,
        max_ports_per_lag=8,
    )


def _ordered_speeds(speeds: Iterable[Speed]) -> List[Speed]:
    unique: List[Speed] = []
    for speed in speeds:
        if Speed(speed) not in unique:
            unique.append(Speed(speed))
    # sorted is stable, so equal speeds keep declaration order
    return sorted(unique, key=speed_to_gbps, reverse=True)


def total_port_count(ports: Iterable[ExplicitPort]) -> int:
    return sum(p.count for p in ports)


def calculate_total_bandwidth(ports: Iterable[ExplicitPort]) -> int:
    """Sum of speed times count. An empty list is 0."""
    return sum(speed_to_gbps(p.speed) * p.count for p in ports)


def _allocate_single_speed(
    target_gbps: float,
    speed: Speed,
    capabilities: BorderCapabilities,
) -> List[ExplicitPort]:
    count = math.ceil(target_gbps / speed_to_gbps(speed))
    if count > capabilities.max_ports:
        return []
    return [ExplicitPort(speed=speed, count=count)]


def _allocate_greedy(
    target_gbps: float,
    speeds: List[Speed],
    capabilities: BorderCapabilities,
) -> List[ExplicitPort]:
    allocation: List[ExplicitPort] = []
    remaining_gbps = target_gbps
    remaining_ports = capabilities.max_ports

    for speed in speeds:
        if remaining_gbps <= 0 or remaining_ports <= 0:
            break

        speed_value = speed_to_gbps(speed)
        count = min(math.ceil(remaining_gbps / speed_value), remaining_ports)
        if count > 0:
            allocation.append(ExplicitPort(speed=speed, count=count))
            remaining_gbps -= count * speed_value
            remaining_ports -= count

    return allocation


def convert_bandwidth_to_ports(
    target_gbps: float,
    preferred_speed: Optional[Speed | str] = None,
    capabilities: Optional[BorderCapabilities] = None,
) -> List[ExplicitPort]:
    """
    Convert a bandwidth target into a discrete port allocation.

    See the module docstring for the allocation rules.
    """

    if target_gbps <= 0:
        return []

    caps = capabilities or get_default_border_capabilities()
    speeds = _ordered_speeds(caps.available_speeds)
    if not speeds or caps.max_ports <= 0:
        return []

    speed = speeds[0]
    if preferred_speed is not None and preferred_speed in speeds:
        speed = Speed(preferred_speed)

    allocation = _allocate_single_speed(target_gbps, speed, caps)
    if allocation:
        return allocation

    allocation = _allocate_greedy(target_gbps, speeds, caps)
    achieved = calculate_total_bandwidth(allocation)
    if achieved < target_gbps:
        logger.debug(
            "border budget of %d ports reaches %dGbps of %sGbps target",
            caps.max_ports,
            achieved,
            target_gbps,
        )
    return allocation


def _resolve_ports(
    link: ExternalLink,
    capabilities: Optional[BorderCapabilities],
    errors: List[str],
) -> List[ExplicitPort]:
    if link.mode == LinkMode.explicit_ports:
        if not link.explicit_ports:
            errors.append(
                f"External link '{link.name}' is in explicit ports mode but lists no ports, "
                "add at least one speed and count"
            )
            return []
        return list(link.explicit_ports)

    target = link.target_gbps or 0
    if target <= 0:
        errors.append(
            f"External link '{link.name}' target bandwidth must be greater than 0Gbps, got {target}"
        )
        return []

    ports = convert_bandwidth_to_ports(target, link.preferred_speed, capabilities)
    if not ports:
        errors.append(
            f"External link '{link.name}' cannot be allocated, border offers no usable ports or speeds"
        )
    return ports


def validate_external_link(
    link: ExternalLink,
    capabilities: Optional[BorderCapabilities] = None,
) -> ExternalLinkAllocation:
    """
    Resolve the ports of an external link and check them against the border.

    Errors are returned in the allocation, never raised. Speed support is
    only checked when capabilities are supplied. Without capabilities the
    port total is checked against a typical border limit.
    """

    errors: List[str] = []
    warnings: List[str] = []

    if not link.name.strip():
        errors.append("External link name is required")

    ports = _resolve_ports(link, capabilities, errors)
    total_gbps = calculate_total_bandwidth(ports)
    port_count = total_port_count(ports)
    efficiency = 0

    if ports and link.mode == LinkMode.target_bandwidth and link.target_gbps:
        target = link.target_gbps
        efficiency = round(min(total_gbps, target) / target * 100)
        if total_gbps < target:
            max_ports = (capabilities or get_default_border_capabilities()).max_ports
            errors.append(
                f"External link '{link.name}' reaches {total_gbps}Gbps of {target}Gbps target "
                f"using {port_count} ports, border supports at most {max_ports}"
            )
        elif total_gbps > target:
            excess = total_gbps - target
            warnings.append(
                f"Overprovisioned by {excess}Gbps ({round(excess / target * 100)}% excess)"
            )
    elif ports:
        efficiency = 100

    if capabilities is not None:
        if port_count > capabilities.max_ports:
            errors.append(
                f"External link '{link.name}' requires {port_count} ports "
                f"but border supports only {capabilities.max_ports}"
            )
        offered = ", ".join(str(s) for s in capabilities.available_speeds)
        for port in ports:
            if port.speed not in capabilities.available_speeds:
                errors.append(f"{port.speed} not supported by border, offered speeds: {offered}")
    elif port_count > TYPICAL_BORDER_PORT_LIMIT:
        errors.append(
            f"External link '{link.name}' requires {port_count} ports which exceeds "
            f"typical border capacity of {TYPICAL_BORDER_PORT_LIMIT}"
        )

    return ExternalLinkAllocation(
        external_link=link,
        allocated_ports=tuple(ports),
        total_bandwidth_gbps=total_gbps,
        efficiency=efficiency,
        warnings=tuple(warnings),
        errors=tuple(errors),
    )


def create_external_link(
    name: str,
    category: LinkCategory = LinkCategory.external,
) -> ExternalLink:
    """New target bandwidth link with default sizing."""
    return ExternalLink(
        id=f"ext-{uuid.uuid4().hex}",
        name=name,
        mode=LinkMode.target_bandwidth,
        category=category,
        enabled=True,
        target_gbps=DEFAULT_TARGET_GBPS,
        preferred_speed=_ordered_speeds(STANDARD_SPEEDS)[0],
    )


def convert_to_explicit_mode(
    link: ExternalLink,
    capabilities: Optional[BorderCapabilities] = None,
) -> ExternalLink:
    """
    Switch a link to explicit ports, freezing its current allocation.

    Identity fields are preserved. Target fields are cleared.
    """

    if link.mode == LinkMode.explicit_ports:
        return link

    ports = (
        convert_bandwidth_to_ports(link.target_gbps, link.preferred_speed, capabilities)
        if link.target_gbps
        else []
    )

    return replace(
        link,
        mode=LinkMode.explicit_ports,
        explicit_ports=tuple(ports),
        target_gbps=None,
        preferred_speed=None,
    )


def convert_to_bandwidth_mode(link: ExternalLink) -> ExternalLink:
    """
    Switch a link to target bandwidth using the bandwidth its ports achieve.

    The fastest speed among the explicit ports becomes the preferred speed,
    so converting back reuses that tier.
    """

    if link.mode == LinkMode.target_bandwidth:
        return link

    ports = list(link.explicit_ports or ())
    preferred = _ordered_speeds(p.speed for p in ports)[0] if ports else None

    return replace(
        link,
        mode=LinkMode.target_bandwidth,
        target_gbps=calculate_total_bandwidth(ports),
        preferred_speed=preferred,
        explicit_ports=None,
    )


# ---------------------------
# ADVANCED CONVERSION
# ---------------------------

# Relative cost units per port, only used to compare candidates.
SPEED_COST = {
    Speed.g10: 100,
    Speed.g25: 150,
    Speed.g100: 400,
    Speed.g400: 1200,
}

BREAKOUT_MODULE_COST = 50
MIN_STRATEGY_EFFICIENCY = 80


@dataclass(frozen=True)
class ConversionOptions:
    """
    Options for convert_bandwidth_to_ports_advanced.

    preferred_speed
    Speed tried first as a single tier candidate, if the border offers it.

    allow_breakout
    Consider breaking parent ports out into child ports.

    optimize_for
    Which score ranks the feasible candidates.

    max_port_waste
    Candidates wasting more breakout child ports than this are dropped.

    lag_compatible
    Also consider allocations aligned to full LAG groups.
    """

    preferred_speed: Optional[Speed] = Speed.g100
    allow_breakout: bool = True
    optimize_for: OptimizeFor = OptimizeFor.efficiency
    max_port_waste: int = 20
    lag_compatible: bool = False


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _efficiency(target_gbps: float, provided_gbps: float) -> int:
    """
    Closeness of provided bandwidth to the target.

    Over provisioning scores target / provided, a shortfall scores
    provided / target, so neither can reach 100 unless the match is exact.
    """
    if provided_gbps <= 0:
        return 0
    return _round_half_up(min(target_gbps, provided_gbps) / max(target_gbps, provided_gbps) * 100)


def _ports_cost(ports: Iterable[ExplicitPort]) -> int:
    return sum(SPEED_COST[p.speed] * p.count for p in ports)


def _single_speed_strategy(
    target_gbps: float,
    speed: Speed,
    capabilities: BorderCapabilities,
    simplicity: int = 100,
) -> Optional[ConversionResult]:
    ports = _allocate_single_speed(target_gbps, speed, capabilities)
    if not ports:
        return None

    efficiency = _efficiency(target_gbps, calculate_total_bandwidth(ports))
    warnings = (f"{100 - efficiency}% overprovisioned",) if efficiency < 90 else ()
    return ConversionResult(
        ports=tuple(ports),
        efficiency=efficiency,
        simplicity=simplicity,
        estimated_cost=_ports_cost(ports),
        warnings=warnings,
    )


def _greedy_strategy(
    target_gbps: float,
    speeds: List[Speed],
    capabilities: BorderCapabilities,
) -> Optional[ConversionResult]:
    ports = _allocate_greedy(target_gbps, speeds, capabilities)
    if not ports:
        return None

    return ConversionResult(
        ports=tuple(ports),
        efficiency=_efficiency(target_gbps, calculate_total_bandwidth(ports)),
        # 20 points off for every extra speed in the mix
        simplicity=max(0, 100 - (len(ports) - 1) * 20),
        estimated_cost=_ports_cost(ports),
    )


def _breakout_strategies(
    target_gbps: float,
    capabilities: BorderCapabilities,
) -> List[ConversionResult]:
    strategies: List[ConversionResult] = []

    for parent_speed, modes in capabilities.breakout_capability.items():
        if parent_speed not in capabilities.available_speeds:
            continue

        for mode in modes:
            child_needed = math.ceil(target_gbps / speed_to_gbps(mode.child_speed))
            parent_ports = math.ceil(child_needed / mode.child_count)
            if parent_ports > capabilities.max_ports:
                continue

            generated = parent_ports * mode.child_count
            waste = generated - child_needed
            waste_pct = waste / generated * 100
            if waste_pct > 50:
                continue

            ports = (ExplicitPort(speed=mode.child_speed, count=child_needed),)
            requirement = BreakoutRequirement(
                parent_speed=parent_speed,
                child_speed=mode.child_speed,
                parent_ports=parent_ports,
                child_ports_generated=generated,
                child_ports_used=child_needed,
                efficiency=_round_half_up(child_needed / generated * 100),
            )
            warnings = (
                (f"{_round_half_up(waste_pct)}% port waste from breakout",) if waste_pct > 20 else ()
            )
            strategies.append(
                ConversionResult(
                    ports=ports,
                    efficiency=_efficiency(target_gbps, calculate_total_bandwidth(ports)),
                    simplicity=80,
                    estimated_cost=parent_ports * (SPEED_COST[parent_speed] + BREAKOUT_MODULE_COST),
                    port_waste=waste,
                    breakout_required=(requirement,),
                    warnings=warnings,
                )
            )

    return strategies


def _lag_strategies(
    target_gbps: float,
    speeds: List[Speed],
    capabilities: BorderCapabilities,
) -> List[ConversionResult]:
    if not capabilities.lag_support:
        return []

    lag_size = capabilities.max_ports_per_lag or 8
    strategies: List[ConversionResult] = []

    for speed in speeds:
        lag_count = math.ceil(math.ceil(target_gbps / speed_to_gbps(speed)) / lag_size)
        aligned = lag_count * lag_size
        if aligned > capabilities.max_ports:
            continue

        ports = (ExplicitPort(speed=speed, count=aligned),)
        strategies.append(
            ConversionResult(
                ports=ports,
                efficiency=_efficiency(target_gbps, calculate_total_bandwidth(ports)),
                simplicity=90,
                estimated_cost=_ports_cost(ports),
                warnings=(f"Aligned for {lag_count} LAG group(s) of {lag_size} ports each",),
            )
        )

    return strategies


def _cost_strategy(
    target_gbps: float,
    speeds: List[Speed],
    capabilities: BorderCapabilities,
) -> Optional[ConversionResult]:
    by_cost_per_gbps = sorted(speeds, key=lambda s: SPEED_COST[s] / speed_to_gbps(s))
    for speed in by_cost_per_gbps:
        strategy = _single_speed_strategy(target_gbps, speed, capabilities, simplicity=95)
        if strategy is not None:
            return replace(strategy, warnings=())
    return None


def allocation_strategies(
    target_gbps: float,
    capabilities: BorderCapabilities,
    options: ConversionOptions = ConversionOptions(),
) -> List[ConversionResult]:
    """
    Build every candidate allocation that passes the feasibility filter.

    Candidates, in this order:
    1. preferred speed only
    2. greedy, fastest speeds first
    3. one per breakout mode, if allowed
    4. one per speed aligned to LAG groups, if requested
    5. the cheapest speed per Gbps that fits

    A candidate survives when its efficiency is at least 80 and its breakout
    waste is within options.max_port_waste.
    """

    if target_gbps <= 0:
        return []

    speeds = _ordered_speeds(capabilities.available_speeds)
    candidates: List[Optional[ConversionResult]] = []

    if options.preferred_speed is not None and options.preferred_speed in speeds:
        candidates.append(_single_speed_strategy(target_gbps, options.preferred_speed, capabilities))
    candidates.append(_greedy_strategy(target_gbps, speeds, capabilities))
    if options.allow_breakout:
        candidates.extend(_breakout_strategies(target_gbps, capabilities))
    if options.lag_compatible:
        candidates.extend(_lag_strategies(target_gbps, speeds, capabilities))
    candidates.append(_cost_strategy(target_gbps, speeds, capabilities))

    return [
        c
        for c in candidates
        if c is not None
        and c.efficiency >= MIN_STRATEGY_EFFICIENCY
        and c.port_waste <= options.max_port_waste
    ]


def score_strategy(strategy: ConversionResult, optimize_for: OptimizeFor) -> int:
    """
    Weighted score used to rank candidates.

    efficiency   0.6 efficiency + 0.2 simplicity + 0.2 (100 - waste)
    simplicity   0.6 simplicity + 0.3 efficiency + 0.1 (100 - waste)
    cost         0.5 cost score + 0.3 efficiency + 0.2 simplicity
                 where cost score = max(0, 100 - cost / 10)

    Every warning costs 5 points and every breakout 10.
    """

    if optimize_for == OptimizeFor.efficiency:
        score = strategy.efficiency * 0.6 + strategy.simplicity * 0.2 + (100 - strategy.port_waste) * 0.2
    elif optimize_for == OptimizeFor.simplicity:
        score = strategy.simplicity * 0.6 + strategy.efficiency * 0.3 + (100 - strategy.port_waste) * 0.1
    else:
        cost_score = max(0.0, 100 - strategy.estimated_cost / 10)
        score = cost_score * 0.5 + strategy.efficiency * 0.3 + strategy.simplicity * 0.2

    score -= len(strategy.warnings) * 5
    score -= len(strategy.breakout_required) * 10
    return max(0, _round_half_up(score))


def convert_bandwidth_to_ports_advanced(
    target_gbps: float,
    capabilities: Optional[BorderCapabilities] = None,
    options: ConversionOptions = ConversionOptions(),
) -> ConversionResult:
    """
    Pick the best scoring allocation among several strategies.

    Ties go to the candidate built first, in the order listed by
    allocation_strategies. With no feasible candidate the result has no
    ports and says so in its warnings.
    """

    caps = capabilities or get_default_border_capabilities()
    strategies = allocation_strategies(target_gbps, caps, options)

    if not strategies:
        logger.debug("no feasible allocation strategy for %sGbps", target_gbps)
        return ConversionResult(
            ports=(),
            efficiency=0,
            simplicity=0,
            estimated_cost=0,
            warnings=("No feasible allocation strategy found",),
        )

    return max(strategies, key=lambda s: score_strategy(s, options.optimize_for))
