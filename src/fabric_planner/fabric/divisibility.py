"""
External link divisibility across spines.

When spines carry external connectivity, every spine should get the same share
of external ports. Uneven shares leave connections on some spines unused and
break the symmetry of the CLOS fabric.

Policy rules
1. Disabled links are ignored entirely.
2. Links that fail validate_external_link make the result an error. Each one
   is reported as "<name>: <errors>" and its ports are left out of the sum.
3. The port counts of the remaining enabled links are summed.
4. If the sum divides evenly by the spine count the result is ok.
5. Otherwise the result is still valid but carries a warning that states how
   many connections are left unused (total mod spines).
6. A spine count below 1 cannot be evaluated and is an error.

The check only depends on the multiset of links, so link order never changes
the result.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from fabric_planner.core.types import (
    BorderCapabilities,
    DivisibilityResult,
    ExternalLink,
    Severity,
)
from fabric_planner.fabric.external_links import total_port_count, validate_external_link
from fabric_planner.logging import get_logger

logger = get_logger(__name__)


def _even_split_recommendations(total_ports: int, spine_count: int) -> List[str]:
    lower = total_ports - total_ports % spine_count
    higher = lower + spine_count

    options = [str(n) for n in (lower, higher) if n > 0]
    return [
        f"Use {' or '.join(options)} external ports for an even split across {spine_count} spines"
    ]


def check_external_divisibility(
    links: Iterable[ExternalLink],
    spine_count: int,
    capabilities: Optional[BorderCapabilities] = None,
) -> DivisibilityResult:
    """
    Check whether enabled external links spread evenly across spines.

    Ports are resolved with validate_external_link, so target bandwidth links
    are measured by the allocation they would receive.
    """

    if spine_count < 1:
        return DivisibilityResult(
            valid=False,
            severity=Severity.error,
            messages=(
                f"Spine count must be at least 1 to distribute external links, got {spine_count}",
            ),
            evidence={"spine_count": spine_count},
        )

    enabled = [link for link in links if link.enabled]
    broken: List[str] = []
    total_ports = 0

    for link in enabled:
        allocation = validate_external_link(link, capabilities)
        if allocation.errors:
            broken.append(f"{link.name}: {'; '.join(allocation.errors)}")
            continue
        total_ports += total_port_count(allocation.allocated_ports)

    unused = total_ports % spine_count
    evidence: Dict[str, object] = {
        "enabled_links": len(enabled),
        "broken_links": len(broken),
        "total_ports": total_ports,
        "spine_count": spine_count,
        "ports_per_spine": total_ports // spine_count,
        "unused_connections": unused,
    }

    uneven: List[str] = []
    recommendations: List[str] = []
    if unused:
        logger.debug("external ports %d leave %d unused across %d spines", total_ports, unused, spine_count)
        uneven.append(
            f"Uneven distribution across spines: {unused} unused connections "
            f"when spreading {total_ports} external ports over {spine_count} spines"
        )
        recommendations = _even_split_recommendations(total_ports, spine_count)

    # Broken links are left out of the port total and reported on their own.
    if broken:
        return DivisibilityResult(
            valid=False,
            severity=Severity.error,
            messages=tuple(sorted(broken) + uneven),
            recommendations=tuple(recommendations),
            evidence=evidence,
        )

    if not unused:
        return DivisibilityResult(
            valid=True,
            severity=Severity.ok,
            messages=(
                f"{total_ports} external ports distribute evenly across {spine_count} spines "
                f"({total_ports // spine_count} per spine)",
            ),
            evidence=evidence,
        )

    return DivisibilityResult(
        valid=True,
        severity=Severity.warning,
        messages=tuple(uneven),
        recommendations=tuple(recommendations),
        evidence=evidence,
    )
