"""
Fabric package.

This makes the fabric folder an explicit package and exposes the calls the
editor layer uses.
"""

from fabric_planner.fabric.catalog import DEFAULT_CATALOG, SwitchCapacity, SwitchCatalog
from fabric_planner.fabric.divisibility import check_external_divisibility
from fabric_planner.fabric.external_links import (
    ConversionOptions,
    convert_bandwidth_to_ports,
    convert_bandwidth_to_ports_advanced,
    create_external_link,
    validate_external_link,
)
from fabric_planner.fabric.topology import TopologyLimits, compute_topology, validate_fabric_spec_quick

__all__ = [
    "ConversionOptions",
    "DEFAULT_CATALOG",
    "SwitchCapacity",
    "SwitchCatalog",
    "TopologyLimits",
    "check_external_divisibility",
    "compute_topology",
    "convert_bandwidth_to_ports",
    "convert_bandwidth_to_ports_advanced",
    "create_external_link",
    "validate_external_link",
    "validate_fabric_spec_quick",
]
