import pytest

from fabric_planner.core.errors import TopologyComputationFailed
from fabric_planner.core.types import (
    EndpointProfile,
    LeafClass,
    LegacyFabricSpec,
    MultiClassFabricSpec,
    RedundancyLevel,
    TopologySizing,
)
from fabric_planner.fabric.catalog import SwitchCapacity, SwitchCatalog
from fabric_planner.fabric.topology import (
    calculate_leaves_needed,
    calculate_oversubscription_ratio,
    calculate_spines_needed,
    calculate_total_capacity,
    compute_topology,
    max_uplinks_per_leaf,
    min_uplinks_per_leaf,
    validate_fabric_spec_quick,
    validate_topology,
    weighted_uplinks_per_leaf,
)


def make_legacy(
    endpoints: int = 48,
    ports_per_endpoint: int = 1,
    uplinks: int = 2,
    redundancy: bool = False,
) -> LegacyFabricSpec:
    return LegacyFabricSpec(
        name="legacy",
        uplinks_per_leaf=uplinks,
        endpoint_profile=EndpointProfile(
            name="server",
            ports_per_endpoint=ports_per_endpoint,
            redundancy=redundancy,
        ),
        endpoint_count=endpoints,
    )


def make_multi() -> MultiClassFabricSpec:
    """
    compute: 2 leaves x 10 endpoints x 2 ports = 40 ports, 2 uplinks
    storage: 1 leaf x 20 endpoints x 1 port = 20 ports redundant, 4 uplinks
    """
    return MultiClassFabricSpec(
        name="multi",
        leaf_classes=(
            LeafClass(
                id="compute",
                name="compute",
                uplinks_per_leaf=2,
                count=2,
                endpoint_profiles=(EndpointProfile(name="gpu", ports_per_endpoint=2, count=10),),
            ),
            LeafClass(
                id="storage",
                name="storage",
                uplinks_per_leaf=4,
                count=1,
                endpoint_profiles=(EndpointProfile(name="nas", count=20, redundancy=True),),
            ),
        ),
    )


def test_legacy_leaves_needed():
    assert calculate_leaves_needed(make_legacy()) == 2


def test_redundancy_doubles_leaf_port_demand():
    plain = compute_topology(make_legacy()).derived_topology
    redundant = compute_topology(make_legacy(redundancy=True)).derived_topology

    def demand(t):  # type: ignore[no-untyped-def]
        b = t.capacity_breakdown
        return b.endpoint_ports - b.available_endpoint_ports

    assert demand(plain) == 48
    assert demand(redundant) == 2 * demand(plain)
    assert redundant.leaves_needed == 3


def test_uplink_aggregations_differ_per_question():
    spec = make_multi()
    assert min_uplinks_per_leaf(spec) == 2
    assert max_uplinks_per_leaf(spec) == 4
    assert weighted_uplinks_per_leaf(spec) == pytest.approx(8 / 3)


def test_multi_class_leaves_use_minimum_uplinks():
    # (40 + 20 + 20 redundant) / (48 - 2)
    assert calculate_leaves_needed(make_multi()) == 2


def test_spines_use_maximum_uplinks():
    assert calculate_spines_needed(make_multi(), 2) == 1
    assert calculate_spines_needed(make_multi(), 40) == 5


def test_total_capacity_formula():
    assert calculate_total_capacity(2, 2) == 2 * 46 * 1000


def test_oversubscription_ratio():
    assert calculate_oversubscription_ratio(make_legacy(), 2) == pytest.approx(2.3)


def test_oversubscription_ratio_without_leaves():
    assert calculate_oversubscription_ratio(make_legacy(endpoints=0), 0) == 0.0


def test_injected_catalog_changes_sizing():
    small = SwitchCatalog(
        leaf=SwitchCapacity(model="small-leaf", ports=10, bandwidth_per_port=1000, uplinks=2),
        spine=SwitchCapacity(model="small-spine", ports=8, bandwidth_per_port=1000, downlinks=4, max_leaves=4),
    )

    assert calculate_leaves_needed(make_legacy(), catalog=small) == 6
    assert calculate_spines_needed(make_legacy(), 6, catalog=small) == 3

    res = compute_topology(make_legacy(), catalog=small)
    assert res.derived_topology.validation.errors == (
        "Topology requires 6 leaves, exceeding small-spine maximum of 4",
    )


def test_oversubscription_threshold_is_exclusive():
    spec = make_legacy()

    at_limit = validate_topology(spec, TopologySizing(leaves_needed=2, oversubscription_ratio=3.0))
    assert at_limit.warnings == ()

    above = validate_topology(spec, TopologySizing(leaves_needed=2, oversubscription_ratio=3.01))
    assert len(above.warnings) == 1
    assert "3.01:1" in above.warnings[0]
    assert above.is_valid


def test_leaf_fan_out_limit_is_an_error():
    res = validate_topology(make_legacy(), TopologySizing(leaves_needed=33))
    assert not res.is_valid
    assert not res.within_port_limits
    assert res.within_bandwidth_limits
    assert any("33 leaves" in e and "32" in e for e in res.errors)
    assert res.warnings == ()


def test_redundancy_needs_two_uplinks():
    res = validate_topology(make_legacy(uplinks=1, redundancy=True), TopologySizing(leaves_needed=2))
    assert res.is_valid
    assert not res.meets_redundancy_requirements
    assert any("at least 2 uplinks" in w for w in res.warnings)

    ok = validate_topology(make_multi(), TopologySizing(leaves_needed=2))
    assert ok.meets_redundancy_requirements


def test_compute_topology_legacy():
    res = compute_topology(make_legacy())
    topo = res.derived_topology

    assert topo.leaves_needed == 2
    assert topo.spines_needed == 1
    assert topo.total_capacity == 92000
    assert topo.capacity_breakdown.endpoint_ports == 92
    assert topo.capacity_breakdown.uplink_ports == 4
    assert topo.capacity_breakdown.available_endpoint_ports == 44
    assert topo.capacity_breakdown.total_bandwidth_gbps == 92
    assert topo.utilization.leaf_port_pct == pytest.approx(48 / 92 * 100)
    assert topo.utilization.spine_port_pct == pytest.approx(4 / 32 * 100)
    assert topo.utilization.bandwidth_pct == 50.0
    assert topo.redundancy.level == RedundancyLevel.partial
    assert topo.validation.is_valid
    assert topo.computed_at.tzinfo is not None

    assert res.fabric_spec is not None
    assert res.computation_meta.algorithm_version == "1.0.0"
    assert res.computation_meta.computation_time_ms >= 0
    assert res.computation_meta.errors == ()


def test_compute_topology_reports_too_many_leaves():
    res = compute_topology(make_legacy(endpoints=46 * 33))
    assert res.derived_topology.leaves_needed == 33
    assert not res.derived_topology.validation.is_valid
    assert res.computation_meta.errors == res.derived_topology.validation.errors


def test_compute_topology_wraps_failures():
    broken = SwitchCatalog(
        leaf=SwitchCapacity(model="broken", ports=2, bandwidth_per_port=1000),
        spine=SwitchCapacity(model="spine", ports=64, bandwidth_per_port=10000, downlinks=32, max_leaves=32),
    )

    with pytest.raises(TopologyComputationFailed) as excinfo:
        compute_topology(make_legacy(uplinks=2), catalog=broken)

    assert excinfo.value.elapsed_ms >= 0
    assert isinstance(excinfo.value.__cause__, ZeroDivisionError)
    assert "Topology computation failed after" in str(excinfo.value)


def test_quick_validation():
    assert validate_fabric_spec_quick(make_legacy()).is_valid

    bad_uplinks = validate_fabric_spec_quick(make_legacy(uplinks=5))
    assert not bad_uplinks.is_valid
    assert any("must be 1-4" in i for i in bad_uplinks.issues)

    empty = validate_fabric_spec_quick(make_legacy(endpoints=0))
    assert "No endpoints specified" in empty.issues

    huge = validate_fabric_spec_quick(make_legacy(endpoints=10001))
    assert any("Too many endpoints" in i for i in huge.issues)

    assert validate_fabric_spec_quick(make_legacy(endpoints=10000)).is_valid


def test_quick_validation_names_the_class():
    spec = MultiClassFabricSpec(
        name="bad",
        leaf_classes=(
            LeafClass(
                id="edge",
                name="edge",
                uplinks_per_leaf=0,
                endpoint_profiles=(EndpointProfile(name="fw"),),
            ),
        ),
    )

    res = validate_fabric_spec_quick(spec)
    assert not res.is_valid
    assert any("'edge'" in i for i in res.issues)


def test_multi_class_spec_requires_classes():
    with pytest.raises(ValueError):
        MultiClassFabricSpec(name="empty", leaf_classes=())


def test_leaf_class_requires_positive_count():
    with pytest.raises(ValueError, match="count must be at least 1"):
        LeafClass(
            id="empty",
            name="empty",
            uplinks_per_leaf=2,
            count=0,
            endpoint_profiles=(EndpointProfile(name="server"),),
        )
