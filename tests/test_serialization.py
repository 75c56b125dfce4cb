import pytest

from fabric_planner.core.errors import FabricSpecInvalid
from fabric_planner.core.serialization import (
    external_link_from_dict,
    fabric_spec_from_dict,
    to_json_safe_dict,
)
from fabric_planner.core.types import LegacyFabricSpec, LinkMode, MultiClassFabricSpec, Speed
from fabric_planner.fabric.topology import compute_topology


LEGACY = {
    "name": "lab",
    "uplinks_per_leaf": 2,
    "endpoint_profile": {"name": "server", "ports_per_endpoint": 1, "redundancy": False},
    "endpoint_count": 48,
}

MULTI = {
    "name": "prod",
    "leaf_classes": [
        {
            "id": "compute",
            "uplinks_per_leaf": 4,
            "count": 2,
            "endpoint_profiles": [{"name": "gpu", "ports_per_endpoint": 2, "count": 8}],
        }
    ],
}


def test_legacy_shape():
    spec = fabric_spec_from_dict(LEGACY)
    assert isinstance(spec, LegacyFabricSpec)
    assert spec.endpoint_count == 48


def test_multi_class_shape():
    spec = fabric_spec_from_dict(MULTI)
    assert isinstance(spec, MultiClassFabricSpec)
    assert spec.leaf_classes[0].name == "compute"
    assert spec.leaf_classes[0].endpoint_profiles[0].port_demand == 16


def test_both_or_neither_shape_is_rejected():
    with pytest.raises(FabricSpecInvalid, match="both"):
        fabric_spec_from_dict({**MULTI, **LEGACY})

    with pytest.raises(ValueError):
        fabric_spec_from_dict({"name": "nothing"})


def test_class_without_profiles_is_rejected():
    raw = {"name": "x", "leaf_classes": [{"id": "a", "uplinks_per_leaf": 2, "endpoint_profiles": []}]}
    with pytest.raises(FabricSpecInvalid, match="endpoint profile"):
        fabric_spec_from_dict(raw)


def test_topology_result_is_json_safe():
    result = compute_topology(fabric_spec_from_dict(LEGACY))
    data = to_json_safe_dict(result)

    topo = data["derived_topology"]
    assert topo["leaves_needed"] == 2
    assert topo["redundancy"]["level"] == "partial"
    assert isinstance(topo["computed_at"], str)
    assert topo["validation"]["warnings"] == []


def test_external_link_from_dict():
    link = external_link_from_dict(
        {
            "id": "ext-1",
            "name": "wan",
            "mode": "explicit-ports",
            "category": "vpc.staticExternal",
            "target_gbps": 100,
            "explicit_ports": [{"speed": "25G", "count": 4}],
        }
    )

    assert link.mode == LinkMode.explicit_ports
    assert link.enabled
    assert link.target_gbps is None
    assert link.explicit_ports is not None
    assert link.explicit_ports[0].speed == Speed.g25

    data = to_json_safe_dict(link)
    assert data["explicit_ports"] == [{"speed": "25G", "count": 4}]
    assert data["category"] == "vpc.staticExternal"
