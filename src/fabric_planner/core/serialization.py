from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Any

from fabric_planner.core.errors import FabricSpecInvalid
from fabric_planner.core.types import (
    EndpointProfile,
    ExplicitPort,
    ExternalLink,
    FabricSpec,
    LeafClass,
    LegacyFabricSpec,
    LinkCategory,
    LinkMode,
    MultiClassFabricSpec,
    Speed,
)


def _normalize(obj: Any) -> Any:
    if hasattr(obj, "value"):
        return obj.value
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {str(k): _normalize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_normalize(v) for v in obj]
    return obj


def to_json_safe_dict(obj: Any) -> dict[str, Any]:
    """
    Convert a result dataclass into a JSON safe dict.

    This is intended for the UI layer, which renders results verbatim.
    """
    raw = asdict(obj)
    normalized = _normalize(raw)
    if not isinstance(normalized, dict):
        raise TypeError("expected dict after normalization")
    return normalized


def _profile_from_dict(raw: dict[str, Any], where: str) -> EndpointProfile:
    if not isinstance(raw, dict):
        raise FabricSpecInvalid(f"{where} must be a dict")
    return EndpointProfile(
        name=str(raw.get("name", "")),
        ports_per_endpoint=int(raw.get("ports_per_endpoint", 1)),
        count=int(raw.get("count", 1)),
        redundancy=bool(raw.get("redundancy", False)),
    )


def fabric_spec_from_dict(raw: dict[str, Any]) -> FabricSpec:
    """
    Build a typed fabric spec from a plain payload.

    Exactly one shape must be present:
    leaf_classes for a multi class spec, or
    uplinks_per_leaf with endpoint_profile and endpoint_count for a legacy spec.

    Range checks belong to the upstream schema layer. We only enforce the shape.
    """

    name = str(raw.get("name", ""))
    has_classes = bool(raw.get("leaf_classes"))
    has_legacy = "endpoint_profile" in raw or "endpoint_count" in raw

    if has_classes and has_legacy:
        raise FabricSpecInvalid("fabric spec must not define both leaf_classes and legacy endpoint fields")
    if not has_classes and not has_legacy:
        raise FabricSpecInvalid("fabric spec must define leaf_classes or legacy endpoint fields")

    if has_legacy:
        if "uplinks_per_leaf" not in raw:
            raise FabricSpecInvalid("legacy fabric spec requires uplinks_per_leaf")
        return LegacyFabricSpec(
            name=name,
            uplinks_per_leaf=int(raw["uplinks_per_leaf"]),
            endpoint_profile=_profile_from_dict(raw.get("endpoint_profile", {}), "endpoint_profile"),
            endpoint_count=int(raw.get("endpoint_count", 0)),
        )

    raw_classes = raw["leaf_classes"]
    if not isinstance(raw_classes, list):
        raise FabricSpecInvalid("leaf_classes must be a list")

    classes: list[LeafClass] = []
    for idx, item in enumerate(raw_classes):
        if not isinstance(item, dict):
            raise FabricSpecInvalid(f"leaf_classes item {idx} must be a dict")
        if "uplinks_per_leaf" not in item:
            raise FabricSpecInvalid(f"leaf_classes item {idx} requires uplinks_per_leaf")

        profiles = item.get("endpoint_profiles") or []
        if not profiles:
            raise FabricSpecInvalid(f"leaf_classes item {idx} requires at least one endpoint profile")

        classes.append(
            LeafClass(
                id=str(item.get("id", f"class-{idx}")),
                name=str(item.get("name", item.get("id", f"class-{idx}"))),
                uplinks_per_leaf=int(item["uplinks_per_leaf"]),
                endpoint_profiles=tuple(
                    _profile_from_dict(p, f"leaf_classes item {idx} profile {pidx}")
                    for pidx, p in enumerate(profiles)
                ),
                count=int(item.get("count", 1)),
            )
        )

    return MultiClassFabricSpec(name=name, leaf_classes=tuple(classes))


def external_link_from_dict(raw: dict[str, Any]) -> ExternalLink:
    """
    Build an ExternalLink from a plain payload.

    Only the payload matching mode is kept. enabled defaults to True.
    Unknown speeds, modes or categories raise ValueError.
    """

    mode = LinkMode(raw.get("mode", LinkMode.target_bandwidth))
    target_gbps = None
    preferred_speed = None
    explicit_ports = None

    if mode == LinkMode.target_bandwidth:
        target_gbps = raw.get("target_gbps")
        if raw.get("preferred_speed") is not None:
            preferred_speed = Speed(raw["preferred_speed"])
    else:
        explicit_ports = tuple(
            ExplicitPort(speed=Speed(p["speed"]), count=int(p["count"]))
            for p in raw.get("explicit_ports") or []
        )

    return ExternalLink(
        id=str(raw["id"]),
        name=str(raw.get("name", "")),
        mode=mode,
        category=LinkCategory(raw.get("category", LinkCategory.external)),
        enabled=bool(raw.get("enabled", True)),
        description=raw.get("description"),
        target_gbps=target_gbps,
        preferred_speed=preferred_speed,
        explicit_ports=explicit_ports,
    )
