"""
Project Importers

Reads the JSON payloads produced by the Architect tool family and
normalizes them into an ImportResult the session applies in one step.

Supported payloads:
- NodeArchitect:  {"source": "NodeArchitect", "nodes": [...]}
- UxSArchitect:   {"source": "UxSArchitect", "uxsPlatforms": [...]}
- MissionProject: {"schema": "MissionProject", "version": "2.0.0", ...}
- Mesh Architect: {"meshVersion": ..., "environment": {...}, "nodes": [...]}

Parsers never touch a session. Any problem raises a ProjectImportError
before anything is applied.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from core.models import (
    LOS_OPTIONS,
    LinkOverride,
    Node,
    default_range_for_role,
    generate_id,
    link_key,
)

from .errors import MalformedProjectError
from .normalize import (
    check_number,
    first_present,
    first_truthy,
    normalize_band,
    normalize_role,
    number_field,
    parse_version,
    split_extras,
    split_lat_lng,
)

logger = logging.getLogger(__name__)

MISSION_PROJECT_SCHEMA = "MissionProject"
MIN_MISSION_VERSION = 1.0
UXS_DEFAULT_HEIGHT_M = 50


class SourceTag(Enum):
    """Which tool produced a payload."""
    NODE_ARCHITECT = "node"
    UXS_ARCHITECT = "uxs"
    MISSION_PROJECT = "mission"
    MESH_ARCHITECT = "mesh"


@dataclass
class ImportResult:
    """
    Normalized content of one imported payload.

    Attributes:
        source: Detected payload kind
        nodes: Parsed nodes, in payload order (nodes before platforms)
        environment: Environment attribute updates (snake_case names)
        link_overrides: Pinned distance/LOS keyed by link_key()
        link_extras: Unknown per-link keys keyed by link_key()
        mission / kits / constraints / notes: MissionProject metadata,
            None when the payload does not carry them
    """
    source: SourceTag
    nodes: List[Node] = field(default_factory=list)
    environment: Dict[str, Any] = field(default_factory=dict)
    link_overrides: Dict[str, LinkOverride] = field(default_factory=dict)
    link_extras: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    mission: Optional[Dict[str, Any]] = None
    kits: Optional[list] = None
    constraints: Optional[list] = None
    notes: Optional[Any] = None
    project_extras: Dict[str, Any] = field(default_factory=dict)
    mission_extras: Dict[str, Any] = field(default_factory=dict)
    mesh_extras: Dict[str, Any] = field(default_factory=dict)
    schema_version: Optional[str] = None
    version: Optional[str] = None

    @property
    def node_ids(self) -> List[str]:
        return [n.id for n in self.nodes]


# === Detection ===

def detect_source(payload: Any) -> SourceTag:
    """
    Work out which parser handles a payload.

    Raises:
        MalformedProjectError: payload is not an object or matches no format
    """
    if not isinstance(payload, dict):
        raise MalformedProjectError("Project JSON must be an object.")
    if payload.get("source") == "NodeArchitect":
        return SourceTag.NODE_ARCHITECT
    if payload.get("source") == "UxSArchitect":
        return SourceTag.UXS_ARCHITECT
    if payload.get("schema") == MISSION_PROJECT_SCHEMA:
        return SourceTag.MISSION_PROJECT
    if payload.get("meshVersion") or payload.get("environment") or payload.get("nodes"):
        return SourceTag.MESH_ARCHITECT
    raise MalformedProjectError(
        "Unsupported JSON payload. Provide MissionProject, Node, UxS, or Mesh Architect JSON.")


def _require_list(payload: dict, key: str, message: str) -> list:
    value = payload.get(key)
    if not isinstance(value, list):
        raise MalformedProjectError(message)
    for item in value:
        if not isinstance(item, dict):
            raise MalformedProjectError(f"Entries of '{key}' must be objects.")
    return value


def _check_unique(nodes: List[Node]):
    seen = set()
    for node in nodes:
        if node.id in seen:
            raise MalformedProjectError(f"Duplicate node id: {node.id}")
        seen.add(node.id)


def _id_list(value: Any, owner: str) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedProjectError(f"Carried node ids on {owner} must be a list.")
    return list(value)


def _item_extras(item: dict, known: set, owner: str) -> Dict[str, Any]:
    """Unknown keys of item plus any 'extras' map it already carries."""
    extras = split_extras(item, known | {"extras"})
    carried = item.get("extras")
    if carried is not None:
        if not isinstance(carried, dict):
            raise MalformedProjectError(f"Extras on {owner} must be an object.")
        extras.update(carried)
    return extras


# === NodeArchitect ===

NODE_ARCHITECT_KEYS = {
    "id", "label", "role", "band", "maxRangeMeters", "lat", "lng", "elevationMeters",
    "altitudeMeters", "heightAboveGroundMeters", "mastHeightMeters", "notes",
}


def parse_node_architect(payload: dict, fallback_band: str = "2.4") -> ImportResult:
    if payload.get("source") != "NodeArchitect":
        raise MalformedProjectError("Expected NodeArchitect JSON with a nodes array.")
    items = _require_list(payload, "nodes", "Expected NodeArchitect JSON with a nodes array.")

    nodes = []
    for idx, item in enumerate(items):
        owner = f"node {item.get('id') or idx + 1}"
        role = normalize_role(item.get("role") or "sensor")
        weight = item.get("weight")
        is_weighted = isinstance(weight, (int, float)) and not isinstance(weight, bool) and weight >= 2
        nodes.append(Node(
            id=item.get("id") or generate_id("node"),
            label=item.get("label") or item.get("id") or f"Node {idx + 1}",
            role=role,
            band=normalize_band(item.get("band"), fallback_band),
            max_range_m=number_field(item, "maxRangeMeters", owner=owner) or default_range_for_role(role),
            lat=number_field(item, "lat", owner=owner),
            lng=number_field(item, "lng", owner=owner),
            elevation_m=number_field(item, "elevationMeters", "altitudeMeters", owner=owner),
            height_agl_m=number_field(item, "heightAboveGroundMeters", "mastHeightMeters", owner=owner),
            relay_candidate=role == "relay" or is_weighted,
            notes=item.get("notes"),
            source="nodeArchitect",
            origin_tool="node",
            extras=_item_extras(item, NODE_ARCHITECT_KEYS, owner),
        ))
    _check_unique(nodes)
    return ImportResult(source=SourceTag.NODE_ARCHITECT, nodes=nodes)


# === UxSArchitect ===

UXS_ARCHITECT_KEYS = {
    "id", "label", "band", "maxRangeMeters", "lat", "lng", "elevationMeters", "altitudeMeters",
    "heightAboveGroundMeters", "mastHeightMeters", "carriedNodeIds", "notes",
}


def parse_uxs_architect(payload: dict, fallback_band: str = "2.4") -> ImportResult:
    if payload.get("source") != "UxSArchitect":
        raise MalformedProjectError("Expected UxSArchitect JSON with a uxsPlatforms array.")
    items = _require_list(payload, "uxsPlatforms",
                          "Expected UxSArchitect JSON with a uxsPlatforms array.")

    nodes = []
    for idx, item in enumerate(items):
        owner = f"platform {item.get('id') or idx + 1}"
        nodes.append(Node(
            id=item.get("id") or generate_id("uxs"),
            label=item.get("label") or item.get("id") or f"UxS {idx + 1}",
            role="uxs",
            band=normalize_band(item.get("band"), fallback_band),
            max_range_m=number_field(item, "maxRangeMeters", owner=owner) or default_range_for_role("uxs"),
            lat=number_field(item, "lat", owner=owner),
            lng=number_field(item, "lng", owner=owner),
            elevation_m=number_field(item, "elevationMeters", "altitudeMeters", owner=owner),
            height_agl_m=number_field(item, "heightAboveGroundMeters", "mastHeightMeters",
                                      default=UXS_DEFAULT_HEIGHT_M, owner=owner),
            carried_node_ids=_id_list(item.get("carriedNodeIds"), owner),
            is_airborne=True,
            notes=item.get("notes"),
            source="uxsArchitect",
            origin_tool="uxs",
            extras=_item_extras(item, UXS_ARCHITECT_KEYS, owner),
        ))
    _check_unique(nodes)
    return ImportResult(source=SourceTag.UXS_ARCHITECT, nodes=nodes)


# === Mesh Architect (own legacy format) ===

MESH_ENVIRONMENT_KEYS = {
    "terrain": "terrain",
    "ewLevel": "ew_level",
    "primaryBand": "primary_band",
    "designRadiusMeters": "design_radius_m",
    "targetReliability": "target_reliability",
    "temperatureC": "temperature_c",
    "windsMps": "winds_mps",
    "altitudeBand": "altitude_band",
}
MESH_NUMERIC_ENVIRONMENT_KEYS = ("designRadiusMeters", "targetReliability", "temperatureC", "windsMps")
MESH_NODE_KEYS = {
    "id", "label", "role", "band", "maxRangeMeters", "lat", "lng", "x", "y", "elevationMeters",
    "altitudeMeters", "heightAboveGroundMeters", "mastHeightMeters", "relayCandidate",
    "isAirborne", "carriedNodeIds", "batteryHours", "power_w", "notes", "source",
    "origin_tool", "unplaced", "platformExtras",
}


def parse_mesh_architect(payload: dict, fallback_band: str = "2.4") -> ImportResult:
    items = payload.get("nodes")
    if not payload.get("meshVersion") and not isinstance(items, list):
        raise MalformedProjectError("Expected Mesh Architect JSON with meshVersion or nodes.")
    items = _require_list(payload, "nodes", "Mesh Architect nodes must be a list.") if items is not None else []

    environment: Dict[str, Any] = {}
    raw_env = payload.get("environment")
    if raw_env is not None:
        if not isinstance(raw_env, dict):
            raise MalformedProjectError("Mesh Architect environment must be an object.")
        for key in MESH_NUMERIC_ENVIRONMENT_KEYS:
            check_number(raw_env.get(key), key, "environment")
        for key, attr in MESH_ENVIRONMENT_KEYS.items():
            if raw_env.get(key) is not None:
                environment[attr] = raw_env[key]
        if "primary_band" in environment:
            environment["primary_band"] = normalize_band(environment["primary_band"])
        extras = _item_extras(raw_env, set(MESH_ENVIRONMENT_KEYS), "environment")
        if extras:
            environment["extras"] = extras
    band = environment.get("primary_band", fallback_band)

    nodes = []
    for idx, item in enumerate(items):
        owner = f"node {item.get('id') or idx + 1}"
        role = normalize_role(item.get("role") or "sensor")
        platform_extras = item.get("platformExtras") or {}
        if not isinstance(platform_extras, dict):
            raise MalformedProjectError(f"Platform extras on {owner} must be an object.")
        nodes.append(Node(
            id=item.get("id") or generate_id("node"),
            label=item.get("label") or item.get("id") or "Node",
            role=role,
            band=normalize_band(item.get("band"), band),
            max_range_m=number_field(item, "maxRangeMeters", owner=owner) or default_range_for_role(role),
            lat=number_field(item, "lat", owner=owner),
            lng=number_field(item, "lng", owner=owner),
            x=number_field(item, "x", owner=owner),
            y=number_field(item, "y", owner=owner),
            elevation_m=number_field(item, "elevationMeters", "altitudeMeters", owner=owner),
            height_agl_m=number_field(item, "heightAboveGroundMeters", "mastHeightMeters", owner=owner),
            relay_candidate=item.get("relayCandidate"),
            is_airborne=item.get("isAirborne"),
            carried_node_ids=_id_list(item.get("carriedNodeIds"), owner),
            battery_hours=number_field(item, "batteryHours", owner=owner),
            power_w=number_field(item, "power_w", owner=owner),
            notes=item.get("notes"),
            source=item.get("source") or "meshImport",
            origin_tool=item.get("origin_tool") or item.get("source") or "mesh",
            unplaced=bool(item.get("unplaced")),
            extras=_item_extras(item, MESH_NODE_KEYS, owner),
            platform_extras=dict(platform_extras),
        ))
    _check_unique(nodes)
    return ImportResult(source=SourceTag.MESH_ARCHITECT, nodes=nodes, environment=environment)


# === MissionProject ===

KNOWN_TOP_KEYS = {
    "schema", "schemaVersion", "version", "origin_tool", "mission", "environment", "mesh",
    "nodes", "platforms", "mesh_links", "kits", "constraints", "notes",
}
KNOWN_MISSION_KEYS = {"name", "summary", "project_code", "ao", "tasks", "origin_tool"}
KNOWN_ENVIRONMENT_KEYS = {
    "terrain", "terrainType", "ew_level", "ewLevel", "primary_band", "primaryBand",
    "design_radius_m", "target_reliability_pct", "temperature_c", "winds_mps",
    "altitude_band", "origin_tool",
}
KNOWN_NODE_KEYS = {
    "id", "label", "name", "role", "band", "lat", "lon", "lng", "latitude", "longitude",
    "elevation_m", "elevationMeters", "height_agl_m", "heightAboveGroundMeters",
    "max_range_m", "maxRangeMeters", "battery_hours", "batteryHours", "power_w", "powerW",
    "origin_tool", "relay_candidate", "relayCandidate", "carried_node_ids", "carriedNodeIds",
    "source", "notes", "is_airborne",
}
KNOWN_PLATFORM_KEYS = {
    "id", "label", "name", "type", "band", "lat", "lon", "lng", "latitude", "longitude",
    "elevation_m", "elevationMeters", "max_altitude_m", "heightAboveGroundMeters",
    "height_agl_m", "origin_tool", "carried_node_ids", "carriedNodeIds", "isAirborne",
    "endurance_minutes", "battery_hours",
}
KNOWN_LINK_KEYS = {
    "id", "from_id", "to_id", "distance_m", "distance_override_m", "los",
    "estimated_link_quality", "estimated_link_quality_label", "link_margin_db",
    "estimated_range", "assumed_band", "band", "environment_tag", "origin_tool", "quality",
}
PLATFORM_SUFFIX = "-platform"


def _mission_environment(raw_env: dict) -> Dict[str, Any]:
    for key in ("design_radius_m", "target_reliability_pct", "temperature_c", "winds_mps"):
        check_number(raw_env.get(key), key, "environment")
    environment: Dict[str, Any] = {}
    pairs = {
        "terrain": first_truthy(raw_env, "terrain", "terrainType"),
        "ew_level": first_truthy(raw_env, "ew_level", "ewLevel"),
        "primary_band": first_truthy(raw_env, "primary_band", "primaryBand"),
        "design_radius_m": raw_env.get("design_radius_m") or None,
        "target_reliability": raw_env.get("target_reliability_pct") or None,
        "temperature_c": raw_env.get("temperature_c"),
        "winds_mps": raw_env.get("winds_mps"),
        "altitude_band": raw_env.get("altitude_band"),
    }
    environment.update({k: v for k, v in pairs.items() if v is not None})
    if "primary_band" in environment:
        environment["primary_band"] = normalize_band(environment["primary_band"])
    extras = split_extras(raw_env, KNOWN_ENVIRONMENT_KEYS)
    if extras:
        environment["extras"] = extras
    return environment


def _mission_node(item: dict, band: str, project_origin: Optional[str]) -> Node:
    owner = f"node {item.get('id') or item.get('name') or 'without id'}"
    role = normalize_role(item.get("role") or "sensor")
    lat, lng = split_lat_lng(item, owner)
    max_range = first_truthy(item, "max_range_m", "maxRangeMeters")
    return Node(
        id=item.get("id") or generate_id("node"),
        label=item.get("label") or item.get("name") or item.get("id") or "Node",
        role=role,
        band=normalize_band(item.get("band"), band),
        max_range_m=check_number(max_range, "max_range_m", owner) or default_range_for_role(role),
        lat=lat,
        lng=lng,
        elevation_m=number_field(item, "elevation_m", "elevationMeters", owner=owner),
        height_agl_m=number_field(item, "height_agl_m", "heightAboveGroundMeters", owner=owner),
        battery_hours=number_field(item, "battery_hours", "batteryHours", owner=owner),
        power_w=number_field(item, "power_w", "powerW", owner=owner),
        relay_candidate=first_present(item, "relay_candidate", "relayCandidate"),
        carried_node_ids=_id_list(first_truthy(item, "carried_node_ids", "carriedNodeIds"), owner),
        is_airborne=item.get("is_airborne"),
        notes=item.get("notes"),
        source=item.get("source") or "missionProject",
        origin_tool=item.get("origin_tool") or item.get("source") or project_origin or "mesh",
        extras=split_extras(item, KNOWN_NODE_KEYS),
    )


def _platform_node(item: dict, idx: int, band: str) -> Node:
    owner = f"platform {item.get('id') or idx + 1}"
    lat, lng = split_lat_lng(item, owner)
    battery = number_field(item, "battery_hours", owner=owner)
    endurance = number_field(item, "endurance_minutes", owner=owner)
    if battery is None and endurance is not None:
        battery = endurance / 60
    return Node(
        id=item.get("id") or generate_id("uxs"),
        label=item.get("label") or item.get("name") or f"Platform {idx + 1}",
        role="uxs",
        band=normalize_band(item.get("band"), band),
        max_range_m=default_range_for_role("uxs"),
        lat=lat,
        lng=lng,
        elevation_m=number_field(item, "elevation_m", "elevationMeters", owner=owner),
        height_agl_m=number_field(item, "max_altitude_m", "heightAboveGroundMeters", "height_agl_m",
                                  owner=owner),
        battery_hours=battery,
        carried_node_ids=_id_list(first_truthy(item, "carried_node_ids", "carriedNodeIds"), owner),
        is_airborne=True,
        source="missionProject",
        origin_tool=item.get("origin_tool") or "uxs",
        platform_extras=split_extras(item, KNOWN_PLATFORM_KEYS),
    )


def _link_override(item: dict) -> LinkOverride:
    if "distance_override_m" in item:
        distance = item.get("distance_override_m")
    else:
        distance = item.get("distance_m")
    if isinstance(distance, bool) or not isinstance(distance, (int, float)) or distance <= 0:
        distance = None
    los = item.get("los") if item.get("los") in LOS_OPTIONS else None
    return LinkOverride(distance_m=distance, los=los)


def parse_mission_project(payload: dict, fallback_band: str = "2.4") -> ImportResult:
    """
    Parse a MissionProject document (schema 1.0 or newer).

    Unknown keys at every level are kept in extras maps so a later export
    writes them back unchanged. A platform exported as '<node id>-platform'
    for a node already listed under 'nodes' only contributes its extras to
    that node instead of creating a second one.
    """
    if payload.get("schema") != MISSION_PROJECT_SCHEMA:
        raise MalformedProjectError("Expected MissionProject schema JSON.")
    version = payload.get("version") or payload.get("schemaVersion")
    number = parse_version(version)
    if version and (number is None or number < MIN_MISSION_VERSION):
        raise MalformedProjectError(
            f"Unsupported MissionProject schema version {version}. Expected 1.0 or newer.")
    schema_version = payload.get("schemaVersion") or version

    for key in ("nodes", "platforms", "mesh_links"):
        if payload.get(key) is not None:
            _require_list(payload, key, f"MissionProject '{key}' must be a list.")
    for key in ("mission", "environment", "mesh"):
        if payload.get(key) is not None and not isinstance(payload[key], dict):
            raise MalformedProjectError(f"MissionProject '{key}' must be an object.")

    raw_env = payload.get("environment") or {}
    environment = _mission_environment(raw_env)
    band = environment.get("primary_band", fallback_band)
    project_origin = payload.get("origin_tool")

    nodes = [_mission_node(item, band, project_origin) for item in payload.get("nodes") or []]
    by_id = {n.id: n for n in nodes}
    for idx, item in enumerate(payload.get("platforms") or []):
        platform = _platform_node(item, idx, band)
        pid = item.get("id") or ""
        owner = by_id.get(pid[:-len(PLATFORM_SUFFIX)]) if pid.endswith(PLATFORM_SUFFIX) else None
        if owner is not None:
            owner.platform_extras.update(platform.platform_extras)
            continue
        nodes.append(platform)
    _check_unique(nodes)

    overrides: Dict[str, LinkOverride] = {}
    link_extras: Dict[str, Dict[str, Any]] = {}
    for item in payload.get("mesh_links") or []:
        from_id = item.get("from_id")
        to_id = item.get("to_id")
        if not from_id or not to_id or from_id == to_id:
            logger.debug("Skipping mesh link without two endpoints: %s", item.get("id"))
            continue
        key = link_key(from_id, to_id)
        override = _link_override(item)
        if not override.is_empty():
            overrides[key] = override
        extras = split_extras(item, KNOWN_LINK_KEYS)
        if extras:
            link_extras[key] = extras

    mission = payload.get("mission")
    return ImportResult(
        source=SourceTag.MISSION_PROJECT,
        nodes=nodes,
        environment=environment,
        link_overrides=overrides,
        link_extras=link_extras,
        mission={k: v for k, v in mission.items() if k in KNOWN_MISSION_KEYS} if mission else None,
        kits=list(payload.get("kits") or []),
        constraints=list(payload.get("constraints") or []),
        notes=payload.get("notes"),
        project_extras=split_extras(payload, KNOWN_TOP_KEYS),
        mission_extras=split_extras(mission or {}, KNOWN_MISSION_KEYS),
        mesh_extras=dict(payload.get("mesh") or {}),
        schema_version=str(schema_version) if schema_version else None,
        version=str(version) if version else None,
    )


PARSERS = {
    SourceTag.NODE_ARCHITECT: parse_node_architect,
    SourceTag.UXS_ARCHITECT: parse_uxs_architect,
    SourceTag.MISSION_PROJECT: parse_mission_project,
    SourceTag.MESH_ARCHITECT: parse_mesh_architect,
}


def parse_project(payload: Any, fallback_band: str = "2.4") -> ImportResult:
    """
    Detect the payload kind and run its parser.

    Args:
        payload: Decoded JSON document
        fallback_band: Band for nodes that carry none (session primary band)

    Raises:
        ProjectImportError: payload rejected; nothing was applied
    """
    tag = detect_source(payload)
    result = PARSERS[tag](payload, fallback_band)
    logger.debug("Parsed %s payload: %d nodes, %d link overrides",
                 tag.value, len(result.nodes), len(result.link_overrides))
    return result
