"""
Mesh Planning Session

MeshSession owns the node registry, environment, operator link overrides
and MissionProject metadata for one planning session. The estimated links,
robustness result and summary are derived from that state and rebuilt in
full after every mutation; callers never edit derived data.

Mutations validate their arguments before touching state, so a rejected
call (ValueError / KeyError) leaves the session exactly as it was.
Imports are estimated on the candidate state and committed only after
that succeeds.
"""

import copy
import json
import logging
import math
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from __version__ import MISSION_SCHEMA_VERSION, __version__

from .link_estimator import DistanceFn, estimate_links
from .models import (
    EW_LEVELS,
    LOS_OPTIONS,
    TERRAINS,
    VALID_BANDS,
    VALID_ROLES,
    Environment,
    Link,
    LinkOverride,
    Node,
    RobustnessResult,
    default_range_for_role,
    generate_id,
    link_key,
)
from .presets import DEFAULT_CENTER, get_preset
from .robustness import analyze as analyze_robustness
from .summary import MeshSummary, summarize

if TYPE_CHECKING:
    from interchange.importers import ImportResult

logger = logging.getLogger(__name__)

IMPORT_MODES = ("replace", "append")

# Autoplace geometry (degrees)
NORMALIZED_SPAN_DEG = 0.002
GRID_SPACING_DEG = 0.0012

EDITABLE_NODE_FIELDS = (
    "label", "role", "band", "max_range_m", "lat", "lng", "elevation_m", "height_agl_m",
    "relay_candidate", "carried_node_ids", "is_airborne", "battery_hours", "power_w", "notes",
)
OPTIONAL_NUMERIC_NODE_FIELDS = ("elevation_m", "height_agl_m", "battery_hours", "power_w")
OPTIONAL_NUMERIC_ENVIRONMENT_FIELDS = ("temperature_c", "winds_mps")
EDITABLE_ENVIRONMENT_FIELDS = (
    "terrain", "ew_level", "primary_band", "design_radius_m", "target_reliability",
    "temperature_c", "winds_mps", "altitude_band",
)


def _is_number(value: Any) -> bool:
    return (isinstance(value, (int, float)) and not isinstance(value, bool)
            and math.isfinite(value))


def _check_role(role: str):
    if role not in VALID_ROLES:
        raise ValueError(f"Unsupported role: {role}")


def _check_band(band: str):
    if band not in VALID_BANDS:
        raise ValueError(f"Unsupported band: {band}")


def _check_positive(name: str, value: Any):
    if not _is_number(value) or value <= 0:
        raise ValueError(f"{name} must be a positive number")


def _check_optional_number(name: str, value: Any):
    if value is not None and not _is_number(value):
        raise ValueError(f"{name} must be a number")


def _check_percentage(name: str, value: Any):
    if not _is_number(value) or not 0 <= value <= 100:
        raise ValueError(f"{name} must be a percentage between 0 and 100")


def _check_node_fields(fields: Dict[str, Any]):
    unknown = [k for k in fields if k not in EDITABLE_NODE_FIELDS]
    if unknown:
        raise ValueError(f"Unknown node fields: {', '.join(sorted(unknown))}")
    for key in OPTIONAL_NUMERIC_NODE_FIELDS:
        if key in fields:
            _check_optional_number(key, fields[key])
    if "carried_node_ids" in fields and not isinstance(fields["carried_node_ids"], list):
        raise ValueError("carried_node_ids must be a list")


def _check_coordinates(lat: Any, lng: Any):
    if (lat is None) != (lng is None):
        raise ValueError("lat and lng must be given together")
    if lat is None:
        return
    if not _is_number(lat) or not -90 <= lat <= 90:
        raise ValueError(f"Invalid latitude: {lat}")
    if not _is_number(lng) or not -180 <= lng <= 180:
        raise ValueError(f"Invalid longitude: {lng}")


def _role_label(role: str) -> str:
    return "UxS" if role == "uxs" else role[:1].upper() + role[1:]


def layout_unplaced(nodes: List[Node], center: Dict[str, float]) -> int:
    """
    Give every unpositioned node a provisional position around center.

    Nodes with normalized x/y (0..1) map onto a small square around the
    center; the rest are laid out on a compact grid. All of them are
    flagged unplaced so an operator knows to move them.

    Returns:
        Number of nodes that received a position
    """
    placed = 0
    for node in nodes:
        if node.is_placed or (node.x is None and node.y is None):
            continue
        x = 0.5 if node.x is None else node.x
        y = 0.5 if node.y is None else node.y
        node.lat = center["lat"] + (y - 0.5) * NORMALIZED_SPAN_DEG
        node.lng = center["lng"] + (x - 0.5) * NORMALIZED_SPAN_DEG
        node.unplaced = True
        placed += 1

    missing = [n for n in nodes if not n.is_placed]
    if missing:
        grid = math.ceil(math.sqrt(len(missing)))
        offset = (grid - 1) / 2
        for idx, node in enumerate(missing):
            row, col = divmod(idx, grid)
            node.lat = center["lat"] + (row - offset) * GRID_SPACING_DEG
            node.lng = center["lng"] + (col - offset) * GRID_SPACING_DEG
            node.unplaced = True
        placed += len(missing)
    return placed


class MeshSession:
    """
    Planning state plus the derived link/robustness view.

    Args:
        environment: Starting assumptions (defaults to Environment())
        center: Map center used for demos and autoplace
        distance_fn: Optional geodesic helper handed to the estimator
    """

    def __init__(self, environment: Optional[Environment] = None,
                 center: Optional[Dict[str, float]] = None,
                 distance_fn: Optional[DistanceFn] = None):
        self._default_environment = copy.deepcopy(environment) if environment else Environment()
        self.center = dict(center or DEFAULT_CENTER)
        self.distance_fn = distance_fn
        self.nodes: List[Node] = []
        self.environment = copy.deepcopy(self._default_environment)
        self.overrides: Dict[str, LinkOverride] = {}
        self.link_extras: Dict[str, Dict[str, Any]] = {}
        self._reset_metadata()
        self._links: List[Link] = []
        self._robustness = RobustnessResult()
        self.recompute()

    def _reset_metadata(self):
        self.mission: Dict[str, Any] = {}
        self.kits: list = []
        self.constraints: list = []
        self.notes: Optional[Any] = None
        self.project_extras: Dict[str, Any] = {}
        self.mission_extras: Dict[str, Any] = {}
        self.mesh_extras: Dict[str, Any] = {}
        self.schema_version = MISSION_SCHEMA_VERSION
        self.version = MISSION_SCHEMA_VERSION

    # === Derived view ===

    @property
    def links(self) -> List[Link]:
        return list(self._links)

    def recompute(self) -> List[Link]:
        """Rebuild links and robustness from current state."""
        self._links = estimate_links(self.nodes, self.environment, self.overrides,
                                     distance_fn=self.distance_fn)
        self._robustness = analyze_robustness(self.nodes, self._links)
        logger.debug("Recomputed mesh: %d nodes, %d links", len(self.nodes), len(self._links))
        return self.links

    def analyze(self) -> RobustnessResult:
        return self._robustness

    def summary(self) -> MeshSummary:
        return summarize(self.nodes, self._links, self.environment, self._robustness)

    def get_node(self, node_id: str) -> Node:
        """
        Raises:
            KeyError: no node with that id
        """
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise KeyError(node_id)

    def find_link(self, a_id: str, b_id: str) -> Optional[Link]:
        key = link_key(a_id, b_id)
        for link in self._links:
            if link.key == key:
                return link
        return None

    # === Node mutations ===

    def add_node(self, role: str, lat: Optional[float] = None, lng: Optional[float] = None,
                 label: Optional[str] = None, band: Optional[str] = None,
                 max_range_m: Optional[float] = None, **extra) -> Node:
        """Create a node; band and range default from environment and role."""
        _check_role(role)
        band = str(band) if band is not None else self.environment.primary_band
        _check_band(band)
        if max_range_m is None:
            max_range_m = default_range_for_role(role)
        _check_positive("max_range_m", max_range_m)
        _check_coordinates(lat, lng)
        _check_node_fields(extra)

        if not label:
            count = sum(1 for n in self.nodes if n.role == role) + 1
            label = f"{_role_label(role)} {count}"

        node = Node(id=generate_id("node"), label=label, role=role, band=band,
                    max_range_m=max_range_m, lat=lat, lng=lng)
        for key, value in extra.items():
            setattr(node, key, value)
        if role == "uxs" and node.is_airborne is None:
            node.is_airborne = True

        self.nodes.append(node)
        self.recompute()
        return node

    def update_node(self, node_id: str, **fields) -> Node:
        """Edit node attributes listed in EDITABLE_NODE_FIELDS."""
        node = self.get_node(node_id)
        _check_node_fields(fields)
        if "role" in fields:
            _check_role(fields["role"])
        if "band" in fields:
            fields["band"] = str(fields["band"])
            _check_band(fields["band"])
        if "max_range_m" in fields:
            _check_positive("max_range_m", fields["max_range_m"])
        if "label" in fields and not str(fields["label"] or "").strip():
            raise ValueError("label must not be empty")
        if "lat" in fields or "lng" in fields:
            _check_coordinates(fields.get("lat", node.lat), fields.get("lng", node.lng))

        for key, value in fields.items():
            setattr(node, key, value)
        if "lat" in fields or "lng" in fields:
            node.unplaced = False
        self.recompute()
        return node

    def move_node(self, node_id: str, lat: float, lng: float) -> Node:
        node = self.get_node(node_id)
        _check_coordinates(lat, lng)
        node.lat = lat
        node.lng = lng
        node.unplaced = False
        self.recompute()
        return node

    def delete_node(self, node_id: str) -> Node:
        """Remove a node together with every override that references it."""
        node = self.get_node(node_id)
        self.nodes = [n for n in self.nodes if n.id != node_id]
        for table in (self.overrides, self.link_extras):
            for key in [k for k in table if node_id in k.split("::")]:
                del table[key]
        self.recompute()
        return node

    # === Environment ===

    def set_environment(self, **fields) -> Environment:
        unknown = [k for k in fields if k not in EDITABLE_ENVIRONMENT_FIELDS]
        if unknown:
            raise ValueError(f"Unknown environment fields: {', '.join(sorted(unknown))}")
        if "terrain" in fields and fields["terrain"] not in TERRAINS:
            raise ValueError(f"Unsupported terrain: {fields['terrain']}")
        if "ew_level" in fields and fields["ew_level"] not in EW_LEVELS:
            raise ValueError(f"Unsupported EW level: {fields['ew_level']}")
        if "primary_band" in fields:
            fields["primary_band"] = str(fields["primary_band"])
            _check_band(fields["primary_band"])
        if "design_radius_m" in fields:
            _check_positive("design_radius_m", fields["design_radius_m"])
        if "target_reliability" in fields:
            _check_percentage("target_reliability", fields["target_reliability"])
        for key in OPTIONAL_NUMERIC_ENVIRONMENT_FIELDS:
            if key in fields:
                _check_optional_number(key, fields[key])

        for key, value in fields.items():
            setattr(self.environment, key, value)
        self.recompute()
        return self.environment

    # === Link overrides ===

    def set_link_override(self, a_id: str, b_id: str, distance_m: Optional[float] = None,
                          los: Optional[str] = None) -> LinkOverride:
        """
        Pin the distance and/or LOS class of a node pair.

        Values left as None keep whatever was pinned before.
        """
        self.get_node(a_id)
        self.get_node(b_id)
        if a_id == b_id:
            raise ValueError("A link needs two different nodes")
        if distance_m is None and los is None:
            raise ValueError("Provide distance_m and/or los to override")
        if distance_m is not None:
            _check_positive("distance_m", distance_m)
        if los is not None and los not in LOS_OPTIONS:
            raise ValueError(f"Unsupported LOS class: {los}")

        key = link_key(a_id, b_id)
        current = self.overrides.get(key) or LinkOverride()
        override = LinkOverride(
            distance_m=distance_m if distance_m is not None else current.distance_m,
            los=los if los is not None else current.los,
        )
        self.overrides[key] = override
        self.recompute()
        return override

    def clear_link_override(self, a_id: str, b_id: str) -> bool:
        """Drop a pinned override; returns False when none was set."""
        removed = self.overrides.pop(link_key(a_id, b_id), None)
        if removed is not None:
            self.recompute()
        return removed is not None

    # === Bulk operations ===

    def reset(self):
        self.nodes = []
        self.environment = copy.deepcopy(self._default_environment)
        self.overrides = {}
        self.link_extras = {}
        self._reset_metadata()
        self.recompute()

    def apply_import(self, result: 'ImportResult', mode: str = "replace",
                     autoplace: bool = False) -> List[Node]:
        """
        Apply a parsed import in one step.

        Args:
            result: Output of interchange.parse_project()
            mode: 'replace' swaps the registry, 'append' adds to it (an
                imported node replaces an existing node with the same id)
            autoplace: Lay out nodes without coordinates

        Returns:
            The nodes added by this import
        """
        if mode not in IMPORT_MODES:
            raise ValueError(f"Unsupported import mode: {mode}")

        imported = copy.deepcopy(result.nodes)
        if mode == "append":
            incoming = {n.id for n in imported}
            nodes = [n for n in self.nodes if n.id not in incoming] + imported
            overrides = dict(self.overrides)
            link_extras = dict(self.link_extras)
        else:
            nodes = imported
            overrides = {}
            link_extras = {}
        overrides.update(copy.deepcopy(result.link_overrides))
        link_extras.update(copy.deepcopy(result.link_extras))

        ids = {n.id for n in nodes}
        overrides = {k: v for k, v in overrides.items() if set(k.split("::")) <= ids}
        link_extras = {k: v for k, v in link_extras.items() if set(k.split("::")) <= ids}

        environment = copy.deepcopy(self.environment)
        for key, value in result.environment.items():
            if key == "extras":
                environment.extras.update(value)
            else:
                setattr(environment, key, value)

        if autoplace:
            layout_unplaced(imported, self.center)

        try:
            links = estimate_links(nodes, environment, overrides, distance_fn=self.distance_fn)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Imported data cannot be estimated: {e}") from e
        robustness = analyze_robustness(nodes, links)

        self.nodes = nodes
        self.overrides = overrides
        self.link_extras = link_extras
        self.environment = environment
        if result.mission is not None:
            self.mission = {**self.mission, **result.mission}
        if result.kits is not None:
            self.kits = list(result.kits)
        if result.constraints is not None:
            self.constraints = list(result.constraints)
        if result.notes is not None:
            self.notes = result.notes
        self.project_extras.update(result.project_extras)
        self.mission_extras.update(result.mission_extras)
        self.mesh_extras.update(result.mesh_extras)
        if result.schema_version:
            self.schema_version = result.schema_version
            self.version = result.version or result.schema_version

        self._links = links
        self._robustness = robustness
        logger.info("Imported %d %s nodes (%s)", len(imported), result.source.value, mode)
        return imported

    def load_demo(self, preset_id: Optional[str] = None) -> List[Node]:
        """
        Replace the session with a preset scenario.

        Raises:
            KeyError: unknown preset id
        """
        preset = get_preset(preset_id)
        generic = preset_id is None or preset_id == "demo"
        nodes = []
        for entry in preset["nodes"]:
            node = Node(
                id=generate_id(entry["key"]),
                label=entry["label"],
                role=entry["role"],
                band=preset["environment"].get("primaryBand", "2.4"),
                max_range_m=entry["maxRangeMeters"],
                source="demo",
                origin_tool="demo" if generic else "mesh",
            )
            offset = entry.get("offset")
            if offset is not None:
                node.lat = self.center["lat"] + offset[0]
                node.lng = self.center["lng"] + offset[1]
            nodes.append(node)
        layout_unplaced(nodes, self.center)

        environment = Environment.from_dict(preset["environment"])

        self.nodes = nodes
        self.environment = environment
        self.overrides = {}
        self.link_extras = {}
        self._reset_metadata()
        self.mission = {"name": preset["label"], "project_code": preset["project_code"],
                        "origin_tool": "demo"}
        self.recompute()
        logger.info("Loaded preset '%s' with %d nodes", preset_id or "demo", len(nodes))
        return nodes

    # === Persistence ===

    def to_state_dict(self) -> dict:
        """JSON-safe snapshot, also readable as a Mesh Architect import."""
        return {
            "meshVersion": __version__,
            "center": dict(self.center),
            "environment": self.environment.to_dict(),
            "nodes": [n.to_dict() for n in self.nodes],
            "overrides": {k: v.to_dict() for k, v in self.overrides.items()},
            "linkExtras": copy.deepcopy(self.link_extras),
            "mission": dict(self.mission),
            "kits": list(self.kits),
            "constraints": list(self.constraints),
            "notes": self.notes,
            "projectExtras": dict(self.project_extras),
            "missionExtras": dict(self.mission_extras),
            "meshExtras": dict(self.mesh_extras),
            "schemaVersion": self.schema_version,
            "version": self.version,
        }

    @classmethod
    def from_state_dict(cls, data: dict, distance_fn: Optional[DistanceFn] = None) -> 'MeshSession':
        """
        Rebuild a session saved by to_state_dict().

        Raises:
            ValueError: data is not a saved session
        """
        if not isinstance(data, dict) or not isinstance(data.get("nodes", []), list):
            raise ValueError("Not a saved Mesh Architect session")
        session = cls(center=data.get("center"), distance_fn=distance_fn)
        try:
            session.environment = Environment.from_dict(data.get("environment") or {})
            session.nodes = [Node.from_dict(item) for item in data.get("nodes") or []]
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"Corrupt session data: {e}") from e
        for key, value in (data.get("overrides") or {}).items():
            session.overrides[key] = LinkOverride(distance_m=value.get("distanceMeters"),
                                                  los=value.get("los"))
        session.link_extras = dict(data.get("linkExtras") or {})
        session.mission = dict(data.get("mission") or {})
        session.kits = list(data.get("kits") or [])
        session.constraints = list(data.get("constraints") or [])
        session.notes = data.get("notes")
        session.project_extras = dict(data.get("projectExtras") or {})
        session.mission_extras = dict(data.get("missionExtras") or {})
        session.mesh_extras = dict(data.get("meshExtras") or {})
        session.schema_version = data.get("schemaVersion") or MISSION_SCHEMA_VERSION
        session.version = data.get("version") or session.schema_version
        session.recompute()
        return session

    def save(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_state_dict(), indent=2))
        logger.info("Saved session to %s", path)
        return path

    @classmethod
    def load(cls, path: Union[str, Path], distance_fn: Optional[DistanceFn] = None) -> 'MeshSession':
        """
        Raises:
            FileNotFoundError: path does not exist
            ValueError: file is not valid session JSON
        """
        path = Path(path)
        session = cls.from_state_dict(json.loads(path.read_text()), distance_fn=distance_fn)
        logger.info("Loaded session from %s (%d nodes)", path, len(session.nodes))
        return session
