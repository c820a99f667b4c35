"""
Mesh Planning Data Models

Shared data structures for the planning core:
- Lookup tables for band, terrain and EW propagation factors
- Node / Environment records owned by the session
- Link / RobustnessResult records derived on every recompute

All records serialize to the camelCase keys used by the
Architect JSON interchange via to_dict().
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


# === Enumerations ===

VALID_ROLES = ("controller", "relay", "sensor", "client", "uxs")
VALID_BANDS = ("900", "1.2", "2.4", "5.8", "other")
TERRAINS = ("Indoor", "Dense urban", "Urban", "Suburban", "Rural", "Open")
EW_LEVELS = ("Low", "Medium", "High", "Severe")
LOS_OPTIONS = ("LOS", "NLOS-urban", "NLOS-foliage/terrain")

RELAY_ROLES = ("relay", "uxs")


class LinkQuality(Enum):
    """Link viability verdict, ordered best to worst."""
    GOOD = "good"
    MARGINAL = "marginal"
    UNLIKELY = "unlikely"

    @property
    def is_viable(self) -> bool:
        """Good or marginal links carry traffic under current assumptions."""
        return self in (LinkQuality.GOOD, LinkQuality.MARGINAL)

    @property
    def rank(self) -> int:
        return _QUALITY_RANK[self]


_QUALITY_RANK = {
    LinkQuality.GOOD: 3,
    LinkQuality.MARGINAL: 2,
    LinkQuality.UNLIKELY: 1,
}


# === Propagation lookup tables ===

ROLE_DEFAULT_RANGE_M = {
    "controller": 450,
    "relay": 380,
    "uxs": 650,
    "sensor": 260,
    "client": 180,
}
FALLBACK_RANGE_M = 200

BAND_FACTOR = {
    "900": 1.3,
    "1.2": 1.1,
    "2.4": 1.0,
    "5.8": 0.8,
    "other": 1.0,
}

BAND_FREQUENCY_MHZ = {
    "900": 900.0,
    "1.2": 1200.0,
    "2.4": 2400.0,
    "5.8": 5800.0,
}
DEFAULT_FREQUENCY_MHZ = 2400.0

TERRAIN_MULTIPLIER = {
    "Indoor": 0.5,
    "Dense urban": 0.6,
    "Urban": 0.7,
    "Suburban": 0.85,
    "Rural": 1.0,
    "Open": 1.2,
}

EW_MULTIPLIER = {
    "Low": 1.0,
    "Medium": 0.85,
    "High": 0.7,
    "Severe": 0.5,
}

LOS_PENALTY_DB = {
    "LOS": 0,
    "NLOS-urban": 18,
    "NLOS-foliage/terrain": 12,
}


def default_range_for_role(role: str) -> int:
    """Nominal maximum range for a role, 200 m for anything unknown."""
    return ROLE_DEFAULT_RANGE_M.get(role, FALLBACK_RANGE_M)


def link_key(a_id: str, b_id: str) -> str:
    """Canonical identity of an unordered node pair."""
    return "::".join(sorted((a_id, b_id)))


def generate_id(prefix: str) -> str:
    """Short random identifier such as node-3fa2c1."""
    return f"{prefix}-{uuid.uuid4().hex[:6]}"


# === Primary data ===

@dataclass
class Environment:
    """
    Global propagation assumptions for a planning session.

    Unknown terrain/EW/band strings are tolerated here; they simply
    contribute a neutral multiplier of 1.0 to range estimates.
    """
    terrain: str = "Urban"
    ew_level: str = "Medium"
    primary_band: str = "2.4"
    design_radius_m: float = 300
    target_reliability: float = 80
    temperature_c: Optional[float] = None
    winds_mps: Optional[float] = None
    altitude_band: Optional[str] = None
    extras: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = {
            "terrain": self.terrain,
            "ewLevel": self.ew_level,
            "primaryBand": self.primary_band,
            "designRadiusMeters": self.design_radius_m,
            "targetReliability": self.target_reliability,
        }
        for key, value in (("temperatureC", self.temperature_c),
                           ("windsMps", self.winds_mps),
                           ("altitudeBand", self.altitude_band)):
            if value is not None:
                data[key] = value
        if self.extras:
            data["extras"] = dict(self.extras)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'Environment':
        """Build from camelCase interchange keys; missing keys keep defaults."""
        env = cls()
        env.terrain = data.get("terrain", env.terrain)
        env.ew_level = data.get("ewLevel", env.ew_level)
        env.primary_band = str(data.get("primaryBand", env.primary_band))
        env.design_radius_m = data.get("designRadiusMeters", env.design_radius_m)
        env.target_reliability = data.get("targetReliability", env.target_reliability)
        env.temperature_c = data.get("temperatureC")
        env.winds_mps = data.get("windsMps")
        env.altitude_band = data.get("altitudeBand")
        env.extras = dict(data.get("extras") or {})
        return env


@dataclass
class Node:
    """
    A mesh participant.

    Attributes:
        id: Unique identifier within the session
        label: Display name
        role: One of VALID_ROLES
        band: One of VALID_BANDS
        max_range_m: Nominal maximum range before environment scaling
        lat, lng: WGS84 degrees; None until the node is placed
        elevation_m: Ground elevation above sea level
        height_agl_m: Mast height or flight altitude above ground
        unplaced: Position was laid out automatically, not by an operator
    """
    id: str
    label: str
    role: str
    band: str = "2.4"
    max_range_m: float = FALLBACK_RANGE_M
    lat: Optional[float] = None
    lng: Optional[float] = None
    elevation_m: Optional[float] = None
    height_agl_m: Optional[float] = None
    relay_candidate: Optional[bool] = None
    carried_node_ids: List[str] = field(default_factory=list)
    is_airborne: Optional[bool] = None
    battery_hours: Optional[float] = None
    power_w: Optional[float] = None
    notes: Optional[str] = None
    source: str = "manual"
    origin_tool: Optional[str] = None
    unplaced: bool = False
    x: Optional[float] = None
    y: Optional[float] = None
    extras: Dict[str, Any] = field(default_factory=dict)
    platform_extras: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_placed(self) -> bool:
        return self.lat is not None and self.lng is not None

    @property
    def antenna_height_m(self) -> Optional[float]:
        """Elevation plus mast height; None when neither is known."""
        if self.elevation_m is None and self.height_agl_m is None:
            return None
        return (self.elevation_m or 0) + (self.height_agl_m or 0)

    @property
    def origin(self) -> str:
        return self.origin_tool or self.source or "unknown"

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "label": self.label,
            "role": self.role,
            "band": self.band,
            "maxRangeMeters": self.max_range_m,
            "lat": self.lat,
            "lng": self.lng,
            "source": self.source,
            "origin_tool": self.origin,
            "unplaced": self.unplaced,
            "carriedNodeIds": list(self.carried_node_ids),
        }
        optional = {
            "elevationMeters": self.elevation_m,
            "heightAboveGroundMeters": self.height_agl_m,
            "relayCandidate": self.relay_candidate,
            "isAirborne": self.is_airborne,
            "batteryHours": self.battery_hours,
            "power_w": self.power_w,
            "notes": self.notes,
            "x": self.x,
            "y": self.y,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        if self.extras:
            data["extras"] = dict(self.extras)
        if self.platform_extras:
            data["platformExtras"] = dict(self.platform_extras)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'Node':
        """Rebuild a node saved by to_dict()."""
        return cls(
            id=data["id"],
            label=data.get("label", data["id"]),
            role=data.get("role", "sensor"),
            band=str(data.get("band", "2.4")),
            max_range_m=data.get("maxRangeMeters", FALLBACK_RANGE_M),
            lat=data.get("lat"),
            lng=data.get("lng"),
            elevation_m=data.get("elevationMeters"),
            height_agl_m=data.get("heightAboveGroundMeters"),
            relay_candidate=data.get("relayCandidate"),
            carried_node_ids=list(data.get("carriedNodeIds") or []),
            is_airborne=data.get("isAirborne"),
            battery_hours=data.get("batteryHours"),
            power_w=data.get("power_w"),
            notes=data.get("notes"),
            source=data.get("source", "manual"),
            origin_tool=data.get("origin_tool"),
            unplaced=bool(data.get("unplaced", False)),
            x=data.get("x"),
            y=data.get("y"),
            extras=dict(data.get("extras") or {}),
            platform_extras=dict(data.get("platformExtras") or {}),
        )


@dataclass
class LinkOverride:
    """Operator-pinned link values that survive recomputation."""
    distance_m: Optional[float] = None
    los: Optional[str] = None

    def is_empty(self) -> bool:
        return self.distance_m is None and self.los is None

    def to_dict(self) -> dict:
        return {"distanceMeters": self.distance_m, "los": self.los}


# === Derived data ===

@dataclass
class Link:
    """
    Estimated radio link between two placed nodes.

    Derived on every recompute and never edited directly; operator
    edits live in LinkOverride records keyed by the pair identity.
    """
    from_id: str
    to_id: str
    distance_m: float
    measured_distance_m: float
    los: str
    quality: LinkQuality
    link_margin_db: float
    frequency_mhz: float = DEFAULT_FREQUENCY_MHZ
    effective_range_m: float = 0.0
    range_ratio: float = 0.0
    ratio_quality: str = ""
    distance_override_m: Optional[float] = None
    los_estimate: Optional[bool] = None

    @property
    def key(self) -> str:
        return link_key(self.from_id, self.to_id)

    @property
    def id(self) -> str:
        return f"{self.from_id}-{self.to_id}"

    def touches(self, node_id: str) -> bool:
        return node_id in (self.from_id, self.to_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "fromId": self.from_id,
            "toId": self.to_id,
            "distanceMeters": self.distance_m,
            "measuredDistanceMeters": self.measured_distance_m,
            "distanceOverrideMeters": self.distance_override_m,
            "los": self.los,
            "losEstimate": self.los_estimate,
            "quality": self.quality.value,
            "linkMarginDb": self.link_margin_db,
            "frequencyMHz": self.frequency_mhz,
            "effectiveRangeMeters": self.effective_range_m,
            "rangeRatio": self.range_ratio,
            "ratioQuality": self.ratio_quality,
        }


def count_by_quality(links: List[Link]) -> Dict[str, int]:
    """Tally links into {good, marginal, unlikely}."""
    counts = {q.value: 0 for q in LinkQuality}
    for link in links:
        counts[link.quality.value] += 1
    return counts


@dataclass
class RobustnessResult:
    """
    Structural fragility of the estimated mesh graph.

    Attributes:
        spof_nodes: Articulation points (single points of failure)
        critical_bridges: Links whose loss splits the mesh
        critical_counts: Bridge tally keyed by quality value
    """
    spof_nodes: List[Node] = field(default_factory=list)
    critical_bridges: List[Link] = field(default_factory=list)
    critical_counts: Dict[str, int] = field(
        default_factory=lambda: {q.value: 0 for q in LinkQuality})

    @property
    def spof_ids(self) -> List[str]:
        return [n.id for n in self.spof_nodes]

    def to_dict(self) -> dict:
        return {
            "spofNodes": [n.to_dict() for n in self.spof_nodes],
            "criticalBridges": [l.to_dict() for l in self.critical_bridges],
            "criticalCounts": dict(self.critical_counts),
        }
