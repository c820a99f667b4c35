"""
MissionProject export.

Builds a MissionProject document from a session. Extras captured at
import time are merged back at the level they came from so keys this
planner does not understand survive a round trip.
"""

from typing import TYPE_CHECKING, Optional

from core.models import Link, LinkQuality, Node

if TYPE_CHECKING:
    from core.session import MeshSession

ORIGIN_TOOL = "mesh"


def quality_label(quality: Optional[LinkQuality]) -> str:
    """MissionProject wording for a link verdict ('unlikely' is 'poor')."""
    if quality is None:
        return "unknown"
    if quality is LinkQuality.UNLIKELY:
        return "poor"
    return quality.value


def environment_tag(session: 'MeshSession') -> str:
    env = session.environment
    return f"{env.terrain or 'unknown'}-{env.ew_level or 'EW'}"


def _drop_none(data: dict) -> dict:
    return {k: v for k, v in data.items() if v is not None}


def _node_record(node: Node) -> dict:
    record = dict(node.extras)
    record.update(_drop_none({
        "id": node.id,
        "label": node.label,
        "role": node.role,
        "band": node.band,
        "lat": node.lat,
        "lon": node.lng,
        "elevation_m": node.elevation_m,
        "height_agl_m": node.height_agl_m,
        "max_range_m": node.max_range_m,
        "power_w": node.power_w,
        "battery_hours": node.battery_hours,
        "origin_tool": node.origin_tool or node.source or ORIGIN_TOOL,
        "relay_candidate": node.relay_candidate,
        "is_airborne": node.is_airborne,
        "notes": node.notes,
    }))
    record["carried_node_ids"] = list(node.carried_node_ids)
    return record


def _platform_record(node: Node) -> dict:
    record = dict(node.platform_extras)
    endurance = round(node.battery_hours * 60) if node.battery_hours else None
    altitude = None
    if node.height_agl_m:
        altitude = round(node.height_agl_m + (node.elevation_m or 0))
    record.update(_drop_none({
        "id": f"{node.id}-platform",
        "label": node.label,
        "type": "uxs",
        "band": node.band,
        "endurance_minutes": endurance,
        "max_altitude_m": altitude,
        "lat": node.lat,
        "lon": node.lng,
        "elevation_m": node.elevation_m,
        "origin_tool": node.origin_tool or ORIGIN_TOOL,
    }))
    record["carried_node_ids"] = list(node.carried_node_ids)
    return record


def _link_record(session: 'MeshSession', link: Link) -> dict:
    record = dict(session.link_extras.get(link.key, {}))
    record.update({
        "id": link.id,
        "from_id": link.from_id,
        "to_id": link.to_id,
        "distance_m": round(link.distance_m),
        "distance_override_m": link.distance_override_m,
        "los": link.los,
        "estimated_link_quality": quality_label(link.quality),
        "estimated_link_quality_label": quality_label(link.quality),
        "link_margin_db": round(link.link_margin_db),
        "estimated_range": round(link.distance_m),
        "band": session.environment.primary_band,
        "environment_tag": environment_tag(session),
        "origin_tool": ORIGIN_TOOL,
    })
    return record


def build_mission_project(session: 'MeshSession') -> dict:
    """Serialize a session as a MissionProject document."""
    env = session.environment
    environment = dict(env.extras)
    environment.update({
        "terrain": env.terrain,
        "ew_level": env.ew_level,
        "primary_band": env.primary_band,
        "design_radius_m": env.design_radius_m,
        "target_reliability_pct": env.target_reliability,
        "temperature_c": env.temperature_c,
        "winds_mps": env.winds_mps,
        "altitude_band": env.altitude_band,
        "origin_tool": ORIGIN_TOOL,
    })

    bands = [env.primary_band] + [n.band for n in session.nodes if n.band]
    mesh = {
        "rf_bands": list(dict.fromkeys(bands)),
        "ew_profile": env.ew_level,
        "terrain": env.terrain,
        "design_radius_m": env.design_radius_m,
        "target_reliability_pct": env.target_reliability,
    }
    mesh.update(session.mesh_extras)

    payload = dict(session.project_extras)
    payload.update({
        "schema": "MissionProject",
        "schemaVersion": session.schema_version,
        "version": session.version or session.schema_version,
        "origin_tool": ORIGIN_TOOL,
        "mission": {**session.mission_extras, **session.mission},
        "environment": environment,
        "mesh": mesh,
        "nodes": [_node_record(n) for n in session.nodes],
        "platforms": [_platform_record(n) for n in session.nodes if n.role == "uxs"],
        "mesh_links": [_link_record(session, link) for link in session.links],
        "kits": list(session.kits),
        "constraints": list(session.constraints),
        "notes": session.notes,
    })
    return payload
