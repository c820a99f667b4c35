"""Map overlay exports: GeoJSON and a CoT-style JSON snapshot for TAK tools"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from core.models import default_range_for_role

from .mission_project import environment_tag, quality_label

if TYPE_CHECKING:
    from core.session import MeshSession


def _environment_brief(session: 'MeshSession') -> dict:
    env = session.environment
    return {
        "terrain": env.terrain,
        "ew_level": env.ew_level,
        "primary_band": env.primary_band,
    }


def to_geojson(session: 'MeshSession') -> dict:
    """
    FeatureCollection with a Point per placed node and a LineString per link.

    Coordinates are [lng, lat, height above ground].
    """
    tag = environment_tag(session)
    mission = {"name": session.mission.get("name"),
               "project_code": session.mission.get("project_code")}
    features = []

    for node in session.nodes:
        if not node.is_placed:
            continue
        features.append({
            "type": "Feature",
            "geometry": {
                "type": "Point",
                "coordinates": [node.lng, node.lat, node.height_agl_m or 0],
            },
            "properties": {
                "id": node.id,
                "name": node.label,
                "role": node.role,
                "band": node.band,
                "estimated_link_quality": "n/a",
                "environment_tag": tag,
                "maxRangeMeters": node.max_range_m,
                "elevationMeters": node.elevation_m,
                "heightAboveGroundMeters": node.height_agl_m,
                "source": node.source,
                "origin_tool": node.origin,
                "mission_project": mission,
            },
        })

    by_id = {n.id: n for n in session.nodes}
    for link in session.links:
        a = by_id.get(link.from_id)
        b = by_id.get(link.to_id)
        if a is None or b is None:
            continue
        features.append({
            "type": "Feature",
            "geometry": {
                "type": "LineString",
                "coordinates": [
                    [a.lng, a.lat, a.height_agl_m or 0],
                    [b.lng, b.lat, b.height_agl_m or 0],
                ],
            },
            "properties": {
                "id": link.id,
                "from": a.label,
                "to": b.label,
                "band": session.environment.primary_band,
                "distanceMeters": round(link.distance_m),
                "los": link.los,
                "estimated_link_quality": quality_label(link.quality),
                "link_margin_db": round(link.link_margin_db),
                "environment_tag": tag,
            },
        })

    return {
        "type": "FeatureCollection",
        "properties": {
            "mission": session.mission.get("name"),
            "project_code": session.mission.get("project_code"),
            "environment": _environment_brief(session),
        },
        "features": features,
    }


def to_cot_snapshot(session: 'MeshSession', now: Optional[datetime] = None) -> dict:
    """Units and links as a JSON snapshot TAK plugins can ingest."""
    now = now or datetime.now(timezone.utc)
    tag = environment_tag(session)
    units = []
    for node in session.nodes:
        units.append({
            "uid": node.id,
            "callsign": node.label,
            "role": node.role,
            "band": node.band,
            "lat": node.lat,
            "lon": node.lng,
            "hae": (node.elevation_m or 0) + (node.height_agl_m or 0),
            "remarks": f"{node.max_range_m or default_range_for_role(node.role)} m range",
        })
    links = []
    for link in session.links:
        links.append({
            "from_id": link.from_id,
            "to_id": link.to_id,
            "quality": link.quality.value,
            "link_margin_db": round(link.link_margin_db),
            "band": session.environment.primary_band,
            "environment_tag": tag,
        })
    return {
        "type": "cot-snapshot",
        "generated": now.isoformat(),
        "project": session.mission.get("name"),
        "project_code": session.mission.get("project_code"),
        "environment": _environment_brief(session),
        "units": units,
        "links": links,
    }
