"""
Tests for MissionProject, GeoJSON and CoT snapshot exports.

Run: python3 -m pytest tests/test_exports.py -v
"""

from datetime import datetime, timezone

import pytest

from core.models import LinkQuality
from core.session import MeshSession
from interchange import build_mission_project, parse_project, quality_label, to_cot_snapshot, to_geojson

CENTER = {"lat": 39.8283, "lng": -98.5795}


@pytest.fixture
def planned():
    """Three placed nodes and one pinned link."""
    session = MeshSession(center=CENTER)
    a = session.add_node("controller", lat=39.8283, lng=-98.5795, label="Base")
    b = session.add_node("relay", lat=39.8290, lng=-98.5795, label="Relay")
    session.add_node("uxs", lat=39.8286, lng=-98.5800, label="Hawk", height_agl_m=60,
                     battery_hours=0.5)
    session.set_link_override(a.id, b.id, distance_m=120, los="LOS")
    return session


class TestQualityLabel:

    def test_labels(self):
        assert quality_label(LinkQuality.GOOD) == "good"
        assert quality_label(LinkQuality.MARGINAL) == "marginal"
        assert quality_label(LinkQuality.UNLIKELY) == "poor"
        assert quality_label(None) == "unknown"


class TestMissionProjectExport:

    def test_document_shape(self, planned):
        doc = build_mission_project(planned)
        assert doc["schema"] == "MissionProject"
        assert doc["schemaVersion"] == "2.0.0"
        assert doc["origin_tool"] == "mesh"
        assert doc["environment"]["terrain"] == "Urban"
        assert doc["environment"]["target_reliability_pct"] == 80
        assert doc["mesh"]["rf_bands"] == ["2.4"]
        assert len(doc["nodes"]) == 3
        assert len(doc["mesh_links"]) == 3

    def test_node_records(self, planned):
        doc = build_mission_project(planned)
        base = doc["nodes"][0]
        assert base["label"] == "Base"
        assert base["lon"] == -98.5795
        assert base["carried_node_ids"] == []
        assert "elevation_m" not in base

    def test_platform_for_uxs(self, planned):
        doc = build_mission_project(planned)
        hawk = planned.nodes[2]
        assert len(doc["platforms"]) == 1
        platform = doc["platforms"][0]
        assert platform["id"] == f"{hawk.id}-platform"
        assert platform["endurance_minutes"] == 30
        assert platform["max_altitude_m"] == 60

    def test_pinned_link(self, planned):
        doc = build_mission_project(planned)
        a, b = planned.nodes[:2]
        pinned = next(l for l in doc["mesh_links"] if l["from_id"] == a.id and l["to_id"] == b.id)
        assert pinned["distance_m"] == 120
        assert pinned["distance_override_m"] == 120
        assert pinned["los"] == "LOS"
        assert pinned["environment_tag"] == "Urban-Medium"
        others = [l for l in doc["mesh_links"] if l is not pinned]
        assert all(l["distance_override_m"] is None for l in others)

    def test_poor_label(self, planned):
        a, b = planned.nodes[:2]
        planned.set_link_override(a.id, b.id, distance_m=20000)
        doc = build_mission_project(planned)
        labels = {l["id"]: l["estimated_link_quality"] for l in doc["mesh_links"]}
        assert labels[f"{a.id}-{b.id}"] == "poor"

    def test_extras_written_back(self, session):
        session.apply_import(parse_project({
            "schema": "MissionProject",
            "version": "1.5",
            "classification": "UNCLASS",
            "mission": {"name": "Ridge", "commander": "Ops"},
            "environment": {"terrain": "Rural", "snow_depth_m": 1.2},
            "mesh": {"topology": "ladder"},
            "nodes": [
                {"id": "a", "role": "relay", "lat": 45.0, "lon": -110.0, "kit": "K1"},
                {"id": "b", "role": "relay", "lat": 45.001, "lon": -110.0},
            ],
            "mesh_links": [{"from_id": "a", "to_id": "b", "priority": "high"}],
        }))
        doc = build_mission_project(session)
        assert doc["classification"] == "UNCLASS"
        assert doc["version"] == "1.5"
        assert doc["mission"] == {"name": "Ridge", "commander": "Ops"}
        assert doc["environment"]["snow_depth_m"] == 1.2
        assert doc["mesh"]["topology"] == "ladder"
        assert doc["nodes"][0]["kit"] == "K1"
        assert doc["mesh_links"][0]["priority"] == "high"

    def test_round_trip_keeps_node_count(self, planned):
        doc = build_mission_project(planned)
        result = parse_project(doc)
        assert [n.id for n in result.nodes] == [n.id for n in planned.nodes]

        restored = MeshSession(center=CENTER)
        restored.apply_import(result)
        assert len(restored.nodes) == 3
        assert len(restored.links) == 3
        a, b = planned.nodes[:2]
        assert restored.find_link(a.id, b.id).distance_m == 120
        unpinned = [o for k, o in restored.overrides.items() if k != planned.links[0].key]
        assert all(o.distance_m is None for o in unpinned)


class TestGeoJSON:

    def test_features(self, planned):
        planned.add_node("sensor")
        collection = to_geojson(planned)
        assert collection["type"] == "FeatureCollection"
        points = [f for f in collection["features"] if f["geometry"]["type"] == "Point"]
        lines = [f for f in collection["features"] if f["geometry"]["type"] == "LineString"]
        assert len(points) == 3
        assert len(lines) == 3

    def test_coordinates_lng_first(self, planned):
        collection = to_geojson(planned)
        hawk = next(f for f in collection["features"] if f["properties"].get("name") == "Hawk")
        assert hawk["geometry"]["coordinates"] == [-98.5800, 39.8286, 60]

    def test_link_properties(self, planned):
        collection = to_geojson(planned)
        line = next(f for f in collection["features"] if f["geometry"]["type"] == "LineString")
        assert line["properties"]["from"] == "Base"
        assert line["properties"]["to"] == "Relay"
        assert line["properties"]["distanceMeters"] == 120

    def test_empty_session(self, session):
        assert to_geojson(session)["features"] == []


class TestCotSnapshot:

    def test_snapshot(self, planned):
        planned.mission = {"name": "Ridge", "project_code": "RDG"}
        now = datetime(2024, 5, 20, 12, 0, tzinfo=timezone.utc)
        snapshot = to_cot_snapshot(planned, now=now)
        assert snapshot["type"] == "cot-snapshot"
        assert snapshot["generated"] == "2024-05-20T12:00:00+00:00"
        assert snapshot["project_code"] == "RDG"
        assert [u["callsign"] for u in snapshot["units"]] == ["Base", "Relay", "Hawk"]
        assert snapshot["units"][2]["hae"] == 60
        assert snapshot["units"][0]["remarks"] == "450 m range"
        assert len(snapshot["links"]) == 3
