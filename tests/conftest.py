"""
Shared pytest fixtures for Mesh Architect tests.

Puts src/ on sys.path so tests import packages the same way the
installed console script does.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from core.models import Environment, Link, LinkQuality, Node  # noqa: E402
from core.session import MeshSession  # noqa: E402

CENTER = {"lat": 39.8283, "lng": -98.5795}


@pytest.fixture
def session():
    """Empty session with the default Urban / Medium / 2.4 assumptions."""
    return MeshSession(center=dict(CENTER))


@pytest.fixture
def open_env():
    """Open terrain, low EW: terrain default LOS, no range reduction from EW."""
    return Environment(terrain="Open", ew_level="Low", primary_band="2.4")


@pytest.fixture
def make_node():
    """Factory for placed nodes with sensible defaults."""
    counter = {"n": 0}

    def _make(node_id=None, role="relay", lat=CENTER["lat"], lng=CENTER["lng"], **kwargs):
        counter["n"] += 1
        node_id = node_id or f"n{counter['n']}"
        kwargs.setdefault("label", node_id.upper())
        kwargs.setdefault("max_range_m", 380)
        return Node(id=node_id, role=role, lat=lat, lng=lng, **kwargs)

    return _make


@pytest.fixture
def make_link():
    """Factory for hand-built links, used to shape graphs for robustness tests."""

    def _make(a, b, quality=LinkQuality.GOOD):
        return Link(from_id=a, to_id=b, distance_m=100, measured_distance_m=100,
                    los="LOS", quality=quality, link_margin_db=10.0)

    return _make
