"""
RF utility function tests for Mesh Architect.

Run with: python3 -m pytest tests/test_rf_utils.py -v
"""

import math

import pytest

from utils.rf import (
    free_space_path_loss,
    haversine_distance,
    horizon_los_hint,
    radio_horizon_km,
)


class TestHaversineDistance:
    """Test haversine distance calculations."""

    def test_hilo_to_honolulu(self):
        """Hilo to Honolulu should be ~337 km."""
        dist = haversine_distance(19.7297, -155.09, 21.3069, -157.8583)
        assert 335_000 < dist < 340_000  # meters

    def test_same_point(self):
        """Same point should return 0."""
        dist = haversine_distance(37.7749, -122.4194, 37.7749, -122.4194)
        assert dist == 0

    def test_short_distance(self):
        """Short distance ~1km accuracy."""
        dist = haversine_distance(37.7749, -122.4194, 37.7839, -122.4094)
        assert 1000 < dist < 1500

    def test_antipodal_points(self):
        """Opposite sides of Earth ~20,000 km, no math domain error."""
        dist = haversine_distance(0, 0, 0, 180)
        assert 20_000_000 < dist < 20_100_000

    def test_symmetric(self):
        ab = haversine_distance(39.8283, -98.5795, 39.8289, -98.5786)
        ba = haversine_distance(39.8289, -98.5786, 39.8283, -98.5795)
        assert ab == pytest.approx(ba)

    def test_demo_relay_offset(self):
        """Demo relay offset (+0.0006, +0.0009 deg) is about 100 m."""
        dist = haversine_distance(39.8283, -98.5795, 39.8289, -98.5786)
        assert 95 < dist < 110


class TestFreeSpacePathLoss:
    """Test FSPL calculations."""

    def test_1km_915mhz(self):
        """1km at 915 MHz should be ~92 dB."""
        fspl = free_space_path_loss(1000, 915)
        assert 90 < fspl < 94

    def test_10km_915mhz(self):
        """10km at 915 MHz should be ~112 dB."""
        fspl = free_space_path_loss(10000, 915)
        assert 110 < fspl < 114

    def test_distance_doubles_adds_6db(self):
        """Doubling distance adds ~6 dB."""
        fspl_1km = free_space_path_loss(1000, 915)
        fspl_2km = free_space_path_loss(2000, 915)
        diff = fspl_2km - fspl_1km
        assert 5.5 < diff < 6.5

    def test_exact_formula(self):
        expected = 32.44 + 20 * math.log10(0.5) + 20 * math.log10(2400)
        assert free_space_path_loss(500, 2400) == pytest.approx(expected)

    def test_zero_distance_floored(self):
        """Zero distance is treated as 1 m and stays finite."""
        assert free_space_path_loss(0, 2400) == pytest.approx(free_space_path_loss(1, 2400))
        assert math.isfinite(free_space_path_loss(0, 2400))

    def test_zero_frequency_floored(self):
        assert free_space_path_loss(1000, 0) == pytest.approx(free_space_path_loss(1000, 1))


class TestRadioHorizon:
    """Test radio horizon and the LOS hint built on it."""

    def test_two_ten_metre_masts(self):
        """Two 10 m masts see each other out to ~22.6 km."""
        assert radio_horizon_km(10, 10) == pytest.approx(3.57 * 2 * math.sqrt(10))

    def test_negative_height_clamped(self):
        assert radio_horizon_km(-5, 0) == 0

    def test_hint_within_horizon(self):
        assert horizon_los_hint(1000, 10, 10) is True

    def test_hint_beyond_horizon(self):
        assert horizon_los_hint(50_000, 2, 2) is False

    def test_hint_unknown_height(self):
        """Unknown height gives no hint rather than a guess."""
        assert horizon_los_hint(1000, None, 10) is None
        assert horizon_los_hint(1000, 10, None) is None
