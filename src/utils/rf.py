"""
RF calculation utilities for Mesh Architect.

Pure functions for radio frequency calculations - no UI dependencies.
"""

import math
from typing import Optional

EARTH_RADIUS_M = 6371000  # Mean Earth radius in meters


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate great-circle distance between two points using Haversine formula.

    Args:
        lat1, lon1: First point coordinates (degrees)
        lat2, lon2: Second point coordinates (degrees)

    Returns:
        Distance in meters
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (math.sin(delta_lat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2)
    # Clamp guards against rounding pushing sqrt(a) just above 1
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(a)))


def free_space_path_loss(distance_m: float, freq_mhz: float) -> float:
    """Calculate Free Space Path Loss (FSPL).

    Distance is floored at 1 m and frequency at 1 MHz so the result is
    always finite.

    Args:
        distance_m: Distance in meters
        freq_mhz: Frequency in MHz

    Returns:
        Path loss in dB
    """
    km = max(distance_m, 1) / 1000
    mhz = max(freq_mhz, 1)
    return 32.44 + 20 * math.log10(km) + 20 * math.log10(mhz)


def radio_horizon_km(height_a_m: float, height_b_m: float) -> float:
    """Combined radio horizon for two antennas (4/3 Earth model).

    Args:
        height_a_m: First antenna height in meters (negative clamps to 0)
        height_b_m: Second antenna height in meters

    Returns:
        Horizon distance in kilometers
    """
    return 3.57 * (math.sqrt(max(height_a_m, 0)) + math.sqrt(max(height_b_m, 0)))


def horizon_los_hint(distance_m: float, height_a_m: Optional[float],
                     height_b_m: Optional[float]) -> Optional[bool]:
    """Whether a path fits inside the combined radio horizon.

    Informational only; link quality always uses the terrain LOS class.
    A node with neither elevation nor mast height has no antenna height,
    and the hint for any link touching it is None. A node with only one
    of the two counts the other as 0.
    """
    if height_a_m is None or height_b_m is None:
        return None
    return distance_m / 1000 <= radio_horizon_km(height_a_m, height_b_m)

