"""
Link Estimator

Turns node positions plus environment assumptions into one Link per
unordered pair of placed nodes. The model compares free-space path loss
at the pair's effective range against the loss at the actual distance
plus a line-of-sight penalty; the difference is the link margin.

Pure and deterministic: nothing here mutates its inputs or raises for
in-domain data.
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple

from utils.rf import free_space_path_loss, haversine_distance, horizon_los_hint

from .models import (
    BAND_FACTOR,
    BAND_FREQUENCY_MHZ,
    DEFAULT_FREQUENCY_MHZ,
    EW_MULTIPLIER,
    LOS_PENALTY_DB,
    TERRAIN_MULTIPLIER,
    Environment,
    Link,
    LinkOverride,
    LinkQuality,
    Node,
    link_key,
)

logger = logging.getLogger(__name__)

# Margin thresholds (dB)
GOOD_MARGIN_DB = 8
MARGINAL_MARGIN_DB = -6

MIN_EFFECTIVE_RANGE_M = 10

DistanceFn = Callable[[Node, Node], float]


def band_factor(band: str) -> float:
    return BAND_FACTOR.get(band, 1.0)


def terrain_multiplier(terrain: str) -> float:
    return TERRAIN_MULTIPLIER.get(terrain, 1.0)


def ew_multiplier(ew_level: str) -> float:
    return EW_MULTIPLIER.get(ew_level, 1.0)


def effective_range(node: Node, environment: Environment) -> float:
    """Nominal range scaled by band, terrain and EW multipliers."""
    return (node.max_range_m
            * band_factor(node.band)
            * terrain_multiplier(environment.terrain)
            * ew_multiplier(environment.ew_level))


def default_los_for_terrain(terrain: str) -> str:
    """Propagation class assumed for a link until an operator pins one."""
    if terrain in ("Indoor", "Dense urban", "Urban"):
        return "NLOS-urban"
    if terrain == "Suburban":
        return "NLOS-foliage/terrain"
    return "LOS"


def los_penalty_db(los: str, terrain: str) -> float:
    """Extra loss for a LOS class; unknown classes use the terrain default."""
    if los in LOS_PENALTY_DB:
        return LOS_PENALTY_DB[los]
    return LOS_PENALTY_DB[default_los_for_terrain(terrain)]


def band_frequency_mhz(band: Optional[str]) -> Optional[float]:
    """Centre frequency of a band string, None for 'other' or unknown."""
    if band is None:
        return None
    return BAND_FREQUENCY_MHZ.get(str(band))


def link_frequency_mhz(a: Node, b: Node, environment: Environment) -> float:
    """First usable frequency of node A, node B, then the primary band."""
    for band in (a.band, b.band, environment.primary_band):
        freq = band_frequency_mhz(band)
        if freq:
            return freq
    return DEFAULT_FREQUENCY_MHZ


def classify_margin(margin_db: float) -> LinkQuality:
    """Map link margin to a quality verdict."""
    if margin_db >= GOOD_MARGIN_DB:
        return LinkQuality.GOOD
    if margin_db >= MARGINAL_MARGIN_DB:
        return LinkQuality.MARGINAL
    return LinkQuality.UNLIKELY


def classify_distance_ratio(ratio: float) -> str:
    """Older distance/range ratio policy, kept as an informational label.

    Returns one of 'good', 'marginal', 'fragile', 'none'.
    """
    if ratio <= 0.4:
        return "good"
    if ratio <= 0.8:
        return "marginal"
    if ratio <= 1.2:
        return "fragile"
    return "none"


def haversine_between(a: Node, b: Node) -> float:
    return haversine_distance(a.lat, a.lng, b.lat, b.lng)


def estimate_link_metrics(a: Node, b: Node, distance_m: float, los: str,
                          environment: Environment) -> Tuple[LinkQuality, float, float, float]:
    """
    Compute quality and margin for one pair at a given distance.

    Returns:
        (quality, margin_db, effective_range_m, frequency_mhz)
    """
    freq_mhz = link_frequency_mhz(a, b, environment)
    penalty = los_penalty_db(los, environment.terrain)
    range_m = max(MIN_EFFECTIVE_RANGE_M,
                  min(effective_range(a, environment), effective_range(b, environment)))
    loss_at_range = free_space_path_loss(range_m, freq_mhz)
    loss_at_distance = free_space_path_loss(distance_m, freq_mhz) + penalty
    margin_db = loss_at_range - loss_at_distance
    return classify_margin(margin_db), margin_db, range_m, freq_mhz


def estimate_links(nodes: List[Node], environment: Environment,
                   overrides: Optional[Dict[str, LinkOverride]] = None,
                   distance_fn: Optional[DistanceFn] = None) -> List[Link]:
    """
    Estimate every unordered pair of placed nodes.

    Args:
        nodes: Node registry, in registry order
        environment: Propagation assumptions
        overrides: Operator-pinned distance/LOS keyed by link_key()
        distance_fn: Optional geodesic helper replacing haversine

    Returns:
        One Link per unordered pair of nodes that both have a position
    """
    overrides = overrides or {}
    measure = distance_fn or haversine_between
    placed = [n for n in nodes if n.is_placed]
    links = []

    for i, a in enumerate(placed):
        for b in placed[i + 1:]:
            pinned = overrides.get(link_key(a.id, b.id)) or LinkOverride()
            measured_m = round(measure(a, b))
            distance_m = pinned.distance_m if pinned.distance_m is not None else measured_m
            los = pinned.los or default_los_for_terrain(environment.terrain)

            quality, margin_db, range_m, freq_mhz = estimate_link_metrics(
                a, b, distance_m, los, environment)

            raw_range = min(effective_range(a, environment), effective_range(b, environment))
            ratio = distance_m / (raw_range or 1)

            links.append(Link(
                from_id=a.id,
                to_id=b.id,
                distance_m=distance_m,
                measured_distance_m=measured_m,
                distance_override_m=pinned.distance_m,
                los=los,
                los_estimate=horizon_los_hint(measured_m, a.antenna_height_m, b.antenna_height_m),
                quality=quality,
                link_margin_db=margin_db,
                frequency_mhz=freq_mhz,
                effective_range_m=range_m,
                range_ratio=ratio,
                ratio_quality=classify_distance_ratio(ratio),
            ))

    logger.debug("Estimated %d links across %d placed nodes (%d unplaced)",
                 len(links), len(placed), len(nodes) - len(placed))
    return links
