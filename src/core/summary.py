"""
Summary / Recommendation Generator

Derives operator-facing health text, risk tags, recommendations and
coverage hints from the estimated links and robustness result. Every
function is pure and maps its explicit inputs to strings or small
dicts the CLI, web API and exporters render directly.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .link_estimator import effective_range, ew_multiplier, terrain_multiplier
from .models import (
    RELAY_ROLES,
    VALID_ROLES,
    Environment,
    Link,
    LinkQuality,
    Node,
    RobustnessResult,
    count_by_quality,
)

ROBUST_SHARE = 0.7
MARGINAL_SHARE = 0.4
RISK_OK_SCORE = 1.3
RISK_WATCH_SCORE = 1.7
COVERAGE_GAP_SHARE = 0.3
NEAR_LIMIT_RATIO = 0.8
ISOLATED_RELAY_FRACTION = 0.5

WAITING_FOR_NODES = "Network is waiting for nodes."
NO_BLIND_SPOTS = "No major blind spots detected at current layout."

FRIENDLY_ORIGINS = {
    "mesh": "Mesh Architect",
    "node": "Node Architect",
    "nodearchitect": "Node Architect",
    "uxs": "UxS Architect",
    "uxsarchitect": "UxS Architect",
    "mission": "Mission Architect",
    "demo": "Demo preset",
}


def viable_count(links: List[Link]) -> int:
    return sum(1 for link in links if link.quality.is_viable)


def good_share(links: List[Link]) -> float:
    """Share of good+marginal links; an empty link set counts as 0."""
    return viable_count(links) / (len(links) or 1)


def health_label(links: List[Link]) -> str:
    share = good_share(links)
    if share >= ROBUST_SHARE:
        return "Robust"
    if share >= MARGINAL_SHARE:
        return "Marginal"
    return "Fragile"


def risk_score(environment: Environment) -> float:
    return (1 / terrain_multiplier(environment.terrain)) * (1 / ew_multiplier(environment.ew_level))


def risk_tag(environment: Environment) -> str:
    """EW/terrain risk: OK, Watch or Issue."""
    score = risk_score(environment)
    if score < RISK_OK_SCORE:
        return "OK"
    if score < RISK_WATCH_SCORE:
        return "Watch"
    return "Issue"


def health_text(nodes: List[Node], links: List[Link], environment: Environment) -> str:
    if not nodes:
        return WAITING_FOR_NODES
    return (f"Network is {health_label(links)} under current assumptions. "
            f"EW/Terrain risk: {risk_tag(environment)}.")


def recommendation_text(nodes: List[Node], links: List[Link], environment: Environment) -> str:
    """Relay/controller counts followed by the single most pressing advisory."""
    relays = sum(1 for n in nodes if n.role in RELAY_ROLES)
    candidates = sum(1 for n in nodes if n.relay_candidate)
    airborne = sum(1 for n in nodes if n.is_airborne or n.role == "uxs")
    controllers = sum(1 for n in nodes if n.role == "controller")
    viable = viable_count(links)
    weak = len(links) - viable

    airborne_note = f", airborne {airborne}" if airborne else ""
    text = (f"Relays: {relays} (candidates {candidates}{airborne_note}). "
            f"Controllers/Gateways: {controllers}. ")
    if environment.ew_level in ("High", "Severe"):
        text += "High EW: prioritize redundancy and frequency diversity. "

    if viable == 0 and len(nodes) > 1:
        text += "Isolated nodes detected. Add a relay to stitch the mesh."
    elif weak > len(links) * COVERAGE_GAP_SHARE:
        text += "Large coverage gaps; add perimeter relays or tighten spacing."
    else:
        text += "Core mesh is stable; evaluate edge clients for resiliency."
    return text


def coverage_hints(nodes: List[Node], links: List[Link], environment: Environment) -> List[str]:
    """Per-node isolation hints plus a global near-range-limit hint."""
    hints = []
    for node in nodes:
        node_links = [l for l in links if l.touches(node.id)]
        if not any(l.quality.is_viable for l in node_links):
            radius = round(node.max_range_m * ISOLATED_RELAY_FRACTION)
            hints.append(f"{node.label} is isolated; add a relay within ~{radius} m.")

    by_id = {n.id: n for n in nodes}
    ratios = []
    for link in links:
        a = by_id.get(link.from_id)
        b = by_id.get(link.to_id)
        if a is None or b is None:
            continue
        limit = min(effective_range(a, environment), effective_range(b, environment)) or 1
        ratios.append(link.distance_m / limit)
    if ratios and sum(ratios) / len(ratios) > NEAR_LIMIT_RATIO:
        hints.append("Most links are near range limits; tighten spacing or add relays.")

    if not hints:
        hints.append(NO_BLIND_SPOTS)
    return hints


def role_counts(nodes: List[Node]) -> Dict[str, int]:
    counts = {role: 0 for role in VALID_ROLES}
    for node in nodes:
        counts[node.role] = counts.get(node.role, 0) + 1
    return counts


def bands_in_use(nodes: List[Node], environment: Environment) -> List[str]:
    bands = [environment.primary_band] + [n.band for n in nodes]
    return list(dict.fromkeys(b for b in bands if b))


def counts_text(nodes: List[Node], links: List[Link], environment: Environment) -> str:
    roles = role_counts(nodes)
    quality = count_by_quality(links)
    bands = ", ".join(bands_in_use(nodes, environment)) or "n/a"
    return (f"Nodes {len(nodes)} (Ctrl {roles['controller']} • Relays {roles['relay']} • "
            f"UxS {roles['uxs']} • Sensors {roles['sensor']} • Clients {roles['client']}) | "
            f"Bands {bands} | Links {len(links)} (Good {quality['good']} • "
            f"Marginal {quality['marginal']} • Unlikely {quality['unlikely']})")


def origin_summary(nodes: List[Node]) -> str:
    """Node counts grouped by the tool that produced them."""
    if not nodes:
        return "Origin summary will appear after import or placement."
    counts: Dict[str, int] = {}
    for node in nodes:
        key = str(node.origin).lower()
        counts[key] = counts.get(key, 0) + 1
    parts = []
    for origin, total in counts.items():
        label = FRIENDLY_ORIGINS.get(origin, origin[:1].upper() + origin[1:])
        parts.append(f"{label}: {total}")
    return "Nodes by origin_tool: " + ", ".join(parts)


def robustness_lines(nodes: List[Node], links: List[Link],
                     robustness: RobustnessResult) -> Dict[str, object]:
    """Texts for the mesh health panel."""
    by_id = {n.id: n for n in nodes}

    def label(node_id: str) -> str:
        node = by_id.get(node_id)
        return node.label if node else node_id

    counts = robustness.critical_counts
    spof = [f"{n.label} ({n.role})" for n in robustness.spof_nodes]
    if not spof:
        spof = ["None detected on current mesh graph."]

    weak_bridges = [l for l in robustness.critical_bridges if l.quality != LinkQuality.GOOD]
    if not robustness.critical_bridges:
        critical = ["No critical links in marginal/unlikely state."]
    elif not weak_bridges:
        critical = ["Critical links exist but are currently Good."]
    else:
        critical = [f"{label(l.from_id)} ↔ {label(l.to_id)} ({l.quality.value})" for l in weak_bridges]

    return {
        "summary": (f"Nodes {len(nodes)} | Links {len(links)} | "
                    f"Critical links flagged {len(robustness.critical_bridges)}"),
        "counts": (f"Critical links by quality: Good {counts.get('good', 0)}, "
                   f"Marginal {counts.get('marginal', 0)}, Unlikely {counts.get('unlikely', 0)}"),
        "spof": spof,
        "critical": critical,
    }


@dataclass
class MeshSummary:
    """Everything the summary panels display for one recompute pass."""
    health: str
    health_label: Optional[str]
    risk: str
    counts: str
    recommendation: str
    coverage_hints: List[str] = field(default_factory=list)
    origin: str = ""
    robustness: Dict[str, object] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "health": self.health,
            "healthLabel": self.health_label,
            "risk": self.risk,
            "counts": self.counts,
            "recommendation": self.recommendation,
            "coverageHints": list(self.coverage_hints),
            "origin": self.origin,
            "robustness": dict(self.robustness),
        }


def summarize(nodes: List[Node], links: List[Link], environment: Environment,
              robustness: RobustnessResult) -> MeshSummary:
    return MeshSummary(
        health=health_text(nodes, links, environment),
        health_label=health_label(links) if nodes else None,
        risk=risk_tag(environment),
        counts=counts_text(nodes, links, environment),
        recommendation=recommendation_text(nodes, links, environment),
        coverage_hints=coverage_hints(nodes, links, environment),
        origin=origin_summary(nodes),
        robustness=robustness_lines(nodes, links, robustness),
    )
