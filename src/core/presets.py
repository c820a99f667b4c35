"""Demo preset scenarios for quick walkthroughs"""

from typing import Dict, List, Optional

DEFAULT_CENTER = {"lat": 39.8283, "lng": -98.5795}

# Node offsets are degrees relative to the map center. Nodes without an
# offset are laid out on a grid when the preset loads.
PRESET_SCENARIOS: Dict[str, dict] = {
    "demo": {
        "label": "Demo mesh scenario",
        "project_code": "DEMO-GENERIC",
        "environment": {
            "terrain": "Suburban",
            "ewLevel": "Medium",
            "primaryBand": "2.4",
            "designRadiusMeters": 360,
            "targetReliability": 80,
        },
        "nodes": [
            {"key": "base", "label": "Base Node", "role": "controller", "maxRangeMeters": 420,
             "offset": (0.0, 0.0)},
            {"key": "relay", "label": "Relay", "role": "relay", "maxRangeMeters": 360,
             "offset": (0.0006, 0.0009)},
            {"key": "forward", "label": "Forward Node", "role": "client", "maxRangeMeters": 260,
             "offset": (-0.0005, 0.0006)},
            {"key": "sensor", "label": "Sensor", "role": "sensor", "maxRangeMeters": 260,
             "offset": (0.0004, -0.0007)},
        ],
    },
    "urban-grid": {
        "label": "Urban sensor grid",
        "project_code": "URBAN-GRID",
        "environment": {
            "terrain": "Urban",
            "ewLevel": "Medium",
            "primaryBand": "2.4",
            "designRadiusMeters": 300,
            "targetReliability": 80,
        },
        "nodes": [
            {"key": "controller-1", "label": "Gateway Alpha", "role": "controller", "maxRangeMeters": 400},
            {"key": "relay-1", "label": "Relay West", "role": "relay", "maxRangeMeters": 350},
            {"key": "relay-2", "label": "Relay East", "role": "relay", "maxRangeMeters": 350},
            {"key": "relay-3", "label": "Relay North", "role": "relay", "maxRangeMeters": 350},
            {"key": "sensor-1", "label": "Sensor 1", "role": "sensor", "maxRangeMeters": 250},
            {"key": "sensor-2", "label": "Sensor 2", "role": "sensor", "maxRangeMeters": 250},
            {"key": "sensor-3", "label": "Sensor 3", "role": "sensor", "maxRangeMeters": 250},
            {"key": "sensor-4", "label": "Sensor 4", "role": "sensor", "maxRangeMeters": 250},
            {"key": "client-1", "label": "Client A", "role": "client", "maxRangeMeters": 150},
            {"key": "client-2", "label": "Client B", "role": "client", "maxRangeMeters": 150},
            {"key": "client-3", "label": "Client C", "role": "client", "maxRangeMeters": 150},
        ],
    },
}

DEFAULT_PRESET = "demo"


def list_presets() -> List[dict]:
    """Preset ids and labels for menus."""
    return [{"id": key, "label": value["label"]} for key, value in PRESET_SCENARIOS.items()]


def get_preset(preset_id: Optional[str]) -> dict:
    """Look up a preset, falling back to the generic demo.

    Raises:
        KeyError: preset_id is given but unknown
    """
    if preset_id is None:
        return PRESET_SCENARIOS[DEFAULT_PRESET]
    if preset_id not in PRESET_SCENARIOS:
        raise KeyError(f"Unknown preset: {preset_id}")
    return PRESET_SCENARIOS[preset_id]
