"""
Mesh Commands Module

UI-independent planner operations shared by the CLI and the web API.
Every function takes the MeshSession it works on and returns a
CommandResult; import and validation errors become failed results and
leave the session as it was.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from core.models import count_by_quality
from core.session import MeshSession
from interchange import (
    ProjectImportError,
    build_mission_project,
    parse_project,
    to_cot_snapshot,
    to_geojson,
)

from .base import CommandResult

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ('mission', 'geojson', 'cot')
YAML_SUFFIXES = ('.yaml', '.yml')


# ============================================================================
# PROJECT FILES
# ============================================================================

def load_project_file(path: Union[str, Path]) -> CommandResult:
    """
    Read a project document from disk.

    JSON by default; .yaml/.yml files are read with PyYAML so hand-written
    scenarios can use YAML.

    Returns:
        CommandResult with data['payload'] holding the decoded document
    """
    path = Path(path)
    if not path.exists():
        return CommandResult.fail(f"Project file not found: {path}")

    try:
        text = path.read_text()
        if path.suffix.lower() in YAML_SUFFIXES:
            payload = yaml.safe_load(text)
        else:
            payload = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        logger.warning("Could not parse %s: %s", path, e)
        return CommandResult.fail("Invalid project file. Please verify the format.", error=str(e))
    except OSError as e:
        return CommandResult.fail(f"Failed to read {path}", error=str(e))

    return CommandResult.ok(f"Loaded {path.name}", data={'payload': payload, 'path': str(path)})


def import_project(session: MeshSession, payload: Any, mode: str = "replace",
                   autoplace: bool = False) -> CommandResult:
    """
    Parse and apply a project payload in one step.

    Returns:
        ok on success, warn when some nodes still have no position,
        fail (session unchanged) when the payload is rejected
    """
    try:
        result = parse_project(payload, fallback_band=session.environment.primary_band)
        nodes = session.apply_import(result, mode=mode, autoplace=autoplace)
    except ProjectImportError as e:
        logger.warning("Import rejected: %s", e)
        return CommandResult.fail(str(e))
    except ValueError as e:
        return CommandResult.fail(str(e))

    data = {
        'source': result.source.value,
        'mode': mode,
        'imported': len(nodes),
        'node_ids': [n.id for n in nodes],
        'overrides': len(result.link_overrides),
    }
    unpositioned = [n.label for n in session.nodes if not n.is_placed]
    if unpositioned:
        data['unpositioned'] = unpositioned
        return CommandResult.warn(
            f"Imported {len(nodes)} nodes; {len(unpositioned)} have no position "
            f"and are left out of link estimation", data=data)

    verb = "Imported and appended" if mode == "append" else "Imported"
    return CommandResult.ok(f"{verb} {len(nodes)} nodes", data=data)


# ============================================================================
# ANALYSIS
# ============================================================================

def estimate(session: MeshSession) -> CommandResult:
    """Current links with a per-quality tally."""
    links = session.links
    return CommandResult.ok(
        f"{len(links)} links estimated",
        data={
            'links': [link.to_dict() for link in links],
            'counts': count_by_quality(links),
        }
    )


def analyze(session: MeshSession) -> CommandResult:
    robustness = session.analyze()
    data = robustness.to_dict()
    data['spofIds'] = robustness.spof_ids
    if robustness.spof_nodes or robustness.critical_bridges:
        return CommandResult.warn(
            f"{len(robustness.spof_nodes)} single points of failure, "
            f"{len(robustness.critical_bridges)} critical links",
            data=data)
    return CommandResult.ok("No single points of failure", data=data)


def summarize(session: MeshSession) -> CommandResult:
    summary = session.summary()
    return CommandResult.ok(summary.health, data=summary.to_dict())


# ============================================================================
# EXPORT
# ============================================================================

def export_project(session: MeshSession, fmt: str = 'mission',
                   now: Optional[datetime] = None) -> CommandResult:
    """
    Render the session in an exchange format.

    Args:
        fmt: 'mission' (MissionProject JSON), 'geojson' or 'cot'
        now: Timestamp for the CoT snapshot (defaults to current UTC time)
    """
    if fmt == 'mission':
        document = build_mission_project(session)
    elif fmt == 'geojson':
        document = to_geojson(session)
    elif fmt == 'cot':
        document = to_cot_snapshot(session, now)
    else:
        return CommandResult.fail(
            f"Unknown export format: {fmt}",
            error=f"Choose one of: {', '.join(EXPORT_FORMATS)}")

    return CommandResult.ok(f"Exported {fmt}", data={'format': fmt, 'document': document})


# ============================================================================
# SESSION PERSISTENCE
# ============================================================================

def save_session(session: MeshSession, path: Union[str, Path]) -> CommandResult:
    try:
        saved = session.save(path)
    except OSError as e:
        logger.error("Failed to save session: %s", e)
        return CommandResult.fail(f"Failed to save session to {path}", error=str(e))
    return CommandResult.ok(f"Session saved to {saved}", data={'path': str(saved)})


def restore_session(path: Union[str, Path]) -> CommandResult:
    """
    Load a saved session.

    Returns:
        CommandResult with data['session'] holding the MeshSession
    """
    path = Path(path)
    if not path.exists():
        return CommandResult.fail(f"No saved session at {path}")
    try:
        session = MeshSession.load(path)
    except (OSError, ValueError) as e:
        logger.warning("Could not restore session from %s: %s", path, e)
        return CommandResult.fail("Saved session is unreadable", error=str(e))
    return CommandResult.ok(
        f"Restored {len(session.nodes)} nodes from {path}",
        data={'session': session, 'path': str(path)})
