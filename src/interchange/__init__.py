"""
Mesh Architect Interchange

Import and export of Architect-family project files.

Usage:
    from interchange import parse_project, build_mission_project

    result = parse_project(payload, fallback_band=session.environment.primary_band)
    session.apply_import(result, mode="append")
    document = build_mission_project(session)
"""

from .errors import InvalidEnumError, MalformedProjectError, ProjectImportError
from .importers import ImportResult, SourceTag, detect_source, parse_project
from .mission_project import build_mission_project, quality_label
from .overlays import to_cot_snapshot, to_geojson

__all__ = [
    'ProjectImportError',
    'InvalidEnumError',
    'MalformedProjectError',
    'ImportResult',
    'SourceTag',
    'detect_source',
    'parse_project',
    'build_mission_project',
    'quality_label',
    'to_geojson',
    'to_cot_snapshot',
]
