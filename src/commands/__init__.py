"""
Mesh Architect Commands Layer

Unified command interface for the CLI and the web API.
All UI-independent planner operations go here.

Usage:
    from commands import mesh
    from core.session import MeshSession

    session = MeshSession()
    result = mesh.load_project_file("mission.json")
    result = mesh.import_project(session, result.data['payload'], mode="append")
    result = mesh.analyze(session)
    result = mesh.export_project(session, "geojson")
"""

from . import mesh
from .base import CommandResult, CommandError

__all__ = [
    'mesh',
    'CommandResult',
    'CommandError',
]
