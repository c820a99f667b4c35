"""Version information for Mesh Architect"""

__version__ = "0.3.1"
__version_info__ = (0, 3, 1)
__release_date__ = "2024-05-20"

# MissionProject interchange schema written by exports
MISSION_SCHEMA_VERSION = "2.0.0"

# Version history
VERSION_HISTORY = [
    {
        "version": "0.3.1",
        "date": "2024-05-20",
        "changes": [
            "Added app and MissionProject schema version reporting with a shared change log",
            "Aligned MissionProject exports to schemaVersion 2.0.0 with preserved extras",
            "Link overrides survive recompute and terrain changes",
            "Robustness analysis runs without recursion limits on long relay chains"
        ]
    },
    {
        "version": "0.3.0",
        "date": "2024-05-01",
        "changes": [
            "Initial Mesh Architect planner with MissionProject exchange",
            "GeoJSON and CoT snapshot exports",
            "Quick demo presets"
        ]
    }
]


def get_full_version():
    """Get version with release date"""
    return f"{__version__} ({__release_date__})"


def show_version_history():
    """Display version history"""
    from rich.console import Console
    from rich.table import Table

    console = Console()

    table = Table(title="Version History", show_header=True, header_style="bold magenta")
    table.add_column("Version", style="cyan", width=10)
    table.add_column("Date", style="green", width=12)
    table.add_column("Changes", style="white")

    for entry in VERSION_HISTORY:
        changes = "\n".join(f"- {c}" for c in entry['changes'][:3])
        if len(entry['changes']) > 3:
            changes += f"\n  ... and {len(entry['changes']) - 3} more"
        table.add_row(entry['version'], entry['date'], changes)

    console.print(table)
