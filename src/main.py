#!/usr/bin/env python3
"""
Mesh Architect
Main entry point for the command line planner

Commands:
- analyze: Import a project file and report links, robustness and advice
- demo:    Run a preset scenario
- export:  Convert a project file to MissionProject, GeoJSON or CoT
- serve:   Run the planner web API
- history: Show version history
"""

import json
import os
import sys
import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# Add src to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from utils import config
from utils.logging_config import setup_logging
from commands import CommandError, CommandResult, mesh
from core.models import Environment, LinkQuality
from core.presets import PRESET_SCENARIOS
from core.session import MeshSession
from __version__ import get_full_version, show_version_history

console = Console()

QUALITY_STYLES = {
    LinkQuality.GOOD.value: "green",
    LinkQuality.MARGINAL.value: "yellow",
    LinkQuality.UNLIKELY.value: "red",
}
RISK_STYLES = {"OK": "green", "Watch": "yellow", "Issue": "red"}


def new_session() -> MeshSession:
    """Fresh session using the configured default assumptions."""
    environment = Environment(
        terrain=config.DEFAULT_TERRAIN,
        ew_level=config.DEFAULT_EW_LEVEL,
        primary_band=config.DEFAULT_BAND,
    )
    return MeshSession(environment=environment)


def require(result: CommandResult) -> CommandResult:
    """Raise CommandError for failed results so the CLI can exit non-zero."""
    if not result:
        raise CommandError(result.message, result)
    if result.status.value == "warning":
        console.print(f"[yellow]Warning:[/yellow] {result.message}")
    return result


def load_into(session: MeshSession, project: str, autoplace: bool) -> None:
    loaded = require(mesh.load_project_file(project))
    require(mesh.import_project(session, loaded.data['payload'], autoplace=autoplace))


def show_links(session: MeshSession):
    """Display estimated links"""
    labels = {n.id: n.label for n in session.nodes}
    table = Table(title="Estimated Links", show_header=True, header_style="bold magenta")
    table.add_column("From", style="cyan")
    table.add_column("To", style="cyan")
    table.add_column("Distance", justify="right")
    table.add_column("LOS")
    table.add_column("Margin", justify="right")
    table.add_column("Quality")

    for link in session.links:
        style = QUALITY_STYLES[link.quality.value]
        distance = f"{link.distance_m:.0f} m"
        if link.distance_override_m is not None:
            distance += " *"
        table.add_row(
            labels.get(link.from_id, link.from_id),
            labels.get(link.to_id, link.to_id),
            distance,
            link.los,
            f"{link.link_margin_db:.1f} dB",
            f"[{style}]{link.quality.value}[/{style}]",
        )

    console.print(table)


def show_summary(session: MeshSession):
    """Display health, robustness and recommendations"""
    summary = session.summary()
    risk_style = RISK_STYLES.get(summary.risk, "white")
    lines = [
        summary.health,
        f"EW/Terrain risk: [{risk_style}]{summary.risk}[/{risk_style}]",
        "",
        summary.counts,
        "",
        f"[bold]Recommendation:[/bold] {summary.recommendation}",
    ]
    console.print(Panel("\n".join(lines), title="Mesh Summary", border_style="cyan"))

    robustness = summary.robustness
    table = Table(title=robustness["summary"], show_header=True, header_style="bold magenta")
    table.add_column("Single points of failure", style="yellow")
    table.add_column("Critical links", style="red")
    spof = robustness["spof"]
    critical = robustness["critical"]
    for idx in range(max(len(spof), len(critical))):
        table.add_row(spof[idx] if idx < len(spof) else "",
                      critical[idx] if idx < len(critical) else "")
    console.print(table)
    console.print(f"[dim]{robustness['counts']}[/dim]")

    console.print("\n[bold cyan]Coverage hints[/bold cyan]")
    for hint in summary.coverage_hints:
        console.print(f"  - {hint}")
    console.print(f"\n[dim]{summary.origin}[/dim]")


def report(session: MeshSession, as_json: bool):
    if as_json:
        payload = {
            'links': mesh.estimate(session).data,
            'robustness': mesh.analyze(session).data,
            'summary': mesh.summarize(session).data,
        }
        click.echo(json.dumps(payload, indent=2))
        return
    show_links(session)
    show_summary(session)


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, version, debug):
    """Mesh Architect - mesh link and robustness planner"""
    setup_logging(level='DEBUG' if debug else config.LOG_LEVEL, log_file=config.LOG_FILE or None)

    if version:
        console.print(f"Mesh Architect v{get_full_version()}")
        ctx.exit()

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.argument('project', type=click.Path(dir_okay=False))
@click.option('--autoplace', is_flag=True, help='Lay out nodes that have no coordinates')
@click.option('--json', 'as_json', is_flag=True, help='Print JSON instead of tables')
def analyze(project, autoplace, as_json):
    """Import PROJECT and report links, robustness and advice."""
    session = new_session()
    load_into(session, project, autoplace)
    report(session, as_json)


@cli.command()
@click.option('--preset', type=click.Choice(sorted(PRESET_SCENARIOS)), default=None,
              help='Preset scenario (default: generic demo)')
@click.option('--json', 'as_json', is_flag=True, help='Print JSON instead of tables')
def demo(preset, as_json):
    """Load a preset scenario and report on it."""
    session = new_session()
    session.load_demo(preset)
    if not as_json:
        console.print(f"[bold cyan]{session.mission.get('name', 'Demo')}[/bold cyan]\n")
    report(session, as_json)


@cli.command()
@click.argument('project', type=click.Path(dir_okay=False))
@click.option('--format', 'fmt', type=click.Choice(mesh.EXPORT_FORMATS), default='mission',
              help='Export format')
@click.option('--output', '-o', type=click.Path(dir_okay=False), default=None,
              help='Write to FILE instead of stdout')
@click.option('--autoplace', is_flag=True, help='Lay out nodes that have no coordinates')
def export(project, fmt, output, autoplace):
    """Convert PROJECT to another exchange format."""
    session = new_session()
    load_into(session, project, autoplace)
    result = require(mesh.export_project(session, fmt))
    text = json.dumps(result.data['document'], indent=2)
    if output:
        with open(output, 'w') as f:
            f.write(text)
        console.print(f"[green]Wrote {fmt} export to {output}[/green]")
    else:
        click.echo(text)


@cli.command()
@click.option('--host', default=None, help='Bind address (default from MESH_WEB_HOST)')
@click.option('--port', type=int, default=None, help='Port (default from MESH_WEB_PORT)')
@click.option('--restore', is_flag=True, help='Resume the saved session')
def serve(host, port, restore):
    """Run the planner web API."""
    from web.app import create_app, serve as run_server

    session = None
    if restore:
        restored = mesh.restore_session(config.STATE_FILE)
        if restored:
            session = restored.data['session']
            console.print(f"[green]{restored.message}[/green]")
        else:
            console.print(f"[yellow]{restored.message}; starting fresh[/yellow]")
    app = create_app(session or new_session(), state_file=config.STATE_FILE)
    run_server(app, host=host or config.WEB_HOST, port=port or config.WEB_PORT)


@cli.command()
def history():
    """Show version history."""
    show_version_history()


def main():
    try:
        cli(standalone_mode=True)
    except CommandError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        if e.result.error and e.result.error != str(e):
            console.print(f"[dim]{e.result.error}[/dim]")
        sys.exit(1)


if __name__ == '__main__':
    main()
