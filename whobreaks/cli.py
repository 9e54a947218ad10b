"""Typer-based CLI for whobreaks dependency impact analysis."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from . import __version__, config
from .cli_watch import watch
from .config_manager import ScanSettings, save_settings
from .orchestrator import Orchestrator
from .reporter import (
    print_impact,
    print_issues,
    print_matches,
    print_node,
    print_scan_result,
    print_summary,
)

console = Console()

app = typer.Typer(
    help="💥 whobreaks: find out what breaks before you touch a file.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Register watch mode as a direct command
app.command("watch")(watch)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"whobreaks v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
):
    """whobreaks: lexical import graph and blast-radius queries for JS/TS projects."""
    level = logging.DEBUG if verbose else getattr(logging, config.LOG_LEVEL, logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _project_root(root: Path) -> Path:
    resolved = root.resolve()
    if not resolved.is_dir():
        raise typer.BadParameter(f"Project root does not exist: {root}")
    return resolved


def _open(root: Path, rescan: bool) -> Orchestrator:
    orchestrator = Orchestrator(_project_root(root))
    orchestrator.load_or_scan(rescan=rescan)
    return orchestrator


def _require_node(orchestrator: Orchestrator, file: str) -> str:
    path = orchestrator.resolve_path(file)
    if orchestrator.node(path) is None:
        console.print(f"[red]✗[/red] File not in graph: {escape(file)}")
        raise typer.Exit(1)
    return path


def _echo_json(payload) -> None:
    typer.echo(json.dumps(payload, indent=2))


ROOT_OPTION = typer.Option(Path("."), "--root", "-r", help="Project root.")
RESCAN_OPTION = typer.Option(False, "--rescan", help="Ignore the saved snapshot and scan again.")
JSON_OPTION = typer.Option(False, "--json", help="Print JSON instead of a report.")


@app.command("scan")
def scan(
    path: Path = typer.Argument(Path("."), help="Project root to scan."),
    max_files: Optional[int] = typer.Option(None, "--max-files", help="Limit files scanned."),
    save: bool = typer.Option(True, "--save/--no-save", help="Write .whobreaks/graph.json."),
    as_json: bool = JSON_OPTION,
):
    """Scan a project and report cycles, orphans, god modules and hot spots."""
    root = _project_root(path)
    orchestrator = Orchestrator(root)
    if max_files is not None:
        orchestrator.settings.max_files = max_files

    result = orchestrator.scan()
    snapshot = str(orchestrator.persist()) if save else None

    if as_json:
        _echo_json(result.summary.to_dict())
        return
    print_scan_result(console, result, str(root), snapshot)


@app.command("summary")
def summary(root: Path = ROOT_OPTION, rescan: bool = RESCAN_OPTION, as_json: bool = JSON_OPTION):
    """Architecture summary of the project graph."""
    orchestrator = _open(root, rescan)
    result = orchestrator.summary()
    if as_json:
        _echo_json(result.to_dict())
        return
    print_summary(console, result, str(orchestrator.project_root))
    console.print()
    print_issues(console, result, str(orchestrator.project_root))


@app.command("impact")
def impact(
    file: str = typer.Argument(..., help="File path relative to the project root."),
    root: Path = ROOT_OPTION,
    rescan: bool = RESCAN_OPTION,
    as_json: bool = JSON_OPTION,
):
    """What breaks if FILE changes?"""
    orchestrator = _open(root, rescan)
    path = _require_node(orchestrator, file)
    analysis = orchestrator.impact(path)

    if as_json:
        payload = analysis.to_dict()
        payload["file"] = file
        for key in ("direct_dependents", "transitive_dependents"):
            payload[key] = [orchestrator.relative(p) for p in payload[key]]
        _echo_json(payload)
        return
    print_impact(console, analysis, str(orchestrator.project_root))


@app.command("deps")
def deps(
    file: str = typer.Argument(..., help="File path relative to the project root."),
    root: Path = ROOT_OPTION,
    rescan: bool = RESCAN_OPTION,
):
    """Files FILE imports."""
    orchestrator = _open(root, rescan)
    for path in sorted(orchestrator.dependencies(file)):
        typer.echo(orchestrator.relative(path))


@app.command("dependents")
def dependents(
    file: str = typer.Argument(..., help="File path relative to the project root."),
    root: Path = ROOT_OPTION,
    rescan: bool = RESCAN_OPTION,
):
    """Files importing FILE."""
    orchestrator = _open(root, rescan)
    for path in sorted(orchestrator.dependents(file)):
        typer.echo(orchestrator.relative(path))


@app.command("node")
def node(
    file: str = typer.Argument(..., help="File path relative to the project root."),
    root: Path = ROOT_OPTION,
    rescan: bool = RESCAN_OPTION,
    as_json: bool = JSON_OPTION,
):
    """Imports, exports and risk level of one file."""
    orchestrator = _open(root, rescan)
    path = _require_node(orchestrator, file)
    file_node = orchestrator.node(path)
    dependencies = sorted(orchestrator.dependencies(path))
    dependents_ = sorted(orchestrator.dependents(path))

    if as_json:
        payload = file_node.to_dict()
        payload["dependent_count"] = len(dependents_)
        payload["dependency_count"] = len(dependencies)
        _echo_json(payload)
        return
    print_node(console, file_node, dependencies, dependents_, str(orchestrator.project_root))


@app.command("find")
def find(
    query: str = typer.Argument(..., help="Partial file path or module name."),
    root: Path = ROOT_OPTION,
    rescan: bool = RESCAN_OPTION,
):
    """Find files whose path contains QUERY."""
    orchestrator = _open(root, rescan)
    print_matches(console, orchestrator.find(query), query)


@app.command("init")
def init(
    path: Path = typer.Argument(Path("."), help="Project root."),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config."),
):
    """Write a default .whobreaks/config.toml."""
    root = _project_root(path)
    target = config.config_file(root)
    if target.exists() and not force:
        console.print(f"[yellow]Config already exists:[/yellow] {escape(str(target))}")
        console.print("[dim]Use --force to overwrite.[/dim]")
        raise typer.Exit(1)
    written = save_settings(root, ScanSettings())
    console.print(f"[green]✓[/green] Config written to {escape(str(written))}")


@app.command("graph")
def graph(
    root: Path = ROOT_OPTION,
    rescan: bool = RESCAN_OPTION,
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write JSON to this file."),
):
    """Print (or write) the full serialized graph."""
    orchestrator = _open(root, rescan)
    text = json.dumps(orchestrator.serialize(), indent=2)
    if output is None:
        typer.echo(text)
        return
    output.write_text(text, encoding="utf-8")
    console.print(f"[green]✓[/green] Graph written to {escape(str(output))}")


if __name__ == "__main__":
    app()
