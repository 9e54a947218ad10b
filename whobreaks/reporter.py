"""Rich terminal rendering for scan results and queries."""

from __future__ import annotations

import os
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .models import FileMatch, FileNode, GraphSummary, ImpactAnalysis
from .project import ScanResult

MAX_LISTED = 5
MAX_ORPHANS = 8
MAX_TRANSITIVE = 20


def _rel(path: str, project_root: str) -> str:
    return escape(os.path.relpath(path, project_root)) if path else ""


def _more(total: int, shown: int) -> Optional[str]:
    if total > shown:
        return f"[dim]... +{total - shown} more[/dim]"
    return None


def print_summary(console: Console, summary: GraphSummary, project_root: str) -> None:
    table = Table.grid(padding=(0, 2))
    table.add_column(style="dim")
    table.add_column(justify="right", style="bold")
    table.add_column(style="dim")

    deepest = ""
    if summary.max_depth_path:
        deepest = f"({_rel(summary.max_depth_path[-1], project_root)})"

    table.add_row("Files", f"{summary.total_files:,}", "")
    table.add_row("Edges", f"{summary.total_edges:,}", "")
    table.add_row("Avg depth", f"{summary.avg_depth:.1f}", "")
    table.add_row("Max depth", str(summary.max_depth), deepest)
    console.print(Panel(table, title="Summary", title_align="left", border_style="grey50", expand=False))


def print_issues(console: Console, summary: GraphSummary, project_root: str) -> None:
    if not summary.has_issues:
        console.print("[green]✓ No issues detected[/green]\n")
        return

    console.print("[bold]Issues found:[/bold]\n")

    cycles = summary.circular_dependencies
    if cycles:
        console.print(f"[red]Circular dependencies[/red] [dim]({len(cycles)})[/dim]")
        for cyc in cycles[:MAX_LISTED]:
            arrow = " ↔ " if len(cyc.files) == 2 else " → "
            console.print("   " + arrow.join(f"[cyan]{_rel(p, project_root)}[/cyan]" for p in cyc.cycle))
        more = _more(len(cycles), MAX_LISTED)
        if more:
            console.print("   " + more)
        console.print()

    if summary.orphan_files:
        console.print(
            f"[yellow]Orphan files[/yellow] [dim]imported by nothing ({len(summary.orphan_files)})[/dim]"
        )
        for path in summary.orphan_files[:MAX_ORPHANS]:
            console.print(f"   [dim]{_rel(path, project_root)}[/dim]")
        more = _more(len(summary.orphan_files), MAX_ORPHANS)
        if more:
            console.print("   " + more)
        console.print()

    if summary.god_modules:
        console.print(
            f"[red]God modules[/red] [dim]imported by 20+ files ({len(summary.god_modules)})[/dim]"
        )
        for god in summary.god_modules[:MAX_LISTED]:
            console.print(
                f"   [cyan]{_rel(god.path, project_root):<42}[/cyan] → "
                f"[yellow]{god.dependent_count} dependents[/yellow]"
            )
        console.print()

    if summary.high_impact_files:
        console.print("[red]High-impact files[/red] [dim]editing these affects the most files[/dim]")
        for item in summary.high_impact_files[:MAX_LISTED]:
            console.print(
                f"   [cyan]{_rel(item.path, project_root):<42}[/cyan] → "
                f"[yellow]{item.affected_count} files affected[/yellow]"
            )
        console.print()


def print_scan_result(
    console: Console,
    result: ScanResult,
    project_root: str,
    snapshot_path: Optional[str] = None,
) -> None:
    console.print(f"\n[bold]whobreaks[/bold] [dim]scanned {escape(project_root)}[/dim]")
    console.print(f"  Found [bold]{result.file_count:,}[/bold] files")
    console.print(f"  Analyzed in [bold]{result.elapsed_ms / 1000:.1f}s[/bold]\n")

    if result.file_count == 0:
        console.print("[yellow]No TypeScript/JavaScript files found.[/yellow]\n")
        return

    print_summary(console, result.summary, project_root)
    console.print()
    print_issues(console, result.summary, project_root)

    if snapshot_path:
        console.print(f"[green]Output:[/green] [dim]{escape(snapshot_path)}[/dim]\n")


def print_impact(console: Console, impact: ImpactAnalysis, project_root: str) -> None:
    rel_file = _rel(impact.file, project_root)
    if impact.total_affected == 0:
        console.print(f"Editing [cyan]{rel_file}[/cyan] affects 0 other files (safe to change).")
        return

    console.print(
        f"Editing [cyan]{rel_file}[/cyan] will affect [bold]{impact.total_affected}[/bold] files:\n"
    )
    console.print(f"[bold]Direct dependents[/bold] ({len(impact.direct_dependents)}):")
    for path in impact.direct_dependents:
        console.print(f"  - {_rel(path, project_root)}")

    console.print(f"\n[bold]Transitive dependents[/bold] ({len(impact.transitive_dependents)}):")
    for path in impact.transitive_dependents[:MAX_TRANSITIVE]:
        console.print(f"  - {_rel(path, project_root)}")
    more = _more(len(impact.transitive_dependents), MAX_TRANSITIVE)
    if more:
        console.print("  " + more)

    if impact.critical_exports:
        console.print(f"\n[yellow]High-usage exports:[/yellow] {', '.join(impact.critical_exports)}")


def risk_level(dependent_count: int) -> str:
    if dependent_count > 20:
        return "HIGH"
    if dependent_count > 5:
        return "MEDIUM"
    return "LOW"


def print_node(
    console: Console,
    node: FileNode,
    dependencies: List[str],
    dependents: List[str],
    project_root: str,
) -> None:
    imports_from = ", ".join(_rel(p, project_root) for p in dependencies) or "nothing"
    imported_by = ", ".join(_rel(p, project_root) for p in dependents) or "nothing"
    exports = ", ".join(f"{e.name} ({e.kind})" for e in node.exports) or "nothing"

    console.print(f"[bold]## {escape(node.relative_path)}[/bold]\n")
    console.print(f"Imports from ({len(dependencies)}): {imports_from}")
    console.print(f"Imported by ({len(dependents)}): {imported_by}")
    console.print(f"Exports: {exports}")
    console.print(f"Risk level: {risk_level(len(dependents))} ({len(dependents)} dependents)")
    console.print(f"Lines: {node.lines_of_code}")


def print_matches(console: Console, matches: List[FileMatch], query: str) -> None:
    if not matches:
        console.print(f"No files found matching: {escape(query)}")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("File", style="cyan")
    table.add_column("Dependents", justify="right")
    table.add_column("Exports")
    for match in matches:
        table.add_row(
            escape(match.node.relative_path),
            str(match.dependent_count),
            escape(", ".join(match.export_names)),
        )
    console.print(table)


def print_watch_event(console: Console, kind: str, path: str, project_root: str) -> None:
    icons = {"created": ("+", "green"), "modified": ("~", "yellow"), "deleted": ("-", "red")}
    icon, color = icons.get(kind, ("?", "white"))
    console.print(f"  [{color}]{icon}[/{color}] [dim]{_rel(path, project_root)}[/dim]")
