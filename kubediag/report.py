"""
kubediag - Reporting

Renders diagnostic runs as rich text or JSON. Findings are stored as
structured messages; this is where they become text.
"""

import json
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .diagnostics import Diagnostic, Finding, Level
from .runner import DiagnosticRun, summarize

LEVEL_STYLES = {
    Level.DEBUG: "dim",
    Level.INFO: "cyan",
    Level.WARNING: "yellow",
    Level.ERROR: "bold red",
}


def _finding_text(finding: Finding) -> Text:
    text = Text()
    text.append(f"[{finding.code}] ", style=LEVEL_STYLES[finding.level])
    text.append(f"{finding.level.label.upper():<7} ", style=LEVEL_STYLES[finding.level])
    text.append(finding.text.strip())
    return text


def render_text(
    runs: List[DiagnosticRun],
    console: Optional[Console] = None,
    min_level: Level = Level.INFO,
) -> None:
    """Print each run as a panel followed by a summary line."""
    console = console or Console()

    for run in runs:
        if run.skipped:
            console.print(Panel(
                Text(str(run.reason) if run.reason else "Skipped", style="dim"),
                title=f"[dim]{run.name}[/dim] - skipped",
                border_style="dim",
            ))
            continue

        shown = [f for f in run.result.findings if f.level >= min_level]
        body = Text("\n").join(_finding_text(f) for f in shown) if shown else Text("No findings", style="dim")
        if run.failed:
            title, border = f"[bold red]{run.name}[/bold red] - failed", "red"
        elif run.result.warnings:
            title, border = f"[yellow]{run.name}[/yellow] - warnings", "yellow"
        else:
            title, border = f"[green]{run.name}[/green] - passed", "green"

        console.print(Panel(body, title=title, subtitle=run.description, border_style=border))

    summary = summarize(runs)
    console.print(
        f"[bold]Summary:[/bold] {summary['total']} diagnostics, "
        f"[green]{summary['passed']} passed[/green], "
        f"[red]{summary['failed']} failed[/red], "
        f"[dim]{summary['skipped']} skipped[/dim] "
        f"({summary['findings']['error']} errors, {summary['findings']['warning']} warnings)"
    )


def render_json(runs: List[DiagnosticRun], min_level: Level = Level.DEBUG) -> str:
    """Serialize runs and their summary as JSON."""
    return json.dumps(
        {
            "summary": summarize(runs),
            "diagnostics": [run.to_dict(min_level) for run in runs],
        },
        indent=2,
    )


def render_catalog(diagnostics: List[Diagnostic], console: Optional[Console] = None) -> None:
    """Print the available diagnostics and whether each can run."""
    console = console or Console()

    table = Table(title="Diagnostics")
    table.add_column("Name", style="bold")
    table.add_column("Description")
    table.add_column("Can run")

    for diagnostic in diagnostics:
        can_run, reason = diagnostic.can_run()
        status = "[green]yes[/green]" if can_run else f"[yellow]no[/yellow] ({reason})"
        table.add_row(diagnostic.name, diagnostic.description, status)

    console.print(table)
