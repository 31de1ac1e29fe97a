"""
kubediag - CLI Interface

Command-line interface for running cluster and host diagnostics.
"""

import logging
import time
from typing import List, Optional, Sequence

import click
from rich.console import Console

from . import __version__, config
from .cluster import ClusterClient, ClusterClientError, ClusterRouter
from .diagnostics import Diagnostic, Level
from .host import MasterConfigCheck, NodeConfigCheck
from .report import render_catalog, render_json, render_text
from .runner import run_diagnostics
from .scheduler import DiagnosticScheduler

logger = logging.getLogger(__name__)

console = Console()

LEVEL_CHOICES = [level.label for level in Level]


def build_diagnostics(
    kubeconfig: Optional[str] = None,
    context: Optional[str] = None,
    node_config: Optional[str] = None,
    master_config: Optional[str] = None,
    router_name: str = config.ROUTER_NAME,
    router_namespace: str = config.ROUTER_NAMESPACE,
    router_kind: str = config.ROUTER_KIND,
    only: Sequence[str] = (),
) -> List[Diagnostic]:
    """Build every known diagnostic, optionally restricted to ``only``."""
    try:
        cluster = ClusterClient.from_kubeconfig(kubeconfig or None, context or None)
    except ClusterClientError as e:
        logger.warning(f"Cluster diagnostics unavailable: {e}")
        cluster = None

    diagnostics: List[Diagnostic] = [
        NodeConfigCheck(node_config),
        MasterConfigCheck(master_config),
        ClusterRouter(
            cluster,
            router_name=router_name,
            namespace=router_namespace,
            workload_kind=router_kind,
        ),
    ]

    if only:
        wanted = {name.lower() for name in only}
        diagnostics = [d for d in diagnostics if d.name.lower() in wanted]
    return diagnostics


def _configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=config.LOG_FORMAT)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("kubernetes").setLevel(logging.WARNING)


common_options = [
    click.option("--kubeconfig", default=config.KUBECONFIG, help="Path to kubeconfig (default: in-cluster, then ~/.kube/config)"),
    click.option("--context", default=config.KUBE_CONTEXT, help="Kubeconfig context to use"),
    click.option("--node-config", default=config.NODE_CONFIG_FILE, help="Node config file to check"),
    click.option("--master-config", default=config.MASTER_CONFIG_FILE, help="Master config file to check"),
    click.option("--router-name", default=config.ROUTER_NAME, show_default=True, help="Router workload name"),
    click.option("--router-namespace", default=config.ROUTER_NAMESPACE, show_default=True, help="Router namespace"),
    click.option(
        "--router-kind",
        type=click.Choice(["deployment", "deploymentconfig"]),
        default=config.ROUTER_KIND,
        show_default=True,
        help="Router workload kind",
    ),
    click.option("--diagnostic", "-d", "only", multiple=True, help="Only run the named diagnostic (repeatable)"),
]


def with_common_options(func):
    for option in reversed(common_options):
        func = option(func)
    return func


@click.group()
@click.version_option(version=__version__)
@click.option("--log-level", default=config.LOG_LEVEL, help="Logging level")
def cli(log_level: str):
    """kubediag - health diagnostics for Kubernetes clusters and hosts."""
    _configure_logging(log_level)


@cli.command("list")
@with_common_options
def list_diagnostics(**options):
    """List the available diagnostics."""
    render_catalog(build_diagnostics(**options), console=console)


@cli.command()
@with_common_options
@click.option("--level", "-l", type=click.Choice(LEVEL_CHOICES), default="info", show_default=True, help="Lowest finding level to show")
@click.option("--output", "-o", type=click.Choice(["text", "json"]), default="text", show_default=True, help="Output format")
def run(level: str, output: str, **options):
    """Run diagnostics once and report the findings."""
    diagnostics = build_diagnostics(**options)
    if not diagnostics:
        console.print("[red]No diagnostics matched[/red]")
        raise SystemExit(2)

    min_level = Level.parse(level)
    if output == "json":
        runs = run_diagnostics(diagnostics)
        click.echo(render_json(runs, min_level=min_level))
    else:
        with console.status("[bold green]Running diagnostics...[/bold green]"):
            runs = run_diagnostics(diagnostics)
        render_text(runs, console=console, min_level=min_level)

    if any(r.failed for r in runs):
        raise SystemExit(1)


@cli.command()
@with_common_options
@click.option("--interval", "-i", type=int, default=config.WATCH_INTERVAL, show_default=True, help="Seconds between runs")
@click.option("--level", "-l", type=click.Choice(LEVEL_CHOICES), default="warning", show_default=True, help="Lowest finding level to show")
def watch(interval: int, level: str, **options):
    """Run diagnostics periodically until interrupted."""
    min_level = Level.parse(level)

    scheduler = DiagnosticScheduler(lambda: build_diagnostics(**options), interval_seconds=interval)
    scheduler.on_run_complete = lambda runs: render_text(runs, console=console, min_level=min_level)
    scheduler.start()

    console.print(f"[dim]Running diagnostics every {interval}s. Press Ctrl+C to stop.[/dim]")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("\n[dim]Stopping.[/dim]")
    finally:
        scheduler.stop()


def main():
    cli()


if __name__ == "__main__":
    main()
