"""PressProbe CLI - Typer-based command line interface."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from pressprobe import USAGE_NOTICE, __version__
from pressprobe.config import EngineSettings, build_settings, load_config
from pressprobe.engine import FingerprintEngine, FingerprintReport
from pressprobe.events import ConsoleHook
from pressprobe.exceptions import ConfigError, TargetError
from pressprobe.models import ConfidenceLevel, EntitySnapshot

app = typer.Typer(
    name="pressprobe",
    help="PressProbe - Outside-in WordPress fingerprinting",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()

PROFILES = ["fast", "balanced", "thorough"]

CONFIDENCE_STYLES = {
    ConfidenceLevel.HIGH: "green",
    ConfidenceLevel.MEDIUM: "yellow",
    ConfidenceLevel.LOW: "dim",
}


def show_banner() -> None:
    """Display the PressProbe banner."""
    console.print(
        Panel(
            "[bold]Platform, theme and plugin fingerprinting for WordPress sites[/]",
            title=f"[bold cyan]PressProbe v{__version__}[/]",
            border_style="cyan",
        )
    )


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


@app.command()
def scan(
    target: Annotated[str, typer.Option("--target", "-t", help="Target URL/domain to fingerprint")],
    profile: Annotated[str, typer.Option("--profile", "-p", help="Scan profile")] = "balanced",
    config_file: Annotated[Path | None, typer.Option("--config", help="Custom config file")] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Print the report as JSON")] = False,
    budget: Annotated[
        int | None, typer.Option("--budget", help="Overall time budget in milliseconds")
    ] = None,
    no_outdated: Annotated[
        bool, typer.Option("--no-outdated", help="Skip WordPress.org latest-version lookups")
    ] = False,
    output: Annotated[Path | None, typer.Option("--output", "-o", help="Write JSON report to file")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show probe-level progress")] = False,
) -> None:
    """
    Fingerprint a WordPress site: core version, active theme, plugins.

    Only public files are read, with GET/HEAD and byte-range requests.
    """
    _setup_logging(verbose)

    if profile not in PROFILES:
        console.print(f"[red]Error:[/] Unknown profile '{profile}'")
        console.print(f"Available: {', '.join(PROFILES)}")
        raise typer.Exit(2)

    try:
        config = load_config(config_file)
        settings = build_settings(
            config,
            profile,
            {"budget_ms": budget, "check_outdated": False if no_outdated else None},
        )
    except ConfigError as e:
        console.print(f"[red]Error loading config:[/] {e.message}")
        for error in e.details.get("errors", []):
            location = ".".join(str(part) for part in error.get("loc", ()))
            console.print(f"  • {location}: {error.get('msg')}")
        raise typer.Exit(2)

    if not json_output:
        show_banner()
        console.print(USAGE_NOTICE)
        console.print(f"[bold]Target:[/] {target}")
        console.print(f"[bold]Profile:[/] {profile} ({settings.budget_ms:.0f} ms budget)\n")

    try:
        report = asyncio.run(_run_scan(target, settings, verbose, quiet=json_output))
    except KeyboardInterrupt:
        console.print("\n[yellow]Scan interrupted by user.[/]")
        raise typer.Exit(130)
    except TargetError as e:
        console.print(f"[red]Error:[/] {e.message}")
        raise typer.Exit(1)

    data = report.to_dict()
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(json.dumps(data, indent=2), encoding="utf-8")

    if json_output:
        print(json.dumps(data, indent=2))
        return

    render_report(report)
    if output:
        console.print(f"\n[bold]Report saved:[/] {output}")


async def _run_scan(target: str, settings: EngineSettings, verbose: bool, quiet: bool) -> FingerprintReport:
    """Run the engine, with a spinner unless output is machine-readable."""
    if quiet:
        async with FingerprintEngine(settings) as engine:
            return await engine.scan(target)

    hook = ConsoleHook(Console(stderr=True), verbose=verbose)
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("[cyan]Fingerprinting...", total=None)
        async with FingerprintEngine(settings, hook=hook) as engine:
            report = await engine.scan(target)
        progress.update(task, description="[green]✓ Done")
    return report


def _confidence(level: ConfidenceLevel) -> str:
    style = CONFIDENCE_STYLES[level]
    return f"[{style}]{level.value}[/]"


def _version_cell(entity: EntitySnapshot) -> str:
    version = entity.resolved_version or "-"
    if entity.is_outdated:
        return f"[red]{version}[/] (latest {entity.latest_version})"
    return version


def render_report(report: FingerprintReport) -> None:
    """Print the report as rich tables."""
    core = report.core_version
    summary = Table(title="Summary", show_header=False)
    summary.add_column("Field", style="cyan")
    summary.add_column("Value")
    summary.add_row("URL", report.url)
    summary.add_row("WordPress", "[green]yes[/]" if report.is_wordpress else "[yellow]not detected[/]")
    summary.add_row(
        "Core version",
        f"{core.version} ({core.method}, {_confidence(core.confidence_level)})" if core.version else "unknown",
    )
    summary.add_row("Run", f"{report.state.value} in {report.elapsed_ms:.0f} ms")
    if report.skipped:
        summary.add_row("Skipped", str(len(report.skipped)))
    console.print(summary)

    if report.themes:
        table = Table(title="Theme")
        table.add_column("Theme", style="cyan")
        table.add_column("Version")
        table.add_column("Confidence")
        table.add_column("Score", justify="right")
        for theme in report.themes:
            table.add_row(theme.display_name or theme.identity, _version_cell(theme), _confidence(theme.confidence_level), str(theme.score))
        console.print(table)

    if report.plugins:
        table = Table(title=f"Plugins ({len(report.plugins)})")
        table.add_column("Plugin", style="cyan")
        table.add_column("Version")
        table.add_column("Confidence")
        table.add_column("Score", justify="right")
        table.add_column("Methods", style="dim")
        for plugin in report.plugins:
            name = plugin.display_name or plugin.identity
            if plugin.display_name and plugin.display_name != plugin.identity:
                name = f"{plugin.display_name} [dim]({plugin.identity})[/]"
            table.add_row(
                name,
                _version_cell(plugin),
                _confidence(plugin.confidence_level),
                str(plugin.score),
                ", ".join(plugin.methods),
            )
        console.print(table)
    else:
        console.print("\n[dim]No plugins detected.[/]")

    outdated = [p for p in report.plugins + report.themes if p.is_outdated]
    if outdated:
        console.print(f"\n[bold red]{len(outdated)} outdated component(s)[/]")


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"PressProbe v{__version__}")


if __name__ == "__main__":
    app()
