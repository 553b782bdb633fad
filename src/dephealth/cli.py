"""CLI entry point for dephealth."""

import json
import logging
from pathlib import Path

# Load .env file if it exists
from dotenv import load_dotenv
load_dotenv()

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from dephealth.config.loader import (
    DEFAULT_CONFIG_FILENAME,
    apply_settings,
    load_settings,
    write_config_template,
)
from dephealth.errors import DependencyHealthError
from dephealth.models.schemas import OutputScale
from dephealth.records import load_records
from dephealth.report import render_breakdown, render_report, report_to_json
from dephealth.scoring.batch import DEFAULT_MAX_WORKERS, score_records
from dephealth.scoring.registry import METRICS

app = typer.Typer(help="Dependency health scoring tool.")

console = Console()


def _configure_logging(verbose: bool) -> None:
    """Route log records through rich, WARNING by default and DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _parse_assignments(values: list[str] | None, option: str) -> dict[str, float]:
    """Parse repeated ``name=value`` options into a mapping."""
    parsed: dict[str, float] = {}
    for item in values or []:
        name, sep, raw = item.partition("=")
        try:
            if not sep or not name.strip():
                raise ValueError
            parsed[name.strip()] = float(raw)
        except ValueError:
            console.print(f"[red]Invalid {option} '{item}', expected name=number[/red]")
            raise typer.Exit(1)
    return parsed


def _cli_values(
    config_file: Path | None,
    github_token: str | None = None,
    gitlab_token: str | None = None,
    bitbucket_token: str | None = None,
    preset: str | None = None,
    weights: list[str] | None = None,
    boosts: list[str] | None = None,
    scale: OutputScale | None = None,
) -> dict:
    """Collect CLI options into the shape ``load_settings`` expects."""
    scoring: dict = {}
    if weights:
        scoring["weights"] = _parse_assignments(weights, "--weight")
    if boosts:
        scoring["boosters"] = _parse_assignments(boosts, "--boost")
    if scale:
        scoring["scale"] = scale.value

    return {
        "config_file": str(config_file) if config_file else None,
        "github_token": github_token,
        "gitlab_token": gitlab_token,
        "bitbucket_token": bitbucket_token,
        "preset": preset,
        "scoring": scoring,
    }


@app.command()
def score(
    records_file: Path = typer.Argument(..., help="JSON file of metric records"),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Config file (JSON)"),
    preset: str | None = typer.Option(None, "--preset", "-p", help="Named weight set"),
    weight: list[str] | None = typer.Option(None, "--weight", "-W", help="Metric weight, name=value"),
    boost: list[str] | None = typer.Option(None, "--boost", "-B", help="Metric booster, name=value"),
    scale: OutputScale | None = typer.Option(None, "--scale", help="Output scale"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output JSON file"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Show per-metric breakdowns"),
    workers: int = typer.Option(DEFAULT_MAX_WORKERS, "--workers", "-w", help="Parallel scoring workers"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Score dependencies from a file of collected metric records."""
    _configure_logging(verbose)

    cli_values = _cli_values(config_file, preset=preset, weights=weight, boosts=boost, scale=scale)

    try:
        settings = load_settings(cli_values)
        records = load_records(records_file)
    except DependencyHealthError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if not records:
        console.print("[red]No dependencies found in records file[/red]")
        raise typer.Exit(1)

    # Finalize configuration before any parallel scoring begins
    config = apply_settings(settings)

    console.print(f"[cyan]Analyzing {len(records)} packages...[/cyan]")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Scoring...", total=len(records))
        results = score_records(
            records,
            config,
            max_workers=workers,
            on_scored=lambda _: progress.advance(task),
        )

    console.print()
    render_report(results, console)

    if debug:
        for package in results:
            console.print()
            render_breakdown(package, console)

    fallbacks = [p.name for p in results if p.breakdown.fallback]
    if fallbacks:
        console.print(f"[yellow]Total weight is zero for: {', '.join(fallbacks)}[/yellow]")

    console.print(f"\n[bold green]Analysis complete![/bold green] Scored {len(results)} packages")

    if output:
        output.write_text(json.dumps(report_to_json(results), indent=2, default=str))
        console.print(f"[green]Saved to {output}[/green]")


@app.command()
def init_config(
    file_name: Path = typer.Argument(Path(DEFAULT_CONFIG_FILENAME), help="Config file to create"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
) -> None:
    """Generate a configuration template file."""
    try:
        path = write_config_template(file_name, force=force)
    except DependencyHealthError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Configuration template created: {path}[/green]")
    console.print("Edit the file to customize your settings")
    console.print(f"Run: dephealth score <records.json> --config {path}")


@app.command()
def show_config(
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Config file (JSON)"),
    github_token: str | None = typer.Option(None, "--github-token", help="GitHub API token"),
    gitlab_token: str | None = typer.Option(None, "--gitlab-token", help="GitLab API token"),
    bitbucket_token: str | None = typer.Option(None, "--bitbucket-token", help="Bitbucket API token"),
    preset: str | None = typer.Option(None, "--preset", "-p", help="Named weight set"),
) -> None:
    """Show the effective configuration after applying precedence rules."""
    try:
        settings = load_settings(
            _cli_values(config_file, github_token, gitlab_token, bitbucket_token, preset)
        )
    except DependencyHealthError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    token_table = Table(title="Tokens", show_header=False, box=None)
    token_table.add_column("Platform", style="bold")
    token_table.add_column("Status")
    for platform, token in settings.tokens.model_dump().items():
        token_table.add_row(platform, "[green]set[/green]" if token else "[dim]-[/dim]")

    console.print(f"[bold]Config file:[/bold] {settings.config_file or '-'}")
    console.print(f"[bold]Weight preset:[/bold] {settings.preset}")
    console.print(token_table)
    console.print()
    console.print("[bold]Scoring:[/bold]")
    console.print_json(data=settings.scoring.model_dump(mode="json"))


@app.command()
def metrics() -> None:
    """List the metrics that can be weighted."""
    from dephealth.defaults import WEIGHT_PRESETS

    table = Table(title="Available Metrics")
    table.add_column("Metric", style="cyan")
    table.add_column("Description")
    for preset in WEIGHT_PRESETS:
        table.add_column(f"{preset.title()} Weight", justify="right", style="green")

    for name, spec in METRICS.items():
        weights = [preset_weights.get(name) for preset_weights in WEIGHT_PRESETS.values()]
        table.add_row(
            name,
            spec.description,
            *(f"{weight:.2f}" if weight is not None else "-" for weight in weights),
        )

    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    from dephealth import __version__

    console.print(f"dephealth v{__version__}")


if __name__ == "__main__":
    app()
