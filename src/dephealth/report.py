"""Console and JSON rendering of dependency health results."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from dephealth.models.schemas import OutputScale, ScoredPackage
from dephealth.scoring.registry import get_metric


def _unit(score: float | int, scale: OutputScale) -> float:
    """Express a final score in [0, 1] regardless of its scale."""
    return score / 100 if scale == OutputScale.PERCENT else float(score)


def score_color(unit_score: float) -> str:
    """Rich color for a [0, 1] score."""
    if unit_score >= 0.8:
        return "green"
    if unit_score >= 0.6:
        return "yellow"
    return "red"


def format_score(score: float | int, scale: OutputScale) -> str:
    """Format a final score for display."""
    if scale == OutputScale.PERCENT:
        return f"{score:.0f}"
    return f"{score:.2f}"


def score_bar(unit_score: float, width: int = 20) -> str:
    """Create a visual score bar."""
    filled = int(unit_score * width)
    empty = width - filled
    color = score_color(unit_score)
    return f"[{color}]{'█' * filled}[/{color}][dim]{'░' * empty}[/dim]"


def sort_by_score(packages: list[ScoredPackage]) -> list[ScoredPackage]:
    """Healthiest first; ties broken by name for stable output."""
    return sorted(packages, key=lambda p: (-p.breakdown.raw, p.name))


def render_report(packages: list[ScoredPackage], console: Console) -> None:
    """Print the dependency health table."""
    if not packages:
        console.print("[yellow]No packages to display[/yellow]")
        return

    metrics: list[str] = []
    for package in packages:
        for name in package.breakdown.per_metric:
            if name not in metrics:
                metrics.append(name)

    table = Table(title="Dependency Health Report")
    table.add_column("Package", style="bold cyan")
    table.add_column("Current", style="dim")
    table.add_column("Latest", style="dim")
    for name in metrics:
        table.add_column(name.replace("_", " ").title(), justify="right")
    table.add_column("Overall", justify="right", style="bold")

    for package in sort_by_score(packages):
        breakdown = package.breakdown
        cells = [package.name or "-", package.record.current_version or "-", package.record.latest_version]
        for name in metrics:
            if name in breakdown.per_metric:
                value = breakdown.per_metric[name]
                color = score_color(value)
                cells.append(f"[{color}]{value:.2f}[/{color}]")
            else:
                cells.append("[dim]-[/dim]")
        color = score_color(_unit(breakdown.final, breakdown.scale))
        cells.append(f"[{color}]{format_score(breakdown.final, breakdown.scale)}[/{color}]")
        table.add_row(*cells)

    console.print(table)


def render_breakdown(package: ScoredPackage, console: Console) -> None:
    """Print every intermediate value behind one package's score."""
    breakdown = package.breakdown
    unit_score = _unit(breakdown.final, breakdown.scale)
    color = score_color(unit_score)
    suffix = " / 100" if breakdown.scale == OutputScale.PERCENT else ""

    console.print(
        Panel(
            f"[bold][{color}]{format_score(breakdown.final, breakdown.scale)}[/{color}][/bold]{suffix}"
            f"  [dim]{breakdown.strategy.value}[/dim]",
            title=f"{package.name or 'package'} {package.record.current_version}".strip(),
            expand=False,
        )
    )

    table = Table(show_header=True)
    table.add_column("Metric", style="bold")
    table.add_column("Score", justify="right")
    table.add_column("Weight", justify="right", style="dim")
    table.add_column("Contribution", justify="right")
    table.add_column("Bar", width=20)

    for name, value in breakdown.per_metric.items():
        spec = get_metric(name)
        label = spec.description if spec else name
        table.add_row(
            f"{name} [dim]{label}[/dim]",
            f"[{score_color(value)}]{value:.3f}[/{score_color(value)}]",
            f"{breakdown.weights.get(name, 0.0):.1%}",
            f"{breakdown.weighted.get(name, 0.0):.3f}",
            score_bar(value),
        )

    console.print(table)

    if breakdown.fallback:
        console.print("[yellow]Total weight is zero; score fell back to 0.[/yellow]")
    for warning in breakdown.warnings:
        console.print(f"  [yellow]![/yellow] {warning}")


def report_to_json(packages: list[ScoredPackage]) -> dict[str, Any]:
    """Serializable report for ``--output``."""
    ordered = sort_by_score(packages)
    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "package_count": len(ordered),
        "packages": [
            {
                "name": p.name,
                "score": p.breakdown.final,
                "record": p.record.model_dump(mode="json"),
                "breakdown": p.breakdown.model_dump(mode="json"),
            }
            for p in ordered
        ],
    }
