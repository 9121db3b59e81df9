"""
Command-line interface for routebalance using Typer.
"""

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from routebalance import __version__
from routebalance.api import analyze as api_analyze
from routebalance.api import refine as api_refine
from routebalance.config import load_routebalance_params
from routebalance.refinement.report import FinalReport, ReportTag
from routebalance.utils.logging import (
    LogLevel,
    log_error,
    log_success,
    log_warning,
    setup_logging,
)

app = typer.Typer(
    help="routebalance: iterative load-balance refinement for vehicle routing solutions",
    add_completion=False,
)
console = Console()

_TAG_STYLE = {
    ReportTag.SUCCESS: "green",
    ReportTag.WARNING: "yellow",
    ReportTag.FAILED: "red",
}


def _fmt(value, suffix: str = "") -> str:
    if value is None:
        return "-"
    if isinstance(value, float):
        return f"{value:,.1f}{suffix}"
    return f"{value}{suffix}"


def _print_summary(report: FinalReport) -> None:
    summary = report.summary
    table = Table(title="Refinement Results", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Status", report.tag.value)
    table.add_row("Run Status", report.status.value if report.status else "-")
    table.add_row("Successful Iterations", str(summary["successful_iterations"]))
    table.add_row("Total Attempts", str(summary["total_attempts"]))
    table.add_row("Target Min Load", _fmt(float(summary["target_min_load"])))
    table.add_row("Initial Compliance", _fmt(summary["initial_compliance_rate"], "%"))
    table.add_row("Final Compliance", _fmt(summary["final_compliance_rate"], "%"))
    table.add_row("Improvement", _fmt(summary["improvement"], "%"))
    table.add_row("Best Iteration", _fmt(summary["best_iteration"]))
    table.add_row("Constraints Met", "yes" if summary["constraints_met"] else "no")
    console.print(table)


def _print_history(report: FinalReport) -> None:
    if not report.iteration_history:
        return
    table = Table(title="Iteration History", show_header=True)
    table.add_column("Iter", justify="right")
    table.add_column("Type")
    table.add_column("Routes", justify="right")
    table.add_column("Compliance", justify="right")
    table.add_column("Load Gap", justify="right")
    table.add_column("Objective")
    table.add_column("Vehicles")
    table.add_column("Time Window")

    for row in report.iteration_history:
        table.add_row(
            str(row["iteration"]),
            "Relaxed" if row["relaxed"] else "Regular",
            str(row["routes"]),
            _fmt(row["compliance_rate"], "%"),
            _fmt(row["total_load_gap"]),
            row["objective"] or "-",
            row["vehicles"] or "-",
            row["time_window"] or "-",
        )
    console.print(table)


def _print_recommendations(recommendations: list[dict]) -> None:
    for rec in recommendations:
        body = rec["description"]
        if rec.get("actions"):
            body += "\n" + "\n".join(f"  - {a}" for a in rec["actions"])
        console.print(
            Panel(body, title=f"{rec['type']} ({rec['priority']})", border_style="yellow")
        )


def _print_suggestions(suggestions: list[dict]) -> None:
    if not suggestions:
        return
    table = Table(title="Load Balancing Suggestions", show_header=True)
    table.add_column("Priority")
    table.add_column("Suggestion")
    table.add_column("Vehicles")
    for s in suggestions:
        table.add_row(s["priority"], s["description"], ", ".join(str(v) for v in s["vehicles"]))
    console.print(table)


@app.command()
def refine(
    input: Path = typer.Option(
        ..., "--input", "-i", help="Path to the problem instance JSON file"
    ),
    solution: Path = typer.Option(
        ..., "--solution", "-s", help="Path to the initial solution JSON file"
    ),
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to configuration YAML file"
    ),
    min_load: float | None = typer.Option(
        None, "--min-load", help="Target minimum load per route"
    ),
    max_iterations: int | None = typer.Option(
        None, "--max-iterations", help="Maximum number of refinement iterations"
    ),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output directory"),
    format: str | None = typer.Option(
        None, "--format", "-f", help="History table format (json, csv, xlsx)"
    ),
    mock: bool = typer.Option(
        False, "--mock", help="Use the offline mock oracle instead of the API"
    ),
    clean: bool = typer.Option(
        False, "--clean", help="Clear the output directory before running"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose output"
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Minimal output (errors only)"
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug output"),
) -> None:
    """
    Refine a routing solution until every route meets the minimum load.

    Each iteration mutates the problem instance, submits it to the oracle and
    keeps the best solution seen. Iteration artifacts and the final report are
    written to the output directory.
    """
    _setup_logging_from_flags(verbose, quiet, debug)

    for label, path in (("Input", input), ("Solution", solution)):
        if not path.exists():
            log_error(f"{label} file not found: {path}")
            raise typer.Exit(1)

    if config and not config.exists():
        log_error(f"Config file not found: {config}")
        raise typer.Exit(1)

    if format is not None and format not in ["xlsx", "json", "csv"]:
        log_error("Invalid format. Choose 'xlsx', 'json', or 'csv'")
        raise typer.Exit(1)

    if config is not None:
        try:
            load_routebalance_params(config)
        except Exception as e:
            log_error(str(e))
            raise typer.Exit(1)

    try:
        result = api_refine(
            input=input,
            solution=solution,
            config=config,
            output_dir=output,
            format=format,
            min_load=min_load,
            max_iterations=max_iterations,
            mock=mock,
            clean=clean or None,
            verbose=verbose,
            debug=debug,
        )
    except FileNotFoundError as e:
        log_error(str(e))
        raise typer.Exit(1)
    except ValueError as e:
        log_error(str(e))
        raise typer.Exit(1)
    except Exception as e:
        log_error(f"Unexpected error: {e}")
        if debug:
            console.print_exception()
        raise typer.Exit(1)

    report = result.report
    if not quiet:
        _print_summary(report)
        _print_history(report)
        _print_recommendations(report.recommendations)
        _print_suggestions(report.balancing_suggestions)

    style = _TAG_STYLE[report.tag]
    if report.note:
        console.print(f"[{style}]{report.note}[/{style}]")

    if report.tag is ReportTag.FAILED:
        log_error("No acceptable solution found")
        raise typer.Exit(2)
    if report.tag is ReportTag.WARNING:
        log_warning("Best solution does not meet all constraints")
    else:
        log_success("All constraints met")
    if result.report_path is not None:
        log_success(f"Results saved to {result.params.io.results_dir}/")


@app.command()
def analyze(
    solution: Path = typer.Argument(..., help="Path to a solution JSON file"),
    input: Path | None = typer.Option(
        None, "--input", "-i", help="Problem instance JSON file, for vehicle capacities"
    ),
    min_load: float = typer.Option(
        12000, "--min-load", help="Target minimum load per route"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the analysis as JSON"),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose output"
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Minimal output (errors only)"
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug output"),
) -> None:
    """
    Analyze load balance and constraint compliance of a single solution.
    """
    _setup_logging_from_flags(verbose, quiet, debug)

    for label, path in (("Solution", solution), ("Input", input)):
        if path is not None and not path.exists():
            log_error(f"{label} file not found: {path}")
            raise typer.Exit(1)

    try:
        analysis = api_analyze(solution, min_load=min_load, input=input)
    except ValueError as e:
        log_error(str(e))
        raise typer.Exit(1)

    if as_json:
        console.print_json(json.dumps(analysis))
        return

    metrics = analysis["metrics"]
    table = Table(title="Load Analysis", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Routes", str(metrics["total_routes"]))
    table.add_row("Jobs", str(metrics["total_jobs"]))
    table.add_row("Unassigned", str(metrics["unassigned"]))
    table.add_row("Compliance", _fmt(metrics.get("compliance_rate"), "%"))
    table.add_row("Routes Below Target", _fmt(metrics.get("routes_below_target")))
    table.add_row("Total Load Gap", _fmt(metrics.get("total_load_gap")))
    table.add_row("Average Gap", _fmt(metrics.get("average_gap")))
    distribution = metrics.get("distribution")
    if distribution:
        table.add_row("Average Load", _fmt(distribution["mean"]))
        table.add_row(
            "Balance",
            f"{distribution['balance_score']:.1f} ({distribution['balance_interpretation']})",
        )
    console.print(table)

    verdict = analysis["constraint_check"]
    if verdict["passed"]:
        log_success("All constraints met")
    else:
        log_warning(f"{len(verdict['violations'])} constraint violations")
        _print_recommendations(analysis["recommendations"])
    _print_suggestions(analysis["balancing_suggestions"])


@app.command()
def version() -> None:
    """
    Show the routebalance version.
    """
    console.print(f"routebalance version {__version__}")


def _setup_logging_from_flags(
    verbose: bool = False, quiet: bool = False, debug: bool = False
):
    """Setup logging based on CLI flags or environment variable."""
    level_from_flags: LogLevel | None = None
    if debug:
        level_from_flags = LogLevel.DEBUG
    elif verbose:
        level_from_flags = LogLevel.VERBOSE
    elif quiet:
        level_from_flags = LogLevel.QUIET

    if level_from_flags is not None:
        setup_logging(level_from_flags)
    else:
        setup_logging()


if __name__ == "__main__":
    app()
