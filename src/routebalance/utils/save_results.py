"""
save_results.py – centralised persistence for refinement runs

This module is the **single exit point** for anything that hits disk during or
after a run: per-iteration artifacts, the final report and the iteration
history table.  Everything else in the package stays side-effect free.

Layout under the results directory::

    iteration_<n>/input.json       mutated instance submitted at iteration n
    iteration_<n>/solution.json    solution the oracle returned
    iteration_<n>/strategies.json  strategies applied to build the instance
    final_report.json              the FinalReport
    iteration_history.{csv,xlsx}   optional tabular history
"""

import json
import shutil
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from routebalance.core_types import ProblemInstance, RouteSolution
from routebalance.refinement.report import FinalReport
from routebalance.strategy.types import RefinementStrategy, strategies_to_dicts
from routebalance.utils.logging import RouteBalanceLogger
from routebalance.utils.time_measurement import TimeMeasurement

logger = RouteBalanceLogger.get_logger(__name__)

FINAL_REPORT_NAME = "final_report.json"
HISTORY_NAME = "iteration_history"


class NumpyEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, Path):
            return str(obj)
        return super().default(obj)


def write_json(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(data, f, cls=NumpyEncoder, indent=2)
    return path


def read_json(path: str | Path) -> Any:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    with open(path) as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in {path}: {exc}") from exc


def clear_output_dir(results_dir: Path) -> None:
    """Remove previous run artifacts and recreate an empty directory."""
    if results_dir.exists():
        shutil.rmtree(results_dir)
        logger.info(f"Cleared output directory {results_dir}")
    results_dir.mkdir(parents=True, exist_ok=True)


def save_iteration_artifacts(
    results_dir: Path,
    iteration: int,
    instance: ProblemInstance,
    solution: RouteSolution,
    strategies: list[RefinementStrategy],
) -> Path:
    iteration_dir = results_dir / f"iteration_{iteration}"
    write_json(iteration_dir / "input.json", instance.to_dict())
    write_json(iteration_dir / "solution.json", solution.to_dict())
    write_json(iteration_dir / "strategies.json", strategies_to_dicts(strategies))
    logger.debug(f"Saved iteration {iteration} files to {iteration_dir}")
    return iteration_dir


class IterationArtifactWriter:
    """Callable handed to the controller to persist each adopted iteration."""

    def __init__(self, results_dir: Path):
        self.results_dir = results_dir

    def __call__(
        self,
        iteration: int,
        instance: ProblemInstance,
        solution: RouteSolution,
        strategies: list[RefinementStrategy],
    ) -> None:
        save_iteration_artifacts(self.results_dir, iteration, instance, solution, strategies)


def _time_rows(measurements: list[TimeMeasurement]) -> list[dict[str, Any]]:
    return [
        {
            "span": m.span_name,
            "wall_time": m.wall_time,
            "process_user_time": m.process_user_time,
            "process_system_time": m.process_system_time,
        }
        for m in measurements
    ]


def save_final_report(
    report: FinalReport,
    results_dir: Path,
    format: str = "json",
    time_measurements: list[TimeMeasurement] | None = None,
) -> Path:
    """Write ``final_report.json`` plus, for csv/xlsx, the iteration history.

    Returns the path of the JSON report.
    """
    data = report.to_dict()
    if time_measurements:
        data["time_measurements"] = _time_rows(time_measurements)
    report_path = write_json(results_dir / FINAL_REPORT_NAME, data)

    history_df = pd.DataFrame(report.iteration_history)
    if format == "csv":
        history_df.to_csv(results_dir / f"{HISTORY_NAME}.csv", index=False)
    elif format == "xlsx":
        _write_to_excel(results_dir / f"{HISTORY_NAME}.xlsx", report, history_df, time_measurements)

    logger.info(f"Final report saved to {report_path}")
    return report_path


def _write_to_excel(
    filename: Path,
    report: FinalReport,
    history_df: pd.DataFrame,
    time_measurements: list[TimeMeasurement] | None,
) -> None:
    with pd.ExcelWriter(filename, engine="openpyxl") as writer:
        pd.DataFrame(
            list(report.summary.items()), columns=["Metric", "Value"]
        ).to_excel(writer, sheet_name="Summary", index=False)
        history_df.to_excel(writer, sheet_name="Iterations", index=False)
        if report.attempt_failures:
            pd.DataFrame(report.attempt_failures).to_excel(
                writer, sheet_name="Attempt Failures", index=False
            )
        if report.recommendations:
            pd.DataFrame(
                [
                    {
                        "Priority": r.get("priority"),
                        "Description": r.get("description"),
                        "Actions": "; ".join(r.get("actions", [])),
                    }
                    for r in report.recommendations
                ]
            ).to_excel(writer, sheet_name="Recommendations", index=False)
        if report.balancing_suggestions:
            pd.DataFrame(
                [
                    {
                        "Priority": s["priority"],
                        "Description": s["description"],
                        "Vehicles": ", ".join(str(v) for v in s["vehicles"]),
                    }
                    for s in report.balancing_suggestions
                ]
            ).to_excel(writer, sheet_name="Balancing Suggestions", index=False)
        if time_measurements:
            pd.DataFrame(_time_rows(time_measurements)).to_excel(
                writer, sheet_name="Time Measurements", index=False
            )
