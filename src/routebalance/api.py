"""
API facade for routebalance - provides a single entry point for programmatic usage.
"""

import dataclasses
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from routebalance.analysis.constraints import ConstraintSet, check_solution, recommendations
from routebalance.analysis.load import analyze_solution, suggest_balancing_strategies
from routebalance.config import load_routebalance_params
from routebalance.config.loader import default_config_path
from routebalance.config.params import RouteBalanceParams
from routebalance.core_types import ProblemInstance, RouteSolution
from routebalance.interfaces import Clock, Oracle
from routebalance.oracle import SystemClock, create_oracle
from routebalance.refinement.controller import RefinementController, RunState
from routebalance.refinement.report import FinalReport, build_final_report
from routebalance.utils.logging import (
    LogLevel,
    ProgressTracker,
    RouteBalanceLogger,
    log_warning,
    setup_logging,
)
from routebalance.utils.save_results import (
    IterationArtifactWriter,
    clear_output_dir,
    read_json,
    save_final_report,
)
from routebalance.utils.time_measurement import TimeMeasurement, TimeRecorder

logger = RouteBalanceLogger.get_logger("routebalance.api")


@dataclass
class RefinementResult:
    """Everything a caller may want after a run."""

    state: RunState
    report: FinalReport
    params: RouteBalanceParams
    time_measurements: list[TimeMeasurement]
    report_path: Path | None = None

    @property
    def best_solution(self) -> RouteSolution | None:
        return self.state.best.solution if self.state.best else None


def _load_instance(source: str | Path | dict[str, Any] | ProblemInstance) -> ProblemInstance:
    if isinstance(source, ProblemInstance):
        return source
    if isinstance(source, dict):
        return ProblemInstance.from_dict(source)
    return ProblemInstance.from_dict(read_json(source))


def _load_solution(source: str | Path | dict[str, Any] | RouteSolution) -> RouteSolution:
    if isinstance(source, RouteSolution):
        return source
    if isinstance(source, dict):
        return RouteSolution.from_dict(source)
    return RouteSolution.from_dict(read_json(source))


def _resolve_params(config: str | Path | RouteBalanceParams | None) -> RouteBalanceParams:
    if config is None:
        for p in (Path.cwd() / "routebalance.yaml", default_config_path()):
            if p.exists():
                return load_routebalance_params(p)
        raise FileNotFoundError(
            "No configuration file provided and no default config found."
        )
    if isinstance(config, RouteBalanceParams):
        return config

    config_path = Path(config)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path}\n"
            f"Please check the file path and ensure it exists."
        )
    try:
        return load_routebalance_params(config_path)
    except Exception as e:
        raise ValueError(
            f"Error loading configuration from {config_path}:\n{e!s}\n"
            f"Please check the YAML syntax and section keys."
        ) from e


def refine(
    input: str | Path | dict[str, Any] | ProblemInstance,
    solution: str | Path | dict[str, Any] | RouteSolution,
    config: str | Path | RouteBalanceParams | None = None,
    output_dir: str | Path | None = None,
    format: str | None = None,
    min_load: float | None = None,
    max_iterations: int | None = None,
    mock: bool = False,
    clean: bool | None = None,
    verbose: bool = False,
    debug: bool = False,
    save: bool = True,
    oracle: Oracle | None = None,
    clock: Clock | None = None,
) -> RefinementResult:
    """
    Refine an initial routing solution until every route carries the target load.

    Args:
        input: Problem instance - a JSON file path, a dict or a ``ProblemInstance``
        solution: Initial solution for that instance, in the same forms
        config: YAML path, ``RouteBalanceParams`` object, or None for defaults
        output_dir: Directory for iteration artifacts and the final report
        format: History table format - "json", "csv" or "xlsx"
        min_load: Override the target minimum load per route
        max_iterations: Override the iteration bound
        mock: Use the offline mock oracle instead of the HTTP backend
        clean: Clear ``output_dir`` before the run
        verbose: Enable verbose logging
        debug: Enable debug logging
        save: Write artifacts and the final report to disk
        oracle: Pre-built oracle (takes precedence over the configured backend)
        clock: Clock used for polling and rate limiting

    Returns:
        RefinementResult: terminal run state, final report and timings

    Raises:
        FileNotFoundError: If an input or config file doesn't exist
        ValueError: If inputs are malformed or the oracle cannot be created

    Example:
        >>> result = refine("input.json", "solution.json", mock=True, min_load=10000)
        >>> print(result.report.tag, result.report.summary["final_compliance_rate"])
    """
    time_recorder = TimeRecorder()

    with time_recorder.measure("global"):
        tracker = ProgressTracker(["Load inputs", "Refine", "Report"])

        with time_recorder.measure("load_inputs"):
            instance = _load_instance(input)
            initial_solution = _load_solution(solution)
        logger.info(
            f"Loaded {len(instance.vehicles)} vehicles, {len(instance.jobs)} jobs, "
            f"{initial_solution.route_count} initial routes"
        )

        params = _resolve_params(config)

        if isinstance(input, (str, Path)) or isinstance(solution, (str, Path)):
            params = dataclasses.replace(
                params,
                io=dataclasses.replace(
                    params.io,
                    input_file=str(input) if isinstance(input, (str, Path)) else params.io.input_file,
                    solution_file=(
                        str(solution) if isinstance(solution, (str, Path)) else params.io.solution_file
                    ),
                ),
            )
        if output_dir is not None:
            params = dataclasses.replace(
                params, io=dataclasses.replace(params.io, results_dir=Path(output_dir))
            )
        if format is not None:
            params = dataclasses.replace(params, io=dataclasses.replace(params.io, format=format))
        if clean is not None:
            params = dataclasses.replace(params, io=dataclasses.replace(params.io, clean=clean))
        if min_load is not None:
            params = dataclasses.replace(
                params, target=dataclasses.replace(params.target, min_load=min_load)
            )
        if max_iterations is not None:
            params = dataclasses.replace(
                params,
                refinement=dataclasses.replace(params.refinement, max_iterations=max_iterations),
            )
        if mock:
            params = dataclasses.replace(
                params, oracle=dataclasses.replace(params.oracle, backend="mock")
            )
        if verbose or debug:
            params = dataclasses.replace(
                params,
                runtime=dataclasses.replace(
                    params.runtime,
                    verbose=params.runtime.verbose or verbose,
                    debug=params.runtime.debug or debug,
                ),
            )
        if params.runtime.debug:
            setup_logging(LogLevel.DEBUG)
        elif params.runtime.verbose:
            setup_logging(LogLevel.VERBOSE)
        tracker.advance("Inputs loaded")

        clock = clock or SystemClock()
        if oracle is None:
            oracle = create_oracle(params.oracle, clock)

        results_dir = params.io.results_dir
        if save:
            if params.io.clean:
                clear_output_dir(results_dir)
            else:
                results_dir.mkdir(parents=True, exist_ok=True)

        constraints = params.target.constraint_set()
        controller = RefinementController(
            oracle=oracle,
            clock=clock,
            constraints=constraints,
            max_iterations=params.refinement.max_iterations,
            policy=params.refinement.strategy_policy(),
            time_unit_seconds=params.refinement.time_unit_seconds,
            poll_interval=params.oracle.poll_interval,
            max_wait=params.oracle.max_wait,
            artifact_writer=IterationArtifactWriter(results_dir) if save else None,
            time_recorder=time_recorder,
        )
        with time_recorder.measure("refinement"):
            state = controller.run(instance, initial_solution)
        tracker.advance(
            f"Refinement finished: {state.status.value}",
            status="success" if state.best is not None else "warning",
        )

        report = build_final_report(state, params.target.min_load, constraints)
        tracker.advance(f"Report: {report.tag.value}")
        tracker.close()

    result = RefinementResult(
        state=state,
        report=report,
        params=params,
        time_measurements=time_recorder.measurements,
    )

    if save:
        try:
            result.report_path = save_final_report(
                report,
                results_dir,
                format=params.io.format,
                time_measurements=time_recorder.measurements,
            )
            logger.info(f"Results saved to {results_dir}")
        except Exception as e:
            log_warning(f"Failed to save results: {e!s}")

    return result


def analyze(
    solution: str | Path | dict[str, Any] | RouteSolution,
    min_load: float = 12000,
    constraints: ConstraintSet | None = None,
    input: str | Path | dict[str, Any] | ProblemInstance | None = None,
) -> dict[str, Any]:
    """Load-balance metrics, constraint verdict and recommendations for one solution.

    When the problem ``input`` is given, vehicle capacities come from it.
    """
    parsed = _load_solution(solution)
    constraints = constraints or ConstraintSet(min_load_per_route=min_load)
    capacities = _load_instance(input).capacity_by_vehicle() if input is not None else None
    metrics = analyze_solution(parsed, min_load, capacities)
    verdict = check_solution(parsed, constraints)
    return {
        "metrics": metrics.to_dict(),
        "constraint_check": verdict.to_dict(),
        "recommendations": recommendations(verdict),
        "balancing_suggestions": suggest_balancing_strategies(metrics),
    }
