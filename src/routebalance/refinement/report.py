"""Final run report.

Built from the terminal ``RunState`` regardless of how the run ended; a run
without any successful iteration still yields a complete, well formed report.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from routebalance.analysis.constraints import ConstraintSet, check_solution, recommendations
from routebalance.analysis.load import SolutionMetrics, suggest_balancing_strategies
from routebalance.core_types import RouteSolution
from routebalance.refinement.controller import IterationRecord, RunState, RunStatus
from routebalance.strategy.types import (
    LoadConstraintAddition,
    ObjectiveChange,
    RefinementStrategy,
    TimeWindowRelaxation,
    TimeWindowSoftening,
    VehicleAddition,
)

NO_SUCCESS_RECOMMENDATION = {
    "type": "relax_parameters",
    "priority": "high",
    "description": (
        "No successful optimization iterations found. Consider relaxing "
        "constraints or adjusting parameters."
    ),
    "actions": [
        "Lower the target minimum load",
        "Widen vehicle and job time windows",
        "Increase the number of iterations",
    ],
}


class ReportTag(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    FAILED = "failed"


@dataclass(frozen=True)
class FinalReport:
    tag: ReportTag
    status: RunStatus | None
    summary: dict[str, Any]
    initial_analysis: dict[str, Any]
    final_analysis: dict[str, Any]
    constraint_check: dict[str, Any]
    iteration_history: list[dict[str, Any]] = field(default_factory=list)
    attempt_failures: list[dict[str, Any]] = field(default_factory=list)
    recommendations: list[dict[str, Any]] = field(default_factory=list)
    merge_opportunities: list[dict[str, Any]] = field(default_factory=list)
    balancing_suggestions: list[dict[str, Any]] = field(default_factory=list)
    note: str = ""
    best_solution: RouteSolution | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.tag.value,
            "run_status": self.status.value if self.status else None,
            "note": self.note,
            "summary": self.summary,
            "initial_analysis": self.initial_analysis,
            "final_analysis": self.final_analysis,
            "constraint_check": self.constraint_check,
            "iteration_history": self.iteration_history,
            "attempt_failures": self.attempt_failures,
            "recommendations": self.recommendations,
            "merge_opportunities": self.merge_opportunities,
            "balancing_suggestions": self.balancing_suggestions,
            "best_solution": self.best_solution.to_dict() if self.best_solution else None,
        }


def strategy_details(strategies: tuple[RefinementStrategy, ...]) -> dict[str, Any]:
    """Objective, vehicles and time window settings applied in one iteration."""
    details: dict[str, Any] = {
        "objective": None,
        "vehicles": None,
        "time_window": None,
        "load_weight": None,
    }
    for strategy in strategies:
        if isinstance(strategy, ObjectiveChange):
            details["objective"] = strategy.objective.value
        elif isinstance(strategy, VehicleAddition):
            details["vehicles"] = f"+{strategy.count} x {strategy.capacity:g}"
        elif isinstance(strategy, TimeWindowSoftening):
            details["time_window"] = f"soft {strategy.minutes}m"
        elif isinstance(strategy, TimeWindowRelaxation):
            relaxed = f"widen {strategy.minutes}m"
            details["time_window"] = (
                f"{details['time_window']}, {relaxed}" if details["time_window"] else relaxed
            )
        elif isinstance(strategy, LoadConstraintAddition):
            details["load_weight"] = strategy.balance_weight
    return details


def _history_row(record: IterationRecord) -> dict[str, Any]:
    return {**record.to_row(), **strategy_details(record.strategies)}


def _analysis_summary(metrics: SolutionMetrics) -> dict[str, Any]:
    summary = metrics.to_dict()
    summary.pop("route_loads", None)
    return summary


def _rate(metrics: SolutionMetrics) -> float:
    return metrics.compliance_rate if metrics.compliance_rate is not None else 0.0


def build_final_report(
    state: RunState, target: float, constraints: ConstraintSet
) -> FinalReport:
    initial_metrics = state.initial.metrics
    initial_rate = _rate(initial_metrics)
    history = [_history_row(r) for r in state.records]
    failures = [f.to_dict() for f in state.failures]

    base_summary = {
        "successful_iterations": len(state.records),
        "total_attempts": state.total_attempts,
        "target_min_load": target,
        "initial_compliance_rate": initial_rate,
    }

    if state.best is None:
        return FinalReport(
            tag=ReportTag.FAILED,
            status=state.status,
            summary={
                **base_summary,
                "final_compliance_rate": 0.0,
                "improvement": -initial_rate,
                "constraints_met": False,
                "best_solution_found": False,
                "best_iteration": None,
            },
            initial_analysis=_analysis_summary(initial_metrics),
            final_analysis={
                "compliance_rate": 0.0,
                "total_routes": 0,
                "routes_below_target": 0,
                "total_load_gap": 0.0,
            },
            constraint_check={"passed": False, "violations": [], "warnings": []},
            iteration_history=history,
            attempt_failures=failures,
            recommendations=[NO_SUCCESS_RECOMMENDATION],
            note=state.note,
        )

    best = state.best
    final_metrics = best.metrics
    final_verdict = check_solution(best.solution, constraints)
    final_rate = _rate(final_metrics)

    tag = ReportTag.SUCCESS if final_verdict.passed else ReportTag.WARNING
    return FinalReport(
        tag=tag,
        status=state.status,
        summary={
            **base_summary,
            "final_compliance_rate": final_rate,
            "improvement": final_rate - initial_rate,
            "constraints_met": final_verdict.passed,
            "best_solution_found": True,
            "best_iteration": best.iteration,
        },
        initial_analysis=_analysis_summary(initial_metrics),
        final_analysis=_analysis_summary(final_metrics),
        constraint_check=final_verdict.to_dict(),
        iteration_history=history,
        attempt_failures=failures,
        recommendations=recommendations(final_verdict),
        merge_opportunities=[
            {
                "vehicles": list(m.vehicles),
                "combined_load": m.combined_load,
                "priority": m.priority,
            }
            for m in final_metrics.merge_opportunities
        ],
        balancing_suggestions=suggest_balancing_strategies(final_metrics),
        note=state.note,
        best_solution=best.solution,
    )
