"""
generator.py

Table-driven strategy generation.

Every choice that varies across iterations is read from a fixed cycle indexed
by ``iteration % len(cycle)``, so the generated list is a pure function of
(metrics, iteration, last successful iteration, policy).
"""

import math
from dataclasses import dataclass

from routebalance.analysis.load import SolutionMetrics
from routebalance.strategy.types import (
    LoadConstraintAddition,
    Objective,
    ObjectiveChange,
    Priority,
    RefinementStrategy,
    TimeWindowRelaxation,
    TimeWindowSoftening,
    VehicleAddition,
    sort_by_priority,
)
from routebalance.utils.logging import RouteBalanceLogger

logger = RouteBalanceLogger.get_logger(__name__)

DEFAULT_VEHICLE_TIME_WINDOW = (1719282600, 1719315000)


@dataclass(frozen=True, slots=True)
class StrategyPolicy:
    """Tables and thresholds consulted by the generators."""

    objective_cycle: tuple[Objective, ...] = (
        Objective.BALANCE_TASKS,
        Objective.MINIMIZE_VEHICLES_WITH_LOAD_CONSTRAINT,
        Objective.MINIMIZE_DURATION,
    )
    softening_minutes: tuple[int, ...] = (30, 45, 60, 15, 90, 120)
    vehicle_capacities: tuple[float, ...] = (14000, 12000, 16000, 10000, 18000)
    balance_weights: tuple[float, ...] = (0.7, 0.5, 0.8, 0.6, 0.9)
    reference_capacity: float = 12000
    max_added_vehicles: int = 15
    very_low_compliance: float = 30.0
    low_compliance: float = 50.0
    below_to_above_ratio: float = 0.5
    default_time_window: tuple[int, int] = DEFAULT_VEHICLE_TIME_WINDOW
    include_load_constraint: bool = False

    # Relaxed (recovery) set
    relaxed_softening_minutes: int = 120
    relaxed_reference_capacity: float = 8000
    relaxed_vehicle_capacity: float = 10000
    relaxed_extra_vehicles: int = 5
    relaxed_relaxation_minutes: int = 60
    relaxed_objective: Objective = Objective.MINIMIZE_VEHICLES_WITH_LOAD_CONSTRAINT

    def __post_init__(self):
        for name in (
            "objective_cycle",
            "softening_minutes",
            "vehicle_capacities",
            "balance_weights",
        ):
            if not getattr(self, name):
                raise ValueError(f"StrategyPolicy.{name} cannot be empty.")
        if self.reference_capacity <= 0 or self.relaxed_reference_capacity <= 0:
            raise ValueError("StrategyPolicy reference capacities must be positive.")
        if self.default_time_window[0] >= self.default_time_window[1]:
            raise ValueError("StrategyPolicy.default_time_window start must precede end.")


DEFAULT_POLICY = StrategyPolicy()


def _cycle(table: tuple, iteration: int):
    return table[iteration % len(table)]


def _gap_and_counts(metrics: SolutionMetrics | None) -> tuple[float, float, int, int]:
    """(compliance rate, total gap, below count, above count); degenerate reads as 0."""
    if metrics is None or metrics.compliance is None:
        return 0.0, 0.0, 0, 0
    c = metrics.compliance
    return c.compliance_rate, c.total_load_gap, len(c.below_target), len(c.at_or_above)


def generate_strategies(
    metrics: SolutionMetrics | None,
    iteration: int,
    last_successful_iteration: int = 0,
    policy: StrategyPolicy = DEFAULT_POLICY,
) -> list[RefinementStrategy]:
    """Strategies for a normal iteration, highest priority first.

    Args:
        metrics: Analysis of the current solution.
        iteration: 1-based iteration index.
        last_successful_iteration: Index of the last non-degenerate iteration.
            Accepted so that callers pass the full decision context; the
            current tables do not vary with it.
        policy: Tables and thresholds.
    """
    rate, gap, below, above = _gap_and_counts(metrics)
    strategies: list[RefinementStrategy] = []

    if rate < policy.very_low_compliance:
        strategies.append(
            ObjectiveChange(_cycle(policy.objective_cycle, iteration), Priority.HIGH)
        )
    elif rate < policy.low_compliance:
        strategies.append(ObjectiveChange(Objective.BALANCE_TASKS, Priority.HIGH))

    if policy.include_load_constraint and metrics is not None:
        strategies.append(
            LoadConstraintAddition(
                min_load=metrics.target,
                balance_weight=_cycle(policy.balance_weights, iteration),
                priority=Priority.HIGH,
            )
        )

    strategies.append(
        TimeWindowSoftening(_cycle(policy.softening_minutes, iteration), Priority.HIGH)
    )

    if below > above * policy.below_to_above_ratio:
        needed = math.ceil(gap / policy.reference_capacity)
        strategies.append(
            VehicleAddition(
                count=min(needed + iteration % 3, policy.max_added_vehicles),
                capacity=_cycle(policy.vehicle_capacities, iteration),
                time_window=policy.default_time_window,
                iteration=iteration,
                priority=Priority.MEDIUM,
            )
        )

    ordered = sort_by_priority(strategies)
    logger.debug(
        "Iteration %d (last successful %d): %d strategies generated",
        iteration,
        last_successful_iteration,
        len(ordered),
    )
    return ordered


def generate_relaxed_strategies(
    metrics: SolutionMetrics | None,
    iteration: int,
    last_successful_iteration: int = 0,
    policy: StrategyPolicy = DEFAULT_POLICY,
) -> list[RefinementStrategy]:
    """The fixed fallback set used to recover from a degenerate result.

    ``metrics`` should be the analysis of the last successful solution; only
    its total load gap is consulted.
    """
    _, gap, _, _ = _gap_and_counts(metrics)
    count = min(
        math.ceil(gap / policy.relaxed_reference_capacity) + policy.relaxed_extra_vehicles,
        policy.max_added_vehicles,
    )
    strategies: list[RefinementStrategy] = [
        TimeWindowSoftening(policy.relaxed_softening_minutes, Priority.HIGH),
        VehicleAddition(
            count=count,
            capacity=policy.relaxed_vehicle_capacity,
            time_window=policy.default_time_window,
            iteration=iteration,
            priority=Priority.HIGH,
        ),
        TimeWindowRelaxation(policy.relaxed_relaxation_minutes, Priority.MEDIUM),
        ObjectiveChange(policy.relaxed_objective, Priority.MEDIUM),
    ]
    ordered = sort_by_priority(strategies)
    logger.debug(
        "Iteration %d: relaxed set built from iteration %d (%d vehicles)",
        iteration,
        last_successful_iteration,
        count,
    )
    return ordered
