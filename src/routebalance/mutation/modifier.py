"""
modifier.py

Applies refinement strategies to a problem instance.

The input instance is never modified: ``apply_strategies`` clones it once and
then rebuilds only the parts each strategy touches.  Times in the instance are
expressed in ``time_unit_seconds`` (1 for epoch seconds, the oracle default).
"""

import dataclasses
from collections import Counter
from typing import Any, Callable

from routebalance.core_types import ProblemInstance, Vehicle
from routebalance.errors import ValidationError
from routebalance.strategy.types import (
    LoadConstraintAddition,
    ObjectiveChange,
    RefinementStrategy,
    TimeWindowRelaxation,
    TimeWindowSoftening,
    VehicleAddition,
    objective_descriptor,
)
from routebalance.utils.logging import RouteBalanceLogger

logger = RouteBalanceLogger.get_logger(__name__)

MAX_VISIT_LATENESS_MINUTES = 30


def _to_units(minutes: float, time_unit_seconds: int) -> int | float:
    seconds = minutes * 60
    units = seconds / time_unit_seconds
    return int(units) if float(units).is_integer() else units


def _next_vehicle_ids(vehicles: tuple[Vehicle, ...], count: int) -> list[str | int]:
    """Sequential ids starting one past the largest numeric id."""
    numeric = []
    for vehicle in vehicles:
        try:
            numeric.append(int(vehicle.id))
        except (TypeError, ValueError):
            continue
    base = max(numeric, default=0) + 1
    as_int = bool(vehicles) and all(
        isinstance(v.id, int) and not isinstance(v.id, bool) for v in vehicles
    )
    return [base + i if as_int else str(base + i) for i in range(count)]


def _apply_objective(
    instance: ProblemInstance, strategy: ObjectiveChange, time_unit_seconds: int
) -> ProblemInstance:
    descriptor = objective_descriptor(strategy.objective)
    logger.debug(f"Objective set to {descriptor}")
    return dataclasses.replace(instance, objective=descriptor)


def _apply_vehicle_addition(
    instance: ProblemInstance, strategy: VehicleAddition, time_unit_seconds: int
) -> ProblemInstance:
    new_vehicles = tuple(
        Vehicle(
            id=vehicle_id,
            capacity=(strategy.capacity,),
            time_window=strategy.time_window,
            metadata={
                "added_for_load_balancing": True,
                "iteration": strategy.iteration,
            },
            extra={"start_index": 0, "end_index": 0},
        )
        for vehicle_id in _next_vehicle_ids(instance.vehicles, strategy.count)
    )
    logger.debug(
        f"Added {len(new_vehicles)} vehicles with capacity {strategy.capacity:g}"
    )
    return dataclasses.replace(instance, vehicles=instance.vehicles + new_vehicles)


def _apply_relaxation(
    instance: ProblemInstance, strategy: TimeWindowRelaxation, time_unit_seconds: int
) -> ProblemInstance:
    delta = _to_units(strategy.minutes, time_unit_seconds)
    jobs = tuple(
        dataclasses.replace(
            job,
            time_windows=tuple((start - delta, end + delta) for start, end in job.time_windows),
        )
        for job in instance.jobs
    )
    vehicles = tuple(
        dataclasses.replace(
            vehicle,
            time_window=(vehicle.time_window[0] - delta, vehicle.time_window[1] + delta),
        )
        for vehicle in instance.vehicles
    )
    logger.debug(f"Relaxed time windows by {strategy.minutes} minutes")
    return dataclasses.replace(instance, jobs=jobs, vehicles=vehicles)


def _apply_softening(
    instance: ProblemInstance, strategy: TimeWindowSoftening, time_unit_seconds: int
) -> ProblemInstance:
    constraint = dict(instance.constraint)
    constraint["max_vehicle_overtime"] = _to_units(strategy.minutes, time_unit_seconds)
    constraint["max_visit_lateness"] = _to_units(
        min(strategy.minutes, MAX_VISIT_LATENESS_MINUTES), time_unit_seconds
    )
    logger.debug(f"Softened time windows by {strategy.minutes} minutes")
    return dataclasses.replace(instance, constraint=constraint)


def _apply_load_constraint(
    instance: ProblemInstance, strategy: LoadConstraintAddition, time_unit_seconds: int
) -> ProblemInstance:
    constraint = dict(instance.constraint)
    constraint["min_load_per_route"] = strategy.min_load
    constraint["load_balance_weight"] = strategy.balance_weight
    logger.debug(f"Added load constraint min_load_per_route={strategy.min_load:g}")
    return dataclasses.replace(instance, constraint=constraint)


_APPLIERS: dict[type, Callable[[ProblemInstance, Any, int], ProblemInstance]] = {
    ObjectiveChange: _apply_objective,
    VehicleAddition: _apply_vehicle_addition,
    TimeWindowRelaxation: _apply_relaxation,
    TimeWindowSoftening: _apply_softening,
    LoadConstraintAddition: _apply_load_constraint,
}


def apply_strategy(
    instance: ProblemInstance,
    strategy: RefinementStrategy,
    time_unit_seconds: int = 1,
) -> ProblemInstance:
    try:
        applier = _APPLIERS[type(strategy)]
    except KeyError:
        raise ValueError(f"Unknown modification strategy: {strategy!r}") from None
    return applier(instance, strategy, time_unit_seconds)


def apply_strategies(
    instance: ProblemInstance,
    strategies: list[RefinementStrategy],
    time_unit_seconds: int = 1,
) -> ProblemInstance:
    """Return a new instance with ``strategies`` applied in order.

    The result shares no mutable state with ``instance``.  Validation is left
    to :func:`ensure_valid` so that callers decide when to abort.
    """
    if time_unit_seconds <= 0:
        raise ValueError("time_unit_seconds must be positive.")

    modified = instance.clone()
    for index, strategy in enumerate(strategies, start=1):
        logger.debug(f"Applying strategy {index}: {strategy.kind}")
        modified = apply_strategy(modified, strategy, time_unit_seconds)
    return modified


def validate_instance(instance: ProblemInstance) -> list[str]:
    """Every capacity and time window problem in ``instance``, in one pass."""
    errors: list[str] = []

    for vehicle in instance.vehicles:
        if not vehicle.capacity or vehicle.capacity[0] <= 0:
            shown = vehicle.capacity[0] if vehicle.capacity else "missing"
            errors.append(f"Vehicle {vehicle.id} has invalid capacity: {shown}")

    for vehicle in instance.vehicles:
        start, end = vehicle.time_window
        if start >= end:
            errors.append(f"Vehicle {vehicle.id} has invalid time window: {start} >= {end}")

    for job in instance.jobs:
        for index, (start, end) in enumerate(job.time_windows):
            if start >= end:
                errors.append(f"Job {job.id} time window {index} is invalid: {start} >= {end}")

    duplicates = [vid for vid, n in Counter(v.id for v in instance.vehicles).items() if n > 1]
    for vehicle_id in duplicates:
        errors.append(f"Vehicle {vehicle_id} appears more than once")

    return errors


def ensure_valid(instance: ProblemInstance) -> ProblemInstance:
    """Raise :class:`ValidationError` listing every problem, else return ``instance``."""
    errors = validate_instance(instance)
    if errors:
        raise ValidationError(errors)
    logger.debug("Modified input validation passed")
    return instance


def modification_report(
    original: ProblemInstance,
    modified: ProblemInstance,
    strategies: list[RefinementStrategy],
) -> dict[str, Any]:
    """What changed between ``original`` and ``modified``."""
    by_priority = Counter(s.priority.label for s in strategies)
    return {
        "strategies_applied": [s.to_dict() for s in strategies],
        "changes": {
            "vehicles": {
                "original": len(original.vehicles),
                "modified": len(modified.vehicles),
                "added": len(modified.vehicles) - len(original.vehicles),
            },
            "objective": {
                "original": original.objective,
                "modified": modified.objective,
            },
            "constraints": {
                "original": original.constraint,
                "modified": modified.constraint,
            },
        },
        "summary": {
            "total_strategies": len(strategies),
            "high_priority_strategies": by_priority.get("high", 0),
            "medium_priority_strategies": by_priority.get("medium", 0),
            "low_priority_strategies": by_priority.get("low", 0),
        },
    }
