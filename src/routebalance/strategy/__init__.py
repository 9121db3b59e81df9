"""Refinement strategies and the generators that choose them."""

from .generator import (
    DEFAULT_POLICY,
    StrategyPolicy,
    generate_relaxed_strategies,
    generate_strategies,
)
from .types import (
    LoadConstraintAddition,
    Objective,
    ObjectiveChange,
    Priority,
    RefinementStrategy,
    TimeWindowRelaxation,
    TimeWindowSoftening,
    VehicleAddition,
    objective_descriptor,
    sort_by_priority,
    strategies_to_dicts,
)

__all__ = [
    "DEFAULT_POLICY",
    "LoadConstraintAddition",
    "Objective",
    "ObjectiveChange",
    "Priority",
    "RefinementStrategy",
    "StrategyPolicy",
    "TimeWindowRelaxation",
    "TimeWindowSoftening",
    "VehicleAddition",
    "generate_relaxed_strategies",
    "generate_strategies",
    "objective_descriptor",
    "sort_by_priority",
    "strategies_to_dicts",
]
