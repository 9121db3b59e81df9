"""Refinement strategy variants.

Each strategy is a frozen value describing one reshaping of the problem
instance.  ``kind`` is the tag persisted in ``strategies.json``; ``priority``
orders application (high first, ties keep generation order).
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Union


class Priority(IntEnum):
    LOW = 1
    MEDIUM = 2
    HIGH = 3

    @property
    def label(self) -> str:
        return self.name.lower()


class Objective(str, Enum):
    BALANCE_TASKS = "balance_tasks"
    MINIMIZE_VEHICLES_WITH_LOAD_CONSTRAINT = "minimize_vehicles_with_load_constraint"
    MINIMIZE_DURATION = "minimize_duration"
    MINIMIZE_DISTANCE = "minimize_distance"


_OBJECTIVE_DESCRIPTORS: dict[Objective, dict[str, Any]] = {
    Objective.BALANCE_TASKS: {
        "travel_cost": "distance",
        "custom": {"type": "min-max", "value": "tasks"},
    },
    Objective.MINIMIZE_VEHICLES_WITH_LOAD_CONSTRAINT: {
        "travel_cost": "distance",
        "custom": {"type": "min", "value": "vehicles"},
    },
    Objective.MINIMIZE_DURATION: {"travel_cost": "duration"},
    Objective.MINIMIZE_DISTANCE: {"travel_cost": "distance"},
}


def objective_descriptor(objective: Objective) -> dict[str, Any]:
    """The ``options.objective`` document the oracle expects for ``objective``."""
    descriptor = _OBJECTIVE_DESCRIPTORS[objective]
    # Fresh copy per call; descriptors end up inside mutable instance dicts.
    return {
        k: dict(v) if isinstance(v, dict) else v for k, v in descriptor.items()
    }


@dataclass(frozen=True)
class ObjectiveChange:
    objective: Objective
    priority: Priority = Priority.HIGH
    kind = "objective_modification"

    @property
    def description(self) -> str:
        return f"Change objective to {self.objective.value}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "objective": self.objective.value,
            "descriptor": objective_descriptor(self.objective),
            "priority": self.priority.label,
            "description": self.description,
        }


@dataclass(frozen=True)
class VehicleAddition:
    count: int
    capacity: float
    time_window: tuple[int, int]
    iteration: int
    priority: Priority = Priority.MEDIUM
    kind = "vehicle_addition"

    def __post_init__(self):
        if self.count < 0:
            raise ValueError("VehicleAddition.count must be non-negative.")

    @property
    def description(self) -> str:
        return f"Add {self.count} vehicles with {self.capacity:g} capacity (iteration {self.iteration})"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "count": self.count,
            "capacity": self.capacity,
            "time_window": list(self.time_window),
            "iteration": self.iteration,
            "priority": self.priority.label,
            "description": self.description,
        }


@dataclass(frozen=True)
class TimeWindowRelaxation:
    """Widen every explicit job and vehicle window by ``minutes`` on both ends."""

    minutes: int
    priority: Priority = Priority.MEDIUM
    kind = "time_window_relaxation"

    @property
    def description(self) -> str:
        return f"Relax time windows by {self.minutes} minutes"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "relaxation_minutes": self.minutes,
            "priority": self.priority.label,
            "description": self.description,
        }


@dataclass(frozen=True)
class TimeWindowSoftening:
    """Allow overtime and lateness instead of touching explicit windows."""

    minutes: int
    priority: Priority = Priority.HIGH
    kind = "time_window_softening"

    @property
    def description(self) -> str:
        return f"Soften time windows by {self.minutes} minutes"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "relaxation_minutes": self.minutes,
            "priority": self.priority.label,
            "description": self.description,
        }


@dataclass(frozen=True)
class LoadConstraintAddition:
    min_load: float
    balance_weight: float
    priority: Priority = Priority.HIGH
    kind = "constraint_addition"

    def __post_init__(self):
        if not 0 <= self.balance_weight <= 1:
            raise ValueError("LoadConstraintAddition.balance_weight must be in [0, 1].")

    @property
    def description(self) -> str:
        return f"Add minimum load constraint {self.min_load:g} with weight {self.balance_weight}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "min_load_per_route": self.min_load,
            "load_balance_weight": self.balance_weight,
            "priority": self.priority.label,
            "description": self.description,
        }


RefinementStrategy = Union[
    ObjectiveChange,
    VehicleAddition,
    TimeWindowRelaxation,
    TimeWindowSoftening,
    LoadConstraintAddition,
]


def sort_by_priority(strategies: list[RefinementStrategy]) -> list[RefinementStrategy]:
    """High to low; ``sorted`` is stable so ties keep their order."""
    return sorted(strategies, key=lambda s: -s.priority)


def strategies_to_dicts(strategies: list[RefinementStrategy]) -> list[dict[str, Any]]:
    return [s.to_dict() for s in strategies]
