"""
load.py

Solution metrics model: per-route load, load distribution and compliance
against a target minimum load.

A route's load is the sum of the first load component over its ``job`` steps.
A solution with zero routes is *degenerate*: no compliance rate and no
distribution are computed for it, and callers must treat it as a failed
iteration rather than as 0 % compliance.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from itertools import combinations
from typing import Any

import numpy as np

from routebalance.core_types import Route, RouteSolution, VehicleId
from routebalance.utils.logging import RouteBalanceLogger

logger = RouteBalanceLogger.get_logger(__name__)

MERGE_LOWER_FACTOR = 0.8
MERGE_UPPER_FACTOR = 1.2
# Used when the capacity of a route's vehicle is unknown
DEFAULT_VEHICLE_CAPACITY = 14000.0
EXCESS_HIGH_PRIORITY = 2000.0

_PRIORITY_RANK = {"high": 3, "medium": 2, "low": 1}

_BALANCE_BANDS = (
    (90.0, "Excellent"),
    (80.0, "Good"),
    (70.0, "Fair"),
    (60.0, "Poor"),
)


@dataclass(frozen=True)
class RouteLoad:
    vehicle: VehicleId
    load: float
    jobs: int
    distance: float = 0.0
    duration: float = 0.0


@dataclass(frozen=True)
class LoadGap:
    vehicle: VehicleId
    load: float
    gap: float
    gap_percentage: float = 0.0


@dataclass(frozen=True)
class ComplianceReport:
    """Compliance of a non-empty route set against ``target``."""

    target: float
    below_target: tuple[LoadGap, ...]
    at_or_above: tuple[RouteLoad, ...]
    compliance_rate: float
    total_load_gap: float

    @property
    def total_routes(self) -> int:
        return len(self.below_target) + len(self.at_or_above)

    @property
    def is_compliant(self) -> bool:
        return not self.below_target

    @property
    def average_gap(self) -> float:
        if not self.below_target:
            return 0.0
        return self.total_load_gap / len(self.below_target)


@dataclass(frozen=True)
class LoadDistribution:
    mean: float
    std: float
    cv: float
    min: float
    max: float
    q1: float
    median: float
    q3: float

    @property
    def balance_score(self) -> float:
        """``100 - cv`` floored at zero; 100 means perfectly even loads."""
        return max(0.0, 100.0 - self.cv)

    @property
    def balance_interpretation(self) -> str:
        score = self.balance_score
        for threshold, label in _BALANCE_BANDS:
            if score >= threshold:
                return label
        return "Very Poor"


@dataclass(frozen=True)
class MergeOpportunity:
    vehicles: tuple[VehicleId, VehicleId]
    combined_load: float
    priority: str


@dataclass(frozen=True)
class CapacityOpportunity:
    """A below-target route and the room left on its vehicle."""

    vehicle: VehicleId
    load: float
    capacity: float
    available: float
    priority: str


@dataclass(frozen=True)
class ExcessLoad:
    vehicle: VehicleId
    load: float
    excess: float
    priority: str


@dataclass(frozen=True)
class SolutionMetrics:
    route_loads: tuple[RouteLoad, ...]
    target: float
    compliance: ComplianceReport | None = None
    distribution: LoadDistribution | None = None
    total_jobs: int = 0
    unassigned: int = 0
    total_distance: float = 0.0
    total_duration: float = 0.0
    merge_opportunities: tuple[MergeOpportunity, ...] = field(default_factory=tuple)
    capacity_opportunities: tuple[CapacityOpportunity, ...] = field(default_factory=tuple)
    excess_loads: tuple[ExcessLoad, ...] = field(default_factory=tuple)

    @property
    def degenerate(self) -> bool:
        return not self.route_loads

    @property
    def route_count(self) -> int:
        return len(self.route_loads)

    @property
    def compliance_rate(self) -> float | None:
        return None if self.compliance is None else self.compliance.compliance_rate

    def to_dict(self) -> dict:
        """Flat summary used by reports and iteration artifacts."""
        data: dict = {
            "degenerate": self.degenerate,
            "total_routes": self.route_count,
            "target_min_load": self.target,
            "total_jobs": self.total_jobs,
            "unassigned": self.unassigned,
            "total_distance": self.total_distance,
            "total_duration": self.total_duration,
            "route_loads": [
                {"vehicle": r.vehicle, "load": r.load, "jobs": r.jobs}
                for r in self.route_loads
            ],
        }
        if self.compliance is not None:
            data.update(
                {
                    "compliance_rate": self.compliance.compliance_rate,
                    "routes_below_target": len(self.compliance.below_target),
                    "routes_above_target": len(self.compliance.at_or_above),
                    "total_load_gap": self.compliance.total_load_gap,
                    "average_gap": self.compliance.average_gap,
                    "load_gaps": [
                        {
                            "vehicle": g.vehicle,
                            "load": g.load,
                            "gap": g.gap,
                            "gap_percentage": g.gap_percentage,
                        }
                        for g in self.compliance.below_target
                    ],
                }
            )
        if self.distribution is not None:
            d = self.distribution
            data["distribution"] = {
                "mean": d.mean,
                "std": d.std,
                "cv": d.cv,
                "min": d.min,
                "max": d.max,
                "q1": d.q1,
                "median": d.median,
                "q3": d.q3,
                "balance_score": d.balance_score,
                "balance_interpretation": d.balance_interpretation,
            }
        if self.capacity_opportunities or self.excess_loads:
            data["opportunities"] = [
                {
                    "type": "capacity_available",
                    "vehicle": c.vehicle,
                    "load": c.load,
                    "capacity": c.capacity,
                    "available": c.available,
                    "priority": c.priority,
                }
                for c in self.capacity_opportunities
            ] + [
                {
                    "type": "excess_load",
                    "vehicle": e.vehicle,
                    "load": e.load,
                    "excess": e.excess,
                    "priority": e.priority,
                }
                for e in self.excess_loads
            ]
        return data


def route_load(route: Route) -> float:
    """Sum of the first load component over job steps; 0 when there are none."""
    return float(sum(step.amount for step in route.job_steps))


def compute_compliance(loads: list[RouteLoad], target: float) -> ComplianceReport:
    if not loads:
        raise ValueError("Compliance is undefined for a solution without routes")

    below = tuple(
        LoadGap(
            vehicle=r.vehicle,
            load=r.load,
            gap=target - r.load,
            gap_percentage=(target - r.load) / target * 100 if target > 0 else 0.0,
        )
        for r in loads
        if r.load < target
    )
    above = tuple(r for r in loads if r.load >= target)
    return ComplianceReport(
        target=target,
        below_target=below,
        at_or_above=above,
        compliance_rate=len(above) / len(loads) * 100,
        total_load_gap=float(sum(g.gap for g in below)),
    )


def compute_distribution(values: list[float]) -> LoadDistribution:
    arr = np.asarray(values, dtype=float)
    mean = float(arr.mean())
    std = float(arr.std())  # population
    q1, median, q3 = (float(q) for q in np.percentile(arr, [25, 50, 75]))
    return LoadDistribution(
        mean=mean,
        std=std,
        cv=std / mean * 100 if mean > 0 else 0.0,
        min=float(arr.min()),
        max=float(arr.max()),
        q1=q1,
        median=median,
        q3=q3,
    )


def find_merge_opportunities(
    compliance: ComplianceReport,
) -> tuple[MergeOpportunity, ...]:
    """Pairs of below-target routes whose combined load is near the target."""
    target = compliance.target
    found = []
    for a, b in combinations(compliance.below_target, 2):
        combined = a.load + b.load
        if MERGE_LOWER_FACTOR * target <= combined <= MERGE_UPPER_FACTOR * target:
            found.append(
                MergeOpportunity(
                    vehicles=(a.vehicle, b.vehicle),
                    combined_load=combined,
                    priority="high" if combined >= target else "medium",
                )
            )
    return tuple(found)


def find_capacity_opportunities(
    compliance: ComplianceReport,
    capacities: Mapping[VehicleId, float] | None = None,
) -> tuple[CapacityOpportunity, ...]:
    """Room left on each below-target route; high priority when it covers the gap."""
    capacities = capacities or {}
    found = []
    for gap in compliance.below_target:
        capacity = float(capacities.get(gap.vehicle, DEFAULT_VEHICLE_CAPACITY))
        available = capacity - gap.load
        found.append(
            CapacityOpportunity(
                vehicle=gap.vehicle,
                load=gap.load,
                capacity=capacity,
                available=available,
                priority="high" if available > gap.gap else "medium",
            )
        )
    return tuple(found)


def find_excess_loads(compliance: ComplianceReport) -> tuple[ExcessLoad, ...]:
    target = compliance.target
    return tuple(
        ExcessLoad(
            vehicle=r.vehicle,
            load=r.load,
            excess=r.load - target,
            priority="high" if r.load - target > EXCESS_HIGH_PRIORITY else "medium",
        )
        for r in compliance.at_or_above
    )


def suggest_balancing_strategies(metrics: SolutionMetrics) -> list[dict[str, Any]]:
    """Turn the opportunities of ``metrics`` into advice, high priority first."""
    suggestions = []
    if metrics.excess_loads:
        suggestions.append(
            {
                "type": "redistribute_excess",
                "priority": "high",
                "estimated_impact": "high",
                "description": "Move jobs from routes with excess load to routes below target",
                "vehicles": [e.vehicle for e in metrics.excess_loads],
            }
        )
    if metrics.merge_opportunities:
        suggestions.append(
            {
                "type": "merge_routes",
                "priority": "medium",
                "estimated_impact": "medium",
                "description": "Combine pairs of routes to achieve target load levels",
                "vehicles": [list(m.vehicles) for m in metrics.merge_opportunities],
            }
        )
    if metrics.capacity_opportunities:
        suggestions.append(
            {
                "type": "add_capacity",
                "priority": "medium",
                "estimated_impact": "medium",
                "description": "Add more jobs to routes with available capacity",
                "vehicles": [c.vehicle for c in metrics.capacity_opportunities],
            }
        )
    return sorted(suggestions, key=lambda s: -_PRIORITY_RANK[s["priority"]])


def analyze_solution(
    solution: RouteSolution,
    target: float,
    capacities: Mapping[VehicleId, float] | None = None,
) -> SolutionMetrics:
    """Derive loads, distribution, compliance and balancing opportunities.

    ``capacities`` maps vehicle ids to their capacity; vehicles missing from it
    are assumed to carry ``DEFAULT_VEHICLE_CAPACITY``.
    """
    loads = [
        RouteLoad(
            vehicle=route.vehicle,
            load=route_load(route),
            jobs=len(route.job_steps),
            distance=route.summary.distance,
            duration=route.summary.duration,
        )
        for route in solution.routes
    ]

    if not loads:
        logger.debug("Solution has no routes; flagged as degenerate")
        return SolutionMetrics(
            route_loads=(), target=target, unassigned=len(solution.unassigned)
        )

    compliance = compute_compliance(loads, target)
    metrics = SolutionMetrics(
        route_loads=tuple(loads),
        target=target,
        compliance=compliance,
        distribution=compute_distribution([r.load for r in loads]),
        total_jobs=sum(r.jobs for r in loads),
        unassigned=len(solution.unassigned),
        total_distance=float(sum(r.distance for r in loads)),
        total_duration=float(sum(r.duration for r in loads)),
        merge_opportunities=find_merge_opportunities(compliance),
        capacity_opportunities=find_capacity_opportunities(compliance, capacities),
        excess_loads=find_excess_loads(compliance),
    )
    logger.debug(
        "Analyzed %d routes: compliance %.1f%%, load gap %.0f",
        metrics.route_count,
        compliance.compliance_rate,
        compliance.total_load_gap,
    )
    return metrics
