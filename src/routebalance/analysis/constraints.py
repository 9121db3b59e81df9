"""Constraint checking for route solutions.

Every active bound is compared against each route (or, for ``max_routes``,
against the route count).  A breach is a high severity violation; a value
within 10 % of the bound without breaching it is a medium severity warning.
A solution with no routes yields a single critical violation and nothing else.
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any

from routebalance.analysis.load import route_load
from routebalance.core_types import RouteSolution, VehicleId
from routebalance.utils.logging import RouteBalanceLogger

logger = RouteBalanceLogger.get_logger(__name__)

WARNING_MARGIN = 0.1


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


_SEVERITY_RANK = {
    Severity.CRITICAL: 4,
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
}


@dataclass(frozen=True)
class ConstraintIssue:
    """A violation or warning raised against one bound."""

    kind: str  # e.g. "min_load_violation", "max_distance_warning"
    family: str  # load, routes, distance, duration
    severity: Severity
    bound: float | None = None
    value: float | None = None
    vehicle: VehicleId | None = None
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.kind,
            "severity": self.severity.value,
        }
        if self.vehicle is not None:
            data["vehicle"] = self.vehicle
        if self.value is not None:
            data["value"] = self.value
        if self.bound is not None:
            data["bound"] = self.bound
        if self.description:
            data["description"] = self.description
        return data


@dataclass(frozen=True, slots=True)
class ConstraintSet:
    """Named bounds to check; ``None`` means the bound is not active."""

    min_load_per_route: float | None = None
    max_load_per_route: float | None = None
    max_routes: int | None = None
    max_distance: float | None = None
    max_duration: float | None = None

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None and value < 0:
                raise ValueError(f"ConstraintSet.{f.name} must be non-negative.")

    def active(self) -> dict[str, float]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


@dataclass(frozen=True)
class ConstraintVerdict:
    passed: bool
    violations: tuple[ConstraintIssue, ...] = field(default_factory=tuple)
    warnings: tuple[ConstraintIssue, ...] = field(default_factory=tuple)
    checked: tuple[str, ...] = field(default_factory=tuple)

    def summary(self) -> dict[str, Any]:
        issues = self.violations + self.warnings
        return {
            "passed": self.passed,
            "total_violations": len(self.violations),
            "total_warnings": len(self.warnings),
            "constraint_types": list(self.checked),
            "critical_issues": sum(
                1 for i in issues if i.severity in (Severity.CRITICAL, Severity.HIGH)
            ),
            "moderate_issues": sum(
                1 for i in issues if i.severity in (Severity.MEDIUM, Severity.LOW)
            ),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "passed": self.passed,
            "violations": [v.to_dict() for v in self.violations],
            "warnings": [w.to_dict() for w in self.warnings],
            "summary": self.summary(),
        }


def _check_upper(
    family: str,
    name: str,
    value: float,
    bound: float,
    vehicle: VehicleId | None,
    violations: list[ConstraintIssue],
    warnings: list[ConstraintIssue],
) -> None:
    if value > bound:
        violations.append(
            ConstraintIssue(
                kind=f"max_{name}_violation",
                family=family,
                severity=Severity.HIGH,
                bound=bound,
                value=value,
                vehicle=vehicle,
                description=f"{name} {value:g} exceeds maximum {bound:g}",
            )
        )
    elif value > bound * (1 - WARNING_MARGIN):
        warnings.append(
            ConstraintIssue(
                kind=f"max_{name}_warning",
                family=family,
                severity=Severity.MEDIUM,
                bound=bound,
                value=value,
                vehicle=vehicle,
                description=f"{name} {value:g} is within 10% of maximum {bound:g}",
            )
        )


def check_solution(solution: RouteSolution, constraints: ConstraintSet) -> ConstraintVerdict:
    """Evaluate ``solution`` against every active bound in ``constraints``."""
    active = tuple(constraints.active())

    if not solution.routes:
        logger.warning("Solution has no routes - optimization failed")
        return ConstraintVerdict(
            passed=False,
            violations=(
                ConstraintIssue(
                    kind="no_routes",
                    family="solution",
                    severity=Severity.CRITICAL,
                    description="Optimization failed to produce any viable routes",
                ),
            ),
            checked=active,
        )

    violations: list[ConstraintIssue] = []
    warnings: list[ConstraintIssue] = []

    if constraints.min_load_per_route is not None:
        bound = constraints.min_load_per_route
        for route in solution.routes:
            load = route_load(route)
            if load < bound:
                violations.append(
                    ConstraintIssue(
                        kind="min_load_violation",
                        family="load",
                        severity=Severity.HIGH,
                        bound=bound,
                        value=load,
                        vehicle=route.vehicle,
                        description=f"load {load:g} is {bound - load:g} below minimum {bound:g}",
                    )
                )
            elif load < bound * (1 + WARNING_MARGIN):
                warnings.append(
                    ConstraintIssue(
                        kind="min_load_warning",
                        family="load",
                        severity=Severity.MEDIUM,
                        bound=bound,
                        value=load,
                        vehicle=route.vehicle,
                        description=f"load {load:g} is within 10% of minimum {bound:g}",
                    )
                )

    if constraints.max_load_per_route is not None:
        for route in solution.routes:
            _check_upper(
                "load",
                "load",
                route_load(route),
                constraints.max_load_per_route,
                route.vehicle,
                violations,
                warnings,
            )

    if constraints.max_routes is not None:
        _check_upper(
            "routes",
            "routes",
            solution.route_count,
            constraints.max_routes,
            None,
            violations,
            warnings,
        )

    if constraints.max_distance is not None:
        for route in solution.routes:
            _check_upper(
                "distance",
                "distance",
                route.summary.distance,
                constraints.max_distance,
                route.vehicle,
                violations,
                warnings,
            )

    if constraints.max_duration is not None:
        for route in solution.routes:
            _check_upper(
                "duration",
                "duration",
                route.summary.duration,
                constraints.max_duration,
                route.vehicle,
                violations,
                warnings,
            )

    verdict = ConstraintVerdict(
        passed=not violations,
        violations=tuple(violations),
        warnings=tuple(warnings),
        checked=active,
    )
    logger.debug(
        "Constraint check %s: %d violations, %d warnings",
        "PASSED" if verdict.passed else "FAILED",
        len(violations),
        len(warnings),
    )
    return verdict


_RECOMMENDATIONS = (
    (
        "load",
        "load_optimization",
        Severity.HIGH,
        "Optimize load distribution to meet route load constraints",
        (
            "Redistribute jobs between routes",
            "Adjust vehicle capacities",
            "Consider route merging for low-load routes",
        ),
    ),
    (
        "routes",
        "route_reduction",
        Severity.HIGH,
        "Reduce the number of routes to meet the maximum route constraint",
        (
            "Merge compatible routes",
            "Optimize job assignments",
            "Consider vehicle capacity increases",
        ),
    ),
    (
        "distance",
        "distance_optimization",
        Severity.MEDIUM,
        "Optimize route distances to meet the maximum distance constraint",
        (
            "Reorder stops within routes",
            "Consider alternative vehicle assignments",
        ),
    ),
    (
        "duration",
        "duration_optimization",
        Severity.MEDIUM,
        "Optimize route durations to meet the maximum duration constraint",
        (
            "Reduce service times where possible",
            "Relax time windows",
        ),
    ),
)


def recommendations(verdict: ConstraintVerdict) -> list[dict[str, Any]]:
    """Advice entries for each family of violation present, high priority first."""
    families = {v.family for v in verdict.violations}
    entries = [
        {
            "type": kind,
            "priority": priority.value,
            "description": description,
            "actions": list(actions),
        }
        for family, kind, priority, description, actions in _RECOMMENDATIONS
        if family in families
    ]
    return sorted(entries, key=lambda e: -_SEVERITY_RANK[Severity(e["priority"])])
