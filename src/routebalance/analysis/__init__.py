"""Solution analysis: load/compliance metrics and constraint checking."""

from .constraints import (
    ConstraintIssue,
    ConstraintSet,
    ConstraintVerdict,
    Severity,
    check_solution,
    recommendations,
)
from .load import (
    CapacityOpportunity,
    ComplianceReport,
    ExcessLoad,
    LoadDistribution,
    LoadGap,
    MergeOpportunity,
    RouteLoad,
    SolutionMetrics,
    analyze_solution,
    route_load,
    suggest_balancing_strategies,
)

__all__ = [
    "CapacityOpportunity",
    "ComplianceReport",
    "ConstraintIssue",
    "ConstraintSet",
    "ConstraintVerdict",
    "ExcessLoad",
    "LoadDistribution",
    "LoadGap",
    "MergeOpportunity",
    "RouteLoad",
    "Severity",
    "SolutionMetrics",
    "analyze_solution",
    "check_solution",
    "recommendations",
    "route_load",
    "suggest_balancing_strategies",
]
