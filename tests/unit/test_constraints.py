import pytest

from routebalance.analysis.constraints import (
    ConstraintSet,
    Severity,
    check_solution,
    recommendations,
)
from routebalance.core_types import RouteSolution


def test_zero_routes_is_single_critical_violation():
    verdict = check_solution(
        RouteSolution(routes=()),
        ConstraintSet(min_load_per_route=12000, max_routes=3, max_distance=5),
    )

    assert not verdict.passed
    assert len(verdict.violations) == 1
    assert verdict.violations[0].kind == "no_routes"
    assert verdict.violations[0].severity is Severity.CRITICAL
    assert verdict.warnings == ()
    assert recommendations(verdict) == []


def test_min_load_violation_and_warning(make_solution):
    verdict = check_solution(
        make_solution([9000, 12500, 14000]), ConstraintSet(min_load_per_route=12000)
    )

    assert not verdict.passed
    assert [(v.kind, v.vehicle, v.severity) for v in verdict.violations] == [
        ("min_load_violation", 1, Severity.HIGH)
    ]
    # 12500 is within 10% above the bound; 14000 is not
    assert [(w.kind, w.vehicle) for w in verdict.warnings] == [("min_load_warning", 2)]


def test_no_active_constraints_passes(make_solution):
    verdict = check_solution(make_solution([1, 2]), ConstraintSet())
    assert verdict.passed
    assert verdict.checked == ()


@pytest.mark.parametrize("constraints, kind", [
    (ConstraintSet(max_load_per_route=10000), "max_load_violation"),
    (ConstraintSet(max_routes=1), "max_routes_violation"),
    (ConstraintSet(max_distance=9000), "max_distance_violation"),
    (ConstraintSet(max_duration=3000), "max_duration_violation"),
])
def test_upper_bound_violations(make_solution, constraints, kind):
    verdict = check_solution(make_solution([11000, 5000]), constraints)
    assert not verdict.passed
    assert verdict.violations[0].kind == kind


def test_upper_bound_warning_within_margin(make_solution):
    verdict = check_solution(make_solution([5000]), ConstraintSet(max_distance=10500))
    assert verdict.passed
    assert verdict.warnings[0].kind == "max_distance_warning"
    assert verdict.warnings[0].severity is Severity.MEDIUM


def test_summary_counts(make_solution):
    verdict = check_solution(
        make_solution([9000, 12500]),
        ConstraintSet(min_load_per_route=12000, max_routes=2),
    )
    summary = verdict.summary()
    assert summary["total_violations"] == 1
    # 12500 is near the min load bound; 2 routes is within 10% of max_routes
    assert summary["total_warnings"] == 2
    assert summary["critical_issues"] == 1
    assert summary["moderate_issues"] == 2
    assert set(summary["constraint_types"]) == {"min_load_per_route", "max_routes"}


def test_recommendations_sorted_by_priority(make_solution):
    verdict = check_solution(
        make_solution([9000, 13000]),
        ConstraintSet(min_load_per_route=12000, max_distance=5000, max_routes=1),
    )
    recs = recommendations(verdict)
    assert [r["type"] for r in recs] == [
        "load_optimization",
        "route_reduction",
        "distance_optimization",
    ]
    assert recs[0]["priority"] == "high"
    assert recs[-1]["priority"] == "medium"


def test_negative_bound_rejected():
    with pytest.raises(ValueError, match="non-negative"):
        ConstraintSet(max_routes=-1)
