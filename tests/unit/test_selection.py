import pytest

from routebalance.analysis.constraints import ConstraintVerdict
from routebalance.analysis.load import ComplianceReport, RouteLoad, SolutionMetrics
from routebalance.core_types import RouteSolution
from routebalance.refinement.selection import Candidate, is_better, select_best


def _metrics(rate, routes):
    loads = tuple(RouteLoad(vehicle=i, load=0.0, jobs=0) for i in range(routes))
    compliance = None
    if routes:
        compliance = ComplianceReport(
            target=12000,
            below_target=(),
            at_or_above=loads,
            compliance_rate=rate,
            total_load_gap=0.0,
        )
    return SolutionMetrics(route_loads=loads, target=12000, compliance=compliance)


def _candidate(rate, routes, iteration=1):
    return Candidate(
        iteration=iteration,
        solution=RouteSolution(routes=()),
        metrics=_metrics(rate, routes),
        verdict=ConstraintVerdict(passed=False),
    )


def test_higher_compliance_beats_fewer_routes():
    a, b = _metrics(90.0, 6), _metrics(80.0, 4)
    assert is_better(a, b)
    assert not is_better(b, a)


def test_fewer_routes_breaks_ties():
    c, d = _metrics(80.0, 5), _metrics(80.0, 6)
    assert is_better(c, d)
    assert not is_better(d, c)


def test_full_tie_keeps_incumbent():
    incumbent = _candidate(80.0, 5, iteration=1)
    challenger = _candidate(80.0, 5, iteration=2)
    assert select_best(incumbent, challenger) is incumbent


def test_degenerate_never_selected():
    degenerate = _candidate(0.0, 0)
    assert select_best(None, degenerate) is None

    incumbent = _candidate(10.0, 3)
    assert select_best(incumbent, degenerate) is incumbent


def test_first_non_degenerate_wins_over_nothing():
    first = _candidate(0.0, 2)
    assert select_best(None, first) is first


@pytest.mark.parametrize("rates", [
    [(50.0, 4), (90.0, 6), (80.0, 4), (90.0, 5), (0.0, 0)],
    [(0.0, 0), (10.0, 9), (10.0, 8), (100.0, 12)],
])
def test_selection_keeps_maximum(rates):
    best = None
    for i, (rate, routes) in enumerate(rates, start=1):
        best = select_best(best, _candidate(rate, routes, iteration=i))
    top = max(
        ((r, -n, -i) for i, (r, n) in enumerate(rates, start=1) if n),
    )
    assert (best.metrics.compliance_rate, -best.metrics.route_count) == top[:2]
