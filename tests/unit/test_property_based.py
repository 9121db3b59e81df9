import hypothesis.strategies as st
from hypothesis import given, settings

from routebalance.analysis.load import analyze_solution, route_load
from routebalance.core_types import Route, RouteSolution, Step

step_strategy = st.builds(
    Step,
    type=st.sampled_from(["job", "start", "end", "break"]),
    load=st.lists(st.integers(min_value=0, max_value=20000), min_size=0, max_size=2).map(tuple),
)


@settings(max_examples=50)
@given(
    routes_steps=st.lists(st.lists(step_strategy, max_size=8), min_size=1, max_size=8),
    target=st.integers(min_value=1, max_value=30000),
)
def test_load_and_compliance_properties(routes_steps, target):
    """Loads sum job steps only; compliance stays in [0, 100] and is 100 iff nothing is below target."""
    solution = RouteSolution(
        routes=tuple(Route(vehicle=i, steps=tuple(steps)) for i, steps in enumerate(routes_steps))
    )
    metrics = analyze_solution(solution, target)

    for route, loaded in zip(solution.routes, metrics.route_loads):
        expected = sum(s.load[0] for s in route.steps if s.type == "job" and s.load)
        assert route_load(route) == expected
        assert loaded.load == expected >= 0

    rate = metrics.compliance_rate
    assert 0 <= rate <= 100
    assert (rate == 100) == (len(metrics.compliance.below_target) == 0)
    assert metrics.compliance.total_load_gap == sum(
        target - r.load for r in metrics.route_loads if r.load < target
    )
