import pytest

from routebalance.config.params import OracleParams
from routebalance.oracle import MockOracle, NextBillionOracle, build_mock_solution, create_oracle
from routebalance.registry import ORACLE_REGISTRY, register_oracle


@pytest.fixture(autouse=True)
def _no_credentials(monkeypatch):
    monkeypatch.delenv("NEXTBILLION_API_KEY", raising=False)
    monkeypatch.delenv("NEXTBILLION_API_URL", raising=False)


def test_backends_registered():
    assert ORACLE_REGISTRY["nextbillion"] is NextBillionOracle
    assert ORACLE_REGISTRY["mock"] is MockOracle


def test_create_mock(fake_clock):
    assert isinstance(create_oracle(OracleParams(backend="mock"), fake_clock), MockOracle)


def test_create_nextbillion_requires_key(fake_clock):
    with pytest.raises(ValueError, match="NEXTBILLION_API_KEY"):
        create_oracle(OracleParams(), fake_clock)


def test_create_nextbillion(fake_clock):
    oracle = create_oracle(
        OracleParams(api_key="k", base_url="https://nb.test/", max_retries=5), fake_clock
    )
    assert isinstance(oracle, NextBillionOracle)
    assert oracle.base_url == "https://nb.test"
    assert oracle.max_retries == 5


def test_unknown_backend(fake_clock):
    with pytest.raises(ValueError, match="Unknown oracle backend 'ortools'. Available: mock, nextbillion"):
        create_oracle(OracleParams(backend="ortools"), fake_clock)


def test_duplicate_registration_rejected():
    with pytest.raises(ValueError, match="already registered"):
        register_oracle("mock")(MockOracle)


def test_mock_solution_shape(make_instance):
    solution = build_mock_solution(make_instance(n_vehicles=10, n_jobs=20))

    assert solution.route_count == 5
    assert [len(r.steps) for r in solution.routes] == [3] * 5
    assert solution.routes[2].summary.distance == 2000.0
    assert solution.routes[2].summary.duration == 4800.0
    assert len(solution.unassigned) == 5


def test_mock_oracle_answers_immediately(make_instance):
    oracle = MockOracle()
    handle = oracle.submit(make_instance(n_vehicles=3, n_jobs=6))

    assert handle.request_id == "mock_001"
    assert oracle.fetch_result(handle).route_count == 2
    assert oracle.submit(make_instance()).request_id == "mock_002"
