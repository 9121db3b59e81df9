"""Shared fixtures: instance/solution builders, a fake clock and a scripted oracle."""

import pytest

from routebalance.core_types import JobHandle, OracleStatus, ProblemInstance, RouteSolution
from routebalance.utils.logging import LogLevel, RouteBalanceLogger


def build_instance_dict(n_vehicles=3, n_jobs=6, capacity=20000, delivery=3000):
    return {
        "vehicles": [
            {
                "id": i,
                "capacity": [capacity],
                "time_window": [1719280000, 1719320000],
                "start_index": 0,
            }
            for i in range(1, n_vehicles + 1)
        ],
        "jobs": [
            {
                "id": 100 + i,
                "location_index": i,
                "delivery": [delivery],
                "time_windows": [[1719282600, 1719300000], [1719303600, 1719315000]],
            }
            for i in range(1, n_jobs + 1)
        ],
        "locations": {"id": 1, "location": ["13.0,77.5"] * (n_jobs + 1)},
        "options": {
            "objective": {"travel_cost": "distance"},
            "routing": {"mode": "truck"},
        },
    }


def build_solution_dict(loads, vehicles=None):
    vehicles = vehicles or list(range(1, len(loads) + 1))
    routes = []
    job_id = 100
    for vehicle, load in zip(vehicles, loads):
        job_id += 1
        routes.append(
            {
                "vehicle": vehicle,
                "steps": [
                    {"type": "start"},
                    {"type": "job", "id": job_id, "load": [load]},
                    {"type": "end"},
                ],
                "summary": {"distance": 10000.0, "duration": 3600.0},
            }
        )
    return {"routes": routes, "unassigned": []}


@pytest.fixture
def instance_data():
    return build_instance_dict()


@pytest.fixture
def solution_data():
    return build_solution_dict


@pytest.fixture
def make_instance():
    def _make(**kwargs) -> ProblemInstance:
        return ProblemInstance.from_dict(build_instance_dict(**kwargs))

    return _make


@pytest.fixture
def make_solution():
    def _make(loads, vehicles=None) -> RouteSolution:
        return RouteSolution.from_dict(build_solution_dict(loads, vehicles))

    return _make


class FakeClock:
    """Clock whose time only moves when ``sleep`` is called."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class ScriptedOracle:
    """Answers each submission with the next scripted solution or exception."""

    def __init__(self, script):
        self.script = list(script)
        self.submitted: list[ProblemInstance] = []

    def submit(self, instance: ProblemInstance) -> JobHandle:
        self.submitted.append(instance)
        if not self.script:
            raise AssertionError("ScriptedOracle ran out of answers")
        outcome = self.script.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return JobHandle(
            request_id=f"scripted_{len(self.submitted)}", immediate_result=outcome
        )

    def poll_status(self, handle: JobHandle) -> OracleStatus:
        return OracleStatus.COMPLETED

    def fetch_result(self, handle: JobHandle) -> RouteSolution:
        return handle.immediate_result


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def scripted_oracle():
    return ScriptedOracle


@pytest.fixture(autouse=True)
def _normal_log_level():
    RouteBalanceLogger.set_level(LogLevel.NORMAL)
    yield
    RouteBalanceLogger.set_level(LogLevel.NORMAL)
