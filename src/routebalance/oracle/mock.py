"""Deterministic offline oracle used by ``--mock`` runs and demos."""

from routebalance.core_types import (
    JobHandle,
    OracleStatus,
    ProblemInstance,
    Route,
    RouteSolution,
    RouteSummary,
    Step,
)
from routebalance.registry import register_oracle
from routebalance.utils.logging import log_warning

MOCK_ROUTE_LIMIT = 5
MOCK_JOBS_PER_ROUTE = 3


def build_mock_solution(instance: ProblemInstance) -> RouteSolution:
    """First five vehicles, three consecutive jobs each, fixed summaries."""
    routes = []
    for index, vehicle in enumerate(instance.vehicles[:MOCK_ROUTE_LIMIT]):
        jobs = instance.jobs[index * MOCK_JOBS_PER_ROUTE : (index + 1) * MOCK_JOBS_PER_ROUTE]
        if not jobs:
            break
        routes.append(
            Route(
                vehicle=vehicle.id,
                steps=tuple(
                    Step(type="job", load=job.delivery, job_id=job.id) for job in jobs
                ),
                summary=RouteSummary(
                    distance=1000.0 + 500.0 * index,
                    duration=3600.0 + 600.0 * index,
                ),
            )
        )
    assigned = {step.job_id for route in routes for step in route.steps}
    return RouteSolution(
        routes=tuple(routes),
        unassigned=tuple(job.id for job in instance.jobs if job.id not in assigned),
    )


@register_oracle("mock")
class MockOracle:
    """Answers every submission synchronously without network access."""

    def __init__(self):
        self.submissions = 0

    def submit(self, instance: ProblemInstance) -> JobHandle:
        self.submissions += 1
        log_warning("Using mock oracle - results are synthetic")
        return JobHandle(
            request_id=f"mock_{self.submissions:03d}",
            immediate_result=build_mock_solution(instance),
        )

    def poll_status(self, handle: JobHandle) -> OracleStatus:
        return OracleStatus.COMPLETED

    def fetch_result(self, handle: JobHandle) -> RouteSolution:
        if handle.immediate_result is None:
            raise ValueError(f"Unknown mock request {handle.request_id}")
        return handle.immediate_result
